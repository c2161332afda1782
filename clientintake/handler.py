"""Submission handler: durably record a submission, then notify both parties.

The handler is a two-phase pipeline:

Phase 1 (required)
    Parse and validate the payload, then store the Client and FormSubmission
    records in one transaction. Any failure here ends the request with a
    failure response, and no email is attempted.

Phase 2 (best effort)
    Send the confirmation email to the submitter, then the notification email
    to the operator. Each send is attempted on its own; a failure is logged and
    recorded on the result but never changes the response.

Usage:
    >>> handler = SubmissionHandler(store, mailer, operator_email="ops@example.com")  # doctest: +SKIP
    >>> result = handler.handle(request_body)  # doctest: +SKIP
    >>> result.to_dict()  # doctest: +SKIP
    {'success': True, 'id': '...', 'message': 'Form submitted successfully'}
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from clientintake.errors import (
    DeliveryError,
    ErrorResponse,
    PayloadError,
    PersistenceError,
)
from clientintake.events import EventEmitter, IntakeEvent, new_event_id
from clientintake.mailer import Mailer, MailMessage, render_confirmation, render_notification
from clientintake.payload import IntakePayload
from clientintake.schema import SUBMISSION_SCHEMA
from clientintake.store import SubmissionStore
from clientintake.types import ErrorType, EventType
from clientintake.validation import ValidationEngine

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Form submitted successfully"
FAILURE_MESSAGE = "Failed to submit form"
INVALID_MESSAGE = "Invalid submission"


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one best-effort email.

    Attributes:
        kind: "confirmation" or "notification"
        recipient: Address the email was sent to
        delivered: Whether the mail transport accepted it
        error: Failure description when not delivered
    """
    kind: str
    recipient: str
    delivered: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "kind": self.kind,
            "recipient": self.recipient,
            "delivered": self.delivered,
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class HandlerResult:
    """Response of the submission handler.

    Attributes:
        success: Whether the submission was stored
        status_code: HTTP status for the response
        client_id: New client id (success only)
        message: Success message (success only)
        failure: Failure envelope (failure only)
        notifications: Per-email outcomes (success only)
    """
    success: bool
    status_code: int
    client_id: Optional[str] = None
    message: Optional[str] = None
    failure: Optional[ErrorResponse] = None
    notifications: List[NotificationResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """JSON body sent back to the caller."""
        if not self.success:
            return self.failure.to_dict() if self.failure else {"success": False}
        return {
            "success": True,
            "id": self.client_id,
            "message": self.message,
        }


class SubmissionHandler:
    """Stores intake submissions and sends the follow-up emails.

    Attributes:
        store: Storage for client and submission records
        mailer: Mail transport for both emails
        operator_email: Address that receives new-inquiry notifications
        sender_name: Display name used on confirmation emails
        emitter: Optional event emitter
    """

    def __init__(
        self,
        store: SubmissionStore,
        mailer: Mailer,
        operator_email: str,
        sender_name: Optional[str] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.store = store
        self.mailer = mailer
        self.operator_email = operator_email
        self.sender_name = sender_name
        self.emitter = emitter
        self._validation_engine = ValidationEngine(SUBMISSION_SCHEMA)

    def handle(self, raw: Any) -> HandlerResult:
        """Run the full pipeline for one request body.

        Args:
            raw: Request body as bytes, str, or an already-decoded mapping

        Returns:
            HandlerResult with status 200 on success, 400 for an unusable
            payload, 500 when the records could not be stored
        """
        try:
            payload = self.parse(raw)
        except PayloadError as exc:
            logger.info("Rejected submission: %s", exc)
            return HandlerResult(
                success=False,
                status_code=400,
                failure=ErrorResponse(
                    type=exc.error_type,
                    error=INVALID_MESSAGE,
                    details=str(exc),
                    fields=exc.fields or None,
                ),
            )

        try:
            client_id = self.store.record_submission(payload)
        except PersistenceError as exc:
            return HandlerResult(
                success=False,
                status_code=500,
                failure=ErrorResponse(
                    type=ErrorType.PERSISTENCE,
                    error=FAILURE_MESSAGE,
                    details=str(exc),
                ),
            )

        self._emit(EventType.CLIENT_CREATED, client_id, {"businessName": payload.business_name})
        self._emit(EventType.SUBMISSION_RECORDED, client_id)
        logger.info("Stored submission for %r as client %s", payload.business_name, client_id)

        notifications = self.notify(payload, client_id)
        return HandlerResult(
            success=True,
            status_code=200,
            client_id=client_id,
            message=SUCCESS_MESSAGE,
            notifications=notifications,
        )

    def parse(self, raw: Any) -> IntakePayload:
        """Decode and validate a request body into a pruned IntakePayload.

        Raises:
            PayloadError: If the body is not a JSON object or fails the
                submission schema
        """
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise PayloadError(
                    f"Request body is not valid UTF-8: {exc}", ErrorType.INVALID_PAYLOAD
                ) from exc
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise PayloadError(
                    f"Request body is not valid JSON: {exc}", ErrorType.INVALID_PAYLOAD
                ) from exc
        if not isinstance(raw, Mapping):
            raise PayloadError("Submission must be a JSON object", ErrorType.INVALID_PAYLOAD)

        result = self._validation_engine.validate(dict(raw))
        if not result.is_valid:
            paths = ", ".join(dict.fromkeys(e.path for e in result.errors))
            raise PayloadError(
                f"Submission failed validation: {paths}",
                ErrorType.VALIDATION,
                fields=result.errors,
            )
        return IntakePayload.from_dict(raw).pruned()

    def notify(self, payload: IntakePayload, client_id: Optional[str] = None) -> List[NotificationResult]:
        """Send the confirmation and notification emails, in that order.

        Each email is rendered and sent independently. The submission is
        already stored at this point, so no failure in here propagates.
        """
        return [
            self._send(
                "confirmation",
                payload.contact_email or "",
                lambda: render_confirmation(payload, self.sender_name),
                client_id,
            ),
            self._send(
                "notification",
                self.operator_email,
                lambda: render_notification(payload, self.operator_email),
                client_id,
            ),
        ]

    def _send(
        self,
        kind: str,
        recipient: str,
        render: Callable[[], MailMessage],
        client_id: Optional[str],
    ) -> NotificationResult:
        try:
            self.mailer.send(render())
        except DeliveryError as exc:
            return self._send_failed(kind, recipient, str(exc), client_id)
        except Exception as exc:
            logger.exception("Unexpected error preparing %s email to %r", kind, recipient)
            return self._send_failed(kind, recipient, f"{type(exc).__name__}: {exc}", client_id)

        self._emit(EventType.NOTIFICATION_SENT, client_id, {"kind": kind, "recipient": recipient})
        return NotificationResult(kind=kind, recipient=recipient, delivered=True)

    def _send_failed(
        self, kind: str, recipient: str, error: str, client_id: Optional[str]
    ) -> NotificationResult:
        logger.warning("Could not send %s email to %r: %s", kind, recipient, error)
        self._emit(EventType.NOTIFICATION_FAILED, client_id,
                   {"kind": kind, "recipient": recipient, "error": error})
        return NotificationResult(kind=kind, recipient=recipient, delivered=False, error=error)

    def _emit(
        self,
        event_type: EventType,
        client_id: Optional[str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.emitter is None:
            return
        self.emitter.emit(
            IntakeEvent(
                event_id=new_event_id(),
                type=event_type,
                subject_id=client_id or "",
                ts=datetime.now(timezone.utc),
                payload=payload,
            )
        )


def handler_transport(handler: SubmissionHandler) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """Wizard transport that calls a handler in-process."""

    def transport(payload: Dict[str, Any]) -> Dict[str, Any]:
        return handler.handle(payload).to_dict()

    return transport


__all__ = [
    "HandlerResult",
    "NotificationResult",
    "SubmissionHandler",
    "handler_transport",
]
