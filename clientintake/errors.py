"""Structured error types for the client intake system.

Two kinds of objects live here:

- Exceptions raised inside the wizard, store, mailer and handler
  (``IntakeError`` and its subclasses).
- Serializable dataclasses describing a failure to the caller: ``FieldError``
  for a single field, and ``ErrorResponse`` for the JSON envelope returned by
  the submission endpoint on failure.

The failure envelope mirrors the success envelope of the endpoint: a
``success`` flag, a short ``error`` message and a ``details`` string, plus
optional per-field errors when the payload failed validation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from clientintake.types import ErrorType, FieldErrorCode


@dataclass(frozen=True)
class FieldError:
    """A single field that failed a rule.

    ``path`` is the field's wire name, or ``name.index`` for one item of a
    multi-choice field. ``expected`` and ``received`` are left out of the
    serialized form when unset.

    Examples:
        >>> FieldError(
        ...     path="contactEmail",
        ...     code=FieldErrorCode.INVALID_FORMAT,
        ...     message="Please enter a valid email address.",
        ... ).to_dict()["code"]
        'invalid_format'
    """
    path: str
    code: FieldErrorCode
    message: str
    expected: Optional[Any] = None
    received: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": self.path,
            "code": FieldErrorCode(self.code).value,
            "message": self.message,
        }
        for key in ("expected", "received"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass(frozen=True)
class ErrorResponse:
    """Body returned by the submission endpoint when a request fails.

    Serializes to ``{"success": false, "type", "error", "details"}`` with a
    ``fields`` list added for validation failures.
    """
    type: ErrorType
    error: str
    details: str
    fields: Optional[List[FieldError]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": False,
            "type": ErrorType(self.type).value,
            "error": self.error,
            "details": self.details,
        }
        if self.fields is not None:
            data["fields"] = [field_error.to_dict() for field_error in self.fields]
        return data


class IntakeError(Exception):
    """Base class for all client intake errors."""


class PayloadError(IntakeError):
    """Raised when a submitted payload cannot be parsed or fails validation.

    Attributes:
        error_type: INVALID_PAYLOAD for unparseable bodies, VALIDATION otherwise
        fields: Per-field errors, empty for unparseable bodies
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.VALIDATION,
        fields: Optional[List[FieldError]] = None,
    ):
        self.error_type = error_type
        self.fields = list(fields or [])
        super().__init__(message)


class PersistenceError(IntakeError):
    """Raised when the client or submission record cannot be stored."""


class DeliveryError(IntakeError):
    """Raised when an email cannot be handed to the mail transport.

    Attributes:
        recipient: Address the message was meant for
    """

    def __init__(self, recipient: str, message: str):
        self.recipient = recipient
        super().__init__(message)


class UnknownFieldError(IntakeError, KeyError):
    """Raised when the wizard is asked about a field that does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown intake field: {name!r}")

    def __str__(self) -> str:
        return self.args[0]


__all__ = [
    "FieldError",
    "ErrorResponse",
    "IntakeError",
    "PayloadError",
    "PersistenceError",
    "DeliveryError",
    "UnknownFieldError",
]
