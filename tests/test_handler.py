"""Tests for the submission handler pipeline.

Tests cover:
- Parsing and validating request bodies
- Storing one client and one submission per request
- Best-effort confirmation and notification emails
- Failure envelopes for bad payloads and storage errors
- Handler events
"""

import json
from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from clientintake.errors import PayloadError
from clientintake.events import EventEmitter
from clientintake.handler import (
    FAILURE_MESSAGE,
    SUCCESS_MESSAGE,
    HandlerResult,
    NotificationResult,
    SubmissionHandler,
    handler_transport,
)
from clientintake.mailer import SmtpMailer
from clientintake.types import ErrorType, EventType, FieldErrorCode

OPERATOR_EMAIL = "owner@studio.test"


class TestParse:
    """Test SubmissionHandler.parse()."""

    def test_accepts_bytes_str_and_mapping(self, handler, minimal_payload):
        body = json.dumps(minimal_payload)
        for raw in (body.encode("utf-8"), body, minimal_payload):
            assert handler.parse(raw).business_name == "Acme"

    def test_invalid_json(self, handler):
        with pytest.raises(PayloadError) as exc_info:
            handler.parse(b"{not json")
        assert exc_info.value.error_type == ErrorType.INVALID_PAYLOAD
        assert exc_info.value.fields == []

    def test_invalid_utf8(self, handler):
        with pytest.raises(PayloadError) as exc_info:
            handler.parse(b"\xff\xfe{}")
        assert exc_info.value.error_type == ErrorType.INVALID_PAYLOAD

    def test_non_object_body(self, handler):
        with pytest.raises(PayloadError) as exc_info:
            handler.parse("[1, 2, 3]")
        assert "JSON object" in str(exc_info.value)

    def test_missing_required_fields(self, handler, minimal_payload):
        del minimal_payload["contactEmail"]
        del minimal_payload["budgetRange"]

        with pytest.raises(PayloadError) as exc_info:
            handler.parse(minimal_payload)

        assert exc_info.value.error_type == ErrorType.VALIDATION
        assert [f.path for f in exc_info.value.fields] == ["contactEmail", "budgetRange"]
        assert "contactEmail, budgetRange" in str(exc_info.value)

    def test_hidden_sub_fields_are_pruned(self, handler, minimal_payload):
        minimal_payload.update({
            "domainStatus": "need-to-purchase",
            "existingDomain": "old.test",
            "preferredDomain": "new.test",
        })
        payload = handler.parse(minimal_payload)

        assert payload.existing_domain is None
        assert payload.preferred_domain == "new.test"


class TestHandleSuccess:
    """Test a stored submission."""

    def test_stores_client_and_submission(self, handler, store, minimal_payload):
        result = handler.handle(json.dumps(minimal_payload))

        assert result.success is True
        assert result.status_code == 200
        assert store.count_clients() == 1
        assert store.count_submissions() == 1
        client = store.get_client(result.client_id)
        assert client.business_name == "Acme"
        assert client.website is None
        assert client.newsletter_consent is False

    def test_response_body(self, handler, minimal_payload):
        result = handler.handle(minimal_payload)

        assert result.to_dict() == {
            "success": True,
            "id": result.client_id,
            "message": SUCCESS_MESSAGE,
        }

    def test_sends_confirmation_then_notification(self, handler, mailer, minimal_payload):
        handler.handle(minimal_payload)

        assert [m.to for m in mailer.sent] == ["jo@acmebakery.com", OPERATOR_EMAIL]
        confirmation, notification = mailer.sent
        assert confirmation.subject == "Thank You for Your Submission!"
        assert confirmation.sender_name == "Studio"
        assert notification.subject == "New Client Inquiry: Acme - Retail"

    def test_notification_results(self, handler, minimal_payload):
        result = handler.handle(minimal_payload)

        assert result.notifications == [
            NotificationResult(kind="confirmation", recipient="jo@acmebakery.com", delivered=True),
            NotificationResult(kind="notification", recipient=OPERATOR_EMAIL, delivered=True),
        ]

    def test_owned_domain_reaches_record_and_email(self, handler, store, mailer, minimal_payload):
        minimal_payload.update({"domainStatus": "owned", "existingDomain": "acme.test"})

        result = handler.handle(minimal_payload)

        stored = json.loads(store.submissions_for(result.client_id)[0].form_data)
        assert stored["existingDomain"] == "acme.test"
        assert "acme.test" in mailer.sent[1].html

    def test_need_to_purchase_drops_existing_domain(self, handler, store, mailer, minimal_payload):
        minimal_payload.update({
            "domainStatus": "need-to-purchase",
            "existingDomain": "old.test",
            "preferredDomain": "new.test",
        })

        result = handler.handle(minimal_payload)

        stored = json.loads(store.submissions_for(result.client_id)[0].form_data)
        assert "existingDomain" not in stored
        assert stored["preferredDomain"] == "new.test"
        assert "old.test" not in mailer.sent[1].html

    def test_consent_and_frequency_on_client(self, handler, store, minimal_payload):
        minimal_payload.update({"newsletterConsent": True, "marketingFrequency": "monthly"})
        client = store.get_client(handler.handle(minimal_payload).client_id)
        assert client.newsletter_consent is True
        assert client.marketing_frequency == "monthly"


class TestHandleEmailFailures:
    """Email failures never change the response."""

    def test_confirmation_failure_still_succeeds(self, handler, mailer, store, minimal_payload):
        mailer.fail_for.add("jo@acmebakery.com")

        result = handler.handle(minimal_payload)

        assert result.success is True
        assert result.status_code == 200
        assert store.count_clients() == 1
        assert [m.to for m in mailer.attempted] == ["jo@acmebakery.com", OPERATOR_EMAIL]
        assert [m.to for m in mailer.sent] == [OPERATOR_EMAIL]
        confirmation = result.notifications[0]
        assert confirmation.delivered is False
        assert "550" in confirmation.error

    def test_both_emails_failing_still_succeeds(self, handler, mailer, minimal_payload, caplog):
        mailer.fail_for.update({"jo@acmebakery.com", OPERATOR_EMAIL})

        result = handler.handle(minimal_payload)

        assert result.success is True
        assert len(mailer.attempted) == 2
        assert mailer.sent == []
        assert "Could not send confirmation email" in caplog.text
        assert "Could not send notification email" in caplog.text

    def test_unexpected_mailer_error_still_succeeds(self, store, minimal_payload, caplog):
        """Should treat any mailer exception as a failed email, not a failed request."""

        class BrokenMailer:
            def __init__(self):
                self.sent = []

            def send(self, message):
                if message.to == "jo@acmebakery.com":
                    raise RuntimeError("template engine exploded")
                self.sent.append(message)

        mailer = BrokenMailer()
        handler = SubmissionHandler(store, mailer, OPERATOR_EMAIL)

        result = handler.handle(minimal_payload)

        assert result.success is True
        assert result.status_code == 200
        assert store.count_clients() == 1
        assert [m.to for m in mailer.sent] == [OPERATOR_EMAIL]
        assert result.notifications[0].delivered is False
        assert "RuntimeError" in result.notifications[0].error
        assert result.notifications[1].delivered is True
        assert "Could not send confirmation email" in caplog.text

    def test_render_error_is_isolated(self, handler, mailer, store, minimal_payload, monkeypatch):
        def broken_render(payload, sender_name=None):
            raise KeyError("firstName")

        monkeypatch.setattr("clientintake.handler.render_confirmation", broken_render)

        result = handler.handle(minimal_payload)

        assert result.success is True
        assert [m.to for m in mailer.sent] == [OPERATOR_EMAIL]
        assert result.notifications[0].recipient == "jo@acmebakery.com"
        assert result.notifications[0].delivered is False

    def test_header_injection_through_smtp_mailer(self, store, minimal_payload):
        """Should report a line break in a header as a failed email."""
        minimal_payload["businessName"] = "Acme\r\nBcc: victim@else.test"
        handler = SubmissionHandler(store, SmtpMailer("smtp.mail.test", 587), OPERATOR_EMAIL)

        with mock.patch("clientintake.mailer.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            server.has_extn.return_value = False
            result = handler.handle(minimal_payload)

        assert result.success is True
        assert result.status_code == 200
        assert store.count_clients() == 1
        confirmation, notification = result.notifications
        assert confirmation.delivered is True
        assert notification.delivered is False
        assert "linefeed" in notification.error
        assert server.send_message.call_count == 1


class TestHandleFailures:
    """Failures in the required phase."""

    def test_invalid_payload_is_400(self, handler, mailer, store, minimal_payload):
        minimal_payload["contactEmail"] = "not-an-email"

        result = handler.handle(minimal_payload)

        assert result.success is False
        assert result.status_code == 400
        body = result.to_dict()
        assert body["success"] is False
        assert body["type"] == "validation"
        assert body["error"] == "Invalid submission"
        assert body["fields"][0]["path"] == "contactEmail"
        assert body["fields"][0]["code"] == FieldErrorCode.INVALID_FORMAT.value
        assert store.count_clients() == 0
        assert mailer.attempted == []

    @pytest.mark.parametrize(
        "address",
        [
            "a@x.test, b@y.test, c@z.test",
            "jo@acmebakery.com\r\nBcc: victim@else.test",
        ],
    )
    def test_unsafe_contact_email_is_400(self, handler, mailer, store, minimal_payload, address):
        """Should refuse addresses that would fan the confirmation out."""
        minimal_payload["contactEmail"] = address

        result = handler.handle(minimal_payload)

        assert result.status_code == 400
        assert [f["path"] for f in result.to_dict()["fields"]] == ["contactEmail"]
        assert store.count_clients() == 0
        assert mailer.attempted == []

    def test_malformed_body_is_400(self, handler):
        body = handler.handle(b"not json").to_dict()
        assert body["type"] == "invalid_payload"
        assert "fields" not in body

    def test_persistence_failure_is_500_and_sends_nothing(
        self, handler, mailer, store, minimal_payload, monkeypatch
    ):
        def broken(client_id, payload):
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        monkeypatch.setattr(store, "insert_form_submission", broken)

        result = handler.handle(minimal_payload)

        assert result.status_code == 500
        body = result.to_dict()
        assert body["success"] is False
        assert body["error"] == FAILURE_MESSAGE == "Failed to submit form"
        assert body["type"] == "persistence"
        assert "database is locked" in body["details"]
        assert mailer.attempted == []
        monkeypatch.undo()
        assert store.count_clients() == 0

    def test_failure_result_without_envelope(self):
        assert HandlerResult(success=False, status_code=500).to_dict() == {"success": False}


class TestHandlerEvents:
    """Test events emitted by the handler."""

    def test_event_sequence(self, store, mailer, minimal_payload):
        emitter = EventEmitter()
        seen = []
        emitter.on_any(seen.append)
        handler = SubmissionHandler(store, mailer, OPERATOR_EMAIL, emitter=emitter)
        mailer.fail_for.add(OPERATOR_EMAIL)

        result = handler.handle(minimal_payload)

        assert [e.type for e in seen] == [
            EventType.CLIENT_CREATED,
            EventType.SUBMISSION_RECORDED,
            EventType.NOTIFICATION_SENT,
            EventType.NOTIFICATION_FAILED,
        ]
        assert all(e.subject_id == result.client_id for e in seen)
        assert seen[-1].payload["recipient"] == OPERATOR_EMAIL

    def test_no_events_on_rejection(self, store, mailer):
        emitter = EventEmitter()
        seen = []
        emitter.on_any(seen.append)
        handler = SubmissionHandler(store, mailer, OPERATOR_EMAIL, emitter=emitter)

        handler.handle({})

        assert seen == []


class TestHandlerTransport:
    """Test the in-process wizard transport."""

    def test_returns_response_body(self, handler, minimal_payload):
        response = handler_transport(handler)(minimal_payload)
        assert response["success"] is True
        assert response["id"]

    def test_returns_failure_envelope(self, handler):
        response = handler_transport(handler)({})
        assert response["success"] is False
        assert response["error"] == "Invalid submission"
