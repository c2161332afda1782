"""Shared fixtures: an in-memory app, a recording mailer and sample payloads."""

from typing import List, Set

import pytest

from clientintake.app import create_app
from clientintake.config import Settings
from clientintake.errors import DeliveryError
from clientintake.handler import SubmissionHandler
from clientintake.mailer import MailMessage
from clientintake.models import db
from clientintake.schema import initial_values
from clientintake.store import SubmissionStore

OPERATOR_EMAIL = "owner@studio.test"

# Minimal payload the endpoint accepts
MINIMAL_PAYLOAD = {
    "businessName": "Acme",
    "industry": "Retail",
    "contactName": "Jo",
    "contactEmail": "jo@acmebakery.com",
    "contactPhone": "5551234567",
    "preferredContact": "email",
    "domainStatus": "unsure",
    "hostingPreference": "recommend",
    "budgetRange": "undecided",
    "timeline": "flexible",
    "maintenanceNeeds": "undecided",
}

# Values that satisfy every wizard rule on top of the wizard defaults
WIZARD_TEXT_VALUES = {
    "businessName": "Acme Bakery",
    "industry": "Food & Beverage",
    "contactName": "Jo Baker",
    "contactEmail": "jo@acmebakery.com",
    "contactPhone": "5551234567",
    "targetAudience": "Local families",
    "expectedPages": "5",
}


class RecordingMailer:
    """Mailer double that records messages and can fail on demand.

    Attributes:
        sent: Messages accepted, in order
        attempted: Every message handed to ``send``, in order
        fail_for: Recipients whose messages raise DeliveryError
    """

    def __init__(self):
        self.sent: List[MailMessage] = []
        self.attempted: List[MailMessage] = []
        self.fail_for: Set[str] = set()

    def send(self, message: MailMessage) -> None:
        self.attempted.append(message)
        if message.to in self.fail_for:
            raise DeliveryError(message.to, "550 mailbox unavailable")
        self.sent.append(message)


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        developer_email=OPERATOR_EMAIL,
        email_sender_name="Studio",
        scheduling_url="https://calendly.com/studio/intro",
        log_level="DEBUG",
    )


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app(settings, mailer):
    app = create_app(settings=settings, mailer=mailer)
    app.config["TESTING"] = True
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return SubmissionStore(db.session)


@pytest.fixture
def handler(store, mailer):
    return SubmissionHandler(store, mailer, operator_email=OPERATOR_EMAIL, sender_name="Studio")


@pytest.fixture
def minimal_payload():
    return dict(MINIMAL_PAYLOAD)


@pytest.fixture
def complete_values():
    """Wizard values that pass every wizard rule."""
    values = initial_values()
    values.update(WIZARD_TEXT_VALUES)
    return values
