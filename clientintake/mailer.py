"""Email delivery for intake submissions.

Two messages go out after a submission is stored: a confirmation to the
person who filled in the form and a notification to the site operator.
Both are rendered from Jinja2 templates under ``templates/email`` and handed
to a ``Mailer``. ``SmtpMailer`` delivers over SMTP with smtplib.
"""

from dataclasses import dataclass
import json
import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Dict, Optional

from dateutil import parser as date_parser
from jinja2 import Environment, PackageLoader, select_autoescape
from typing_extensions import Protocol

from clientintake.errors import DeliveryError
from clientintake.payload import IntakePayload

logger = logging.getLogger(__name__)

CONFIRMATION_SUBJECT = "Thank You for Your Submission!"

BUDGET_LABELS = {
    "under1000": "Under $1,000",
    "1000-3000": "$1,000 - $3,000",
    "3000-5000": "$3,000 - $5,000",
    "5000-10000": "$5,000 - $10,000",
    "over10000": "Over $10,000",
    "undecided": "Undecided/Flexible",
}

DOMAIN_STATUS_LABELS = {
    "owned": "Already owns a domain",
    "need-to-purchase": "Needs to purchase a domain",
    "unsure": "Not sure",
}

_templates = Environment(
    loader=PackageLoader("clientintake", "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True)
class MailMessage:
    """An HTML email ready to send.

    Attributes:
        to: Recipient address
        subject: Subject line
        html: HTML body
        sender_name: Display name for the From header
    """
    to: str
    subject: str
    html: str
    sender_name: Optional[str] = None


class Mailer(Protocol):
    """Anything that can deliver a MailMessage."""

    def send(self, message: MailMessage) -> None:
        """Deliver ``message``; raise DeliveryError if it cannot be handed off."""
        ...


class SmtpMailer:
    """Delivers messages through an SMTP server.

    With ``use_ssl`` the connection is TLS from the start (port 465 style).
    Otherwise a plain connection is upgraded with STARTTLS whenever the
    server offers it. Credentials are only used when a username is set.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        use_ssl: bool = False,
        default_sender_name: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.default_sender_name = default_sender_name

    def build(self, message: MailMessage) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = formataddr((message.sender_name or self.default_sender_name or "", self.username))
        msg["To"] = message.to
        msg.set_content("This message requires an HTML capable email client.")
        msg.add_alternative(message.html, subtype="html")
        return msg

    def send(self, message: MailMessage) -> None:
        context = ssl.create_default_context()
        try:
            msg = self.build(message)
            if self.use_ssl:
                with smtplib.SMTP_SSL(self.host, self.port, context=context) as server:
                    self._deliver(server, msg)
            else:
                with smtplib.SMTP(self.host, self.port) as server:
                    server.ehlo()
                    if server.has_extn("starttls"):
                        server.starttls(context=context)
                        server.ehlo()
                    self._deliver(server, msg)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            # ValueError comes from EmailMessage rejecting a header value
            raise DeliveryError(message.to, f"Could not send '{message.subject}': {exc}") from exc
        logger.info("Sent '%s' to %s", message.subject, message.to)

    def _deliver(self, server: smtplib.SMTP, msg: EmailMessage) -> None:
        if self.username:
            server.login(self.username, self.password)
        server.send_message(msg)


def format_budget_range(budget: Optional[str]) -> str:
    return BUDGET_LABELS.get(budget or "", budget or "")


def format_domain_status(status: Optional[str]) -> str:
    return DOMAIN_STATUS_LABELS.get(status or "", status or "")


def format_launch_date(value: Optional[str]) -> str:
    """Render an ISO date as e.g. "March 5, 2026"; other text is kept as given."""
    if not value:
        return "Not specified"
    try:
        parsed = date_parser.isoparse(value)
    except ValueError:
        return value
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def render_confirmation(payload: IntakePayload, sender_name: Optional[str] = None) -> MailMessage:
    """Thank-you email for the person who submitted the form."""
    html = _templates.get_template("email/confirmation.html").render(
        first_name=payload.first_name,
        business_name=payload.business_name,
        sender_name=sender_name,
    )
    return MailMessage(
        to=payload.contact_email or "",
        subject=CONFIRMATION_SUBJECT,
        html=html,
        sender_name=sender_name,
    )


def render_notification(payload: IntakePayload, operator_email: str) -> MailMessage:
    """New-inquiry email for the site operator."""
    data: Dict[str, Any] = payload.to_dict()
    html = _templates.get_template("email/notification.html").render(
        p=payload,
        budget=format_budget_range(payload.budget_range),
        domain_status=format_domain_status(payload.domain_status),
        launch_date=format_launch_date(payload.desired_launch_date),
        full_json=json.dumps(data, indent=2),
    )
    return MailMessage(
        to=operator_email,
        subject=f"New Client Inquiry: {payload.business_name} - {payload.industry}",
        html=html,
        sender_name="Client Intake System",
    )


__all__ = [
    "Mailer",
    "MailMessage",
    "SmtpMailer",
    "format_budget_range",
    "format_domain_status",
    "format_launch_date",
    "render_confirmation",
    "render_notification",
]
