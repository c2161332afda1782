"""Tests for email rendering and SMTP delivery."""

import smtplib
from unittest import mock

import pytest

from clientintake.errors import DeliveryError
from clientintake.mailer import (
    CONFIRMATION_SUBJECT,
    MailMessage,
    SmtpMailer,
    format_budget_range,
    format_domain_status,
    format_launch_date,
    render_confirmation,
    render_notification,
)
from clientintake.payload import IntakePayload


@pytest.fixture
def payload(minimal_payload):
    minimal_payload.update({
        "businessName": "Acme Bakery",
        "contactName": "Jo Baker",
        "budgetRange": "3000-5000",
        "domainStatus": "owned",
        "existingDomain": "acmebakery.test",
        "desiredLaunchDate": "2026-03-05",
        "keyFeatures": ["blog", "booking-system"],
    })
    return IntakePayload.from_dict(minimal_payload).pruned()


class TestFormatting:
    """Test the label helpers used by the notification email."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("under1000", "Under $1,000"),
            ("5000-10000", "$5,000 - $10,000"),
            ("undecided", "Undecided/Flexible"),
            ("custom", "custom"),
            (None, ""),
        ],
    )
    def test_budget_range(self, value, expected):
        assert format_budget_range(value) == expected

    def test_domain_status(self):
        assert format_domain_status("owned") == "Already owns a domain"
        assert format_domain_status("need-to-purchase") == "Needs to purchase a domain"
        assert format_domain_status("unsure") == "Not sure"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2026-03-05", "March 5, 2026"),
            ("2025-12-31", "December 31, 2025"),
            ("", "Not specified"),
            (None, "Not specified"),
            ("sometime soon", "sometime soon"),
        ],
    )
    def test_launch_date(self, value, expected):
        assert format_launch_date(value) == expected


class TestRenderConfirmation:
    """Test the submitter's confirmation email."""

    def test_addressed_to_submitter(self, payload):
        message = render_confirmation(payload, sender_name="Studio")

        assert message.to == "jo@acmebakery.com"
        assert message.subject == CONFIRMATION_SUBJECT == "Thank You for Your Submission!"
        assert message.sender_name == "Studio"

    def test_greets_by_first_name(self, payload):
        html = render_confirmation(payload, sender_name="Studio").html
        assert "Hi Jo," in html
        assert "Acme Bakery" in html
        assert "Studio" in html

    def test_greeting_without_name(self):
        html = render_confirmation(IntakePayload(contact_email="x@y.test")).html
        assert "Hi there," in html

    def test_user_input_is_escaped(self):
        payload = IntakePayload(contact_name="<b>Jo</b>", contact_email="x@y.test")
        html = render_confirmation(payload).html
        assert "<b>Jo" not in html
        assert "&lt;b&gt;Jo" in html


class TestRenderNotification:
    """Test the operator's new-inquiry email."""

    def test_addressed_to_operator(self, payload):
        message = render_notification(payload, "owner@studio.test")

        assert message.to == "owner@studio.test"
        assert message.subject == "New Client Inquiry: Acme Bakery - Retail"
        assert message.sender_name == "Client Intake System"

    def test_body_contents(self, payload):
        html = render_notification(payload, "owner@studio.test").html

        assert "New Client Inquiry" in html
        assert "$3,000 - $5,000" in html
        assert "Already owns a domain" in html
        assert "acmebakery.test" in html
        assert "March 5, 2026" in html
        assert "blog, booking-system" in html
        assert "businessName" in html

    def test_need_to_purchase_shows_preferred_domain_only(self, minimal_payload):
        minimal_payload.update({
            "domainStatus": "need-to-purchase",
            "existingDomain": "old.test",
            "preferredDomain": "new.test",
        })
        payload = IntakePayload.from_dict(minimal_payload).pruned()
        html = render_notification(payload, "owner@studio.test").html

        assert "Preferred Domain" in html
        assert "new.test" in html
        assert "Existing Domain" not in html
        assert "old.test" not in html

    def test_empty_selections(self, minimal_payload):
        html = render_notification(IntakePayload.from_dict(minimal_payload), "o@s.test").html
        assert "None selected" in html
        assert "Not specified" in html


class TestSmtpMailer:
    """Test SMTP delivery with smtplib patched out."""

    @pytest.fixture
    def message(self):
        return MailMessage(
            to="jo@acmebakery.com",
            subject="Hello",
            html="<p>Hello</p>",
            sender_name="Studio",
        )

    def test_build_message(self, message):
        mailer = SmtpMailer("smtp.test", 587, username="studio@mail.test")
        msg = mailer.build(message)

        assert msg["To"] == "jo@acmebakery.com"
        assert msg["Subject"] == "Hello"
        assert msg["From"] == "Studio <studio@mail.test>"
        assert msg.get_body(("html",)).get_content().strip() == "<p>Hello</p>"

    def test_build_uses_default_sender_name(self):
        mailer = SmtpMailer("smtp.test", 587, username="studio@mail.test",
                            default_sender_name="Intake")
        msg = mailer.build(MailMessage(to="a@b.test", subject="s", html="<p/>"))
        assert msg["From"] == "Intake <studio@mail.test>"

    def test_starttls_and_login(self, message):
        mailer = SmtpMailer("smtp.test", 587, username="studio@mail.test", password="secret")
        with mock.patch("clientintake.mailer.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            server.has_extn.return_value = True

            mailer.send(message)

        smtp_cls.assert_called_once_with("smtp.test", 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("studio@mail.test", "secret")
        server.send_message.assert_called_once()

    def test_plain_connection_without_credentials(self, message):
        mailer = SmtpMailer("localhost", 25)
        with mock.patch("clientintake.mailer.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            server.has_extn.return_value = False

            mailer.send(message)

        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    def test_ssl_connection(self, message):
        mailer = SmtpMailer("smtp.test", 465, username="u", password="p", use_ssl=True)
        with mock.patch("clientintake.mailer.smtplib.SMTP_SSL") as ssl_cls, \
                mock.patch("clientintake.mailer.smtplib.SMTP") as smtp_cls:
            server = ssl_cls.return_value.__enter__.return_value

            mailer.send(message)

        assert ssl_cls.call_args.args == ("smtp.test", 465)
        smtp_cls.assert_not_called()
        server.login.assert_called_once_with("u", "p")

    def test_smtp_error_becomes_delivery_error(self, message):
        mailer = SmtpMailer("smtp.test", 587)
        with mock.patch("clientintake.mailer.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            server.has_extn.return_value = False
            server.send_message.side_effect = smtplib.SMTPRecipientsRefused(
                {"jo@acmebakery.com": (550, b"no such user")}
            )

            with pytest.raises(DeliveryError) as exc_info:
                mailer.send(message)

        assert exc_info.value.recipient == "jo@acmebakery.com"
        assert "Hello" in str(exc_info.value)

    def test_line_break_in_header_becomes_delivery_error(self):
        mailer = SmtpMailer("smtp.test", 587)
        message = MailMessage(to="jo@acmebakery.com\r\nBcc: victim@else.test", subject="Hi", html="<p>x</p>")
        with mock.patch("clientintake.mailer.smtplib.SMTP") as smtp_cls:
            with pytest.raises(DeliveryError) as exc_info:
                mailer.send(message)

        smtp_cls.assert_not_called()
        assert "linefeed" in str(exc_info.value)

    def test_connection_error_becomes_delivery_error(self, message):
        mailer = SmtpMailer("smtp.test", 587)
        with mock.patch("clientintake.mailer.smtplib.SMTP",
                        side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(DeliveryError):
                mailer.send(message)
