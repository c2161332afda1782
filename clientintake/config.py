"""Runtime configuration read from the environment.

Values come from environment variables, optionally loaded from a ``.env``
file with python-dotenv. See ``Settings.from_env`` for the variable names.
"""

from dataclasses import dataclass
import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Attributes:
        database_url: SQLAlchemy database URL
        email_host: SMTP host
        email_port: SMTP port
        email_secure: Connect with TLS from the start instead of STARTTLS
        email_user: SMTP username, also used as the From address
        email_pass: SMTP password
        email_sender_name: Display name on confirmation emails
        developer_email: Operator address that receives new-inquiry emails
        scheduling_url: Booking page embedded on the confirmation view
        log_level: Root log level name
    """
    database_url: str = "sqlite:///intake.db"
    email_host: str = "smtp.example.com"
    email_port: int = 587
    email_secure: bool = False
    email_user: str = ""
    email_pass: str = ""
    email_sender_name: str = "Client Intake"
    developer_email: str = "you@example.com"
    scheduling_url: str = "https://calendly.com/"
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``
            dotenv: Load a ``.env`` file into ``os.environ`` first
        """
        if dotenv and environ is None:
            load_dotenv()
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            database_url=env.get("DATABASE_URL", defaults.database_url),
            email_host=env.get("EMAIL_HOST", defaults.email_host),
            email_port=int(env.get("EMAIL_PORT") or defaults.email_port),
            email_secure=_flag(env.get("EMAIL_SECURE")),
            email_user=env.get("EMAIL_USER", defaults.email_user),
            email_pass=env.get("EMAIL_PASS", defaults.email_pass),
            email_sender_name=env.get("EMAIL_SENDER_NAME", defaults.email_sender_name),
            developer_email=env.get("DEVELOPER_EMAIL", defaults.developer_email),
            scheduling_url=env.get("SCHEDULING_URL", defaults.scheduling_url),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)


__all__ = [
    "Settings",
    "configure_logging",
]
