"""Flask application factory for the intake endpoint.

Run locally with::

    flask --app clientintake.app run
"""

import logging
from typing import Optional

from flask import Flask

from clientintake.cli import register_commands
from clientintake.config import Settings, configure_logging
from clientintake.events import EventEmitter, log_event
from clientintake.mailer import Mailer, SmtpMailer
from clientintake.models import db
from clientintake.store import init_db
from clientintake.views import bp

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, mailer: Optional[Mailer] = None) -> Flask:
    """Create and configure the application.

    Args:
        settings: Settings to use; read from the environment when omitted
        mailer: Mail transport; an SmtpMailer built from settings when omitted
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = settings.database_url
    app.config["INTAKE_SETTINGS"] = settings
    db.init_app(app)

    app.extensions["intake_mailer"] = mailer or SmtpMailer(
        host=settings.email_host,
        port=settings.email_port,
        username=settings.email_user,
        password=settings.email_pass,
        use_ssl=settings.email_secure,
        default_sender_name=settings.email_sender_name,
    )
    emitter = EventEmitter()
    emitter.on_any(log_event)
    app.extensions["intake_events"] = emitter

    app.register_blueprint(bp)
    register_commands(app)
    init_db(app)

    logger.debug("Intake app ready, operator address %s", settings.developer_email)
    return app
