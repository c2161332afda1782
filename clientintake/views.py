"""HTTP routes for the intake form."""

import logging

from flask import Blueprint, current_app, jsonify, render_template, request
from werkzeug.exceptions import InternalServerError

from clientintake.errors import ErrorResponse
from clientintake.handler import FAILURE_MESSAGE, SubmissionHandler
from clientintake.models import db
from clientintake.schema import form_definition
from clientintake.store import SubmissionStore
from clientintake.types import ErrorType

logger = logging.getLogger(__name__)

bp = Blueprint("intake", __name__)


def get_handler() -> SubmissionHandler:
    """Build a handler bound to the current app's session and mailer."""
    settings = current_app.config["INTAKE_SETTINGS"]
    return SubmissionHandler(
        store=SubmissionStore(db.session),
        mailer=current_app.extensions["intake_mailer"],
        operator_email=settings.developer_email,
        sender_name=settings.email_sender_name,
        emitter=current_app.extensions["intake_events"],
    )


@bp.post("/api/submit")
def submit():
    result = get_handler().handle(request.get_data())
    return jsonify(result.to_dict()), result.status_code


@bp.get("/api/form")
def form():
    return jsonify(form_definition())


@bp.get("/thank-you")
def thank_you():
    settings = current_app.config["INTAKE_SETTINGS"]
    return render_template("thank_you.html", scheduling_url=settings.scheduling_url)


@bp.app_errorhandler(InternalServerError)
def internal_error(error: InternalServerError):
    original = getattr(error, "original_exception", None) or error
    logger.error("Unhandled error on %s %s: %s", request.method, request.path, original)
    body = ErrorResponse(
        type=ErrorType.INTERNAL,
        error=FAILURE_MESSAGE,
        details=str(original),
    )
    return jsonify(body.to_dict()), 500
