"""Core type definitions for the client intake system.

This module defines the fundamental types shared by the wizard and the
submission handler:
- Section: The six topical groupings of intake fields
- WizardState: Lifecycle states of an intake wizard session
- ErrorType: Structured error categories for handler responses
- EventType: Event types for the intake event stream
- FieldErrorCode: Validation error codes for individual fields
- FieldKind: Input kinds used to render and validate fields
"""

from enum import Enum
from typing import List


class Section(str, Enum):
    """Topical section of the intake form.

    Declaration order is display order; the wizard always reports and
    navigates sections in this order.
    """
    BASIC = "basic"
    BRANDING = "branding"
    WEBSITE = "website"
    TECHNICAL = "technical"
    PROJECT = "project"
    MARKETING = "marketing"

    @property
    def label(self) -> str:
        """Human-readable tab label."""
        return SECTION_LABELS[self]

    @classmethod
    def ordered(cls) -> List["Section"]:
        """All sections in display order."""
        return list(cls)


SECTION_LABELS = {
    Section.BASIC: "Basic Info",
    Section.BRANDING: "Branding",
    Section.WEBSITE: "Website Needs",
    Section.TECHNICAL: "Technical",
    Section.PROJECT: "Project Details",
    Section.MARKETING: "Marketing",
}


class WizardState(str, Enum):
    """Intake wizard lifecycle states.

    Terminal state: submitted.
    """
    EDITING = "editing"
    INCOMPLETE = "incomplete"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


class ErrorType(str, Enum):
    """Error categories for failure responses."""
    INVALID_PAYLOAD = "invalid_payload"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


class EventType(str, Enum):
    """Event types for the intake event stream."""
    SECTION_CHANGED = "section.changed"
    FIELD_UPDATED = "field.updated"
    VALIDATION_PASSED = "validation.passed"
    VALIDATION_FAILED = "validation.failed"
    SUBMISSION_SENT = "submission.sent"
    SUBMISSION_ACCEPTED = "submission.accepted"
    SUBMISSION_FAILED = "submission.failed"
    CLIENT_CREATED = "client.created"
    SUBMISSION_RECORDED = "submission.recorded"
    NOTIFICATION_SENT = "notification.sent"
    NOTIFICATION_FAILED = "notification.failed"


class FieldErrorCode(str, Enum):
    """Validation error codes for individual field failures."""
    REQUIRED = "required"
    INVALID_TYPE = "invalid_type"
    INVALID_FORMAT = "invalid_format"
    INVALID_VALUE = "invalid_value"
    TOO_SHORT = "too_short"
    CUSTOM = "custom"


class FieldKind(str, Enum):
    """How a field is captured in the wizard."""
    TEXT = "text"
    LONG_TEXT = "long_text"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    DATE = "date"
    CHOICE = "choice"
    MULTI_CHOICE = "multi_choice"
    BOOLEAN = "boolean"


__all__ = [
    "Section",
    "SECTION_LABELS",
    "WizardState",
    "ErrorType",
    "EventType",
    "FieldErrorCode",
    "FieldKind",
]
