"""Client intake wizard and submission handler.

The package provides the two halves of a multi-section website-project
intake form:
- An intake wizard that tracks per-field validation state across six
  sections and only lets a complete form leave
- A submission handler that stores a client record and the full submission,
  then sends a confirmation email to the submitter and a notification email
  to the site operator
- A Flask application exposing the handler at ``POST /api/submit``

Basic usage:
    >>> from clientintake import IntakeWizard
    >>> wizard = IntakeWizard()
    >>> wizard.set_field("businessName", "Acme")
    >>> outcome = wizard.submit()
    >>> outcome.status
    'blocked'
"""

__version__ = "0.1.0"

VERSION = (0, 1, 0)

from clientintake.handler import SubmissionHandler
from clientintake.payload import IntakePayload
from clientintake.wizard import IntakeWizard

__all__ = [
    "__version__",
    "VERSION",
    "IntakePayload",
    "IntakeWizard",
    "SubmissionHandler",
]
