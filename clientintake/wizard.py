"""Intake wizard: form state and validation across the six sections.

The wizard owns one explicit state object: the active section, the sections
currently known to hold a missing or invalid field, the full value mapping,
per-field errors and the lifecycle state machine. State only changes through
the operations below: navigation, field edits and ``submit``.

On ``submit`` the wizard:

1. recomputes missing required fields and invalid fields,
2. groups them by owning section,
3. if any exist, switches to the first offending section, marks every
   offending section and stops without calling the transport,
4. otherwise serializes the payload and hands it to the transport; an
   acknowledgement moves the wizard to the confirmation view.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
import uuid

from clientintake.errors import FieldError, IntakeError, UnknownFieldError
from clientintake.events import EventEmitter, IntakeEvent, new_event_id
from clientintake.payload import IntakePayload
from clientintake.schema import FIELDS_BY_NAME, WIZARD_SCHEMA, fields_in, initial_values
from clientintake.state_machine import InvalidStateTransitionError, WizardStateMachine
from clientintake.types import EventType, FieldKind, Section, WizardState
from clientintake.validation import (
    ValidationEngine,
    group_by_section,
    is_blank,
    missing_fields,
)

logger = logging.getLogger(__name__)

Transport = Callable[[Dict[str, Any]], Mapping[str, Any]]
"""Delivers a serialized payload to the submission endpoint.

Returns the endpoint's JSON response: ``{"success": True, "id": ...}`` on
acknowledgement, or a failure envelope.
"""

CONFIRMATION_PATH = "/thank-you"
FAILURE_MESSAGE = "Your form couldn't be submitted. Please try again later."


@dataclass(frozen=True)
class WizardValidation:
    """Outcome of validating the wizard's current values.

    Attributes:
        missing: Required fields that are blank
        invalid: Filled fields that break a per-field rule
        by_section: All of the above grouped by owning section, in display order
    """
    missing: List[FieldError]
    invalid: List[FieldError]
    by_section: Dict[Section, List[FieldError]]

    @property
    def is_valid(self) -> bool:
        return not self.by_section

    @property
    def sections(self) -> List[Section]:
        return list(self.by_section)

    @property
    def errors(self) -> List[FieldError]:
        return self.missing + self.invalid


@dataclass(frozen=True)
class SubmitOutcome:
    """What happened when the user pressed submit.

    Attributes:
        status: "blocked", "submitted" or "failed"
        message: Text to show the user
        incomplete_sections: Sections flagged by validation (blocked only)
        client_id: Identifier returned by the endpoint (submitted only)
        redirect_to: Confirmation view path (submitted only)
        details: Failure detail from the endpoint or transport (failed only)
    """
    status: str
    message: str
    incomplete_sections: List[Section] = field(default_factory=list)
    client_id: Optional[str] = None
    redirect_to: Optional[str] = None
    details: Optional[str] = None


class IntakeWizard:
    """Multi-section intake form state.

    Examples:
        >>> wizard = IntakeWizard()
        >>> wizard.active_section
        <Section.BASIC: 'basic'>
        >>> wizard.is_visible("existingDomain")
        False
        >>> wizard.set_field("domainStatus", "owned")
        >>> wizard.is_visible("existingDomain")
        True
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        emitter: Optional[EventEmitter] = None,
        session_id: Optional[str] = None,
        values: Optional[Mapping[str, Any]] = None,
    ):
        self.transport = transport
        self.session_id = session_id or f"wiz_{uuid.uuid4().hex[:16]}"
        self.active_section = Section.BASIC
        self.sections_with_errors: List[Section] = []
        self.field_errors: Dict[str, FieldError] = {}
        self.values: Dict[str, Any] = initial_values()
        self._machine = WizardStateMachine(session_id=self.session_id, emitter=emitter)
        self._engine = ValidationEngine(WIZARD_SCHEMA)
        for name, value in (values or {}).items():
            self._store_value(name, value)

    @property
    def state(self) -> WizardState:
        return self._machine.state

    @property
    def events(self) -> List[IntakeEvent]:
        return self._machine.get_events()

    # Navigation

    def go_to(self, section: Union[Section, str]) -> None:
        """Make ``section`` the active section."""
        section = Section(section)
        if section == self.active_section:
            return
        previous = self.active_section
        self.active_section = section
        self._record(
            EventType.SECTION_CHANGED,
            {"from_section": previous.value, "to_section": section.value},
        )

    def next_section(self) -> Section:
        """Advance to the next section; stays on the last one."""
        order = Section.ordered()
        index = order.index(self.active_section)
        self.go_to(order[min(index + 1, len(order) - 1)])
        return self.active_section

    def previous_section(self) -> Section:
        """Go back one section; stays on the first one."""
        order = Section.ordered()
        index = order.index(self.active_section)
        self.go_to(order[max(index - 1, 0)])
        return self.active_section

    # Field edits

    def set_field(self, name: str, value: Any) -> None:
        """Set a field value.

        Clears any recorded error on the field, and unflags its section once
        none of the section's recorded errors remain.

        Raises:
            UnknownFieldError: If ``name`` is not an intake field
            ValueError: If a multi-choice value holds an unknown option
        """
        self._ensure_open(WizardState.EDITING)
        self._store_value(name, value)
        if self.state != WizardState.EDITING:
            self._machine.transition_to(WizardState.EDITING, {"field": name})
        self._clear_error(name)

    def toggle_option(self, name: str, option: str, checked: bool) -> None:
        """Check or uncheck one option of a multi-choice field."""
        spec = self._spec(name)
        if spec.kind != FieldKind.MULTI_CHOICE:
            raise ValueError(f"Field {name!r} is not a multi-choice field")
        selected = [o for o in self.values[name] if o != option]
        if checked:
            selected.append(option)
        self.set_field(name, selected)

    def is_visible(self, name: str) -> bool:
        """Whether a field is currently shown.

        Conditional sub-fields are shown only while their governing field
        holds a matching value.
        """
        spec = self._spec(name)
        if spec.shown_when is None:
            return True
        governing, values = spec.shown_when
        return self.values.get(governing) in values

    def visible_fields(self, section: Union[Section, str]) -> List[str]:
        """Names of the fields currently shown in ``section``."""
        return [spec.name for spec in fields_in(Section(section)) if self.is_visible(spec.name)]

    # Validation and submission

    def validate(self) -> WizardValidation:
        """Recompute missing and invalid fields without changing state."""
        missing = missing_fields(self.values)
        missing_names = {error.path for error in missing}

        present = {
            name: value
            for name, value in self.values.items()
            if name not in missing_names and not is_blank(value) and self.is_visible(name)
        }
        result = self._engine.validate(present)
        invalid = [self._with_field_message(error) for error in result.errors]

        return WizardValidation(
            missing=missing,
            invalid=invalid,
            by_section=group_by_section(missing + invalid),
        )

    def serialize(self) -> Dict[str, Any]:
        """Payload mapping sent to the endpoint; hidden sub-fields are dropped."""
        return IntakePayload.from_dict(self.values).pruned().to_dict()

    def submit(self) -> SubmitOutcome:
        """Attempt to submit the form.

        Raises:
            InvalidStateTransitionError: If the form was already submitted
            IntakeError: If validation passes but no transport is configured
        """
        self._ensure_open(WizardState.SUBMITTING)
        report = self.validate()
        self.field_errors = {}
        for error in report.errors:
            self.field_errors.setdefault(error.path, error)
        self.sections_with_errors = report.sections

        if not report.is_valid:
            return self._block(report)

        if self.transport is None:
            raise IntakeError("No transport configured for the intake wizard")

        self._record(EventType.VALIDATION_PASSED)
        self._machine.transition_to(WizardState.SUBMITTING)
        try:
            response = self.transport(self.serialize())
        except Exception as exc:
            logger.exception("Submission transport failed for %s", self.session_id)
            return self._fail(str(exc))

        if not response.get("success"):
            return self._fail(str(response.get("details") or response.get("error") or ""))

        client_id = response.get("id")
        self._machine.transition_to(WizardState.SUBMITTED, {"client_id": client_id})
        logger.info("Wizard %s submitted as client %s", self.session_id, client_id)
        return SubmitOutcome(
            status="submitted",
            message="We've received your information and will be in touch soon.",
            client_id=client_id,
            redirect_to=CONFIRMATION_PATH,
        )

    # Internals

    def _ensure_open(self, target: WizardState) -> None:
        if self._machine.is_terminal():
            raise InvalidStateTransitionError(
                current_state=self.state,
                target_state=target,
                message="The intake form has already been submitted.",
            )

    def _block(self, report: WizardValidation) -> SubmitOutcome:
        sections = report.sections
        self.go_to(sections[0])
        payload = {"sections": [s.value for s in sections]}
        if self.state == WizardState.INCOMPLETE:
            self._record(EventType.VALIDATION_FAILED, payload)
        else:
            self._machine.transition_to(WizardState.INCOMPLETE, payload)
        labels = ", ".join(section.label for section in sections)
        return SubmitOutcome(
            status="blocked",
            message=f"Please complete the following section(s): {labels}",
            incomplete_sections=sections,
        )

    def _fail(self, details: str) -> SubmitOutcome:
        self._machine.transition_to(WizardState.FAILED, {"details": details})
        return SubmitOutcome(status="failed", message=FAILURE_MESSAGE, details=details)

    def _spec(self, name: str):
        try:
            return FIELDS_BY_NAME[name]
        except KeyError:
            raise UnknownFieldError(name) from None

    def _store_value(self, name: str, value: Any) -> None:
        spec = self._spec(name)
        if spec.kind == FieldKind.MULTI_CHOICE:
            options = list(value or [])
            unknown = [o for o in options if o not in (spec.choices or ())]
            if unknown:
                raise ValueError(f"Unknown option(s) for {name!r}: {unknown}")
            value = list(dict.fromkeys(options))
        elif spec.kind == FieldKind.BOOLEAN:
            value = bool(value)
        self.values[name] = value

    def _clear_error(self, name: str) -> None:
        if self.field_errors.pop(name, None) is None:
            return
        section = FIELDS_BY_NAME[name].section
        if not any(FIELDS_BY_NAME[path].section == section for path in self.field_errors):
            self.sections_with_errors = [s for s in self.sections_with_errors if s != section]

    def _with_field_message(self, error: FieldError) -> FieldError:
        message = FIELDS_BY_NAME[error.path].error_message
        if not message:
            return error
        return FieldError(
            path=error.path,
            code=error.code,
            message=message,
            expected=error.expected,
            received=error.received,
        )

    def _record(self, event_type: EventType, payload: Optional[Dict[str, Any]] = None) -> None:
        self._machine.record(
            IntakeEvent(
                event_id=new_event_id(),
                type=event_type,
                subject_id=self.session_id,
                ts=datetime.now(timezone.utc),
                state=self.state.value,
                payload=payload,
            )
        )


__all__ = [
    "IntakeWizard",
    "SubmitOutcome",
    "Transport",
    "WizardValidation",
    "CONFIRMATION_PATH",
]
