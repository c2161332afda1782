"""Lifecycle state machine for an intake wizard session.

The wizard moves between a small set of states as the user edits, attempts
to submit, and hears back from the submission endpoint:

    editing     -> incomplete | submitting
    incomplete  -> editing | submitting
    submitting  -> submitted | failed
    failed      -> editing | submitting | incomplete
    submitted   (terminal)

Every successful transition records an ``IntakeEvent`` and, when an emitter
is attached, dispatches it.

Usage:
    >>> from clientintake.state_machine import WizardStateMachine
    >>> from clientintake.types import WizardState
    >>> sm = WizardStateMachine(session_id="wiz_123")
    >>> sm.state
    <WizardState.EDITING: 'editing'>
    >>> sm.transition_to(WizardState.SUBMITTING)
    >>> sm.state
    <WizardState.SUBMITTING: 'submitting'>
    >>> len(sm.get_events())
    1
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from clientintake.events import EventEmitter, IntakeEvent, new_event_id
from clientintake.types import EventType, WizardState


class InvalidStateTransitionError(Exception):
    """Raised when attempting a transition the lifecycle does not allow.

    Attributes:
        current_state: The state before the attempted transition
        target_state: The state that was attempted
    """

    def __init__(self, current_state: WizardState, target_state: WizardState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


# Event recorded when the wizard enters each state
STATE_TO_EVENT_TYPE: Dict[WizardState, EventType] = {
    WizardState.EDITING: EventType.FIELD_UPDATED,
    WizardState.INCOMPLETE: EventType.VALIDATION_FAILED,
    WizardState.SUBMITTING: EventType.SUBMISSION_SENT,
    WizardState.SUBMITTED: EventType.SUBMISSION_ACCEPTED,
    WizardState.FAILED: EventType.SUBMISSION_FAILED,
}


VALID_TRANSITIONS: Dict[WizardState, Set[WizardState]] = {
    WizardState.EDITING: {
        WizardState.INCOMPLETE,
        WizardState.SUBMITTING,
    },
    WizardState.INCOMPLETE: {
        WizardState.EDITING,
        WizardState.SUBMITTING,
    },
    WizardState.SUBMITTING: {
        WizardState.SUBMITTED,
        WizardState.FAILED,
    },
    WizardState.FAILED: {
        WizardState.EDITING,
        WizardState.SUBMITTING,
        WizardState.INCOMPLETE,
    },
    # Terminal
    WizardState.SUBMITTED: set(),
}


@dataclass
class WizardStateMachine:
    """Tracks the lifecycle state of one wizard session.

    Attributes:
        session_id: Identifier of the wizard session
        state: Current lifecycle state
        emitter: Optional emitter that receives each transition event

    Examples:
        >>> sm = WizardStateMachine(session_id="wiz_123")
        >>> sm.can_transition_to(WizardState.SUBMITTED)
        False
        >>> sm.can_transition_to(WizardState.INCOMPLETE)
        True
    """

    session_id: str
    state: WizardState = WizardState.EDITING
    emitter: Optional[EventEmitter] = field(default=None, repr=False)
    _events: List[IntakeEvent] = field(default_factory=list, init=False, repr=False)

    def can_transition_to(self, target_state: WizardState) -> bool:
        """Check if transition to target state is valid."""
        return target_state in VALID_TRANSITIONS.get(self.state, set())

    def transition_to(
        self,
        target_state: WizardState,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Move to ``target_state`` and record the transition event.

        Args:
            target_state: The state to transition to
            payload: Optional extra data merged into the event payload

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_state):
            allowed = sorted(s.value for s in VALID_TRANSITIONS[self.state])
            if allowed:
                reason = f"allowed from here: {', '.join(allowed)}"
            else:
                reason = f"'{self.state.value}' is a terminal state"
            raise InvalidStateTransitionError(
                current_state=self.state,
                target_state=target_state,
                message=(
                    f"Wizard {self.session_id} cannot move from "
                    f"'{self.state.value}' to '{target_state.value}' ({reason})"
                ),
            )

        previous = self.state
        self.state = target_state
        self._emit_event(target_state, previous, payload)

    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self.state]

    def _emit_event(
        self,
        new_state: WizardState,
        old_state: WizardState,
        extra: Optional[Dict[str, Any]],
    ) -> None:
        payload: Dict[str, Any] = {"from_state": old_state.value, "to_state": new_state.value}
        if extra:
            payload.update(extra)

        event = IntakeEvent(
            event_id=new_event_id(),
            type=STATE_TO_EVENT_TYPE[new_state],
            subject_id=self.session_id,
            ts=datetime.now(timezone.utc),
            state=new_state.value,
            payload=payload,
        )
        self.record(event)

    def record(self, event: IntakeEvent) -> None:
        """Append an event to this session's history and dispatch it."""
        self._events.append(event)
        if self.emitter is not None:
            self.emitter.emit(event)

    def get_events(self) -> List[IntakeEvent]:
        """All events recorded by this session, oldest first."""
        return list(self._events)


__all__ = [
    "WizardStateMachine",
    "InvalidStateTransitionError",
    "STATE_TO_EVENT_TYPE",
    "VALID_TRANSITIONS",
]
