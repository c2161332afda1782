"""Event records and dispatch for the client intake flow.

The wizard records an event for every lifecycle transition and section
change. The submission handler emits events as a submission is stored and
as each email is sent or fails. ``log_event`` writes them to the log.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
import json
import logging
from typing import Any, Callable, Dict, List, Optional
import uuid

from dateutil import parser as date_parser

from clientintake.types import EventType

logger = logging.getLogger(__name__)


def new_event_id() -> str:
    return f"evt_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class IntakeEvent:
    """Something that happened to a wizard session or a stored client.

    Attributes:
        event_id: "evt_" followed by 16 hex characters
        type: What happened
        subject_id: Wizard session id, or client id for handler events
        ts: When it happened (timezone-aware, UTC)
        state: Wizard lifecycle state after the event, if any
        payload: Extra detail, such as sections or the email recipient
    """
    event_id: str
    type: EventType
    subject_id: str
    ts: datetime
    state: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not isinstance(self.type, EventType):
            object.__setattr__(self, "type", EventType(self.type))

    def to_dict(self) -> Dict[str, Any]:
        """camelCase mapping with an ISO 8601 timestamp; empty extras omitted."""
        data: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "subjectId": self.subject_id,
            "ts": self.ts.isoformat(),
        }
        if self.state is not None:
            data["state"] = self.state
        if self.payload is not None:
            data["payload"] = self.payload
        return data

    def to_jsonl(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IntakeEvent":
        return cls(
            event_id=data["eventId"],
            type=data["type"],
            subject_id=data["subjectId"],
            ts=date_parser.isoparse(data["ts"]),
            state=data.get("state"),
            payload=data.get("payload"),
        )


EventListener = Callable[[IntakeEvent], None]

# Subscription key for listeners that receive every event
_ALL = None


class EventEmitter:
    """Synchronous publish/subscribe hub for intake events.

    Listeners subscribe to one event type with ``on`` or to everything with
    ``on_any``. ``emit`` calls the type's listeners first, then the
    catch-all ones, each in subscription order. A listener that raises is
    logged and skipped so that it cannot break a submission.

    Examples:
        >>> emitter = EventEmitter()
        >>> emitter.on(EventType.CLIENT_CREATED, print)
        >>> emitter.on_any(log_event)
        >>> emitter.listener_count()
        2
    """

    def __init__(self):
        self._subscriptions: Dict[Optional[EventType], List[EventListener]] = defaultdict(list)

    def on(self, event_type: EventType, listener: EventListener) -> None:
        self._subscriptions[event_type].append(listener)

    def on_any(self, listener: EventListener) -> None:
        self._subscriptions[_ALL].append(listener)

    def emit(self, event: IntakeEvent) -> None:
        targets = self._subscriptions.get(event.type, []) + self._subscriptions.get(_ALL, [])
        for listener in targets:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener %r failed on %s", listener, event.type.value)

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Listeners for ``event_type``, or all subscriptions when omitted."""
        if event_type is not None:
            return len(self._subscriptions.get(event_type, []))
        return sum(len(listeners) for listeners in self._subscriptions.values())


def log_event(event: IntakeEvent) -> None:
    """Wildcard listener that writes each event to the module logger."""
    logger.debug("%s %s", event.type.value, event.to_jsonl())


__all__ = [
    "IntakeEvent",
    "EventListener",
    "EventEmitter",
    "log_event",
    "new_event_id",
]
