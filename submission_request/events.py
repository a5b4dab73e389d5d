"""Event stream for the DocumentStore.

Every lifecycle change and every completed store operation emits a typed
StoreEvent. Views subscribe to the emitter to re-render when the store
changes; tests use it to assert on the exact order of lifecycle phases.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .types import EventType, LifecycleStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreEvent:
    """A single event emitted by a DocumentStore.

    Attributes:
        event_id: Unique event identifier (e.g., "evt_3f2a...")
        type: Event type from EventType enum
        document_id: ID of the document at the time of the event
        ts: UTC timestamp when the event occurred
        lifecycle: Store lifecycle status after this event
        payload: Optional event-specific data (e.g., transition, error code)

    Examples:
        >>> event = StoreEvent.create(
        ...     EventType.DOCUMENT_LOADED, document_id="new", lifecycle=LifecycleStatus.LOADED
        ... )
        >>> event.type
        <EventType.DOCUMENT_LOADED: 'document.loaded'>
    """
    event_id: str
    type: EventType
    document_id: Optional[str]
    ts: datetime
    lifecycle: LifecycleStatus
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        """Normalize string enum values."""
        if isinstance(self.type, str) and not isinstance(self.type, EventType):
            object.__setattr__(self, "type", EventType(self.type))
        if isinstance(self.lifecycle, str) and not isinstance(self.lifecycle, LifecycleStatus):
            object.__setattr__(self, "lifecycle", LifecycleStatus(self.lifecycle))

    @classmethod
    def create(
        cls,
        type: EventType,
        document_id: Optional[str],
        lifecycle: LifecycleStatus,
        payload: Optional[Dict[str, Any]] = None,
    ) -> "StoreEvent":
        """Build an event with a fresh id and the current UTC time."""
        return cls(
            event_id=f"evt_{uuid.uuid4().hex[:16]}",
            type=type,
            document_id=document_id,
            ts=datetime.now(timezone.utc),
            lifecycle=lifecycle,
            payload=payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "documentId": self.document_id,
            "ts": self.ts.isoformat(),
            "lifecycle": self.lifecycle.value,
        }
        if self.payload is not None:
            result["payload"] = self.payload
        return result

    def to_jsonl(self) -> str:
        """Single-line JSON suitable for appending to a JSONL log."""
        return json.dumps(self.to_dict(), separators=(',', ':'))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreEvent":
        ts = datetime.fromisoformat(data["ts"].replace('Z', '+00:00'))
        return cls(
            event_id=data["eventId"],
            type=EventType(data["type"]),
            document_id=data.get("documentId"),
            ts=ts,
            lifecycle=LifecycleStatus(data["lifecycle"]),
            payload=data.get("payload"),
        )


EventListener = Callable[[StoreEvent], None]
"""Type alias for event listener callbacks.

Listeners are called synchronously when events are emitted.
"""


class EventEmitter:
    """Dispatches store events to registered listeners.

    - Type-specific subscriptions (listen to specific event types)
    - Wildcard subscriptions (listen to all events)
    - Synchronous dispatch in registration order
    - Error isolation: a failing listener is logged and skipped

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(EventType.DOCUMENT_SAVED, seen.append)
        >>> emitter.listener_count(EventType.DOCUMENT_SAVED)
        1
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        self._any_listeners.append(listener)

    def off(self, event_type: EventType, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: StoreEvent) -> None:
        """Dispatch an event to type-specific listeners, then wildcard ones.

        A listener that raises does not prevent the others from running.
        """
        listeners = list(self._listeners.get(event.type, [])) + list(self._any_listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for %s", event.type.value)

    def clear(self) -> None:
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Count listeners for one type, or all listeners when None."""
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(v) for v in self._listeners.values())


__all__ = [
    "StoreEvent",
    "EventListener",
    "EventEmitter",
]
