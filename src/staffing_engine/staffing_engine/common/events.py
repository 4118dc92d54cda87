from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger("staffing_engine.events")


@dataclass(frozen=True)
class StaffingEvent:
    """Signal for collaborators (document generation, notifications, caches)."""

    kind: str
    shift_id: Optional[int] = None
    timesheet_id: Optional[int] = None
    actor_id: Optional[int] = None
    detail: dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[StaffingEvent], None]


class EventBus:
    """Fire-and-forget, in-process publisher.

    Events are published after the state change is saved; a failing subscriber
    is logged and never undoes or fails the transition.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def publish(self, event: StaffingEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    "event_subscriber_failed",
                    extra={
                        "event_kind": event.kind,
                        "shift_id": event.shift_id,
                        "timesheet_id": event.timesheet_id,
                    },
                )
