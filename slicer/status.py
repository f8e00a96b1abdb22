"""Status events published by the worker and drained by the caller."""

import logging
import queue
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional


class EventKind(Enum):
    STARTED = "started"
    PROGRESS = "progress"
    PATCHING = "patching"
    FINISHED = "finished"
    CANCELLED = "cancelled"
    ERROR = "error"


TERMINAL_KINDS = (EventKind.FINISHED, EventKind.CANCELLED, EventKind.ERROR)


@dataclass(frozen=True)
class StatusEvent:
    """Immutable snapshot of run progress."""
    kind: EventKind
    message: str
    kept_frames: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


UpdateCallback = Callable[[str], None]


class StatusChannel:
    """
    One-way queue from the worker to the caller.

    The worker publishes events; the caller drains them at its own pace.
    An optional callback receives each message text as it is published.
    """

    def __init__(self, on_update: Optional[UpdateCallback] = None):
        self._queue: "queue.Queue[StatusEvent]" = queue.Queue()
        self._on_update = on_update
        self.last_message = ""

    def publish(self, kind: EventKind, message: str, kept_frames: int = 0) -> StatusEvent:
        event = StatusEvent(kind, message, kept_frames)
        self.last_message = message
        self._queue.put(event)
        if self._on_update is not None:
            try:
                self._on_update(message)
            except Exception:
                logging.exception("Status callback raised")
        return event

    def get(self, timeout: Optional[float] = None) -> Optional[StatusEvent]:
        """Wait up to timeout seconds for the next event; None if nothing arrived."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[StatusEvent]:
        """Return every pending event without blocking."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def __iter__(self) -> Iterator[StatusEvent]:
        return iter(self.drain())
