import logging
import queue
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .session_store import SessionStore

log = logging.getLogger(__name__)


class Destination(str, Enum):
    SELECTOR = "selector"
    TASK = "task"


@dataclass(frozen=True)
class OpenTaskEvent:
    """Posted when the user taps a step notification."""

    step_index: int


@dataclass(frozen=True)
class NavigationDecision:
    destination: Destination
    step_index: Optional[int] = None
    from_notification: bool = False


class NavigationController:
    def __init__(self, store: SessionStore):
        self.store = store
        self.events: "queue.SimpleQueue[OpenTaskEvent]" = queue.SimpleQueue()

    def post(self, event: OpenTaskEvent) -> None:
        self.events.put(event)

    def _take(self) -> Optional[OpenTaskEvent]:
        # Only the newest tap matters; older ones are dropped with it.
        latest = None
        while True:
            try:
                latest = self.events.get_nowait()
            except queue.Empty:
                return latest

    def resolve(self) -> NavigationDecision:
        """Where the client should be right now. Consumes any pending tap."""
        event = self._take()
        session = self.store.restore()
        if session is None:
            if event is not None:
                log.info(f"Notification for step {event.step_index} tapped with no recipe in progress")
            return NavigationDecision(Destination.SELECTOR)
        step_index = session.next_step_index if session.is_waiting else session.current_step_index
        return NavigationDecision(Destination.TASK, step_index, from_notification=event is not None)
