"""
Durable slot for the one active recipe session.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from ..models.session import RecipeSession, SessionRecord
from .clock import Clock, now_millis
from .preferences import PreferencesFile

log = logging.getLogger(__name__)

SESSION_KEY = "session"


class SessionStore:
    def __init__(self, prefs: PreferencesFile, clock: Clock = now_millis):
        self.prefs = prefs
        self.clock = clock

    def save(self, session: RecipeSession) -> None:
        self.prefs.put(SESSION_KEY, session.to_record().to_json_dict())

    def clear(self) -> None:
        self.prefs.remove(SESSION_KEY)

    def restore_raw(self) -> Optional[RecipeSession]:
        """Stored session exactly as written, or None if absent or unreadable."""
        try:
            payload = self.prefs.get(SESSION_KEY)
        except ValueError as e:
            log.warning(f"Session store unreadable, treating as no session: {e}")
            return None
        if payload is None:
            return None
        try:
            return RecipeSession.from_record(SessionRecord.model_validate(payload))
        except (ValidationError, ValueError, TypeError) as e:
            log.warning(f"Discarding invalid session record: {e}")
            return None

    def restore(self) -> Optional[RecipeSession]:
        """Stored session, caught up with the wall clock.

        A wait whose trigger time has passed is resolved the way the alarm
        would have left it had the app been running, and the result is saved.
        """
        session = self.restore_raw()
        if session is None:
            return None
        if 0 < session.next_alarm_at_millis <= self.clock():
            if session.has_next_step:
                log.info(f"Alarm for step {session.next_step_index} elapsed while away, moving session forward")
                session.current_step_index = session.next_step_index
            session.next_alarm_at_millis = 0
            self.save(session)
        return session
