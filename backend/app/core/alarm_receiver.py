import logging

from .alerts import VIBRATION_PATTERN, AlertSink
from .session_store import SessionStore

log = logging.getLogger(__name__)


class AlarmDeliveryHandler:
    """
    Runs when a step's wait is over, whether or not a client is looking.

    The session is left in the waiting state; its countdown runs negative
    until the user starts the next step.
    """

    def __init__(self, store: SessionStore, alerts: AlertSink):
        self.store = store
        self.alerts = alerts

    async def handle(self, step_index: int) -> bool:
        """Alert the user that ``step_index`` is due. Returns False for stale alarms."""
        if step_index < 0:
            return False
        session = self.store.restore_raw()
        if session is None:
            log.warning(f"Alarm for step {step_index} fired with no active session, ignoring")
            return False
        if step_index >= len(session.steps):
            log.warning(f"Alarm for step {step_index} is out of range for '{session.recipe.name}', ignoring")
            return False

        step = session.steps[step_index]

        try:
            await self.alerts.play_sound()
        except Exception as e:
            log.warning(f"Alarm sound failed: {e}")

        try:
            await self.alerts.vibrate(VIBRATION_PATTERN)
        except Exception as e:
            log.warning(f"Vibration failed: {e}")

        try:
            await self.alerts.notify(step.title, step.description, step_index)
        except Exception as e:
            log.warning(f"Notification for step {step_index} failed: {e}")

        await self.alerts.session_changed(session)
        return True
