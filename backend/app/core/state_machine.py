import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models.recipe import Recipe
from ..models.session import RecipeSession
from .alarm_scheduler import AlarmScheduler
from .alerts import AlertSink
from .clock import Clock, now_millis
from .session_store import SessionStore

log = logging.getLogger(__name__)


class SessionError(Exception):
    pass


class NoActiveSessionError(SessionError):
    pass


class InvalidTransitionError(SessionError):
    pass


class Action(str, Enum):
    ADVANCE = "advance"
    FINISH = "finish"
    START_EARLY = "start_early"
    GO_BACK = "go_back"
    SNOOZE = "snooze"
    CANCEL = "cancel"


@dataclass(frozen=True)
class CompletedRecipe:
    name: str
    saved_recipe_id: Optional[int] = None


class RecipeSessionController:
    """
    Walks the user through a recipe one step at a time.

    The stored session is the only state: every call restores it fresh,
    writes the result back, and only then arms or cancels alarms.
    """

    def __init__(
        self,
        store: SessionStore,
        scheduler: AlarmScheduler,
        alerts: AlertSink,
        clock: Clock = now_millis,
        snooze_millis: int = 60_000,
    ):
        self.store = store
        self.scheduler = scheduler
        self.alerts = alerts
        self.clock = clock
        self.snooze_millis = snooze_millis

    def current(self) -> Optional[RecipeSession]:
        return self.store.restore()

    def _require(self) -> RecipeSession:
        # Actions apply to the session as the user last saw it, so an elapsed
        # wait is not settled here: snooze and start still work once it rang.
        session = self.store.restore_raw()
        if session is None:
            raise NoActiveSessionError("No recipe in progress")
        return session

    def _arm(self, trigger_at_millis: int, step_index: int) -> None:
        # The stored trigger time still lets restore() catch up if this fails.
        try:
            self.scheduler.schedule(trigger_at_millis, step_index)
        except Exception:
            log.exception(f"Could not schedule alarm for step {step_index}")

    def _disarm(self, step_index: int) -> None:
        try:
            self.scheduler.cancel(step_index)
        except Exception:
            log.exception(f"Could not cancel alarm for step {step_index}")

    async def _changed(self, session: Optional[RecipeSession]) -> None:
        try:
            await self.alerts.session_changed(session)
        except Exception as e:
            log.warning(f"Session update not delivered: {e}")

    async def _silence(self) -> None:
        try:
            await self.alerts.stop()
        except Exception as e:
            log.warning(f"Could not stop alert: {e}")

    async def start(self, recipe: Recipe, saved_recipe_id: Optional[int] = None) -> RecipeSession:
        if not recipe.steps:
            raise InvalidTransitionError(f"Recipe '{recipe.name}' has no steps")
        previous = self.store.restore_raw()
        session = RecipeSession(recipe=recipe, saved_recipe_id=saved_recipe_id)
        self.store.save(session)
        if previous is not None and previous.is_waiting:
            self._disarm(previous.next_step_index)
        log.info(f"Started '{recipe.name}' ({len(recipe.steps)} steps)")
        await self._changed(session)
        return session

    async def advance(self) -> RecipeSession:
        """Done with the current step: wait for the next one, or show it right away."""
        session = self._require()
        if session.is_waiting:
            raise InvalidTransitionError("Already waiting for the next step")
        if not session.has_next_step:
            log.info("Last step reached, nothing to advance to")
            return session

        next_index = session.next_step_index
        wait = session.next_step.duration_millis
        if wait == 0:
            session.current_step_index = next_index
            self.store.save(session)
            log.info(f"Step {next_index} has no wait, showing it now")
        else:
            trigger_at = self.clock() + wait
            session.next_alarm_at_millis = trigger_at
            self.store.save(session)
            self._arm(trigger_at, next_index)
            log.info(f"Waiting {wait} ms for step {next_index}")
        await self._changed(session)
        return session

    async def finish(self) -> CompletedRecipe:
        session = self._require()
        if not session.is_last_step:
            raise InvalidTransitionError("Recipe still has steps left")
        self.store.clear()
        if session.is_waiting:
            self._disarm(session.next_step_index)
        await self._silence()
        log.info(f"Finished '{session.recipe.name}'")
        await self._changed(None)
        return CompletedRecipe(name=session.recipe.name, saved_recipe_id=session.saved_recipe_id)

    async def start_early(self) -> RecipeSession:
        """Stop waiting and show the next step now."""
        session = self._require()
        if not session.is_waiting:
            raise InvalidTransitionError("Not waiting for a step")
        next_index = session.next_step_index
        if session.has_next_step:
            session.current_step_index = next_index
        session.next_alarm_at_millis = 0
        self.store.save(session)
        self._disarm(next_index)
        await self._silence()
        await self._changed(session)
        return session

    async def go_back(self) -> RecipeSession:
        session = self._require()
        if session.is_waiting:
            pending_index = session.next_step_index
            session.current_step_index = max(0, session.current_step_index - 1)
            session.next_alarm_at_millis = 0
            self.store.save(session)
            self._disarm(pending_index)
            await self._silence()
        else:
            if session.current_step_index == 0:
                raise InvalidTransitionError("Already at the first step")
            session.current_step_index -= 1
            self.store.save(session)
        await self._changed(session)
        return session

    async def snooze(self, extra_millis: Optional[int] = None) -> RecipeSession:
        session = self._require()
        if not session.is_waiting:
            raise InvalidTransitionError("Not waiting for a step")
        extra = self.snooze_millis if extra_millis is None else extra_millis
        if extra <= 0:
            raise InvalidTransitionError("Snooze must add a positive amount of time")
        trigger_at = max(self.clock(), session.next_alarm_at_millis) + extra
        session.next_alarm_at_millis = trigger_at
        self.store.save(session)
        self._disarm(session.next_step_index)
        self._arm(trigger_at, session.next_step_index)
        await self._silence()
        await self._changed(session)
        return session

    async def cancel(self) -> Optional[RecipeSession]:
        """Abandon the recipe. Returns the cancelled session, if there was one."""
        session = self.store.restore_raw()
        self.store.clear()
        if session is not None:
            self._disarm(session.next_step_index)
            log.info(f"Cancelled '{session.recipe.name}'")
        await self._silence()
        await self._changed(None)
        return session

    async def handle(self, action: Action, extra_millis: Optional[int] = None):
        if action == Action.ADVANCE:
            return await self.advance()
        elif action == Action.FINISH:
            return await self.finish()
        elif action == Action.START_EARLY:
            return await self.start_early()
        elif action == Action.GO_BACK:
            return await self.go_back()
        elif action == Action.SNOOZE:
            return await self.snooze(extra_millis)
        elif action == Action.CANCEL:
            return await self.cancel()
        raise InvalidTransitionError(f"Unknown action {action!r}")

    def resume_alarms(self) -> Optional[RecipeSession]:
        """Re-arm the pending alarm after a restart; elapsed waits are settled by restore()."""
        session = self.store.restore()
        if session is not None and session.is_waiting and session.has_next_step:
            self._arm(session.next_alarm_at_millis, session.next_step_index)
        return session
