from functools import lru_cache
from typing import Optional

from ..services.saved_recipes import SavedRecipeRepository
from ..services.sheets_client import SheetsClient
from .alarm_receiver import AlarmDeliveryHandler
from .alarm_scheduler import AlarmScheduler, AsyncioAlarmScheduler
from .alerts import AlertSink, WebSocketAlertHub
from .clock import Clock, now_millis
from .config import Settings, get_settings
from .navigation import NavigationController
from .preferences import PreferencesFile
from .session_store import SessionStore
from .state_machine import RecipeSessionController


class Runtime:
    """Everything that shares the session slot, wired together once per process."""

    def __init__(
        self,
        settings: Settings,
        clock: Clock = now_millis,
        alerts: Optional[AlertSink] = None,
        scheduler: Optional[AlarmScheduler] = None,
        sheets: Optional[SheetsClient] = None,
    ):
        self.settings = settings
        self.clock = clock
        self.store = SessionStore(PreferencesFile(settings.session_prefs_path), clock)
        self.alerts = alerts or WebSocketAlertHub(clock, settings.countdown_interval_seconds)
        self.delivery = AlarmDeliveryHandler(self.store, self.alerts)
        self.scheduler = scheduler or AsyncioAlarmScheduler(self.delivery.handle, clock)
        self.sessions = RecipeSessionController(
            self.store, self.scheduler, self.alerts, clock, settings.snooze_millis
        )
        self.navigation = NavigationController(self.store)
        self.saved_recipes = SavedRecipeRepository(
            settings.saved_recipes_path,
            sheets or SheetsClient(settings.default_spreadsheet_id, settings.sheets_timeout_seconds),
            clock,
        )


@lru_cache()
def get_runtime() -> Runtime:
    return Runtime(get_settings())
