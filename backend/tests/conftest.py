from typing import Dict, List, Optional, Sequence

import pytest

from backend.app.core.alarm_scheduler import AlarmInfo, AlarmScheduler
from backend.app.core.alerts import AlertSink
from backend.app.core.preferences import PreferencesFile
from backend.app.core.session_store import SessionStore
from backend.app.core.state_machine import RecipeSessionController
from backend.app.models.recipe import Recipe, RecipeStep
from backend.app.models.saved_recipe import SpreadsheetLoadResult

HOUR = 3_600_000
MINUTE = 60_000
START = 1_700_000_000_000
URL = "https://docs.google.com/spreadsheets/d/abc/edit"


class FakeClock:
    def __init__(self, now: int = START):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


class FakeScheduler(AlarmScheduler):
    def __init__(self):
        self.alarms: Dict[int, AlarmInfo] = {}
        self.calls: List[tuple] = []

    def schedule(self, trigger_at_millis: int, step_index: int) -> None:
        self.calls.append(("schedule", trigger_at_millis, step_index))
        self.alarms[step_index] = AlarmInfo(trigger_at_millis, step_index)

    def cancel(self, step_index: int) -> None:
        self.calls.append(("cancel", step_index))
        self.alarms.pop(step_index, None)

    def pending(self) -> Dict[int, AlarmInfo]:
        return dict(self.alarms)


class FakeAlerts(AlertSink):
    def __init__(self, failing: Sequence[str] = ()):
        self.failing = set(failing)
        self.events: List[tuple] = []
        self.sessions: List[Optional[object]] = []

    def _record(self, name, *args):
        if name in self.failing:
            raise RuntimeError(f"{name} unavailable")
        self.events.append((name,) + args)

    async def play_sound(self) -> None:
        self._record("sound")

    async def vibrate(self, pattern=(0, 500, 200, 500)) -> None:
        self._record("vibrate", tuple(pattern))

    async def notify(self, title: str, text: str, step_index: int) -> None:
        self._record("notify", title, text, step_index)

    async def stop(self) -> None:
        self._record("stop")

    async def session_changed(self, session) -> None:
        self.sessions.append(session)

    def names(self) -> List[str]:
        return [e[0] for e in self.events]


class FakeSheets:
    def __init__(self, recipes):
        self.recipes = {r.name: r for r in recipes}

    async def load_recipes(self, url, tabs=None):
        names = tabs or list(self.recipes)
        return SpreadsheetLoadResult(file_name="abc", recipes=[self.recipes[n] for n in names])

    async def load_single_tab(self, url, tab):
        return self.recipes[tab]


def make_recipe(*durations: int, name: str = "Sourdough") -> Recipe:
    steps = tuple(
        RecipeStep(start_time="", title=f"Step {i}", description=f"Do thing {i}", duration_millis=d)
        for i, d in enumerate(durations)
    )
    return Recipe(id=name, name=name, steps=steps)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    return SessionStore(PreferencesFile(tmp_path / "recipe_session.json"), clock)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def alerts():
    return FakeAlerts()


@pytest.fixture
def controller(store, scheduler, alerts, clock):
    return RecipeSessionController(store, scheduler, alerts, clock, snooze_millis=MINUTE)
