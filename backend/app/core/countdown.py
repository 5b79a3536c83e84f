import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .clock import Clock, now_millis

log = logging.getLogger(__name__)


def format_remaining(millis: int) -> str:
    """``MM:SS`` (or ``H:MM:SS`` past an hour), prefixed with ``-`` when overdue."""
    total_seconds = abs(int(millis / 1000))
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    sign = "-" if millis < 0 else ""
    if hours > 0:
        return f"{sign}{hours}:{minutes:02d}:{seconds:02d}"
    return f"{sign}{minutes:02d}:{seconds:02d}"


class Countdown:
    """Display-only ticker towards a trigger time. Never touches the session."""

    def __init__(
        self,
        on_tick: Callable[[int], Awaitable[None]],
        clock: Clock = now_millis,
        interval: float = 1.0,
    ):
        self.on_tick = on_tick
        self.clock = clock
        self.interval = interval
        self.trigger_at_millis = 0
        self.task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def retarget(self, trigger_at_millis: int) -> None:
        """Restart towards a new trigger; 0 stops the countdown."""
        if trigger_at_millis == self.trigger_at_millis and (self.running or trigger_at_millis == 0):
            return
        self.cancel()
        self.trigger_at_millis = trigger_at_millis
        if trigger_at_millis:
            self.task = asyncio.create_task(self._run(trigger_at_millis))

    def cancel(self) -> None:
        if self.task is not None:
            self.task.cancel()
            self.task = None
        self.trigger_at_millis = 0

    async def _run(self, trigger_at_millis: int):
        while True:
            try:
                await self.on_tick(trigger_at_millis - self.clock())
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning(f"Countdown tick failed, stopping: {e}")
                return
            await asyncio.sleep(self.interval)
