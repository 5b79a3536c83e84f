"""
One-shot wake-up alarms keyed by the step index they lead to.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict

from .clock import Clock, now_millis

log = logging.getLogger(__name__)

# Longest single sleep; the wall clock is re-read after each slice.
MAX_SLEEP_SECONDS = 30.0


@dataclass(frozen=True)
class AlarmInfo:
    trigger_at_millis: int
    step_index: int


class AlarmScheduler(ABC):
    @abstractmethod
    def schedule(self, trigger_at_millis: int, step_index: int) -> None:
        """Arm (or re-arm) the alarm for ``step_index``."""

    @abstractmethod
    def cancel(self, step_index: int) -> None:
        """Disarm the alarm for ``step_index``; no-op when none is pending."""

    @abstractmethod
    def pending(self) -> Dict[int, AlarmInfo]: ...


class AsyncioAlarmScheduler(AlarmScheduler):
    def __init__(
        self,
        on_fire: Callable[[int], Awaitable[None]],
        clock: Clock = now_millis,
        max_sleep: float = MAX_SLEEP_SECONDS,
    ):
        self.on_fire = on_fire
        self.clock = clock
        self.max_sleep = max_sleep
        self.tasks: Dict[int, asyncio.Task] = {}
        self.alarms: Dict[int, AlarmInfo] = {}

    def schedule(self, trigger_at_millis: int, step_index: int) -> None:
        self.cancel(step_index)
        info = AlarmInfo(trigger_at_millis, step_index)
        self.alarms[step_index] = info
        self.tasks[step_index] = asyncio.create_task(self._wait_and_fire(info))
        log.info(f"Alarm for step {step_index} set for {trigger_at_millis}")

    def cancel(self, step_index: int) -> None:
        task = self.tasks.pop(step_index, None)
        self.alarms.pop(step_index, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            log.info(f"Alarm for step {step_index} cancelled")

    def pending(self) -> Dict[int, AlarmInfo]:
        return dict(self.alarms)

    async def cancel_all(self):
        for task in self.tasks.values():
            task.cancel()
        self.tasks.clear()
        self.alarms.clear()

    async def _wait_and_fire(self, info: AlarmInfo):
        while True:
            remaining = info.trigger_at_millis - self.clock()
            if remaining <= 0:
                break
            await asyncio.sleep(min(remaining / 1000, self.max_sleep))

        if self.alarms.get(info.step_index) is info:
            self.tasks.pop(info.step_index, None)
            self.alarms.pop(info.step_index, None)
        log.info(f"Alarm for step {info.step_index} fired")
        try:
            await self.on_fire(info.step_index)
        except Exception:
            log.exception(f"Alarm delivery for step {info.step_index} failed")
