import asyncio

from backend.app.core.alarm_scheduler import AsyncioAlarmScheduler
from backend.app.core.clock import now_millis


def test_alarm_fires_with_step_index():
    fired = []

    async def on_fire(step_index):
        fired.append((step_index, now_millis()))

    async def run():
        scheduler = AsyncioAlarmScheduler(on_fire)
        trigger = now_millis() + 50
        scheduler.schedule(trigger, 2)
        assert scheduler.pending()[2].step_index == 2
        await asyncio.sleep(0.3)
        return trigger, scheduler.pending()

    trigger, pending = asyncio.run(run())

    assert len(fired) == 1
    assert fired[0][0] == 2
    assert fired[0][1] >= trigger
    assert pending == {}


def test_rescheduling_replaces_previous_alarm():
    fired = []

    async def on_fire(step_index):
        fired.append(step_index)

    async def run():
        scheduler = AsyncioAlarmScheduler(on_fire)
        scheduler.schedule(now_millis() + 50, 1)
        scheduler.schedule(now_millis() + 150, 1)
        await asyncio.sleep(0.1)
        assert fired == []
        await asyncio.sleep(0.2)

    asyncio.run(run())

    assert fired == [1]


def test_cancel_prevents_fire_and_unknown_cancel_is_noop():
    fired = []

    async def on_fire(step_index):
        fired.append(step_index)

    async def run():
        scheduler = AsyncioAlarmScheduler(on_fire)
        scheduler.cancel(5)
        scheduler.schedule(now_millis() + 50, 1)
        scheduler.cancel(1)
        await asyncio.sleep(0.15)
        return scheduler.pending()

    assert asyncio.run(run()) == {}
    assert fired == []


def test_past_trigger_fires_right_away():
    fired = []

    async def on_fire(step_index):
        fired.append(step_index)

    async def run():
        scheduler = AsyncioAlarmScheduler(on_fire)
        scheduler.schedule(now_millis() - 1000, 3)
        await asyncio.sleep(0.05)

    asyncio.run(run())

    assert fired == [3]


def test_waits_in_slices_against_the_clock():
    fired = []
    now = [0]

    async def on_fire(step_index):
        fired.append(step_index)

    async def run():
        # Jumping the clock forward (as after a suspend) is noticed on the next slice.
        scheduler = AsyncioAlarmScheduler(on_fire, clock=lambda: now[0], max_sleep=0.01)
        scheduler.schedule(60 * 60 * 1000, 1)
        await asyncio.sleep(0.05)
        assert fired == []
        now[0] = 60 * 60 * 1000
        await asyncio.sleep(0.05)

    asyncio.run(run())

    assert fired == [1]


def test_delivery_errors_are_contained():
    async def on_fire(step_index):
        raise RuntimeError("boom")

    async def run():
        scheduler = AsyncioAlarmScheduler(on_fire)
        scheduler.schedule(now_millis(), 1)
        await asyncio.sleep(0.05)
        return scheduler.pending()

    assert asyncio.run(run()) == {}
