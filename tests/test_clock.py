"""Tests for the timer service on virtual time."""
import asyncio

import pytest

from duel.core.clock import VirtualClock


def test_call_later_fires_in_due_order():
    clock = VirtualClock()
    fired = []
    clock.call_later(300, lambda: fired.append(('b', clock.now())))
    clock.call_later(100, lambda: fired.append(('a', clock.now())))
    clock.tick(50)
    assert fired == []
    clock.tick(300)
    assert fired == [('a', 100.0), ('b', 300.0)]
    assert clock.now() == 350.0


def test_cancel_is_idempotent():
    clock = VirtualClock()
    fired = []
    handle = clock.call_later(10, lambda: fired.append(1))
    handle.cancel()
    handle.cancel()
    clock.tick(100)
    assert fired == []
    assert not handle.active
    assert clock.pending == 0


def test_call_every_repeats_until_cancelled():
    clock = VirtualClock()
    ticks = []
    handle = clock.call_every(100, lambda: ticks.append(clock.now()))
    clock.tick(350)
    assert ticks == [100.0, 200.0, 300.0]
    handle.cancel()
    clock.tick(500)
    assert len(ticks) == 3


def test_periodic_callback_can_cancel_itself():
    clock = VirtualClock()
    ticks = []

    def cb():
        ticks.append(clock.now())
        if len(ticks) == 2:
            handle.cancel()

    handle = clock.call_every(10, cb)
    clock.tick(100)
    assert ticks == [10.0, 20.0]


def test_call_every_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        VirtualClock().call_every(0, lambda: None)


def test_sleep_resumes_at_virtual_instant():
    clock = VirtualClock()
    woke = []

    async def sleeper():
        await clock.sleep(250)
        woke.append(clock.now())

    async def scenario():
        task = asyncio.get_running_loop().create_task(sleeper())
        await clock.advance(200)
        assert woke == []
        await clock.advance(100)
        assert woke == [250.0]
        await task

    asyncio.run(scenario())
