import asyncio

import pytest

from totpgen import TOTP, InvalidSecret, Scheduler, State

SECRET = "JBSWY3DPEHPK3PXP"
OTHER_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


class FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        # yield first so a cancelled sleeper never moves the clock
        await asyncio.sleep(0)
        self.now += delay


def make_scheduler(clock, ticks, stop_after=None, **kwargs):
    holder = {}

    def on_tick(tick):
        ticks.append((clock.now, tick))
        if stop_after is not None and len(ticks) >= stop_after:
            holder["scheduler"].stop()

    scheduler = Scheduler(on_tick=on_tick, clock=clock, sleep=clock.sleep, **kwargs)
    holder["scheduler"] = scheduler
    return scheduler


def test_first_tick_is_published_synchronously():
    clock = FakeClock(1000.0)
    ticks = []

    async def main():
        scheduler = make_scheduler(clock, ticks)
        scheduler.set_secret(SECRET)
        assert len(ticks) == 1
        assert scheduler.state is State.ACTIVE
        assert scheduler.current_code == TOTP(SECRET).at(1000)
        scheduler.stop()

    asyncio.run(main())
    assert ticks[0][1].seconds_remaining == 20


def test_countdown_wraps_at_window_boundary():
    clock = FakeClock(55.0)
    ticks = []

    async def main():
        scheduler = make_scheduler(clock, ticks, stop_after=7)
        scheduler.set_secret(SECRET)
        await scheduler.wait_stopped()
        assert scheduler.state is State.IDLE

    asyncio.run(main())

    totp = TOTP(SECRET)
    assert [t.seconds_remaining for _, t in ticks] == [5, 4, 3, 2, 1, 30, 29]
    assert [now for now, _ in ticks] == [55, 56, 57, 58, 59, 60, 61]
    for now, tick in ticks:
        assert tick.timecode == totp.timecode(now)
        assert tick.code == totp.at(now)
    assert ticks[4][1].timecode == 1
    assert ticks[5][1].timecode == 2


def test_ticks_align_to_whole_seconds():
    clock = FakeClock(100.25)
    ticks = []

    async def main():
        scheduler = make_scheduler(clock, ticks, stop_after=3)
        scheduler.set_secret(SECRET)
        await scheduler.wait_stopped()

    asyncio.run(main())
    assert clock.sleeps[0] == 0.75
    assert [now for now, _ in ticks] == [100.25, 101.0, 102.0]


def test_stop_cancels_pending_tick():
    clock = FakeClock(0.0)
    ticks = []
    idle = []

    async def main():
        scheduler = Scheduler(on_tick=ticks.append, on_idle=lambda: idle.append(True), clock=clock, sleep=clock.sleep)
        scheduler.set_secret(SECRET)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        scheduler.stop()
        count = len(ticks)
        for _ in range(5):
            await asyncio.sleep(0)
        assert len(ticks) == count
        assert scheduler.current_code is None

    asyncio.run(main())
    assert idle == [True]


def test_empty_secret_returns_to_idle():
    clock = FakeClock(0.0)
    ticks = []
    idle = []

    async def main():
        scheduler = Scheduler(on_tick=ticks.append, on_idle=lambda: idle.append(True), clock=clock, sleep=clock.sleep)
        scheduler.set_secret(SECRET)
        scheduler.set_secret("   ")
        assert scheduler.state is State.IDLE
        await scheduler.wait_stopped()

    asyncio.run(main())
    assert len(ticks) == 1
    assert idle == [True]


def test_replacing_secret_supersedes_previous_session():
    clock = FakeClock(28.0)
    ticks = []
    holder = {}

    def on_tick(tick):
        ticks.append(tick)
        if len(ticks) == 3:
            holder["scheduler"].set_secret(OTHER_SECRET)
        elif len(ticks) == 6:
            holder["scheduler"].stop()

    async def main():
        scheduler = Scheduler(on_tick=on_tick, clock=clock, sleep=clock.sleep)
        holder["scheduler"] = scheduler
        scheduler.set_secret(SECRET)
        await scheduler.wait_stopped()

    asyncio.run(main())

    old, new = TOTP(SECRET), TOTP(OTHER_SECRET)
    assert [t.code for t in ticks[:3]] == [old.at(28), old.at(29), old.at(30)]
    # the replacement publishes at once, at the same instant as the tick that triggered it
    assert [t.code for t in ticks[3:]] == [new.at(30), new.at(31), new.at(32)]
    assert [t.seconds_remaining for t in ticks] == [2, 1, 30, 30, 29, 28]
    assert len(ticks) == 6


def test_invalid_secret_is_distinct_from_idle():
    errors = []
    ticks = []
    idle = []

    async def main():
        scheduler = Scheduler(on_tick=ticks.append, on_error=errors.append, on_idle=lambda: idle.append(True))
        scheduler.set_secret(SECRET)
        scheduler.set_secret("1111 ====")
        assert scheduler.state is State.INVALID
        assert scheduler.current_code is None
        await scheduler.wait_stopped()
        scheduler.set_secret("")
        assert scheduler.state is State.IDLE

    asyncio.run(main())
    assert len(ticks) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], InvalidSecret)
    assert idle == [True]


def test_copy_code_hands_current_code_to_writer():
    clock = FakeClock(59.0)
    copied = []

    async def writer(code):
        copied.append(code)

    async def main():
        scheduler = Scheduler(on_tick=lambda tick: None, clock=clock, sleep=clock.sleep)
        scheduler.set_secret(SECRET)
        task = scheduler.copy_code(writer)
        scheduler.stop()
        await task

    asyncio.run(main())
    assert copied == [TOTP(SECRET).at(59)]


def test_copy_failure_is_swallowed(caplog):
    clock = FakeClock(59.0)

    def writer(code):
        raise OSError("no clipboard")

    async def main():
        scheduler = Scheduler(on_tick=lambda tick: None, clock=clock, sleep=clock.sleep)
        scheduler.set_secret(SECRET)
        task = scheduler.copy_code(writer)
        await task
        assert scheduler.state is State.ACTIVE
        scheduler.stop()

    asyncio.run(main())
    assert "Copying the code failed" in caplog.text


def test_copy_without_code():
    scheduler = Scheduler(on_tick=lambda tick: None)
    assert scheduler.copy_code(print) is None


def test_failing_presentation_surfaces_from_wait_stopped():
    clock = FakeClock(0.0)
    calls = []

    def on_tick(tick):
        calls.append(tick)
        if len(calls) == 2:
            raise RuntimeError("render failed")

    async def main():
        scheduler = Scheduler(on_tick=on_tick, clock=clock, sleep=clock.sleep)
        scheduler.set_secret(SECRET)
        with pytest.raises(RuntimeError):
            await scheduler.wait_stopped()
        assert scheduler.state is State.IDLE

    asyncio.run(main())


class LaggingClock(FakeClock):
    """Wall clock that runs slightly slower than the timer that wakes the scheduler."""

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        await asyncio.sleep(0)
        self.now += delay * 0.9995


def test_lagging_clock_still_counts_down_one_second_per_tick():
    clock = LaggingClock(55.0)
    ticks = []

    async def main():
        scheduler = make_scheduler(clock, ticks, stop_after=8)
        scheduler.set_secret(SECRET)
        await scheduler.wait_stopped()

    asyncio.run(main())

    totp = TOTP(SECRET)
    assert [t.seconds_remaining for _, t in ticks] == [5, 4, 3, 2, 1, 30, 29, 28]
    assert [t.code for _, t in ticks] == [totp.at(s) for s in range(55, 63)]
    assert [t.timecode for _, t in ticks] == [1, 1, 1, 1, 1, 2, 2, 2]


def test_set_secret_outside_event_loop_leaves_scheduler_idle():
    ticks = []
    scheduler = Scheduler(on_tick=ticks.append, clock=lambda: 59.0)

    with pytest.raises(RuntimeError):
        scheduler.set_secret(SECRET)

    assert scheduler.state is State.IDLE
    assert scheduler.current_code is None
    assert ticks == []


def test_failing_first_publish_ends_the_session():
    clock = FakeClock(0.0)
    calls = []
    idle = []

    def on_tick(tick):
        calls.append(tick)
        raise RuntimeError("render failed")

    async def main():
        scheduler = Scheduler(on_tick=on_tick, on_idle=lambda: idle.append(True), clock=clock, sleep=clock.sleep)
        with pytest.raises(RuntimeError):
            scheduler.set_secret(SECRET)
        assert scheduler.state is State.IDLE
        assert scheduler.current_code is None
        await scheduler.wait_stopped()
        for _ in range(5):
            await asyncio.sleep(0)

    asyncio.run(main())
    assert len(calls) == 1
    assert idle == [True]
