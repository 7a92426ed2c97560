from tutifrutti.domain.helpers.timer import TimerAuthority

from conftest import ManualScheduler


class Stream:
    def __init__(self):
        self.ticks = []
        self.expired = 0

    def on_tick(self, remaining, deadline):
        self.ticks.append(remaining)

    def on_expire(self):
        self.expired += 1


def test_ticks_count_down_to_zero_then_expire_once():
    clock = ManualScheduler()
    timers = TimerAuthority(clock)
    s = Stream()

    deadline = timers.start("r", 3, s.on_tick, s.on_expire)

    assert deadline == clock.now + 3000
    assert s.ticks == [3]
    clock.advance(1)
    clock.advance(1)
    assert s.ticks == [3, 2, 1]
    assert s.expired == 0
    clock.advance(1)
    assert s.ticks == [3, 2, 1, 0]
    assert s.expired == 1

    clock.advance(5)
    assert s.ticks == [3, 2, 1, 0]
    assert s.expired == 1
    assert timers.is_running("r") is False


def test_cancel_twice_is_safe_and_restart_gives_one_stream():
    clock = ManualScheduler()
    timers = TimerAuthority(clock)
    old = Stream()
    timers.start("r", 10, old.on_tick, old.on_expire)

    timers.cancel("r")
    timers.cancel("r")
    timers.cancel("never-started")

    new = Stream()
    timers.start("r", 2, new.on_tick, new.on_expire)
    clock.advance(3)

    assert old.ticks == [10]
    assert new.ticks == [2, 1, 0]
    assert new.expired == 1
    assert old.expired == 0


def test_start_replaces_running_countdown():
    clock = ManualScheduler()
    timers = TimerAuthority(clock)
    first, second = Stream(), Stream()

    timers.start("r", 10, first.on_tick, first.on_expire)
    clock.advance(1)
    timers.start("r", 2, second.on_tick, second.on_expire)
    clock.advance(5)

    assert first.ticks == [10, 9]
    assert first.expired == 0
    assert second.ticks == [2, 1, 0]


def test_remaining_is_derived_from_deadline():
    clock = ManualScheduler()
    timers = TimerAuthority(clock)
    s = Stream()
    timers.start("r", 5, s.on_tick, s.on_expire)
    start = clock.now

    clock.advance(1.5)

    assert timers.remaining("r") == 4
    assert timers.deadline("r") == start + 5000
    assert timers.remaining("other") is None
    assert timers.deadline("other") is None


def test_keys_are_independent():
    clock = ManualScheduler()
    timers = TimerAuthority(clock)
    a, b = Stream(), Stream()
    timers.start("a", 1, a.on_tick, a.on_expire)
    timers.start("b", 3, b.on_tick, b.on_expire)

    timers.cancel("b")
    clock.advance(2)

    assert a.expired == 1
    assert b.ticks == [3]
    assert b.expired == 0
