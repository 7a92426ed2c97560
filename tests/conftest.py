import heapq
import random

import pytest

from tutifrutti.domain.helpers.timer import TimerAuthority
from tutifrutti.domain.room.directory import RoomDirectory
from tutifrutti.domain.room.engine import RoomEngine
from tutifrutti.store.models import RoomConfig


class FakeHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Fake clock: callbacks only run when the test advances time."""

    def __init__(self, start_ms=1_700_000_000_000):
        self.now = start_ms
        self._queue = []
        self._seq = 0

    def now_ms(self):
        return self.now

    def call_later(self, delay_sec, callback, *args):
        h = FakeHandle()
        self._seq += 1
        due = self.now + int(max(0.0, delay_sec) * 1000)
        heapq.heappush(self._queue, (due, self._seq, h, callback, args))
        return h

    def advance(self, seconds):
        target = self.now + int(seconds * 1000)
        while self._queue and self._queue[0][0] <= target:
            due, _, h, callback, args = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            if not h.cancelled:
                callback(*args)
        self.now = target

    def pending(self):
        return sum(1 for item in self._queue if not item[2].cancelled)


class Recorder:
    """publish() sink that keeps wire dicts in order."""

    def __init__(self):
        self.events = []

    def __call__(self, room_id, events):
        for e in events:
            self.events.append((room_id, e.to_wire()))

    def types(self):
        return [e["type"] for _, e in self.events]

    def of(self, type_):
        return [e for _, e in self.events if e["type"] == type_]

    def last(self, type_):
        found = self.of(type_)
        return found[-1] if found else None

    def clear(self):
        self.events.clear()


CATS = ["NOMBRE", "ANIMAL", "COSA", "FRUTA"]


def make_config(**overrides):
    cfg = dict(
        room_name="Sala",
        creator="Ana",
        categories=list(CATS),
        max_players=5,
        max_rounds=2,
        time_limit=60,
        review_duration=20,
        grace_period_sec=15,
        review_pacing_sec=1.5,
        results_delay_sec=0,
    )
    cfg.update(overrides)
    return RoomConfig(**cfg)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_room(scheduler, recorder):
    def _make(*players, on_idle=None, on_empty=None, **overrides):
        room = RoomEngine(
            "room1",
            make_config(**overrides),
            scheduler=scheduler,
            timers=TimerAuthority(scheduler),
            publish=recorder,
            on_idle=on_idle,
            on_empty=on_empty,
            rng=random.Random(7),
        )
        room.add_creator("Ana", "s-ana")
        for name in players:
            room.join(name, f"s-{name.lower()}")
        recorder.clear()
        return room

    return _make


@pytest.fixture
def directory(scheduler, recorder):
    return RoomDirectory(scheduler=scheduler, publish=recorder, retention_sec=300, rng=random.Random(3))
