import pytest

from tutifrutti.domain.common.errors import RateLimitError
from tutifrutti.settings import Settings
from tutifrutti.transport.ratelimit import Rule, SlidingWindowLimiter, limiter_from_settings


class Clock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


def test_rule_parse():
    assert Rule.parse("5/60") == Rule(limit=5, window_ms=60_000)
    assert Rule.parse("3/1.5") == Rule(limit=3, window_ms=1500)


def test_window_fills_then_slides():
    clock = Clock()
    limiter = SlidingWindowLimiter({"submitWords": Rule(3, 20_000)}, None, clock=clock)

    for _ in range(3):
        limiter.check("s1", "submitWords")
    with pytest.raises(RateLimitError) as exc:
        limiter.check("s1", "submitWords")
    assert exc.value.code == "RATE_LIMITED"

    clock.now = 19_999
    with pytest.raises(RateLimitError):
        limiter.check("s1", "submitWords")
    clock.now = 20_000
    limiter.check("s1", "submitWords")


def test_limits_are_per_connection_and_per_event():
    clock = Clock()
    limiter = SlidingWindowLimiter({"createRoom": Rule(1, 60_000)}, Rule(1, 10_000), clock=clock)

    limiter.check("s1", "createRoom")
    limiter.check("s2", "createRoom")
    limiter.check("s1", "startGame")
    limiter.check("s1", "castVote")

    with pytest.raises(RateLimitError):
        limiter.check("s1", "castVote")


def test_forget_resets_connection():
    clock = Clock()
    limiter = SlidingWindowLimiter({}, Rule(1, 10_000), clock=clock)
    limiter.check("s1", "castVote")
    limiter.forget("s1")
    limiter.check("s1", "castVote")


def test_no_rule_means_no_limit():
    limiter = SlidingWindowLimiter({}, None, clock=Clock())
    for _ in range(100):
        limiter.check("s1", "anything")


def test_limiter_from_settings_defaults():
    limiter = limiter_from_settings(Settings(), clock=Clock())
    assert limiter.rule_for("createRoom") == Rule(2, 60_000)
    assert limiter.rule_for("joinRoom") == Rule(5, 60_000)
    assert limiter.rule_for("submitWords") == Rule(3, 20_000)
    assert limiter.rule_for("castVote") == Rule(30, 10_000)
