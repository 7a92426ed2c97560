import pytest

from tutifrutti.domain.common.errors import DuplicateName, PlayerNotFound
from tutifrutti.domain.players.registry import PlayerRegistry

from conftest import ManualScheduler


def _registry():
    clock = ManualScheduler()
    reg = PlayerRegistry(clock, grace_period_sec=15)
    reg.add_player("Ana", True, "s1")
    reg.add_player("Beto", False, "s2")
    return clock, reg


def test_add_player_sanitises_name():
    _, reg = _registry()
    p = reg.add_player("  Caro  ", False, "s3")
    assert p.name == "Caro"
    assert reg.by_name("caro") is p


def test_duplicate_name_never_mutates_roster():
    _, reg = _registry()
    with pytest.raises(DuplicateName):
        reg.add_player("ANA", False, "s9")
    assert [p.name for p in reg] == ["Ana", "Beto"]


def test_grace_expiry_calls_back_with_player():
    clock, reg = _registry()
    expired = []

    p = reg.mark_disconnected("s2", expired.append)

    assert p.connected is False
    assert p.disconnected_at == clock.now
    assert [q.name for q in reg.connected_players()] == ["Ana"]
    clock.advance(14)
    assert expired == []
    clock.advance(1)
    assert expired == [p]


def test_reconnect_cancels_grace_and_rebinds_sid():
    clock, reg = _registry()
    expired = []
    reg.mark_disconnected("s2", expired.append)

    clock.advance(10)
    p = reg.reconnect("beto", "s2-new")
    clock.advance(10)

    assert expired == []
    assert p.connected is True
    assert p.disconnected_at is None
    assert reg.by_sid("s2-new") is p
    assert reg.by_sid("s2") is None


def test_reconnect_unknown_player():
    _, reg = _registry()
    with pytest.raises(PlayerNotFound):
        reg.reconnect("Zoe", "s9")


def test_mark_disconnected_unknown_sid_is_noop():
    clock, reg = _registry()
    assert reg.mark_disconnected("nope", lambda p: None) is None
    assert clock.pending() == 0


def test_promote_next_creator_skips_disconnected():
    _, reg = _registry()
    reg.add_player("Caro", False, "s3")
    reg.mark_disconnected("s2", lambda p: None)

    reg.remove("Ana")
    new = reg.promote_next_creator()

    assert new.name == "Caro"
    assert reg.creator() is new


def test_promote_is_noop_while_creator_present():
    _, reg = _registry()
    assert reg.promote_next_creator() is None
    assert reg.creator().name == "Ana"


def test_remove_cancels_pending_grace():
    clock, reg = _registry()
    expired = []
    reg.mark_disconnected("s2", expired.append)
    reg.remove("Beto")
    clock.advance(20)
    assert expired == []
    assert len(reg) == 1
