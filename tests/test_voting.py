from tutifrutti.domain.helpers.voting import VoteTally


def test_self_vote_is_ignored():
    t = VoteTally()
    assert t.cast("ana", "Ana", "COSA", "approve") is False
    c = t.counts("Ana", "COSA")
    assert (c.approve, c.reject) == (0, 0)


def test_ballot_is_exclusive_per_voter():
    t = VoteTally()
    t.cast("Beto", "Ana", "COSA", "approve")
    t.cast("Beto", "Ana", "COSA", "reject")

    c = t.counts("Ana", "COSA")
    assert (c.approve, c.reject) == (0, 1)
    assert t.ballot_of("Beto", "Ana", "COSA") == "reject"


def test_prefix_rule_beats_votes():
    t = VoteTally()
    t.cast("Beto", "Ana", "COSA", "approve")
    assert t.resolve("Ana", "COSA", "M", "Auto") is False


def test_majority_decides():
    t = VoteTally()
    t.cast("Beto", "Ana", "COSA", "reject")
    t.cast("Caro", "Ana", "COSA", "reject")
    t.cast("Dani", "Ana", "COSA", "approve")
    assert t.resolve("Ana", "COSA", "A", "Auto") is False

    t.cast("Caro", "Ana", "COSA", "approve")
    assert t.resolve("Ana", "COSA", "A", "Auto") is True


def test_tie_uses_host_resolution_then_default():
    t = VoteTally()
    t.cast("Beto", "Ana", "COSA", "approve")
    t.cast("Caro", "Ana", "COSA", "reject")

    assert t.resolve("Ana", "COSA", "A", "Auto") is True
    assert t.resolve("Ana", "COSA", "A", "Auto", tie_default_valid=False) is False
    assert t.resolve("Ana", "COSA", "A", "Auto", {"Ana:COSA": "invalid"}) is False
    assert t.resolve("Ana", "COSA", "A", "Auto", {"Ana:COSA": False}) is False
    assert t.resolve("Ana", "COSA", "A", "Auto", {"Ana:COSA": "approve"}, tie_default_valid=False) is True
    # unrelated keys do not count
    assert t.resolve("Ana", "COSA", "A", "Auto", {"Beto:COSA": False}) is True


def test_no_votes_is_a_tie():
    t = VoteTally()
    assert t.resolve("Ana", "COSA", "A", "Auto") is True
    assert t.resolve("Ana", "COSA", "A", "Auto", tie_default_valid=False) is False


def test_empty_word_is_invalid():
    assert VoteTally().resolve("Ana", "COSA", "A", "") is False


def test_snapshot_serialises_counts_only():
    t = VoteTally()
    t.cast("Beto", "Ana", "COSA", "approve")
    t.cast("Caro", "Ana", "COSA", "reject")

    assert t.snapshot() == {"Ana": {"COSA": {"validCount": 1, "invalidCount": 1}}}


def test_drop_voter_and_clear():
    t = VoteTally()
    t.cast("Beto", "Ana", "COSA", "approve")
    t.drop_voter("Beto")
    assert t.counts("Ana", "COSA").approve == 0

    t.cast("Caro", "Ana", "COSA", "approve")
    t.clear()
    assert t.snapshot() == {}
