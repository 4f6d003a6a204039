"""Tests for showdown evidence rules.

Test coverage:
- pair-pair and trips-trips rules
- high-card rule
- No evidence without a showdown or on a split pot
- Deny-listed rules are not accepted
"""

import pytest

from hidden_ranks.engine import EngineConfig, InferenceEngine, RoundOutcome, ShowdownObserver
from hidden_ranks.rules import Rank, make_cards_from_string


def outcome(mine, theirs, board, delta):
    return RoundOutcome(
        my_cards=tuple(make_cards_from_string(mine)),
        opp_cards=tuple(make_cards_from_string(theirs)) if theirs is not None else None,
        board=tuple(make_cards_from_string(board)),
        delta=delta,
    )


@pytest.fixture
def engine(always_first):
    return InferenceEngine(EngineConfig(), rng=always_first)


@pytest.fixture
def observer(engine):
    return ShowdownObserver(engine)


class TestPairRules:
    def test_pair_beats_pair(self, observer, engine):
        accepted = observer.observe(outcome("9c 9h", "4c 4d", "2s 7h Jd Kc Ad", 10))
        assert accepted == [("pair-pair", Rank.FOUR, Rank.NINE, 0.9)]
        assert engine.likely_ordering(Rank.NINE, Rank.FOUR) == (Rank.FOUR, Rank.NINE)

    def test_lost_showdown_reverses(self, observer):
        accepted = observer.observe(outcome("9c 9h", "4c 4d", "2s 7h Jd Kc Ad", -10))
        assert accepted == [("pair-pair", Rank.NINE, Rank.FOUR, 0.9)]

    def test_trips_beat_trips(self, observer):
        accepted = observer.observe(outcome("9c 9h", "4c 4d", "9d 2s 7h Jd 4s", 10))
        assert accepted == [("trips-trips", Rank.FOUR, Rank.NINE, 0.9)]

    def test_mixed_categories_say_nothing(self, observer):
        assert observer.observe(outcome("9c 9h", "4c 5d", "2s 7h Jd Kc Ad", 10)) == []


class TestHighCardRule:
    def test_best_hole_card_beats_loser_hole_cards(self, observer):
        accepted = observer.observe(outcome("Kc 3d", "Qh 5s", "2s 7h 9d Jc 4c", 10))
        assert accepted == [
            ("high-card", Rank.QUEEN, Rank.KING, 0.3),
            ("high-card", Rank.FIVE, Rank.KING, 0.3),
        ]

    def test_shared_rank_is_skipped(self, observer):
        accepted = observer.observe(outcome("Kc 3d", "Kh 5s", "2s 7h 9d Jc 4c", -10))
        assert accepted == [("high-card", Rank.THREE, Rank.KING, 0.3)]


class TestNoEvidence:
    def test_no_showdown(self, observer):
        assert observer.observe(outcome("9c 9h", None, "2s 7h Jd Kc Ad", 10)) == []

    def test_split_pot(self, observer):
        assert observer.observe(outcome("9c 9h", "9d 9s", "2s 7h Jd Kc Ad", 0)) == []

    def test_denied_rule(self, observer, engine):
        engine.beliefs.deny_rule("pair-pair")
        assert observer.observe(outcome("9c 9h", "4c 4d", "2s 7h Jd Kc Ad", 10)) == []

    def test_round_outcome_showdown_flag(self):
        assert outcome("9c 9h", "4c 4d", "2s 7h Jd Kc Ad", 10).showdown
        assert not outcome("9c 9h", None, "2s 7h Jd Kc Ad", 10).showdown
