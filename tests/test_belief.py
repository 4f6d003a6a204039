"""Tests for the belief engine.

Test coverage:
- Evidence folding, sign convention and reps-weighted averaging
- Rejected evidence (same rank, zero certainty, deny-listed rule)
- Invalid certainty
- Deny-listing rebuilds beliefs from the evidence log
- relations(): direction draws, corroboration, cycle breaking
- Blame: deny-listing one of several rules, or weakening an isolated misfire
"""

import math

import pytest

from hidden_ranks.engine import BeliefEngine, Evidence, find_cycle
from hidden_ranks.rules import Rank

TWO, THREE, FOUR, NINE, ACE = Rank.TWO, Rank.THREE, Rank.FOUR, Rank.NINE, Rank.ACE


class TestUpdate:
    """Test folding evidence into pair beliefs."""

    def test_first_evidence_sets_belief(self):
        engine = BeliefEngine()
        assert engine.update("pair-pair", TWO, ACE, 0.9)
        assert engine.probability(TWO, ACE) == pytest.approx(0.9)
        assert engine.probability(ACE, TWO) == pytest.approx(-0.9)
        assert engine.likely_ordering(TWO, ACE) == (TWO, ACE)
        assert engine.likely_ordering(ACE, TWO) == (TWO, ACE)
        assert engine.reps(ACE, TWO) == 1

    def test_negative_certainty_supports_reverse(self):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, ACE, -0.5)
        assert engine.likely_ordering(TWO, ACE) == (ACE, TWO)

    def test_later_evidence_weighs_less(self):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, ACE, 0.9)
        engine.update("pair-pair", TWO, ACE, 0.5)
        # 0.9 + (0.5 / 2) * (1 - 0.9)
        assert engine.probability(TWO, ACE) == pytest.approx(0.925)

    def test_conflicting_evidence(self):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, ACE, 0.9)
        engine.update("high-card", ACE, TWO, 0.5)
        # 0.9 + (0.5 / 2) * (-1 - 0.9)
        assert engine.probability(TWO, ACE) == pytest.approx(0.425)
        assert engine.reps(TWO, ACE) == 2

    def test_belief_stays_bounded(self):
        engine = BeliefEngine()
        for _ in range(200):
            engine.update("pair-pair", TWO, ACE, 0.99)
            engine.update("high-card", ACE, TWO, 0.99)
        assert -1.0 <= engine.probability(TWO, ACE) <= 1.0

    def test_unknown_pair(self):
        engine = BeliefEngine()
        assert engine.probability(TWO, ACE) == 0.0
        assert engine.likely_ordering(TWO, ACE) is None
        assert engine.reps(TWO, ACE) == 0
        assert engine.known_pairs() == []

    def test_evidence_log_is_oriented(self):
        engine = BeliefEngine()
        engine.update("pair-pair", ACE, TWO, 0.9)
        assert engine.evidence(ACE, TWO) == [Evidence("pair-pair", 0.9)]
        assert engine.evidence(TWO, ACE) == [Evidence("pair-pair", -0.9)]

    def test_version_tracks_changes(self):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, ACE, 0.9)
        engine.update("pair-pair", TWO, TWO, 0.9)
        assert engine.version == 1


class TestRejectedEvidence:
    def test_same_rank(self):
        assert not BeliefEngine().update("pair-pair", NINE, NINE, 0.9)

    def test_zero_certainty(self):
        assert not BeliefEngine().update("pair-pair", TWO, NINE, 0.0)

    def test_denied_rule(self):
        engine = BeliefEngine()
        engine.deny_rule("high-card")
        assert not engine.update("high-card", TWO, NINE, 0.3)
        assert engine.probability(TWO, NINE) == 0.0

    @pytest.mark.parametrize("certainty", [1.0, -1.0, 1.5, math.nan, math.inf])
    def test_invalid_certainty(self, certainty):
        with pytest.raises(ValueError):
            BeliefEngine().update("pair-pair", TWO, NINE, certainty)


class TestDenyRule:
    """Deny-listing replays every touched pair without the rule."""

    def test_replay_without_rule(self):
        engine = BeliefEngine()
        engine.update("high-card", TWO, ACE, 0.3)
        engine.update("pair-pair", TWO, ACE, 0.9)
        engine.update("high-card", THREE, FOUR, 0.3)

        engine.deny_rule("high-card")

        assert engine.probability(TWO, ACE) == pytest.approx(0.9)
        assert engine.reps(TWO, ACE) == 1
        assert engine.probability(THREE, FOUR) == 0.0
        assert engine.known_pairs() == [(TWO, ACE, pytest.approx(0.9))]

    def test_deny_is_idempotent(self):
        engine = BeliefEngine()
        engine.deny_rule("x")
        version = engine.version
        engine.deny_rule("x")
        assert engine.version == version


class TestRelations:
    """Deriving an acyclic relation list from beliefs."""

    def test_single_belief(self, always_first):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, ACE, 0.9)
        assert engine.relations(always_first) == [(TWO, ACE)]

    def test_unlucky_draw_reverses_relation(self, never_stop):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, ACE, 0.9)
        assert engine.relations(never_stop) == [(ACE, TWO)]
        # The belief itself is untouched
        assert engine.probability(TWO, ACE) == pytest.approx(0.9)

    def test_corroborated_direction_wins(self, always_first):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, THREE, 0.9)
        engine.update("pair-pair", THREE, FOUR, 0.9)
        engine.update("high-card", FOUR, TWO, 0.3)

        relations = engine.relations(always_first)
        assert set(relations) == {(TWO, THREE), (THREE, FOUR), (TWO, FOUR)}
        assert engine.denied_rules == set()

    def test_cycle_is_broken(self, sequence_random):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, THREE, 0.9)
        engine.update("pair-pair", THREE, FOUR, 0.5)
        engine.update("high-card", FOUR, TWO, 0.4)

        # The third draw goes against the favored direction and closes 2 < 3 < 4 < 2
        relations = engine.relations(sequence_random([0.0, 0.0, 0.999]))
        assert relations == [(TWO, THREE)]

    def test_result_is_always_acyclic(self, sequence_random):
        engine = BeliefEngine()
        ranks = list(Rank)
        for i, a in enumerate(ranks):
            for b in ranks[i + 1 :]:
                engine.update("pair-pair", a, b, 0.4 if (a.index + b.index) % 3 else -0.4)
        relations = engine.relations(sequence_random([0.9, 0.1, 0.7, 0.3, 0.99]))
        assert find_cycle(relations) is None


class TestBlame:
    """Confident beliefs contradicted by the derived relations."""

    def _contradicted(self, rules):
        engine = BeliefEngine()
        engine.update("pair-pair", TWO, THREE, 0.9)
        engine.update("pair-pair", THREE, FOUR, 0.9)
        for rule in rules:
            engine.update(rule, FOUR, TWO, 0.7)
        return engine

    def test_multiple_rules_deny_the_most_biased(self, always_first):
        engine = self._contradicted(["x", "y"])
        assert engine.probability(FOUR, TWO) == pytest.approx(0.805)

        relations = engine.relations(always_first)

        assert (TWO, FOUR) in relations
        assert engine.denied_rules == {"x"}
        assert engine.probability(FOUR, TWO) == pytest.approx(0.7)

    def test_isolated_misfire_weakens_belief(self, always_first):
        engine = self._contradicted(["x", "x"])
        version = engine.version

        engine.relations(always_first)

        assert engine.denied_rules == set()
        assert engine.probability(FOUR, TWO) == pytest.approx(0.4025)
        assert engine.version > version


class TestDescribe:
    def test_describe(self):
        engine = BeliefEngine()
        engine.update("pair-pair", ACE, TWO, 0.9)
        engine.deny_rule("high-card")
        text = engine.describe()
        assert "A < 2  0.900  reps=1  rules=pair-pair" in text
        assert text.endswith("Deny-listed rules: high-card")
