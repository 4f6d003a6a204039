"""Tests for relation graph algorithms.

Test coverage:
- relationships: predecessors, successors and violations
- Cycle detection, including nested cycles
- Cycle resolution and breaking
- Transitive reduction
- Exact count of consistent orderings
- Ordering generation and its bias toward print order
- Snapshot format round trip
"""

import math

import numpy as np
import pytest

from hidden_ranks.engine import (
    CyclicRelationsError,
    RelationViolationError,
    relationships,
    reaches,
    descendants,
    ancestors,
    find_cycle,
    is_acyclic,
    detect_cycles,
    remove_redundancies,
    simplify,
    possibilities,
    resolve_cycles,
    break_cycles,
    generate_ordering,
    format_relations,
    parse_relations,
)
from hidden_ranks.rules import CANONICAL_RANKS, Ordering, Rank

TWO, THREE, FOUR, FIVE = Rank.TWO, Rank.THREE, Rank.FOUR, Rank.FIVE
KING, ACE = Rank.KING, Rank.ACE

ALL_ORDERINGS = math.factorial(13)


class TestRelationships:
    def test_pre_and_post(self):
        rel = relationships([(TWO, THREE), (FOUR, THREE), (THREE, ACE)], THREE)
        assert rel.pre == [TWO, FOUR]
        assert rel.post == [ACE]
        assert rel.violations == []

    def test_violation(self):
        rel = relationships([(TWO, THREE), (THREE, TWO)], THREE)
        assert rel.violations == [TWO]

    def test_unrelated_rank(self):
        rel = relationships([(TWO, THREE)], ACE)
        assert rel.pre == [] and rel.post == []


class TestReachability:
    def test_reaches(self):
        relations = [(TWO, THREE), (THREE, FOUR)]
        assert reaches(relations, TWO, FOUR)
        assert not reaches(relations, FOUR, TWO)
        assert not reaches(relations, TWO, FOUR, exclude=(TWO, THREE))

    def test_descendants_and_ancestors(self):
        relations = [(TWO, THREE), (THREE, FOUR), (FIVE, FOUR)]
        assert descendants(relations, TWO) == {THREE, FOUR}
        assert ancestors(relations, FOUR) == {TWO, THREE, FIVE}
        assert descendants(relations, FOUR) == set()


class TestCycleDetection:
    """Cycles are closed walks, deduplicated, with nested cycles dropped."""

    def test_simple_cycle(self):
        cycles = detect_cycles([(THREE, ACE), (ACE, KING), (KING, THREE)])
        assert cycles == [[THREE, ACE, KING, THREE]]

    def test_acyclic(self):
        relations = [(TWO, THREE), (THREE, FOUR), (TWO, FOUR)]
        assert detect_cycles(relations) == []
        assert find_cycle(relations) is None
        assert is_acyclic(relations)

    def test_nested_cycle_is_dropped(self):
        relations = [(TWO, THREE), (THREE, FOUR), (FOUR, FIVE), (THREE, FIVE), (FIVE, TWO)]
        assert detect_cycles(relations) == [[TWO, THREE, FOUR, FIVE, TWO]]

    def test_disjoint_cycles(self):
        relations = [(TWO, THREE), (THREE, TWO), (KING, ACE), (ACE, KING)]
        cycles = detect_cycles(relations)
        assert sorted(frozenset(c) for c in cycles) == sorted(
            [frozenset([TWO, THREE]), frozenset([KING, ACE])]
        )

    def test_find_cycle(self):
        cycle = find_cycle([(TWO, THREE), (THREE, FOUR), (FOUR, THREE)])
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {THREE, FOUR}


class TestCycleResolution:
    def test_ties_reinstate_nothing(self):
        assert resolve_cycles([], [[THREE, ACE, KING, THREE]]) == []

    def test_firmly_placed_relations_come_back(self):
        accepted = resolve_cycles([(THREE, FIVE)], [[TWO, THREE, FOUR, FIVE, TWO]])
        assert accepted == [(THREE, FOUR), (FOUR, FIVE)]

    def test_two_cycle(self):
        accepted = resolve_cycles([(THREE, TWO)], [[TWO, ACE, TWO]])
        assert accepted == [(ACE, TWO)]

    def test_break_cycles(self):
        relations = [(THREE, ACE), (ACE, KING), (KING, THREE), (TWO, THREE)]
        broken = break_cycles(relations)
        assert broken == [(TWO, THREE), (KING, THREE)]
        assert is_acyclic(broken)

    def test_break_cycles_always_terminates_acyclic(self):
        rng = np.random.default_rng(9)
        ranks = CANONICAL_RANKS[:6]
        for _ in range(30):
            edges = []
            for _ in range(9):
                a, b = rng.choice(len(ranks), size=2, replace=False)
                edges.append((ranks[a], ranks[b]))
            broken = break_cycles(edges)
            assert detect_cycles(broken) == []
            assert set(broken) <= set(edges)

    def test_break_cycles_leaves_acyclic_input_alone(self):
        relations = [(TWO, THREE), (THREE, FOUR)]
        assert break_cycles(relations) == relations


class TestSimplify:
    def test_remove_redundancies(self):
        assert remove_redundancies([(TWO, THREE), (TWO, THREE), (THREE, FOUR)]) == [
            (TWO, THREE),
            (THREE, FOUR),
        ]

    def test_transitive_reduction(self):
        assert simplify([(TWO, THREE), (THREE, FOUR), (TWO, FOUR)]) == [
            (TWO, THREE),
            (THREE, FOUR),
        ]

    def test_simplify_keeps_orderings(self):
        relations = [(TWO, THREE), (THREE, FOUR), (TWO, FOUR), (TWO, ACE), (FOUR, ACE)]
        assert possibilities(simplify(relations)) == possibilities(relations)


class TestPossibilities:
    """Exact number of orderings consistent with the relations."""

    def test_no_relations(self):
        assert possibilities([]) == ALL_ORDERINGS == 6227020800

    def test_single_relation_halves(self):
        assert possibilities([(TWO, ACE)]) == ALL_ORDERINGS // 2

    def test_chain(self):
        assert possibilities([(TWO, THREE), (THREE, FOUR)]) == ALL_ORDERINGS // 6

    def test_implied_relation_changes_nothing(self):
        chain = [(TWO, THREE), (THREE, FOUR)]
        assert possibilities(chain + [(TWO, FOUR)]) == possibilities(chain)

    def test_new_relation_never_increases(self):
        base = [(TWO, THREE), (KING, ACE)]
        assert possibilities(base + [(FOUR, FIVE)]) < possibilities(base)

    def test_total_order(self):
        chain = list(zip(CANONICAL_RANKS, CANONICAL_RANKS[1:]))
        assert possibilities(chain) == 1

    def test_cycle_raises(self):
        with pytest.raises(CyclicRelationsError) as excinfo:
            possibilities([(TWO, THREE), (THREE, TWO)])
        assert set(excinfo.value.cycle) == {TWO, THREE}


class TestGenerateOrdering:
    def test_unconstrained_stays_in_print_order(self, always_first):
        assert generate_ordering([], always_first) == Ordering.canonical()

    def test_never_stopping_takes_first_eligible(self, never_stop):
        assert generate_ordering([], never_stop) == Ordering.canonical()

    def test_relations_are_respected(self, always_first):
        ordering = generate_ordering([(ACE, TWO)], always_first)
        assert str(ordering) == "3456789TJQKA2"

    def test_random_orderings_satisfy_relations(self):
        rng = np.random.default_rng(3)
        relations = [(ACE, TWO), (KING, ACE), (FIVE, THREE), (TWO, FIVE)]
        for _ in range(20):
            assert generate_ordering(relations, rng).satisfies(relations)

    def test_cycle_raises(self, always_first):
        with pytest.raises(CyclicRelationsError):
            generate_ordering([(TWO, THREE), (THREE, FOUR), (FOUR, TWO)], always_first)

    def test_two_rank_cycle_is_a_violation(self, always_first):
        with pytest.raises(RelationViolationError, match="both before and after"):
            generate_ordering([(TWO, THREE), (ACE, KING), (THREE, TWO)], always_first)


class TestSnapshotFormat:
    def test_format(self):
        lines = format_relations([(TWO, ACE)]).splitlines()
        assert len(lines) == 13
        assert lines[0] == "|2|[][A]"
        assert lines[12] == "|A|[2][]"
        assert lines[5] == "|7|[][]"

    def test_round_trip(self):
        relations = [(TWO, THREE), (THREE, FOUR), (KING, ACE)]
        parsed = parse_relations(format_relations(relations).splitlines())
        assert set(parsed) == set(relations)

    def test_comma_separated_form(self):
        parsed = parse_relations(["|3|[2],[4]"])
        assert parsed == [(TWO, THREE), (THREE, FOUR)]

    def test_invalid_line(self):
        with pytest.raises(ValueError):
            parse_relations(["3 < 4"])
