"""Pairwise rank beliefs accumulated from showdown evidence.

Every unordered rank pair carries an aggregated belief in [-1, 1], a reps
counter and an evidence log. Evidence arrives from named rules (heuristics
that read showdown outcomes); rules that turn out to produce contradictory
evidence are deny-listed and their evidence ignored from then on.

Sign convention: a pair is stored against the print order of its ranks. A
positive belief for (2, A) means 2 is believed weaker than A.

relations() turns the beliefs into an acyclic relation list for
generate_ordering and possibilities.
"""

import heapq
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

import numpy as np

from hidden_ranks.rules.ranks import CANONICAL_RANKS, NUM_RANKS, Rank
from .relations import (
    Relation,
    ancestors,
    cycle_relations,
    descendants,
    find_cycle,
)

logger = logging.getLogger(__name__)

# Relation confidences never exceed this
MAX_CONFIDENCE = 1.0


class BeliefInvariantError(RuntimeError):
    """Raised when an aggregated belief stops being a finite value in [-1, 1]."""

    pass


class UnresolvableCycleError(RuntimeError):
    """Raised when cycle breaking cannot remove any relation from a cycle."""

    def __init__(self, cycle: List[Rank]):
        self.cycle = cycle
        super().__init__(
            "Cannot break cycle of maximally confident relations: "
            + " -> ".join(str(r) for r in cycle)
        )


@dataclass(frozen=True)
class Evidence:
    """One accepted piece of evidence for a pair.

    Attributes:
        rule: Name of the rule that submitted it
        certainty: Signed certainty against the pair's print-order direction
    """

    rule: str
    certainty: float


def _canonical(a: Rank, b: Rank) -> Tuple[int, int, float]:
    """Pair indices in print order, and the sign mapping (a, b) onto them."""
    if a.index < b.index:
        return a.index, b.index, 1.0
    return b.index, a.index, -1.0


class BeliefEngine:
    """Stateful accumulator of pairwise rank beliefs.

    Not thread-safe: callers serialize access (see InferenceEngine).

    Attributes:
        denied_rules: Rules whose evidence is ignored
        version: Incremented whenever any belief changes
    """

    def __init__(
        self,
        confirmation_threshold: float = 0.6,
        confidence_bump: float = 0.01,
        cycle_tolerance: float = 0.05,
        misfire_weakening: float = 0.5,
    ):
        """Initialize an empty belief state.

        Args:
            confirmation_threshold: Confidence a relation needs to corroborate
                others, and a belief needs before a contradiction is blamed on it
            confidence_bump: Added to a corroborating path's confidence when a
                pair is accepted on its strength
            cycle_tolerance: Cycle relations this far below the cycle's most
                confident relation are discarded
            misfire_weakening: Factor applied to a contradicted single-rule belief
        """
        self.confirmation_threshold = confirmation_threshold
        self.confidence_bump = confidence_bump
        self.cycle_tolerance = cycle_tolerance
        self.misfire_weakening = misfire_weakening

        self._belief = np.zeros((NUM_RANKS, NUM_RANKS), dtype=np.float64)
        self._reps = np.zeros((NUM_RANKS, NUM_RANKS), dtype=np.int64)
        self._evidence: Dict[Tuple[int, int], List[Evidence]] = {}
        self.denied_rules: Set[str] = set()
        self.version = 0

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def update(self, rule: str, a: Rank, b: Rank, certainty: float) -> bool:
        """Fold one piece of evidence that `a` is weaker than `b`.

        Positive certainty supports a < b, negative supports b < a. The
        weight of new evidence shrinks as the pair's reps grow, so a late
        outlier cannot swing a well established belief.

        Args:
            rule: Name of the rule submitting the evidence
            a: First rank
            b: Second rank
            certainty: Signed certainty in (-1, 1)

        Returns:
            True if the evidence was applied; False for a == b, zero
            certainty or a deny-listed rule

        Raises:
            ValueError: If certainty is not finite or not inside (-1, 1)
        """
        if not math.isfinite(certainty) or abs(certainty) >= 1.0:
            raise ValueError(f"Certainty must be inside (-1, 1), got {certainty}")
        if a == b or certainty == 0.0:
            return False
        if rule in self.denied_rules:
            logger.debug("Ignoring evidence from deny-listed rule %s", rule)
            return False

        i, j, sign = _canonical(a, b)
        signed = sign * certainty
        self._fold(i, j, signed)
        self._evidence.setdefault((i, j), []).append(Evidence(rule, signed))
        self.version += 1
        logger.debug(
            "%s: %s < %s with %+.3f, belief now %+.3f after %d reps",
            rule,
            a,
            b,
            certainty,
            self.probability(a, b),
            self._reps[i, j],
        )
        return True

    def _fold(self, i: int, j: int, signed: float) -> None:
        self._reps[i, j] += 1
        reps = self._reps[i, j]
        current = self._belief[i, j]
        updated = current + (abs(signed) / reps) * (math.copysign(1.0, signed) - current)
        if not math.isfinite(updated) or abs(updated) > 1.0:
            raise BeliefInvariantError(
                f"Belief for {CANONICAL_RANKS[i]}/{CANONICAL_RANKS[j]} became {updated}"
            )
        self._belief[i, j] = updated

    def _replay(self, i: int, j: int) -> None:
        """Rebuild a pair's belief from its log, skipping deny-listed rules."""
        self._belief[i, j] = 0.0
        self._reps[i, j] = 0
        for record in self._evidence.get((i, j), []):
            if record.rule not in self.denied_rules:
                self._fold(i, j, record.certainty)

    def deny_rule(self, rule: str) -> None:
        """Ignore a rule from now on and drop its past evidence from every belief."""
        if rule in self.denied_rules:
            return
        self.denied_rules.add(rule)
        touched = [
            pair
            for pair, records in self._evidence.items()
            if any(record.rule == rule for record in records)
        ]
        for i, j in touched:
            self._replay(i, j)
        self.version += 1
        logger.info("Deny-listed rule %s (%d pair beliefs rebuilt)", rule, len(touched))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def probability(self, a: Rank, b: Rank) -> float:
        """Aggregated belief that a is weaker than b, in [-1, 1]."""
        if a == b:
            return 0.0
        i, j, sign = _canonical(a, b)
        return sign * float(self._belief[i, j])

    def likely_ordering(self, a: Rank, b: Rank) -> Optional[Relation]:
        """The currently favored (weaker, stronger) pair, or None if undecided."""
        p = self.probability(a, b)
        if p > 0.0:
            return (a, b)
        if p < 0.0:
            return (b, a)
        return None

    def reps(self, a: Rank, b: Rank) -> int:
        if a == b:
            return 0
        i, j, _ = _canonical(a, b)
        return int(self._reps[i, j])

    def evidence(self, a: Rank, b: Rank) -> List[Evidence]:
        """Evidence log for a pair, signed so that positive supports a < b."""
        if a == b:
            return []
        i, j, sign = _canonical(a, b)
        return [Evidence(r.rule, sign * r.certainty) for r in self._evidence.get((i, j), [])]

    def known_pairs(self) -> List[Tuple[Rank, Rank, float]]:
        """Every pair with a non-zero belief, as (rank, rank, belief) in print order."""
        rows, cols = np.nonzero(self._belief)
        return [
            (CANONICAL_RANKS[i], CANONICAL_RANKS[j], float(self._belief[i, j]))
            for i, j in zip(rows.tolist(), cols.tolist())
        ]

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def _corroboration(self, confidence: Dict[Relation, float], start: Rank, goal: Rank) -> float:
        """Widest path confidence from start to goal over confirmed relations, or 0."""
        succ: Dict[Rank, List[Tuple[Rank, float]]] = {}
        for (a, b), conf in confidence.items():
            if conf >= self.confirmation_threshold:
                succ.setdefault(a, []).append((b, conf))

        width = {start: math.inf}
        heap = [(-math.inf, start.index)]
        while heap:
            neg, idx = heapq.heappop(heap)
            node = CANONICAL_RANKS[idx]
            w = -neg
            if node == goal:
                return w
            if w < width.get(node, 0.0):
                continue
            for nxt, conf in succ.get(node, ()):
                nw = min(w, conf)
                if nw > width.get(nxt, 0.0):
                    width[nxt] = nw
                    heapq.heappush(heap, (-nw, nxt.index))
        return 0.0

    @staticmethod
    def _height(relations: List[Relation], rank: Rank) -> float:
        """Estimated relative strength of a rank from its known neighbours, in (0, 1)."""
        below = len(ancestors(relations, rank))
        above = len(descendants(relations, rank))
        return (below + 1) / (below + above + 2)

    def _forward_probability(
        self, confidence: Dict[Relation, float], a: Rank, b: Rank, belief: float
    ) -> float:
        """Probability that a < b, combining the belief with the proposed structure."""
        relations = list(confidence)
        from_belief = (1.0 + belief) / 2.0
        from_structure = (1.0 + self._height(relations, b) - self._height(relations, a)) / 2.0
        agree = from_belief * from_structure
        return agree / (agree + (1.0 - from_belief) * (1.0 - from_structure))

    def _blame(self, weaker: Rank, stronger: Rank) -> None:
        """React to a confident belief that weaker < stronger being contradicted."""
        records = [r for r in self.evidence(weaker, stronger) if r.rule not in self.denied_rules]
        rules = {r.rule for r in records}
        if len(rules) >= 2:
            bias: Dict[str, float] = {}
            for record in records:
                bias[record.rule] = bias.get(record.rule, 0.0) + record.certainty
            culprit = max(sorted(rules), key=lambda rule: bias[rule])
            if bias[culprit] > 0.0:
                logger.info(
                    "Contradiction on %s < %s blamed on rule %s (bias %+.3f)",
                    weaker,
                    stronger,
                    culprit,
                    bias[culprit],
                )
                self.deny_rule(culprit)
        elif rules:
            i, j, _ = _canonical(weaker, stronger)
            self._belief[i, j] *= self.misfire_weakening
            self.version += 1
            logger.info(
                "Isolated misfire of %s on %s < %s; belief weakened to %+.3f",
                next(iter(rules)),
                weaker,
                stronger,
                self.probability(weaker, stronger),
            )

    def relations(self, rng: np.random.Generator) -> List[Relation]:
        """Derive an acyclic relation list from the current beliefs.

        Pairs are processed from most to least confident. A pair already
        implied by confirmed relations takes that direction; otherwise a
        direction is drawn from the belief combined with the structure built
        so far. Cycles are then broken by discarding their least supported
        relations. Confidently held beliefs that the graph contradicts are
        blamed on their rules, which may deny-list a rule or weaken the belief.

        Args:
            rng: Random generator (only .random() is used)

        Returns:
            Acyclic list of (weaker, stronger) relations

        Raises:
            UnresolvableCycleError: If a cycle cannot be broken
        """
        pairs = sorted(self.known_pairs(), key=lambda item: (abs(item[2]), item[0].index, item[1].index))
        confidence: Dict[Relation, float] = {}
        contradicted: List[Relation] = []

        for a, b, belief in reversed(pairs):
            forward = self._corroboration(confidence, a, b)
            backward = self._corroboration(confidence, b, a)
            if forward > 0.0 or backward > 0.0:
                if forward >= backward:
                    relation, support = (a, b), forward
                else:
                    relation, support = (b, a), backward
                confidence[relation] = min(support + self.confidence_bump, MAX_CONFIDENCE)
                claimed = (a, b) if belief > 0.0 else (b, a)
                if claimed != relation and abs(belief) >= self.confirmation_threshold:
                    contradicted.append(claimed)
                continue

            p_forward = self._forward_probability(confidence, a, b, belief)
            favored, other = ((a, b), (b, a)) if p_forward >= 0.5 else ((b, a), (a, b))
            p_favored = max(p_forward, 1.0 - p_forward)
            if rng.random() < p_favored:
                confidence[favored] = abs(belief)
            else:
                confidence[other] = abs(belief) * (1.0 - p_favored) / p_favored

        broken = 0
        while True:
            cycle = find_cycle(list(confidence))
            if cycle is None:
                break
            walk = cycle_relations(cycle)
            confs = [confidence[rel] for rel in walk]
            high = max(confs)
            discard = [rel for rel, conf in zip(walk, confs) if conf < high - self.cycle_tolerance]
            if not discard:
                if min(confs) >= MAX_CONFIDENCE:
                    raise UnresolvableCycleError(cycle)
                discard = [walk[confs.index(min(confs))]]
            for weaker, stronger in discard:
                del confidence[(weaker, stronger)]
                if self.probability(weaker, stronger) >= self.confirmation_threshold:
                    contradicted.append((weaker, stronger))
            broken += 1

        for weaker, stronger in contradicted:
            if self.probability(weaker, stronger) >= self.confirmation_threshold:
                self._blame(weaker, stronger)

        logger.debug(
            "Derived %d relations from %d beliefs (%d cycles broken)",
            len(confidence),
            len(pairs),
            broken,
        )
        return list(confidence)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def describe(self) -> str:
        """Human-readable dump of every belief and the deny-list."""
        lines = []
        for a, b, belief in self.known_pairs():
            weaker, stronger = (a, b) if belief > 0 else (b, a)
            rules = sorted({r.rule for r in self.evidence(a, b)})
            lines.append(
                f"{weaker} < {stronger}  {abs(belief):.3f}  reps={self.reps(a, b)}  "
                f"rules={','.join(rules)}"
            )
        denied = ", ".join(sorted(self.denied_rules)) or "none"
        lines.append(f"Deny-listed rules: {denied}")
        return "\n".join(lines)
