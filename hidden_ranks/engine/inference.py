"""Inference engine facade used by the betting policy layer.

Owns the belief state, the random generator and the current best guess at
the rank ordering. Orderings and relations are regenerated lazily, only
when the beliefs changed since the last pass. A failed pass is logged and
the last known-good relations and ordering keep being served, so a match
never stops on an inference error.

Every public method holds one re-entrant lock for its whole duration, so
the engine can be shared by the transport layer's worker threads.
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np

from hidden_ranks.rules.hands import (
    ShowdownHand,
    classify,
    classify_ignoring_straights,
    compare_hands,
)
from hidden_ranks.rules.ranks import NUM_RANKS, Card, Ordering, Rank
from .belief import BeliefEngine, BeliefInvariantError, UnresolvableCycleError
from .relations import (
    CyclicRelationsError,
    Relation,
    RelationViolationError,
    format_relations,
    generate_ordering,
    possibilities,
)

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Inference engine configuration."""

    # Belief engine
    confirmation_threshold: float = 0.6
    confidence_bump: float = 0.01
    cycle_tolerance: float = 0.05
    misfire_weakening: float = 0.5

    # Ordering generation
    ordering_stop_probability: float = 0.25

    # Whether judge() may report straights under the current ordering
    straights_reliable: bool = False

    # Misc
    seed: Optional[int] = None


class InferenceEngine:
    """Hidden rank ordering inference for one match.

    Attributes:
        config: Engine configuration
        beliefs: The underlying belief engine
        rng: Random generator used for ordering generation and tie-breaking
        failures: Number of inference passes that failed
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """Initialize the engine.

        Args:
            config: Engine configuration (defaults to EngineConfig())
            rng: Random generator; seeded from config.seed when not given
        """
        self.config = config if config is not None else EngineConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.beliefs = BeliefEngine(
            confirmation_threshold=self.config.confirmation_threshold,
            confidence_bump=self.config.confidence_bump,
            cycle_tolerance=self.config.cycle_tolerance,
            misfire_weakening=self.config.misfire_weakening,
        )
        self.failures = 0
        self._lock = threading.RLock()
        self._relations: List[Relation] = []
        self._ordering = Ordering.canonical()
        self._possibilities = math.factorial(NUM_RANKS)
        self._synced_version = self.beliefs.version

    def _refresh(self) -> None:
        if self.beliefs.version == self._synced_version:
            return
        try:
            relations = self.beliefs.relations(self.rng)
            ordering = generate_ordering(
                relations, self.rng, stop_probability=self.config.ordering_stop_probability
            )
            count = possibilities(relations)
        except (
            UnresolvableCycleError,
            BeliefInvariantError,
            CyclicRelationsError,
            RelationViolationError,
        ):
            self.failures += 1
            logger.exception(
                "Inference pass failed; keeping last known-good ordering %s", self._ordering
            )
            return
        finally:
            # Blame inside the pass bumps the version; that is part of this pass
            self._synced_version = self.beliefs.version
        self._relations = relations
        self._ordering = ordering
        self._possibilities = count
        logger.info(
            "Regenerated ordering %s from %d relations (%d possibilities)",
            ordering,
            len(relations),
            count,
        )

    # ------------------------------------------------------------------
    # Hand evaluation
    # ------------------------------------------------------------------

    def evaluate(self, cards: Iterable[Card], ordering: Optional[Ordering] = None) -> ShowdownHand:
        """Classify a hand, by default under the current ordering."""
        return classify(ordering if ordering is not None else self.current_ordering(), cards)

    def evaluate_ignoring_straights(
        self, cards: Iterable[Card], ordering: Optional[Ordering] = None
    ) -> ShowdownHand:
        """Classify a hand without straights, by default under the current ordering."""
        return classify_ignoring_straights(
            ordering if ordering is not None else self.current_ordering(), cards
        )

    def judge(self, cards: Iterable[Card], ordering: Optional[Ordering] = None) -> ShowdownHand:
        """Classify a hand the way the policy layer should trust it.

        Straights are only reported once config.straights_reliable is set.
        """
        if self.config.straights_reliable:
            return self.evaluate(cards, ordering)
        return self.evaluate_ignoring_straights(cards, ordering)

    def compare(
        self, hand1: ShowdownHand, hand2: ShowdownHand, ordering: Optional[Ordering] = None
    ) -> int:
        """Compare two hands; positive if hand1 is stronger."""
        return compare_hands(
            ordering if ordering is not None else self.current_ordering(), hand1, hand2
        )

    # ------------------------------------------------------------------
    # Evidence and inference
    # ------------------------------------------------------------------

    def submit_evidence(self, rule: str, a: Rank, b: Rank, certainty: float) -> bool:
        """Submit evidence that `a` is weaker than `b` (negative certainty: stronger).

        Returns:
            Whether the evidence was accepted. Rejection (deny-listed rule,
            a == b, zero certainty) is a normal outcome.
        """
        with self._lock:
            return self.beliefs.update(rule, a, b, certainty)

    def likely_ordering(self, a: Rank, b: Rank) -> Optional[Relation]:
        with self._lock:
            return self.beliefs.likely_ordering(a, b)

    def current_relations(self) -> List[Relation]:
        """Acyclic (weaker, stronger) relations behind the current ordering."""
        with self._lock:
            self._refresh()
            return list(self._relations)

    def current_ordering(self) -> Ordering:
        """The active best-guess ordering."""
        with self._lock:
            self._refresh()
            return self._ordering

    def uncertainty(self) -> int:
        """Number of orderings consistent with the current relations (13! when nothing is known)."""
        with self._lock:
            self._refresh()
            return self._possibilities

    def snapshot(self) -> str:
        """Current relations in the line-oriented snapshot format."""
        with self._lock:
            self._refresh()
            return format_relations(self._relations)

    def diagnostics(self) -> str:
        """Human-readable dump for operator logs; not used for decisions."""
        with self._lock:
            self._refresh()
            return "\n".join(
                [
                    self.beliefs.describe(),
                    f"Relations: {len(self._relations)}",
                    f"Ordering: {self._ordering}",
                    f"Possibilities: {self._possibilities}",
                    f"Failed passes: {self.failures}",
                ]
            )
