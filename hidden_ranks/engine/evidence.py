"""Showdown evidence rules.

Turns finished rounds into pairwise rank evidence for the inference engine.
Hands are read with the current best-guess ordering, which is only used to
pick representative cards; the rules themselves reason from who won.

Rules:
- pair-pair: both players showed a single pair of different ranks; the
  loser's pair rank is weaker than the winner's.
- trips-trips: the same for three of a kind.
- high-card: neither player paired anything; the winner's best hole card
  outranks each of the loser's hole cards. Which of the winner's two hole
  cards actually won is a guess, hence the low certainty.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from hidden_ranks.rules.hands import HandCategory, ShowdownHand
from hidden_ranks.rules.ranks import Card, Ordering, Rank
from .inference import InferenceEngine

logger = logging.getLogger(__name__)

PAIR_PAIR = "pair-pair"
TRIPS_TRIPS = "trips-trips"
HIGH_CARD = "high-card"

PAIR_PAIR_CERTAINTY = 0.9
TRIPS_TRIPS_CERTAINTY = 0.9
HIGH_CARD_CERTAINTY = 0.3

# (rule, weaker, stronger, certainty)
Proposal = Tuple[str, Rank, Rank, float]


@dataclass(frozen=True)
class RoundOutcome:
    """Result of one finished round as reported by the match server.

    Attributes:
        my_cards: Our hole cards
        opp_cards: Opponent hole cards, None when there was no showdown
        board: Community cards
        delta: Chips won (positive), lost (negative) or zero for a split
    """

    my_cards: Tuple[Card, ...]
    opp_cards: Optional[Tuple[Card, ...]]
    board: Tuple[Card, ...]
    delta: int

    @property
    def showdown(self) -> bool:
        return self.opp_cards is not None


@dataclass(frozen=True)
class Showdown:
    """Both sides of a decided showdown, already classified."""

    ordering: Ordering
    winner_cards: Tuple[Card, ...]
    loser_cards: Tuple[Card, ...]
    winner: ShowdownHand
    loser: ShowdownHand


def _same_kind_rule(
    name: str, category: HandCategory, certainty: float
) -> Callable[[Showdown], List[Proposal]]:
    def rule(showdown: Showdown) -> List[Proposal]:
        if showdown.winner.category != category or showdown.loser.category != category:
            return []
        weaker, stronger = showdown.loser.main_rank, showdown.winner.main_rank
        if weaker == stronger:
            return []
        return [(name, weaker, stronger, certainty)]

    rule.__name__ = name
    return rule


def high_card_rule(showdown: Showdown) -> List[Proposal]:
    if (
        showdown.winner.category != HandCategory.HIGH_CARD
        or showdown.loser.category != HandCategory.HIGH_CARD
    ):
        return []
    best = showdown.ordering.highest_card(showdown.winner_cards).rank
    return [
        (HIGH_CARD, card.rank, best, HIGH_CARD_CERTAINTY)
        for card in showdown.loser_cards
        if card.rank != best
    ]


pair_pair_rule = _same_kind_rule(PAIR_PAIR, HandCategory.PAIR, PAIR_PAIR_CERTAINTY)
trips_trips_rule = _same_kind_rule(TRIPS_TRIPS, HandCategory.THREE_OF_A_KIND, TRIPS_TRIPS_CERTAINTY)

DEFAULT_RULES: Tuple[Callable[[Showdown], List[Proposal]], ...] = (
    pair_pair_rule,
    trips_trips_rule,
    high_card_rule,
)


class ShowdownObserver:
    """Feeds showdown evidence from finished rounds into an InferenceEngine."""

    def __init__(
        self,
        engine: InferenceEngine,
        rules: Sequence[Callable[[Showdown], List[Proposal]]] = DEFAULT_RULES,
    ):
        self.engine = engine
        self.rules = tuple(rules)

    def showdown(self, outcome: RoundOutcome) -> Optional[Showdown]:
        """Classify both hands of a decided showdown, None if nothing can be learned."""
        if not outcome.showdown or outcome.delta == 0:
            return None
        if outcome.delta > 0:
            winner_cards, loser_cards = outcome.my_cards, outcome.opp_cards
        else:
            winner_cards, loser_cards = outcome.opp_cards, outcome.my_cards

        ordering = self.engine.current_ordering()
        board = tuple(outcome.board)
        return Showdown(
            ordering=ordering,
            winner_cards=tuple(winner_cards),
            loser_cards=tuple(loser_cards),
            winner=self.engine.judge(tuple(winner_cards) + board, ordering),
            loser=self.engine.judge(tuple(loser_cards) + board, ordering),
        )

    def observe(self, outcome: RoundOutcome) -> List[Proposal]:
        """Submit the evidence a finished round carries.

        Returns:
            The proposals the engine accepted
        """
        showdown = self.showdown(outcome)
        if showdown is None:
            return []

        accepted = []
        for rule in self.rules:
            for proposal in rule(showdown):
                if self.engine.submit_evidence(*proposal):
                    accepted.append(proposal)
        if accepted:
            logger.debug(
                "Showdown %s beat %s: %d proposals accepted",
                showdown.winner,
                showdown.loser,
                len(accepted),
            )
        return accepted
