"""Showdown hand classification and comparison under an arbitrary rank ordering.

Hand categories (high to low):
- Royal flush: the top five ranks of the ordering, same suit
- Straight flush: five consecutive ranks, same suit
- Four of a kind
- Full house: three of a kind and a pair
- Flush: five cards of one suit
- Straight: five consecutive ranks
- Three of a kind
- Two pair
- Pair
- High card

"Consecutive" is always relative to the ordering. The strongest rank may
also sit just below the weakest one, which allows a single wrap straight
(the analogue of A-2-3-4-5).

Comparison rules:
- Category first
- Within a category, the ordering position of each hand's highest
  representative card. Kickers are never compared.
"""

import itertools
from dataclasses import dataclass
from enum import IntEnum
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .ranks import Card, Ordering, Rank, get_rank_counts, format_cards

MIN_CARDS = 2
MAX_CARDS = 7

# Ordering positions making up a royal flush
ROYAL_POSITIONS = frozenset(range(8, 13))


class HandCategory(IntEnum):
    """Hand categories from weakest to strongest."""

    HIGH_CARD = 1
    PAIR = 2
    TWO_PAIR = 3
    THREE_OF_A_KIND = 4
    STRAIGHT = 5
    FLUSH = 6
    FULL_HOUSE = 7
    FOUR_OF_A_KIND = 8
    STRAIGHT_FLUSH = 9
    ROYAL_FLUSH = 10


CATEGORY_NAMES = {
    HandCategory.HIGH_CARD: "High Card",
    HandCategory.PAIR: "Pair",
    HandCategory.TWO_PAIR: "Two Pair",
    HandCategory.THREE_OF_A_KIND: "Three of a Kind",
    HandCategory.STRAIGHT: "Straight",
    HandCategory.FLUSH: "Flush",
    HandCategory.FULL_HOUSE: "Full House",
    HandCategory.FOUR_OF_A_KIND: "Four of a Kind",
    HandCategory.STRAIGHT_FLUSH: "Straight Flush",
    HandCategory.ROYAL_FLUSH: "Royal Flush",
}


class HandError(ValueError):
    """Raised when a hand violates the evaluator's preconditions."""

    pass


@dataclass(frozen=True)
class ShowdownHand:
    """A classified showdown hand.

    Attributes:
        category: The hand category
        cards: Representative cards (at most 5; a single card for high card).
            Grouped hands list the larger group first.
    """

    category: HandCategory
    cards: Tuple[Card, ...]

    def __len__(self) -> int:
        return len(self.cards)

    def __str__(self) -> str:
        return f"[{CATEGORY_NAMES[self.category]} {format_cards(self.cards)}]"

    def high_card(self, ordering: Ordering) -> Card:
        """The strongest representative card under the given ordering."""
        return ordering.highest_card(self.cards)

    @property
    def ranks(self) -> Tuple[Rank, ...]:
        return tuple(card.rank for card in self.cards)

    @property
    def main_rank(self) -> Rank:
        """Rank of the first (largest) group, or of the lead card."""
        return self.cards[0].rank

    @property
    def is_straight(self) -> bool:
        return self.category in (
            HandCategory.ROYAL_FLUSH,
            HandCategory.STRAIGHT_FLUSH,
            HandCategory.STRAIGHT,
        )

    @property
    def is_flush(self) -> bool:
        return self.category in (
            HandCategory.ROYAL_FLUSH,
            HandCategory.STRAIGHT_FLUSH,
            HandCategory.FLUSH,
        )

    @property
    def kind_count(self) -> Optional[int]:
        """Group size for of-a-kind hands, None otherwise."""
        return {
            HandCategory.FOUR_OF_A_KIND: 4,
            HandCategory.THREE_OF_A_KIND: 3,
            HandCategory.PAIR: 2,
        }.get(self.category)


def _verify_hand(cards: Iterable[Card]) -> List[Card]:
    cards = list(cards)
    if not MIN_CARDS <= len(cards) <= MAX_CARDS:
        raise HandError(f"Expected {MIN_CARDS}-{MAX_CARDS} cards, got {len(cards)}")
    if len(set(cards)) != len(cards):
        raise HandError(f"Duplicate cards in hand: {format_cards(cards)}")
    return cards


def _high_position(ordering: Ordering, cards: Sequence[Card]) -> int:
    return ordering.position(ordering.highest_card(cards).rank)


def _best_five(ordering: Ordering, cards: Sequence[Card]) -> Tuple[Card, ...]:
    """Repeatedly take the highest remaining card until five are chosen."""
    return tuple(ordering.sort_cards(cards, descending=True)[:5])


def _strongest(ordering: Ordering, candidates: List[List[Card]]) -> List[Card]:
    return max(candidates, key=lambda cards: _high_position(ordering, cards))


def _detect_flushes(cards: Sequence[Card]) -> List[List[Card]]:
    """Every suit group holding at least five cards."""
    by_suit: Dict = {}
    for card in cards:
        by_suit.setdefault(card.suit, []).append(card)
    return [group for group in by_suit.values() if len(group) >= 5]


def _rank_bins(ordering: Ordering, cards: Sequence[Card]) -> List[List[Card]]:
    """Cards binned by ordering position, with the top bin repeated below the bottom one."""
    bins: List[List[Card]] = [[] for _ in range(14)]
    for card in cards:
        bins[ordering.position(card.rank) + 1].append(card)
    bins[0] = bins[13]
    return bins


def _detect_straights(ordering: Ordering, cards: Sequence[Card]) -> List[List[Card]]:
    """One candidate per choice of card from each of five consecutive non-empty bins."""
    bins = _rank_bins(ordering, cards)
    straights = []
    for start in range(len(bins) - 4):
        window = bins[start : start + 5]
        if all(window):
            straights.extend(list(combo) for combo in itertools.product(*window))
    return straights


def _detect_of_a_kind(
    ordering: Ordering, cards: Sequence[Card], number: int, at_least: bool = False
) -> Optional[List[Card]]:
    """The highest group with exactly `number` cards of one rank.

    With `at_least`, larger groups qualify too and are cut down to `number` cards.
    """
    groups: Dict[Rank, List[Card]] = {}
    for card in cards:
        groups.setdefault(card.rank, []).append(card)
    matching = [
        group
        for group in groups.values()
        if len(group) == number or (at_least and len(group) > number)
    ]
    if not matching:
        return None
    best = max(matching, key=lambda group: ordering.position(group[0].rank))
    return best[:number]


def _without(cards: Sequence[Card], removed: Sequence[Card]) -> List[Card]:
    removed = set(removed)
    return [card for card in cards if card not in removed]


def _classify_groups(ordering: Ordering, cards: Sequence[Card]) -> ShowdownHand:
    """Grouping-based categories, in strict priority order."""
    quad = _detect_of_a_kind(ordering, cards, 4)
    if quad:
        return ShowdownHand(HandCategory.FOUR_OF_A_KIND, tuple(quad))

    triple = _detect_of_a_kind(ordering, cards, 3)
    if triple:
        # A second triple can supply the pair
        pair = _detect_of_a_kind(ordering, _without(cards, triple), 2, at_least=True)
        if pair:
            return ShowdownHand(HandCategory.FULL_HOUSE, tuple(triple + pair))
        return ShowdownHand(HandCategory.THREE_OF_A_KIND, tuple(triple))

    pair = _detect_of_a_kind(ordering, cards, 2)
    if pair:
        second = _detect_of_a_kind(ordering, _without(cards, pair), 2)
        if second:
            return ShowdownHand(HandCategory.TWO_PAIR, tuple(pair + second))
        return ShowdownHand(HandCategory.PAIR, tuple(pair))

    return ShowdownHand(HandCategory.HIGH_CARD, (ordering.highest_card(cards),))


def classify(ordering: Ordering, cards: Iterable[Card]) -> ShowdownHand:
    """Detect the best hand out of 2-7 distinct cards.

    Args:
        ordering: Rank strength ordering to interpret the cards with
        cards: The hand, hole cards plus board

    Returns:
        The classified ShowdownHand

    Raises:
        HandError: If the hand size is outside 2-7 or cards repeat
    """
    cards = _verify_hand(cards)

    flushes = _detect_flushes(cards)
    straights = _detect_straights(ordering, cards)

    straight_flushes = []
    for flush in flushes:
        suited = set(flush)
        for straight in straights:
            shared = [card for card in straight if card in suited]
            if len(shared) >= 5:
                straight_flushes.append(shared)

    if straight_flushes:
        best = _best_five(ordering, _strongest(ordering, straight_flushes))
        positions = {ordering.position(card.rank) for card in best}
        if positions == ROYAL_POSITIONS:
            return ShowdownHand(HandCategory.ROYAL_FLUSH, best)
        return ShowdownHand(HandCategory.STRAIGHT_FLUSH, best)

    if flushes:
        return ShowdownHand(HandCategory.FLUSH, _best_five(ordering, _strongest(ordering, flushes)))

    if straights:
        return ShowdownHand(
            HandCategory.STRAIGHT, _best_five(ordering, _strongest(ordering, straights))
        )

    return _classify_groups(ordering, cards)


def classify_ignoring_straights(ordering: Ordering, cards: Iterable[Card]) -> ShowdownHand:
    """Like classify, but never reports straights (flush vs grouping only).

    Used while straight evidence is unreliable: whether five ranks are
    consecutive depends entirely on the hypothesised ordering.
    """
    cards = _verify_hand(cards)

    flushes = _detect_flushes(cards)
    if flushes:
        return ShowdownHand(HandCategory.FLUSH, _best_five(ordering, _strongest(ordering, flushes)))

    return _classify_groups(ordering, cards)


def _is_straight(ordering: Ordering, cards: Sequence[Card]) -> bool:
    positions = sorted(ordering.position(card.rank) for card in cards)
    if len(set(positions)) != 5:
        return False
    if positions[4] - positions[0] == 4:
        return True
    # Wrap straight: the strongest rank below the four weakest
    return positions == [0, 1, 2, 3, 12]


def _classify_exact(
    ordering: Ordering, cards: Sequence[Card], straights: bool
) -> Optional[ShowdownHand]:
    """Classify a subset that must form a hand on its own, or None."""
    n = len(cards)
    counts = sorted(get_rank_counts(cards).values())
    cards = tuple(cards)

    if n == 1:
        return ShowdownHand(HandCategory.HIGH_CARD, cards)
    if n == 2 and counts == [2]:
        return ShowdownHand(HandCategory.PAIR, cards)
    if n == 3 and counts == [3]:
        return ShowdownHand(HandCategory.THREE_OF_A_KIND, cards)
    if n == 4 and counts == [4]:
        return ShowdownHand(HandCategory.FOUR_OF_A_KIND, cards)
    if n == 4 and counts == [2, 2]:
        return ShowdownHand(HandCategory.TWO_PAIR, cards)
    if n != 5:
        return None

    if counts == [2, 3]:
        return ShowdownHand(HandCategory.FULL_HOUSE, cards)

    is_flush = len({card.suit for card in cards}) == 1
    is_straight = straights and _is_straight(ordering, cards)
    if is_flush and is_straight:
        positions = {ordering.position(card.rank) for card in cards}
        if positions == ROYAL_POSITIONS:
            return ShowdownHand(HandCategory.ROYAL_FLUSH, cards)
        return ShowdownHand(HandCategory.STRAIGHT_FLUSH, cards)
    if is_flush:
        return ShowdownHand(HandCategory.FLUSH, cards)
    if is_straight:
        return ShowdownHand(HandCategory.STRAIGHT, cards)
    return None


def potential_hands(
    ordering: Ordering, cards: Iterable[Card], straights: bool = True
) -> List[ShowdownHand]:
    """Every hand formed by some subset of at most five of the cards."""
    cards = _verify_hand(cards)
    hands = []
    for size in range(1, min(5, len(cards)) + 1):
        for combo in itertools.combinations(cards, size):
            hand = _classify_exact(ordering, combo, straights)
            if hand is not None:
                hands.append(hand)
    return hands


def classify_exhaustive(ordering: Ordering, cards: Iterable[Card]) -> ShowdownHand:
    """Reference classifier: the best of every subset of at most five cards.

    Slow, but independent of the shortcut logic in classify. Both must
    compare equal on every hand.
    """
    hands = potential_hands(ordering, cards)
    return max(hands, key=cmp_to_key(lambda a, b: compare_hands(ordering, a, b)))


def classify_exhaustive_ignoring_straights(
    ordering: Ordering, cards: Iterable[Card]
) -> ShowdownHand:
    """Reference counterpart of classify_ignoring_straights."""
    hands = potential_hands(ordering, cards, straights=False)
    return max(hands, key=cmp_to_key(lambda a, b: compare_hands(ordering, a, b)))


def hand_key(ordering: Ordering, hand: ShowdownHand) -> Tuple[int, int]:
    """Sort key: (category, position of the highest representative card)."""
    return int(hand.category), _high_position(ordering, hand.cards)


def compare_hands(ordering: Ordering, hand1: ShowdownHand, hand2: ShowdownHand) -> int:
    """Compare two hands under an ordering.

    Args:
        ordering: Rank strength ordering
        hand1: First hand
        hand2: Second hand

    Returns:
        Positive if hand1 > hand2
        Negative if hand1 < hand2
        Zero if they tie on category and highest card
    """
    key1 = hand_key(ordering, hand1)
    key2 = hand_key(ordering, hand2)
    return (key1 > key2) - (key1 < key2)
