"""Card rank definitions and utilities.

The 13 ranks are printed 2 3 4 5 6 7 8 9 T J Q K A, but that print order
carries no strength meaning: ranks only support equality and hashing. Any
strength comparison goes through an explicit Ordering (a permutation of all
13 ranks, index 0 = weakest, index 12 = strongest).

This module provides:
- Rank, suit and card definitions
- Ordering, the hypothesised strength permutation
- Parsing and deck utilities
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Tuple


class Rank(Enum):
    """Card ranks. The value is the canonical print index, not a strength."""

    TWO = 0
    THREE = 1
    FOUR = 2
    FIVE = 3
    SIX = 4
    SEVEN = 5
    EIGHT = 6
    NINE = 7
    TEN = 8
    JACK = 9
    QUEEN = 10
    KING = 11
    ACE = 12

    @property
    def index(self) -> int:
        """Position in the canonical print order."""
        return self.value

    @property
    def symbol(self) -> str:
        return RANK_SYMBOLS[self]

    def __str__(self) -> str:
        return RANK_SYMBOLS[self]


class Suit(Enum):
    """Card suits."""

    HEART = 0
    DIAMOND = 1
    CLUB = 2
    SPADE = 3

    def __str__(self) -> str:
        return SUIT_LETTERS[self]


NUM_RANKS = 13

# Rank symbols for display
RANK_SYMBOLS = {
    Rank.TWO: "2",
    Rank.THREE: "3",
    Rank.FOUR: "4",
    Rank.FIVE: "5",
    Rank.SIX: "6",
    Rank.SEVEN: "7",
    Rank.EIGHT: "8",
    Rank.NINE: "9",
    Rank.TEN: "T",
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
    Rank.ACE: "A",
}

# Suit letters used by the match server's card strings
SUIT_LETTERS = {
    Suit.HEART: "h",
    Suit.DIAMOND: "d",
    Suit.CLUB: "c",
    Suit.SPADE: "s",
}

# Suit symbols for display
SUIT_SYMBOLS = {
    Suit.HEART: "♥",
    Suit.DIAMOND: "♦",
    Suit.CLUB: "♣",
    Suit.SPADE: "♠",
}

# Symbol to rank mapping (for parsing)
SYMBOL_TO_RANK = {v: k for k, v in RANK_SYMBOLS.items()}
SYMBOL_TO_RANK["10"] = Rank.TEN

# Canonical print order, the fixed reference direction for rank pairs
CANONICAL_RANKS: Tuple[Rank, ...] = tuple(Rank)


def parse_rank(s: str) -> Rank:
    """Parse a rank symbol such as 'A', 't' or '10'.

    Raises:
        ValueError: If the symbol is not a rank
    """
    key = s.strip().upper()
    if key not in SYMBOL_TO_RANK:
        raise ValueError(f"Invalid rank: {s!r}")
    return SYMBOL_TO_RANK[key]


@dataclass(frozen=True)
class Card:
    """A playing card with rank and suit.

    Immutable and hashable for use in sets. Cards are deliberately not
    orderable: their strength depends on the active Ordering.
    """

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{RANK_SYMBOLS[self.rank]}{SUIT_LETTERS[self.suit]}"

    def __repr__(self) -> str:
        return f"Card({self})"

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Parse a card from a string like 'Ac', 'Th', '10♠'.

        Args:
            s: Card string in format "RANK+SUIT"

        Returns:
            Card object

        Raises:
            ValueError: If string cannot be parsed
        """
        s = s.strip()
        if len(s) < 2:
            raise ValueError(f"String too short for card: {s!r}")

        suit_char = s[-1]
        rank_str = s[:-1]

        suit_map = {v: k for k, v in SUIT_SYMBOLS.items()}
        suit_map.update({v: k for k, v in SUIT_LETTERS.items()})
        suit_map.update({v.upper(): k for k, v in SUIT_LETTERS.items()})

        if suit_char not in suit_map:
            raise ValueError(f"Invalid suit character: {suit_char}")
        return cls(rank=parse_rank(rank_str), suit=suit_map[suit_char])


@dataclass(frozen=True)
class Ordering:
    """A hypothesised strength order: a permutation of all 13 ranks.

    Index 0 is the weakest rank and index 12 the strongest. Orderings are
    ephemeral best guesses; they are regenerated rather than mutated.

    Attributes:
        ranks: The 13 ranks from weakest to strongest
    """

    ranks: Tuple[Rank, ...]

    def __post_init__(self):
        ranks = tuple(self.ranks)
        if len(ranks) != NUM_RANKS or set(ranks) != set(Rank):
            raise ValueError(
                f"Ordering must be a permutation of all {NUM_RANKS} ranks, got "
                f"{' '.join(str(r) for r in ranks)}"
            )
        object.__setattr__(self, "ranks", ranks)
        object.__setattr__(self, "_positions", {rank: i for i, rank in enumerate(ranks)})

    @classmethod
    def canonical(cls) -> "Ordering":
        """The conventional order 2 < 3 < ... < K < A."""
        return cls(CANONICAL_RANKS)

    @classmethod
    def from_string(cls, s: str) -> "Ordering":
        """Parse an ordering like '2,3,4,5,6,7,8,9,T,J,Q,K,A' or '23456789TJQKA'."""
        s = s.strip()
        if "," in s:
            symbols = [part for part in s.split(",") if part.strip()]
        else:
            symbols = [ch for ch in s if not ch.isspace()]
        return cls(tuple(parse_rank(sym) for sym in symbols))

    def position(self, rank: Rank) -> int:
        """Strength position of a rank (0 = weakest)."""
        return self._positions[rank]

    def compare_ranks(self, rank1: Rank, rank2: Rank) -> int:
        """Positive if rank1 is stronger, negative if weaker, zero if equal."""
        return self._positions[rank1] - self._positions[rank2]

    def highest_card(self, cards: Iterable[Card]) -> Card:
        """The strongest card under this ordering.

        Raises:
            ValueError: If no cards are given
        """
        cards = list(cards)
        if not cards:
            raise ValueError("Expected non-empty hand")
        return max(cards, key=lambda card: self._positions[card.rank])

    def sort_cards(self, cards: Iterable[Card], descending: bool = False) -> List[Card]:
        """Sort cards by strength under this ordering, ties broken by suit."""
        return sorted(
            cards,
            key=lambda card: (self._positions[card.rank], card.suit.value),
            reverse=descending,
        )

    def satisfies(self, relations: Iterable[Tuple[Rank, Rank]]) -> bool:
        """Whether every (weaker, stronger) relation holds in this ordering."""
        return all(self._positions[a] < self._positions[b] for a, b in relations)

    @property
    def weakest(self) -> Rank:
        return self.ranks[0]

    @property
    def strongest(self) -> Rank:
        return self.ranks[-1]

    def __getitem__(self, index: int) -> Rank:
        return self.ranks[index]

    def __iter__(self):
        return iter(self.ranks)

    def __len__(self) -> int:
        return NUM_RANKS

    def __str__(self) -> str:
        return "".join(RANK_SYMBOLS[r] for r in self.ranks)


def get_rank_counts(cards: Iterable[Card]) -> Dict[Rank, int]:
    """Count occurrences of each rank in a list of cards.

    Args:
        cards: List of Card objects

    Returns:
        Dict mapping Rank to count
    """
    counts: Dict[Rank, int] = {}
    for card in cards:
        counts[card.rank] = counts.get(card.rank, 0) + 1
    return counts


def create_standard_deck() -> List[Card]:
    """Create a standard 52-card deck.

    Returns:
        List of 52 Card objects (13 ranks × 4 suits)
    """
    deck = []
    for rank in Rank:
        for suit in Suit:
            deck.append(Card(rank=rank, suit=suit))
    return deck


def make_cards_from_string(s: str) -> List[Card]:
    """Parse cards from a string like "Ac Kd" or "2c,2h,Ac".

    Args:
        s: Card strings separated by whitespace or commas

    Returns:
        List of Card objects
    """
    return [Card.from_string(cs) for cs in s.replace(",", " ").split()]


def format_cards(cards: Iterable[Card]) -> str:
    return " ".join(str(c) for c in cards)
