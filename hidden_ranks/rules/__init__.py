"""Poker rules under a hidden rank ordering.

This module provides:
- Card, rank and ordering definitions (ranks.py)
- Hand classification and comparison (hands.py)
"""

from .ranks import (
    Rank,
    Suit,
    Card,
    Ordering,
    NUM_RANKS,
    RANK_SYMBOLS,
    SUIT_LETTERS,
    SUIT_SYMBOLS,
    CANONICAL_RANKS,
    parse_rank,
    get_rank_counts,
    create_standard_deck,
    make_cards_from_string,
    format_cards,
)

from .hands import (
    HandCategory,
    CATEGORY_NAMES,
    ShowdownHand,
    HandError,
    classify,
    classify_ignoring_straights,
    classify_exhaustive,
    classify_exhaustive_ignoring_straights,
    potential_hands,
    hand_key,
    compare_hands,
)

__all__ = [
    # Ranks
    "Rank",
    "Suit",
    "Card",
    "Ordering",
    "NUM_RANKS",
    "RANK_SYMBOLS",
    "SUIT_LETTERS",
    "SUIT_SYMBOLS",
    "CANONICAL_RANKS",
    "parse_rank",
    "get_rank_counts",
    "create_standard_deck",
    "make_cards_from_string",
    "format_cards",
    # Hands
    "HandCategory",
    "CATEGORY_NAMES",
    "ShowdownHand",
    "HandError",
    "classify",
    "classify_ignoring_straights",
    "classify_exhaustive",
    "classify_exhaustive_ignoring_straights",
    "potential_hands",
    "hand_key",
    "compare_hands",
]
