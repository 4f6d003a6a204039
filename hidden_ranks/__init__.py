"""Hidden Ranks - rank ordering inference for heads-up hold'em variants.

A library for playing hold'em where the strength order of the 13 ranks is
a secret permutation, learned from showdowns over the course of a match.
"""

__version__ = "0.1.0"
__author__ = "Hidden Ranks Team"

from hidden_ranks.utils.seeding import set_seed, make_rng

__all__ = ["__version__", "set_seed", "make_rng"]
