"""Deterministic seeding utilities for reproducible simulations.

The engine never touches global random state: it draws from an injected
numpy Generator. set_seed() exists for scripts that also use Python's
random module or legacy numpy calls.
"""

import random
from typing import Optional

import numpy as np


def set_seed(seed: Optional[int] = None) -> int:
    """Set the global seeds of Python's random and NumPy.

    Args:
        seed: The seed value to use. If None, a random seed will be generated
              and returned for later reproducibility.

    Returns:
        The seed value that was used (useful when seed=None was passed).

    Example:
        >>> from hidden_ranks import set_seed
        >>> set_seed(42)
        42
    """
    if seed is None:
        seed = random.randint(0, 2**32 - 1)

    random.seed(seed)
    np.random.seed(seed)
    return seed


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create the Generator handed to the inference engine.

    Args:
        seed: Seed for the generator; None draws fresh OS entropy.
    """
    return np.random.default_rng(seed)
