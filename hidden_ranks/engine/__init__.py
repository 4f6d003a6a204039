"""Rank ordering inference.

This module provides:
- Relation graph algorithms over (weaker, stronger) rank pairs (relations.py)
- BeliefEngine: evidence accumulation and relation sampling (belief.py)
- InferenceEngine: thread-safe facade for the betting policy (inference.py)
- ShowdownObserver: evidence rules for finished rounds (evidence.py)
"""

from .relations import (
    Relation,
    Relationships,
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

from .belief import (
    BeliefEngine,
    BeliefInvariantError,
    Evidence,
    UnresolvableCycleError,
)

from .inference import EngineConfig, InferenceEngine

from .evidence import RoundOutcome, ShowdownObserver

__all__ = [
    # Relations
    "Relation",
    "Relationships",
    "CyclicRelationsError",
    "RelationViolationError",
    "relationships",
    "reaches",
    "descendants",
    "ancestors",
    "find_cycle",
    "is_acyclic",
    "detect_cycles",
    "remove_redundancies",
    "simplify",
    "possibilities",
    "resolve_cycles",
    "break_cycles",
    "generate_ordering",
    "format_relations",
    "parse_relations",
    # Beliefs
    "BeliefEngine",
    "BeliefInvariantError",
    "Evidence",
    "UnresolvableCycleError",
    # Facade
    "EngineConfig",
    "InferenceEngine",
    "RoundOutcome",
    "ShowdownObserver",
]
