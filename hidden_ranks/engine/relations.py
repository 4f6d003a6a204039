"""Relation graphs over ranks.

A relation (a, b) asserts "a is weaker than b". A list of relations is a
directed graph over the 13 ranks and is only usable for producing orderings
when it is acyclic.

This module provides:
- relationships: predecessors / successors / violations of a rank
- Cycle detection (detect_cycles, find_cycle) and resolution (resolve_cycles)
- remove_redundancies and simplify (transitive reduction)
- possibilities: exact number of orderings consistent with the relations
- generate_ordering: one consistent ordering, biased toward print order
- format_relations / parse_relations: the line-oriented snapshot format

All functions are pure: relation lists are never mutated.
"""

import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple

import numpy as np

from hidden_ranks.rules.ranks import CANONICAL_RANKS, NUM_RANKS, Ordering, Rank, parse_rank

logger = logging.getLogger(__name__)

Relation = Tuple[Rank, Rank]

# Per-step probability of stopping on an eligible rank while generating orderings
DEFAULT_STOP_PROBABILITY = 0.25

_POPCOUNT = np.array([bin(mask).count("1") for mask in range(1 << NUM_RANKS)], dtype=np.int64)
_MASKS = np.arange(1 << NUM_RANKS, dtype=np.int64)


class CyclicRelationsError(ValueError):
    """Raised when an operation requiring a DAG receives cyclic relations."""

    def __init__(self, cycle: Sequence[Rank]):
        self.cycle = list(cycle)
        super().__init__(f"Relations contain a cycle: {' -> '.join(str(r) for r in self.cycle)}")


class RelationViolationError(ValueError):
    """Raised when a rank is both before and after another rank."""

    pass


class Relationships(NamedTuple):
    """Direct neighbours of a rank in a relation graph.

    Attributes:
        pre: Ranks that must precede the rank
        post: Ranks the rank must precede
        violations: Ranks found in both pre and post (empty in a valid graph)
    """

    pre: List[Rank]
    post: List[Rank]
    violations: List[Rank]


def relationships(relations: Iterable[Relation], value: Rank) -> Relationships:
    """Collect the direct predecessors and successors of a rank."""
    pre: List[Rank] = []
    post: List[Rank] = []
    for a, b in relations:
        if b == value and a not in pre:
            pre.append(a)
        if a == value and b not in post:
            post.append(b)
    violations = [rank for rank in pre if rank in post]
    return Relationships(pre, post, violations)


def _successor_map(relations: Iterable[Relation]) -> Dict[Rank, List[Rank]]:
    succ: Dict[Rank, List[Rank]] = {}
    for a, b in relations:
        targets = succ.setdefault(a, [])
        if b not in targets:
            targets.append(b)
    return succ


def _vertices(relations: Iterable[Relation]) -> List[Rank]:
    """Ranks in order of first appearance."""
    seen: List[Rank] = []
    for a, b in relations:
        for rank in (a, b):
            if rank not in seen:
                seen.append(rank)
    return seen


def reaches(
    relations: Iterable[Relation],
    start: Rank,
    goal: Rank,
    exclude: Optional[Relation] = None,
) -> bool:
    """Whether a directed path leads from start to goal, optionally skipping one relation."""
    succ = _successor_map(rel for rel in relations if rel != exclude)
    stack = [start]
    visited = {start}
    while stack:
        node = stack.pop()
        for nxt in succ.get(node, ()):
            if nxt == goal:
                return True
            if nxt not in visited:
                visited.add(nxt)
                stack.append(nxt)
    return False


def descendants(relations: Iterable[Relation], value: Rank) -> Set[Rank]:
    """Every rank that must come after value."""
    succ = _successor_map(relations)
    found: Set[Rank] = set()
    stack = [value]
    while stack:
        for nxt in succ.get(stack.pop(), ()):
            if nxt not in found:
                found.add(nxt)
                stack.append(nxt)
    found.discard(value)
    return found


def ancestors(relations: Iterable[Relation], value: Rank) -> Set[Rank]:
    """Every rank that must come before value."""
    return descendants(((b, a) for a, b in relations), value)


def find_cycle(relations: Iterable[Relation]) -> Optional[List[Rank]]:
    """Return one cycle as a closed walk [v0, ..., v0], or None if acyclic.

    Linear in the size of the graph, unlike detect_cycles.
    """
    relations = list(relations)
    succ = _successor_map(relations)
    state: Dict[Rank, int] = {}  # 1 = on the current path, 2 = finished
    for root in _vertices(relations):
        if state.get(root):
            continue
        path = [root]
        iters = [iter(succ.get(root, ()))]
        state[root] = 1
        while path:
            nxt = next(iters[-1], None)
            if nxt is None:
                state[path.pop()] = 2
                iters.pop()
            elif state.get(nxt) == 1:
                return path[path.index(nxt) :] + [nxt]
            elif not state.get(nxt):
                state[nxt] = 1
                path.append(nxt)
                iters.append(iter(succ.get(nxt, ())))
    return None


def is_acyclic(relations: Iterable[Relation]) -> bool:
    return find_cycle(relations) is None


def _require_acyclic(relations: Sequence[Relation]) -> None:
    cycle = find_cycle(relations)
    if cycle is not None:
        raise CyclicRelationsError(cycle)


def detect_cycles(relations: Iterable[Relation]) -> List[List[Rank]]:
    """Return every cycle found by depth-first path extension from each rank.

    Cycles are closed walks [v0, v1, ..., v0], deduplicated by vertex set.
    A cycle whose vertex set is a proper subset of another detected cycle's
    vertex set is dropped: cutting the larger cycle is what matters.

    Enumerates simple cycles, so it is exponential on dense graphs; use
    find_cycle when any single cycle will do.
    """
    relations = list(relations)
    succ = _successor_map(relations)
    vertices = _vertices(relations)
    order = {rank: i for i, rank in enumerate(vertices)}

    cycles: List[List[Rank]] = []
    vertex_sets: List[frozenset] = []
    for start in vertices:
        # Only extend through later vertices so each cycle is found from its first vertex
        pending = [[start]]
        while pending:
            path = pending.pop()
            for link in succ.get(path[-1], ()):
                if link == start:
                    key = frozenset(path)
                    if key not in vertex_sets:
                        vertex_sets.append(key)
                        cycles.append(path + [start])
                elif order[link] > order[start] and link not in path:
                    pending.append(path + [link])

    return [
        cycle
        for cycle, key in zip(cycles, vertex_sets)
        if not any(key < other for other in vertex_sets)
    ]


def cycle_relations(cycle: Sequence[Rank]) -> List[Relation]:
    """The relations walked by a closed cycle."""
    return [(cycle[i], cycle[i + 1]) for i in range(len(cycle) - 1)]


def remove_redundancies(relations: Iterable[Relation]) -> List[Relation]:
    """Drop exact duplicate relations, keeping first occurrences in order."""
    unique: List[Relation] = []
    seen: Set[Relation] = set()
    for relation in relations:
        if relation not in seen:
            seen.add(relation)
            unique.append(relation)
    return unique


def simplify(relations: Iterable[Relation]) -> List[Relation]:
    """Transitive reduction of an acyclic relation list.

    A relation is dropped when another path already leads from its weaker to
    its stronger rank.
    """
    unique = remove_redundancies(relations)
    return [(a, b) for a, b in unique if not reaches(unique, a, b, exclude=(a, b))]


def possibilities(relations: Iterable[Relation]) -> int:
    """Count the orderings of all 13 ranks consistent with the relations.

    Exact linear-extension count by dynamic programming over rank subsets:
    counts[S] is the number of ways to place exactly the ranks in S first.
    The empty relation list gives 13!.

    Raises:
        CyclicRelationsError: If the relations contain a cycle
    """
    relations = remove_redundancies(relations)
    _require_acyclic(relations)

    pred = [0] * NUM_RANKS
    for a, b in relations:
        pred[b.index] |= 1 << a.index

    counts = np.zeros(1 << NUM_RANKS, dtype=np.int64)
    counts[0] = 1
    for size in range(NUM_RANKS):
        layer = _MASKS[_POPCOUNT == size]
        layer = layer[counts[layer] > 0]
        for v in range(NUM_RANKS):
            bit = 1 << v
            ready = layer[((layer & bit) == 0) & ((layer & pred[v]) == pred[v])]
            counts[ready | bit] += counts[ready]
    return int(counts[-1])


def resolve_cycles(relations: Iterable[Relation], cycles: Sequence[Sequence[Rank]]) -> List[Relation]:
    """Propose cycle relations to reinstate without recreating a contradiction.

    `relations` are the surviving relations, with every relation on a cycle
    already removed. Each cycle relation (a, b) starts from a uniform prior and
    is weighted by how firmly its endpoints are already placed by the survivors
    (the number of ranks known to follow a, times the number known to precede
    b), divided by the number of cycles it took part in. Relations whose
    posterior beats the prior are reinstated, strongest first, skipping any
    that would close a cycle.

    Returns:
        The relations to reinstate (never including a cycle, even together
        with the survivors)
    """
    surviving = remove_redundancies(relations)
    occurrences: Counter = Counter()
    for cycle in cycles:
        occurrences.update(cycle_relations(cycle))
    participants = list(occurrences)
    if not participants:
        return []

    likelihoods = []
    for a, b in participants:
        pinned = (1 + len(descendants(surviving, a))) * (1 + len(ancestors(surviving, b)))
        likelihoods.append(pinned / occurrences[(a, b)])

    prior = 1.0 / len(participants)
    evidence = sum(prior * lik for lik in likelihoods)
    posteriors = [prior * lik / evidence for lik in likelihoods]

    ranked = sorted(zip(participants, posteriors), key=lambda item: -item[1])
    accepted: List[Relation] = []
    for (a, b), posterior in ranked:
        if posterior <= prior + 1e-12:
            break
        current = surviving + accepted
        if (a, b) in current or reaches(current, b, a):
            continue
        accepted.append((a, b))

    logger.debug(
        "Resolved %d cycle(s): reinstating %d of %d relations",
        len(cycles),
        len(accepted),
        len(participants),
    )
    return accepted


def break_cycles(relations: Iterable[Relation]) -> List[Relation]:
    """Detect, cut and resolve cycles until the relations are acyclic."""
    current = remove_redundancies(relations)
    while True:
        cycles = detect_cycles(current)
        if not cycles:
            return current
        cut = {relation for cycle in cycles for relation in cycle_relations(cycle)}
        surviving = [relation for relation in current if relation not in cut]
        current = surviving + resolve_cycles(surviving, cycles)


def generate_ordering(
    relations: Iterable[Relation],
    rng: Optional[np.random.Generator] = None,
    stop_probability: float = DEFAULT_STOP_PROBABILITY,
) -> Ordering:
    """Produce one ordering consistent with acyclic relations.

    At each step the eligible ranks (all predecessors placed, no successor
    placed) are scanned in print order, stopping at each with
    `stop_probability`; the first eligible rank is taken if the scan never
    stops. Unconstrained steps therefore stay close to print order.

    Args:
        relations: Acyclic relations
        rng: Random generator (only .random() is used)
        stop_probability: Chance of stopping on each eligible rank

    Raises:
        RelationViolationError: If a rank is both before and after another
            (a two-rank cycle)
        CyclicRelationsError: If the relations contain a longer cycle
    """
    relations = remove_redundancies(relations)
    links = {}
    for rank in CANONICAL_RANKS:
        rel = relationships(relations, rank)
        if rel.violations:
            raise RelationViolationError(
                f"{rank} is both before and after: {' '.join(str(r) for r in rel.violations)}"
            )
        links[rank] = rel
    _require_acyclic(relations)
    if rng is None:
        rng = np.random.default_rng()

    placed: List[Rank] = []
    remaining = list(CANONICAL_RANKS)
    while remaining:
        eligible = [
            rank
            for rank in remaining
            if all(p in placed for p in links[rank].pre)
            and not any(q in placed for q in links[rank].post)
        ]
        choice = eligible[0]
        for rank in eligible:
            if rng.random() < stop_probability:
                choice = rank
                break
        placed.append(choice)
        remaining.remove(choice)

    ordering = Ordering(tuple(placed))
    logger.debug("Generated ordering %s from %d relations", ordering, len(relations))
    return ordering


def format_relations(relations: Iterable[Relation]) -> str:
    """Encode relations as 13 lines of `|<rank>|[<predecessors>][<successors>]`."""
    relations = list(relations)
    lines = []
    for rank in CANONICAL_RANKS:
        rel = relationships(relations, rank)
        pre = "".join(str(r) for r in rel.pre)
        post = "".join(str(r) for r in rel.post)
        lines.append(f"|{rank}|[{pre}][{post}]")
    return "\n".join(lines)


_SNAPSHOT_LINE = re.compile(r"^\|(\w)\|\[([^\]]*)\],?\[([^\]]*)\]$")


def _parse_rank_list(s: str) -> List[Rank]:
    return [parse_rank(ch) for ch in s if ch not in ", "]


def parse_relations(lines: Iterable[str]) -> List[Relation]:
    """Decode snapshot lines produced by format_relations.

    Raises:
        ValueError: If a line is not in snapshot format
    """
    relations: List[Relation] = []
    for line in lines:
        match = _SNAPSHOT_LINE.match(line.strip())
        if match is None:
            raise ValueError(f"Invalid relation line: {line!r}")
        rank = parse_rank(match.group(1))
        relations.extend((pre, rank) for pre in _parse_rank_list(match.group(2)))
        relations.extend((rank, post) for post in _parse_rank_list(match.group(3)))
    return remove_redundancies(relations)
