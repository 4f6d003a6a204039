#!/usr/bin/env python
"""Simulated match against a hidden rank ordering.

Draws a secret ordering, deals heads-up rounds and decides every showdown
with it, then feeds the outcomes through the ShowdownObserver exactly as a
live match would. Progress is reported periodically:
- Uncertainty (orderings still consistent with the relations)
- Number of relations
- Relations that contradict the hidden ordering
- Rank pairs the current ordering gets right

Usage:
    python -m hidden_ranks.scripts.simulate --rounds 500 --seed 42
    python -m hidden_ranks.scripts.simulate --rounds 2000 --report-every 200 --log-level INFO
    python -m hidden_ranks.scripts.simulate --help
"""

import argparse
import itertools
import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from rich.console import Console
from rich.table import Table

from hidden_ranks.engine.evidence import RoundOutcome, ShowdownObserver
from hidden_ranks.engine.inference import EngineConfig, InferenceEngine
from hidden_ranks.rules.hands import classify, compare_hands
from hidden_ranks.rules.ranks import CANONICAL_RANKS, Ordering, create_standard_deck
from hidden_ranks.utils.seeding import set_seed

logger = logging.getLogger(__name__)

HOLE_CARDS = 2
BOARD_CARDS = 5
POT = 10


def pair_agreement(hidden: Ordering, guess: Ordering) -> float:
    """Fraction of the 78 rank pairs that both orderings put the same way round."""
    pairs = list(itertools.combinations(CANONICAL_RANKS, 2))
    agree = sum(
        1
        for a, b in pairs
        if (hidden.position(a) < hidden.position(b)) == (guess.position(a) < guess.position(b))
    )
    return agree / len(pairs)


@dataclass
class SimulationReport:
    """Engine state after a given number of rounds."""

    round: int
    uncertainty: int
    relations: int
    contradictions: int
    agreement: float


@dataclass
class SimulationStats:
    """Statistics collected over a simulated match.

    Attributes:
        hidden: The secret ordering
        total_rounds: Number of rounds played
        showdowns: Rounds that reached showdown
        evidence: Proposals the engine accepted
        reports: Periodic snapshots of the engine state
    """

    hidden: Ordering
    total_rounds: int = 0
    showdowns: int = 0
    evidence: int = 0
    reports: List[SimulationReport] = field(default_factory=list)

    def record(self, engine: InferenceEngine, round_number: int) -> SimulationReport:
        relations = engine.current_relations()
        report = SimulationReport(
            round=round_number,
            uncertainty=engine.uncertainty(),
            relations=len(relations),
            contradictions=sum(
                1 for a, b in relations if self.hidden.position(a) > self.hidden.position(b)
            ),
            agreement=pair_agreement(self.hidden, engine.current_ordering()),
        )
        self.reports.append(report)
        return report

    def table(self) -> Table:
        """Render the periodic reports as a rich table."""
        table = Table(title=f"Hidden ordering {self.hidden}")
        table.add_column("Round", justify="right")
        table.add_column("Uncertainty", justify="right")
        table.add_column("Relations", justify="right")
        table.add_column("Contradictions", justify="right")
        table.add_column("Pairs right", justify="right")
        for report in self.reports:
            table.add_row(
                str(report.round),
                f"{report.uncertainty:,}",
                str(report.relations),
                str(report.contradictions),
                f"{report.agreement:.1%}",
            )
        return table


def play_round(
    rng: np.random.Generator, hidden: Ordering, showdown_rate: float = 1.0
) -> RoundOutcome:
    """Deal one heads-up round and decide it with the hidden ordering."""
    deck = create_standard_deck()
    order = rng.permutation(len(deck))
    cards = [deck[i] for i in order[: 2 * HOLE_CARDS + BOARD_CARDS]]
    mine = tuple(cards[:HOLE_CARDS])
    theirs = tuple(cards[HOLE_CARDS : 2 * HOLE_CARDS])
    board = tuple(cards[2 * HOLE_CARDS :])

    result = compare_hands(hidden, classify(hidden, mine + board), classify(hidden, theirs + board))
    delta = POT * (result > 0) - POT * (result < 0)

    if rng.random() >= showdown_rate:
        return RoundOutcome(my_cards=mine, opp_cards=None, board=board, delta=delta)
    return RoundOutcome(my_cards=mine, opp_cards=theirs, board=board, delta=delta)


def simulate(
    rounds: int = 500,
    seed: Optional[int] = None,
    report_every: int = 50,
    showdown_rate: float = 1.0,
    config: Optional[EngineConfig] = None,
) -> SimulationStats:
    """Run a simulated match.

    Args:
        rounds: Number of rounds to play
        seed: Random seed for the deal and the engine
        report_every: Rounds between progress reports
        showdown_rate: Fraction of rounds that reach showdown
        config: Engine configuration (seed is taken from `seed` when unset)

    Returns:
        SimulationStats with periodic reports
    """
    rng = np.random.default_rng(seed)
    hidden = Ordering(tuple(CANONICAL_RANKS[i] for i in rng.permutation(len(CANONICAL_RANKS))))
    if config is None:
        config = EngineConfig(seed=seed)
    engine = InferenceEngine(config)
    observer = ShowdownObserver(engine)
    stats = SimulationStats(hidden=hidden)
    logger.info("Hidden ordering %s", hidden)

    for round_number in range(1, rounds + 1):
        outcome = play_round(rng, hidden, showdown_rate)
        stats.total_rounds += 1
        stats.showdowns += outcome.showdown
        stats.evidence += len(observer.observe(outcome))

        if round_number % max(1, report_every) == 0 or round_number == rounds:
            report = stats.record(engine, round_number)
            logger.info(
                "Round %d: %d relations, %d contradictions, uncertainty %d",
                round_number,
                report.relations,
                report.contradictions,
                report.uncertainty,
            )

    logger.debug("Final beliefs:\n%s", engine.diagnostics())
    return stats


def main():
    """Main entry point for the simulation script."""
    parser = argparse.ArgumentParser(
        description="Simulate a match against a hidden rank ordering",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m hidden_ranks.scripts.simulate --rounds 500 --seed 42
  python -m hidden_ranks.scripts.simulate --rounds 2000 --report-every 200
  python -m hidden_ranks.scripts.simulate --rounds 1000 --showdown-rate 0.4 --log-level INFO
        """,
    )

    parser.add_argument(
        "--rounds", "-n", type=int, default=500, help="Number of rounds to play (default: 500)"
    )

    parser.add_argument(
        "--seed", "-s", type=int, default=None, help="Random seed for reproducibility"
    )

    parser.add_argument(
        "--report-every",
        type=int,
        default=50,
        help="Rounds between progress reports (default: 50)",
    )

    parser.add_argument(
        "--showdown-rate",
        type=float,
        default=1.0,
        help="Fraction of rounds that reach showdown (default: 1.0)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not 0.0 <= args.showdown_rate <= 1.0:
        print(f"Error: --showdown-rate must be within [0, 1], got {args.showdown_rate}")
        sys.exit(1)

    # Unseeded runs still get a seed, reported so they can be replayed
    seed = set_seed(args.seed)
    logger.info("Using seed %d", seed)

    console = Console()
    try:
        stats = simulate(
            rounds=args.rounds,
            seed=seed,
            report_every=args.report_every,
            showdown_rate=args.showdown_rate,
        )
    except KeyboardInterrupt:
        print("\nSimulation interrupted by user.")
        sys.exit(0)

    console.print(stats.table())
    console.print(
        f"Seed {seed}: {stats.total_rounds} rounds, {stats.showdowns} showdowns, "
        f"{stats.evidence} pieces of evidence accepted",
        markup=False,
    )


if __name__ == "__main__":
    main()
