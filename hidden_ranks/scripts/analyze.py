#!/usr/bin/env python
"""Offline analysis of relation snapshots dumped during a match.

A snapshot file holds one or more blocks. Each block starts with a command
line (comma-separated commands; lines starting with '#' are skipped),
followed by 13 snapshot lines as written by format_relations():

    simplify,count,check
    |2|[][3A]
    |3|[2][]
    ...
    23456789TJQKA      <- ordering consumed by the 'check' command

Commands:
- simplify: print the transitively reduced snapshot
- count: number of distinct relations
- possibilities: number of orderings consistent with the snapshot
- check: read the next line as an ordering and report rule violations

Usage:
    python -m hidden_ranks.scripts.analyze match.log
    python -m hidden_ranks.scripts.analyze match.log --log-level DEBUG
"""

import argparse
import logging
import sys
from collections import deque
from pathlib import Path
from typing import Deque, Iterable, Iterator, List

from rich.console import Console

from hidden_ranks.engine.relations import (
    Relation,
    format_relations,
    parse_relations,
    possibilities,
    simplify,
)
from hidden_ranks.rules.ranks import NUM_RANKS, Ordering

logger = logging.getLogger(__name__)


class SnapshotFormatError(ValueError):
    """Raised when a snapshot file is truncated or malformed."""

    pass


def parse_snapshot(lines: Iterable[str]) -> List[Relation]:
    """Read the 13 lines of one snapshot back into relations.

    Raises:
        SnapshotFormatError: If there are not exactly 13 lines
        ValueError: If a line is not in snapshot format
    """
    lines = list(lines)
    if len(lines) != NUM_RANKS:
        raise SnapshotFormatError(f"Expected {NUM_RANKS} snapshot lines, got {len(lines)}")
    return parse_relations(lines)


def check_ordering(relations: List[Relation], ordering: Ordering) -> List[str]:
    """Report how well an ordering agrees with a snapshot."""
    simplified = simplify(relations)
    violations = [(a, b) for a, b in simplified if ordering.position(b) < ordering.position(a)]

    output = [
        f"Correctness check for {' -> '.join(str(rank) for rank in ordering)}",
        f"Rule count: {len(relations)} ({len(simplified)})",
    ]
    output.extend(f"Rule violation: {a} -> {b}" for a, b in violations)
    correctness = 1.0 - len(violations) / len(simplified) if simplified else 1.0
    output.append(f"Correctness: {100.0 * correctness:.1f}%")
    output.append(str(possibilities(relations)))
    return output


def _next_line(lines: Deque[str], what: str) -> str:
    if not lines:
        raise SnapshotFormatError(f"Unexpected end of file while reading {what}")
    return lines.popleft().strip()


def analyze(lines: Iterable[str]) -> Iterator[str]:
    """Run every block of a snapshot file, yielding output lines.

    Args:
        lines: Lines of the snapshot file

    Yields:
        Output lines, in command order
    """
    pending = deque(lines)
    while pending:
        header = pending.popleft().strip().lower()
        if not header or header.startswith("#"):
            continue

        if len(pending) < NUM_RANKS:
            raise SnapshotFormatError(
                f"Block '{header}' has {len(pending)} snapshot lines, expected {NUM_RANKS}"
            )
        relations = parse_snapshot(pending.popleft() for _ in range(NUM_RANKS))
        logger.debug("Block '%s': %d relations", header, len(relations))

        for command in (part.strip() for part in header.split(",")):
            if command == "simplify":
                yield format_relations(simplify(relations))
            elif command == "count":
                yield str(len(relations))
            elif command == "possibilities":
                yield str(possibilities(relations))
            elif command == "check":
                ordering = Ordering.from_string(_next_line(pending, "check ordering"))
                yield from check_ordering(relations, ordering)
            else:
                yield f"Invalid command {command}"


def main():
    """Main entry point for the analysis script."""
    parser = argparse.ArgumentParser(
        description="Analyze relation snapshots from a match log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m hidden_ranks.scripts.analyze snapshots.txt
  python -m hidden_ranks.scripts.analyze snapshots.txt --log-level DEBUG
        """,
    )

    parser.add_argument("path", type=Path, help="Snapshot file to analyze")

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

    console = Console()
    try:
        with open(args.path, encoding="utf-8") as f:
            for line in analyze(f.read().splitlines()):
                style = "red" if line.startswith(("Invalid command", "Rule violation")) else None
                console.print(line, style=style, markup=False, highlight=False)
    except OSError as e:
        console.print(f"Error: cannot read {args.path}: {e}", style="bold red", markup=False)
        sys.exit(1)
    except ValueError as e:
        console.print(f"Error: {e}", style="bold red", markup=False)
        sys.exit(1)


if __name__ == "__main__":
    main()
