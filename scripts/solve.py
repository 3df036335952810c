# ruff: noqa: E402
"""Command line entry point for distributed order-statistic selection."""

from __future__ import annotations

# Ensure local src/ is on sys.path when running from the repo without installation
import os as _os
import sys as _sys

_REPO_ROOT = _os.path.abspath(_os.path.join(_os.path.dirname(__file__), ".."))
_SRC_PATH = _os.path.join(_REPO_ROOT, "src")
if _SRC_PATH not in _sys.path and _os.path.isdir(_SRC_PATH):
    _sys.path.insert(0, _SRC_PATH)

import argparse
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from distributed_selection.config import SelectionConfig, load_selection_config
from distributed_selection.data import JsonFileSink, LoggingSink, Sink, build_source
from distributed_selection.errors import InvalidParameterError, SelectionError
from distributed_selection.selection import solve
from distributed_selection.utils import configure_logging, seed_everything
from distributed_selection.utils.logging import get_logger

LOGGER = get_logger("cli.solve")

_MODES = ("exact", "approximate", "multi")
_SOURCES = ("uniform", "exponential", "sorted-desc", "all-equal", "file")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Select the k-th smallest value or a percentile from a partitioned dataset."
    )
    parser.add_argument(
        "--mode",
        choices=_MODES,
        default="exact",
        help="Exact quickselect, approximate reservoir sampling, or several ranks at once.",
    )
    rank = parser.add_mutually_exclusive_group(required=True)
    rank.add_argument(
        "--k",
        type=str,
        default=None,
        help="Rank to select (1-based). In multi mode a comma-separated list such as 10,20,30.",
    )
    rank.add_argument(
        "--p",
        type=int,
        default=None,
        help="Percentile to select, an integer within [1, 100].",
    )
    parser.add_argument(
        "--t",
        type=int,
        default=None,
        help="Serial threshold: once at most t candidates remain they are sorted locally.",
    )
    parser.add_argument(
        "--sample-size",
        type=int,
        default=None,
        help="Reservoir size per partition for the approximate mode.",
    )
    parser.add_argument(
        "--source",
        choices=_SOURCES,
        default="uniform",
        help="Where the values come from.",
    )
    parser.add_argument(
        "--n",
        type=int,
        default=None,
        help="Number of generated values for synthetic sources.",
    )
    parser.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Text file with one number per line (for --source file).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML configuration with selection, store and runtime sections.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the result as JSON to this path instead of logging it.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for data generation, partitioning and sampling.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging verbosity (DEBUG, INFO, WARNING, ...).",
    )
    return parser.parse_args(argv)


def _parse_ranks(raw: str) -> List[int]:
    ranks: List[int] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            ranks.append(int(token))
        except ValueError as exc:
            raise InvalidParameterError(f"Rank {token!r} is not an integer.") from exc
    if not ranks:
        raise InvalidParameterError("At least one rank must be provided via --k.")
    return ranks


def _validate_percentile(p: int) -> int:
    if not 1 <= p <= 100:
        raise InvalidParameterError(f"--p must lie within [1, 100], received {p}.")
    return p


def _build_config(args: argparse.Namespace) -> SelectionConfig:
    config = load_selection_config(args.config)
    if args.t is not None:
        config.t = args.t
    if args.sample_size is not None:
        config.sample_size = args.sample_size
    if args.seed is not None:
        config.runtime = replace(config.runtime, seed=args.seed)
    # Re-run validation on the overridden values.
    return SelectionConfig(
        t=config.t,
        max_rounds=config.max_rounds,
        sample_size=config.sample_size,
        store=config.store,
        runtime=config.runtime,
    )


def _build_sink(output: Optional[Path]) -> Sink:
    if output is None:
        return LoggingSink()
    return JsonFileSink(output)


def run(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    config = _build_config(args)
    seed_everything(config.runtime.seed)
    source = build_source(args.source, n=args.n, path=args.input, seed=config.runtime.seed)
    sink = _build_sink(args.output)
    percentile = args.p is not None

    if args.mode == "multi":
        if percentile:
            raise InvalidParameterError("Multi mode takes absolute ranks via --k.")
        target: object = _parse_ranks(args.k)
        sample_size = None
    else:
        if percentile:
            target = _validate_percentile(args.p)
        else:
            ranks = _parse_ranks(args.k)
            if len(ranks) != 1:
                raise InvalidParameterError("Only multi mode accepts several ranks.")
            target = ranks[0]
        sample_size = None
        if args.mode == "approximate":
            sample_size = config.sample_size
            if sample_size is None:
                raise InvalidParameterError("Approximate mode requires --sample-size.")

    LOGGER.info(
        "cli_solve | mode=%s | source=%s | n=%d | t=%d",
        args.mode,
        args.source,
        source.count(),
        config.t,
    )
    result = solve(
        source,
        sink,
        target,  # type: ignore[arg-type]
        config.t,
        sample_size,
        percentile=percentile,
        config=config,
    )
    if result.values is None:
        LOGGER.info("cli_result | value=%s | iterations=%d", result.solution(), result.iterations)
    else:
        LOGGER.info("cli_result | values=%s | iterations=%d", result.values, result.iterations)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return run(args)
    except (InvalidParameterError, FileNotFoundError) as exc:
        LOGGER.error("invalid_parameters | %s", exc)
        return 2
    except SelectionError as exc:
        LOGGER.error("solve_failed | %s", exc)
        return 1


if __name__ == "__main__":
    _sys.exit(main())
