"""Distributed selection core: medians, pivots, decisions, rounds and resolution."""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import Dict, Iterable, Tuple

__all__ = [
    "Action",
    "ApproximatePercentile",
    "ApproximateSelectionProblem",
    "BatchDecision",
    "ClassificationCounts",
    "Decision",
    "IterationController",
    "IterationOutcome",
    "Mode",
    "MultiSelectionProblem",
    "PartitionSummary",
    "Percentile",
    "Phase",
    "PivotCandidate",
    "ReservoirSampler",
    "Result",
    "RoundContext",
    "SelectionProblem",
    "SelectionState",
    "TerminationReason",
    "classify_partition",
    "decide",
    "decide_ranks",
    "local_rank",
    "partition_median",
    "percentile_rank",
    "resolve_remaining",
    "sample_dataset",
    "solve",
    "weigh_candidates",
    "weighted_median",
]

_EXPORTS: Dict[str, Tuple[str, ...]] = {
    "models": (
        "Action",
        "ClassificationCounts",
        "Decision",
        "Mode",
        "PartitionSummary",
        "PivotCandidate",
        "Result",
        "RoundContext",
        "SelectionState",
    ),
    "median": ("partition_median", "weigh_candidates"),
    "weighted_median": ("weighted_median",),
    "decision": ("BatchDecision", "classify_partition", "decide", "decide_ranks"),
    "controller": ("IterationController", "IterationOutcome", "Phase", "TerminationReason"),
    "sampler": ("ReservoirSampler", "sample_dataset"),
    "resolver": ("local_rank", "resolve_remaining"),
    "problems": (
        "ApproximatePercentile",
        "ApproximateSelectionProblem",
        "MultiSelectionProblem",
        "Percentile",
        "SelectionProblem",
        "percentile_rank",
        "solve",
    ),
}


def _load_module(name: str) -> ModuleType:
    return importlib.import_module(f"distributed_selection.selection.{name}")


def __getattr__(name: str):
    for module_name, symbols in _EXPORTS.items():
        if name in symbols:
            module = _load_module(module_name)
            return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> Iterable[str]:
    return sorted(set(__all__))
