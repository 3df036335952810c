"""Public entry points: exact, approximate, percentile and batch selection.

Every problem validates its parameters before any coordination store is
opened, then runs against a :class:`~distributed_selection.runtime.LocalRuntime`.
Paths that need cross-round state open the store at solve start and close it
on every exit path.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import torch

from .controller import IterationController, count_around, select_pivot
from .decision import decide_ranks
from .models import Action, Mode, Result, keep_side
from .resolver import resolve_remaining
from .sampler import sample_dataset
from ..config import DEFAULT_SERIAL_THRESHOLD, SelectionConfig
from ..data.sinks import Sink
from ..data.sources import Source
from ..errors import InvalidParameterError, InvariantViolation, SelectionError
from ..runtime import LocalRuntime, PartitionedDataset
from ..store import CoordinationStore, create_store
from ..utils.logging import get_logger

LOGGER = get_logger("problems")

StoreFactory = Callable[[], CoordinationStore]


def percentile_rank(n: int, p: int) -> int:
    """Rank of the ``p``-th percentile in a set of ``n`` values: ``ceil(n / 100 * p)``."""

    validate_percentile(p)
    return -(-n * p // 100)


def validate_percentile(p: int) -> None:
    if isinstance(p, bool) or not isinstance(p, int):
        raise InvalidParameterError(f"Percentile must be an integer, received {p!r}.")
    if not 1 <= p <= 100:
        raise InvalidParameterError(f"Percentile must lie within [1, 100], received {p}.")


def validate_rank(k: int, n: int) -> None:
    if isinstance(k, bool) or not isinstance(k, int):
        raise InvalidParameterError(f"Rank must be an integer, received {k!r}.")
    if not 1 <= k <= n:
        raise InvalidParameterError(f"Rank k={k} must lie within [1, {n}].")


class AbstractSelectionProblem:
    """Shared plumbing: source, sink, configuration, runtime and store access."""

    mode: Mode = Mode.EXACT

    def __init__(
        self,
        source: Source,
        sink: Optional[Sink],
        *,
        t: int = DEFAULT_SERIAL_THRESHOLD,
        config: Optional[SelectionConfig] = None,
        runtime: Optional[LocalRuntime] = None,
        store_factory: Optional[StoreFactory] = None,
        use_sink: bool = True,
    ) -> None:
        if isinstance(t, bool) or not isinstance(t, int) or t < 0:
            raise InvalidParameterError(
                f"Serial threshold t must be a non-negative integer, received {t!r}."
            )
        self.source = source
        self.sink = sink
        self.t = t
        self.config = config or SelectionConfig(t=t)
        self.runtime = runtime or LocalRuntime(self.config.runtime)
        self._store_factory = store_factory or functools.partial(create_store, self.config.store)
        self.use_sink = use_sink
        self.result: Optional[Result] = None

    @property
    def max_rounds(self) -> int:
        return self.config.max_rounds

    def solve(self) -> Result:
        LOGGER.info(
            "solve_started | mode=%s | n=%d | t=%d", self.mode.value, self.source.count(), self.t
        )
        try:
            result = self._solve()
        except SelectionError as exc:
            LOGGER.error("solve_failed | mode=%s | error=%s", self.mode.value, exc)
            raise
        self.result = result
        if self.use_sink and self.sink is not None:
            self.sink.process_result(result)
        LOGGER.info(
            "solve_finished | mode=%s | k=%d | iterations=%d",
            self.mode.value,
            result.k,
            result.iterations,
        )
        return result

    def _solve(self) -> Result:  # pragma: no cover - abstract hook
        raise NotImplementedError

    def _dataset(self) -> PartitionedDataset:
        return self.runtime.parallelize(self.source.values())

    def _open_store(self) -> CoordinationStore:
        store = self._store_factory()
        LOGGER.debug("store_opened | namespace=%s", store.namespace)
        return store


class SelectionProblem(AbstractSelectionProblem):
    """Exact k-th smallest element through iterative distributed quickselect."""

    def __init__(
        self,
        source: Source,
        sink: Optional[Sink],
        k: int,
        t: int = DEFAULT_SERIAL_THRESHOLD,
        **kwargs: Any,
    ) -> None:
        super().__init__(source, sink, t=t, **kwargs)
        validate_rank(k, source.count())
        self.k = k

    def _solve(self) -> Result:
        n = self.source.count()
        with self._open_store() as store:
            store.reset()
            controller = IterationController(store, max_rounds=self.max_rounds)
            controller.seed(k=self.k, n=n, t=self.t)
            outcome = controller.run(self._dataset())
            value = resolve_remaining(
                outcome.remaining.collect(),
                outcome.state.k,
                outcome.state.n,
                store=store,
            )
        return Result(
            k=self.k,
            t=self.t,
            mode=Mode.EXACT,
            value=value,
            iterations=outcome.state.iteration_count,
            remaining=outcome.remaining.count(),
        )


class ApproximateSelectionProblem(AbstractSelectionProblem):
    """Approximate k-th smallest element from per-partition reservoir samples.

    Does not touch the coordination store. ``Result.t`` carries the sample size
    and the value is resolved lazily from the sorted sample.
    """

    mode = Mode.APPROXIMATE

    def __init__(
        self,
        source: Source,
        sink: Optional[Sink],
        k: int,
        sample_size: int,
        **kwargs: Any,
    ) -> None:
        if isinstance(sample_size, bool) or not isinstance(sample_size, int) or sample_size < 1:
            raise InvalidParameterError(
                f"Sample size must be a positive integer, received {sample_size!r}."
            )
        kwargs.setdefault("t", sample_size)
        super().__init__(source, sink, **kwargs)
        validate_rank(k, source.count())
        self.k = k
        self.sample_size = sample_size

    def _solve(self) -> Result:
        n = self.source.count()
        sample = sample_dataset(self._dataset(), self.sample_size, seed=self.runtime.config.seed)
        LOGGER.info("sample_collected | n=%d | sample=%d", n, sample.numel())
        return Result(
            k=self.k,
            t=self.sample_size,
            mode=Mode.APPROXIMATE,
            remaining=int(sample.numel()),
            _resolver=functools.partial(resolve_remaining, sample, self.k, n),
        )


class Percentile(SelectionProblem):
    """Exact ``p``-th percentile."""

    def __init__(
        self,
        source: Source,
        sink: Optional[Sink],
        p: int,
        t: int = DEFAULT_SERIAL_THRESHOLD,
        **kwargs: Any,
    ) -> None:
        self.p = p
        super().__init__(source, sink, percentile_rank(source.count(), p), t, **kwargs)

    def _solve(self) -> Result:
        result = super()._solve()
        result.p = self.p
        return result


class ApproximatePercentile(ApproximateSelectionProblem):
    """Approximate ``p``-th percentile from a reservoir sample."""

    def __init__(
        self,
        source: Source,
        sink: Optional[Sink],
        p: int,
        sample_size: int,
        **kwargs: Any,
    ) -> None:
        self.p = p
        super().__init__(source, sink, percentile_rank(source.count(), p), sample_size, **kwargs)

    def _solve(self) -> Result:
        result = super()._solve()
        result.p = self.p
        return result


class MultiSelectionProblem(AbstractSelectionProblem):
    """Several ranks solved against one shared reduced candidate set.

    Rounds only discard a side when every pending rank lies on the other
    one. Once the ranks straddle the pivot (or the set fits under ``t``) the
    shared set is resolved: sorted once when small, otherwise each rank is
    driven through the exact controller on that shared set, reusing the same
    store.
    """

    mode = Mode.MULTI

    def __init__(
        self,
        source: Source,
        sink: Optional[Sink],
        ks: Sequence[int],
        t: int = DEFAULT_SERIAL_THRESHOLD,
        **kwargs: Any,
    ) -> None:
        super().__init__(source, sink, t=t, **kwargs)
        if not ks:
            raise InvalidParameterError("At least one rank is required.")
        n = source.count()
        for k in ks:
            validate_rank(k, n)
        self.ks = tuple(sorted(set(ks)))

    def _solve(self) -> Result:
        n = self.source.count()
        with self._open_store() as store:
            store.reset()
            for k in self.ks:
                store.add_k(k)
            store.set_n(n)
            store.set_t(self.t)
            store.set_number_of_iterations(0)
            store.set_result_found(False)
            shared, offset, values = self._reduce(store, self._dataset())
            iterations = store.get_number_of_iterations()
            if values is None:
                values, extra = self._resolve_shared(store, shared, offset)
                iterations += extra
        return Result(
            k=self.ks[0],
            t=self.t,
            mode=Mode.MULTI,
            values=values,
            iterations=iterations,
            remaining=shared.count(),
        )

    def _reduce(
        self, store: CoordinationStore, dataset: PartitionedDataset
    ) -> Tuple[PartitionedDataset, int, Optional[Dict[int, float]]]:
        offset = 0
        current = dataset
        while True:
            n = store.get_n()
            if n <= store.get_t():
                return current, offset, None
            if store.get_number_of_iterations() >= self.max_rounds:
                raise InvariantViolation(
                    f"Set reduction did not terminate within {self.max_rounds} rounds."
                )
            ks = store.get_k_values()
            shuffled, pivot = select_pivot(current, n)
            counts = count_around(shuffled, pivot)
            decision = decide_ranks(counts, ks, n)
            round_index = store.increment_iterations()
            if decision is None:
                LOGGER.info(
                    "set_reduction_stopped | round=%d | pivot=%s | n=%d | ranks=%d",
                    round_index,
                    pivot,
                    n,
                    len(ks),
                )
                return shuffled, offset, None
            LOGGER.info(
                "set_reduced | round=%d | pivot=%s | action=%s | n_next=%d",
                round_index,
                pivot,
                decision.action.value,
                decision.n_next,
            )
            if decision.action is Action.FOUND:
                return shuffled, offset, {k: float(pivot) for k in self.ks}
            store.set_k_values(list(decision.ks_next))
            store.set_n(decision.n_next)
            offset += decision.shift
            current = shuffled.filter_partitions(
                functools.partial(keep_side, pivot=pivot, action=decision.action)
            )

    def _resolve_shared(
        self, store: CoordinationStore, shared: PartitionedDataset, offset: int
    ) -> Tuple[Dict[int, float], int]:
        n = store.get_n()
        ranks: List[int] = store.get_k_values()
        if n <= store.get_t():
            ordered = torch.sort(shared.collect()).values
            return {
                rank + offset: float(ordered[rank - 1].item()) for rank in ranks
            }, 0
        values: Dict[int, float] = {}
        extra_rounds = 0
        for rank in ranks:
            controller = IterationController(store, max_rounds=self.max_rounds)
            controller.seed(k=rank, n=n, t=store.get_t())
            outcome = controller.run(shared)
            values[rank + offset] = resolve_remaining(
                outcome.remaining.collect(), outcome.state.k, outcome.state.n, store=store
            )
            extra_rounds += outcome.state.iteration_count
            store.set_n(n)
        store.set_k_values(ranks)
        return values, extra_rounds


def solve(
    source: Source,
    sink: Optional[Sink],
    k_or_percentile: Union[int, Sequence[int]],
    t: int = DEFAULT_SERIAL_THRESHOLD,
    sample_size: Optional[int] = None,
    *,
    percentile: bool = False,
    config: Optional[SelectionConfig] = None,
    runtime: Optional[LocalRuntime] = None,
    store_factory: Optional[StoreFactory] = None,
) -> Result:
    """Dispatch to the matching selection problem and solve it.

    A sequence of ranks selects the batch path, ``sample_size`` the approximate
    path, and ``percentile=True`` interprets the scalar as ``p``.
    """

    options: Dict[str, Any] = {"config": config, "runtime": runtime}
    if isinstance(k_or_percentile, (list, tuple)):
        if percentile or sample_size is not None:
            raise InvalidParameterError(
                "Batch selection accepts absolute ranks only, without a sample size."
            )
        problem: AbstractSelectionProblem = MultiSelectionProblem(
            source, sink, list(k_or_percentile), t, store_factory=store_factory, **options
        )
    elif sample_size is not None:
        cls = ApproximatePercentile if percentile else ApproximateSelectionProblem
        problem = cls(source, sink, k_or_percentile, sample_size, **options)
    else:
        cls = Percentile if percentile else SelectionProblem
        problem = cls(source, sink, k_or_percentile, t, store_factory=store_factory, **options)
    return problem.solve()


__all__ = [
    "AbstractSelectionProblem",
    "ApproximatePercentile",
    "ApproximateSelectionProblem",
    "MultiSelectionProblem",
    "Percentile",
    "SelectionProblem",
    "percentile_rank",
    "solve",
    "validate_percentile",
    "validate_rank",
]
