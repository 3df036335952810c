from __future__ import annotations

import pytest
import torch

from distributed_selection.config import RuntimeConfig
from distributed_selection.errors import InvariantViolation
from distributed_selection.runtime import LocalRuntime
from distributed_selection.selection.controller import (
    IterationController,
    Phase,
    TerminationReason,
    count_around,
    select_pivot,
)
from distributed_selection.selection.models import Action
from distributed_selection.store import InMemoryCoordinationStore


def _shuffled_range(n: int, seed: int = 0) -> torch.Tensor:
    generator = torch.Generator().manual_seed(seed)
    return (torch.randperm(n, generator=generator) + 1).to(torch.float64)


def test_seed_initialises_store(memory_store: InMemoryCoordinationStore) -> None:
    controller = IterationController(memory_store)
    controller.seed(k=3, n=10, t=2)
    state = controller.state()
    assert (state.k, state.n, state.t) == (3, 10, 2)
    assert state.iteration_count == 0
    assert state.result_found is False
    assert controller.phase is Phase.INIT


def test_seed_rejects_rank_outside_set(memory_store: InMemoryCoordinationStore) -> None:
    with pytest.raises(InvariantViolation):
        IterationController(memory_store).seed(k=11, n=10, t=0)


def test_round_uses_one_pivot_for_decision_and_filter(
    runtime: LocalRuntime, memory_store: InMemoryCoordinationStore
) -> None:
    dataset = runtime.parallelize(_shuffled_range(200))
    controller = IterationController(memory_store)
    controller.seed(k=50, n=200, t=0)
    context, remaining = controller.run_round(dataset)
    assert context.counts.total == 200
    if context.decision.action is Action.KEEP_LESS:
        assert bool((remaining.collect() < context.pivot).all())
    elif context.decision.action is Action.KEEP_GREATER:
        assert bool((remaining.collect() > context.pivot).all())
    assert remaining.count() == memory_store.get_n() or memory_store.get_result_found()
    assert memory_store.get_number_of_iterations() == 1


def test_run_shrinks_until_threshold(
    runtime: LocalRuntime, memory_store: InMemoryCoordinationStore
) -> None:
    dataset = runtime.parallelize(_shuffled_range(1000, seed=1))
    controller = IterationController(memory_store)
    controller.seed(k=321, n=1000, t=10)
    outcome = controller.run(dataset)
    assert controller.phase is Phase.TERMINATED
    sizes = [1000] + [context.decision.n_next for context in outcome.rounds]
    for before, after, context in zip(sizes, sizes[1:], outcome.rounds):
        if context.decision.action is not Action.FOUND:
            assert after < before
    if outcome.reason is TerminationReason.RESULT_FOUND:
        assert outcome.state.result == 321.0
    else:
        assert outcome.state.n <= 10
        assert outcome.remaining.count() == outcome.state.n
        ordered = torch.sort(outcome.remaining.collect()).values
        assert float(ordered[outcome.state.k - 1]) == 321.0


def test_run_skips_rounds_when_already_small(
    runtime: LocalRuntime, memory_store: InMemoryCoordinationStore
) -> None:
    controller = IterationController(memory_store)
    controller.seed(k=2, n=5, t=5)
    outcome = controller.run(runtime.parallelize([5.0, 4.0, 3.0, 2.0, 1.0]))
    assert outcome.reason is TerminationReason.THRESHOLD_REACHED
    assert outcome.rounds == []
    assert outcome.state.iteration_count == 0


def test_all_equal_input_terminates_in_one_round(
    runtime: LocalRuntime, memory_store: InMemoryCoordinationStore
) -> None:
    controller = IterationController(memory_store)
    controller.seed(k=40, n=64, t=0)
    outcome = controller.run(runtime.parallelize(torch.full((64,), 2.5, dtype=torch.float64)))
    assert outcome.reason is TerminationReason.RESULT_FOUND
    assert outcome.state.iteration_count == 1
    assert outcome.state.result == 2.5


def test_round_cap_is_fatal(memory_store: InMemoryCoordinationStore) -> None:
    runtime = LocalRuntime(RuntimeConfig(parallelism=4, seed=11))
    controller = IterationController(memory_store, max_rounds=1)
    controller.seed(k=1, n=1000, t=0)
    with pytest.raises(InvariantViolation):
        controller.run(runtime.parallelize(_shuffled_range(1000, seed=2)))


def test_pivot_helpers_agree_with_store_count(runtime: LocalRuntime) -> None:
    dataset = runtime.parallelize(_shuffled_range(100, seed=3))
    shuffled, pivot = select_pivot(dataset, 100)
    counts = count_around(shuffled, pivot)
    assert counts.total == 100
    assert counts.equal == 1
    with pytest.raises(InvariantViolation):
        select_pivot(dataset, 99)
