"""Serial resolution of a small candidate set."""

from __future__ import annotations

from typing import Optional

import torch

from ..errors import InvariantViolation
from ..store import CoordinationStore
from ..utils.logging import get_logger

LOGGER = get_logger("resolver")


def local_rank(size: int, k: int, n: int) -> int:
    """Rescale rank ``k`` of a set of ``n`` values onto ``size`` remaining values.

    Computes ``ceil(size / n * k)`` in integer arithmetic.
    """

    if n < 1:
        raise InvariantViolation(f"Cannot rescale rank k={k} against N={n}.")
    return -(-size * k // n)


def resolve_remaining(
    remaining: torch.Tensor,
    k: int,
    n: int,
    *,
    store: Optional[CoordinationStore] = None,
) -> float:
    """Sort the remaining values and return the one at the rescaled rank.

    When ``store`` already reports a result, that result is returned without
    touching ``remaining``.
    """

    if store is not None and store.get_result_found():
        result = store.get_result()
        LOGGER.info("serial_resolution_skipped | result=%s", result)
        return result
    values = remaining.reshape(-1)
    if values.numel() == 0:
        raise InvariantViolation("The remaining candidate set is empty.")
    k_local = local_rank(int(values.numel()), k, n)
    if k_local < 1 or k_local > values.numel():
        raise InvariantViolation(
            f"Remaining candidate set of size {values.numel()} cannot hold rank {k_local}."
        )
    ordered = torch.sort(values).values
    LOGGER.info(
        "serial_resolution | remaining=%d | k=%d | n=%d | k_local=%d",
        values.numel(),
        k,
        n,
        k_local,
    )
    return float(ordered[k_local - 1].item())


__all__ = ["local_rank", "resolve_remaining"]
