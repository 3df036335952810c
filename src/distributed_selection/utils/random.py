"""Randomness helpers for reproducible selection runs."""

from __future__ import annotations

import os
import random
from typing import Optional

import numpy as np
import torch


def seed_everything(seed: Optional[int]) -> None:
    """Seed Python, NumPy, and PyTorch RNGs.

    Parameters
    ----------
    seed:
        The seed to apply. When ``None`` the function is a no-op so callers
        can pass configuration values directly.
    """

    if seed is None:
        return

    value = int(seed)
    random.seed(value)
    os.environ["PYTHONHASHSEED"] = str(value)
    np.random.seed(value)
    torch.manual_seed(value)


def build_generator(seed: Optional[int]) -> random.Random:
    """Return a dedicated ``random.Random`` so callers never share global RNG state."""

    return random.Random(seed)


__all__ = ["build_generator", "seed_everything"]
