"""Utility helpers for logging, environment loading, and reproducibility."""

from .logging import configure_logging
from .random import build_generator, seed_everything
from .env import load_repo_dotenv

__all__ = [
    "build_generator",
    "configure_logging",
    "load_repo_dotenv",
    "seed_everything",
]
