"""Logger hierarchy for the selection runtime and its entry points.

Every component logs below one root, ``"distributed selection"``, so a single
call to :func:`configure_logging` controls the whole package while individual
components (``store``, ``controller``, ``sampler``, ...) can be turned up on
their own.
"""

from __future__ import annotations

import logging
from logging import Logger
from typing import Iterable, Mapping, Optional, Union

from ..errors import InvalidParameterError

ROOT_LOGGER = "distributed selection"
COMPONENTS = (
    "cli",
    "controller",
    "decision",
    "problems",
    "resolver",
    "runtime",
    "sampler",
    "sink",
    "store",
)
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

Level = Union[int, str]


def resolve_level(level: Level) -> int:
    """Accept ``logging`` constants or names such as ``"debug"``."""

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise InvalidParameterError(f"Unknown log level: {level!r}")
    return resolved


def get_logger(component: str) -> Logger:
    """Return the logger of one package component, e.g. ``get_logger("store.file")``."""

    if component.split(".", 1)[0] not in COMPONENTS:
        raise ValueError(f"Unknown logging component: {component!r}")
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


def configure_logging(
    level: Level = logging.INFO,
    *,
    name: str = ROOT_LOGGER,
    propagate: bool = False,
    extra_loggers: Optional[Iterable[str]] = None,
    component_levels: Optional[Mapping[str, Level]] = None,
) -> Logger:
    """Configure and return a logger instance, optionally binding child loggers.

    Parameters
    ----------
    level:
        Verbosity of ``name`` and ``extra_loggers``.
    name:
        Logger to configure; defaults to the package root so every component
        inherits the handler.
    component_levels:
        Per-component overrides, e.g. ``{"controller": "DEBUG"}``. Those
        loggers keep propagating into the root handler.
    """

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    resolved = resolve_level(level)

    def _attach(target: Logger) -> None:
        if not any(isinstance(existing, logging.StreamHandler) for existing in target.handlers):
            target.addHandler(handler)
        target.setLevel(resolved)
        target.propagate = propagate

    logger = logging.getLogger(name)
    _attach(logger)

    if extra_loggers:
        for logger_name in extra_loggers:
            _attach(logging.getLogger(logger_name))

    for component, component_level in (component_levels or {}).items():
        get_logger(component).setLevel(resolve_level(component_level))

    return logger


__all__ = [
    "COMPONENTS",
    "ROOT_LOGGER",
    "configure_logging",
    "get_logger",
    "resolve_level",
]
