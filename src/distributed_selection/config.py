"""Runtime configuration for distributed selection runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Union

import yaml

from .errors import InvalidParameterError
from .utils.env import env_str, load_repo_dotenv

DEFAULT_SERIAL_THRESHOLD = 1000
DEFAULT_MAX_ROUNDS = 1000

_STORE_ADAPTERS = ("memory", "file")
_PARTITIONERS = ("random", "hash")
_DTYPES = ("float32", "fp32", "float", "float64", "fp64", "double")


@dataclass(slots=True)
class StoreConfig:
    """Where cross-round selection state lives."""

    adapter: Literal["memory", "file"] = "memory"
    namespace: str = "percentiles"
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        self.adapter = str(self.adapter).strip().lower()  # type: ignore[assignment]
        if self.adapter not in _STORE_ADAPTERS:
            raise InvalidParameterError(
                f"StoreConfig.adapter must be one of {_STORE_ADAPTERS}, received {self.adapter!r}."
            )
        self.namespace = str(self.namespace).strip()
        if not self.namespace:
            raise InvalidParameterError("StoreConfig.namespace must not be empty.")
        if self.path is not None:
            self.path = Path(self.path)
        if self.adapter == "file" and self.path is None:
            raise InvalidParameterError("StoreConfig.path is required for the 'file' adapter.")


@dataclass(slots=True)
class RuntimeConfig:
    """Controls the local data-parallel runtime."""

    parallelism: int = 4
    max_workers: Optional[int] = None
    partitioner: Literal["random", "hash"] = "random"
    seed: Optional[int] = None
    dtype: str = "float64"

    def __post_init__(self) -> None:
        if int(self.parallelism) < 1:
            raise InvalidParameterError(
                f"RuntimeConfig.parallelism must be >= 1, received {self.parallelism}."
            )
        self.parallelism = int(self.parallelism)
        if self.max_workers is not None and int(self.max_workers) < 1:
            raise InvalidParameterError("RuntimeConfig.max_workers must be positive when set.")
        self.partitioner = str(self.partitioner).strip().lower()  # type: ignore[assignment]
        if self.partitioner not in _PARTITIONERS:
            raise InvalidParameterError(
                f"RuntimeConfig.partitioner must be one of {_PARTITIONERS}, "
                f"received {self.partitioner!r}."
            )
        self.dtype = str(self.dtype).strip().lower()
        if self.dtype not in _DTYPES:
            raise InvalidParameterError(f"Unsupported dtype alias: {self.dtype!r}")


@dataclass(slots=True)
class SelectionConfig:
    """Aggregated configuration for a selection run."""

    t: int = DEFAULT_SERIAL_THRESHOLD
    max_rounds: int = DEFAULT_MAX_ROUNDS
    sample_size: Optional[int] = None
    store: StoreConfig = field(default_factory=StoreConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)

    def __post_init__(self) -> None:
        if isinstance(self.store, Mapping):  # type: ignore[arg-type]
            self.store = StoreConfig(**self.store)  # type: ignore[arg-type]
        if isinstance(self.runtime, Mapping):  # type: ignore[arg-type]
            self.runtime = RuntimeConfig(**self.runtime)  # type: ignore[arg-type]
        if int(self.t) < 0:
            raise InvalidParameterError(f"SelectionConfig.t must be >= 0, received {self.t}.")
        self.t = int(self.t)
        if int(self.max_rounds) < 1:
            raise InvalidParameterError(
                f"SelectionConfig.max_rounds must be >= 1, received {self.max_rounds}."
            )
        self.max_rounds = int(self.max_rounds)
        if self.sample_size is not None:
            if int(self.sample_size) < 1:
                raise InvalidParameterError(
                    f"SelectionConfig.sample_size must be positive, received {self.sample_size}."
                )
            self.sample_size = int(self.sample_size)


def load_selection_config(path: Optional[Union[str, Path]] = None) -> SelectionConfig:
    """Build a :class:`SelectionConfig` from an optional YAML file plus env overrides.

    The YAML document may hold three top-level sections: ``selection``, ``store``
    and ``runtime``. Environment variables (``SELECTION_STORE_ADAPTER``,
    ``SELECTION_STORE_PATH``, ``SELECTION_STORE_NAMESPACE``, ``SELECTION_PARALLELISM``)
    win over file values.
    """

    raw: Dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Selection config {config_path} does not exist.")
        with config_path.open("r", encoding="utf-8") as handle:
            try:
                raw = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise InvalidParameterError(
                    f"Selection config {config_path} is not valid YAML: {exc}"
                ) from exc
        if not isinstance(raw, Mapping):
            raise InvalidParameterError(f"Selection config {config_path} must contain a mapping.")
    load_repo_dotenv()

    selection = _section(raw, "selection")
    store = _section(raw, "store")
    runtime = _section(raw, "runtime")
    store.update(_store_overrides())
    runtime.update(_runtime_overrides())
    try:
        return SelectionConfig(
            **selection,
            store=StoreConfig(**store),
            runtime=RuntimeConfig(**runtime),
        )
    except InvalidParameterError:
        raise
    except (TypeError, ValueError) as exc:
        # Unknown keys surface as unexpected keyword arguments, bad scalars as ValueError.
        raise InvalidParameterError(f"Unsupported selection config entry: {exc}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise InvalidParameterError(f"Config section {name!r} must be a mapping.")
    return dict(section)


def _store_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    adapter = env_str("SELECTION_STORE_ADAPTER")
    if adapter is not None:
        overrides["adapter"] = adapter
    store_path = env_str("SELECTION_STORE_PATH")
    if store_path is not None:
        overrides["path"] = Path(store_path)
    namespace = env_str("SELECTION_STORE_NAMESPACE")
    if namespace is not None:
        overrides["namespace"] = namespace
    return overrides


def _runtime_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    parallelism = env_str("SELECTION_PARALLELISM")
    if parallelism is not None:
        try:
            overrides["parallelism"] = int(parallelism)
        except ValueError as exc:
            raise InvalidParameterError(
                f"SELECTION_PARALLELISM must be an integer, received {parallelism!r}."
            ) from exc
    return overrides


__all__ = [
    "DEFAULT_MAX_ROUNDS",
    "DEFAULT_SERIAL_THRESHOLD",
    "RuntimeConfig",
    "SelectionConfig",
    "StoreConfig",
    "load_selection_config",
]
