"""Consumers of a finished selection result."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Protocol, Union, runtime_checkable

from ..selection.models import Result
from ..utils.logging import get_logger

LOGGER = get_logger("sink")


@runtime_checkable
class Sink(Protocol):
    def process_result(self, result: Result) -> None:
        ...


class CollectSink:
    """Keeps every processed result in memory."""

    def __init__(self) -> None:
        self.results: List[Result] = []

    def process_result(self, result: Result) -> None:
        self.results.append(result)

    @property
    def last(self) -> Result:
        if not self.results:
            raise LookupError("No result has been processed yet.")
        return self.results[-1]


class LoggingSink:
    def __init__(self, logger: logging.Logger = LOGGER) -> None:
        self._logger = logger

    def process_result(self, result: Result) -> None:
        payload = result.as_dict()
        self._logger.info(
            "result_ready | %s",
            " | ".join(f"{key}={value}" for key, value in payload.items()),
        )


class JsonFileSink:
    """Writes the result as a JSON manifest."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def process_result(self, result: Result) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(result.as_dict(), indent=2), encoding="utf-8")
        LOGGER.info("result_written | path=%s", self.path)


__all__ = ["CollectSink", "JsonFileSink", "LoggingSink", "Sink"]
