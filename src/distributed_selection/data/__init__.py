"""Value sources feeding a solve and sinks consuming its result."""

from .sinks import CollectSink, JsonFileSink, LoggingSink, Sink
from .sources import (
    AllEqualSource,
    ExponentialSource,
    FileSource,
    SortedDescSource,
    Source,
    UniformSource,
    ValuesSource,
    build_source,
)

__all__ = [
    "AllEqualSource",
    "CollectSink",
    "ExponentialSource",
    "FileSource",
    "JsonFileSink",
    "LoggingSink",
    "Sink",
    "SortedDescSource",
    "Source",
    "UniformSource",
    "ValuesSource",
    "build_source",
]
