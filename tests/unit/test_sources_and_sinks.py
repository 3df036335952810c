from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import torch

from distributed_selection.data import (
    AllEqualSource,
    CollectSink,
    ExponentialSource,
    FileSource,
    JsonFileSink,
    LoggingSink,
    Sink,
    SortedDescSource,
    Source,
    UniformSource,
    ValuesSource,
    build_source,
)
from distributed_selection.errors import InvalidParameterError
from distributed_selection.selection.models import Mode, Result


def test_generated_sources_match_their_counts() -> None:
    sources = [
        UniformSource(30, low=2.0, high=3.0, seed=1),
        ExponentialSource(30, seed=1),
        SortedDescSource(30),
        AllEqualSource(30, value=4.0),
        ValuesSource([1.0] * 30),
    ]
    for source in sources:
        assert isinstance(source, Source)
        values = source.values()
        assert values.dtype == torch.float64
        assert values.numel() == source.count() == 30


def test_source_shapes() -> None:
    assert SortedDescSource(4).values().tolist() == [4.0, 3.0, 2.0, 1.0]
    assert AllEqualSource(3, value=2.0).values().tolist() == [2.0, 2.0, 2.0]
    uniform = UniformSource(100, low=2.0, high=3.0, seed=4).values()
    assert bool(((uniform >= 2.0) & (uniform < 3.0)).all())
    assert torch.equal(uniform, UniformSource(100, low=2.0, high=3.0, seed=4).values())
    assert bool((ExponentialSource(100, seed=2).values() >= 0).all())


def test_file_source_skips_blank_lines(tmp_path: Path) -> None:
    path = tmp_path / "values.txt"
    path.write_text("3\n\n1.5\n  2 \n", encoding="utf-8")
    source = FileSource(path)
    assert source.count() == 3
    assert source.values().tolist() == [3.0, 1.5, 2.0]


def test_file_source_rejects_bad_input(tmp_path: Path) -> None:
    path = tmp_path / "values.txt"
    path.write_text("1\nabc\n", encoding="utf-8")
    with pytest.raises(InvalidParameterError):
        FileSource(path)
    with pytest.raises(InvalidParameterError):
        FileSource(tmp_path / "absent.txt")


@pytest.mark.parametrize("token", ["nan", "inf", "-Infinity"])
def test_file_source_rejects_non_finite_lines(tmp_path: Path, token: str) -> None:
    path = tmp_path / "values.txt"
    path.write_text(f"1\n{token}\n3\n", encoding="utf-8")
    with pytest.raises(InvalidParameterError, match=":2 is not a finite number"):
        FileSource(path)


def test_values_source_rejects_non_finite_values() -> None:
    with pytest.raises(InvalidParameterError):
        ValuesSource([0.5, float("nan")])
    with pytest.raises(InvalidParameterError):
        ValuesSource(torch.tensor([float("-inf"), 1.0]))


def test_build_source_by_kind(tmp_path: Path) -> None:
    assert isinstance(build_source("uniform", n=5, seed=1), UniformSource)
    assert isinstance(build_source("Sorted-Desc", n=5), SortedDescSource)
    path = tmp_path / "values.txt"
    path.write_text("1\n", encoding="utf-8")
    assert isinstance(build_source("file", path=path), FileSource)
    with pytest.raises(InvalidParameterError):
        build_source("file")
    with pytest.raises(InvalidParameterError):
        build_source("uniform")
    with pytest.raises(InvalidParameterError):
        build_source("normal", n=5)
    with pytest.raises(InvalidParameterError):
        AllEqualSource(0)


def test_collect_sink_keeps_results() -> None:
    sink = CollectSink()
    assert isinstance(sink, Sink)
    with pytest.raises(LookupError):
        _ = sink.last
    result = Result(k=1, t=0, value=2.0)
    sink.process_result(result)
    assert sink.last is result


def test_json_sink_writes_manifest(tmp_path: Path) -> None:
    path = tmp_path / "out" / "result.json"
    JsonFileSink(path).process_result(
        Result(k=2, t=5, mode=Mode.MULTI, values={20: 2.0, 10: 1.0}, iterations=3)
    )
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["mode"] == "multi"
    assert payload["values"] == {"10": 1.0, "20": 2.0}
    assert "value" not in payload


def test_logging_sink_resolves_lazy_result(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("sink-test")
    result = Result(k=1, t=3, mode=Mode.APPROXIMATE, p=50, _resolver=lambda: 7.0)
    with caplog.at_level(logging.INFO, logger=logger.name):
        LoggingSink(logger).process_result(result)
    assert "value=7.0" in caplog.text
    assert "p=50" in caplog.text
    assert result.value == 7.0


def test_result_without_value_or_resolver() -> None:
    with pytest.raises(RuntimeError):
        Result(k=1, t=1).solution()
