from __future__ import annotations

import json
from pathlib import Path

import pytest

from distributed_selection.errors import InvalidParameterError

from scripts import solve as solve_cli


def test_parse_ranks_accepts_comma_lists() -> None:
    assert solve_cli._parse_ranks("10, 20,30") == [10, 20, 30]
    assert solve_cli._parse_ranks("7") == [7]


@pytest.mark.parametrize("raw", ["", " , ", "1,x", "2.5"])
def test_parse_ranks_rejects_garbage(raw: str) -> None:
    with pytest.raises(InvalidParameterError):
        solve_cli._parse_ranks(raw)


def test_validate_percentile_bounds() -> None:
    assert solve_cli._validate_percentile(1) == 1
    assert solve_cli._validate_percentile(100) == 100
    for bad in (0, 101, -5):
        with pytest.raises(InvalidParameterError):
            solve_cli._validate_percentile(bad)


def test_exact_run_writes_json(tmp_path: Path) -> None:
    output = tmp_path / "result.json"
    code = solve_cli.main(
        ["--source", "sorted-desc", "--n", "200", "--k", "17", "--t", "5", "--output", str(output)]
    )
    assert code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["mode"] == "exact"
    assert payload["value"] == 17.0


def test_percentile_run_on_file_input(tmp_path: Path) -> None:
    values = tmp_path / "values.txt"
    values.write_text("\n".join(str(value) for value in range(1, 101)), encoding="utf-8")
    output = tmp_path / "result.json"
    code = solve_cli.main(
        ["--source", "file", "--input", str(values), "--p", "90", "--output", str(output)]
    )
    assert code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["p"] == 90
    assert payload["value"] == 90.0


def test_multi_run(tmp_path: Path) -> None:
    output = tmp_path / "result.json"
    code = solve_cli.main(
        [
            "--mode",
            "multi",
            "--source",
            "sorted-desc",
            "--n",
            "50",
            "--k",
            "5,25",
            "--t",
            "3",
            "--seed",
            "1",
            "--output",
            str(output),
        ]
    )
    assert code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["values"] == {"5": 5.0, "25": 25.0}


@pytest.mark.parametrize(
    "argv",
    [
        ["--source", "uniform", "--n", "10", "--p", "0"],
        ["--source", "uniform", "--n", "10", "--k", "11"],
        ["--source", "uniform", "--n", "10", "--k", "1,2"],
        ["--mode", "approximate", "--source", "uniform", "--n", "10", "--k", "1"],
        ["--mode", "multi", "--source", "uniform", "--n", "10", "--p", "50"],
        ["--source", "file", "--k", "1"],
        ["--source", "uniform", "--k", "1"],
    ],
)
def test_invalid_parameters_exit_with_two(argv: list[str]) -> None:
    assert solve_cli.main(argv) == 2


def test_rank_argument_is_required() -> None:
    with pytest.raises(SystemExit):
        solve_cli.parse_args(["--source", "uniform", "--n", "10"])


@pytest.mark.parametrize(
    "document",
    ["selection: [t: 1\n", "selection:\n  unknown_option: 1\n"],
)
def test_unusable_config_exits_with_two(tmp_path: Path, document: str) -> None:
    config = tmp_path / "selection.yaml"
    config.write_text(document, encoding="utf-8")
    argv = ["--source", "uniform", "--n", "10", "--k", "1", "--config", str(config)]
    assert solve_cli.main(argv) == 2


def test_unknown_log_level_exits_with_two() -> None:
    argv = ["--source", "uniform", "--n", "10", "--k", "1", "--log-level", "chatty"]
    assert solve_cli.main(argv) == 2
