import io
import logging

import pytest

from parallelcalc.calc import SumSquare
from parallelcalc.cli import EXIT_FAILURE, EXIT_USAGE, build_parser, main, select_strategy
from parallelcalc.pa.hadoop_streaming import streaming_args

_expected_10 = "EVEN\t220\nODD\t165\n"


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["--threads", "0"],
        ["--threads", "1"],
        ["--threads", "2"],
        ["--threads", "2", "-d", "1"],
        ["--fork"],
        ["-v", "--threads", "3"],
    ],
)
def test_strategies(argv: list[str], capsys: pytest.CaptureFixture) -> None:
    assert main(argv) == 0
    assert capsys.readouterr().out == _expected_10


def test_worker_modes(capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    assert main(["--start", "-n", "4"]) == 0
    started = capsys.readouterr().out
    assert started == "ODD\t1\nEVEN\t2\nODD\t3\nEVEN\t4\n"

    monkeypatch.setattr("sys.stdin", io.StringIO(started))
    assert main(["--map"]) == 0
    mapped = capsys.readouterr().out
    assert mapped == "ODD\t1\nEVEN\t4\nODD\t9\nEVEN\t16\n"

    monkeypatch.setattr("sys.stdin", io.StringIO(mapped))
    assert main(["--reduce", "--calc", "sumSquare"]) == 0
    assert capsys.readouterr().out == "EVEN\t20\nODD\t10\n"


def test_worker_parse_failure(
    capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("ODD\t1\nEVEN\ttwo\n"))
    assert main(["--map"]) == EXIT_FAILURE
    assert capsys.readouterr().out == "ODD\t1\n"
    assert any("line 2" in r.getMessage() for r in caplog.records if r.levelno == logging.ERROR)


@pytest.mark.parametrize(
    "argv",
    [
        ["-n", "0"],
        ["-n", "1001"],
        ["-d", "-1"],
        ["--threads", "65"],
        ["--map", "--reduce"],
        ["--fork", "--threads", "2"],
        ["--calc", "nonsense"],
        ["--bogus"],
    ],
)
def test_usage_errors(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as e:
        main(argv)
    assert e.value.code == EXIT_USAGE


def test_hadoop_not_configured(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.delenv("HADOOP_INSTALL", raising=False)
    assert main(["--hadoop"]) == EXIT_USAGE
    assert any("HADOOP_INSTALL" in r.getMessage() for r in caplog.records)


def test_fork_failure(capsys: pytest.CaptureFixture, caplog: pytest.LogCaptureFixture) -> None:
    assert main(["--fork", "--tool", "no-such-tool-parallelcalc"]) == EXIT_FAILURE
    assert capsys.readouterr().out == ""
    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
    assert any("ProcessError" in m for m in messages)
    assert messages[-1].startswith("FAILURE")


def test_hadoop_ships_files() -> None:
    argv = ["--hadoop", "--tool", "/x/tool", "--hadoop-file", "/x/tool", "--hadoop-file", "a.cfg"]
    args = build_parser().parse_args(argv)
    strategy = select_strategy(args)
    assert list(strategy.config.files) == ["/x/tool", "a.cfg"]  # type: ignore[attr-defined]
    assert list(strategy.config.tool) == ["/x/tool"]  # type: ignore[attr-defined]
    jar = streaming_args(SumSquare(), strategy.config, "/opt/hadoop")  # type: ignore[attr-defined]
    assert jar[-4:] == ["-file", "/x/tool", "-file", "a.cfg"]

    args = build_parser().parse_args(["--hadoop"])
    assert list(select_strategy(args).config.files) == []  # type: ignore[attr-defined]
