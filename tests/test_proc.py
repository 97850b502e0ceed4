import errno
import io
import logging
import shutil
import signal

import pytest

from parallelcalc.calc import SumSquare
from parallelcalc.errors import ProcessError, ResourceError, Termination
from parallelcalc.pa import ForkConfig, ForkWorkers, mapreduce
from parallelcalc.proc import call_tool, check, run_piped


def _counts(out: bytes) -> list[int]:
    return [int(e) for e in out.split()[:3]]


def test_run_piped_wc() -> None:
    result = run_piped(["wc"], b"foo bar\n")
    assert result.ok
    assert result.termination == Termination.EXITED
    assert _counts(result.stdout) == [1, 2, 8]


def test_run_piped_explicit_path() -> None:
    wc_path = shutil.which("wc")
    assert wc_path is not None
    result = run_piped(["wc"], b"foo bar\n", executable=wc_path)
    assert result.ok
    assert _counts(result.stdout) == [1, 2, 8]


def test_run_piped_nonzero_exit() -> None:
    result = run_piped(["ls", "/nosuchdirectoryplease"])
    assert not result.ok
    assert result.termination == Termination.EXITED
    assert result.returncode != 0
    assert len(result.stderr) > 0
    assert result.reason().startswith("exited with status")


def test_run_piped_spawn_failure() -> None:
    result = run_piped(["no-such-tool-parallelcalc"], b"ignored")
    assert not result.ok
    assert result.termination == Termination.SPAWN_FAILED
    assert result.returncode is None
    assert b"no-such-tool-parallelcalc" in result.stderr
    with pytest.raises(ProcessError) as e:
        check(result, "missing tool")
    assert e.value.termination == Termination.SPAWN_FAILED


def test_run_piped_signal() -> None:
    result = run_piped(["sh", "-c", "kill -TERM $$"])
    assert not result.ok
    assert result.termination == Termination.SIGNALED
    assert result.reason() == f"terminated by signal {int(signal.SIGTERM)}"


def test_run_piped_larger_than_pipe_buffer() -> None:
    # cat writes back while we are still feeding it, far beyond any pipe buffer
    payload = b"0123456789abcdef\n" * (1 << 18)
    result = run_piped(["cat"], payload)
    assert result.ok
    assert result.stdout == payload


def test_run_piped_both_outputs_large() -> None:
    payload = b"x" * (1 << 20)
    result = run_piped(["sh", "-c", "tee /dev/stderr"], payload)
    assert result.ok
    assert result.stdout == payload
    assert result.stderr == payload


def test_run_piped_empty_args() -> None:
    with pytest.raises(ValueError):
        run_piped([])


def test_check() -> None:
    result = run_piped(["sh", "-c", "echo broken >&2; exit 3"])
    with pytest.raises(ProcessError) as e:
        check(result, "sh")
    assert e.value.returncode == 3
    assert "broken" in e.value.stderr
    assert check(run_piped(["true"]), "true").ok


def test_call_tool(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    result = call_tool(["wc"])
    assert result.ok
    assert _counts(result.stdout) == [0, 0, 0]
    assert caplog.records == []

    result = call_tool(["ls", "/nosuchdirectoryplease"], verbose=True)
    assert not result.ok
    assert len(result.stderr) > 0
    messages = [r.getMessage() for r in caplog.records]
    assert messages[0] == "'ls /nosuchdirectoryplease'"
    assert any(m.startswith("  [stderr] ") for m in messages)


def test_run_piped_out_of_descriptors(monkeypatch: pytest.MonkeyPatch) -> None:
    def exhausted(*args, **kwargs):
        raise OSError(errno.EMFILE, "Too many open files")

    monkeypatch.setattr("subprocess.Popen", exhausted)
    with pytest.raises(ResourceError) as e:
        run_piped(["wc"], b"foo\n")
    assert e.value.errno == errno.EMFILE

    sink = io.StringIO()
    result = mapreduce(SumSquare(), 10, sink, ForkWorkers(ForkConfig()))
    assert not result.ok
    assert sink.getvalue() == ""
    assert isinstance(result.failure[0].exception, ResourceError)
