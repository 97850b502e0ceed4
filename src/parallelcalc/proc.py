"""
Runs an external tool with its stdin, stdout and stderr connected to pipes owned by us, and waits for it.

Input is fed and both outputs are drained at the same time (`Popen.communicate` does so with threads or a
selector), so a child writing more than a pipe buffer before having read all of its input doesn't deadlock.
Interrupted reads and writes are retried by the runtime. All three pipes are closed and the child reaped before
`run_piped` returns, whatever the outcome.

Failing to spawn the tool is not an exception but a failed `PipeResult` with the diagnostic in `stderr`.
"""

import errno
import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from parallelcalc.errors import ProcessError, ResourceError, Termination

logger = logging.getLogger(__name__)

# errnos of an exec that can't start the program, as opposed to failing to set up the pipes
_spawn_errnos = {errno.ENOENT, errno.EACCES, errno.ENOEXEC, errno.ENOTDIR, errno.EPERM}


@dataclass
class PipeResult:
    termination: Termination
    returncode: Optional[int]  # None iff the spawn failed
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.termination == Termination.EXITED and self.returncode == 0

    def reason(self) -> str:
        if self.termination == Termination.SIGNALED and self.returncode is not None:
            return f"terminated by signal {-self.returncode}"
        if self.termination == Termination.SPAWN_FAILED:
            return "failed to spawn"
        return f"exited with status {self.returncode}"


def run_piped(args: Sequence[str], input: bytes = b"", executable: Optional[str] = None) -> PipeResult:
    """`args[0]` is the program name seen by the child. It is looked up on PATH unless `executable` gives an
    explicit path."""
    if not args:
        raise ValueError("empty argument list")
    argv = list(args)
    try:
        p = subprocess.Popen(
            argv,
            executable=executable,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        if e.errno not in _spawn_errnos:
            raise ResourceError(e.errno, f"unable to set up pipes for {shlex.join(argv)}: {e.strerror}") from e
        logger.debug(f"spawn of {argv[0]} failed: {e}")
        diagnostic = f"{executable or argv[0]}: {e.strerror or e}\n".encode()
        return PipeResult(Termination.SPAWN_FAILED, None, b"", diagnostic)
    logger.debug(f"spawned {shlex.join(argv)} with pid {p.pid}, feeding {len(input)} bytes")
    with p:
        stdout, stderr = p.communicate(input)
    returncode = p.returncode
    termination = Termination.SIGNALED if returncode < 0 else Termination.EXITED
    result = PipeResult(termination, returncode, stdout, stderr)
    logger.debug(f"pid {p.pid} {result.reason()}, {len(stdout)} bytes out, {len(stderr)} bytes err")
    return result


def check(result: PipeResult, what: str) -> PipeResult:
    if not result.ok:
        raise ProcessError(what, result.termination, result.returncode, result.stderr.decode(errors="replace"))
    return result


def call_tool(args: Sequence[str], executable: Optional[str] = None, verbose: bool = False) -> PipeResult:
    """Runs a tool without any input, logging the command line and whatever it printed if `verbose`."""
    if verbose:
        logger.info(f"'{shlex.join(args)}'")
    result = run_piped(args, b"", executable)
    if verbose:
        if result.stdout:
            logger.info(f"  [stdout] {result.stdout.decode(errors='replace')}")
        if result.stderr:
            logger.info(f"  [stderr] {result.stderr.decode(errors='replace')}")
    return result
