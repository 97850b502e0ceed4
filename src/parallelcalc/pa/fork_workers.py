"""
Implements the calculation via three child processes of the command-line tool, one per phase:

    <tool> --start -n <nrows> | <tool> --map | <tool> --reduce

The output of each phase is collected in full before the next process is started with it as its input. Any child
exiting with non-zero status (or killed, or not spawned at all) stops the run; its stderr ends up in the Failure.
With `verbose`, whatever the children wrote to stderr is logged as well.

The tool is explicit configuration: by default, the current interpreter running this package. `executable` allows
to point at a binary by path while keeping `tool[0]` as the program name.

To use, instantiate the dataclass ForkWorkers, with the config field containing all the tweakable behaviour, and
pass to the core.mapreduce method.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Optional, Sequence, TextIO

from parallelcalc.calc import Calculation
from parallelcalc.ds import Emitted, MaybeResult
from parallelcalc.proc import check, run_piped

logger = logging.getLogger(__name__)


def default_tool() -> list[str]:
    return [sys.executable, "-m", "parallelcalc"]


@dataclass
class Config:
    tool: Sequence[str] = field(default_factory=default_tool)
    executable: Optional[str] = None
    delay_ms: int = 0
    verbose: bool = False


def _phase(calc: Calculation, mode: Sequence[str], input: bytes, c: Config) -> bytes:
    args = [*c.tool, *mode, "--calc", calc.name]
    result = run_piped(args, input, c.executable)
    if c.verbose and result.stderr:
        logger.info(f"{mode[0]}:\n{result.stderr.decode(errors='replace')}")
    return check(result, " ".join(mode)).stdout


def fork_mapreduce(calc: Calculation, nrows: int, sink: TextIO, c: Config) -> MaybeResult[Emitted]:
    map_mode = ["--map", "-d", str(c.delay_ms)] if c.delay_ms else ["--map"]
    try:
        started = _phase(calc, ["--start", "-n", str(nrows)], b"", c)
        mapped = _phase(calc, map_mode, started, c)
        text = _phase(calc, ["--reduce"], mapped, c).decode()
    except Exception as e:
        return MaybeResult.failed(f"{calc.name} fork", e)
    try:
        sink.write(text)
    except Exception as e:
        return MaybeResult.failed(f"{calc.name} output", e)
    return MaybeResult(Emitted(text.count("\n")), [])


@dataclass
class ForkWorkers:
    config: Config

    def run(self, calc: Calculation, nrows: int, sink: TextIO) -> MaybeResult[Emitted]:
        return fork_mapreduce(calc, nrows, sink, self.config)
