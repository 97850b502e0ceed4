"""
Single-threaded strategies, the reference the other ones are checked against.

 - SingleThreadDirect -- start, map and reduce on in-memory structures, the codec is used only for the output.
 - SingleThreadWorkers -- the same phases, but each one's output is written to text and parsed back by the next
   one, exactly like the `--start | --map | --reduce` pipeline does. Useful to verify the calculation survives the
   serialization; with `verbose`, the intermediate texts are logged.
"""

import io
import logging
from dataclasses import dataclass
from typing import TextIO

from parallelcalc.calc import Calculation, map_range, map_worker, reduce_keys, reduce_worker, start_worker
from parallelcalc.codec import write_records
from parallelcalc.ds import Emitted, MaybeResult
from parallelcalc.pa.core import attempt

logger = logging.getLogger(__name__)


@dataclass
class Config:
    delay_ms: int = 0
    verbose: bool = False


def direct_mapreduce(calc: Calculation, nrows: int, sink: TextIO, c: Config) -> MaybeResult[Emitted]:
    def _run() -> Emitted:
        start = list(calc.produce_start(nrows))
        mapped = map_range(calc, start, c.delay_ms)
        reduced = reduce_keys(calc, mapped, mapped.keys())
        return Emitted(write_records(sink, reduced.records()))

    return attempt(f"{calc.name} direct", _run)


def workers_mapreduce(calc: Calculation, nrows: int, sink: TextIO, c: Config) -> MaybeResult[Emitted]:
    def _start() -> str:
        out = io.StringIO()
        start_worker(calc, nrows, out)
        return out.getvalue()

    def _map(start: str) -> str:
        out = io.StringIO()
        map_worker(calc, io.StringIO(start), out, c.delay_ms)
        return out.getvalue()

    try:
        start = _start()
        if c.verbose:
            logger.info(f"Start:\n{start}")
        mapped = _map(start)
        if c.verbose:
            logger.info(f"Mapped:\n{mapped}")
    except Exception as e:
        return MaybeResult.failed(f"{calc.name} workers", e)
    return attempt(f"{calc.name} reduce worker", lambda: Emitted(reduce_worker(calc, io.StringIO(mapped), sink)))


@dataclass
class SingleThreadDirect:
    config: Config

    def run(self, calc: Calculation, nrows: int, sink: TextIO) -> MaybeResult[Emitted]:
        return direct_mapreduce(calc, nrows, sink, self.config)


@dataclass
class SingleThreadWorkers:
    config: Config

    def run(self, calc: Calculation, nrows: int, sink: TextIO) -> MaybeResult[Emitted]:
        return workers_mapreduce(calc, nrows, sink, self.config)
