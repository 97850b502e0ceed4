"""
Implements the calculation via a ThreadPoolExecutor, partitioning both the map and the reduce phase.

Phases of a run: start -> map partitioned -> map joined -> reduce partitioned -> reduce joined -> output.
 - the start records are cut into `min(parallelism, n)` contiguous slices of near-equal length, one task each,
 - every map task accumulates into its own KeyedMultiMap; nothing is shared while the tasks run, so no locks,
 - after *all* map tasks finished (a barrier), their maps are summed into one, in partition order,
 - the distinct keys are cut into `min(parallelism, m)` runs of whole key groups -- a key is never split between
   two tasks, because `reduce` must see all values of a key in one call,
 - reduce tasks look the values up in the joined map, again into private accumulators, again a barrier and a sum,
 - the joined result is written in ascending key order, independent of which task finished first.

`parallelism == 0` is the direct single-threaded path, `parallelism == 1` runs one task per phase; both produce the
same output as any other parallelism.

To use, instantiate the dataclass MultiThread with its Config and pass to the core.mapreduce method.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence, TextIO, TypeVar

from parallelcalc.calc import Calculation, map_range, reduce_keys
from parallelcalc.codec import write_records
from parallelcalc.ds import Emitted, Failure, KeyedMultiMap, MaybeResult, msum
from parallelcalc.it import even_bounds, spans
from parallelcalc.pa.sequential import Config as DirectConfig
from parallelcalc.pa.sequential import direct_mapreduce

logger = logging.getLogger(__name__)


@dataclass
class Config:
    parallelism: int
    delay_ms: int = 0
    verbose: bool = False


T = TypeVar("T")


def map_bounds(n: int, parallelism: int) -> list[int]:
    """Cut points into the start records; never more partitions than records."""
    return even_bounds(n, min(parallelism, n))


def reduce_bounds(mapped: KeyedMultiMap, parallelism: int) -> list[int]:
    """Cut points into `mapped.keys()`. Indexing keys rather than records puts every cut on a key-group edge."""
    m = mapped.key_count
    return even_bounds(m, min(parallelism, m))


def _run_partitioned(
    phase: str, f: Callable[[T], KeyedMultiMap], partitions: Sequence[T]
) -> MaybeResult[KeyedMultiMap]:
    """One task per partition, all joined before returning. Results are summed in partition order, failures of
    individual tasks are collected rather than raised."""
    if not partitions:
        return MaybeResult(KeyedMultiMap.empty(), [])
    # phase barrier: leaving the block joins every task
    with ThreadPoolExecutor(max_workers=len(partitions), thread_name_prefix=phase) as pool:
        tasks: list[Future] = [pool.submit(f, p) for p in partitions]
        logger.debug(f"{phase}: submitted {len(tasks)} tasks")
    results: list[MaybeResult[KeyedMultiMap]] = []
    for i, task in enumerate(tasks):
        e = task.exception()
        if e is not None:
            results.append(MaybeResult(None, [Failure(f"{phase} partition {i}", e)]))  # type: ignore[arg-type]
        else:
            results.append(MaybeResult(task.result(), []))
    joined = msum(results, MaybeResult)
    if joined.result is None:
        joined.result = KeyedMultiMap.empty()
    return joined


def multi_thread_mapreduce(calc: Calculation, nrows: int, sink: TextIO, c: Config) -> MaybeResult[Emitted]:
    if c.parallelism < 0:
        raise ValueError(f"parallelism must be non-negative, got {c.parallelism}")
    if c.parallelism == 0:
        return direct_mapreduce(calc, nrows, sink, DirectConfig(c.delay_ms, c.verbose))

    try:
        start = list(calc.produce_start(nrows))
    except Exception as e:
        return MaybeResult.failed(f"{calc.name} start", e)

    bounds = map_bounds(len(start), c.parallelism)
    logger.debug(f"map bounds for {len(start)} records: {bounds}")
    slices = [start[a:b] for a, b in spans(bounds)]
    mapped = _run_partitioned("map", lambda s: map_range(calc, s, c.delay_ms), slices)
    if not mapped.ok:
        return MaybeResult(None, mapped.failure)
    mapped_all: KeyedMultiMap = mapped.result  # type: ignore[assignment]
    if c.verbose:
        logger.info(f"Mapped: {len(mapped_all)} records of {mapped_all.key_count} keys in {len(slices)} partitions")

    keys = mapped_all.keys()
    bounds = reduce_bounds(mapped_all, c.parallelism)
    logger.debug(f"reduce bounds for {len(keys)} keys: {bounds}")
    key_runs = [keys[a:b] for a, b in spans(bounds)]
    reduced = _run_partitioned("reduce", lambda ks: reduce_keys(calc, mapped_all, ks), key_runs)
    if not reduced.ok:
        return MaybeResult(None, reduced.failure)
    reduced_all: KeyedMultiMap = reduced.result  # type: ignore[assignment]
    if c.verbose:
        logger.info(f"Reduced: {len(reduced_all)} records in {len(key_runs)} partitions")

    written = 0

    def _records():
        nonlocal written
        for record in reduced_all.records():
            yield record
            written += 1

    try:
        write_records(sink, _records())
    except Exception as e:
        return MaybeResult(Emitted(written), [Failure(f"{calc.name} output", e)])
    return MaybeResult(Emitted(written), [])


@dataclass
class MultiThread:
    config: Config

    def run(self, calc: Calculation, nrows: int, sink: TextIO) -> MaybeResult[Emitted]:
        return multi_thread_mapreduce(calc, nrows, sink, self.config)
