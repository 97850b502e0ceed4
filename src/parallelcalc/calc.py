"""
The computation contract and the phase workers built upon it.

A calculation provides three pure operations -- `produce_start`, `map_one`, `reduce` -- plus parsers for the value
type of each phase, so that the same calculation can run in memory, through the text format, or as three separate
processes. The operations share no mutable state and are thus safe to call from several threads at once.

The command-line equivalent of a calculation is

    parallelcalc --start -n 10 | parallelcalc --map | parallelcalc --reduce
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, Sequence, TextIO, TypeVar, runtime_checkable

from parallelcalc.codec import read_records, write_records
from parallelcalc.ds import KeyedMultiMap
from parallelcalc.it import flatmap

logger = logging.getLogger(__name__)

S = TypeVar("S")
M = TypeVar("M")
R = TypeVar("R")


@runtime_checkable
class Calculation(Protocol[S, M, R]):
    name: str  # usable as a directory name
    start_type: Callable[[str], S]
    mapped_type: Callable[[str], M]
    reduced_type: Callable[[str], R]

    def produce_start(self, nrows: int) -> Iterable[tuple[str, S]]:
        raise NotImplementedError

    def map_one(self, key: str, value: S) -> Iterable[tuple[str, M]]:
        raise NotImplementedError

    def reduce(self, key: str, values: Sequence[M]) -> Iterable[R]:
        """`values` is every mapped value of `key`, never a part of them."""
        raise NotImplementedError


def map_range(calc: Calculation, records: Iterable[tuple[str, S]], delay_ms: int = 0) -> KeyedMultiMap:
    """Maps a slice of start records into a fresh accumulator owned by the caller."""
    result: KeyedMultiMap = KeyedMultiMap.empty()

    def _one(record: tuple[str, S]) -> Iterable[tuple[str, M]]:
        mapped = calc.map_one(*record)
        if delay_ms:
            time.sleep(delay_ms / 1000)
        return mapped

    for key, value in flatmap(_one, records):
        result.insert(key, value)
    return result


def reduce_keys(calc: Calculation, mapped: KeyedMultiMap, keys: Iterable[str]) -> KeyedMultiMap:
    """Reduces the given keys. The bag of each key is looked up in the whole `mapped`, so a worker handed a subset
    of keys still sees all values of each of them."""
    result: KeyedMultiMap = KeyedMultiMap.empty()
    for key in keys:
        for reduced in calc.reduce(key, mapped.equal_range(key)):
            result.insert(key, reduced)
    return result


def start_worker(calc: Calculation, nrows: int, output: TextIO) -> int:
    return write_records(output, calc.produce_start(nrows))


def map_worker(calc: Calculation, input: Iterable[str], output: TextIO, delay_ms: int = 0) -> int:
    """Streams: every start row is mapped and written before the next one is read."""
    written = 0
    for record in read_records(input, calc.start_type):
        written += write_records(output, map_range(calc, [record], delay_ms).records())
    return written


def reduce_worker(calc: Calculation, input: Iterable[str], output: TextIO) -> int:
    mapped = KeyedMultiMap.from_pairs(read_records(input, calc.mapped_type))
    logger.debug(f"reduce worker read {len(mapped)} records of {mapped.key_count} keys")
    return write_records(output, reduce_keys(calc, mapped, mapped.keys()).records())


@dataclass
class SumSquare:
    """Sums of squares of the integers 1..n, split by parity. For n = 10 the result is EVEN 220, ODD 165."""

    name: str = "sumSquare"
    start_type: Callable[[str], int] = int
    mapped_type: Callable[[str], int] = int
    reduced_type: Callable[[str], int] = int

    def produce_start(self, nrows: int) -> Iterable[tuple[str, int]]:
        return [("EVEN" if k % 2 == 0 else "ODD", k) for k in range(1, nrows + 1)]

    def map_one(self, key: str, value: int) -> Iterable[tuple[str, int]]:
        return [(key, value * value)]

    def reduce(self, key: str, values: Sequence[int]) -> Iterable[int]:
        return [sum(values)]


CALCULATIONS: dict[str, Callable[[], Calculation]] = {
    "sumSquare": SumSquare,
}
