"""
Module contents:
    - flatmap -- standard functional construct, the map phase is a flatmap of `map_one` over the start records,
    - even_bounds -- cut points splitting `n` items into `parts` contiguous, near-equal runs,
    - spans -- turn a list of cut points into `(start, end)` index pairs.

Partitions are expressed as plain indices rather than iterators/views, so a worker owns its slice outright.
"""
from itertools import islice
from typing import Callable, Iterable, TypeVar

TA = TypeVar("TA")
TB = TypeVar("TB")


def flatmap(f: Callable[[TA], Iterable[TB]], xs: Iterable[TA]) -> Iterable[TB]:
    """Often one wants to map-and-filter a sequence, which perfectly suits the flatMap."""
    return (y for x in xs for y in f(x))


def _round_div(a: int, b: int) -> int:
    # a / b rounded half up, exact for ints (no float, no banker's rounding)
    return (2 * a + b) // (2 * b)


def even_bounds(n: int, parts: int) -> list[int]:
    """even_bounds(10, 4) -> [0, 3, 5, 8, 10]. Boundary `k` is `round(k * n / parts)`, so the result is
    non-decreasing, starts at 0 and ends at n. No parts means no runs, i.e., `[0]`."""
    if parts < 0 or n < 0:
        raise ValueError(f"negative input: n={n}, parts={parts}")
    if parts == 0:
        return [0]
    return [_round_div(k * n, parts) for k in range(parts + 1)]


def spans(bounds: Iterable[int]) -> list[tuple[int, int]]:
    """spans([0, 3, 5]) -> [(0, 3), (3, 5)]"""
    bs = list(bounds)
    return list(zip(bs, islice(bs, 1, None)))
