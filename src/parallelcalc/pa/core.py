import logging
from typing import Callable, Protocol, TextIO, TypeVar, runtime_checkable

from parallelcalc.calc import Calculation
from parallelcalc.ds import Emitted, MaybeResult, TMonoid

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class Strategy(Protocol):
    """We bundle config and a way of executing the start -> map -> reduce phases. All strategies write the same
    bytes to `sink` for the same calculation and row count."""

    def run(self, calc: Calculation, nrows: int, sink: TextIO) -> MaybeResult[Emitted]:
        raise NotImplementedError


def mapreduce(calc: Calculation, nrows: int, sink: TextIO, s: Strategy) -> MaybeResult[Emitted]:
    return s.run(calc, nrows, sink)


def attempt(origin: str, f: Callable[[], TMonoid]) -> MaybeResult[TMonoid]:
    """Runs a unit of work, turning an exception into a Failure tagged with `origin`."""
    try:
        return MaybeResult(f(), [])
    except Exception as e:
        logger.debug(f"{origin} failed with {e!r}")
        return MaybeResult.failed(origin, e)
