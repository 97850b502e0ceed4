"""
Module contents:
 - Monoid: a Protocol representing "things you can sum together". Every join step of the engine (merging the
   per-worker accumulators after a barrier) is a monoid sum, see `msum`.
 - KeyedMultiMap: ordered key -> bag of values. The accumulator of the map and reduce phases.
 - MaybeResult and Failure: a phase or a whole calculation doesn't raise, it finishes what can be finished and
   returns the collected exceptions next to the (partial) result.
 - Emitted: the result of an end-to-end calculation, i.e., how many records got written to the output sink.
"""

from abc import abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Generic, Iterable, Iterator, Optional, Protocol, Type, TypeVar, runtime_checkable

from typing_extensions import Self


# *** Monoid ***
@runtime_checkable
class Monoid(Protocol):
    """Anything with an associative `+` and a neutral `empty()`. Workers each own one of these during a phase, and
    the single-threaded join after the phase barrier just sums them up."""

    @abstractmethod
    def __add__(self, other: Self) -> Self:
        raise NotImplementedError

    @classmethod
    @abstractmethod
    def empty(cls) -> Self:
        raise NotImplementedError


# NOTE msum needs the Type explicitly, Python can't infer the neutral element from the (possibly empty) iterable
TMonoid = TypeVar("TMonoid", bound=Monoid)
V = TypeVar("V")


def msum(i: Iterable[TMonoid], t: Type[TMonoid]) -> TMonoid:
    return sum(i, start=t.empty())


@dataclass
class KeyedMultiMap(Generic[V]):
    """Keys are kept in their natural (ascending) order on iteration, values of one key form a bag in insertion
    order. `equal_range` always yields *every* value of a key, which is what the reduce phase relies upon."""

    groups: dict[str, list[V]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> Self:
        return cls()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, V]]) -> Self:
        result = cls()
        for key, value in pairs:
            result.insert(key, value)
        return result

    def insert(self, key: str, value: V) -> None:
        self.groups.setdefault(key, []).append(value)

    def __add__(self, other: Self) -> Self:
        # union, the operands stay untouched
        merged = {k: list(vs) for k, vs in self.groups.items()}
        for key, values in other.groups.items():
            merged.setdefault(key, []).extend(values)
        return replace(self, groups=merged)

    def keys(self) -> list[str]:
        return sorted(self.groups)

    def equal_range(self, key: str) -> tuple[V, ...]:
        return tuple(self.groups.get(key, ()))

    def records(self) -> Iterator[tuple[str, V]]:
        for key in self.keys():
            for value in self.groups[key]:
                yield key, value

    @property
    def key_count(self) -> int:
        return len(self.groups)

    def __len__(self) -> int:
        return sum(len(vs) for vs in self.groups.values())


@dataclass
class Emitted:
    """Number of records written to the output sink."""

    records: int = 0

    def __add__(self, other: Self) -> Self:
        return replace(self, records=self.records + other.records)

    @classmethod
    def empty(cls) -> Self:
        return cls(0)


@dataclass
class Failure:
    """Represents a caught Exception. User fills `origin` based on context -- the phase, the partition, the command
    line of a child process, ..."""

    origin: str
    exception: Exception

    def __eq__(self, other: Any) -> bool:
        # NOTE Exception's eq is identity based, compare by type and message instead
        if not isinstance(other, Failure):
            return False
        return (
            other.origin == self.origin
            and type(other.exception) is type(self.exception)
            and str(self.exception) == str(other.exception)
        )

    def __str__(self) -> str:
        return f"{self.origin}: {type(self.exception).__name__}: {self.exception}"


@dataclass
class MaybeResult(Generic[TMonoid]):
    """Note this is *not* an Either-class, both `result` and `failure` may be filled -- e.g. records emitted before
    the output sink broke. Status of the execution is `ok`, i.e., no failure was collected."""

    result: Optional[TMonoid]  # ideally, this would be just TMonoid. Alas, because of type erasure we couldnt `empty()`
    failure: list[Failure]

    @classmethod
    def empty(cls) -> Self:
        return cls(result=None, failure=[])

    @classmethod
    def failed(cls, origin: str, exception: Exception) -> Self:
        return cls(result=None, failure=[Failure(origin, exception)])

    @property
    def ok(self) -> bool:
        return not self.failure

    def __add__(self, other: Self) -> Self:
        if self.result is None and other.result is None:
            result = None
        elif self.result is None:
            result = other.result
        elif other.result is None:
            result = self.result
        else:
            result = self.result + other.result
        return replace(self, result=result, failure=self.failure + other.failure)
