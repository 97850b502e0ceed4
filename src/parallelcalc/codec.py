"""
The wire format shared by all phases and strategies: one record per line, `<key><TAB><value><LF>`, end of stream
is end of input. Keys are opaque non-empty strings without tab or newline; values are written with `str` and read
back with a per-phase parser (`int`, `str`, ...), which must consume the whole value segment.
"""

import re
from typing import Any, Callable, Iterable, Iterator, Optional, TextIO, TypeVar

T = TypeVar("T")


class CodecError(ValueError):
    pass


class ParseError(CodecError):
    def __init__(self, reason: str, line: str, lineno: Optional[int] = None):
        self.reason = reason
        self.line = line
        self.lineno = lineno
        where = f"line {lineno}" if lineno is not None else "line"
        super().__init__(f"{where} {line!r}: {reason}")


def encode_record(key: str, value: Any) -> str:
    text = str(value)
    if not key:
        raise CodecError("empty key")
    if "\t" in key or "\n" in key:
        raise CodecError(f"key {key!r} contains a tab or newline")
    if "\n" in text:
        raise CodecError(f"value {text!r} of key {key!r} contains a newline")
    return f"{key}\t{text}\n"


_INTEGER = re.compile(r"[+-]?[0-9]+")


def _check_value(text: str, value_type: Callable[[str], Any]) -> None:
    # the parsers are lenient (int(" 1_0") == 10), the wire format is not
    if value_type is int and not _INTEGER.fullmatch(text):
        raise ValueError("not a plain decimal integer")
    if value_type is not str and text != text.strip():
        raise ValueError("surrounding whitespace")


def decode_record(line: str, value_type: Callable[[str], T] = str) -> tuple[str, T]:  # type: ignore[assignment]
    stripped = line[:-1] if line.endswith("\n") else line
    key, tab, text = stripped.partition("\t")
    if not tab:
        raise ParseError("no tab separator", line)
    if not key:
        raise ParseError("empty key", line)
    try:
        _check_value(text, value_type)
        value = value_type(text)
    except (ValueError, TypeError) as e:
        raise ParseError(f"bad value {text!r}: {e}", line) from e
    return key, value


def read_records(stream: Iterable[str], value_type: Callable[[str], T] = str) -> Iterator[tuple[str, T]]:  # type: ignore[assignment]
    """Lazy, so the first malformed line stops the caller after everything before it was processed."""
    for lineno, line in enumerate(stream, start=1):
        try:
            yield decode_record(line, value_type)
        except ParseError as e:
            raise ParseError(e.reason, line, lineno) from e.__cause__


def write_records(sink: TextIO, records: Iterable[tuple[str, Any]]) -> int:
    count = 0
    for key, value in records:
        sink.write(encode_record(key, value))
        count += 1
    return count
