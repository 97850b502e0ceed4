import io

import pytest

from parallelcalc.codec import CodecError, ParseError, decode_record, encode_record, read_records, write_records


def test_encode() -> None:
    assert encode_record("EVEN", 220) == "EVEN\t220\n"
    assert encode_record("k", "a b") == "k\ta b\n"


@pytest.mark.parametrize("key", ["", "a\tb", "a\nb"])
def test_encode_bad_key(key: str) -> None:
    with pytest.raises(CodecError):
        encode_record(key, 1)


def test_encode_bad_value() -> None:
    with pytest.raises(CodecError):
        encode_record("k", "two\nlines")


def test_decode() -> None:
    assert decode_record("ODD\t165\n", int) == ("ODD", 165)
    assert decode_record("ODD \t165", int) == ("ODD ", 165)
    assert decode_record("k\tv\twith tab\n") == ("k", "v\twith tab")
    assert decode_record("k\t\n") == ("k", "")


@pytest.mark.parametrize(
    "line", ["no separator\n", "\t5\n", "k\t12x\n", "k\t\n", "\n", "k\t12 \n", "k\t 7\n", "k\t1_0\n", "k\t٣\n"]
)
def test_decode_malformed(line: str) -> None:
    with pytest.raises(ParseError):
        decode_record(line, int)


def test_round_trip() -> None:
    for key, value in [("EVEN", 220), ("a key with spaces", -3), ("ü", 0)]:
        assert decode_record(encode_record(key, value), int) == (key, value)
    assert decode_record(encode_record("s", "text value")) == ("s", "text value")


def test_round_trip_keeps_carriage_return() -> None:
    assert decode_record(encode_record("k", "x\r")) == ("k", "x\r")
    assert decode_record("k\tx\r\n") == ("k", "x\r")


def test_read_records_reports_first_bad_line() -> None:
    stream = io.StringIO("a\t1\nb\t2\nc\tnope\nd\tbad\n")
    seen = []
    with pytest.raises(ParseError) as e:
        for record in read_records(stream, int):
            seen.append(record)
    assert seen == [("a", 1), ("b", 2)]
    assert e.value.lineno == 3
    assert e.value.line == "c\tnope\n"


def test_write_records() -> None:
    out = io.StringIO()
    assert write_records(out, [("a", 1), ("b", 2)]) == 2
    assert out.getvalue() == "a\t1\nb\t2\n"


def test_write_records_fails_fast() -> None:
    out = io.StringIO()
    with pytest.raises(CodecError):
        write_records(out, [("a", 1), ("bad\tkey", 2), ("c", 3)])
    # what was written stays written
    assert out.getvalue() == "a\t1\n"
