"""Tests for recstream.codec package."""

from __future__ import annotations

import io
from dataclasses import dataclass

import pytest

from recstream.codec import BaseCodec, JsonCodec, get_codec
from recstream.exceptions import ConfigError, DecodeError, WriteError


def _decode(data: bytes, read_size: int = 65536) -> list:
    return list(JsonCodec(read_size=read_size).iter_decode(io.BytesIO(data)))


class _CountingStream(io.BytesIO):
    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.bytes_read = 0

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        self.bytes_read += len(chunk)
        return chunk


@dataclass
class Point:
    x: int
    y: int


class TestGetCodec:
    def test_json(self):
        codec = get_codec("json")
        assert isinstance(codec, JsonCodec)
        assert isinstance(codec, BaseCodec)

    def test_read_size_passed_through(self):
        codec = get_codec("json", read_size=7)
        assert isinstance(codec, JsonCodec)
        assert codec.read_size == 7

    def test_unknown_raises(self):
        with pytest.raises(ConfigError, match="No codec named 'xml'"):
            get_codec("xml")


class TestJsonDecode:
    def test_line_per_record(self):
        assert _decode(b'{"a": 1}\n{"a": 2}\n') == [{"a": 1}, {"a": 2}]

    def test_concatenated_without_separator(self):
        assert _decode(b'{"a":1}{"a":2}[3]') == [{"a": 1}, {"a": 2}, [3]]

    def test_pretty_printed_values(self):
        data = b'{\n  "a": [\n    1,\n    2\n  ]\n}\n\n  {"b": null}'
        assert _decode(data) == [{"a": [1, 2]}, {"b": None}]

    def test_scalars(self):
        assert _decode(b'1 2.5 "three" true null') == [1, 2.5, "three", True, None]

    def test_empty_stream(self):
        assert _decode(b"") == []

    def test_whitespace_only(self):
        assert _decode(b" \n\t\r\n ") == []

    @pytest.mark.parametrize("read_size", [1, 2, 3, 5, 64])
    def test_values_split_across_reads(self, read_size: int):
        data = b'{"name": "test", "n": 12345, "words": ["a", "b"]}\n' * 4 + b"98765"
        expected = [{"name": "test", "n": 12345, "words": ["a", "b"]}] * 4 + [98765]
        assert _decode(data, read_size=read_size) == expected

    def test_number_split_across_reads_is_not_truncated(self):
        assert _decode(b"1234 5678", read_size=2) == [1234, 5678]

    @pytest.mark.parametrize("read_size", [1, 2, 3])
    def test_fraction_and_exponent_split_across_reads(self, read_size: int):
        assert _decode(b"2.5 1e3 -0.25E-2", read_size=read_size) == [2.5, 1000.0, -0.0025]

    def test_multibyte_utf8_split_across_reads(self):
        data = '{"word": "número ünïcødé ✓"}'.encode()
        assert _decode(data, read_size=1) == [{"word": "número ünïcødé ✓"}]

    def test_malformed_raises_decode_error(self):
        with pytest.raises(DecodeError, match="Malformed record"):
            _decode(b'{"a": 1}\n{"a": oops}\n')

    def test_truncated_trailing_record_raises(self):
        with pytest.raises(DecodeError):
            _decode(b'{"a": 1}\n{"a": ')

    def test_good_records_before_error_are_yielded(self):
        values = JsonCodec().iter_decode(io.BytesIO(b'{"a": 1} {"b": ]'))
        assert next(values) == {"a": 1}
        with pytest.raises(DecodeError):
            next(values)

    def test_malformed_record_fails_without_reading_ahead(self):
        stream = _CountingStream(b"{bad}\n" + b'{"a": 1}\n' * 200_000)
        values = JsonCodec(read_size=64).iter_decode(stream)
        with pytest.raises(DecodeError, match="Malformed record"):
            next(values)
        assert stream.bytes_read == 64

    @pytest.mark.parametrize(
        "data",
        [b"[1, 2,]", b"'a'", b"{\"a\" 1}", b"[1 2]", b"trux", b"nul1"],
    )
    def test_hard_errors_raised_before_end_of_stream(self, data: bytes):
        stream = _CountingStream(data + b" " + b"0 " * 10_000)
        with pytest.raises(DecodeError):
            list(JsonCodec(read_size=32).iter_decode(stream))
        assert stream.bytes_read == 32

    @pytest.mark.parametrize("read_size", [1, 2, 3])
    def test_literals_and_escapes_split_across_reads(self, read_size: int):
        data = b'[true, false, null] "\\u00e9\\ud83d\\ude00" -Infinity NaN'
        values = _decode(data, read_size=read_size)
        assert values[:2] == [[True, False, None], "\u00e9\U0001f600"]
        assert values[2] == float("-inf")
        assert values[3] != values[3]

    def test_invalid_utf8_raises_decode_error(self):
        with pytest.raises(DecodeError, match="UTF-8"):
            _decode(b'"\xff\xfe"')

    def test_invalid_read_size(self):
        with pytest.raises(ValueError):
            JsonCodec(read_size=0)


class TestJsonEncode:
    def test_one_compact_line_per_record(self):
        out = io.BytesIO()
        codec = JsonCodec()
        codec.encode({"a": 1, "b": [1, 2]}, out)
        codec.encode("x", out)
        assert out.getvalue() == b'{"a":1,"b":[1,2]}\n"x"\n'

    def test_non_ascii_kept_as_utf8(self):
        out = io.BytesIO()
        JsonCodec().encode({"w": "número"}, out)
        assert out.getvalue() == '{"w":"número"}\n'.encode()

    def test_dataclass_encoded_as_object(self):
        out = io.BytesIO()
        JsonCodec().encode(Point(1, 2), out)
        assert out.getvalue() == b'{"x":1,"y":2}\n'

    def test_unserializable_raises_write_error(self):
        with pytest.raises(WriteError, match="Cannot encode"):
            JsonCodec().encode({"s": {1, 2}}, io.BytesIO())

    def test_encode_then_decode(self):
        out = io.BytesIO()
        codec = JsonCodec()
        records = [{"i": i, "tags": ["t"] * i} for i in range(5)]
        for record in records:
            codec.encode(record, out)
        out.seek(0)
        assert list(codec.iter_decode(out)) == records
