"""Encoding and decoding of RESP wire frames."""

from __future__ import annotations

from typing import Iterable

CRLF = b"\r\n"


class RespError(ValueError):
    """Malformed RESP data."""


def _to_bytes(value) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    if isinstance(value, int):
        return str(value).encode("ascii")
    raise TypeError(f"cannot encode {type(value).__name__} as RESP")


def _to_text(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")


def _as_bytes(raw) -> bytes:
    return raw.encode("utf-8", "surrogateescape") if isinstance(raw, str) else bytes(raw)


def encode_bulk_string(value) -> bytes:
    """Encode a bulk string; ``None`` gives the null bulk string."""
    if value is None:
        return b"$-1" + CRLF
    data = _to_bytes(value)
    return b"$%d\r\n%s\r\n" % (len(data), data)


def encode_simple_string(value) -> bytes:
    data = _to_bytes(value)
    if b"\r" in data or b"\n" in data:
        raise RespError("simple strings cannot contain CR or LF")
    return b"+" + data + CRLF


def encode_array_header(count: int) -> bytes:
    if count < 0:
        raise RespError("array length cannot be negative")
    return b"*%d\r\n" % count


def encode_integer(value: int) -> bytes:
    return b":%d\r\n" % value


def encode_array(items: Iterable) -> bytes:
    """Encode ``items`` as an array of bulk strings."""
    parts = [encode_bulk_string(item) for item in items]
    return encode_array_header(len(parts)) + b"".join(parts)


def _parse_length(data: bytes) -> int:
    if not data or not data.isdigit():
        raise RespError(f"invalid length: {data!r}")
    return int(data)


def _parse_bulk(raw: bytes, pos: int) -> tuple[str, int] | None:
    """Parse one bulk string at ``pos``; None if more data is needed."""
    if pos >= len(raw):
        return None
    if raw[pos:pos + 1] != b"$":
        raise RespError("expected bulk string")
    end = raw.find(CRLF, pos)
    if end < 0:
        return None
    length = _parse_length(raw[pos + 1:end])
    start = end + 2
    stop = start + length
    if len(raw) < stop + 2:
        return None
    if raw[stop:stop + 2] != CRLF:
        raise RespError("bulk string not terminated by CRLF")
    return _to_text(raw[start:stop]), stop + 2


def parse_simple_string(raw) -> str | None:
    """Return the text of a leading simple string, or None if it is incomplete."""
    raw = _as_bytes(raw)
    if not raw:
        return None
    if raw[:1] != b"+":
        raise RespError("expected simple string")
    end = raw.find(CRLF)
    if end < 0:
        return None
    return _to_text(raw[1:end])


def parse_bulk_string_sequence(raw) -> list[str]:
    """Parse a run of consecutive bulk strings filling all of ``raw``."""
    raw = _as_bytes(raw)
    out: list[str] = []
    pos = 0
    while pos < len(raw):
        parsed = _parse_bulk(raw, pos)
        if parsed is None:
            raise RespError("incomplete bulk string")
        text, pos = parsed
        out.append(text)
    return out


def parse_array_frame(raw) -> tuple[list[str], int] | None:
    """Parse a leading array of bulk strings.

    Returns the items and the number of bytes consumed, or None if the
    frame is not complete yet.
    """
    raw = _as_bytes(raw)
    if not raw:
        return None
    if raw[:1] != b"*":
        raise RespError("expected array")
    end = raw.find(CRLF)
    if end < 0:
        return None
    count = _parse_length(raw[1:end])
    pos = end + 2
    items: list[str] = []
    for _ in range(count):
        parsed = _parse_bulk(raw, pos)
        if parsed is None:
            return None
        text, pos = parsed
        items.append(text)
    return items, pos