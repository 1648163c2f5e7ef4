"""Append-only streams of entries keyed by ``<ms>-<seq>`` identifiers."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from typing import Any, Callable

from respkv.radix_tree import RadixTree

_U64_MAX = 2**64 - 1
_ID_FORMAT = struct.Struct(">QQ")


class StreamError(ValueError):
    """Base class for stream insertion and lookup errors."""


class InvalidStreamIdError(StreamError):
    """The identifier is not of the form ``<ms>-<seq>``."""


class StreamIdNotGreaterError(StreamError):
    """The identifier is not greater than the stream's last identifier."""


class StreamIdZeroError(StreamError):
    """The identifier ``0-0`` is not allowed."""


@dataclass(frozen=True)
class StreamID:
    ms: int = 0
    seq: int = 0

    def to_binary(self) -> bytes:
        """Encode as 16 big-endian bytes, which sort in identifier order."""
        return _ID_FORMAT.pack(self.ms, self.seq)

    @classmethod
    def from_binary(cls, data: bytes) -> "StreamID":
        if len(data) < _ID_FORMAT.size:
            raise ValueError("stream id needs 16 bytes")
        ms, seq = _ID_FORMAT.unpack_from(data)
        return cls(ms, seq)

    def is_greater(self, other: "StreamID") -> bool:
        return (self.ms, self.seq) > (other.ms, other.seq)

    def __str__(self) -> str:
        return f"{self.ms}-{self.seq}"


def _parse_number(text: str) -> int:
    if not text or not text.isascii() or not text.isdigit():
        raise InvalidStreamIdError(f"invalid stream id part: {text!r}")
    value = int(text)
    if value > _U64_MAX:
        raise InvalidStreamIdError(f"stream id part out of range: {text!r}")
    return value


def parse_search_id(text: str, is_end_key: bool = False) -> StreamID:
    """Parse a range bound: ``-``, ``+``, ``<ms>`` or ``<ms>-<seq>``."""
    if text == "-":
        return StreamID(0, 0)
    if text == "+":
        return StreamID(_U64_MAX, _U64_MAX)
    ms_text, dash, seq_text = text.partition("-")
    if not dash:
        seq_text = str(_U64_MAX) if is_end_key else "0"
    return StreamID(_parse_number(ms_text), _parse_number(seq_text))


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Stream:
    """Entries ordered by identifier, stored in a radix tree."""

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._entries = RadixTree()
        self._last = StreamID()
        self._clock = clock or _now_ms

    def last_id(self) -> StreamID:
        return self._last

    def parse_id(self, text: str) -> StreamID:
        """Resolve ``*``, ``<ms>-*`` or ``<ms>-<seq>`` against the last identifier."""
        if text == "*":
            ms = self._clock()
            return StreamID(ms, 1 if self._last.ms == ms else 0)
        ms_text, dash, seq_text = text.partition("-")
        if not dash:
            raise InvalidStreamIdError(f"invalid stream id: {text!r}")
        ms = _parse_number(ms_text)
        if seq_text == "*":
            seq = self._last.seq + 1 if self._last.ms == ms else 0
        else:
            seq = _parse_number(seq_text)
        return StreamID(ms, seq)

    def insert(self, stream_id: str, value: Any) -> str:
        """Append ``value`` under ``stream_id`` and return the resolved identifier."""
        sid = self.parse_id(stream_id)
        if sid.ms == 0 and sid.seq == 0:
            raise StreamIdZeroError("The ID specified in XADD must be greater than 0-0")
        if self._last != StreamID() and not sid.is_greater(self._last):
            raise StreamIdNotGreaterError(
                "The ID specified in XADD is equal or smaller than the target stream top item"
            )
        self._entries.insert(sid.to_binary(), value)
        self._last = sid
        return str(sid)

    def xrange(self, start: str, end: str, exclusive: bool = False) -> list[tuple[StreamID, Any]]:
        """Return entries whose identifiers lie between ``start`` and ``end``."""
        low = parse_search_id(start, False).to_binary()
        high = parse_search_id(end, True).to_binary()
        return [
            (StreamID.from_binary(key), value)
            for key, value in self._entries.range_search(low, high, exclusive)
        ]