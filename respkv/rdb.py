"""Loading of string keys from RDB snapshot files."""

from __future__ import annotations

import struct
from typing import Protocol

MAGIC = b"REDIS"

OPCODE_AUX = 0xFA
OPCODE_RESIZEDB = 0xFB
OPCODE_EXPIRETIME_MS = 0xFC
OPCODE_EXPIRETIME = 0xFD
OPCODE_SELECTDB = 0xFE
OPCODE_EOF = 0xFF
TYPE_STRING = 0x00

ENC_INT8 = 0xC0
ENC_INT16 = 0xC1
ENC_INT32 = 0xC2
ENC_LZF = 0xC3

_LEN_6BIT = 0
_LEN_14BIT = 1
_LEN_32BIT = 2
_LEN_ENCVAL = 3
_LEN_64BIT_MARKER = 0x81

_INT_ENCODINGS = {
    ENC_INT8: struct.Struct("<b"),
    ENC_INT16: struct.Struct("<h"),
    ENC_INT32: struct.Struct("<i"),
}


class RdbError(ValueError):
    """Malformed or unsupported RDB data."""


class KeyStore(Protocol):
    def set(self, key: str, value: str) -> object: ...

    def set_with_expiry(self, key: str, value: str, expiry_ms: int) -> object: ...


def _to_text(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")


class _Cursor:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def peek(self) -> int | None:
        return None if self.at_end() else self._data[self._pos]

    def read(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise RdbError("unexpected end of RDB data")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def read_byte(self) -> int:
        return self.read(1)[0]


class Rdb:
    """An RDB snapshot that loads its string keys into a key store.

    After loading, ``version`` holds the format version, ``metadata`` the
    auxiliary fields and ``keys_loaded`` the number of keys read.
    """

    def __init__(self, path: str | None = None, store: KeyStore | None = None) -> None:
        self.path = path
        self.store = store
        self.version = ""
        self.metadata: dict[str, str] = {}
        self.databases: list[int] = []
        self.keys_loaded = 0

    def parse(self) -> int:
        """Read the file at ``path`` and return the number of keys loaded."""
        if self.path is None:
            raise RdbError("no RDB file path set")
        with open(self.path, "rb") as handle:
            data = handle.read()
        self._load(data)
        return self.keys_loaded

    def _load(self, data: bytes) -> None:
        cursor = _Cursor(data)
        self._parse_header(cursor)
        self._parse_metadata(cursor)
        self._parse_databases(cursor)

    def _parse_header(self, cursor: _Cursor) -> None:
        try:
            magic = cursor.read(len(MAGIC))
        except RdbError:
            raise RdbError("RDB data too short for header") from None
        if magic != MAGIC:
            raise RdbError("Invalid RDB file: magic string mismatch")
        try:
            self.version = cursor.read(4).decode("ascii", "replace")
        except RdbError:
            raise RdbError("RDB data too short for version") from None

    def _parse_metadata(self, cursor: _Cursor) -> None:
        while cursor.peek() == OPCODE_AUX:
            cursor.read_byte()
            name = self._read_string(cursor)
            value = self._read_string(cursor)
            self.metadata[name] = value

    def _parse_databases(self, cursor: _Cursor) -> None:
        while True:
            opcode = cursor.peek()
            if opcode is None or opcode == OPCODE_EOF:
                return
            if opcode == OPCODE_SELECTDB:
                cursor.read_byte()
                self._parse_select_db(cursor)
            else:
                self._parse_entry(cursor)

    def _parse_select_db(self, cursor: _Cursor) -> None:
        db_number = self._read_plain_length(cursor)
        self.databases.append(db_number)
        if cursor.peek() == OPCODE_RESIZEDB:
            cursor.read_byte()
            self._read_plain_length(cursor)
            self._read_plain_length(cursor)

    def _parse_entry(self, cursor: _Cursor) -> None:
        value_type = cursor.read_byte()
        expiry: int | None = None
        if value_type in (OPCODE_EXPIRETIME_MS, OPCODE_EXPIRETIME):
            expiry = self._read_expiry(cursor, value_type)
            value_type = cursor.read_byte()
        if value_type != TYPE_STRING:
            raise RdbError(f"Unsupported RDB type: {value_type}")
        key = self._read_string(cursor)
        value = self._read_string(cursor)
        self.keys_loaded += 1
        if self.store is None:
            return
        if expiry is None:
            self.store.set(key, value)
        else:
            self.store.set_with_expiry(key, value, expiry)

    @staticmethod
    def _read_expiry(cursor: _Cursor, opcode: int) -> int:
        if opcode == OPCODE_EXPIRETIME_MS:
            return struct.unpack("<Q", cursor.read(8))[0]
        return struct.unpack("<I", cursor.read(4))[0] * 1000

    @staticmethod
    def _read_length(cursor: _Cursor, first: int) -> int | None:
        """Decode a length; None means a specially encoded value follows."""
        kind = (first >> 6) & 0x03
        if kind == _LEN_6BIT:
            return first & 0x3F
        if kind == _LEN_14BIT:
            return ((first & 0x3F) << 8) | cursor.read_byte()
        if kind == _LEN_32BIT:
            if first == _LEN_64BIT_MARKER:
                return struct.unpack(">Q", cursor.read(8))[0]
            return struct.unpack(">I", cursor.read(4))[0]
        return None

    def _read_plain_length(self, cursor: _Cursor) -> int:
        length = self._read_length(cursor, cursor.read_byte())
        if length is None:
            raise RdbError("expected a length, found an encoded value")
        return length

    def _read_string(self, cursor: _Cursor) -> str:
        first = cursor.read_byte()
        length = self._read_length(cursor, first)
        if length is not None:
            return _to_text(cursor.read(length))
        encoding = _INT_ENCODINGS.get(first)
        if encoding is not None:
            return str(encoding.unpack(cursor.read(encoding.size))[0])
        if first == ENC_LZF:
            raise RdbError("LZF-compressed strings are not supported")
        raise RdbError(f"unknown string encoding: {first:#x}")


def load_rdb(data: bytes, store: KeyStore | None = None) -> Rdb:
    """Load RDB ``data`` into ``store`` and return the parsed snapshot."""
    rdb = Rdb(store=store)
    rdb._load(data)
    return rdb