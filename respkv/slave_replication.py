"""Replica-side replication: the handshake with a master and replay of its stream."""

from __future__ import annotations

import enum
import logging
from typing import Callable

from respkv.config import ServerConfig
from respkv.replication import Client
from respkv.resp import RespError, encode_array, parse_array_frame, parse_simple_string

log = logging.getLogger(__name__)

Executor = Callable[[list[str]], object]


class ReplicationStatus(enum.Enum):
    IDLE = enum.auto()
    PING_SENT = enum.auto()
    PING_SENT_SUCCESS = enum.auto()
    REPLCONF_PORT_SENT = enum.auto()
    REPLCONF_PORT_SUCCESS = enum.auto()
    REPLCONF_CAPA_SENT = enum.auto()
    REPLCONF_CAPA_SUCCESS = enum.auto()
    PSYNC_SENT = enum.auto()
    HANDSHAKE_SUCCESS = enum.auto()


def _same(response: str, expected: str) -> bool:
    return response.casefold() == expected.casefold()


class SlaveReplicationClient(Client):
    """The connection a replica keeps to its master.

    It walks through the PING / REPLCONF / PSYNC handshake, skips the RDB
    snapshot the master sends, then hands every replicated command to
    ``executor`` and answers ``REPLCONF GETACK`` with the replicated offset.
    """

    def __init__(
        self,
        port: int = 6380,
        executor: Executor | None = None,
        config: ServerConfig | None = None,
        fd: int = -1,
    ) -> None:
        super().__init__(fd=fd)
        self.port = port
        self.executor = executor
        self.config = config
        self.replication_status = ReplicationStatus.IDLE
        self.is_handshake_completed = False
        self.repl_id = "?"
        self.offset = -1
        self.bytes_processed = 0
        self._fullresync_seen = False

    def has_data_to_write(self) -> bool:
        return bool(self.write_buffer)

    def prepare_handshake_write(self) -> None:
        """Queue the next handshake message for the current status."""
        status = self.replication_status
        if status is ReplicationStatus.IDLE:
            message, next_status = ["PING"], ReplicationStatus.PING_SENT
        elif status is ReplicationStatus.PING_SENT_SUCCESS:
            message = ["REPLCONF", "listening-port", str(self.port)]
            next_status = ReplicationStatus.REPLCONF_PORT_SENT
        elif status is ReplicationStatus.REPLCONF_PORT_SUCCESS:
            message = ["REPLCONF", "capa", "psync2"]
            next_status = ReplicationStatus.REPLCONF_CAPA_SENT
        elif status is ReplicationStatus.REPLCONF_CAPA_SUCCESS:
            message = ["PSYNC", self.repl_id, str(self.offset)]
            next_status = ReplicationStatus.PSYNC_SENT
        else:
            return
        self.write_buffer += encode_array(message)
        self.replication_status = next_status

    def process_read_buffer(self) -> None:
        """Consume whatever the master has sent so far."""
        if not self.is_handshake_completed:
            self._handle_handshake_read()
            if self.is_handshake_completed and self.read_buffer:
                self._process_commands()
        else:
            self._process_commands()

    _ACCEPTED = {
        ReplicationStatus.PING_SENT: ("PONG", ReplicationStatus.PING_SENT_SUCCESS),
        ReplicationStatus.REPLCONF_PORT_SENT: ("OK", ReplicationStatus.REPLCONF_PORT_SUCCESS),
        ReplicationStatus.REPLCONF_CAPA_SENT: ("OK", ReplicationStatus.REPLCONF_CAPA_SUCCESS),
    }

    def _handle_handshake_read(self) -> None:
        if self.replication_status is ReplicationStatus.PSYNC_SENT and self._fullresync_seen:
            self._skip_rdb()
            return
        try:
            response = parse_simple_string(self.read_buffer)
        except RespError:
            return
        if response is None:
            return

        expected = self._ACCEPTED.get(self.replication_status)
        if expected is not None and _same(response, expected[0]):
            self.replication_status = expected[1]
            self.read_buffer.clear()
            self.prepare_handshake_write()
            return
        if self.replication_status is ReplicationStatus.PSYNC_SENT:
            end = self.read_buffer.find(b"\r\n")
            log.info("FULLRESYNC response: %s", bytes(self.read_buffer[:end]).decode(errors="replace"))
            del self.read_buffer[:end + 2]
            self._fullresync_seen = True
            self._skip_rdb()
            return
        self.read_buffer.clear()

    def _skip_rdb(self) -> None:
        """Drop the RDB payload that follows FULLRESYNC, once it is complete."""
        buffer = self.read_buffer
        if buffer[:1] == b"$":
            length_end = buffer.find(b"\r\n", 1)
            if length_end < 0:
                return
            length_text = bytes(buffer[1:length_end])
            if length_text.isdigit():
                rdb_end = length_end + 2 + int(length_text)
                if rdb_end > len(buffer):
                    return
                del buffer[:rdb_end]
                log.info("RDB skipped, %d bytes remain", len(buffer))
        self.replication_status = ReplicationStatus.HANDSHAKE_SUCCESS
        self.is_handshake_completed = True

    def _process_commands(self) -> None:
        while self.read_buffer and self.executor is not None:
            try:
                frame = parse_array_frame(self.read_buffer)
            except RespError:
                frame = None
            if frame is None or not frame[0]:
                log.debug("Cannot parse a command from %r", bytes(self.read_buffer))
                break
            items, consumed = frame
            del self.read_buffer[:consumed]

            if len(items) >= 2 and _same(items[0], "REPLCONF") and _same(items[1], "GETACK"):
                self.write_buffer.clear()
                self.write_buffer += encode_array(["REPLCONF", "ACK", str(self.bytes_processed)])
                self.bytes_processed += consumed
                continue

            self.executor(items)
            self.bytes_processed += consumed
            self.write_buffer.clear()