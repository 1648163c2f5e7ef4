"""Master-side replication: replica registry, command propagation and WAIT."""

from __future__ import annotations

import logging
import time
import weakref
from dataclasses import dataclass, field
from typing import Callable

from respkv.admin_commands import ReplConfCommand, ReplConfType, WaitCommand
from respkv.commands import Command, CommandType
from respkv.config import ServerConfig, ServerRole
from respkv.resp import encode_bulk_string, encode_integer, encode_simple_string

log = logging.getLogger(__name__)

# Minimal empty RDB: "REDIS0011", the EOF opcode and an 8-byte zero checksum.
EMPTY_RDB = b"REDIS0011" + b"\xff" + bytes(8)

GETACK_COMMAND = b"*3\r\n$8\r\nREPLCONF\r\n$6\r\nGETACK\r\n$1\r\n*\r\n"


@dataclass(eq=False)
class Client:
    """State of one connected peer: buffers and replication bookkeeping."""

    fd: int = -1
    read_buffer: bytearray = field(default_factory=bytearray)
    write_buffer: bytearray = field(default_factory=bytearray)
    replica_offset: int = 0
    is_slave: bool = False


class ReplicaConnection:
    """A connection to a peer; ``flush`` hands pending output to ``send``.

    ``client`` is None once the peer has gone away.
    """

    def __init__(self, client: Client | None, send: Callable[[bytes], object] | None = None) -> None:
        self.client = client
        self._send = send

    def flush(self) -> int:
        """Send and clear the client's pending output; return the bytes sent."""
        if self.client is None or not self.client.write_buffer:
            return 0
        data = bytes(self.client.write_buffer)
        self.client.write_buffer.clear()
        if self._send is not None:
            self._send(data)
        return len(data)


@dataclass
class ClientContext:
    """One request being processed, and what the server must do afterwards."""

    client: Client
    client_fd: int = -1
    connection: ReplicaConnection | None = None
    command: Command | None = None
    is_blocked: bool = False
    unblocked_client_fd: int = -1


class BlockedWaitClient:
    """A client blocked in WAIT; a timeout of 0 milliseconds never expires."""

    def __init__(
        self,
        client: Client,
        client_fd: int,
        timeout_ms: int,
        num_replicas_needed: int,
        master_offset: int,
    ) -> None:
        self._client = weakref.ref(client)
        self.client_fd = client_fd
        self.num_replicas_needed = num_replicas_needed
        self.master_offset = master_offset
        self.timeout_at: float | None = (
            time.monotonic() + timeout_ms / 1000 if timeout_ms > 0 else None
        )

    @property
    def client(self) -> Client | None:
        return self._client()

    def is_expired(self) -> bool:
        return self.timeout_at is not None and time.monotonic() >= self.timeout_at


def read_rdb_file(path: str) -> bytes:
    """Return the RDB file's bytes, or an empty RDB if it cannot be read."""
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        log.warning("Could not read RDB file %r (%s), using empty RDB", path, exc)
        return EMPTY_RDB


class ReplicationManager:
    """Tracks replicas, forwards write commands and serves WAIT."""

    def __init__(self) -> None:
        self.slave_connections: dict[int, ReplicaConnection] = {}
        self.blocked_wait_clients: list[BlockedWaitClient] = []

    def handle(self, ctx: ClientContext, config: ServerConfig) -> bool:
        """Handle replication commands; return False if the command is not one."""
        if ctx.command is None:
            log.error("No command in client context")
            return False
        handlers = {
            CommandType.INFO: self._handle_info,
            CommandType.REPLCONF: self._handle_replconf,
            CommandType.PSYNC: self._handle_psync,
            CommandType.WAIT: self._handle_wait,
        }
        handler = handlers.get(ctx.command.type)
        if handler is None:
            return False
        handler(ctx, config)
        return True

    def _handle_info(self, ctx: ClientContext, config: ServerConfig) -> None:
        if config.role is ServerRole.MASTER:
            info = (
                "role:master\r\n"
                f"master_replid:{config.replication_id}\r\n"
                f"master_repl_offset:{config.offset}\r\n"
            )
        else:
            info = "role:slave\r\n"
        ctx.client.write_buffer += encode_bulk_string(info)

    def _handle_replconf(self, ctx: ClientContext, config: ServerConfig) -> None:
        command = ctx.command
        assert isinstance(command, ReplConfCommand)
        if command.subcommand is ReplConfType.ACK:
            ctx.client.replica_offset = command.ack_offset
            self.check_blocked_wait_clients(ctx)
            return
        ctx.client.write_buffer += encode_simple_string("OK")

    def _handle_psync(self, ctx: ClientContext, config: ServerConfig) -> None:
        buffer = ctx.client.write_buffer
        buffer += encode_simple_string(f"FULLRESYNC {config.replication_id} 0")
        rdb = read_rdb_file(config.rdb_location)
        buffer += b"$%d\r\n" % len(rdb)
        buffer += rdb
        if not ctx.client.is_slave:
            ctx.client.is_slave = True
            if ctx.connection is not None:
                self.add_slave_connection(ctx.client_fd, ctx.connection)

    def _live_slaves(self):
        for conn in self.slave_connections.values():
            if conn is not None and conn.client is not None:
                yield conn

    def _acked_replicas(self, offset: int) -> int:
        return sum(1 for conn in self._live_slaves() if conn.client.replica_offset >= offset)

    def _handle_wait(self, ctx: ClientContext, config: ServerConfig) -> None:
        command = ctx.command
        assert isinstance(command, WaitCommand)
        if config.offset == 0:
            log.debug("WAIT with no writes propagated")
            ctx.client.write_buffer += encode_integer(len(self.slave_connections))
            return
        acked = self._acked_replicas(config.offset)
        if acked >= command.num_replica:
            ctx.client.write_buffer += encode_integer(acked)
            return
        for conn in list(self._live_slaves()):
            conn.client.write_buffer += GETACK_COMMAND
            conn.flush()
        ctx.is_blocked = True
        self.blocked_wait_clients.append(
            BlockedWaitClient(ctx.client, ctx.client_fd, command.timeout, command.num_replica, config.offset)
        )

    def check_blocked_wait_clients(self, ctx: ClientContext) -> None:
        """Release WAIT clients whose replica count has been reached."""
        remaining = []
        for blocked in self.blocked_wait_clients:
            client = blocked.client
            if client is None:
                continue
            acked = self._acked_replicas(blocked.master_offset)
            log.debug("WAIT check: acked=%d needed=%d", acked, blocked.num_replicas_needed)
            if acked >= blocked.num_replicas_needed:
                client.write_buffer += encode_integer(acked)
                ctx.unblocked_client_fd = blocked.client_fd
            else:
                remaining.append(blocked)
        self.blocked_wait_clients = remaining

    def expire_blocked_wait_clients(self) -> list[int]:
        """Answer timed-out WAIT clients; return their descriptors."""
        expired_fds = []
        remaining = []
        for blocked in self.blocked_wait_clients:
            if not blocked.is_expired():
                remaining.append(blocked)
                continue
            client = blocked.client
            if client is not None:
                acked = self._acked_replicas(blocked.master_offset)
                client.write_buffer += encode_integer(acked)
                expired_fds.append(blocked.client_fd)
                log.debug("WAIT timeout for fd=%d with %d replicas", blocked.client_fd, acked)
        self.blocked_wait_clients = remaining
        return expired_fds

    def next_wait_timeout_ms(self) -> int:
        """Milliseconds until the next WAIT deadline, or -1 if there is none."""
        now = time.monotonic()
        earliest = -1
        for blocked in self.blocked_wait_clients:
            if blocked.timeout_at is None:
                continue
            remaining = int((blocked.timeout_at - now) * 1000)
            if remaining <= 0:
                return 0
            if earliest == -1 or remaining < earliest:
                earliest = remaining
        return earliest

    def handle_propagate(self, ctx: ClientContext, config: ServerConfig) -> bool:
        """Queue a write command for every replica; return True if it was queued."""
        if not self.slave_connections or ctx.command is None:
            return False
        if not ctx.command.is_write_command():
            return False
        raw = ctx.command.to_resp()
        config.offset += ctx.command.bytes_processed
        inactive = []
        for fd, conn in self.slave_connections.items():
            if conn is None or conn.client is None:
                inactive.append(fd)
                continue
            conn.client.write_buffer += raw
        for fd in inactive:
            self.remove_slave_connection(fd)
        return True

    def add_slave_connection(self, fd: int, conn: ReplicaConnection) -> None:
        log.debug("Registering replica fd=%d", fd)
        self.slave_connections[fd] = conn

    def remove_slave_connection(self, fd: int) -> None:
        log.debug("Unregistering replica fd=%d", fd)
        self.slave_connections.pop(fd, None)

    def propagate_and_notify_slaves(self, ctx: ClientContext, config: ServerConfig) -> bool:
        """Propagate the command and flush every replica with pending output."""
        propagated = self.handle_propagate(ctx, config)
        for conn in list(self._live_slaves()):
            if conn.client.write_buffer:
                conn.flush()
        return propagated