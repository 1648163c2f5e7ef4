"""Server configuration and command-line parsing."""

from __future__ import annotations

import enum
import os
import re
import secrets
import sys
from dataclasses import dataclass, field


class ConfigError(ValueError):
    """Invalid command-line configuration."""


class ServerRole(enum.Enum):
    MASTER = "master"
    SLAVE = "slave"


def _new_replication_id() -> str:
    return secrets.token_hex(20)


@dataclass
class ServerConfig:
    port: int = 6379
    role: ServerRole = ServerRole.MASTER
    master_host: str = ""
    master_port: int = 0
    rdb_file_path: str = ""
    rdb_file_name: str = ""
    replication_id: str = field(default_factory=_new_replication_id)
    offset: int = 0

    @property
    def rdb_location(self) -> str:
        """Full path of the RDB file."""
        return os.path.join(self.rdb_file_path, self.rdb_file_name)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    """Read the leading integer of ``text``; 0 if there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _valid_port(port: int) -> bool:
    return 0 < port <= 65535


def parse_args(argv: list[str] | None = None) -> ServerConfig:
    """Build a configuration from ``--flag value`` pairs (program name excluded)."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) % 2:
        raise ConfigError("Invalid number of arguments. Flags require values.")

    config = ServerConfig()
    for flag, value in zip(args[::2], args[1::2]):
        if flag == "--port":
            port = _atoi(value)
            if not _valid_port(port):
                raise ConfigError(f"Invalid port number: {value}")
            config.port = port
        elif flag == "--replicaof":
            host, space, port_text = value.partition(" ")
            if not space:
                raise ConfigError("--replicaof flag requires hostname and port")
            port = _atoi(port_text)
            if not _valid_port(port):
                raise ConfigError(f"Invalid master port number in: {value}")
            config.master_host = host
            config.master_port = port
            config.role = ServerRole.SLAVE
        elif flag == "--dir":
            config.rdb_file_path = value
        elif flag == "--dbfilename":
            config.rdb_file_name = value
    return config