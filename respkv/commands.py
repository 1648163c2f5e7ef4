"""Parsed client commands and their RESP re-encoding for replication."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar

from respkv.resp import encode_array


class CommandType(enum.Enum):
    ECHO = enum.auto()
    PING = enum.auto()
    SET = enum.auto()
    GET = enum.auto()
    TYPE = enum.auto()
    RPUSH = enum.auto()
    LPUSH = enum.auto()
    LRANGE = enum.auto()
    LLEN = enum.auto()
    LPOP = enum.auto()
    BLPOP = enum.auto()
    XADD = enum.auto()
    XRANGE = enum.auto()
    XREAD = enum.auto()
    INCR = enum.auto()
    UNKNOWN = enum.auto()
    MULTI = enum.auto()
    EXEC = enum.auto()
    DISCARD = enum.auto()
    INFO = enum.auto()
    REPLCONF = enum.auto()
    PSYNC = enum.auto()
    WAIT = enum.auto()
    GETCONFIG = enum.auto()
    KEYS = enum.auto()
    SUBSCRIBE = enum.auto()
    PUBLISH = enum.auto()
    UNSUBSCRIBE = enum.auto()
    ZADD = enum.auto()
    ZRANK = enum.auto()
    ZRANGE = enum.auto()
    ZCARD = enum.auto()
    ZSCORE = enum.auto()
    ZREM = enum.auto()
    GEOADD = enum.auto()
    GEOPOS = enum.auto()
    GEODIST = enum.auto()
    GEOSEARCH = enum.auto()
    ACL_WHOAMI = enum.auto()
    ACL_GETUSER = enum.auto()
    ACL_SETUSER = enum.auto()
    AUTH = enum.auto()


# Types without a dedicated display name are reported as "unknown".
_UNNAMED = frozenset({CommandType.PUBLISH, CommandType.GEOADD, CommandType.AUTH})


def command_type_name(command_type: CommandType) -> str:
    """Return the lower-case display name of a command type."""
    if command_type in _UNNAMED:
        return "unknown"
    return command_type.name.lower()


@dataclass(kw_only=True)
class Command(ABC):
    """A parsed command; ``bytes_processed`` is the size of its wire frame."""

    type: ClassVar[CommandType]
    writes: ClassVar[bool] = False

    key: str = ""
    bytes_processed: int = 0

    def is_write_command(self) -> bool:
        """Whether the command changes data and must reach replicas."""
        return self.writes

    def to_resp(self) -> bytes:
        """Encode the command as a RESP array; empty if it is not replayable."""
        arguments = self._arguments()
        return encode_array(arguments) if arguments else b""

    @abstractmethod
    def _arguments(self) -> list[str]:
        """The command's words as sent on the wire, or an empty list."""


@dataclass(kw_only=True)
class UnknownCommand(Command):
    type = CommandType.UNKNOWN

    def _arguments(self) -> list[str]:
        return []


@dataclass(kw_only=True)
class PingCommand(Command):
    type = CommandType.PING

    def _arguments(self) -> list[str]:
        return ["PING"]


@dataclass(kw_only=True)
class EchoCommand(Command):
    type = CommandType.ECHO
    message: str = ""

    def _arguments(self) -> list[str]:
        return ["ECHO", self.message]


@dataclass(kw_only=True)
class SetCommand(Command):
    """SET with optional expiry in seconds (``ex``) or milliseconds (``px``)."""

    type = CommandType.SET
    writes = True
    value: str = ""
    ex: int | None = None
    px: int | None = None

    def _arguments(self) -> list[str]:
        arguments = ["SET", self.key, self.value]
        if self.ex is not None:
            arguments += ["EX", str(self.ex)]
        if self.px is not None:
            arguments += ["PX", str(self.px)]
        return arguments


@dataclass(kw_only=True)
class GetCommand(Command):
    type = CommandType.GET

    def _arguments(self) -> list[str]:
        return ["GET", self.key]


@dataclass(kw_only=True)
class TypeCommand(Command):
    type = CommandType.TYPE

    def _arguments(self) -> list[str]:
        return ["TYPE", self.key]


@dataclass(kw_only=True)
class IncrCommand(Command):
    type = CommandType.INCR
    writes = True

    def _arguments(self) -> list[str]:
        return ["INCR", self.key]


@dataclass(kw_only=True)
class RpushCommand(Command):
    type = CommandType.RPUSH
    writes = True
    values: list[str] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        return ["RPUSH", self.key, *self.values]


@dataclass(kw_only=True)
class LpushCommand(Command):
    type = CommandType.LPUSH
    writes = True
    values: list[str] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        return ["LPUSH", self.key, *self.values]


@dataclass(kw_only=True)
class LrangeCommand(Command):
    type = CommandType.LRANGE
    start: int = 0
    stop: int = 0

    def _arguments(self) -> list[str]:
        return ["LRANGE", self.key, str(self.start), str(self.stop)]


@dataclass(kw_only=True)
class LlenCommand(Command):
    type = CommandType.LLEN

    def _arguments(self) -> list[str]:
        return ["LLEN", self.key]


@dataclass(kw_only=True)
class LpopCommand(Command):
    type = CommandType.LPOP
    writes = True
    count: int | None = None

    def _arguments(self) -> list[str]:
        arguments = ["LPOP", self.key]
        if self.count is not None:
            arguments.append(str(self.count))
        return arguments


@dataclass(kw_only=True)
class BlpopCommand(Command):
    """BLPOP on one or more keys; a timeout of 0 seconds blocks forever."""

    type = CommandType.BLPOP
    keys: list[str] = field(default_factory=list)
    timeout: float = 0.0

    def _arguments(self) -> list[str]:
        return ["BLPOP", *self.keys, str(int(self.timeout))]


@dataclass(kw_only=True)
class XaddCommand(Command):
    type = CommandType.XADD
    writes = True
    stream_id: str = ""
    field_values: list[tuple[str, str]] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        arguments = ["XADD", self.key, self.stream_id]
        for name, value in self.field_values:
            arguments += [name, value]
        return arguments


@dataclass(kw_only=True)
class XrangeCommand(Command):
    type = CommandType.XRANGE
    start: str = ""
    end: str = ""

    def _arguments(self) -> list[str]:
        return ["XRANGE", self.key, self.start, self.end]


@dataclass(kw_only=True)
class XreadCommand(Command):
    """XREAD with an optional BLOCK timeout in milliseconds (0 blocks forever)."""

    type = CommandType.XREAD
    block_timeout: float | None = None
    keys: list[str] = field(default_factory=list)
    ids: list[str] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        arguments = ["XREAD"]
        if self.block_timeout is not None:
            arguments += ["BLOCK", str(int(self.block_timeout))]
        return [*arguments, "STREAMS", *self.keys, *self.ids]


@dataclass(kw_only=True)
class MultiCommand(Command):
    type = CommandType.MULTI

    def _arguments(self) -> list[str]:
        return ["MULTI"]


@dataclass(kw_only=True)
class ExecCommand(Command):
    type = CommandType.EXEC

    def _arguments(self) -> list[str]:
        return ["EXEC"]


@dataclass(kw_only=True)
class DiscardCommand(Command):
    type = CommandType.DISCARD

    def _arguments(self) -> list[str]:
        return ["DISCARD"]