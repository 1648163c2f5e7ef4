"""Commands for replication, configuration, pub/sub, sorted sets, geo and ACL."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from respkv.commands import Command, CommandType


def _fixed(value: float) -> str:
    """Format a float with six decimals, as scores travel on the wire."""
    return f"{value:f}"


@dataclass(kw_only=True)
class InfoCommand(Command):
    """INFO, optionally limited to the replication section."""

    type = CommandType.INFO
    is_replication_argument: bool = False

    def _arguments(self) -> list[str]:
        if self.is_replication_argument:
            return ["INFO", "replication"]
        return ["INFO"]


class ReplConfType(enum.Enum):
    LISTENING_PORT = enum.auto()
    CAPA = enum.auto()
    GETACK = enum.auto()
    ACK = enum.auto()


@dataclass(kw_only=True)
class ReplConfCommand(Command):
    """REPLCONF in its handshake, GETACK and ACK forms."""

    type = CommandType.REPLCONF
    subcommand: ReplConfType = ReplConfType.LISTENING_PORT
    listening_port: str = ""
    capability: str = ""
    ack_offset: int = 0

    def _arguments(self) -> list[str]:
        if self.subcommand is ReplConfType.ACK:
            return ["REPLCONF", "ACK", str(self.ack_offset)]
        if self.subcommand is ReplConfType.GETACK:
            return ["REPLCONF", "GETACK", "*"]
        if self.listening_port:
            return ["REPLCONF", "listening-port", self.listening_port]
        if self.capability:
            return ["REPLCONF", "capa", self.capability]
        return ["REPLCONF"]


@dataclass(kw_only=True)
class PsyncCommand(Command):
    type = CommandType.PSYNC
    repl_id: str = ""
    offset: int = 0

    def _arguments(self) -> list[str]:
        return ["PSYNC", self.repl_id, str(self.offset)]


@dataclass(kw_only=True)
class WaitCommand(Command):
    """WAIT for ``num_replica`` acknowledgements within ``timeout`` milliseconds."""

    type = CommandType.WAIT
    num_replica: int = 0
    timeout: int = 0

    def _arguments(self) -> list[str]:
        return ["WAIT", str(self.num_replica), str(self.timeout)]


@dataclass(kw_only=True)
class GetConfigCommand(Command):
    type = CommandType.GETCONFIG
    parameters: list[str] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        return []


@dataclass(kw_only=True)
class KeysCommand(Command):
    type = CommandType.KEYS
    pattern: str = ""

    def _arguments(self) -> list[str]:
        return []


@dataclass(kw_only=True)
class SubscribeCommand(Command):
    type = CommandType.SUBSCRIBE
    channel_name: str = ""

    def _arguments(self) -> list[str]:
        return []


@dataclass(kw_only=True)
class UnsubscribeCommand(Command):
    type = CommandType.UNSUBSCRIBE
    channel_name: str = ""

    def _arguments(self) -> list[str]:
        return []


@dataclass(kw_only=True)
class PublishCommand(Command):
    type = CommandType.PUBLISH
    channel_name: str = ""
    message: str = ""

    def _arguments(self) -> list[str]:
        return []


@dataclass(kw_only=True)
class ZaddCommand(Command):
    """ZADD with ``(score, member)`` pairs."""

    type = CommandType.ZADD
    writes = True
    score_members: list[tuple[float, str]] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        arguments = ["ZADD", self.key]
        for score, member in self.score_members:
            arguments += [_fixed(score), member]
        return arguments


@dataclass(kw_only=True)
class ZrankCommand(Command):
    type = CommandType.ZRANK
    member: str = ""

    def _arguments(self) -> list[str]:
        return ["ZRANK", self.key, self.member]


@dataclass(kw_only=True)
class ZrangeCommand(Command):
    type = CommandType.ZRANGE
    start: int = 0
    stop: int = 0

    def _arguments(self) -> list[str]:
        return ["ZRANGE", self.key, str(self.start), str(self.stop)]


@dataclass(kw_only=True)
class ZcardCommand(Command):
    type = CommandType.ZCARD

    def _arguments(self) -> list[str]:
        return ["ZCARD", self.key]


@dataclass(kw_only=True)
class ZscoreCommand(Command):
    type = CommandType.ZSCORE
    member: str = ""

    def _arguments(self) -> list[str]:
        return ["ZSCORE", self.key, self.member]


@dataclass(kw_only=True)
class ZremCommand(Command):
    type = CommandType.ZREM
    writes = True
    members: list[str] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        return ["ZREM", self.key, *self.members]


@dataclass(kw_only=True)
class GeoAddCommand(Command):
    """GEOADD of one member; coordinates outside the allowed box are flagged."""

    type = CommandType.GEOADD
    writes = True

    MIN_ALLOWED_LAT = -85.05112878
    MAX_ALLOWED_LAT = 85.05112878
    MIN_ALLOWED_LON = -180.0
    MAX_ALLOWED_LON = 180.0

    longitude: float = 0.0
    latitude: float = 0.0
    score: float = 0.0
    member: str = ""
    invalid_lat_lon: bool = False

    def _arguments(self) -> list[str]:
        return ["GEOADD", self.key, _fixed(self.longitude), _fixed(self.latitude), self.member]


@dataclass(kw_only=True)
class GeoPosCommand(Command):
    type = CommandType.GEOPOS
    members: list[str] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        return ["GEOPOS", self.key, *self.members]


@dataclass(kw_only=True)
class GeoDistCommand(Command):
    type = CommandType.GEODIST
    member1: str = ""
    member2: str = ""

    def _arguments(self) -> list[str]:
        return ["GEODIST", self.key, self.member1, self.member2]


@dataclass(kw_only=True)
class GeoSearchCommand(Command):
    type = CommandType.GEOSEARCH
    longitude: float = 0.0
    latitude: float = 0.0
    radius: float = 0.0

    def _arguments(self) -> list[str]:
        return []


@dataclass(kw_only=True)
class ACLWhoamiCommand(Command):
    type = CommandType.ACL_WHOAMI

    def _arguments(self) -> list[str]:
        return ["ACL", "WHOAMI"]


@dataclass(kw_only=True)
class ACLGetUserCommand(Command):
    type = CommandType.ACL_GETUSER
    username: str = ""

    def _arguments(self) -> list[str]:
        return ["ACL", "GETUSER"]


@dataclass(kw_only=True)
class ACLSetUserCommand(Command):
    type = CommandType.ACL_SETUSER
    writes = True
    username: str = ""
    password: str | None = None
    flags: list[str] = field(default_factory=list)

    def _arguments(self) -> list[str]:
        return ["ACL", "SETUSER"]


@dataclass(kw_only=True)
class AuthCommand(Command):
    type = CommandType.AUTH
    username: str = ""
    password: str = ""

    def _arguments(self) -> list[str]:
        return ["AUTH", self.username, self.password]