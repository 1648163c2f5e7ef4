import pytest

from respkv.commands import (
    BlpopCommand,
    CommandType,
    DiscardCommand,
    EchoCommand,
    ExecCommand,
    GetCommand,
    IncrCommand,
    LlenCommand,
    LpopCommand,
    LpushCommand,
    LrangeCommand,
    MultiCommand,
    PingCommand,
    RpushCommand,
    SetCommand,
    TypeCommand,
    UnknownCommand,
    XaddCommand,
    XrangeCommand,
    XreadCommand,
    command_type_name,
)
from respkv.resp import parse_array_frame


def decode(command):
    frame = command.to_resp()
    items, consumed = parse_array_frame(frame)
    assert consumed == len(frame)
    return items


@pytest.mark.parametrize(
    "command, expected",
    [
        (PingCommand(), b"*1\r\n$4\r\nPING\r\n"),
        (MultiCommand(), b"*1\r\n$5\r\nMULTI\r\n"),
        (ExecCommand(), b"*1\r\n$4\r\nEXEC\r\n"),
        (DiscardCommand(), b"*1\r\n$7\r\nDISCARD\r\n"),
    ],
)
def test_fixed_frames(command, expected):
    assert command.to_resp() == expected


def test_unknown_command_has_no_frame():
    command = UnknownCommand()
    assert command.to_resp() == b""
    assert command.type is CommandType.UNKNOWN


def test_set_round_trip_with_expiry():
    command = SetCommand(key="k", value="v", ex=10, px=250)
    assert decode(command) == ["SET", "k", "v", "EX", "10", "PX", "250"]


def test_set_without_expiry():
    assert decode(SetCommand(key="name", value="value")) == ["SET", "name", "value"]


def test_set_frame_bytes():
    frame = SetCommand(key="k", value="v").to_resp()
    assert frame == b"*3\r\n$3\r\nSET\r\n$1\r\nk\r\n$1\r\nv\r\n"


@pytest.mark.parametrize(
    "command, expected",
    [
        (EchoCommand(message="hi"), ["ECHO", "hi"]),
        (GetCommand(key="a"), ["GET", "a"]),
        (TypeCommand(key="a"), ["TYPE", "a"]),
        (IncrCommand(key="c"), ["INCR", "c"]),
        (LlenCommand(key="l"), ["LLEN", "l"]),
        (RpushCommand(key="l", values=["x", "y"]), ["RPUSH", "l", "x", "y"]),
        (LpushCommand(key="l", values=["x"]), ["LPUSH", "l", "x"]),
        (LrangeCommand(key="l", start=0, stop=-1), ["LRANGE", "l", "0", "-1"]),
        (LpopCommand(key="l"), ["LPOP", "l"]),
        (LpopCommand(key="l", count=3), ["LPOP", "l", "3"]),
        (XrangeCommand(key="s", start="-", end="+"), ["XRANGE", "s", "-", "+"]),
    ],
)
def test_round_trips(command, expected):
    assert decode(command) == expected


def test_blpop_truncates_timeout():
    assert decode(BlpopCommand(keys=["a", "b"], timeout=2.9)) == ["BLPOP", "a", "b", "2"]


def test_xadd_field_values():
    command = XaddCommand(key="s", stream_id="1-1", field_values=[("f", "v"), ("g", "w")])
    assert decode(command) == ["XADD", "s", "1-1", "f", "v", "g", "w"]


def test_xread_with_and_without_block():
    plain = XreadCommand(keys=["s1", "s2"], ids=["0-0", "$"])
    assert decode(plain) == ["XREAD", "STREAMS", "s1", "s2", "0-0", "$"]
    blocking = XreadCommand(block_timeout=1500.0, keys=["s"], ids=["$"])
    assert decode(blocking) == ["XREAD", "BLOCK", "1500", "STREAMS", "s", "$"]


@pytest.mark.parametrize(
    "command, writes",
    [
        (SetCommand(key="k"), True),
        (IncrCommand(key="k"), True),
        (RpushCommand(key="k"), True),
        (LpushCommand(key="k"), True),
        (LpopCommand(key="k"), True),
        (XaddCommand(key="k"), True),
        (GetCommand(key="k"), False),
        (PingCommand(), False),
        (BlpopCommand(), False),
        (XreadCommand(), False),
        (MultiCommand(), False),
    ],
)
def test_write_classification(command, writes):
    assert command.is_write_command() is writes


def test_bytes_processed_kept():
    command = GetCommand(key="k", bytes_processed=22)
    assert command.bytes_processed == 22
    assert command.type is CommandType.GET


@pytest.mark.parametrize(
    "command_type, name",
    [
        (CommandType.ECHO, "echo"),
        (CommandType.GETCONFIG, "getconfig"),
        (CommandType.ACL_WHOAMI, "acl_whoami"),
        (CommandType.ACL_SETUSER, "acl_setuser"),
        (CommandType.PUBLISH, "unknown"),
        (CommandType.GEOADD, "unknown"),
        (CommandType.AUTH, "unknown"),
    ],
)
def test_command_type_name(command_type, name):
    assert command_type_name(command_type) == name