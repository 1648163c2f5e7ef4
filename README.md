# respkv

`respkv` holds the parts of an in-memory key-value server that speaks the
RESP wire protocol: wire framing, command objects, the stream and sorted-set
data types, RDB snapshot loading, and both sides of master/replica
replication. It uses only the standard library.

## Modules

| Module | Purpose |
| --- | --- |
| `respkv.radix_tree` | `RadixTree`: a compressed prefix tree over `str` or `bytes` keys, with ordered range search |
| `respkv.sorted_set` | `SortedSet`: members ordered by `(score, member)`, with rank, score and index ranges |
| `respkv.stream` | `Stream`, `StreamID` and `parse_search_id`: append-only streams with `ms-seq` ids |
| `respkv.resp` | Encoders and parsers for RESP simple strings, bulk strings, integers and arrays |
| `respkv.commands` | `CommandType`, the `Command` base class and the data commands (`SET`, `GET`, `LPUSH`, `XADD`, ...) |
| `respkv.admin_commands` | Replication, configuration, pub/sub, sorted-set, geo, ACL and `AUTH` commands |
| `respkv.config` | `ServerConfig`, `ServerRole`, `ConfigError` and `parse_args` for command-line flags |
| `respkv.rdb` | `Rdb` and `load_rdb`: read string keys, with expiry, out of an RDB snapshot |
| `respkv.replication` | `ReplicationManager` and its helpers: `INFO`, `REPLCONF`, `PSYNC`, `WAIT` and propagation of writes |
| `respkv.slave_replication` | `SlaveReplicationClient`: the replica side of the handshake and the replicated command stream |

## Examples

### Sorted sets

Negative indexes count from the end; `insert` returns whether the member was
already present.

```python
from respkv.sorted_set import SortedSet

board = SortedSet()
board.insert("alice", 3.0)
board.insert("bob", 1.0)
board.insert("carol", 2.0)

board.range(0, -1)    # ["bob", "carol", "alice"]
board.rank("alice")   # 2
board.score("dave")   # None
len(board)            # 3
```

### Streams

Ids have the form `ms-seq`; `*` and `ms-*` let the stream fill in the rest.
A malformed id raises `InvalidStreamIdError`, `0-0` raises
`StreamIdZeroError`, and an id not greater than the last one raises
`StreamIdNotGreaterError` (all subclasses of `StreamError`).

```python
from respkv.stream import Stream, StreamIdNotGreaterError

stream = Stream()
stream.insert("1-1", "temperature=20")   # "1-1"
stream.insert("1-*", "temperature=21")   # "1-2"

try:
    stream.insert("1-1", "temperature=22")
except StreamIdNotGreaterError:
    pass

stream.xrange("-", "+")   # [(StreamID(ms=1, seq=1), ...), (StreamID(ms=1, seq=2), ...)]
```

Range bounds accept `-`, `+`, a bare millisecond value or a full `ms-seq`;
pass `exclusive=True` to leave out an entry equal to the start.

### RESP framing

```python
from respkv.resp import encode_array, parse_array_frame

frame = encode_array(["SET", "k", "v"])
# b"*3\r\n$3\r\nSET\r\n$1\r\nk\r\n$1\r\nv\r\n"

parse_array_frame(frame)          # (["SET", "k", "v"], 29)
parse_array_frame(frame[:10])     # None: the frame is not complete yet
```

Malformed data raises `RespError`.

### Commands

Each command knows whether it writes and can re-encode itself for
propagation to replicas; commands that are not replayable encode to `b""`.

```python
from respkv.commands import SetCommand

command = SetCommand(key="k", value="v", px=100)
command.is_write_command()   # True
command.to_resp()            # b"*5\r\n$3\r\nSET\r\n$1\r\nk\r\n$1\r\nv\r\n$2\r\nPX\r\n$3\r\n100\r\n"
```

### Configuration

```python
from respkv.config import parse_args

config = parse_args(["--port", "6380", "--replicaof", "localhost 6379"])
config.role          # ServerRole.SLAVE
config.master_port   # 6379
```

Flags are `--port`, `--replicaof "<host> <port>"`, `--dir` and
`--dbfilename`, each followed by a value. An odd number of arguments or an
invalid port raises `ConfigError`; unrecognised flags are ignored.

### Loading an RDB snapshot

`load_rdb` (or `Rdb(path, store).parse()` for a file) passes every string key
to a store with `set(key, value)` and `set_with_expiry(key, value, expiry_ms)`
methods:

```python
from respkv.rdb import load_rdb

class Store(dict):
    def set(self, key, value):
        self[key] = value

    def set_with_expiry(self, key, value, expiry_ms):
        self[key] = value

store = Store()
rdb = load_rdb(b"REDIS0011\xfe\x00\x00\x03foo\x03bar\xff", store)
rdb.version       # "0011"
rdb.keys_loaded   # 1
store             # {"foo": "bar"}
```

Only string values are read. LZF-compressed strings and other value types
raise `RdbError`.

### Replication

On the master, `ReplicationManager.handle` answers `INFO`, `REPLCONF`, `PSYNC`
and `WAIT` for a `ClientContext`, and `propagate_and_notify_slaves` forwards
write commands to every registered `ReplicaConnection`, whose `flush` hands
pending bytes to a `send` callback. `next_wait_timeout_ms` and
`expire_blocked_wait_clients` let an event loop time out blocked `WAIT`
clients.

On the replica, `SlaveReplicationClient` queues the handshake with
`prepare_handshake_write`, consumes the master's replies and RDB payload with
`process_read_buffer`, then passes each replicated command, as a list of
strings, to its `executor` callable and answers `REPLCONF GETACK` with the
number of bytes processed.

## What this package does not do

There is no network server, event loop or command-line program here: nothing
listens on a socket or reads from one, and the caller moves bytes between
sockets and the `read_buffer` / `write_buffer` of each `Client`. There is no
key-value store that executes commands, no parser that turns raw RESP frames
into `Command` objects, no pub/sub delivery, no geo or ACL handling beyond the
command objects themselves, and no writing of RDB snapshots.

## Tests

The tests use pytest, installed with the `test` extra:

```
pip install -e ".[test]"
pytest
```