import time

from respkv.admin_commands import InfoCommand, ReplConfCommand, ReplConfType, PsyncCommand, WaitCommand
from respkv.commands import GetCommand, SetCommand
from respkv.config import ServerConfig, ServerRole
from respkv.replication import (
    EMPTY_RDB,
    GETACK_COMMAND,
    BlockedWaitClient,
    Client,
    ClientContext,
    ReplicaConnection,
    ReplicationManager,
    read_rdb_file,
)
from respkv.resp import encode_bulk_string


def make_config(**kwargs):
    return ServerConfig(replication_id="abc", **kwargs)


def make_slave(manager, fd, offset=0):
    sent = []
    client = Client(fd=fd, replica_offset=offset)
    conn = ReplicaConnection(client, sent.append)
    manager.add_slave_connection(fd, conn)
    return client, conn, sent


def test_info_master():
    manager = ReplicationManager()
    ctx = ClientContext(Client(fd=1), 1, command=InfoCommand())
    assert manager.handle(ctx, make_config())
    expected = encode_bulk_string("role:master\r\nmaster_replid:abc\r\nmaster_repl_offset:0\r\n")
    assert bytes(ctx.client.write_buffer) == expected


def test_info_slave():
    manager = ReplicationManager()
    ctx = ClientContext(Client(fd=1), 1, command=InfoCommand())
    manager.handle(ctx, make_config(role=ServerRole.SLAVE))
    assert bytes(ctx.client.write_buffer) == encode_bulk_string("role:slave\r\n")


def test_replconf_handshake_answers_ok():
    manager = ReplicationManager()
    command = ReplConfCommand(listening_port="6380")
    ctx = ClientContext(Client(fd=1), 1, command=command)
    assert manager.handle(ctx, make_config())
    assert bytes(ctx.client.write_buffer) == b"+OK\r\n"


def test_psync_sends_rdb_and_registers(tmp_path):
    (tmp_path / "dump.rdb").write_bytes(b"hello")
    config = make_config(rdb_file_path=str(tmp_path), rdb_file_name="dump.rdb")
    manager = ReplicationManager()
    client = Client(fd=7)
    conn = ReplicaConnection(client)
    ctx = ClientContext(client, 7, connection=conn, command=PsyncCommand(repl_id="?", offset=-1))
    assert manager.handle(ctx, config)
    assert bytes(client.write_buffer) == b"+FULLRESYNC abc 0\r\n$5\r\nhello"
    assert client.is_slave
    assert manager.slave_connections == {7: conn}


def test_psync_without_file_sends_empty_rdb():
    manager = ReplicationManager()
    ctx = ClientContext(Client(fd=3), 3, command=PsyncCommand())
    manager.handle(ctx, make_config())
    assert bytes(ctx.client.write_buffer).endswith(b"$18\r\n" + EMPTY_RDB)


def test_read_rdb_file(tmp_path):
    path = tmp_path / "x.rdb"
    path.write_bytes(b"REDIS0011\xff")
    assert read_rdb_file(str(path)) == b"REDIS0011\xff"
    assert read_rdb_file(str(tmp_path / "missing.rdb")) == EMPTY_RDB
    assert EMPTY_RDB.startswith(b"REDIS0011")


def test_wait_without_writes_reports_replica_count():
    manager = ReplicationManager()
    make_slave(manager, 10)
    make_slave(manager, 11)
    ctx = ClientContext(Client(fd=1), 1, command=WaitCommand(num_replica=5, timeout=100))
    manager.handle(ctx, make_config())
    assert bytes(ctx.client.write_buffer) == b":2\r\n"
    assert not ctx.is_blocked


def test_wait_already_caught_up():
    manager = ReplicationManager()
    make_slave(manager, 10, offset=50)
    ctx = ClientContext(Client(fd=1), 1, command=WaitCommand(num_replica=1, timeout=100))
    manager.handle(ctx, make_config(offset=50))
    assert bytes(ctx.client.write_buffer) == b":1\r\n"


def test_wait_blocks_until_ack():
    manager = ReplicationManager()
    slave, _, sent = make_slave(manager, 10)
    waiter = Client(fd=1)
    ctx = ClientContext(waiter, 1, command=WaitCommand(num_replica=1, timeout=0))
    manager.handle(ctx, make_config(offset=31))
    assert ctx.is_blocked
    assert sent == [GETACK_COMMAND]
    assert waiter.write_buffer == bytearray()

    ack = ClientContext(slave, 10, command=ReplConfCommand(subcommand=ReplConfType.ACK, ack_offset=31))
    manager.handle(ack, make_config(offset=31))
    assert slave.replica_offset == 31
    assert bytes(waiter.write_buffer) == b":1\r\n"
    assert ack.unblocked_client_fd == 1
    assert manager.blocked_wait_clients == []


def test_wait_expires():
    manager = ReplicationManager()
    make_slave(manager, 10)
    waiter = Client(fd=4)
    ctx = ClientContext(waiter, 4, command=WaitCommand(num_replica=1, timeout=1))
    manager.handle(ctx, make_config(offset=10))
    time.sleep(0.01)
    assert manager.next_wait_timeout_ms() == 0
    assert manager.expire_blocked_wait_clients() == [4]
    assert bytes(waiter.write_buffer) == b":0\r\n"
    assert manager.next_wait_timeout_ms() == -1


def test_next_wait_timeout():
    manager = ReplicationManager()
    assert manager.next_wait_timeout_ms() == -1
    make_slave(manager, 10)
    ctx = ClientContext(Client(fd=1), 1, command=WaitCommand(num_replica=1, timeout=0))
    manager.handle(ctx, make_config(offset=5))
    assert manager.next_wait_timeout_ms() == -1
    ctx2 = ClientContext(Client(fd=2), 2, command=WaitCommand(num_replica=1, timeout=10000))
    manager.handle(ctx2, make_config(offset=5))
    assert 0 < manager.next_wait_timeout_ms() <= 10000


def test_blocked_wait_client_infinite_never_expires():
    client = Client(fd=1)
    blocked = BlockedWaitClient(client, 1, 0, 1, 5)
    assert blocked.is_expired() is False
    assert blocked.client is client


def test_propagate_requires_slaves():
    manager = ReplicationManager()
    ctx = ClientContext(Client(fd=1), 1, command=SetCommand(key="k", value="v"))
    assert manager.handle_propagate(ctx, make_config()) is False


def test_propagate_write_command():
    manager = ReplicationManager()
    slave, _, _ = make_slave(manager, 10)
    command = SetCommand(key="k", value="v", bytes_processed=29)
    config = make_config()
    ctx = ClientContext(Client(fd=1), 1, command=command)
    assert manager.handle_propagate(ctx, config)
    assert bytes(slave.write_buffer) == command.to_resp()
    assert config.offset == 29


def test_propagate_ignores_read_command():
    manager = ReplicationManager()
    slave, _, _ = make_slave(manager, 10)
    config = make_config()
    ctx = ClientContext(Client(fd=1), 1, command=GetCommand(key="k", bytes_processed=20))
    assert manager.handle_propagate(ctx, config) is False
    assert slave.write_buffer == bytearray()
    assert config.offset == 0


def test_propagate_removes_inactive_slaves():
    manager = ReplicationManager()
    _, conn, _ = make_slave(manager, 10)
    make_slave(manager, 11)
    conn.client = None
    ctx = ClientContext(Client(fd=1), 1, command=SetCommand(key="k", value="v"))
    manager.handle_propagate(ctx, make_config())
    assert list(manager.slave_connections) == [11]


def test_propagate_and_notify_flushes():
    manager = ReplicationManager()
    slave, _, sent = make_slave(manager, 10)
    command = SetCommand(key="a", value="b", bytes_processed=10)
    ctx = ClientContext(Client(fd=1), 1, command=command)
    assert manager.propagate_and_notify_slaves(ctx, make_config())
    assert sent == [command.to_resp()]
    assert slave.write_buffer == bytearray()


def test_remove_slave_connection():
    manager = ReplicationManager()
    make_slave(manager, 10)
    manager.remove_slave_connection(10)
    manager.remove_slave_connection(99)
    assert manager.slave_connections == {}


def test_handle_rejects_missing_and_other_commands():
    manager = ReplicationManager()
    assert manager.handle(ClientContext(Client(fd=1), 1), make_config()) is False
    ctx = ClientContext(Client(fd=1), 1, command=GetCommand(key="k"))
    assert manager.handle(ctx, make_config()) is False


def test_connection_flush_returns_bytes_sent():
    sent = []
    client = Client(fd=1)
    client.write_buffer += b"abc"
    conn = ReplicaConnection(client, sent.append)
    assert conn.flush() == 3
    assert sent == [b"abc"]
    assert conn.flush() == 0