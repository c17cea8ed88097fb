import io
import socket

from svcplug.serverplugin.tee import TeeConn, TeeConnPlugin


def test_recv_copies_to_writer():
    a, b = socket.socketpair()
    with a, b:
        out = io.BytesIO()
        conn, ok = TeeConnPlugin(out).handle_conn_accept(a)
        assert ok is True
        b.sendall(b"hello")
        assert conn.recv(5) == b"hello"
        assert out.getvalue() == b"hello"


def test_delegates_other_attributes():
    a, b = socket.socketpair()
    with a, b:
        conn = TeeConn(a, None)
        assert conn.fileno() == a.fileno()


def test_read_from_file_like():
    out = io.BytesIO()
    conn = TeeConn(io.BytesIO(b"payload"), out)
    assert conn.read(3) == b"pay"
    assert conn.read() == b"load"
    assert out.getvalue() == b"payload"


def test_no_writer_no_copy():
    plugin = TeeConnPlugin()
    conn, _ = plugin.handle_conn_accept(io.BytesIO(b"data"))
    assert conn.read() == b"data"
    assert conn.writer is None


def test_writer_errors_ignored():
    class Broken:
        def write(self, data):
            raise OSError("disk full")

    conn = TeeConn(io.BytesIO(b"abc"), Broken())
    assert conn.read() == b"abc"


def test_update_affects_new_connections_only():
    first = io.BytesIO()
    second = io.BytesIO()
    plugin = TeeConnPlugin(first)
    old, _ = plugin.handle_conn_accept(io.BytesIO(b"x"))
    plugin.update(second)
    new, _ = plugin.handle_conn_accept(io.BytesIO(b"y"))
    old.read()
    new.read()
    assert first.getvalue() == b"x"
    assert second.getvalue() == b"y"