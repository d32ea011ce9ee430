import socket
import threading

import pytest

from peershare.direct_server import (
    TransferServer,
    main,
    parse_send_request,
    send_file,
)

PAYLOAD = bytes(range(256)) * 20


@pytest.fixture
def listener():
    with socket.create_server(("127.0.0.1", 0)) as sock:
        sock.settimeout(5)
        yield sock


def _read_until_closed(sock):
    with sock.makefile("rb") as stream:
        return stream.read()


def _recv_exactly(sock, size):
    data = b""
    while len(data) < size and (chunk := sock.recv(size - len(data))):
        data += chunk
    return data


def _accept_one(listener):
    conn, _ = listener.accept()
    with conn:
        conn.settimeout(5)
        return _read_until_closed(conn)


def _accept_in_background(listener):
    result = {}
    worker = threading.Thread(target=lambda: result.update(data=_accept_one(listener)))
    worker.start()
    return worker, result


def _start_handler(server):
    ours, theirs = socket.socketpair()
    ours.settimeout(5)
    worker = threading.Thread(target=server.handle_client, args=(theirs, ("127.0.0.1", 0)))
    worker.start()
    return ours, worker


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Send a.txt, b.txt", ["a.txt", "b.txt"]),
        ("Send a,,b  c", ["a", "b", "c"]),
        ("hello", None),
        ("Send ", []),
    ],
)
def test_parse_send_request(message, expected):
    assert parse_send_request(message) == expected


@pytest.mark.parametrize(
    "name, sent, expected",
    [("data.bin", True, PAYLOAD), ("none", False, b"File not found.")],
)
def test_send_file(tmp_path, listener, name, sent, expected):
    (tmp_path / "data.bin").write_bytes(PAYLOAD)
    worker, result = _accept_in_background(listener)
    assert send_file(str(tmp_path / name), "127.0.0.1", listener.getsockname()[1]) is sent
    worker.join(5)
    assert result["data"] == expected


def test_send_file_connection_refused(tmp_path):
    with socket.create_server(("127.0.0.1", 0)) as closed:
        port = closed.getsockname()[1]
    with pytest.raises(OSError):
        send_file(str(tmp_path / "x"), "127.0.0.1", port)


def test_handle_client_unknown_command_then_exit():
    ours, worker = _start_handler(TransferServer(file_port=1))
    with ours:
        ours.sendall(b"hello")
        assert _recv_exactly(ours, 15) == b"Unknown command"
        ours.sendall(b"exit")
        worker.join(5)
    assert not worker.is_alive()


def test_handle_client_sends_files(tmp_path, monkeypatch, listener):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.txt").write_bytes(b"alpha")
    server = TransferServer(file_port=listener.getsockname()[1])
    server.ack_delay = 0
    ours, worker = _start_handler(server)
    with ours:
        ours.sendall(b"Send a.txt, b.txt")
        for expected in (b"alpha", b"File not found."):
            assert _recv_exactly(ours, 3) == b"ack"
            assert _accept_one(listener) == expected
    worker.join(5)
    assert not worker.is_alive()


def test_serve_forever_answers_clients():
    server = TransferServer("127.0.0.1", 0, 1)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    assert server.ready.wait(5)
    with socket.create_connection(server.address, timeout=5) as client:
        client.sendall(b"status")
        assert _recv_exactly(client, 15) == b"Unknown command"


def test_main_help_exits_cleanly():
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0