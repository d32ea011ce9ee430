import socket
import threading
import time

import pytest

from peershare.direct_client import TransferClient, TransferError, main, receive_file


@pytest.fixture
def free_port():
    with socket.create_server(("127.0.0.1", 0)) as probe:
        return probe.getsockname()[1]


@pytest.fixture
def server_socket():
    with socket.create_server(("127.0.0.1", 0), backlog=1) as sock:
        yield sock


def _connect_retry(address, attempts=250):
    for _ in range(attempts):
        try:
            return socket.create_connection(address, timeout=5)
        except ConnectionRefusedError:
            time.sleep(0.02)
    raise RuntimeError("listener never came up")


def _push(port, payload):
    with _connect_retry(("127.0.0.1", port)) as sock:
        sock.sendall(payload)


def _push_later(port, payload):
    pusher = threading.Thread(target=_push, args=(port, payload), daemon=True)
    pusher.start()
    return pusher


def _drain(conn):
    return b"".join(iter(lambda: conn.recv(4096), b""))


def test_receive_file_writes_payload(tmp_path, free_port):
    payload = b"0123456789" * 500
    target = tmp_path / "out.bin"
    pusher = _push_later(free_port, payload)
    written = receive_file(str(target), "127.0.0.1", free_port)
    pusher.join(10)
    assert written == len(payload)
    assert target.read_bytes() == payload


@pytest.mark.parametrize(
    "payload, message",
    [(b"File not found.", "File not found."), (b"", "Error receiving data")],
)
def test_receive_file_failure_creates_nothing(tmp_path, free_port, payload, message):
    target = tmp_path / "missing.bin"
    pusher = _push_later(free_port, payload)
    with pytest.raises(TransferError, match=message):
        receive_file(str(target), "127.0.0.1", free_port)
    pusher.join(10)
    assert not target.exists()


def _fake_server(listener, file_port, payload, seen):
    conn, _ = listener.accept()
    with conn:
        seen.append(conn.recv(1024))
        conn.sendall(b"ack")
        _push(file_port, payload)
        seen.append(_drain(conn))


@pytest.mark.parametrize(
    "payload, expected_received, expected_content",
    [
        (b"payload bytes", ["got.bin"], b"payload bytes"),
        (b"File not found.", [], None),
    ],
)
def test_request(
    tmp_path, monkeypatch, server_socket, free_port, payload, expected_received, expected_content
):
    monkeypatch.chdir(tmp_path)
    seen = []
    worker = threading.Thread(
        target=_fake_server, args=(server_socket, free_port, payload, seen)
    )
    worker.start()
    with TransferClient("127.0.0.1", server_socket.getsockname()[1], free_port) as client:
        received = client.request("Send got.bin")
    worker.join(10)
    target = tmp_path / "got.bin"
    assert received == expected_received
    assert (target.read_bytes() if target.exists() else None) == expected_content
    assert seen[0] == b"Send got.bin"


def test_run_sends_messages_until_exit(server_socket):
    seen = []

    def collect():
        conn, _ = server_socket.accept()
        with conn:
            seen.append(_drain(conn))

    worker = threading.Thread(target=collect)
    worker.start()
    client = TransferClient("127.0.0.1", server_socket.getsockname()[1], 1)
    result = client.run(["hello\n", "exit\n", "ignored\n"])
    worker.join(10)
    assert result is None
    assert seen == [b"helloexit"]


def test_run_connection_refused(free_port):
    client = TransferClient("127.0.0.1", free_port, 1)
    with pytest.raises(ConnectionRefusedError):
        client.run(["hello"])


def test_main_reports_connection_failure(free_port):
    assert main(["--host", "127.0.0.1", "--port", str(free_port)]) == 1