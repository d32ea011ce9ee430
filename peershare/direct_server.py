"""File server that pushes requested files back to the requesting client."""

from __future__ import annotations

import argparse
import logging
import re
import socket
import sys
import threading
import time
from collections.abc import Callable, Iterator

PORT = 444
FILE_PORT = 555
BUFFER_SIZE = 1024
REQUEST_PREFIX = "Send "
ACK = b"ack"
NOT_FOUND = b"File not found."
UNKNOWN = b"Unknown command"

log = logging.getLogger(__name__)


def _listen(host: str, port: int, backlog: int) -> socket.socket:
    """Return a TCP socket listening on ``(host, port)`` with address reuse."""
    return socket.create_server((host, port), backlog=backlog)


def _spawn(target: Callable[..., object], *args: object) -> threading.Thread:
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


def _accept_forever(
    server: socket.socket,
    handler: Callable[[socket.socket, tuple], object],
    announce: Callable[[tuple], str],
) -> None:
    """Accept connections forever and serve each one on its own thread."""
    while True:
        conn, address = server.accept()
        log.info("%s", announce(address))
        _spawn(handler, conn, address)


def _recv_chunks(conn: socket.socket, size: int = BUFFER_SIZE) -> Iterator[bytes]:
    """Yield what arrives on ``conn`` until the other side closes it."""
    while chunk := conn.recv(size):
        yield chunk


def _save_stream(conn: socket.socket, filename: str, first: bytes = b"") -> int:
    """Write ``first`` and then everything left on ``conn`` to ``filename``."""
    with open(filename, "wb") as handle:
        total = handle.write(first)
        for chunk in _recv_chunks(conn):
            total += handle.write(chunk)
    return total


class _CommandConnection:
    """A lazily opened command connection to a server."""

    def __init__(self, server_host: str, server_port: int) -> None:
        self.server_host = server_host
        self.server_port = server_port
        self._sock: socket.socket | None = None

    def connect(self) -> socket.socket:
        if self._sock is None:
            self._sock = socket.create_connection((self.server_host, self.server_port))
        return self._sock

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _prompted_lines(prompt: str, suffix: str = "") -> Iterator[str]:
    while True:
        try:
            yield input(prompt) + suffix
        except EOFError:
            return


def _make_parser(description: str, **defaults: object) -> argparse.ArgumentParser:
    """Build a parser with one ``--option`` per keyword, typed by its default."""
    parser = argparse.ArgumentParser(description=description)
    for dest, default in defaults.items():
        parser.add_argument("--" + dest.replace("_", "-"), type=type(default), default=default)
    return parser


def _run_cli(action: Callable[[], object], failure: str) -> int:
    """Run a command's main action and turn its outcome into an exit status."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    try:
        action()
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"{failure}: {exc}", file=sys.stderr)
        return 1
    return 0


def parse_send_request(message: str) -> list[str] | None:
    """Return the file names in a ``Send a, b`` message, or ``None`` otherwise."""
    if not message.startswith(REQUEST_PREFIX):
        return None
    return [name for name in re.split(r"[, ]", message[len(REQUEST_PREFIX):]) if name]


def send_file(path: str, client_ip: str, port: int = FILE_PORT) -> bool:
    """Connect to the client's file port and stream ``path`` to it.

    Returns ``False`` (after telling the client) when the file cannot be
    opened. Connection errors are raised.
    """
    log.info("Connecting to client for file transfer on port %d...", port)
    with socket.create_connection((client_ip, port)) as sock:
        try:
            handle = open(path, "rb")
        except OSError:
            sock.sendall(NOT_FOUND)
            log.info("File %s not found.", path)
            return False
        with handle:
            sock.sendfile(handle)
    log.info("File %s is sent successfully.", path)
    return True


class TransferServer:
    """Accepts clients and answers their file requests, one thread each."""

    ack_delay = 1.0

    def __init__(self, host: str = "", port: int = PORT, file_port: int = FILE_PORT) -> None:
        self.host = host
        self.port = port
        self.file_port = file_port
        self.address: tuple[str, int] | None = None
        self.ready = threading.Event()

    def handle_client(self, conn: socket.socket, address) -> None:
        """Serve one client's commands until it leaves or says ``exit``."""
        client_ip = address[0]
        with conn:
            for data in _recv_chunks(conn, BUFFER_SIZE - 1):
                message = data.decode(errors="replace")
                log.info("Received: %s", message)
                names = parse_send_request(message)
                if names is not None:
                    for name in names:
                        conn.sendall(ACK)
                        # Give the client time to start listening.
                        time.sleep(self.ack_delay)
                        try:
                            send_file(name, client_ip, self.file_port)
                        except OSError as exc:
                            log.error("File transfer connection failed: %s", exc)
                elif message == "exit":
                    return
                else:
                    conn.sendall(UNKNOWN)
            log.info("Client disconnected.")

    def serve_forever(self) -> None:
        """Listen on the command port and hand each client to a thread."""
        with _listen(self.host, self.port, 5) as server:
            self.address = server.getsockname()
            self.ready.set()
            log.info("Server is listening on port %d...", self.address[1])
            _accept_forever(server, self.handle_client, lambda address: "Client connected.")


def main(argv: list[str] | None = None) -> int:
    parser = _make_parser(
        "Serve files to connecting clients.", host="", port=PORT, file_port=FILE_PORT
    )
    args = parser.parse_args(argv)
    server = TransferServer(args.host, args.port, args.file_port)
    return _run_cli(server.serve_forever, "Server failed")