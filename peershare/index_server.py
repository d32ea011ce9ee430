"""Index server that tells peers where requested files can be fetched."""

from __future__ import annotations

import logging
import socket

from peershare.direct_server import (
    _accept_forever,
    _listen,
    _make_parser,
    _recv_chunks,
    _run_cli,
)
from peershare.index import FileIndex, default_index

DEFAULT_HOST = "192.168.2.3"
PORT = 4444
BUFFER_SIZE = 1024

log = logging.getLogger(__name__)


def _answer(index: FileIndex, data: bytes) -> bytes | None:
    """Decode one request, look it up and return the encoded reply, if any."""
    message = data.decode(errors="replace")
    log.info("Received: %s", message)
    response = index.answer(message)
    if response is None:
        return None
    log.info("%s", response.rstrip("\n"))
    return response.encode()


def handle_tcp_connection(index: FileIndex, conn: socket.socket) -> None:
    """Answer file requests on ``conn`` until the peer disconnects."""
    with conn:
        for data in _recv_chunks(conn, BUFFER_SIZE):
            reply = _answer(index, data)
            if reply is not None:
                conn.sendall(reply)


def serve_tcp(index: FileIndex, host: str = DEFAULT_HOST, port: int = PORT) -> None:
    """Accept TCP peers forever, one thread per connection."""
    with _listen(host, port, 10) as server:
        log.info("Server listening on port %d...", port)
        _accept_forever(
            server,
            lambda conn, address: handle_tcp_connection(index, conn),
            lambda address: f"Connection from {address[0]}",
        )


def serve_udp(index: FileIndex, host: str = DEFAULT_HOST, port: int = PORT) -> None:
    """Answer file requests arriving as UDP datagrams, forever."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind((host, port))
        log.info("Server listening on port %d...", port)
        while True:
            data, address = sock.recvfrom(BUFFER_SIZE)
            if not data:
                continue
            reply = _answer(index, data)
            if reply is not None:
                sock.sendto(reply, address)


def main(argv: list[str] | None = None) -> int:
    parser = _make_parser(
        "Serve the file location index.", host=DEFAULT_HOST, port=PORT
    )
    parser.add_argument("--udp", action="store_true", help="serve over UDP")
    args = parser.parse_args(argv)
    serve = serve_udp if args.udp else serve_tcp
    return _run_cli(lambda: serve(default_index(), args.host, args.port), "Server failed")