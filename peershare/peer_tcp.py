"""Peer that looks files up on an index server and fetches them from other peers over TCP."""

from __future__ import annotations

import ipaddress
import logging
import socket
import threading
from collections.abc import Iterable

from peershare.direct_server import (
    _CommandConnection,
    _accept_forever,
    _listen,
    _make_parser,
    _prompted_lines,
    _run_cli,
    _save_stream,
    _spawn,
)
from peershare.index import REQUEST_PREFIX, parse_location_line

SERVER_HOST = "192.168.2.3"
PORT = 4444
MY_HOST = "192.168.2.6"
FILE_PORT = 5555
BUFFER_SIZE = 1024
PROMPT = "Enter filenames (comma-separated): "

log = logging.getLogger(__name__)


def _is_address(token: str) -> bool:
    try:
        ipaddress.IPv4Address(token)
    except ValueError:
        return False
    return True


def receive_file(ip: str, filename: str, port: int = FILE_PORT) -> int:
    """Ask the peer at ``ip`` for ``filename`` and store what it sends.

    Returns the number of bytes written. Connection errors are raised
    before any file is created.
    """
    with socket.create_connection((ip, port)) as sock:
        log.info("connected to: %s", ip)
        log.info("sending filename..%s", filename)
        sock.sendall(filename.encode())
        return _save_stream(sock, filename)


class TcpPeer(_CommandConnection):
    """A peer that both serves its own files and fetches files from others."""

    def __init__(
        self,
        server_host: str = SERVER_HOST,
        server_port: int = PORT,
        my_host: str = MY_HOST,
        file_port: int = FILE_PORT,
    ) -> None:
        super().__init__(server_host, server_port)
        self.my_host = my_host
        self.file_port = file_port
        self.address: tuple[str, int] | None = None
        self.ready = threading.Event()

    def handle_request(self, conn: socket.socket) -> None:
        """Read a file name from ``conn`` and send that file back, then close."""
        with conn:
            data = conn.recv(BUFFER_SIZE)
            if not data:
                log.error("Filename receive failed")
                return
            filename = data.decode(errors="replace")
            log.info("received: %s", filename)
            try:
                handle = open(filename, "rb")
            except OSError as exc:
                log.error("File open failed: %s", exc)
                return
            with handle:
                conn.sendfile(handle)
            log.info("File %s sent successfully.", filename)

    def serve_files(self) -> None:
        """Listen for other peers forever, one thread per request."""
        with _listen(self.my_host, self.file_port, 5) as server:
            self.address = server.getsockname()
            self.ready.set()
            log.info("Listening for other clients on port %d...", self.address[1])
            _accept_forever(
                server,
                lambda conn, address: self.handle_request(conn),
                lambda address: f"Connection accepted from {address[0]}:{address[1]}",
            )

    def fetch(self, filename: str, ips: Iterable[str]) -> str | None:
        """Try each address in turn; return the one that delivered the file."""
        for ip in filter(_is_address, ips):
            log.info("IP: %s", ip)
            try:
                receive_file(ip, filename, self.file_port)
            except OSError as exc:
                log.error("File connection failed: %s", exc)
                continue
            print(f"File {filename} received successfully.")
            return ip
        return None

    def _start_fetches(self, response: str) -> list[threading.Thread]:
        parsed_lines = (parse_location_line(line) for line in response.split("\n") if line)
        return [_spawn(self.fetch, *parsed) for parsed in parsed_lines if parsed is not None]

    def query(self, line: str) -> list[threading.Thread]:
        """Send one request line to the index and start fetching what it lists.

        Returns the threads doing the fetching.
        """
        sock = self.connect()
        sock.sendall(line.encode())
        if not line.startswith(REQUEST_PREFIX):
            return []
        response = sock.recv(BUFFER_SIZE).decode(errors="replace")
        print(response, end="")
        print("received file data")
        return self._start_fetches(response)

    def _serve_quietly(self) -> None:
        try:
            self.serve_files()
        except OSError as exc:
            log.error("Bind failed: %s", exc)

    def run(self, lines: Iterable[str]) -> None:
        """Serve files in the background and send each line to the index."""
        _spawn(self._serve_quietly)
        transfers: list[threading.Thread] = []
        with self:
            for line in lines:
                transfers.extend(self.query(line))
        for thread in transfers:
            thread.join()


def main(argv: list[str] | None = None) -> int:
    parser = _make_parser(
        "Share and fetch files with other peers over TCP.",
        server_host=SERVER_HOST,
        server_port=PORT,
        my_host=MY_HOST,
        file_port=FILE_PORT,
    )
    args = parser.parse_args(argv)
    peer = TcpPeer(args.server_host, args.server_port, args.my_host, args.file_port)
    return _run_cli(lambda: peer.run(_prompted_lines(PROMPT, "\n")), "Connection failed")