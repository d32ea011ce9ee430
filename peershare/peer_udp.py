"""Peer that looks files up on an index server and fetches them from other peers over UDP."""

from __future__ import annotations

import argparse
import ipaddress
import logging
import socket
import sys
import threading
from collections.abc import Iterable, Iterator

from peershare.index import parse_location_line

SERVER_HOST = "192.168.2.3"
PORT = 4444
MY_HOST = "192.168.2.6"
FILE_PORT = 5555
BUFFER_SIZE = 1024
TIMEOUT = 5.0
IPDETAILS_FILE = "ipdetails.txt"
PROMPT = "Enter filenames (comma-separated): "

log = logging.getLogger(__name__)


def _is_address(token: str) -> bool:
    try:
        ipaddress.IPv4Address(token)
    except ValueError:
        return False
    return True


def receive_file(ip: str, filename: str, port: int = FILE_PORT, timeout: float = TIMEOUT) -> int:
    """Ask the peer at ``ip`` for ``filename`` and store the datagrams it sends.

    The transfer ends with an empty datagram. Returns the number of bytes
    written; raises :class:`TimeoutError` when the peer falls silent.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.settimeout(timeout)
        log.info("sending filename: %s", filename)
        sock.sendto(filename.encode(), (ip, port))
        total = 0
        with open(filename, "wb") as handle:
            while True:
                try:
                    data, _ = sock.recvfrom(BUFFER_SIZE)
                except TimeoutError:
                    log.info("Timeout: No response received.")
                    raise
                if not data:
                    break
                handle.write(data)
                total += len(data)
                log.info("received %d bytes of data...", len(data))
    return total


class UdpPeer:
    """A peer that both serves its own files and fetches files from others."""

    timeout = TIMEOUT

    def __init__(
        self,
        server_host: str = SERVER_HOST,
        server_port: int = PORT,
        my_host: str = MY_HOST,
        file_port: int = FILE_PORT,
    ) -> None:
        self.server_host = server_host
        self.server_port = server_port
        self.my_host = my_host
        self.file_port = file_port
        self.address: tuple[str, int] | None = None
        self.ready = threading.Event()
        self._sock: socket.socket | None = None

    def connect(self) -> None:
        if self._sock is None:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self) -> UdpPeer:
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def handle_request(self, sock: socket.socket, filename: str, address) -> None:
        """Send ``filename`` to ``address`` in datagrams, ending with an empty one."""
        log.info("Handling client from %s:%d", address[0], address[1])
        try:
            handle = open(filename, "rb")
        except OSError as exc:
            log.error("File open failed: %s", exc)
            return
        with handle:
            while chunk := handle.read(BUFFER_SIZE):
                log.info("sending %d bytes of data...", len(chunk))
                sock.sendto(chunk, address)
        sock.sendto(b"", address)

    def serve_files(self) -> None:
        """Answer file requests from other peers forever, one thread each."""
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.bind((self.my_host, self.file_port))
            self.address = sock.getsockname()
            self.ready.set()
            log.info("Listening for other clients on port %d (UDP)...", self.address[1])
            while True:
                data, address = sock.recvfrom(BUFFER_SIZE)
                if not data:
                    continue
                filename = data.decode(errors="replace")
                log.info("Received from client: %s", filename)
                threading.Thread(
                    target=self.handle_request, args=(sock, filename, address), daemon=True
                ).start()

    def fetch(self, filename: str, ips: Iterable[str]) -> str | None:
        """Try each address in turn; return the one that delivered the file."""
        for ip in ips:
            if not _is_address(ip):
                continue
            log.info("IP: %s", ip)
            try:
                receive_file(ip, filename, self.file_port, self.timeout)
            except OSError as exc:
                log.error("recvfrom failed: %s", exc)
                continue
            print(f"File {filename} received successfully.")
            return ip
        return None

    def _start_fetches(self, response: str) -> list[threading.Thread]:
        threads = []
        for line in response.split("\n"):
            if not line:
                continue
            parsed = parse_location_line(line)
            if parsed is None:
                continue
            thread = threading.Thread(target=self.fetch, args=parsed, daemon=True)
            thread.start()
            threads.append(thread)
        return threads

    def query(self, line: str) -> list[threading.Thread]:
        """Send one request line to the index, record its reply and start fetching.

        The reply is appended to the address log file. Returns the threads
        doing the fetching.
        """
        self.connect()
        self._sock.sendto(line.encode(), (self.server_host, self.server_port))
        data, _ = self._sock.recvfrom(BUFFER_SIZE)
        if not data:
            return []
        with open(IPDETAILS_FILE, "ab") as details:
            details.write(data)
        response = data.decode(errors="replace")
        print(response, end="")
        return self._start_fetches(response)

    def _serve_quietly(self) -> None:
        try:
            self.serve_files()
        except OSError as exc:
            log.error("Bind failed: %s", exc)

    def run(self, lines: Iterable[str]) -> None:
        """Serve files in the background and send each line to the index."""
        threading.Thread(target=self._serve_quietly, daemon=True).start()
        self.connect()
        transfers: list[threading.Thread] = []
        try:
            for line in lines:
                transfers.extend(self.query(line))
        finally:
            self.close()
        for thread in transfers:
            thread.join()


def _prompted_lines() -> Iterator[str]:
    while True:
        try:
            yield input(PROMPT) + "\n"
        except EOFError:
            return


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Share and fetch files with other peers over UDP.")
    parser.add_argument("--server-host", default=SERVER_HOST)
    parser.add_argument("--server-port", type=int, default=PORT)
    parser.add_argument("--my-host", default=MY_HOST)
    parser.add_argument("--file-port", type=int, default=FILE_PORT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    peer = UdpPeer(args.server_host, args.server_port, args.my_host, args.file_port)
    try:
        peer.run(_prompted_lines())
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"Request failed: {exc}", file=sys.stderr)
        return 1
    return 0