"""Client that asks a file server for files and receives them on its own port."""

from __future__ import annotations

from collections.abc import Iterable

from peershare.direct_server import (
    _CommandConnection,
    _listen,
    _make_parser,
    _prompted_lines,
    _run_cli,
    _save_stream,
    parse_send_request,
)

SERVER_HOST = "127.0.0.1"
PORT = 444
FILE_PORT = 555
BUFFER_SIZE = 1024
NOT_FOUND = b"File not found."
PROMPT = "Enter message or file request (e.g., Send file.txt): "


class TransferError(Exception):
    """Raised when a file transfer does not deliver a file."""


def receive_file(filename: str, host: str = "", port: int = FILE_PORT) -> int:
    """Wait for one incoming transfer and store it as ``filename``.

    Returns the number of bytes written. Raises :class:`TransferError` when
    the server reports the file missing or sends nothing; no file is
    created in that case.
    """
    with _listen(host, port, 1) as listener:
        print(f"Waiting for file transfer: {filename}...")
        conn, _ = listener.accept()
        with conn:
            first = conn.recv(BUFFER_SIZE - 1)
            if not first:
                raise TransferError("Error receiving data from server.")
            if first.startswith(NOT_FOUND):
                raise TransferError(first.decode(errors="replace"))
            total = _save_stream(conn, filename, first)
    print(f"File received successfully: {filename}")
    return total


class TransferClient(_CommandConnection):
    """A command connection to a file server."""

    def __init__(
        self,
        server_host: str = SERVER_HOST,
        server_port: int = PORT,
        file_port: int = FILE_PORT,
    ) -> None:
        super().__init__(server_host, server_port)
        self.file_port = file_port

    def request(self, message: str) -> list[str]:
        """Send one message; for a file request, receive every named file.

        Returns the names of the files that arrived.
        """
        sock = self.connect()
        sock.sendall(message.encode())
        received = []
        for name in parse_send_request(message) or []:
            response = sock.recv(BUFFER_SIZE)
            print(f"Server response: {response.decode(errors='replace')}")
            try:
                receive_file(name, "", self.file_port)
            except TransferError as exc:
                print(f"Error: {exc}")
            except OSError as exc:
                print(f"File reception failed: {exc}")
            else:
                received.append(name)
        return received

    def run(self, lines: Iterable[str]) -> None:
        """Send each line as a message until ``exit`` or the lines run out."""
        with self:
            for line in lines:
                message = line.split("\n", 1)[0]
                if message == "exit":
                    self.connect().sendall(b"exit")
                    break
                self.request(message)


def main(argv: list[str] | None = None) -> int:
    parser = _make_parser(
        "Request files from a file server.",
        host=SERVER_HOST,
        port=PORT,
        file_port=FILE_PORT,
    )
    args = parser.parse_args(argv)
    client = TransferClient(args.host, args.port, args.file_port)
    return _run_cli(lambda: client.run(_prompted_lines(PROMPT)), "Connection failed")