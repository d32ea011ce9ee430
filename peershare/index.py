"""Lookup table mapping file names to the peers that hold them."""

from __future__ import annotations

import re
from collections.abc import Iterable

REQUEST_PREFIX = "Send "

_DEFAULT_ENTRIES = (
    ("file1.txt", "192.168.2.5"),
    ("file2.txt", "192.168.2.6"),
    ("file3.txt", "127.0.0.2"),
    ("file1.txt", "127.0.0.4"),
    ("file1.txt", "127.0.0.7"),
    ("file1.txt", "127.0.0.5"),
    ("file1.txt", "127.0.0.6"),
    ("file2.txt", "192.168.2.5"),
)


class FileIndex:
    """An ordered collection of (file name, peer address) pairs."""

    def __init__(self, entries: Iterable[tuple[str, str]] = ()) -> None:
        self._entries = [(str(name), str(ip)) for name, ip in entries]

    def __len__(self) -> int:
        return len(self._entries)

    def locations(self, filename: str) -> list[str]:
        """Return the addresses holding ``filename``, in table order."""
        return [ip for name, ip in self._entries if name == filename]

    def answer(self, request: str) -> str | None:
        """Build the reply to a ``Send a,b,...`` request.

        Returns ``None`` when the request is not a file request. Each
        requested name yields one line: the name, ``->`` and every known
        address followed by ``", "``, or a not-found notice.
        """
        if not request.startswith(REQUEST_PREFIX):
            return None
        lines = []
        for token in request[len(REQUEST_PREFIX):].split(","):
            if not token:
                continue
            filename = token.split("\n", 1)[0]
            ips = self.locations(filename)
            line = f"{filename} -> " + "".join(f"{ip}, " for ip in ips)
            if not ips:
                line += f"{filename} -> File not found"
            lines.append(line + "\n")
        return "".join(lines)


def default_index() -> FileIndex:
    """Return the built-in table of shared files."""
    return FileIndex(_DEFAULT_ENTRIES)


def parse_location_line(line: str) -> tuple[str, list[str]] | None:
    """Split one reply line into the file name and the addresses after ``->``.

    Returns ``None`` when the line holds no ``"-> "`` marker.
    """
    pos = line.find("-> ")
    if pos < 0:
        return None
    filename = line[: max(pos - 1, 0)]
    ips = [token for token in re.split(r"[, ]", line[pos + 3:]) if token]
    return filename, ips