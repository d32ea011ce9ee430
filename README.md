# peershare

Small command-line tools for moving files between machines over plain
sockets. There are two independent setups:

* a **direct** setup, where one server pushes files straight to a client, and
* a **peer-to-peer** setup, where a central index tells peers which machines
  hold a file and the peers then fetch it from each other, over TCP or UDP.

Only the standard library is used. All commands log progress to standard
output and return exit status 1 when a socket operation fails.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Direct transfer

Start the server on the machine that holds the files:

```
peershare-server [--host HOST] [--port 444] [--file-port 555]
```

It accepts control connections on `--port` and serves each client on its own
thread. Then start the client:

```
peershare-client [--host 127.0.0.1] [--port 444] [--file-port 555]
```

The client reads lines from standard input. A line such as

```
Send notes.txt, report.pdf
```

asks for each named file in turn (names may be separated by commas, spaces
or both). For every file the server sends a short acknowledgement, waits one
second, then connects back to the client's address on the file port and
streams the contents. Meanwhile the client listens on that port, writes what
arrives to a file of the same name in its working directory, and prints the
result. If the server cannot open the file it sends `File not found.` and
the client creates nothing. Any other line is answered with
`Unknown command`; `exit` (or end of input) ends the session.

From Python:

* `peershare.direct_server` provides `TransferServer` (`handle_client`,
  `serve_forever`), `send_file(path, client_ip, port)` and
  `parse_send_request(message)`, which returns the file names of a
  `Send ...` message or `None`.
* `peershare.direct_client` provides `TransferClient` (`request`, `run`) and
  `receive_file(filename, host, port)`, which returns the number of bytes
  written and raises `TransferError` when no file arrives.

## Peer-to-peer sharing

### The index

The index server knows which peers hold which file:

```
peershare-index [--host 192.168.2.3] [--port 4444] [--udp]
```

It serves over TCP by default, or over UDP with `--udp`. A peer sends it a
line such as `Send file1.txt,file2.txt` (names separated by commas only) and
gets back one line per file, each known address followed by `", "`:

```
file1.txt -> 192.168.2.5, 127.0.0.4, 127.0.0.7, 127.0.0.5, 127.0.0.6, 
```

For an unknown name the line reads `name -> name -> File not found`. Lines
that do not start with `Send ` get no reply.

From Python, `peershare.index.FileIndex` holds the table of file names and
addresses: `locations(filename)` lists the peers holding a file in table
order, `answer(request)` builds the reply to a request, `default_index()`
returns the built-in table, and `parse_location_line(line)` reads one reply
line back into a file name and its addresses. `peershare.index_server`
offers `serve_tcp`, `serve_udp` and `handle_tcp_connection`.

### Peers

Each peer both serves files from its working directory to other peers and
fetches the files it asks the index about. Choose the transport:

```
peershare-peer-tcp [--server-host 192.168.2.3] [--server-port 4444] [--my-host 192.168.2.6] [--file-port 5555]
```

or

```
peershare-peer-udp [--server-host 192.168.2.3] [--server-port 4444] [--my-host 192.168.2.6] [--file-port 5555]
```

`--my-host` is the address the peer listens on for other peers, so set it to
an address of your own machine. Type a request such as `Send file1.txt` at
the prompt. The peer prints the index's answer and, for every file listed,
starts a thread that tries the given addresses in order, stopping at the
first one that delivers the file; words that are not IPv4 addresses are
skipped. When input ends the peer waits for running fetches to finish.

Differences between the two:

* The TCP peer asks for a file by sending its name over a new connection and
  reads the contents until the other peer closes it.
* The UDP peer sends the contents in datagrams ending with an empty one,
  gives up on an address that stays silent for 5 seconds, and appends every
  index answer to `ipdetails.txt`. It waits for a reply to every line it
  sends, so only send `Send ...` lines to a UDP index.

In Python these are `peershare.peer_tcp.TcpPeer` and
`peershare.peer_udp.UdpPeer`, each with `serve_files`, `handle_request`,
`query`, `fetch` and `run`, plus a module-level `receive_file` for fetching a
single file from one peer.

## What it does not do

* The index serves a fixed built-in table (`default_index()`); peers cannot
  register or announce their files, and no command loads a table from a
  file. A different table can only be used from Python, by passing a
  `FileIndex` to `serve_tcp` or `serve_udp`.
* Transfers are not checked or resumed: a file that arrives partly is left
  as it is, and UDP datagrams that are lost or reordered are not detected.
* File names and contents are sent as they are, with no authentication or
  encryption, and any file the serving process can open may be requested.
  Use these tools on networks you trust.