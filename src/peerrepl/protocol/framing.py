"""Line framing for the REPL wire protocol.

The protocol is plain text with no framing beyond newlines:

    server -> client:  prompt (unterminated)
    client -> server:  one or more chunks, the last one ending in LF
    server -> client:  raw result text (no length prefix, no terminator)

Details that are easy to get wrong:
    - recv() may return a line in several pieces; keep reading until the
      accumulated buffer ends in LF.
    - CR LF is collapsed to LF only at the *tail* of each received chunk.
      A CR LF pair in the middle of a chunk is passed through untouched.
    - A chunk consisting of exactly one 0x04 byte (EOT, what a terminal
      sends for Ctrl-D) ends the session, whatever came before it.
    - send() may write fewer bytes than asked. For the prompt that counts
      as end-of-session; for results we loop until everything is written.

Socket errors (OSError) are not caught here. The session decides what an
I/O failure means.
"""
from __future__ import annotations

import socket

CHUNK_SIZE = 2048
LF = 0x0A
CR = 0x0D
EOT = 0x04
EOL = b"\n"


def _normalize_tail(chunk: bytes) -> bytes:
    """Collapse a trailing CR LF into LF. Only the tail is inspected."""
    if len(chunk) > 1 and chunk[-1] == LF and chunk[-2] == CR:
        return chunk[:-2] + EOL
    return chunk


def read_line(sock: socket.socket, prompt: bytes, buffer: bytearray) -> bool:
    """Send ``prompt`` and append one LF-terminated line to ``buffer``.

    Returns:
        True once the buffer ends in LF.
        False on end-of-session: short prompt write, peer closed the
        connection, or a lone EOT byte was received.
    """
    if sock.send(prompt) != len(prompt):
        return False

    while True:
        chunk = sock.recv(CHUNK_SIZE)
        if not chunk:
            return False
        chunk = _normalize_tail(chunk)
        if len(chunk) == 1 and chunk[0] == EOT:
            return False
        buffer += chunk
        if chunk[-1] == LF:
            return True


def send_all(sock: socket.socket, data: bytes) -> bool:
    """Write every byte of ``data``. Returns False if a send makes no progress."""
    view = memoryview(data)
    while view:
        sent = sock.send(view)
        if sent <= 0:
            return False
        view = view[sent:]
    return True


def trim_trailing_terminator(buffer: bytes | bytearray) -> bytes:
    """Drop the line terminator that ends a complete command.

    Scans back from the last byte to the nearest LF (never index 0) and
    truncates there. A buffer holding just LF becomes empty, which the
    session treats as "nothing to evaluate".

        b"1+1\\n"            -> b"1+1"
        b"if x:\\n  y\\n\\n"    -> b"if x:\\n  y\\n"
        b"\\n"               -> b""
    """
    i = len(buffer) - 1
    while i > 0 and buffer[i] != LF:
        i -= 1
    return bytes(buffer[:max(i, 0)])
