"""Shared helpers for protocol tests.

ScriptedSocket stands in for a connected socket: recv() hands out a fixed
list of chunks one per call (so chunk boundaries are exact, unlike a real
socket where the kernel may coalesce writes) and send() records
everything written.
"""
from __future__ import annotations

from collections import deque
from typing import Iterable


class ScriptedSocket:
    """Fake connected socket.

    Args:
        chunks: what successive recv() calls return; an exception instance
            in the list is raised instead. recv() returns b"" once exhausted.
        send_limit: max bytes accepted per send() (simulates short writes)
        refuse: payloads for which send() returns 0
    """

    def __init__(
        self,
        chunks: Iterable[bytes | BaseException] = (),
        send_limit: int | None = None,
        refuse: Iterable[bytes] = (),
    ) -> None:
        self._chunks: deque[bytes | BaseException] = deque(chunks)
        self._send_limit = send_limit
        self._refuse = set(refuse)
        self.sends: list[bytes] = []
        self.recv_sizes: list[int] = []
        self.close_calls = 0

    @property
    def sent(self) -> bytes:
        return b"".join(self.sends)

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    @property
    def unread(self) -> int:
        return len(self._chunks)

    def recv(self, bufsize: int) -> bytes:
        if self.closed:
            raise OSError("recv on closed socket")
        self.recv_sizes.append(bufsize)
        if not self._chunks:
            return b""
        chunk = self._chunks.popleft()
        if isinstance(chunk, BaseException):
            raise chunk
        return chunk

    def send(self, data: bytes) -> int:
        if self.closed:
            raise OSError("send on closed socket")
        data = bytes(data)
        if data in self._refuse:
            return 0
        if self._send_limit is not None:
            data = data[: self._send_limit]
        self.sends.append(data)
        return len(data)

    def close(self) -> None:
        self.close_calls += 1
