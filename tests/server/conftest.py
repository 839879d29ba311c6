"""Shared fixtures for listener tests.

Provides a factory that starts a UnixListener on a short temporary path
(AF_UNIX paths are limited to ~104-108 bytes, pytest's tmp_path can be
longer) and client helpers that speak the line protocol.
"""
from __future__ import annotations

import shutil
import socket
import tempfile
import time
from pathlib import Path

import pytest

from peerrepl.auth.authenticator import Authenticator
from peerrepl.config import ReplConfig
from peerrepl.evaluator.python_eval import PythonEvaluatorFactory
from peerrepl.server.listener import UnixListener
from peerrepl.session.counter import SessionIdCounter


def primary(count: int, status: int = 0) -> bytes:
    return f"\npeerrepl:py({status}) {count}> ".encode()


@pytest.fixture()
def sock_dir():
    d = tempfile.mkdtemp(prefix="prepl")
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture()
def listener_factory(sock_dir):
    """Factory that creates and starts a UnixListener in a background thread.

    Returns a callable accepting (namespace, authenticator, log_commands)
    and returning the running listener. Listeners are stopped after the test.
    """
    listeners: list[UnixListener] = []

    def _create(
        namespace: dict | None = None,
        authenticator: Authenticator | None = None,
        log_commands: bool = False,
    ) -> UnixListener:
        config = ReplConfig.create(
            listen_path=str(sock_dir / "repl.sock"),
            log_commands=log_commands,
        )
        srv = UnixListener(
            config,
            PythonEvaluatorFactory(namespace or {}),
            authenticator=authenticator,
            counter=SessionIdCounter(),
        )
        srv.start_background(timeout=5.0)
        listeners.append(srv)
        return srv

    yield _create

    for s in listeners:
        s.stop()


def connect(path: str, timeout: float = 5.0) -> socket.socket:
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    sock.connect(path)
    return sock


def read_until(sock: socket.socket, marker: bytes) -> bytes:
    """Read until the received bytes end with ``marker`` (or EOF)."""
    data = b""
    while not data.endswith(marker):
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data


def read_to_eof(sock: socket.socket) -> bytes:
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
