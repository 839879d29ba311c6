"""Shared fixtures for session tests.

Sessions run synchronously against a ScriptedSocket: run() returns once
the scripted input is used up (recv() then reports the peer as gone), and
the test inspects exactly what was written back.
"""
from __future__ import annotations

import threading

import pytest

from peerrepl.auth.authenticator import AuthenticationError
from peerrepl.auth.credentials import PeerIdentity
from peerrepl.config import ReplConfig
from peerrepl.evaluator.base import EvalResult
from peerrepl.evaluator.python_eval import PythonEvaluator
from peerrepl.session.repl_session import ReplSession

from tests.protocol.conftest import ScriptedSocket

OPERATOR = PeerIdentity(pid=4242, uid=1000, gid=1000, user="ops", group="ops")


def primary(count: int, status: int = 0, server: str = "peerrepl") -> bytes:
    return f"\n{server}:py({status}) {count}> ".encode()


def secondary(count: int, server: str = "peerrepl") -> bytes:
    return f"\n{server}:py {count}... ".encode()


class StaticAuthenticator:
    """Authenticator stand-in: always accepts as ``identity`` or always rejects."""

    def __init__(self, identity: PeerIdentity | None = OPERATOR, reject: bool = False) -> None:
        self._identity = identity
        self._reject = reject
        self.calls = 0

    def authenticate(self, sock) -> PeerIdentity:
        self.calls += 1
        if self._reject:
            raise AuthenticationError("no entry for uid 1000")
        return self._identity


class RecordingEvaluator(PythonEvaluator):
    """PythonEvaluator that remembers what it was asked to evaluate."""

    def __init__(self) -> None:
        super().__init__()
        self.evaluated: list[str] = []
        self.close_calls = 0

    def evaluate(self, text: str) -> EvalResult:
        self.evaluated.append(text)
        return super().evaluate(text)

    def close(self) -> None:
        self.close_calls += 1
        super().close()


class EvaluatorRecorder:
    """Evaluator factory that keeps every evaluator it created."""

    def __init__(self) -> None:
        self.created: list[RecordingEvaluator] = []

    def __call__(self) -> RecordingEvaluator:
        ev = RecordingEvaluator()
        self.created.append(ev)
        return ev

    @property
    def only(self) -> RecordingEvaluator:
        assert len(self.created) == 1
        return self.created[0]


@pytest.fixture()
def config() -> ReplConfig:
    return ReplConfig(listen_path="unused.sock")


@pytest.fixture()
def run_session(config):
    """Run a session over scripted input; returns (session, socket, evaluators)."""

    def _run(
        chunks,
        authenticator=None,
        session_config: ReplConfig | None = None,
        **sock_kwargs,
    ):
        sock = ScriptedSocket(chunks, **sock_kwargs)
        factory = EvaluatorRecorder()
        session = ReplSession(
            session_id=1,
            sock=sock,
            evaluator_factory=factory,
            config=session_config or config,
            authenticator=authenticator or StaticAuthenticator(),
        )
        # run() renames the worker thread; here that is pytest's own thread
        me = threading.current_thread()
        name = me.name
        try:
            session.run()
        finally:
            me.name = name
        return session, sock, factory

    return _run
