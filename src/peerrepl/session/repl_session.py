"""One REPL session: authenticate, then prompt / read / evaluate / respond.

A session owns exactly one accepted socket and, once the peer has been
identified, exactly one evaluator. It runs on its own worker thread and
never shares either with another session.

Per-cycle flow:
    1. Pick the primary prompt (evaluator's ps1, else a synthesized one
       carrying the server name, last status and command count).
    2. Read lines until the evaluator says the buffer is a whole command.
       After the first incomplete line, switch to the continuation prompt
       (ps2, else synthesized).
    3. Drop the trailing terminator. Empty command -> back to step 1 with
       no counters touched.
    4. Evaluate. Failures are logged and counted but do not end the session.
    5. Write the result text in full, then loop unless ``exit`` ran.

The session ends when the peer disconnects, sends a lone EOT, runs
``exit``, or any socket call fails. Teardown runs exactly once whichever
way it ends: one trailing newline (best effort), evaluator closed, socket
closed.

An unauthenticated peer never sees a single byte: the socket is closed
before any prompt is sent and no evaluator is ever created.
"""
from __future__ import annotations

import logging
import socket
import threading

from peerrepl.auth.authenticator import AuthenticationError, Authenticator
from peerrepl.auth.credentials import PeerIdentity
from peerrepl.config import ReplConfig
from peerrepl.evaluator.base import (
    PRIMARY_PROMPT,
    SECONDARY_PROMPT,
    STATUS_OK,
    CommandError,
    Evaluator,
    EvaluatorFactory,
)
from peerrepl.protocol.framing import EOL, read_line, send_all, trim_trailing_terminator
from peerrepl.session.state import SessionState, check_transition

log = logging.getLogger(__name__)

EXIT_COMMAND = "exit"
ENCODING = "utf-8"


class ReplSession:
    """State machine for a single connection.

    Args:
        session_id: process-unique id assigned at accept time
        sock: the accepted connection; owned and closed by this session
        evaluator_factory: called once, after authentication succeeds
        config: listener settings (server name, command logging)
        authenticator: peer identification (default: system user/group db)
    """

    def __init__(
        self,
        session_id: int,
        sock: socket.socket,
        evaluator_factory: EvaluatorFactory,
        config: ReplConfig,
        authenticator: Authenticator | None = None,
    ) -> None:
        self._id = session_id
        self._sock = sock
        self._evaluator_factory = evaluator_factory
        self._config = config
        self._authenticator = authenticator or Authenticator()
        self._identity: PeerIdentity | None = None
        self._evaluator: Evaluator | None = None
        self._state = SessionState.AWAITING_COMMAND
        self._command_count = 0
        self._error_count = 0
        self._last_status = STATUS_OK
        self._stop_requested = False
        self._closed = False

    @property
    def session_id(self) -> int:
        return self._id

    @property
    def identity(self) -> PeerIdentity | None:
        return self._identity

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def command_count(self) -> int:
        return self._command_count

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def last_status(self) -> int:
        return self._last_status

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def run(self) -> None:
        """Serve the connection until it ends. Never raises."""
        try:
            self._identity = self._authenticator.authenticate(self._sock)
        except AuthenticationError as exc:
            log.error("%d: rejected connection: %s", self._id, exc)
            self._discard()
            return
        except Exception:
            log.exception("%d: authentication failed", self._id)
            self._discard()
            return

        ident = self._identity
        threading.current_thread().name = (
            f"+peerrepl:{self._id}:rids{{p:{ident.pid},u:{ident.uid},g:{ident.gid}}}+"
        )
        log.info("%d: connected %s", self._id, ident.describe())

        try:
            self._evaluator = self._evaluator_factory()
            self._evaluator.register_command(EXIT_COMMAND, self._exit_command)
            self._repl()
        except OSError as exc:
            log.debug("%d: connection lost: %s", self._id, exc)
        except Exception:
            log.exception("%d: session failed", self._id)
        finally:
            self._close()

    # -- state machine --------------------------------------------------------

    def _transition_to(self, target: SessionState) -> None:
        check_transition(self._state, target)
        self._state = target

    def _repl(self) -> None:
        while not self._stop_requested:
            self._transition_to(SessionState.AWAITING_COMMAND)
            command = self._read_command()
            if command is None:
                return
            if not command:
                continue
            if not self._evaluate(command):
                return

    def _read_command(self) -> str | None:
        """Assemble one complete command. None means end-of-session."""
        buffer = bytearray()
        prompt = self._prompt(PRIMARY_PROMPT)
        while True:
            if not read_line(self._sock, prompt, buffer):
                return None
            if self._evaluator.is_complete(buffer.decode(ENCODING, errors="replace")):
                break
            if self._state is SessionState.AWAITING_COMMAND:
                prompt = self._prompt(SECONDARY_PROMPT)
                self._transition_to(SessionState.CONTINUING_COMMAND)
        return trim_trailing_terminator(buffer).decode(ENCODING, errors="replace")

    def _evaluate(self, command: str) -> bool:
        """Evaluate and send the result. False if the result could not be sent."""
        self._transition_to(SessionState.EVALUATING)
        user = self._identity.user
        if self._config.log_commands:
            log.debug("%s %d: start eval %s", user, self._command_count, command)

        result = self._evaluator.evaluate(command)
        self._last_status = result.status
        if not result.ok:
            log.error("%d: %s", self._id, result.text)
            self._error_count += 1
        self._command_count += 1

        self._transition_to(SessionState.RESPONDING)
        if not send_all(self._sock, result.text.encode(ENCODING)):
            return False

        if self._config.log_commands:
            log.debug("%s %d: end eval", user, self._command_count)
        return True

    def _prompt(self, name: str) -> bytes:
        custom = self._evaluator.lookup_prompt(name)
        if custom is not None:
            return custom.encode(ENCODING)
        server = self._config.server_name
        if name == PRIMARY_PROMPT:
            text = f"\n{server}:py({self._last_status}) {self._command_count}> "
        else:
            text = f"\n{server}:py {self._command_count}... "
        return text.encode(ENCODING)

    def _exit_command(self, args: list[str]) -> str:
        if args:
            raise CommandError(f'wrong # args: should be "{EXIT_COMMAND}"')
        self._stop_requested = True
        return ""

    # -- teardown -------------------------------------------------------------

    def _discard(self) -> None:
        """Drop an unauthenticated connection without sending anything."""
        self._closed = True
        self._transition_to(SessionState.CLOSED)
        try:
            self._sock.close()
        except OSError:
            pass

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._transition_to(SessionState.CLOSED)
        try:
            self._sock.send(EOL)
        except OSError:
            pass  # peer may already be gone
        try:
            if self._evaluator is not None:
                self._evaluator.close()
                self._evaluator = None
        finally:
            log.info(
                "%d: disconnected %s (commands=%d, errors=%d)",
                self._id,
                self._identity.describe(),
                self._command_count,
                self._error_count,
            )
            try:
                self._sock.close()
            except OSError:
                pass
