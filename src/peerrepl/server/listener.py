"""AF_UNIX listener that hands each connection to its own REPL session.

Architecture:
    Accept thread: socket.accept() in a loop (0.5 s timeout to poll stop)
    Worker threads: one daemon thread per connection, running ReplSession
    Per-connection flow: authenticate -> prompt/read/eval/respond -> close

There is no worker pool and no connection cap. Every accepted connection
gets a thread immediately. The socket is meant for a handful of trusted
local operators, and its file mode (0o660) is what keeps everyone else
out.

stop() only stops accepting. Sessions already running keep going until
their peer leaves.
"""
from __future__ import annotations

import logging
import os
import socket
import stat
import threading
import time

from peerrepl.auth.authenticator import Authenticator
from peerrepl.config import ReplConfig
from peerrepl.evaluator.base import EvaluatorFactory
from peerrepl.session.counter import SessionIdCounter, session_ids
from peerrepl.session.repl_session import ReplSession

log = logging.getLogger(__name__)

BACKLOG = 16
SOCKET_MODE = stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP | stat.S_IWGRP  # ug=rw
ACCEPT_TIMEOUT = 0.5


class SetupError(Exception):
    """Raised when the listening socket cannot be created, bound or listened on."""


class UnixListener:
    """Accepts REPL connections on a filesystem socket.

    Args:
        config: listen path, server name, command logging
        evaluator_factory: creates one evaluator per authenticated session
        authenticator: shared by all sessions (default: system user/group db)
        counter: session id source (default: the process-wide counter)
    """

    def __init__(
        self,
        config: ReplConfig,
        evaluator_factory: EvaluatorFactory,
        authenticator: Authenticator | None = None,
        counter: SessionIdCounter | None = None,
    ) -> None:
        self._config = config
        self._evaluator_factory = evaluator_factory
        self._authenticator = authenticator or Authenticator()
        self._counter = counter or session_ids
        self._server_socket: socket.socket | None = None
        self._running = False
        self._sessions_started = 0
        self._lock = threading.Lock()
        self._ready = threading.Event()  # signals when accept loop is running

    @property
    def path(self) -> str:
        return self._config.listen_path

    @property
    def sessions_started(self) -> int:
        """Worker threads started so far (thread-safe read)."""
        with self._lock:
            return self._sessions_started

    def start(self) -> None:
        """Bind the socket and run the accept loop. Blocks until stop() is called.

        Raises:
            SetupError: the socket could not be created, bound or put in
                listening mode.
        """
        self._activate()
        self._accept_loop()

    def start_background(self, timeout: float = 5.0) -> threading.Thread:
        """Bind on the calling thread, then run the accept loop on a daemon thread.

        Raises:
            SetupError: as for start(). No thread is started in that case.
        """
        self._activate()
        t = threading.Thread(target=self._accept_loop, name="peerrepl-listener", daemon=True)
        t.start()
        self.wait_ready(timeout=timeout)
        return t

    def _activate(self) -> None:
        self._server_socket = self._bind()
        self._running = True
        log.info("initialized")
        self._ready.set()

    def wait_ready(self, timeout: float = 5.0) -> bool:
        """Block until the accept loop is running."""
        return self._ready.wait(timeout=timeout)

    def stop(self) -> None:
        """Stop accepting connections and close the listening socket."""
        if not self._running and self._server_socket is None:
            return
        log.info("shutdown")
        self._running = False
        if self._server_socket:
            try:
                self._server_socket.close()
            except OSError:
                pass
            self._server_socket = None
            self._unlink_stale()
        self._ready.clear()

    def _bind(self) -> socket.socket:
        path = self._config.listen_path
        self._unlink_stale()
        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError as exc:
            log.error("could not create socket @ %s: %s", path, exc)
            raise SetupError(f"could not create socket @ {path}") from exc
        try:
            sock.bind(path)
        except OSError as exc:
            sock.close()
            log.error("could not bind to socket @ %s: %s", path, exc)
            raise SetupError(f"could not bind to socket @ {path}") from exc
        try:
            sock.listen(BACKLOG)
        except OSError as exc:
            sock.close()
            log.error("could not listen on socket @ %s: %s", path, exc)
            raise SetupError(f"could not listen on socket @ {path}") from exc
        log.info("listening @ %s", path)

        try:
            os.chmod(path, SOCKET_MODE)
        except OSError as exc:
            log.error("could not 'chmod ug=rw' on the socket @ %s: %s", path, exc)

        sock.settimeout(ACCEPT_TIMEOUT)
        return sock

    def _unlink_stale(self) -> None:
        path = self._config.listen_path
        try:
            if stat.S_ISSOCK(os.lstat(path).st_mode):
                os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.warning("could not remove old socket @ %s: %s", path, exc)

    def _accept_loop(self) -> None:
        while self._running:
            server_socket = self._server_socket
            if server_socket is None:
                break
            try:
                client_sock, _ = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if not self._running:
                    break  # socket closed by stop()
                log.error("accept() failed: %s", exc)
                # EMFILE and friends fail again immediately
                time.sleep(ACCEPT_TIMEOUT)
                continue
            self._dispatch(client_sock)

    def _dispatch(self, client_sock: socket.socket) -> None:
        # Accepted sockets inherit the listener's timeout on some platforms.
        client_sock.settimeout(None)
        session = ReplSession(
            session_id=self._counter.next_id(),
            sock=client_sock,
            evaluator_factory=self._evaluator_factory,
            config=self._config,
            authenticator=self._authenticator,
        )
        worker = threading.Thread(
            target=session.run,
            name=f"peerrepl-session-{session.session_id}",
            daemon=True,
        )
        try:
            worker.start()
        except RuntimeError as exc:
            log.error("%d: could not start session thread: %s", session.session_id, exc)
            try:
                client_sock.close()
            except OSError:
                pass
            return
        with self._lock:
            self._sessions_started += 1
