"""Per-connection REPL sessions and the process-wide session id counter."""
from peerrepl.session.counter import SessionIdCounter, session_ids
from peerrepl.session.repl_session import EXIT_COMMAND, ReplSession
from peerrepl.session.state import (
    VALID_TRANSITIONS,
    InvalidTransition,
    SessionState,
    check_transition,
)

__all__ = [
    "SessionIdCounter",
    "session_ids",
    "EXIT_COMMAND",
    "ReplSession",
    "VALID_TRANSITIONS",
    "InvalidTransition",
    "SessionState",
    "check_transition",
]
