"""Session states and the transitions allowed between them.

    AWAITING_COMMAND ──▶ CONTINUING_COMMAND ──▶ EVALUATING ──▶ RESPONDING
          ▲   │ (empty)          │ (empty)                        │
          └───┴──────────────────┴────────────────────────────────┘
    any state ──▶ CLOSED (terminal)
"""
from __future__ import annotations

from enum import Enum, auto


class SessionState(Enum):
    AWAITING_COMMAND = auto()
    CONTINUING_COMMAND = auto()
    EVALUATING = auto()
    RESPONDING = auto()
    CLOSED = auto()


class InvalidTransition(Exception):
    """Raised when a session state transition is not allowed."""


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.AWAITING_COMMAND: {
        SessionState.AWAITING_COMMAND,
        SessionState.CONTINUING_COMMAND,
        SessionState.EVALUATING,
        SessionState.CLOSED,
    },
    SessionState.CONTINUING_COMMAND: {
        SessionState.AWAITING_COMMAND,
        SessionState.EVALUATING,
        SessionState.CLOSED,
    },
    SessionState.EVALUATING: {SessionState.RESPONDING, SessionState.CLOSED},
    SessionState.RESPONDING: {SessionState.AWAITING_COMMAND, SessionState.CLOSED},
    SessionState.CLOSED: set(),
}


def check_transition(current: SessionState, target: SessionState) -> None:
    if target not in VALID_TRANSITIONS[current]:
        raise InvalidTransition(f"Cannot transition from {current.name} to {target.name}")
