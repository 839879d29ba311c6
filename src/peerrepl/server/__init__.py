"""REPL listener: a filesystem socket, one session thread per connection."""
from peerrepl.server.listener import (
    BACKLOG,
    SOCKET_MODE,
    SetupError,
    UnixListener,
)

__all__ = [
    "BACKLOG",
    "SOCKET_MODE",
    "SetupError",
    "UnixListener",
]
