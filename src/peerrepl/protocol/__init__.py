"""Wire protocol: prompt, LF-terminated lines, raw result text."""
from peerrepl.protocol.framing import (
    CHUNK_SIZE,
    EOL,
    EOT,
    read_line,
    send_all,
    trim_trailing_terminator,
)

__all__ = [
    "CHUNK_SIZE",
    "EOL",
    "EOT",
    "read_line",
    "send_all",
    "trim_trailing_terminator",
]
