"""Runtime configuration for the REPL listener.

Only two things are configurable: where the socket lives and whether each
command is logged. The backlog and the socket's permission bits are
fixed (see peerrepl.server.listener) so that a configuration mistake
cannot widen access to the socket.
"""
from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass

log = logging.getLogger(__name__)

DEFAULT_SERVER_NAME = "peerrepl"
DEFAULT_MODULE_NAME = "repl"


def default_listen_path(server_name: str, module_name: str) -> str:
    """Socket path used when none is configured: ``<server>.<module>``."""
    return f"{server_name}.{module_name}"


@dataclass(frozen=True, slots=True)
class ReplConfig:
    """Listener settings.

    Args:
        listen_path: filesystem path of the AF_UNIX socket
        server_name: identifier shown in synthesized prompts
        module_name: second half of the default listen path
        log_commands: log the start and end of every evaluation at DEBUG
    """
    listen_path: str
    server_name: str = DEFAULT_SERVER_NAME
    module_name: str = DEFAULT_MODULE_NAME
    log_commands: bool = False

    @classmethod
    def create(
        cls,
        listen_path: str | None = None,
        server_name: str = DEFAULT_SERVER_NAME,
        module_name: str = DEFAULT_MODULE_NAME,
        log_commands: bool = False,
    ) -> ReplConfig:
        """Build a config, deriving the listen path when it is missing."""
        if not listen_path:
            listen_path = default_listen_path(server_name, module_name)
            log.warning("missing listen path, using '%s'", listen_path)
        return cls(
            listen_path=listen_path,
            server_name=server_name,
            module_name=module_name,
            log_commands=log_commands,
        )

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> ReplConfig:
        return cls.create(
            listen_path=args.listen_path,
            server_name=args.server_name,
            module_name=args.module_name,
            log_commands=args.log_commands,
        )
