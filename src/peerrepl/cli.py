"""peerrepl CLI entry point.

Usage: uv run peerrepl serve --listen-path /run/app.repl
Then:  socat STDIO /run/app.repl
"""
import argparse
import logging
import signal
import sys

from peerrepl.config import DEFAULT_MODULE_NAME, DEFAULT_SERVER_NAME, ReplConfig


def _add_serve_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "serve",
        help="Listen on a unix socket and serve Python REPL sessions.",
    )
    p.add_argument(
        "--listen-path", default=None,
        help="Socket path (default: <server-name>.<module-name>)",
    )
    p.add_argument(
        "--server-name", default=DEFAULT_SERVER_NAME,
        help=f"Name shown in prompts (default: {DEFAULT_SERVER_NAME})",
    )
    p.add_argument(
        "--module-name", default=DEFAULT_MODULE_NAME,
        help=f"Used for the default socket path (default: {DEFAULT_MODULE_NAME})",
    )
    p.add_argument(
        "--log-commands", action="store_true",
        help="Log the start and end of every evaluated command.",
    )
    p.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging threshold (default: INFO)",
    )


def _run_serve(args: argparse.Namespace) -> int:
    from peerrepl.evaluator.python_eval import PythonEvaluatorFactory
    from peerrepl.server.listener import SetupError, UnixListener

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
    )
    config = ReplConfig.from_args(args)
    listener = UnixListener(config, PythonEvaluatorFactory())

    def _on_signal(signum: int, frame: object) -> None:
        listener.stop()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    try:
        listener.start()
    except SetupError as exc:
        print(f"peerrepl: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="peerrepl",
        description="Python REPL over a credential-checked unix socket.",
    )
    subparsers = parser.add_subparsers(dest="command")

    _add_serve_parser(subparsers)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        sys.exit(_run_serve(args))
