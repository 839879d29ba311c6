"""Python evaluator for REPL sessions.

Each session gets its own PythonEvaluator with a private namespace. The
namespace starts as a shallow copy of a host-supplied base namespace, so
objects the host process chose to expose are reachable from the session
while names the operator binds stay local to that session.

Completeness follows the interactive interpreter: codeop decides whether
the text typed so far is a whole statement, so a compound statement such
as ``if``/``for``/``def`` keeps asking for lines until a blank one.

Output capture does NOT redirect sys.stdout. Several sessions run at once
on different threads and a global redirect would mix their output. Instead
``print`` is rebound inside the namespace to write to the evaluator's own
buffer.

Registered commands (``exit`` is the one every session installs) are
matched on a single-line command by its first word, but only when the
line is the bare command name or is not valid Python. ``exit = 5``
therefore binds a variable, while ``exit`` and ``exit now`` go to the
command. Commands are also bound as callables in the namespace
so ``exit()`` works as well.
"""
from __future__ import annotations

import ast
import builtins
import codeop
import io
import traceback
from typing import Any

from peerrepl.evaluator.base import CommandError, CommandHandler, EvalResult

FILENAME = "<peerrepl>"
MODULE_NAME = "__peerrepl__"


class PythonEvaluator:
    """Evaluator backed by the Python compiler and a private namespace.

    Args:
        namespace: base names to expose; copied, never mutated
        filename: pseudo filename used in tracebacks
    """

    def __init__(
        self,
        namespace: dict[str, Any] | None = None,
        filename: str = FILENAME,
    ) -> None:
        self._filename = filename
        self._namespace: dict[str, Any] = dict(namespace or {})
        self._namespace["__name__"] = MODULE_NAME
        self._namespace.setdefault("__builtins__", builtins)
        self._namespace["print"] = self._print
        self._commands: dict[str, CommandHandler] = {}
        self._output = io.StringIO()
        self._closed = False

    @property
    def namespace(self) -> dict[str, Any]:
        return self._namespace

    @property
    def closed(self) -> bool:
        return self._closed

    def _print(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("file", self._output)
        print(*args, **kwargs)

    # -- contract -----------------------------------------------------------

    def is_complete(self, text: str) -> bool:
        """True if ``text`` is a whole statement.

        Text that can never compile counts as complete; evaluate() reports
        the syntax error.
        """
        try:
            return codeop.compile_command(text, self._filename, "single") is not None
        except (SyntaxError, ValueError, OverflowError):
            return True

    def evaluate(self, text: str) -> EvalResult:
        self._output = io.StringIO()
        handler, args = self._match_command(text)
        try:
            if handler is not None:
                self._output.write(handler(args))
            else:
                self._run(text)
        except CommandError as exc:
            return EvalResult(text=str(exc), ok=False)
        except (Exception, SystemExit) as exc:
            return EvalResult(text=self._format_error(exc), ok=False)
        return EvalResult(text=self._output.getvalue().removesuffix("\n"), ok=True)

    def lookup_prompt(self, name: str) -> str | None:
        value = self._namespace.get(name)
        if value is None:
            return None
        return str(value)

    def register_command(self, name: str, handler: CommandHandler) -> None:
        self._commands[name] = handler

        def call(*args: Any) -> None:
            self._output.write(handler([str(a) for a in args]))

        call.__name__ = name
        self._namespace[name] = call

    def close(self) -> None:
        self._namespace.clear()
        self._commands.clear()
        self._closed = True

    # -- internals ----------------------------------------------------------

    def _match_command(self, text: str) -> tuple[CommandHandler | None, list[str]]:
        if "\n" in text.strip():
            return None, []
        words = text.split()
        if not words or words[0] not in self._commands:
            return None, []
        try:
            tree = ast.parse(text, self._filename, "exec")
        except (SyntaxError, ValueError):
            return self._commands[words[0]], words[1:]
        # valid Python runs as Python, unless it is just the bare name
        body = tree.body
        if (
            len(body) == 1
            and isinstance(body[0], ast.Expr)
            and isinstance(body[0].value, ast.Name)
            and body[0].value.id == words[0]
        ):
            return self._commands[words[0]], []
        return None, []

    def _run(self, text: str) -> None:
        """Execute ``text``; echo the repr of a trailing expression like the REPL."""
        tree = ast.parse(text, self._filename, "exec")
        last: ast.Expression | None = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            last = ast.Expression(tree.body.pop().value)

        exec(compile(tree, self._filename, "exec"), self._namespace)
        if last is None:
            return
        value = eval(compile(last, self._filename, "eval"), self._namespace)
        if value is not None:
            self._namespace["_"] = value
            self._output.write(repr(value))

    def _format_error(self, exc: BaseException) -> str:
        """Traceback text starting at the first frame of operator code."""
        tb = exc.__traceback__
        while tb is not None and tb.tb_frame.f_code.co_filename != self._filename:
            tb = tb.tb_next
        if tb is None:
            lines = traceback.format_exception_only(type(exc), exc)
        else:
            lines = traceback.format_exception(type(exc), exc, tb)
        return "".join(lines).removesuffix("\n")


class PythonEvaluatorFactory:
    """Creates one PythonEvaluator per session over a shared base namespace."""

    def __init__(self, namespace: dict[str, Any] | None = None) -> None:
        self._namespace = namespace if namespace is not None else {}

    def __call__(self) -> PythonEvaluator:
        return PythonEvaluator(self._namespace)
