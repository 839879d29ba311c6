"""The contract a session needs from a command evaluator.

A session never looks inside the evaluator. It only needs to:
  - ask whether the text typed so far is a whole command (is_complete)
  - run a whole command and get back text plus success/failure (evaluate)
  - read the optional prompt overrides ps1/ps2 (lookup_prompt)
  - install session-scoped built-ins such as ``exit`` (register_command)
  - release the evaluator when the session ends (close)

Any scripting or expression engine that satisfies this Protocol can be
plugged into the listener through an EvaluatorFactory.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

PRIMARY_PROMPT = "ps1"
SECONDARY_PROMPT = "ps2"

STATUS_OK = 0
STATUS_ERROR = 1

CommandHandler = Callable[[list[str]], str]


class CommandError(Exception):
    """Raised by a command handler to report a usage or execution error."""


@dataclass(frozen=True, slots=True)
class EvalResult:
    """Outcome of evaluating one command."""
    text: str
    ok: bool

    @property
    def status(self) -> int:
        return STATUS_OK if self.ok else STATUS_ERROR


class Evaluator(Protocol):
    def evaluate(self, text: str) -> EvalResult: ...

    def is_complete(self, text: str) -> bool: ...

    def lookup_prompt(self, name: str) -> str | None: ...

    def register_command(self, name: str, handler: CommandHandler) -> None: ...

    def close(self) -> None: ...


EvaluatorFactory = Callable[[], Evaluator]
