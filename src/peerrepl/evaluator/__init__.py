"""Evaluator contract and the bundled Python evaluator."""
from peerrepl.evaluator.base import (
    PRIMARY_PROMPT,
    SECONDARY_PROMPT,
    STATUS_ERROR,
    STATUS_OK,
    CommandError,
    CommandHandler,
    EvalResult,
    Evaluator,
    EvaluatorFactory,
)
from peerrepl.evaluator.python_eval import PythonEvaluator, PythonEvaluatorFactory

__all__ = [
    "PRIMARY_PROMPT",
    "SECONDARY_PROMPT",
    "STATUS_ERROR",
    "STATUS_OK",
    "CommandError",
    "CommandHandler",
    "EvalResult",
    "Evaluator",
    "EvaluatorFactory",
    "PythonEvaluator",
    "PythonEvaluatorFactory",
]
