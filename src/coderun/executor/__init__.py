"""
Execution backend for the code runner.

A single :class:`ExecutionEngine` serves every language.  It reads the
build and run commands from the language profile, runs them as child
processes inside the request's workspace and returns an
:class:`ExecutionOutcome` describing how the process ended.
"""

from .base import ExecutionOutcome, TerminationKind, run_process
from .engine import ExecutionEngine

__all__ = [
    "ExecutionOutcome",
    "TerminationKind",
    "ExecutionEngine",
    "run_process",
]
