"""Map execution outcomes to caller-facing reports."""

from __future__ import annotations

import enum
import signal
from dataclasses import dataclass
from typing import Optional

from .executor import ExecutionOutcome, TerminationKind


class ErrorCategory(str, enum.Enum):
    TIMEOUT = "Timeout"
    TOOLCHAIN_UNAVAILABLE = "ToolchainUnavailable"
    RUNTIME_OR_COMPILE_ERROR = "RuntimeOrCompileError"


@dataclass
class Report:
    """Uniform result of an execute request.

    ``category`` and ``message`` are only set when ``ok`` is false.  Output
    is always present so partial output survives failures and timeouts.
    """

    ok: bool
    stdout: str
    stderr: str
    exit_code: Optional[int] = None
    duration_ms: int = 0
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    category: Optional[ErrorCategory] = None
    message: Optional[str] = None


def _decode(data: bytes) -> str:
    # The cap may split a multi-byte character.
    return data.decode("utf-8", errors="replace")


def _exit_message(outcome: ExecutionOutcome) -> str:
    code = outcome.exit_code
    if outcome.phase == "build":
        return f"Compilation failed with exit code {code}"
    if code is not None and code < 0:
        try:
            name = signal.Signals(-code).name
        except ValueError:
            name = str(-code)
        return f"Process terminated by signal {name}"
    return f"Process exited with code {code}"


def classify(outcome: ExecutionOutcome, timeout_ms: Optional[int] = None) -> Report:
    """Turn an execution outcome into a caller-facing :class:`Report`.

    Parameters
    ----------
    outcome: ExecutionOutcome
        Result of the build or run step that ended the execution.
    timeout_ms: int, optional
        Deadline that applied, quoted in the timeout message.

    Returns
    -------
    Report
        ``ok`` only for a normal completion.  Output is decoded as UTF-8
        and kept for every outcome.
    """
    report = Report(
        ok=outcome.termination is TerminationKind.COMPLETED_NORMALLY,
        stdout=_decode(outcome.stdout),
        stderr=_decode(outcome.stderr),
        exit_code=outcome.exit_code,
        duration_ms=outcome.duration_ms,
        stdout_truncated=outcome.stdout_truncated,
        stderr_truncated=outcome.stderr_truncated,
    )
    if report.ok:
        return report

    if outcome.termination is TerminationKind.TIMED_OUT:
        report.category = ErrorCategory.TIMEOUT
        if timeout_ms is not None:
            report.message = f"Execution timed out after {timeout_ms} ms"
        else:
            report.message = "Execution timed out"
    elif outcome.termination is TerminationKind.FAILED_TO_START:
        report.category = ErrorCategory.TOOLCHAIN_UNAVAILABLE
        report.message = f"Toolchain unavailable: {report.stderr}"
    else:
        report.category = ErrorCategory.RUNTIME_OR_COMPILE_ERROR
        report.message = _exit_message(outcome)
    return report
