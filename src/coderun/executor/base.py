"""
Process execution primitives.

:func:`run_process` runs one command as a child process and returns an
:class:`ExecutionOutcome`.  While the child runs, three helper threads work
alongside it: one feeds standard input and then closes the pipe, and one per
output stream drains stdout/stderr into a bounded buffer.  The calling thread
only waits for termination or the deadline, so a child that stops reading
its input can never stall timeout detection.

Children are started in a new session, which makes them the leader of their
own process group.  When the deadline passes the whole group is killed with
``SIGKILL``; the group is also killed after a natural exit so that no
grandchild outlives the request.  This requires a POSIX host.
"""

from __future__ import annotations

import enum
import logging
import os
import selectors
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Optional

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
# Upper bound for collecting pipe threads once the process group is dead.
_JOIN_TIMEOUT = 2.0
# How often a pipe thread checks whether it has been asked to stop.
_POLL_INTERVAL = 0.05


class TerminationKind(str, enum.Enum):
    COMPLETED_NORMALLY = "completed-normally"
    COMPLETED_WITH_ERROR_EXIT = "completed-with-error-exit"
    TIMED_OUT = "timed-out"
    FAILED_TO_START = "failed-to-start"


@dataclass
class ExecutionOutcome:
    """Result of running a build or run command.

    Attributes
    ----------
    termination: TerminationKind
        How the process ended.
    stdout, stderr: bytes
        Captured output, each holding at most the configured number of
        bytes.  For ``FAILED_TO_START`` ``stderr`` holds the spawn error.
    exit_code: int, optional
        Exit status.  Negative values are the signal that killed the
        process.  ``None`` when the process never started.
    duration_ms: int
        Wall-clock time in milliseconds.
    phase: str
        ``"build"`` or ``"run"``.
    stdout_truncated, stderr_truncated: bool
        Whether output beyond the cap was discarded.
    """

    termination: TerminationKind
    stdout: bytes = b""
    stderr: bytes = b""
    exit_code: Optional[int] = None
    duration_ms: int = 0
    phase: str = "run"
    stdout_truncated: bool = False
    stderr_truncated: bool = False


class _CappedReader(threading.Thread):
    """Drain a pipe, keeping only the first ``limit`` bytes.

    The pipe is polled so that :meth:`stop` can end the thread even while a
    process outside our group still holds the write end open.  The thread
    always closes its own pipe on the way out.
    """

    def __init__(self, stream: IO[bytes], limit: int) -> None:
        super().__init__(daemon=True)
        self.stream = stream
        self.limit = limit
        self.truncated = False
        self._data = bytearray()
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    def stop(self) -> None:
        self._stopped.set()

    def snapshot(self) -> bytes:
        with self._lock:
            return bytes(self._data)

    def run(self) -> None:
        fd = self.stream.fileno()
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(fd, selectors.EVENT_READ)
                while not self._stopped.is_set():
                    if not selector.select(_POLL_INTERVAL):
                        continue
                    chunk = os.read(fd, _CHUNK_SIZE)
                    if not chunk:
                        break
                    with self._lock:
                        room = self.limit - len(self._data)
                        if room > 0:
                            self._data += chunk[:room]
                        if len(chunk) > room:
                            # Keep draining so the child never blocks on a full pipe.
                            self.truncated = True
        finally:
            self.stream.close()


def _feed_stdin(stream: IO[bytes], data: Optional[bytes]) -> None:
    # A child that exits without reading its input closes the pipe under us.
    try:
        if data:
            stream.write(data)
    except BrokenPipeError:
        pass
    finally:
        try:
            stream.close()
        except BrokenPipeError:
            pass


def _kill_group(process: subprocess.Popen) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def run_process(
    args: List[str],
    cwd: Path,
    stdin_data: Optional[bytes],
    deadline: float,
    max_output_bytes: int,
    phase: str = "run",
) -> ExecutionOutcome:
    """Run ``args`` in ``cwd`` until it exits or ``deadline`` passes.

    Parameters
    ----------
    args: list[str]
        Command and arguments.  Never interpreted by a shell.
    cwd: Path
        Working directory of the child.
    stdin_data: bytes, optional
        Data written to the child's standard input before it is closed.
        When ``None`` the input is closed immediately.
    deadline: float
        Absolute :func:`time.monotonic` value after which the child is
        killed.
    max_output_bytes: int
        Cap applied to stdout and stderr independently.
    phase: str
        Recorded on the outcome.
    """
    start_time = time.monotonic()
    try:
        process = subprocess.Popen(
            args,
            cwd=str(cwd),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as exc:
        logger.error("Unable to start %s: %s", args[0], exc)
        return ExecutionOutcome(
            termination=TerminationKind.FAILED_TO_START,
            stderr=f"Failed to start {args[0]}: {exc}".encode("utf-8"),
            duration_ms=int((time.monotonic() - start_time) * 1000),
            phase=phase,
        )

    stdout_reader = _CappedReader(process.stdout, max_output_bytes)
    stderr_reader = _CappedReader(process.stderr, max_output_bytes)
    feeder = threading.Thread(target=_feed_stdin, args=(process.stdin, stdin_data), daemon=True)
    for thread in (stdout_reader, stderr_reader, feeder):
        thread.start()

    timed_out = False
    try:
        process.wait(timeout=max(0.0, deadline - time.monotonic()))
    except subprocess.TimeoutExpired:
        timed_out = True
        logger.warning("%s exceeded its deadline; killing process group %s", args[0], process.pid)
    finally:
        _kill_group(process)
        process.wait()

    feeder.join(_JOIN_TIMEOUT)
    for reader in (stdout_reader, stderr_reader):
        reader.join(_JOIN_TIMEOUT)
        if reader.is_alive():
            # Something outside the process group still holds the pipe open.
            logger.warning("Output pipe for pid %s still open after kill; abandoning it", process.pid)
            reader.stop()
            reader.join(_JOIN_TIMEOUT)

    exit_code = process.returncode
    if timed_out:
        termination = TerminationKind.TIMED_OUT
    elif exit_code == 0:
        termination = TerminationKind.COMPLETED_NORMALLY
    else:
        termination = TerminationKind.COMPLETED_WITH_ERROR_EXIT

    return ExecutionOutcome(
        termination=termination,
        stdout=stdout_reader.snapshot(),
        stderr=stderr_reader.snapshot(),
        exit_code=exit_code,
        duration_ms=int((time.monotonic() - start_time) * 1000),
        phase=phase,
        stdout_truncated=stdout_reader.truncated,
        stderr_truncated=stderr_reader.truncated,
    )
