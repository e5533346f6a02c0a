"""
Build-then-run execution of a workspace.

The engine is language agnostic: everything it needs to know about a
language comes from its :class:`~coderun.languages.LanguageProfile`.  A
single wall-clock deadline covers the build step and the run step together,
so the total time spent on a request never exceeds ``timeout_ms`` plus the
time needed to kill and reap the child.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..languages import LanguageProfile
from ..workspace import Workspace
from .base import ExecutionOutcome, TerminationKind, run_process

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024


class ExecutionEngine:
    """Run workspaces with fixed default limits."""

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.max_output_bytes = max_output_bytes

    def run(
        self,
        profile: LanguageProfile,
        workspace: Workspace,
        stdin: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        max_output_bytes: Optional[int] = None,
    ) -> ExecutionOutcome:
        """Build (if the language needs it) and run the workspace source.

        A failed or timed out build is returned as is; the run step is only
        attempted once the build exited with status 0.
        """
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        max_output_bytes = self.max_output_bytes if max_output_bytes is None else max_output_bytes
        start_time = time.monotonic()
        deadline = start_time + timeout_ms / 1000.0

        target = workspace.source_file
        if profile.has_build_step:
            build = run_process(
                profile.build_command(workspace.source_file),
                workspace.root_dir,
                None,
                deadline,
                max_output_bytes,
                phase="build",
            )
            if build.termination is not TerminationKind.COMPLETED_NORMALLY:
                logger.info("Build step for %s ended with %s", profile.id, build.termination.value)
                return build
            target = workspace.artifact_file = profile.artifact_path(workspace.source_file)

        stdin_data = stdin.encode("utf-8") if stdin else None
        outcome = run_process(
            profile.run_command(target),
            workspace.root_dir,
            stdin_data,
            deadline,
            max_output_bytes,
        )
        outcome.duration_ms = int((time.monotonic() - start_time) * 1000)
        return outcome
