"""
Request orchestration.

:class:`CodeRunner` ties the pieces together for one execute request:
validate, acquire a workspace, write the source, build and run it, classify
the outcome and release the workspace.  Validation errors are raised before
any workspace exists; workspace errors propagate to the caller as internal
faults.  The workspace is released on every path, and a failure to release
it is only logged.

``execute`` blocks for up to the configured timeout.  Async callers should
run it in a worker thread.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import Config
from .executor import ExecutionEngine
from .languages import lookup
from .reporter import Report, classify
from .validation import validate_request
from .workspace import WorkspaceManager

logger = logging.getLogger(__name__)


class CodeRunner:
    """Execute submitted code for one configured instance.

    Parameters
    ----------
    config: Config, optional
        Limits, workspace root and allowed languages.  Defaults to
        :class:`Config` with its built-in defaults.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()
        self.workspaces = WorkspaceManager(self.config.workspace_root)
        self.engine = ExecutionEngine(
            timeout_ms=self.config.timeout_ms,
            max_output_bytes=self.config.max_output_bytes,
        )

    def execute(self, language: Optional[str], code: Optional[str], input: Optional[str] = None) -> Report:
        """Validate, build and run ``code`` and return the classified report.

        Raises ``RequestError`` before any workspace is created and
        ``WorkspaceError`` when the scratch directory cannot be prepared.
        Code-caused failures are returned in the report, never raised.
        """
        language_id = validate_request(language, code, input, allowed_langs=self.config.allowed_langs)
        profile = lookup(language_id)

        with self.workspaces.session(language_id) as workspace:
            self.workspaces.write_source(workspace, code)
            outcome = self.engine.run(profile, workspace, stdin=input)

        report = classify(outcome, timeout_ms=self.engine.timeout_ms)
        logger.info(
            "Executed %s: termination=%s, phase=%s, exit_code=%s, duration_ms=%s",
            language_id,
            outcome.termination.value,
            outcome.phase,
            outcome.exit_code,
            outcome.duration_ms,
        )
        return report
