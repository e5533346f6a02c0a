"""Per-request scratch directories.

Each execution gets its own directory under a configurable base directory.
The directory is created with :func:`tempfile.mkdtemp`, so its name comes
from a random token and never from request content; concurrent requests
therefore never share a path.  The source file lives inside it as
``code.<ext>`` and compiled languages place their artifact next to it.

:meth:`WorkspaceManager.session` is the only way the runner obtains a
workspace.  It releases the directory on every exit path, including
exceptions raised while building or running.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from .errors import WorkspaceCreationFailed, WorkspaceWriteFailed
from .languages import lookup


logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "code-run-"


@dataclass
class Workspace:
    """Filesystem locations owned by a single request."""

    language: str
    root_dir: Path
    source_file: Path
    artifact_file: Optional[Path] = None


class WorkspaceManager:
    """Create and remove workspaces under ``base_dir``."""

    def __init__(self, base_dir: Union[str, Path, None] = None) -> None:
        self.base_dir = Path(base_dir) if base_dir else Path(tempfile.gettempdir())

    def acquire(self, language: str) -> Workspace:
        profile = lookup(language)
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            root_dir = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=str(self.base_dir)))
        except OSError as exc:
            raise WorkspaceCreationFailed(f"Unable to create workspace in {self.base_dir}: {exc}") from exc

        source_file = root_dir / profile.source_name()
        try:
            source_file.touch(exist_ok=False)
        except OSError as exc:
            shutil.rmtree(root_dir, ignore_errors=True)
            raise WorkspaceCreationFailed(f"Unable to create {source_file}: {exc}") from exc

        logger.debug("Acquired workspace %s for %s", root_dir, language)
        return Workspace(language=language, root_dir=root_dir, source_file=source_file)

    def write_source(self, workspace: Workspace, code: str) -> None:
        try:
            workspace.source_file.write_text(code, encoding="utf-8")
        except OSError as exc:
            raise WorkspaceWriteFailed(f"Unable to write {workspace.source_file}: {exc}") from exc

    def release(self, workspace: Workspace) -> None:
        """Remove everything the workspace holds.

        Best effort: each removal is attempted even if an earlier one failed,
        and failures are logged rather than raised so they never replace the
        result being reported to the caller.
        """
        for path in (workspace.source_file, workspace.artifact_file):
            if path is None:
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.warning("Unable to remove %s: %s", path, exc)

        # The program may have left its own files behind.
        try:
            shutil.rmtree(workspace.root_dir)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Unable to remove workspace %s: %s", workspace.root_dir, exc)
        else:
            logger.debug("Released workspace %s", workspace.root_dir)

    @contextmanager
    def session(self, language: str) -> Iterator[Workspace]:
        workspace = self.acquire(language)
        try:
            yield workspace
        finally:
            self.release(workspace)
