"""Shared fixtures.

Most tests run Python snippets through the interpreter running the test
suite, so they do not depend on any toolchain being installed.
"""

from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

from coderun.config import Config
from coderun.languages import LANGUAGES, LanguageProfile
from coderun.runner import CodeRunner
from coderun.workspace import WorkspaceManager

# Stand-in compiler: syntax checks the source and copies it to the ``-o`` path.
FAKE_COMPILER = (
    "import shutil, sys\n"
    "src, out = sys.argv[1], sys.argv[3]\n"
    "compile(open(src).read(), src, 'exec')\n"
    "shutil.copy(src, out)\n"
)

LOCAL_PYTHON = LanguageProfile("python", "py", run_argv=(sys.executable,))
COMPILED_PYTHON = LanguageProfile(
    "python",
    "py",
    run_argv=(sys.executable,),
    build_argv=(sys.executable, "-c", FAKE_COMPILER),
)


def requires(binary: str):
    return pytest.mark.skipif(shutil.which(binary) is None, reason=f"{binary} not installed")


@pytest.fixture
def local_python(monkeypatch):
    """Make the ``python`` language run with the current interpreter."""
    monkeypatch.setitem(LANGUAGES, "python", LOCAL_PYTHON)
    return LOCAL_PYTHON


@pytest.fixture
def workspace_root(tmp_path) -> Path:
    return tmp_path / "workspaces"


@pytest.fixture
def workspaces(workspace_root) -> WorkspaceManager:
    return WorkspaceManager(workspace_root)


@pytest.fixture
def make_runner(workspace_root):
    def _make(**overrides) -> CodeRunner:
        overrides.setdefault("workspace_root", str(workspace_root))
        return CodeRunner(Config(**overrides))

    return _make


def leftovers(root: Path) -> list:
    if not root.exists():
        return []
    return list(root.iterdir())
