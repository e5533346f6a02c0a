"""Exceptions raised by the code runner.

Two families are distinguished so callers can tell a bad request apart from
a broken host:

* ``RequestError`` – the caller sent something we cannot run.  Raised before
  any workspace is allocated and mapped to HTTP 400 by the API.
* ``WorkspaceError`` – the local filesystem refused to cooperate.  Mapped to
  HTTP 500 and logged with a traceback.

Failures caused by the submitted program itself (compile errors, non-zero
exits, timeouts, missing toolchains) are not exceptions; they are reported
through :mod:`coderun.reporter`.
"""

from __future__ import annotations


class CodeRunError(Exception):
    """Base class for all code runner errors."""

    @property
    def category(self) -> str:
        return type(self).__name__


class RequestError(CodeRunError):
    """The request cannot be executed as submitted."""


class InvalidRequest(RequestError):
    """A required field is missing or empty."""


class UnsupportedLanguage(RequestError):
    """The requested language has no registered profile."""

    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class WorkspaceError(CodeRunError):
    """The scratch directory for a request could not be prepared."""


class WorkspaceCreationFailed(WorkspaceError):
    pass


class WorkspaceWriteFailed(WorkspaceError):
    pass
