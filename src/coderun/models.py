"""Pydantic models for request and response bodies.

Fields on :class:`ExecuteRequest` are optional at the schema level so that a
missing ``language`` or ``code`` is reported by the runner's own validation
as an ``InvalidRequest`` (HTTP 400) rather than a generic schema error.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ExecuteRequest(BaseModel):
    """Request body for executing code."""

    language: Optional[str] = Field(
        default=None,
        description="One of: python, javascript, typescript, go, php, rust, cpp.",
    )
    code: Optional[str] = Field(default=None, description="Source code to execute.")
    input: Optional[str] = Field(
        default=None, description="Standard input to pass to the program."
    )


class ExecuteResponse(BaseModel):
    """Response body when the program exited with status 0."""

    stdout: str
    stderr: str
    exit_code: int = 0
    duration_ms: int
    stdout_truncated: bool = False
    stderr_truncated: bool = False


class ExecuteErrorResponse(BaseModel):
    """Response body when the program failed, timed out or could not start."""

    error: str
    category: str
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    exit_code: Optional[int] = None
    duration_ms: int = 0


class ErrorResponse(BaseModel):
    """Response body for rejected requests and internal faults."""

    error: str
    category: str


class LanguageInfo(BaseModel):
    id: str
    extension: str
    compiled: bool


class LanguagesResponse(BaseModel):
    languages: List[LanguageInfo] = Field(default_factory=list)
