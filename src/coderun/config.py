"""Configuration loader.

The code runner reads its configuration from environment variables so the
same image can run locally and behind a reverse proxy without code changes.
Defaults are chosen so that local development works out of the box.

Environment variables:

``CODERUN_API_KEY``
    Shared secret expected in the ``x‑api‑key`` header.  When empty, no
    authentication is performed.

``CODERUN_WORKSPACE_ROOT``
    Base directory in which per-request workspaces are created.  Defaults
    to the system temporary directory.

``CODERUN_ALLOWED_LANGS``
    Comma‑separated subset of the supported languages that may be
    executed.  Defaults to every supported language.

``CODERUN_TIMEOUT_MS``
    Wall‑clock deadline, in milliseconds, covering the build and run steps
    of one execution.  Default is 5000.

``CODERUN_MAX_OUTPUT_BYTES``
    Maximum number of bytes kept from each of stdout and stderr.  Default is
    1048576 (1 MiB).

``CODERUN_LOG_LEVEL``
    Level of the ``coderun`` logger.  Defaults to ``INFO``.

``PORT``
    The port on which the API server listens.  Defaults to 8080.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from .executor.engine import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT_MS
from .languages import supported_languages


def _int_var(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        number = int(val)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {val}")
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


@dataclass
class Config:
    """Centralised configuration object."""

    api_key: str = ""
    workspace_root: str | None = None
    allowed_langs: List[str] = field(default_factory=supported_languages)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    log_level: str = "INFO"
    port: int = 8080

    @classmethod
    def load(cls) -> "Config":
        # API key may be empty in local development but should be set in production.
        api_key = os.getenv("CODERUN_API_KEY", "")
        workspace_root = os.getenv("CODERUN_WORKSPACE_ROOT") or None

        supported = supported_languages()
        allowed_env = os.getenv("CODERUN_ALLOWED_LANGS")
        if allowed_env:
            allowed_langs = [lang.strip().lower() for lang in allowed_env.split(",") if lang.strip()]
            unknown = sorted(set(allowed_langs) - set(supported))
            if unknown:
                raise ValueError(
                    f"Invalid CODERUN_ALLOWED_LANGS: {', '.join(unknown)}. "
                    f"Supported languages: {', '.join(supported)}."
                )
        else:
            allowed_langs = supported

        return cls(
            api_key=api_key,
            workspace_root=workspace_root,
            allowed_langs=allowed_langs,
            timeout_ms=_int_var("CODERUN_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            max_output_bytes=_int_var("CODERUN_MAX_OUTPUT_BYTES", DEFAULT_MAX_OUTPUT_BYTES),
            log_level=os.getenv("CODERUN_LOG_LEVEL", "INFO").upper(),
            port=_int_var("PORT", 8080),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """
        Alternate constructor used by the API to load configuration.

        This wrapper calls :meth:`load` to construct the configuration.
        """
        return cls.load()
