"""Multi-language code runner.

This package accepts source code in one of several languages, builds it when
the language needs a build step, runs it against the local toolchain under a
wall-clock timeout and an output cap, and reports the captured output.  Each
request gets its own scratch directory which is always removed afterwards.

The top‑level modules include:

* ``languages`` – the table describing how to build and run each language.
* ``validation`` – request checks performed before anything is allocated.
* ``workspace`` – creation and removal of per-request scratch directories.
* ``executor`` – the process execution engine.
* ``reporter`` – mapping of execution outcomes to caller-facing reports.
* ``runner`` – orchestration of a single execute request.
* ``config`` – configuration handling for environment variables.
* ``models`` – Pydantic models defining request and response schemas.
* ``api`` – FastAPI application exposing HTTP endpoints.

Importing ``coderun.api`` loads the configuration from the environment, so it
is not imported here.
"""

from .runner import CodeRunner

__all__ = ["CodeRunner"]
