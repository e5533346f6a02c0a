"""
FastAPI application for the code runner.

This module configures logging, loads the configuration, and exposes the
execute endpoint used by the editor front end together with a health check
and a language listing.  Requests are authenticated with an optional API
key.

Execution itself is blocking, so the handler hands it to Starlette's thread
pool and the event loop stays free to serve other requests meanwhile.
"""

from __future__ import annotations

import logging
from typing import Dict, Union

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config import Config
from ..errors import RequestError, WorkspaceError
from ..languages import LANGUAGES
from ..models import (
    ErrorResponse,
    ExecuteErrorResponse,
    ExecuteRequest,
    ExecuteResponse,
    LanguageInfo,
    LanguagesResponse,
)
from ..runner import CodeRunner


logger = logging.getLogger("coderun")

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[coderun] %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


config = Config.from_env()

logger.setLevel(config.log_level)

logger.info(
    "Loaded config: workspace_root=%s, allowed_langs=%s, timeout_ms=%s, max_output_bytes=%s",
    config.workspace_root or "<tmp>",
    config.allowed_langs,
    config.timeout_ms,
    config.max_output_bytes,
)

runner = CodeRunner(config)


app = FastAPI(title="Code Runner", version="0.1.0")


@app.middleware("http")
async def authenticate(request: Request, call_next):
    """Middleware to enforce API key authentication on all requests."""
    path = request.url.path
    method = request.method
    client = getattr(request.client, "host", "unknown")

    logger.info("Incoming request: %s %s from %s", method, path, client)

    if config.api_key and request.headers.get("x-api-key") != config.api_key:
        logger.warning("Invalid API key for %s %s from %s", method, path, client)
        return JSONResponse(status_code=401, content={"detail": "Invalid API key"})

    response = await call_next(request)
    logger.info("Response: %s %s -> %s", method, path, response.status_code)
    return response


@app.exception_handler(RequestError)
async def request_error_handler(request: Request, exc: RequestError) -> JSONResponse:
    logger.warning("Rejected request: %s", exc)
    body = ErrorResponse(error=str(exc), category=exc.category)
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Malformed request body: %s", exc.errors())
    body = ErrorResponse(error="Invalid request body", category="InvalidRequest")
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(WorkspaceError)
async def workspace_error_handler(request: Request, exc: WorkspaceError) -> JSONResponse:
    logger.error("Workspace failure: %s", exc, exc_info=exc)
    body = ErrorResponse(error="Internal server error", category=exc.category)
    return JSONResponse(status_code=500, content=body.model_dump())


@app.get("/health")
async def health() -> Dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}


@app.get("/languages", response_model=LanguagesResponse)
async def languages() -> LanguagesResponse:
    """List the languages this instance will execute."""
    return LanguagesResponse(
        languages=[
            LanguageInfo(id=profile.id, extension=profile.source_extension, compiled=profile.has_build_step)
            for profile in LANGUAGES.values()
            if profile.id in runner.config.allowed_langs
        ]
    )


@app.post("/api/run-code")
async def run_code(req: ExecuteRequest) -> JSONResponse:
    """Build and run the submitted code.

    Failures caused by the code itself (compile errors, non-zero exits,
    timeouts, missing toolchains) are returned with HTTP 200 and an
    ``error`` field.  Malformed requests are rejected with HTTP 400 by the
    exception handlers above, and anything unexpected becomes HTTP 500.
    """
    try:
        report = await run_in_threadpool(runner.execute, req.language, req.code, req.input)
    except (RequestError, WorkspaceError):
        raise
    except Exception as exc:
        logger.exception("[/api/run-code] Unhandled error during execution: %s", exc)
        error_body = ErrorResponse(error="Internal server error", category="InternalError")
        return JSONResponse(status_code=500, content=error_body.model_dump())

    if report.ok:
        body: Union[ExecuteResponse, ExecuteErrorResponse] = ExecuteResponse(
            stdout=report.stdout,
            stderr=report.stderr,
            exit_code=report.exit_code,
            duration_ms=report.duration_ms,
            stdout_truncated=report.stdout_truncated,
            stderr_truncated=report.stderr_truncated,
        )
    else:
        body = ExecuteErrorResponse(
            error=report.message,
            category=report.category.value,
            stdout=report.stdout,
            stderr=report.stderr,
            exit_code=report.exit_code,
            duration_ms=report.duration_ms,
        )
    return JSONResponse(status_code=200, content=body.model_dump(exclude_none=True))
