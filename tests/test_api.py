"""
API tests for the code runner.

These tests exercise the HTTP endpoints using FastAPI's TestClient.  They
verify that code runs and reports its output, that malformed requests are
rejected with HTTP 400 while failing programs are reported with HTTP 200,
and that the health check and language listing are operational.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from coderun.api import main
from coderun.api.main import app
from coderun.config import Config
from coderun.languages import LANGUAGES, LanguageProfile
from coderun.runner import CodeRunner

from .conftest import leftovers


@pytest.fixture(autouse=True)
def isolate_runner(workspace_root, monkeypatch):
    """Point the runner at a temporary workspace root and disable auth."""
    monkeypatch.setattr(main, "config", Config(workspace_root=str(workspace_root)))
    monkeypatch.setattr(main, "runner", CodeRunner(main.config))
    yield


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_languages(client):
    response = client.get("/languages")
    assert response.status_code == 200
    languages = {item["id"]: item for item in response.json()["languages"]}
    assert set(languages) == {"python", "javascript", "typescript", "go", "php", "rust", "cpp"}
    assert languages["cpp"] == {"id": "cpp", "extension": "cpp", "compiled": True}
    assert languages["go"]["compiled"] is False


def test_execute_python_simple(client, local_python, workspace_root):
    res = client.post("/api/run-code", json={"language": "python", "code": "print(1 + 1)"})
    assert res.status_code == 200
    data = res.json()
    assert data["stdout"].strip() == "2"
    assert data["stderr"] == ""
    assert data["exit_code"] == 0
    assert "error" not in data
    assert leftovers(workspace_root) == []


def test_execute_with_input(client, local_python):
    payload = {"language": "python", "code": "print(input()[::-1])", "input": "hello"}
    res = client.post("/api/run-code", json=payload)
    assert res.status_code == 200
    assert res.json()["stdout"] == "olleh\n"


def test_runtime_error_is_reported_in_body(client, local_python):
    res = client.post("/api/run-code", json={"language": "python", "code": "print('a')\nraise SystemExit(2)"})
    assert res.status_code == 200
    data = res.json()
    assert data["category"] == "RuntimeOrCompileError"
    assert data["error"] == "Process exited with code 2"
    assert data["stdout"] == "a\n"
    assert data["exit_code"] == 2


def test_timeout_is_reported_in_body(client, local_python, monkeypatch):
    monkeypatch.setattr(main, "runner", CodeRunner(Config(workspace_root=main.config.workspace_root, timeout_ms=500)))
    code = "import time\nprint('tick', flush=True)\ntime.sleep(30)\n"
    res = client.post("/api/run-code", json={"language": "python", "code": code})
    assert res.status_code == 200
    data = res.json()
    assert data["category"] == "Timeout"
    assert data["stdout"] == "tick\n"


def test_missing_toolchain_is_reported_in_body(client, monkeypatch):
    monkeypatch.setitem(LANGUAGES, "php", LanguageProfile("php", "php", run_argv=("no-such-php-binary",)))
    res = client.post("/api/run-code", json={"language": "php", "code": "<?php echo 1;"})
    assert res.status_code == 200
    data = res.json()
    assert data["category"] == "ToolchainUnavailable"
    assert "no-such-php-binary" in data["stderr"]


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"language": "python"},
        {"code": "print(1)"},
        {"language": "", "code": "print(1)"},
        {"language": "python", "code": ""},
    ],
)
def test_missing_fields_are_client_errors(client, payload, workspace_root):
    res = client.post("/api/run-code", json=payload)
    assert res.status_code == 400
    assert res.json() == {"error": "Missing language or code", "category": "InvalidRequest"}
    assert not workspace_root.exists()


def test_malformed_body_is_client_error(client):
    res = client.post("/api/run-code", json={"language": "python", "code": ["not", "text"]})
    assert res.status_code == 400
    assert res.json()["category"] == "InvalidRequest"


def test_unsupported_language(client, workspace_root):
    res = client.post("/api/run-code", json={"language": "ruby", "code": "puts 1"})
    assert res.status_code == 400
    assert res.json() == {"error": "Unsupported language: ruby", "category": "UnsupportedLanguage"}
    assert not workspace_root.exists()


def test_workspace_failure_is_internal_error(client, tmp_path, monkeypatch, local_python):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    monkeypatch.setattr(main, "runner", CodeRunner(Config(workspace_root=str(blocker))))
    res = client.post("/api/run-code", json={"language": "python", "code": "print(1)"})
    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error", "category": "WorkspaceCreationFailed"}


def test_api_key_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(main, "config", Config(api_key="secret"))
    assert client.get("/health").status_code == 401
    assert client.get("/health", headers={"x-api-key": "wrong"}).status_code == 401
    assert client.get("/health", headers={"x-api-key": "secret"}).status_code == 200


def test_unexpected_error_is_json_internal_error(client, local_python, workspace_root, monkeypatch, caplog):
    def crash(*args, **kwargs):
        raise RuntimeError("engine bug")

    monkeypatch.setattr(main.runner.engine, "run", crash)
    with caplog.at_level(logging.ERROR, logger="coderun"):
        res = client.post("/api/run-code", json={"language": "python", "code": "print(1)"})
    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error", "category": "InternalError"}
    assert "engine bug" in caplog.text
    assert leftovers(workspace_root) == []


def test_lone_surrogate_is_client_error(client, local_python, workspace_root):
    body = b'{"language": "python", "code": "print(input())", "input": "\\ud800"}'
    res = client.post("/api/run-code", content=body, headers={"content-type": "application/json"})
    assert res.status_code == 400
    assert res.json()["category"] == "InvalidRequest"
    assert not workspace_root.exists()


def test_health_answers_while_code_runs(local_python):
    slow = {"language": "python", "code": "import time\ntime.sleep(2)\nprint('done')\n"}
    with TestClient(app) as client, ThreadPoolExecutor(max_workers=1) as pool:
        pending = pool.submit(client.post, "/api/run-code", json=slow)
        time.sleep(0.3)
        started = time.monotonic()
        health = client.get("/health")
        health_elapsed = time.monotonic() - started
        still_running = not pending.done()
        result = pending.result()

    assert health.status_code == 200
    assert health_elapsed < 1.0
    assert still_running
    assert result.json()["stdout"] == "done\n"


def test_concurrent_runs_overlap(local_python):
    slow = {"language": "python", "code": "import time\ntime.sleep(2)\nprint('done')\n"}
    with TestClient(app) as client, ThreadPoolExecutor(max_workers=2) as pool:
        started = time.monotonic()
        responses = list(pool.map(lambda _: client.post("/api/run-code", json=slow), range(2)))
        elapsed = time.monotonic() - started

    assert [r.json()["stdout"] for r in responses] == ["done\n", "done\n"]
    # Run one after the other, the two requests would need at least 4 s.
    assert elapsed < 3.5
