"""Tests for the hosted backend client against an httpx mock transport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from tenacity import wait_none

from career_journey.models import BackendConfig
from career_journey.services import BackendService, BackendServiceError, FunctionInvocationError


CONFIG = BackendConfig(url="https://project.example.co/", api_key="anon-key", timeout=5)


def run_with(handler, action):
    async def scenario():
        async with BackendService(CONFIG, transport=httpx.MockTransport(handler)) as backend:
            return await action(backend)

    return asyncio.run(scenario())


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(BackendService._read_json.retry, "wait", wait_none())


def test_select_builds_filter_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["headers"] = request.headers
        return httpx.Response(200, json=[{"resume_id": "r1"}])

    rows = run_with(handler, lambda b: b.select(
        "resume_store", {"resume_id": "r1"}, columns="resume_id,parsed_data",
        order="created_at", limit=1,
    ))

    assert rows == [{"resume_id": "r1"}]
    assert seen["path"] == "/rest/v1/resume_store"
    assert seen["params"] == {
        "select": "resume_id,parsed_data",
        "resume_id": "eq.r1",
        "order": "created_at.desc",
        "limit": "1",
    }
    assert seen["headers"]["apikey"] == "anon-key"
    assert seen["headers"]["authorization"] == "Bearer anon-key"


def test_select_one_returns_none_for_no_rows():
    row = run_with(lambda request: httpx.Response(200, json=[]),
                   lambda b: b.select_one("resume_store", {"resume_id": "missing"}))

    assert row is None


def test_rpc_posts_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"career_analysis_completed": True})

    result = run_with(handler, lambda b: b.rpc("get_sigma_journey_state", {"p_resume_id": "r1"}))

    assert result == {"career_analysis_completed": True}
    assert seen == {
        "method": "POST",
        "path": "/rest/v1/rpc/get_sigma_journey_state",
        "body": {"p_resume_id": "r1"},
    }


def test_client_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"message": "relation does not exist"})

    with pytest.raises(BackendServiceError, match="select from missing_table failed"):
        run_with(handler, lambda b: b.select("missing_table"))

    assert len(calls) == 1


def test_server_errors_are_retried():
    responses = [httpx.Response(503), httpx.Response(502), httpx.Response(200, json=[{"id": 1}])]

    rows = run_with(lambda request: responses.pop(0), lambda b: b.select("job_matching_result"))

    assert rows == [{"id": 1}]
    assert responses == []


def test_persistent_server_errors_give_up_after_three_attempts():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(BackendServiceError, match="rpc get_sigma_journey_state failed"):
        run_with(handler, lambda b: b.rpc("get_sigma_journey_state"))

    assert len(calls) == 3


def test_invoke_function_returns_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"career_roles": []}})

    payload = run_with(handler, lambda b: b.invoke_function("career-analysis", {"resume_id": "r1"}))

    assert payload == {"success": True, "data": {"career_roles": []}}
    assert seen == {"path": "/functions/v1/career-analysis", "body": {"resume_id": "r1"}}


def test_invoke_function_error_carries_remote_message():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, json={"success": False, "error": "Resume not found"})

    with pytest.raises(FunctionInvocationError) as excinfo:
        run_with(handler, lambda b: b.invoke_function("skill-validation", {"resume_id": "r1"}))

    assert str(excinfo.value) == "Resume not found"
    assert excinfo.value.function == "skill-validation"
    assert excinfo.value.status_code == 500
    assert len(calls) == 1


def test_invoke_function_without_error_body():
    with pytest.raises(FunctionInvocationError, match="job-matching returned HTTP 502"):
        run_with(lambda request: httpx.Response(502, text="Bad Gateway"),
                 lambda b: b.invoke_function("job-matching", {}))


def test_invoke_function_wraps_list_payload():
    payload = run_with(lambda request: httpx.Response(200, json=[1, 2]),
                       lambda b: b.invoke_function("project-generation", {}))

    assert payload == {"success": True, "data": [1, 2]}


def test_transport_failure_on_invoke():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FunctionInvocationError, match="resume-upgrade unreachable"):
        run_with(handler, lambda b: b.invoke_function("resume-upgrade", {}))


def test_requires_context_manager():
    backend = BackendService(CONFIG)

    with pytest.raises(BackendServiceError, match="not initialized"):
        asyncio.run(backend.invoke_function("career-analysis", {}))


def test_non_json_read_is_a_backend_error():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(BackendServiceError, match="invalid JSON"):
        run_with(handler, lambda b: b.rpc("get_sigma_journey_state", {"p_resume_id": "r1"}))

    assert len(calls) == 1
