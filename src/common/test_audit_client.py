import json

import httpx
import pytest

from common.audit_client import AuditClient


@pytest.mark.asyncio
async def test_disabled_client_sends_nothing():
    calls = []
    transport = httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200))
    audit = AuditClient(service_name="task_manager", base_url=None, transport=transport)

    await audit.log(level="info", message="ignored")

    assert audit.enabled is False
    assert calls == []


@pytest.mark.asyncio
async def test_log_posts_event():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"status": "ok"})

    audit = AuditClient(
        service_name="task_manager",
        base_url="http://audit.local",
        transport=httpx.MockTransport(handler),
    )

    await audit.log(
        level="info",
        message="HTTP request handled",
        trace_id="t-1",
        task_id=3,
        context={"status_code": 200},
    )
    await audit.aclose()

    assert len(calls) == 1
    assert calls[0].url == "http://audit.local/audit/log"
    payload = json.loads(calls[0].content)
    assert payload["service"] == "task_manager"
    assert payload["level"] == "INFO"
    assert payload["trace_id"] == "t-1"
    assert payload["task_id"] == 3
    assert payload["context"] == {"status_code": 200}


@pytest.mark.asyncio
async def test_send_errors_are_swallowed():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("audit is down", request=request)

    audit = AuditClient(
        service_name="task_manager",
        base_url="http://audit.local",
        transport=httpx.MockTransport(handler),
    )

    await audit.log(level="warning", message="still fine")
    await audit.aclose()
