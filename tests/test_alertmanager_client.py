"""Tests for alertmanager/client.py using httpx.MockTransport."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from alertmanager_matrix.alertmanager.client import AlertmanagerClient
from alertmanager_matrix.errors import AlertmanagerError

from alert_fixtures import alert_payload, silence_payload


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> AlertmanagerClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AlertmanagerClient("http://am.example.org:9093/", http_client=http)


@pytest.mark.anyio
async def test_get_alerts() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[alert_payload(), alert_payload("Disk")])

    client = _client(handler)
    alerts = await client.get_alerts()
    await client.close()

    assert [a.alert_name for a in alerts] == ["HighCPU", "Disk"]
    request = requests[0]
    assert request.method == "GET"
    assert request.url.path == "/api/v2/alerts"
    assert dict(request.url.params) == {
        "active": "true",
        "silenced": "false",
        "inhibited": "false",
    }


@pytest.mark.anyio
async def test_get_alerts_flags() -> None:
    params: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        params.append(dict(request.url.params))
        return httpx.Response(200, json=[])

    client = _client(handler)
    await client.get_alerts(active=False, silenced=True, inhibited=True)

    assert params == [{"active": "false", "silenced": "true", "inhibited": "true"}]


@pytest.mark.anyio
async def test_get_silences() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v2/silences"
        return httpx.Response(200, json=[silence_payload()])

    silences = await _client(handler).get_silences()

    assert [s.id for s in silences] == ["9f3c-41"]


@pytest.mark.anyio
async def test_delete_silence() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200)

    await _client(handler).delete_silence("9f3c-41")

    assert requests[0].method == "DELETE"
    assert requests[0].url.path == "/api/v2/silence/9f3c-41"


@pytest.mark.anyio
async def test_http_error_status() -> None:
    client = _client(lambda request: httpx.Response(500, text="oops"))

    with pytest.raises(AlertmanagerError, match="HTTP 500"):
        await client.get_alerts()


@pytest.mark.anyio
async def test_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AlertmanagerError, match="connection refused"):
        await _client(handler).get_silences()


@pytest.mark.anyio
async def test_invalid_json() -> None:
    client = _client(lambda request: httpx.Response(200, text="not json"))

    with pytest.raises(AlertmanagerError, match="invalid JSON"):
        await client.get_alerts()


@pytest.mark.anyio
async def test_unexpected_payload() -> None:
    client = _client(lambda request: httpx.Response(200, json={"alerts": []}))

    with pytest.raises(AlertmanagerError, match="expected a list"):
        await client.get_alerts()
