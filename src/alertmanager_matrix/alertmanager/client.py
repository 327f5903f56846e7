"""Async client for the Alertmanager API v2."""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import AlertmanagerError
from ..logging import get_logger
from .models import Alert, Silence

logger = get_logger(__name__)


def _flag(value: bool) -> str:
    return "true" if value else "false"


class AlertmanagerClient:
    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.url}/api/v2/{path}"
        try:
            response = await self._http.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "alertmanager.request.failed",
                method=method,
                path=path,
                status_code=exc.response.status_code,
            )
            raise AlertmanagerError(
                f"{method} {path}: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "alertmanager.request.failed", method=method, path=path, error=str(exc)
            )
            raise AlertmanagerError(f"{method} {path}: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise AlertmanagerError(f"{method} {path}: invalid JSON") from exc

    async def get_alerts(
        self,
        *,
        active: bool = True,
        silenced: bool = False,
        inhibited: bool = False,
    ) -> list[Alert]:
        data = await self._request(
            "GET",
            "alerts",
            params={
                "active": _flag(active),
                "silenced": _flag(silenced),
                "inhibited": _flag(inhibited),
            },
        )
        if not isinstance(data, list):
            raise AlertmanagerError("GET alerts: expected a list")
        return [Alert.from_api(item) for item in data if isinstance(item, dict)]

    async def get_silences(self) -> list[Silence]:
        data = await self._request("GET", "silences")
        if not isinstance(data, list):
            raise AlertmanagerError("GET silences: expected a list")
        return [Silence.from_api(item) for item in data if isinstance(item, dict)]

    async def delete_silence(self, silence_id: str) -> None:
        """Expire a silence."""
        await self._request("DELETE", f"silence/{silence_id}")
