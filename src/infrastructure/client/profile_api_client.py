from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ProfileApiError(Exception):
    pass


class ProfileApiClient:
    """Async client for the ``/profile`` endpoints.

    Pass ``transport`` to talk to an in-process app (``httpx.ASGITransport``)
    or a stub (``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("PROFILE_API_URL", "http://127.0.0.1:8000")).rstrip("/")
        self.timeout = timeout if timeout is not None else float(os.getenv("PROFILE_API_TIMEOUT", "10"))
        self.transport = transport

    async def _request(self, method: str, json_body: Any = None) -> dict[str, Any]:
        url = f"{self.base_url}/profile"
        headers = {"Content-Type": "application/json", "Cache-Control": "no-cache"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                resp = await client.request(method, url, headers=headers, json=json_body)
            except httpx.RequestError as exc:
                raise ProfileApiError(f"Request error talking to profile API: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning("%s %s returned %s", method, url, resp.status_code)
            raise ProfileApiError(f"HTTP error! status: {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise ProfileApiError("Malformed response from profile API") from exc
        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise ProfileApiError(error or "Profile request failed")
        return body

    async def get_profile(self) -> dict[str, str]:
        body = await self._request("GET")
        return body["data"]

    async def update_profile(self, data: Mapping[str, str]) -> dict[str, Any]:
        """Send a partial update; returns the whole envelope (``data`` and ``message``)."""
        return await self._request("PUT", dict(data))
