"""
Async HTTP client for the ride-hailing REST API.

Wraps ``httpx.AsyncClient`` so that every service wrapper gets:

* the configured base URL and timeout,
* ``Authorization: Bearer <token>`` when the session holds a token,
* uniform error mapping -- transport failures become ``NetworkError``,
  non-2xx responses become ``ServerError`` (404 -> ``NotFoundError``,
  401/403 -> ``AuthenticationError``).

A custom ``transport`` can be injected (tests use ``httpx.ASGITransport``).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx

from ridehail.domain.errors import (
    AuthenticationError,
    NetworkError,
    NotFoundError,
    ServerError,
)

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Request failed ({response.status_code})"
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if body.get(key):
                return str(body[key])
    return f"Request failed ({response.status_code})"


class ApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def _auth_headers(self) -> dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` if empty)."""
        try:
            response = await self._client.request(
                method, path, json=json, params=params, headers=self._auth_headers()
            )
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(f"Could not reach server: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.info("%s %s -> %d %s", method, path, response.status_code, message)
            if response.status_code == 404:
                raise NotFoundError(message, response.status_code)
            if response.status_code in (401, 403):
                raise AuthenticationError(message, response.status_code)
            raise ServerError(message, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
