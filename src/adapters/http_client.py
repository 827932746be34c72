"""httpx wrapper.

Why a wrapper:
- Standardises timeout, headers and TLS policy for every controller call.
- Makes testing easy: the engine talks to `Transport`, and this adapter can
  be built on top of an `httpx.MockTransport`.
"""

from __future__ import annotations

import logging
from typing import Mapping

import httpx

from core.config import REQUEST_TIMEOUT_SECONDS, AppSettings
from core.domain.errors import TransportError
from core.interfaces.transport import TransportResponse

logger = logging.getLogger(__name__)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    insecure: bool | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` for the controller.

    Why a builder:
    - Centralises timeout/headers so every call behaves the same way.
    - Redirects are not followed: a login answered with a 3xx is a rejection,
      not something to chase while the Set-Cookie header is dropped.
    - Cookies are never stored in the client jar; the session cookie travels
      only as the explicit `Cookie` header set by the engine.
    """

    settings = settings or AppSettings()
    verify = not (settings.insecure if insecure is None else insecure)
    if not verify:
        logger.warning("TLS certificate verification is disabled")

    headers = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    return httpx.AsyncClient(
        timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS),
        follow_redirects=False,
        verify=verify,
        headers=headers,
    )


class HttpxTransport:
    """`core.interfaces.transport.Transport` backed by `httpx.AsyncClient`.

    Usable as an async context manager; the client is closed on exit.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        # The jar would otherwise replay Set-Cookie values on its own.
        self._client.cookies.clear()
        try:
            request = self._client.build_request(method, url, headers=dict(headers), content=body)
            response = await self._client.send(request)
        except httpx.TimeoutException as exc:
            raise TransportError(f"{method} {url} timed out after {REQUEST_TIMEOUT_SECONDS:.0f}s") from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise TransportError(f"{method} {url}: {str(exc) or type(exc).__name__}") from exc

        return TransportResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=response.content,
        )
