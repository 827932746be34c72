"""HTTP transport contract.

Why Protocol:
- Defines a structural contract (duck typing) without rigid inheritance.
- The protocol engine depends on this abstraction only, so it can be driven
  by the httpx adapter in production and by a scripted fake in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol, runtime_checkable

import httpx


@dataclass(frozen=True)
class TransportResponse:
    """Fully consumed HTTP response."""

    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code <= 299


@runtime_checkable
class Transport(Protocol):
    """Minimal contract for issuing one HTTP exchange.

    Design rules:
    - `send` is async because it performs network I/O.
    - Implementations raise `core.domain.errors.TransportError` for
      connection, TLS and timeout failures; any HTTP status is a response.
    """

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        """Send a request and return the fully read response."""

        ...
