from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx
import pytest

from core.domain.models import Credentials, Endpoint
from core.interfaces.transport import TransportResponse


@dataclass
class SentRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None

    def json(self) -> Any:
        assert self.body is not None
        return json.loads(self.body)


@dataclass
class ScriptedTransport:
    """Replays queued responses (or raises queued exceptions) in order."""

    responses: list[TransportResponse | Exception] = field(default_factory=list)
    sent: list[SentRequest] = field(default_factory=list)

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        self.sent.append(SentRequest(method, url, dict(headers), body))
        if not self.responses:
            raise AssertionError(f"unexpected request: {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def reply(status: int, payload: Any = None, *, set_cookie: str | None = None, raw: bytes | None = None) -> TransportResponse:
    headers = httpx.Headers()
    if set_cookie is not None:
        headers["Set-Cookie"] = set_cookie
    if raw is not None:
        body = raw
    elif payload is not None:
        body = json.dumps(payload).encode("utf-8")
    else:
        body = b""
    return TransportResponse(status_code=status, headers=headers, body=body)


@pytest.fixture
def endpoint() -> Endpoint:
    return Endpoint(host="unifi.test", port=8443, insecure=True)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="testadmin", password="s3cret!")


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()
