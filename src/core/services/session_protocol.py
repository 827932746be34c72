"""Session-based authentication protocol against the controller REST API.

login -> session cookie capture -> authenticated read -> optional
authenticated write. Each call is classified in the same order: transport
failure, HTTP status, then envelope result code. The session is an explicit
value returned by `authenticate` and passed into the later calls; the engine
itself holds no session state.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from core.domain.errors import ApiError, AuthRejected, DecodeError, HttpRejected, MissingSession
from core.domain.models import (
    ApiEnvelope,
    Credentials,
    Endpoint,
    GuestAuthRequest,
    Session,
    Site,
    Stage,
)
from core.interfaces.transport import Transport, TransportResponse

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/login"
SITES_PATH = "/api/self/sites"

ResponseHook = Callable[[Stage, TransportResponse], None]

_JSON_HEADERS = {"Content-Type": "application/json"}

_SITES_ADAPTER: TypeAdapter[list[Site] | None] = TypeAdapter(list[Site] | None)


def guest_command_path(site_name: str) -> str:
    return f"/api/s/{quote(site_name, safe='')}/cmd/stamgr"


def _decode_error(exc: ValidationError) -> DecodeError:
    return DecodeError(f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}")


def _checked_envelope(response: TransportResponse) -> ApiEnvelope[Any]:
    """Decode `{meta, data?}` and raise `ApiError` unless `meta.rc` is ok.

    `data` stays untyped here: on a failed result code it is ignored, so its
    shape must not turn an API error into a decoding error.
    """

    try:
        envelope = ApiEnvelope[Any].model_validate_json(response.body)
    except ValidationError as exc:
        raise _decode_error(exc) from exc
    if not envelope.ok:
        raise ApiError(envelope.meta.msg)
    return envelope


class SessionProtocolEngine:
    """Drives the three controller calls over an injected `Transport`.

    Response listeners are called with every HTTP response before it is
    classified, so UI layers can report status codes without the engine
    printing anything.
    """

    def __init__(self, transport: Transport, *, on_response: ResponseHook | None = None) -> None:
        self._transport = transport
        self._listeners: list[ResponseHook] = []
        if on_response is not None:
            self._listeners.append(on_response)

    def add_response_listener(self, listener: ResponseHook) -> None:
        self._listeners.append(listener)

    def remove_response_listener(self, listener: ResponseHook) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _exchange(
        self,
        stage: Stage,
        method: str,
        url: str,
        *,
        session: Session | None = None,
        payload: dict[str, Any] | None = None,
    ) -> TransportResponse:
        headers: dict[str, str] = {}
        body = None
        if payload is not None:
            headers.update(_JSON_HEADERS)
            body = json.dumps(payload).encode("utf-8")
        if session is not None:
            headers["Cookie"] = session.cookie

        logger.debug("%s %s (stage=%s, cookie=%s)", method, url, stage.value, "present" if session else "absent")
        response = await self._transport.send(method, url, headers, body)
        logger.info("%s %s -> %s", method, url, response.status_code)

        for listener in list(self._listeners):
            listener(stage, response)
        return response

    async def authenticate(self, endpoint: Endpoint, credentials: Credentials) -> Session:
        """POST /api/login and capture the session cookie.

        Raises `AuthRejected` on a non-2xx status and `MissingSession` when a
        2xx response carries no `Set-Cookie` value.
        """

        payload = {
            "username": credentials.username,
            "password": credentials.password.get_secret_value(),
        }
        response = await self._exchange(Stage.LOGIN, "POST", endpoint.url(LOGIN_PATH), payload=payload)

        if not response.is_success:
            raise AuthRejected(response.status_code)

        # Multiple Set-Cookie headers are joined by httpx with ", ".
        cookie = response.headers.get("set-cookie")
        if not cookie or not cookie.strip():
            logger.warning("Login to %s returned %s without a session cookie", endpoint.base_url, response.status_code)
            raise MissingSession()

        logger.debug("Session cookie captured for %s", credentials.username)
        return Session(cookie=cookie)

    async def verify_session(self, endpoint: Endpoint, session: Session) -> list[Site]:
        """GET /api/self/sites with the session cookie.

        Returns the sites in server order; an absent or empty `data` is an
        empty list, not an error.
        """

        response = await self._exchange(Stage.SITES, "GET", endpoint.url(SITES_PATH), session=session)
        if not response.is_success:
            raise HttpRejected(response.status_code, "Sites API")

        envelope = _checked_envelope(response)
        try:
            sites = _SITES_ADAPTER.validate_python(envelope.data)
        except ValidationError as exc:
            raise _decode_error(exc) from exc
        return list(sites or [])

    async def authorize_guest(
        self,
        endpoint: Endpoint,
        session: Session,
        site_name: str,
        mac_address: str,
    ) -> None:
        """POST the `authorize-guest` stamgr command for `mac_address` on `site_name`.

        Success needs only `meta.rc == "ok"`; `data` may be absent.
        """

        request = GuestAuthRequest(mac_address=mac_address)
        response = await self._exchange(
            Stage.GUEST,
            "POST",
            endpoint.url(guest_command_path(site_name)),
            session=session,
            payload=request.to_command(),
        )
        if not response.is_success:
            raise HttpRejected(response.status_code, "Guest auth API")

        _checked_envelope(response)
        logger.info("Guest %s authorized on site %s for %s minutes", request.mac_address, site_name, request.duration_minutes)
