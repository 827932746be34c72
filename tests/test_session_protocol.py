from __future__ import annotations

import asyncio

import pytest

from conftest import reply
from core.domain.errors import ApiError, AuthRejected, DecodeError, HttpRejected, MissingSession, TransportError
from core.domain.models import Session, Site, Stage
from core.services.session_protocol import SessionProtocolEngine

SITES_OK = {"meta": {"rc": "ok"}, "data": [{"_id": "1", "name": "default", "desc": "Default"}]}


def test_login_posts_json_credentials(transport, endpoint, credentials):
    transport.responses.append(reply(200, {"meta": {"rc": "ok"}}, set_cookie="unifises=abc123"))
    engine = SessionProtocolEngine(transport)

    session = asyncio.run(engine.authenticate(endpoint, credentials))

    assert session == Session(cookie="unifises=abc123")
    sent = transport.sent[0]
    assert sent.method == "POST"
    assert sent.url == "https://unifi.test:8443/api/login"
    assert sent.headers["Content-Type"] == "application/json"
    assert "Cookie" not in sent.headers
    assert sent.json() == {"username": "testadmin", "password": "s3cret!"}


@pytest.mark.parametrize("status", [400, 401, 403, 500, 302])
def test_login_non_success_status_is_rejected(transport, endpoint, credentials, status):
    transport.responses.append(reply(status, set_cookie="unifises=abc123"))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(AuthRejected) as excinfo:
        asyncio.run(engine.authenticate(endpoint, credentials))

    assert excinfo.value.status == status
    assert len(transport.sent) == 1


def test_login_without_cookie_is_missing_session(transport, endpoint, credentials):
    transport.responses.append(reply(200, {"meta": {"rc": "ok"}}))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(MissingSession):
        asyncio.run(engine.authenticate(endpoint, credentials))


def test_login_with_blank_cookie_is_missing_session(transport, endpoint, credentials):
    transport.responses.append(reply(204, set_cookie="   "))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(MissingSession):
        asyncio.run(engine.authenticate(endpoint, credentials))


def test_cookie_with_attributes_is_kept_verbatim(transport, endpoint, credentials):
    raw = "unifises=abc123; Path=/; Secure; HttpOnly"
    transport.responses.append(reply(200, set_cookie=raw))
    transport.responses.append(reply(200, SITES_OK))
    engine = SessionProtocolEngine(transport)

    session = asyncio.run(engine.authenticate(endpoint, credentials))
    asyncio.run(engine.verify_session(endpoint, session))

    assert session.cookie == raw
    assert transport.sent[1].headers["Cookie"] == raw


def test_transport_error_propagates(transport, endpoint, credentials):
    transport.responses.append(TransportError("connection refused"))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(TransportError):
        asyncio.run(engine.authenticate(endpoint, credentials))


def test_verify_session_returns_sites(transport, endpoint):
    transport.responses.append(reply(200, SITES_OK))
    engine = SessionProtocolEngine(transport)

    sites = asyncio.run(engine.verify_session(endpoint, Session(cookie="unifises=abc123")))

    assert sites == [Site(id="1", name="default", description="Default")]
    sent = transport.sent[0]
    assert sent.method == "GET"
    assert sent.url == "https://unifi.test:8443/api/self/sites"
    assert sent.headers["Cookie"] == "unifises=abc123"
    assert sent.body is None


def test_verify_session_preserves_server_order(transport, endpoint):
    data = [
        {"_id": "3", "name": "zulu", "desc": "Z"},
        {"_id": "1", "name": "alpha", "desc": "A"},
        {"_id": "2", "name": "mike", "desc": "M"},
    ]
    transport.responses.append(reply(200, {"meta": {"rc": "ok"}, "data": data}))
    engine = SessionProtocolEngine(transport)

    sites = asyncio.run(engine.verify_session(endpoint, Session(cookie="c=1")))

    assert [s.id for s in sites] == ["3", "1", "2"]


@pytest.mark.parametrize("payload", [{"meta": {"rc": "ok"}, "data": []}, {"meta": {"rc": "ok"}}, {"meta": {"rc": "ok"}, "data": None}])
def test_verify_session_empty_payload_is_not_an_error(transport, endpoint, payload):
    transport.responses.append(reply(200, payload))
    engine = SessionProtocolEngine(transport)

    assert asyncio.run(engine.verify_session(endpoint, Session(cookie="c=1"))) == []


def test_verify_session_api_error_ignores_payload(transport, endpoint):
    payload = {"meta": {"rc": "error", "msg": "api.err.LoginRequired"}, "data": [{"_id": "1", "name": "x", "desc": "y"}]}
    transport.responses.append(reply(200, payload))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(engine.verify_session(endpoint, Session(cookie="c=1")))

    assert excinfo.value.api_message == "api.err.LoginRequired"


def test_verify_session_api_error_without_message(transport, endpoint):
    transport.responses.append(reply(200, {"meta": {"rc": "error"}}))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(engine.verify_session(endpoint, Session(cookie="c=1")))

    assert excinfo.value.api_message == "Unknown error"


def test_verify_session_http_status_checked_before_body(transport, endpoint):
    transport.responses.append(reply(401, raw=b"<html>nope</html>"))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(HttpRejected) as excinfo:
        asyncio.run(engine.verify_session(endpoint, Session(cookie="c=1")))

    assert excinfo.value.status == 401


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"",
        b'{"data": []}',
        b'{"meta": {"rc": "ok"}, "data": [{"name": "no-id"}]}',
        b'{"meta": {"rc": "ok"}, "data": {"_id": "1"}}',
    ],
)
def test_verify_session_bad_body_is_decode_error(transport, endpoint, raw):
    transport.responses.append(reply(200, raw=raw))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(DecodeError):
        asyncio.run(engine.verify_session(endpoint, Session(cookie="c=1")))


def test_authorize_guest_sends_stamgr_command(transport, endpoint):
    transport.responses.append(reply(200, {"meta": {"rc": "ok"}}))
    engine = SessionProtocolEngine(transport)

    asyncio.run(engine.authorize_guest(endpoint, Session(cookie="unifises=abc123"), "default", "AA:BB:CC:DD:EE:FF"))

    sent = transport.sent[0]
    assert sent.method == "POST"
    assert sent.url == "https://unifi.test:8443/api/s/default/cmd/stamgr"
    assert sent.headers["Cookie"] == "unifises=abc123"
    assert sent.headers["Content-Type"] == "application/json"
    assert sent.json() == {
        "cmd": "authorize-guest",
        "mac": "aa:bb:cc:dd:ee:ff",
        "minutes": 60,
        "name": "Test Guest",
        "email": "test@example.com",
    }


def test_authorize_guest_quotes_site_name(transport, endpoint):
    transport.responses.append(reply(200, {"meta": {"rc": "ok"}, "data": []}))
    engine = SessionProtocolEngine(transport)

    asyncio.run(engine.authorize_guest(endpoint, Session(cookie="c=1"), "branch office", "aa:bb:cc:dd:ee:ff"))

    assert transport.sent[0].url == "https://unifi.test:8443/api/s/branch%20office/cmd/stamgr"


def test_authorize_guest_failures(transport, endpoint):
    transport.responses.extend(
        [
            reply(404, raw=b""),
            reply(200, {"meta": {"rc": "error", "msg": "api.err.UnknownStation"}}),
        ]
    )
    engine = SessionProtocolEngine(transport)
    session = Session(cookie="c=1")

    with pytest.raises(HttpRejected):
        asyncio.run(engine.authorize_guest(endpoint, session, "default", "aa:bb:cc:dd:ee:ff"))
    with pytest.raises(ApiError, match="api.err.UnknownStation"):
        asyncio.run(engine.authorize_guest(endpoint, session, "default", "aa:bb:cc:dd:ee:ff"))


def test_response_listeners_see_every_response(transport, endpoint, credentials):
    seen = []
    transport.responses.extend([reply(200, set_cookie="c=1"), reply(200, SITES_OK)])
    engine = SessionProtocolEngine(transport, on_response=lambda stage, response: seen.append((stage, response.status_code)))

    session = asyncio.run(engine.authenticate(endpoint, credentials))
    asyncio.run(engine.verify_session(endpoint, session))

    assert seen == [(Stage.LOGIN, 200), (Stage.SITES, 200)]


def test_password_is_not_logged(transport, endpoint, credentials, caplog):
    caplog.set_level("DEBUG")
    transport.responses.extend([reply(200, set_cookie="unifises=abc123"), reply(200, SITES_OK)])
    engine = SessionProtocolEngine(transport)

    session = asyncio.run(engine.authenticate(endpoint, credentials))
    asyncio.run(engine.verify_session(endpoint, session))

    assert "s3cret!" not in caplog.text
    assert "abc123" not in caplog.text
    assert "s3cret!" not in repr(credentials)


@pytest.mark.parametrize("data", [{"detail": "x"}, [{"name": "no-id"}], "oops", 42])
def test_api_error_wins_over_malformed_payload(transport, endpoint, data):
    payload = {"meta": {"rc": "error", "msg": "api.err.NoSiteContext"}, "data": data}
    transport.responses.append(reply(200, payload))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(engine.verify_session(endpoint, Session(cookie="c=1")))

    assert excinfo.value.api_message == "api.err.NoSiteContext"


def test_guest_api_error_ignores_payload_shape(transport, endpoint):
    transport.responses.append(reply(200, {"meta": {"rc": "error", "msg": "api.err.InvalidPayload"}, "data": "oops"}))
    engine = SessionProtocolEngine(transport)

    with pytest.raises(ApiError, match="api.err.InvalidPayload"):
        asyncio.run(engine.authorize_guest(endpoint, Session(cookie="c=1"), "default", "aa:bb:cc:dd:ee:ff"))
