"""Failures of the verification sequence.

Every error aborts the run; none is retried. Each carries an `error_type`
slug for machine output and a `suggestion` for the operator.
"""

from __future__ import annotations

UNKNOWN_API_ERROR = "Unknown error"


class ControllerTestError(Exception):
    """Base class for every failure surfaced by the protocol engine."""

    def __init__(self, message: str, error_type: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.suggestion = suggestion or ""

    def to_dict(self) -> dict[str, str]:
        return {
            "error": str(self),
            "error_type": self.error_type,
            "suggestion": self.suggestion,
        }


class TransportError(ControllerTestError):
    """Connection, TLS or timeout failure before any HTTP status was received."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            f"Transport failure: {detail}",
            "transport_error",
            "Check the controller host and port, network reachability, and use "
            "--insecure if the controller presents a self-signed certificate.",
        )
        self.detail = detail


class AuthRejected(ControllerTestError):
    """Login returned a non-2xx status."""

    def __init__(self, status: int) -> None:
        super().__init__(
            f"Authentication failed with status {status}",
            "auth_rejected",
            "Verify the username and password, and that the account is a local "
            "controller admin rather than a cloud account.",
        )
        self.status = status


class MissingSession(ControllerTestError):
    """Login reported success but issued no session cookie."""

    def __init__(self) -> None:
        super().__init__(
            "No cookies received from server",
            "missing_session",
            "The controller accepted the login without issuing a session cookie. "
            "It may not implement the classic /api/login contract (UniFi OS "
            "consoles use /api/auth/login).",
        )


class HttpRejected(ControllerTestError):
    """An authenticated call returned a non-2xx status."""

    def __init__(self, status: int, what: str = "API") -> None:
        super().__init__(
            f"{what} responded with status {status}",
            "http_rejected",
            "The session was not accepted for this call. Check the site name and "
            "that the account has the required privileges.",
        )
        self.status = status


class ApiError(ControllerTestError):
    """The response envelope carried a result code other than 'ok'."""

    def __init__(self, message: str | None = None) -> None:
        self.api_message = message or UNKNOWN_API_ERROR
        super().__init__(
            f"UniFi API error: {self.api_message}",
            "api_error",
            "The controller rejected the request; the message above is its own diagnostic.",
        )


class DecodeError(ControllerTestError):
    """The response body is not a valid envelope of the expected shape."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            f"Unexpected response body: {detail}",
            "decode_error",
            "The controller answered with a body that is not a UniFi API envelope. "
            "Make sure the host and port point at the controller itself.",
        )
        self.detail = detail
