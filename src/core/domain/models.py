"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation at the edges (CLI input, controller JSON) with the shape
  documented next to the field (Field).
- A single decode path: any response that does not fit these models is a
  decoding failure, never a half-populated object.

Note:
- These models describe *what* is exchanged with the controller, not *how*
  it travels (see `core.interfaces.transport`).
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic.config import ConfigDict

PayloadT = TypeVar("PayloadT")

RESULT_OK = "ok"

_MAC_RE = re.compile(r"^[0-9a-f]{2}([:-])[0-9a-f]{2}(\1[0-9a-f]{2}){4}$")


class Stage(str, Enum):
    """Steps of the verification sequence, in execution order."""

    LOGIN = "login"
    SITES = "sites"
    GUEST = "guest-authorization"

    def label(self) -> str:
        return {
            Stage.LOGIN: "Login",
            Stage.SITES: "Sites list",
            Stage.GUEST: "Guest authorization",
        }[self]


class SessionState(str, Enum):
    """Process-level state: Unauthenticated -> Authenticated -> Verified -> [GuestAuthorized] -> Done."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    VERIFIED = "verified"
    GUEST_AUTHORIZED = "guest-authorized"
    DONE = "done"


class Credentials(BaseModel):
    """Login credentials. Immutable; the password is a `SecretStr` so it never
    shows up in reprs, logs or dumps."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(..., min_length=1, description="Controller admin username.")
    password: SecretStr = Field(..., description="Controller admin password.")


class Endpoint(BaseModel):
    """Controller coordinates, fixed for the lifetime of the process."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1, description="Controller hostname or IP.")
    port: int = Field(..., ge=1, le=65535, description="Controller HTTPS port.")
    insecure: bool = Field(default=False, description="Skip TLS certificate validation.")

    @property
    def base_url(self) -> str:
        return f"https://{self.host}:{self.port}"

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"


class Session(BaseModel):
    """Authenticated session.

    `cookie` is the raw `Set-Cookie` value captured at login and replayed
    verbatim as the `Cookie` request header. It is not parsed: cookie
    attributes such as `Path` or `Expires` are forwarded too, which does not
    conform to RFC 6265 request syntax but matches what controllers under
    test have been observed to accept.
    """

    model_config = ConfigDict(frozen=True)

    cookie: str = Field(..., min_length=1, repr=False)


class ApiMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    rc: str = Field(..., description="Result code; 'ok' on success.")
    msg: str | None = Field(default=None, description="Diagnostic message on failure.")


class ApiEnvelope(BaseModel, Generic[PayloadT]):
    """Uniform response wrapper: `{meta: {rc, msg?}, data?}`.

    `data` is only trustworthy when `meta.rc == "ok"`.
    """

    model_config = ConfigDict(extra="ignore")

    meta: ApiMeta
    data: PayloadT | None = None

    @property
    def ok(self) -> bool:
        return self.meta.rc == RESULT_OK


class Site(BaseModel):
    """A controller site, copied as-is from `/api/self/sites`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str = Field(..., alias="_id", description="Server-side site identifier.")
    name: str = Field(..., description="Short site name used in API paths.")
    description: str = Field(default="", alias="desc", description="Human readable description.")


class GuestAuthRequest(BaseModel):
    """Body of the `authorize-guest` stamgr command.

    Duration, name and email are fixed diagnostic values; only the MAC
    varies between runs.
    """

    model_config = ConfigDict(frozen=True)

    mac_address: str = Field(..., description="Client MAC, normalised to aa:bb:cc:dd:ee:ff.")
    duration_minutes: int = Field(default=60, gt=0)
    display_name: str = Field(default="Test Guest")
    contact_email: str = Field(default="test@example.com")

    @field_validator("mac_address", mode="before")
    @classmethod
    def _normalise_mac(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("MAC address must be a string")
        mac = value.strip().lower()
        if not _MAC_RE.match(mac):
            raise ValueError(f"invalid MAC address: {value!r}")
        return mac.replace("-", ":")

    def to_command(self) -> dict[str, Any]:
        return {
            "cmd": "authorize-guest",
            "mac": self.mac_address,
            "minutes": self.duration_minutes,
            "name": self.display_name,
            "email": self.contact_email,
        }


class StageResult(BaseModel):
    """Outcome of one executed stage (skipped stages have no entry)."""

    stage: Stage
    ok: bool
    http_status: int | None = None
    error_type: str | None = None
    message: str | None = None
    suggestion: str | None = None


class DiagnosticReport(BaseModel):
    """Serializable summary of a run. Holds no password and no cookie value."""

    controller: str
    port: int
    username: str
    site: str
    succeeded: bool
    final_state: SessionState
    failed_stage: Stage | None = None
    stages: list[StageResult] = Field(default_factory=list)
    sites: list[Site] = Field(default_factory=list)
    guest_mac: str | None = None
