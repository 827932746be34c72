"""Core configuration.

Why here:
- Centralises environment variables (pydantic-settings) without leaking them
  into the CLI layer.
- Lets adapters (HTTP transport) read the same settings consistently.

The password is intentionally absent: it is supplied per run (flag or
prompt) and never read from, or written to, any configuration source.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Applied uniformly to every controller call; not user-configurable.
REQUEST_TIMEOUT_SECONDS = 30.0


class AppSettings(BaseSettings):
    """Central application settings.

    Every field can be overridden with a `UNIFI_AUTH_TEST_<FIELD>` variable
    or a project `.env`; CLI flags take precedence over both.
    """

    model_config = SettingsConfigDict(
        env_prefix="UNIFI_AUTH_TEST_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    controller: str = Field(
        default="unifi.openprotocol.xyz",
        min_length=1,
        description="Controller hostname or IP address.",
    )
    port: int = Field(
        default=8443,
        ge=1,
        le=65535,
        description="Controller HTTPS port.",
    )
    username: str = Field(
        default="testadmin",
        min_length=1,
        description="Admin username used for the login call.",
    )
    site: str = Field(
        default="default",
        min_length=1,
        description="Site name used for the guest authorization command.",
    )
    insecure: bool = Field(
        default=False,
        description="Skip TLS certificate validation (self-signed controllers).",
    )
    user_agent: str = Field(
        default="unifi-auth-test/0.1",
        min_length=1,
        description="User-Agent sent on every request.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Root log level when --verbose is not given.",
    )
