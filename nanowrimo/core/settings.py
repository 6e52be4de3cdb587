"""
Client configuration.

Settings come from constructor arguments, `NANOWRIMO_*` environment
variables, or a project `.env` file, in that order of precedence.
"""

from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nanowrimo import __version__

DEFAULT_BASE_URL = "https://api.nanowrimo.org/"
DEFAULT_TIMEOUT = 30.0


class ClientSettings(BaseSettings):
    """Configuration shared by one client instance."""

    model_config = SettingsConfigDict(
        env_prefix="NANOWRIMO_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        min_length=8,
        description="API root URL.",
    )
    timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Per-request timeout covering connect and transfer.",
    )
    user_agent: str = Field(
        default=f"nanowrimo-py/{__version__}",
        min_length=1,
        description="User-Agent sent with every request.",
    )

    auth_header: str = Field(
        default="Authorization",
        min_length=1,
        description="Header carrying the credential.",
    )
    auth_scheme: str = Field(
        default="",
        description="Prefix placed before the token, e.g. 'Bearer'. Empty sends the raw token.",
    )
    api_token: SecretStr | None = Field(
        default=None,
        description="Pre-issued token used as the initial credential.",
    )
    identifier: str | None = Field(
        default=None,
        description="Username or email used by login().",
    )
    password: SecretStr | None = Field(
        default=None,
        description="Password used by login().",
    )

    dns_resolver: Literal["system", "https", "tls", "quic"] = Field(
        default="system",
        description="Name resolution path: platform default, DNS-over-HTTPS, -TLS or -QUIC.",
    )
    dns_server: str | None = Field(
        default=None,
        description="DoH URL for 'https', resolver IP for 'tls' and 'quic'.",
    )
    dns_server_hostname: str | None = Field(
        default=None,
        description="TLS server name of the resolver for 'tls' and 'quic'.",
    )
    dnssec: bool = Field(
        default=False,
        description="Require DNSSEC-validated answers from the resolver.",
    )

    @field_validator("base_url")
    @classmethod
    def _normalise_base_url(cls, value: str) -> str:
        return value.rstrip("/") + "/"

    @model_validator(mode="after")
    def _check_dns(self) -> "ClientSettings":
        if self.dns_resolver != "system" and not self.dns_server:
            raise ValueError(f"dns_server is required when dns_resolver is {self.dns_resolver!r}")
        return self
