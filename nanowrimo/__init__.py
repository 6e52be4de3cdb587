"""
NaNoWriMo - Typed async client for the NaNoWriMo API.

Layers:
- core: Settings, errors, domain types, session and the request pipeline
- bindings: One async function per endpoint, generated from the endpoint table
- sdk: High-level NanoClient with login/logout and every binding as a method
"""

__version__ = "0.1.0"

from nanowrimo.core.errors import (  # noqa: E402
    APIError,
    DecodeError,
    Forbidden,
    InvalidParams,
    NanoError,
    NotFound,
    RateLimited,
    ServiceError,
    TransportError,
    Unauthenticated,
)
from nanowrimo.core.enums import NanoKind  # noqa: E402
from nanowrimo.core.session import Credential  # noqa: E402
from nanowrimo.core.settings import ClientSettings  # noqa: E402
from nanowrimo.core.types import Response  # noqa: E402
from nanowrimo.sdk import NanoClient  # noqa: E402

__all__ = [
    "APIError",
    "ClientSettings",
    "Credential",
    "DecodeError",
    "Forbidden",
    "InvalidParams",
    "NanoClient",
    "NanoError",
    "NanoKind",
    "NotFound",
    "RateLimited",
    "Response",
    "ServiceError",
    "TransportError",
    "Unauthenticated",
]
