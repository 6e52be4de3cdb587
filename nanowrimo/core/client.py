"""
Core HTTP client for the NaNoWriMo API.

Builds requests from endpoint descriptors, dispatches them over httpx,
maps HTTP status to the error taxonomy, and decodes bodies. Nothing here
retries: retry and backoff are the caller's decision.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from nanowrimo.core.decoder import decode, decode_response
from nanowrimo.core.endpoints import Endpoint, EndpointParams
from nanowrimo.core.errors import (
    APIError,
    DecodeError,
    ErrorDetail,
    Forbidden,
    NotFound,
    RateLimited,
    ServiceError,
    TransportError,
    Unauthenticated,
)
from nanowrimo.core.resolver import DnsResolver, ResolvingTransport
from nanowrimo.core.session import Session
from nanowrimo.core.types import Response

logger = logging.getLogger(__name__)

JSON_API_CONTENT_TYPE = "application/vnd.api+json"


@dataclass(frozen=True)
class Request:
    """A fully built request, ready to dispatch."""

    endpoint: str
    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict, repr=False)
    query: list[tuple[str, str]] = field(default_factory=list)
    body: dict[str, Any] | None = field(default=None, repr=False)


@dataclass(frozen=True)
class RawResponse:
    """A 2xx response body that has not been decoded yet."""

    status: int
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)
    latency_ms: float = 0.0


# =============================================================================
# Request building
# =============================================================================


class RequestBuilder:
    """Turns an endpoint descriptor plus params into a Request."""

    def __init__(self, session: Session):
        self.session = session

    def _render_path(self, endpoint: Endpoint, params: EndpointParams) -> str:
        values = {name: quote(str(getattr(params, name)), safe="") for name in endpoint.path_fields}
        return endpoint.path.format(**values)

    def build(self, endpoint: Endpoint, params: Any = None) -> Request:
        """
        Build a request for an endpoint.

        Args:
            endpoint: The endpoint descriptor
            params: Params instance or mapping of field values

        Returns:
            Request with path, query/body and auth header filled in

        Raises:
            InvalidParams: If params are missing or malformed
            Unauthenticated: If the endpoint needs auth and no credential is set

        """
        params = endpoint.coerce_params(params)

        headers: dict[str, str] = {}
        if endpoint.requires_auth:
            credential = self.session.current_credential()
        else:
            credential = self.session.snapshot()
        if credential is not None:
            headers[self.session.settings.auth_header] = credential.header_value()

        path = self._render_path(endpoint, params)
        if endpoint.method == "GET":
            return Request(endpoint.name, endpoint.method, path, headers, query=params.query(endpoint.path_fields))

        headers["Content-Type"] = JSON_API_CONTENT_TYPE
        return Request(endpoint.name, endpoint.method, path, headers, body=params.body(endpoint.path_fields))


# =============================================================================
# Status handling
# =============================================================================


def _parse_body(content: bytes) -> Any:
    if not content:
        return None
    try:
        return json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return content.decode("utf-8", errors="replace")


def _error_envelope(body: Any) -> tuple[str | None, list[ErrorDetail]]:
    """Extract the message and entries of `{"error": ...}` / `{"errors": [...]}`."""
    if not isinstance(body, dict):
        return None, []
    error_field = body.get("error")
    if isinstance(error_field, str):
        return error_field, []
    if isinstance(error_field, dict):
        return str(error_field.get("message") or error_field), []
    errors_field = body.get("errors")
    if isinstance(errors_field, list):
        errors = [ErrorDetail.from_dict(e) for e in errors_field if isinstance(e, dict)]
        if errors:
            first = errors[0]
            return first.detail or first.title or "Service reported an error", errors
        return "Service reported an error", []
    return None, []


def _retry_after(headers: httpx.Headers) -> float | None:
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def error_for_status(status: int, content: bytes, headers: httpx.Headers | None = None) -> APIError:
    """Map a non-2xx status and its body to the matching APIError subclass."""
    headers = headers or httpx.Headers()
    body = _parse_body(content)
    message, errors = _error_envelope(body)
    kwargs: dict[str, Any] = {"status": status, "body": body, "errors": errors}

    if status == 401:
        return Unauthenticated(message or "Unauthorized", **kwargs)
    if status == 403:
        return Forbidden(message or "Forbidden", **kwargs)
    if status == 404:
        return NotFound(message or "Page Not Found", **kwargs)
    if status == 429:
        return RateLimited(message or "Too Many Requests", retry_after=_retry_after(headers), **kwargs)
    if status >= 500:
        return ServiceError(message or "Internal Server Error", **kwargs)
    return ServiceError(message or f"Unexpected status {status}", **kwargs)


# =============================================================================
# Dispatch
# =============================================================================


class APIClient:
    """
    Low-level async HTTP client for the NaNoWriMo API.

    Handles:
    - Auth header attachment from the shared Session
    - Dispatch with a whole-request timeout
    - Status mapping and service error envelopes
    - Path-aware decoding into domain types
    """

    def __init__(
        self,
        session: Session,
        transport: httpx.AsyncBaseTransport | None = None,
        resolver: DnsResolver | None = None,
    ):
        """
        Initialize the API client.

        Args:
            session: Shared session holding settings and the credential
            transport: Custom httpx transport (tests use httpx.MockTransport)
            resolver: Alternate DNS resolver; defaults to the one the settings ask for.
                When set, it wraps `transport` and resolves hosts before it sees them.

        """
        self.session = session
        self.builder = RequestBuilder(session)
        settings = session.settings

        resolver = resolver or DnsResolver.from_settings(settings)
        if resolver is not None:
            transport = ResolvingTransport(resolver, transport)

        self._http = httpx.AsyncClient(
            base_url=session.base_url,
            timeout=httpx.Timeout(settings.timeout_seconds),
            headers={"User-Agent": settings.user_agent, "Accept": JSON_API_CONTENT_TYPE},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def build(self, endpoint: Endpoint, params: Any = None) -> Request:
        return self.builder.build(endpoint, params)

    async def _send(self, request: Request) -> httpx.Response:
        return await self._http.request(
            request.method,
            request.path,
            params=request.query or None,
            content=json.dumps(request.body).encode("utf-8") if request.body is not None else None,
            headers=request.headers,
        )

    async def dispatch(self, request: Request) -> RawResponse:
        """
        Send a request and return its raw 2xx response.

        Raises:
            TransportError: On connection, DNS, TLS, body decoding or redirect failures,
                or timeout
            APIError: On non-2xx status or a service error envelope

        """
        timeout = self.session.settings.timeout_seconds
        trace = {"endpoint": request.endpoint, "method": request.method, "path": request.path}
        start = time.perf_counter()

        try:
            response = await asyncio.wait_for(self._send(request), timeout=timeout)
        except asyncio.TimeoutError as exc:
            latency_ms = round((time.perf_counter() - start) * 1000, 1)
            logger.warning("nanowrimo_transport_error", extra={**trace, "error_type": "timeout", "latency_ms": latency_ms})
            raise TransportError(f"Request timed out after {timeout} seconds", cause=exc) from exc
        except httpx.RequestError as exc:
            latency_ms = round((time.perf_counter() - start) * 1000, 1)
            logger.warning(
                "nanowrimo_transport_error",
                extra={**trace, "error_type": type(exc).__name__, "latency_ms": latency_ms},
            )
            label = "Connection error" if isinstance(exc, httpx.TransportError) else "Request failed"
            raise TransportError(f"{label}: {exc}", cause=exc) from exc

        latency_ms = round((time.perf_counter() - start) * 1000, 1)
        status = response.status_code
        logger.debug("nanowrimo_request", extra={**trace, "status": status, "latency_ms": latency_ms})

        if not 200 <= status < 300:
            error = error_for_status(status, response.content, response.headers)
            logger.info(
                "nanowrimo_status_error",
                extra={"endpoint": request.endpoint, "status": status, "error_class": type(error).__name__},
            )
            raise error

        body = _parse_body(response.content)
        message, errors = _error_envelope(body)
        if message is not None:
            logger.info(
                "nanowrimo_status_error",
                extra={"endpoint": request.endpoint, "status": status, "error_class": "ServiceError"},
            )
            raise ServiceError(message, status=status, body=body, errors=errors)

        return RawResponse(status, response.content, dict(response.headers), latency_ms)

    async def _run(self, endpoint: Endpoint, params: Any, decoder: Any) -> Any:
        request = self.build(endpoint, params)
        raw = await self.dispatch(request)
        try:
            return decoder(endpoint.response, raw.content)
        except DecodeError as exc:
            logger.error(
                "nanowrimo_decode_error",
                extra={
                    "endpoint": endpoint.name,
                    "decode_path": exc.path,
                    "expected": exc.expected,
                    "actual": exc.actual,
                },
            )
            raise

    async def call(self, endpoint: Endpoint, params: Any = None) -> Any:
        """
        Run the full pipeline for one endpoint: build, dispatch, decode.

        Args:
            endpoint: The endpoint descriptor
            params: Params instance or mapping of field values

        Returns:
            The decoded domain value (entity, list of entities, or None)

        """
        return await self._run(endpoint, params, decode)

    async def fetch(self, endpoint: Endpoint, params: Any = None) -> Response:
        """Like call, but return the whole Response including `included` resources."""
        return await self._run(endpoint, params, decode_response)
