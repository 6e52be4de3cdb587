"""
Error taxonomy for the NaNoWriMo API client.

Every failure surfaces as a subclass of NanoError carrying enough context
(status code, field path, underlying cause) to be logged or acted on.
"""

from dataclasses import dataclass
from typing import Any


class NanoError(Exception):
    """Base error class for client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message, "type": type(self).__name__}
        if self.details:
            result["details"] = self.details
        return result


@dataclass(frozen=True)
class ErrorDetail:
    """One entry of a service-reported `errors` list."""

    code: int
    detail: str
    status: int
    title: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorDetail":
        """Create from API error entry, tolerating string-encoded numbers."""
        return cls(
            code=_as_int(data.get("code")),
            detail=str(data.get("detail") or ""),
            status=_as_int(data.get("status")),
            title=str(data.get("title") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": self.detail, "status": self.status, "title": self.title}


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


# =============================================================================
# HTTP status failures
# =============================================================================


class APIError(NanoError):
    """API error with status code and the service-provided error body."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        body: Any = None,
        errors: list[ErrorDetail] | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status = status
        self.body = body
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        if self.errors:
            result["errors"] = [e.to_dict() for e in self.errors]
        return result


class Unauthenticated(APIError):
    """No usable credential, or the service rejected it (401)."""


class Forbidden(APIError):
    """The credential is valid but not allowed to do this (403)."""


class NotFound(APIError):
    """The resource does not exist (404)."""


class RateLimited(APIError):
    """The service asked us to slow down (429).

    `retry_after` holds the service's hint in seconds when one was sent;
    backoff is the caller's decision.
    """

    def __init__(self, message: str, retry_after: float | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        return result


class ServiceError(APIError):
    """Server-side failure (5xx), unmapped status, or an error envelope."""


# =============================================================================
# Local failures
# =============================================================================


class TransportError(NanoError):
    """Network-level failure: refused connection, timeout, DNS, TLS."""

    def __init__(self, message: str, cause: BaseException | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.cause = cause


class InvalidParams(NanoError):
    """Endpoint parameters are missing or malformed; nothing was sent."""

    def __init__(self, reason: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(reason, {"errors": errors} if errors else None)
        self.reason = reason
        self.errors = errors or []


@dataclass(frozen=True)
class DecodeIssue:
    """A single location where a response failed to decode."""

    path: str
    expected: str
    actual: str
    message: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "expected": self.expected, "actual": self.actual, "message": self.message}


class DecodeError(NanoError):
    """Response JSON did not match the expected shape.

    `path` is the field trail to the first failure, e.g.
    `data.projects[2].goal`. All failures are kept in `issues`.
    """

    def __init__(self, issues: list[DecodeIssue]):
        if not issues:
            raise ValueError("DecodeError needs at least one issue")
        primary = issues[0]
        where = primary.path or "<root>"
        super().__init__(
            f"Error decoding response at {where}: expected {primary.expected}, got {primary.actual}",
            {"issues": [issue.to_dict() for issue in issues]},
        )
        self.issues = list(issues)
        self.path = primary.path
        self.expected = primary.expected
        self.actual = primary.actual

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["path"] = self.path
        result["expected"] = self.expected
        result["actual"] = self.actual
        return result
