"""
Credential and session state.

The credential is the only mutable state shared between concurrent
requests. Reads take a snapshot of the current reference without locking;
refresh swaps the reference under a lock held only for the assignment, so
requests already in flight keep the snapshot they captured.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from nanowrimo.core.errors import Unauthenticated
from nanowrimo.core.settings import ClientSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """An opaque token plus optional expiry."""

    token: str = field(repr=False)
    scheme: str = ""
    expires_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.token or not self.token.strip():
            raise ValueError("credential token must not be empty")
        if self.expires_at is not None and self.expires_at.tzinfo is None:
            raise ValueError("credential expires_at must be timezone-aware")

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def header_value(self) -> str:
        """Value for the auth header, e.g. `Bearer abc` or just `abc`."""
        if self.scheme:
            return f"{self.scheme} {self.token}"
        return self.token


class Session:
    """
    Live context shared by every request from one client instance.

    Holds the base URL, the settings, and the current credential. Entities
    never hold a reference back to it.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        credential: Credential | None = None,
        base_url: str | None = None,
    ):
        self.settings = settings or ClientSettings()
        self.base_url = (base_url or self.settings.base_url).rstrip("/") + "/"
        self._credential = credential
        self._swap_lock = threading.Lock()

    def current_credential(self) -> Credential:
        """
        Snapshot of the current credential. Never blocks on I/O.

        Raises:
            Unauthenticated: If no credential is set or it has expired

        """
        credential = self._credential
        if credential is None:
            raise Unauthenticated("No credential set; log in or provide an API token first")
        if credential.is_expired():
            raise Unauthenticated(
                "Credential expired",
                details={"expired_at": credential.expires_at.isoformat() if credential.expires_at else None},
            )
        return credential

    def refresh(self, new: Credential) -> None:
        """Atomically replace the credential."""
        with self._swap_lock:
            self._credential = new
        logger.info(
            "nanowrimo_credential_refreshed",
            extra={
                "scheme": new.scheme or "raw",
                "expires_at": new.expires_at.isoformat() if new.expires_at else None,
            },
        )

    def clear(self) -> None:
        """Drop the credential, returning the session to anonymous."""
        with self._swap_lock:
            self._credential = None

    def snapshot(self) -> Credential | None:
        """The current credential if it is usable, else None."""
        credential = self._credential
        if credential is None or credential.is_expired():
            return None
        return credential

    def is_authenticated(self) -> bool:
        return self.snapshot() is not None

    def __repr__(self) -> str:
        return f"Session(base_url={self.base_url!r}, authenticated={self.is_authenticated()})"
