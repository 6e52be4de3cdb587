"""Tests for credential handling and the shared session."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from pydantic import SecretStr

from nanowrimo import NanoClient
from nanowrimo.core.errors import Unauthenticated
from nanowrimo.core.session import Credential, Session
from nanowrimo.core.settings import ClientSettings


class TestCredential:
    """Token value and expiry."""

    def test_raw_header_value(self) -> None:
        assert Credential("abc").header_value() == "abc"

    def test_scheme_prefix(self) -> None:
        assert Credential("abc", scheme="Bearer").header_value() == "Bearer abc"

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValueError):
            Credential("  ")

    def test_token_hidden_from_repr(self) -> None:
        assert "secret-token" not in repr(Credential("secret-token"))

    def test_expiry(self) -> None:
        now = datetime(2024, 11, 1, tzinfo=timezone.utc)
        credential = Credential("abc", expires_at=now + timedelta(hours=1))

        assert not credential.is_expired(now)
        assert credential.is_expired(now + timedelta(hours=1))
        assert not Credential("abc").is_expired(now)

    def test_naive_expiry_rejected(self) -> None:
        with pytest.raises(ValueError, match="timezone"):
            Credential("abc", expires_at=datetime(2024, 11, 1, 12, 0))


class TestSession:
    """Snapshot reads and atomic refresh."""

    def test_no_credential(self, settings: ClientSettings) -> None:
        session = Session(settings)

        assert not session.is_authenticated()
        assert session.snapshot() is None
        with pytest.raises(Unauthenticated):
            session.current_credential()

    def test_expired_credential(self, settings: ClientSettings) -> None:
        expired = Credential("abc", expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))
        session = Session(settings, expired)

        assert not session.is_authenticated()
        with pytest.raises(Unauthenticated) as exc_info:
            session.current_credential()
        assert "expired" in str(exc_info.value).lower()

    def test_refresh_and_clear(self, settings: ClientSettings) -> None:
        session = Session(settings)
        session.refresh(Credential("first"))

        assert session.current_credential().token == "first"
        session.clear()
        assert not session.is_authenticated()

    def test_snapshot_survives_refresh(self, settings: ClientSettings) -> None:
        session = Session(settings, Credential("old"))
        captured = session.current_credential()

        session.refresh(Credential("new"))

        assert captured.token == "old"
        assert session.current_credential().token == "new"

    def test_base_url_normalised(self, settings: ClientSettings) -> None:
        assert Session(settings, base_url="https://example.org/api").base_url == "https://example.org/api/"

    def test_repr_hides_token(self, settings: ClientSettings) -> None:
        session = Session(settings, Credential("secret-token"))
        assert "secret-token" not in repr(session)
        assert "authenticated=True" in repr(session)

    @pytest.mark.asyncio
    async def test_concurrent_refresh_keeps_one_submitted_value(self, settings: ClientSettings) -> None:
        session = Session(settings)
        submitted = [Credential(f"token-{i}", scheme="Bearer") for i in range(64)]

        await asyncio.gather(*(asyncio.to_thread(session.refresh, credential) for credential in submitted))

        final = session.current_credential()
        assert final in submitted
        assert final.header_value() == f"Bearer {final.token}"


class TestSessionInFlight:
    """A refresh or a cancellation never touches a request already under way."""

    @pytest.mark.asyncio
    async def test_refresh_during_request_keeps_old_header(self, settings: ClientSettings) -> None:
        started = asyncio.Event()
        release = asyncio.Event()
        seen: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Authorization"])
            started.set()
            await release.wait()
            return httpx.Response(200, json={"data": {"projects": []}})

        async with NanoClient(credential="old", settings=settings, transport=httpx.MockTransport(handler)) as client:
            in_flight = asyncio.create_task(client.list_projects())
            await started.wait()

            client.session.refresh(Credential("new"))
            release.set()

            assert await in_flight == []
            await client.list_projects()

        assert seen == ["old", "new"]

    @pytest.mark.asyncio
    async def test_cancelled_request_leaves_credential(self, settings: ClientSettings) -> None:
        started = asyncio.Event()

        async def hang(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.Event().wait()
            return httpx.Response(200, json={})

        credential = Credential("kept")
        async with NanoClient(credential=credential, settings=settings, transport=httpx.MockTransport(hang)) as client:
            task = asyncio.create_task(client.list_projects())
            await started.wait()
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

            assert client.session.current_credential() is credential
            assert client.is_logged_in()

    @pytest.mark.asyncio
    async def test_cancelled_login_installs_nothing(self, settings: ClientSettings) -> None:
        started = asyncio.Event()

        async def hang(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.Event().wait()
            return httpx.Response(200, json={"auth_token": "never"})

        with_login = settings.model_copy(update={"identifier": "writer", "password": SecretStr("pw")})
        credential = Credential("before-login")
        async with NanoClient(credential=credential, settings=with_login, transport=httpx.MockTransport(hang)) as client:
            task = asyncio.create_task(client.login())
            await started.wait()
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

            assert client.session.current_credential() is credential
