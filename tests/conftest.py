"""Pytest configuration - loads .env for live tests, mock transport fixtures."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv

from nanowrimo import ClientSettings, Credential, NanoClient

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

BASE_URL = "https://api.test.invalid/"


class Recorder:
    """
    Mock transport that records every request and answers from a handler.

    The default handler returns `{}` with status 200. Tests replace it with
    `recorder.respond(...)` or by assigning `recorder.handler`.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, json={})
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def respond(
        self,
        status: int = 200,
        json_body: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if content is None:
            content = b"" if json_body is None else json.dumps(json_body).encode("utf-8")
        self.handler = lambda request: httpx.Response(status, content=content, headers=headers)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> ClientSettings:
    """Settings isolated from the environment and any .env file."""
    return ClientSettings(
        _env_file=None,
        base_url=BASE_URL,
        timeout_seconds=5,
        api_token=None,
        identifier=None,
        password=None,
        dns_resolver="system",
    )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest_asyncio.fixture
async def anon_client(settings: ClientSettings, recorder: Recorder):
    client = NanoClient(settings=settings, transport=recorder.transport)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def client(settings: ClientSettings, recorder: Recorder):
    client = NanoClient(credential=Credential("test-token"), settings=settings, transport=recorder.transport)
    yield client
    await client.aclose()
