"""
NaNoWriMo SDK - High-level client.

One constructor, login/logout helpers, and every endpoint binding as an
async method. Built on top of the core APIClient.
"""

from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from nanowrimo.bindings import BINDINGS, merge_params
from nanowrimo.bindings import fetch as fetch_by_name
from nanowrimo.core.client import APIClient
from nanowrimo.core.endpoints import ENDPOINTS_BY_NAME, LoginParams, kind_endpoint, related_endpoint
from nanowrimo.core.enums import NanoKind
from nanowrimo.core.errors import InvalidParams, Unauthenticated
from nanowrimo.core.resolver import DnsResolver
from nanowrimo.core.session import Credential, Session
from nanowrimo.core.settings import ClientSettings
from nanowrimo.core.types import NanoObject, RelationLink, Response


class NanoClient:
    """
    High-level NaNoWriMo API client.

    Example:
        async with await NanoClient.new_user("writer@example.com", "secret") as client:
            me = await client.current_user()
            projects = await client.list_projects(filter={"user_id": me.id})

        # Public data needs no credential
        async with NanoClient.new_anon() as client:
            fund = await client.fundometer()

    """

    def __init__(
        self,
        base_url: str | None = None,
        credential: Credential | str | None = None,
        *,
        identifier: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        resolver: DnsResolver | None = None,
        settings: ClientSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root URL (or NANOWRIMO_BASE_URL env var)
            credential: Credential or raw token (or NANOWRIMO_API_TOKEN env var)
            identifier: Username or email for login() (or NANOWRIMO_IDENTIFIER)
            password: Password for login() (or NANOWRIMO_PASSWORD)
            timeout: Whole-request timeout in seconds
            user_agent: User-Agent header value
            resolver: Alternate DNS resolver; defaults to the one the settings ask for
            settings: Base settings; loaded from the environment when omitted
            transport: Custom httpx transport (tests use httpx.MockTransport)

        """
        settings = settings or ClientSettings()
        overrides: dict[str, Any] = {
            "base_url": base_url,
            "identifier": identifier,
            "password": password,
            "timeout_seconds": timeout,
            "user_agent": user_agent,
        }
        overrides = {key: value for key, value in overrides.items() if value is not None}
        if overrides:
            settings = ClientSettings(**{**settings.model_dump(), **overrides})
        self.settings = settings

        if isinstance(credential, str):
            credential = Credential(credential, scheme=settings.auth_scheme)
        elif credential is None and settings.api_token is not None:
            credential = Credential(settings.api_token.get_secret_value(), scheme=settings.auth_scheme)

        self.session = Session(settings, credential)
        self.api = APIClient(self.session, transport=transport, resolver=resolver)

    @classmethod
    def new_anon(cls, **kwargs: Any) -> "NanoClient":
        """Create a client with no credential, for public endpoints."""
        client = cls(credential=None, **kwargs)
        client.session.clear()
        return client

    @classmethod
    async def new_user(cls, identifier: str, password: str, **kwargs: Any) -> "NanoClient":
        """
        Create a client and log in with the given identifier and password.

        Raises:
            Unauthenticated: If the service rejects the login

        """
        client = cls(identifier=identifier, password=password, **kwargs)
        try:
            await client.login()
        except BaseException:
            await client.aclose()
            raise
        return client

    async def login(self) -> Credential:
        """
        Exchange the stored identifier and password for a token.

        Returns:
            The new credential, already installed in the session

        Raises:
            Unauthenticated: If no identifier/password is configured or they are rejected

        """
        if not self.settings.identifier or self.settings.password is None:
            raise Unauthenticated("No credentials available; set identifier and password to log in")
        params = LoginParams(identifier=self.settings.identifier, password=self.settings.password)
        response = await self.api.call(ENDPOINTS_BY_NAME["sign_in"], params)
        credential = Credential(response.auth_token, scheme=self.settings.auth_scheme)
        self.session.refresh(credential)
        return credential

    async def logout(self) -> None:
        """Invalidate the token on the service and drop it locally."""
        await self.api.call(ENDPOINTS_BY_NAME["sign_out"])
        self.session.clear()

    def is_logged_in(self) -> bool:
        return self.session.is_authenticated()

    # =========================================================================
    # Full responses
    # =========================================================================

    async def fetch(self, name: str, params: Any = None, /, **fields: Any) -> Response:
        """
        Call an endpoint by name and keep the whole response.

        Example:
            response = await client.fetch("get_user", slug="jane", include=[NanoKind.PROJECT])
            projects = response.related(response.data, NanoKind.PROJECT)

        Raises:
            InvalidParams: If no endpoint has that name

        """
        return await fetch_by_name(self, name, params, **fields)

    async def get_all(
        self,
        kind: NanoKind,
        *,
        include: Iterable[NanoKind] = (),
        filter: Mapping[str, int] | None = None,
    ) -> Response:
        """
        Get every accessible resource of a kind.

        Args:
            kind: Kind to list
            include: Related kinds to embed in `included`
            filter: Related-ID filters such as {"user_id": 1}; many combinations are rejected

        """
        params = {"include": tuple(include), "filter": dict(filter or {})}
        return await self.api.fetch(kind_endpoint(kind, "all"), params)

    async def get_id(self, kind: NanoKind, id: int, *, include: Iterable[NanoKind] = ()) -> Response:
        """Get one resource of a kind by its ID."""
        return await self.api.fetch(kind_endpoint(kind, "id"), {"id": id, "include": tuple(include)})

    async def get_slug(self, kind: NanoKind, slug: str, *, include: Iterable[NanoKind] = ()) -> Response:
        """Get one resource of a kind by its slug. Only some kinds have slugs."""
        return await self.api.fetch(kind_endpoint(kind, "slug"), {"slug": slug, "include": tuple(include)})

    async def get_all_related(self, obj: NanoObject, kind: NanoKind) -> Response:
        """
        Follow a list relation of an object, e.g. the projects of a user.

        Some relation links answer 404 on the service; asking for the kind
        with `include` up front is more reliable.

        Raises:
            InvalidParams: If the object has no list relation to that kind

        """
        return await self.api.fetch(related_endpoint(kind, _relation_link(obj, kind, many=True), many=True))

    async def get_unique_related(self, obj: NanoObject, kind: NanoKind) -> Response:
        """
        Follow a single relation of an object, e.g. the user owning a project.

        Raises:
            InvalidParams: If the object has no single relation to that kind

        """
        return await self.api.fetch(related_endpoint(kind, _relation_link(obj, kind, many=False), many=False))

    async def aclose(self) -> None:
        await self.api.aclose()

    async def __aenter__(self) -> "NanoClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"NanoClient({self.session!r})"


def _relation_link(obj: NanoObject, kind: NanoKind, many: bool) -> RelationLink:
    link = obj.relationships.link(kind, many=many) if obj.relationships else None
    if link is None:
        wanted = kind.api_name if many else kind.unique_name
        raise InvalidParams(f"{obj.type} {obj.id} has no {wanted!r} relation link")
    return link


def _method_for(name: str, binding: Any):
    endpoint = binding.endpoint

    async def method(self: NanoClient, params: Any = None, /, **fields: Any) -> Any:
        return await self.api.call(endpoint, merge_params(endpoint, params, fields))

    method.__name__ = name
    method.__qualname__ = f"NanoClient.{name}"
    method.__doc__ = binding.__doc__
    method.endpoint = endpoint
    return method


for _name, _binding in BINDINGS.items():
    setattr(NanoClient, _name, _method_for(_name, _binding))
del _name, _binding
