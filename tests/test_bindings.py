"""Tests for the generated bindings and the high-level client."""

import json
import logging

import httpx
import pytest
from pydantic import SecretStr

from nanowrimo import NanoClient, NanoKind, Response, bindings
from nanowrimo.core.decoder import decode_as
from nanowrimo.core.endpoints import ENDPOINTS, ENDPOINTS_BY_NAME, IdParams
from nanowrimo.core.errors import InvalidParams, Unauthenticated
from nanowrimo.core.session import Credential
from nanowrimo.core.types import Fundometer, Project, User


class TestGeneratedBindings:
    """One binding per endpoint row, each running the shared pipeline."""

    def test_every_endpoint_has_a_binding(self) -> None:
        for endpoint in ENDPOINTS:
            binding = getattr(bindings, endpoint.name)
            assert binding.endpoint is endpoint
            assert binding.__name__ == endpoint.name
            assert endpoint.path in binding.__doc__

    def test_every_endpoint_is_a_client_method(self) -> None:
        for endpoint in ENDPOINTS:
            method = getattr(NanoClient, endpoint.name)
            assert method.endpoint is endpoint

    def test_endpoint_names_are_unique(self) -> None:
        assert len(ENDPOINTS_BY_NAME) == len(ENDPOINTS)

    def test_endpoint_path_fields(self) -> None:
        assert ENDPOINTS_BY_NAME["daily_aggregates"].path_fields == {"id"}
        assert ENDPOINTS_BY_NAME["fundometer"].path_fields == frozenset()

    @pytest.mark.asyncio
    async def test_module_binding(self, client, recorder) -> None:
        recorder.respond(200, {"goal": 1000, "raised": 12.5, "donorCount": 3})

        result = await bindings.fundometer(client)

        assert result == Fundometer(goal=1000, raised=12.5, donor_count=3)

    @pytest.mark.asyncio
    async def test_binding_accepts_api_client(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"badges": []}})
        assert await bindings.list_badges(client.api) == []

    @pytest.mark.asyncio
    async def test_params_model(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"challenge": {"id": 2, "name": "Camp", "starts-at": "2025-04-01",
                                                      "ends-at": "2025-04-30", "default-goal": 30000,
                                                      "unit-type": 0}}})

        challenge = await client.get_challenge(IdParams(id=2))

        assert challenge.name == "Camp"
        assert recorder.last.url.path == "/challenges/2"

    @pytest.mark.asyncio
    async def test_params_model_and_fields_rejected(self, client, recorder) -> None:
        with pytest.raises(InvalidParams):
            await client.get_challenge(IdParams(id=2), id=3)
        assert recorder.calls == 0

    @pytest.mark.asyncio
    async def test_mapping_merged_with_fields(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"user": {"id": 1, "name": "Ada", "slug": "ada"}}})

        user = await client.get_user({"slug": "ada"}, include=["projects"])

        assert isinstance(user, User)
        assert recorder.last.url.params["include"] == "projects"

    def test_rejects_other_clients(self) -> None:
        with pytest.raises(TypeError):
            bindings._api(object())


class TestNanoClient:
    """Construction, login and logout."""

    def test_token_string_becomes_credential(self, settings, recorder) -> None:
        client = NanoClient(credential="abc", settings=settings, transport=recorder.transport)
        assert client.is_logged_in()
        assert client.session.current_credential() == Credential("abc")

    def test_token_from_settings(self, settings, recorder) -> None:
        configured = settings.model_copy(update={"api_token": SecretStr("from-env")})
        client = NanoClient(settings=configured, transport=recorder.transport)
        assert client.session.current_credential().token == "from-env"

    def test_new_anon_ignores_configured_token(self, settings, recorder) -> None:
        configured = settings.model_copy(update={"api_token": SecretStr("from-env")})
        client = NanoClient.new_anon(settings=configured, transport=recorder.transport)
        assert not client.is_logged_in()

    def test_constructor_overrides(self, settings, recorder) -> None:
        client = NanoClient("https://staging.test.invalid", settings=settings, timeout=3, user_agent="tests/1.0",
                            transport=recorder.transport)

        assert client.settings.base_url == "https://staging.test.invalid/"
        assert client.settings.timeout_seconds == 3
        assert client.settings.user_agent == "tests/1.0"
        assert client.session.base_url == "https://staging.test.invalid/"

    @pytest.mark.asyncio
    async def test_login_without_credentials(self, anon_client, recorder) -> None:
        with pytest.raises(Unauthenticated):
            await anon_client.login()
        assert recorder.calls == 0

    @pytest.mark.asyncio
    async def test_new_user_logs_in(self, settings, recorder) -> None:
        recorder.respond(200, {"auth_token": "fresh-token"})

        async with await NanoClient.new_user("ada", "hunter2", settings=settings, transport=recorder.transport) as client:
            assert client.is_logged_in()
            assert client.session.current_credential().token == "fresh-token"

        request = recorder.last
        assert request.url.path == "/users/sign_in"
        assert json.loads(request.content) == {"identifier": "ada", "password": "hunter2"}
        assert "Authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_new_user_rejected(self, settings, recorder) -> None:
        recorder.respond(401, {"error": "Invalid credentials"})

        with pytest.raises(Unauthenticated) as exc_info:
            await NanoClient.new_user("ada", "wrong", settings=settings, transport=recorder.transport)

        assert exc_info.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_login_then_authenticated_call_then_logout(self, settings, recorder) -> None:
        responses = {
            "/users/sign_in": {"auth_token": "tok-1"},
            "/users/current": {"data": {"user": {"id": 1, "name": "Ada", "slug": "ada"}}},
            "/users/logout": None,
        }

        def route(request: httpx.Request) -> httpx.Response:
            body = responses[request.url.path]
            return httpx.Response(200, json=body) if body is not None else httpx.Response(204)

        recorder.handler = route

        async with NanoClient(identifier="ada", password="pw", settings=settings, transport=recorder.transport) as client:
            await client.login()
            me = await client.current_user()
            await client.logout()

            assert me.slug == "ada"
            assert not client.is_logged_in()

        paths = [r.url.path for r in recorder.requests]
        assert paths == ["/users/sign_in", "/users/current", "/users/logout"]
        assert recorder.requests[1].headers["Authorization"] == "tok-1"
        assert recorder.requests[2].headers["Authorization"] == "tok-1"

    @pytest.mark.asyncio
    async def test_password_not_logged(self, settings, recorder, caplog) -> None:
        recorder.respond(200, {"auth_token": "tok-1"})

        with caplog.at_level(logging.DEBUG, logger="nanowrimo"):
            async with NanoClient(
                identifier="ada", password="pw-secret", settings=settings, transport=recorder.transport
            ) as client:
                await client.login()

        assert "pw-secret" not in caplog.text
        assert "tok-1" not in caplog.text
        assert "pw-secret" not in repr(client.settings)


ADA = {
    "id": "5",
    "name": "Ada",
    "slug": "ada",
    "relationships": {
        "projects": {
            "links": {"self": "/users/ada/relationships/projects", "related": "/users/ada/projects"},
            "data": [{"type": "projects", "id": "11"}],
        },
    },
}
NOVEL = {
    "id": "11",
    "title": "Novel",
    "relationships": {
        "user": {"links": {"self": "/projects/11/relationships/user", "related": "/projects/11/user"}},
    },
}


class TestFullResponses:
    """fetch, by-kind queries and relation links return the whole Response."""

    @pytest.mark.asyncio
    async def test_fetch_keeps_included(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"user": ADA}, "included": [{"type": "projects", **NOVEL}]})

        response = await client.fetch("get_user", slug="ada", include=[NanoKind.PROJECT])

        assert isinstance(response, Response)
        assert response.data.slug == "ada"
        (novel,) = response.related(response.data, NanoKind.PROJECT)
        assert novel.title == "Novel"
        assert recorder.last.url.path == "/users/ada"
        assert recorder.last.url.params["include"] == "projects"

    @pytest.mark.asyncio
    async def test_module_fetch(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"badges": []}})

        response = await bindings.fetch(client.api, "list_badges")

        assert response.data == []
        assert response.included == ()

    @pytest.mark.asyncio
    async def test_fetch_unknown_name(self, client, recorder) -> None:
        with pytest.raises(InvalidParams, match="unknown endpoint"):
            await client.fetch("get_everything")
        assert recorder.calls == 0

    @pytest.mark.asyncio
    async def test_get_all(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"projects": [NOVEL]}})

        response = await client.get_all(NanoKind.PROJECT, include=[NanoKind.USER], filter={"user_id": 5})

        assert [p.id for p in response.data] == [11]
        assert recorder.last.url.path == "/projects"
        assert recorder.last.url.params["filter[user_id]"] == "5"
        assert recorder.last.url.params["include"] == "users"

    @pytest.mark.asyncio
    async def test_get_all_without_model(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"genres": [{"id": 3, "type": "genres", "name": "Fantasy"}]}})

        response = await client.get_all(NanoKind.GENRE)

        assert response.data[0].attributes == {"name": "Fantasy"}
        assert recorder.last.url.path == "/genres"

    @pytest.mark.asyncio
    async def test_get_id(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"project": NOVEL}})

        response = await client.get_id(NanoKind.PROJECT, 11)

        assert response.data.title == "Novel"
        assert recorder.last.url.path == "/projects/11"

    @pytest.mark.asyncio
    async def test_get_id_rejects_bad_id(self, client, recorder) -> None:
        with pytest.raises(InvalidParams):
            await client.get_id(NanoKind.PROJECT, 0)
        assert recorder.calls == 0

    @pytest.mark.asyncio
    async def test_get_slug(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"group": {"id": 8, "name": "Paris", "slug": "paris", "group-type": "region"}}})

        response = await client.get_slug(NanoKind.GROUP, "paris")

        assert response.data.slug == "paris"
        assert recorder.last.url.path == "/groups/paris"

    @pytest.mark.asyncio
    async def test_get_all_related(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"user": ADA}})
        ada = (await client.fetch("get_user", slug="ada")).data
        recorder.respond(200, {"data": {"projects": [NOVEL]}})

        response = await client.get_all_related(ada, NanoKind.PROJECT)

        assert response.data[0].title == "Novel"
        assert recorder.last.url.path == "/users/ada/projects"
        assert recorder.last.headers["Authorization"] == "test-token"

    @pytest.mark.asyncio
    async def test_get_unique_related(self, client, recorder) -> None:
        recorder.respond(200, {"data": {"project": NOVEL}})
        novel = await client.get_project(id=11)
        recorder.respond(200, {"data": {"user": ADA}})

        response = await client.get_unique_related(novel, NanoKind.USER)

        assert response.data.name == "Ada"
        assert recorder.last.url.path == "/projects/11/user"

    @pytest.mark.asyncio
    async def test_related_needs_matching_link(self, client, recorder) -> None:
        novel = decode_as(Project, json.dumps(NOVEL))

        with pytest.raises(InvalidParams, match="no 'users' relation link"):
            await client.get_all_related(novel, NanoKind.USER)
        with pytest.raises(InvalidParams):
            await client.get_unique_related(Project(id=1, title="Bare"), NanoKind.USER)
        assert recorder.calls == 0
