"""
Endpoint bindings generated from the endpoint table.

Every row of ENDPOINTS becomes one async function here with the same
name, e.g. `await bindings.list_projects(client, filter={"user_id": 1})`.
Each one runs the same pipeline (build, dispatch, decode) through
APIClient.call and adds nothing of its own. `fetch` runs any of them by
name and keeps the whole Response, included resources and all.
"""

from typing import Any

from pydantic import BaseModel

from nanowrimo.core.client import APIClient
from nanowrimo.core.endpoints import ENDPOINTS, ENDPOINTS_BY_NAME, Endpoint
from nanowrimo.core.errors import InvalidParams
from nanowrimo.core.types import Response


def _api(client: Any) -> APIClient:
    """Accept an APIClient or anything holding one as `.api` (NanoClient)."""
    if isinstance(client, APIClient):
        return client
    api = getattr(client, "api", None)
    if isinstance(api, APIClient):
        return api
    raise TypeError(f"expected a NanoClient or APIClient, got {type(client).__name__}")


def merge_params(endpoint: Endpoint, params: Any, fields: dict[str, Any]) -> Any:
    """
    Combine a positional params value with keyword fields.

    Raises:
        InvalidParams: If keyword fields are mixed with a params model

    """
    if not fields:
        return params
    if params is None:
        return fields
    if isinstance(params, BaseModel):
        raise InvalidParams(f"{endpoint.name}: pass either a {type(params).__name__} or keyword fields, not both")
    return {**dict(params), **fields}


def _make_binding(endpoint: Endpoint):
    async def binding(client: Any, params: Any = None, /, **fields: Any) -> Any:
        return await _api(client).call(endpoint, merge_params(endpoint, params, fields))

    auth = "Requires a credential." if endpoint.requires_auth else "Works without a credential."
    binding.__name__ = endpoint.name
    binding.__qualname__ = endpoint.name
    binding.__doc__ = (
        f"{endpoint.doc}\n\n"
        f"{endpoint.method} {endpoint.path} with {endpoint.params.__name__}. {auth}\n"
    )
    binding.endpoint = endpoint
    return binding


BINDINGS: dict[str, Any] = {endpoint.name: _make_binding(endpoint) for endpoint in ENDPOINTS}

globals().update(BINDINGS)


async def fetch(client: Any, name: str, params: Any = None, /, **fields: Any) -> Response:
    """
    Call the endpoint called `name` and return the whole Response.

    Raises:
        InvalidParams: If no endpoint has that name

    """
    endpoint = ENDPOINTS_BY_NAME.get(name)
    if endpoint is None:
        raise InvalidParams(f"unknown endpoint {name!r}")
    return await _api(client).fetch(endpoint, merge_params(endpoint, params, fields))


__all__ = ["BINDINGS", "fetch", "merge_params", *BINDINGS]
