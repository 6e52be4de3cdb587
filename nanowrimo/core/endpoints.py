"""
Endpoint descriptors and the table of every remote operation.

Each Endpoint is static: method, path template, whether it needs auth,
the params type it accepts and the shape of its response. Bindings are
generated from ENDPOINTS, so adding an operation means adding a row here.
"""

import dataclasses
import functools
import string
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, PositiveInt, SecretStr, ValidationError, model_validator

from nanowrimo.core.decoder import ResponseShape
from nanowrimo.core.enums import Feeling, How, NanoKind, UnitType, Where
from nanowrimo.core.errors import InvalidParams
from nanowrimo.core.types import (
    Badge,
    Challenge,
    DailyAggregate,
    Fundometer,
    Group,
    LoginResponse,
    Notification,
    Page,
    Post,
    Project,
    ProjectChallenge,
    ProjectSession,
    RelationLink,
    StoreItem,
    User,
    UserBadge,
    model_for,
)

# =============================================================================
# Params
# =============================================================================


class EndpointParams(BaseModel):
    """Base for per-endpoint parameters.

    GET endpoints send non-path fields as query items; other methods send
    them as the JSON body. Unknown fields are rejected.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    def query(self, exclude: frozenset[str] = frozenset()) -> list[tuple[str, str]]:
        """Query items: lists are comma-joined, dicts become `name[key]=value`."""
        items: list[tuple[str, str]] = []
        for name, value in self.model_dump(mode="json", exclude=set(exclude), exclude_none=True).items():
            if isinstance(value, list):
                if value:
                    items.append((name, ",".join(str(v) for v in value)))
            elif isinstance(value, dict):
                for key, inner in value.items():
                    items.append((f"{name}[{key}]", str(inner)))
            elif isinstance(value, bool):
                items.append((name, "true" if value else "false"))
            else:
                items.append((name, str(value)))
        return items

    def body(self, exclude: frozenset[str] = frozenset()) -> dict[str, Any] | None:
        data = self.model_dump(mode="json", exclude=set(exclude), exclude_none=True)
        return data or None


class NoParams(EndpointParams):
    pass


class IdParams(EndpointParams):
    id: PositiveInt


class SlugParams(EndpointParams):
    slug: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class IncludeParams(EndpointParams):
    """`include` asks the service to embed related resources."""

    include: tuple[NanoKind, ...] = ()


class IdIncludeParams(IdParams, IncludeParams):
    pass


class SlugIncludeParams(SlugParams, IncludeParams):
    pass


class ListParams(IncludeParams):
    """
    Collection query with related-ID filters.

    Many filter combinations are rejected by the service; `user_id` is the
    one that reliably works.
    """

    filter: dict[str, PositiveInt] = Field(default_factory=dict)


class SearchParams(EndpointParams):
    q: str = Field(..., min_length=1)


class LoginParams(EndpointParams):
    identifier: str = Field(..., min_length=1)
    password: SecretStr

    def body(self, exclude: frozenset[str] = frozenset()) -> dict[str, Any]:
        return {"identifier": self.identifier, "password": self.password.get_secret_value()}


class ProjectSessionParams(EndpointParams):
    """A writing session to log against a project goal.

    `count` is the number of units written in this session, not the new
    total; compute the difference from the goal's current count first.
    """

    project_id: PositiveInt
    project_challenge_id: PositiveInt
    count: int
    unit_type: UnitType = UnitType.WORDS
    session_date: date | None = None
    start: AwareDatetime | None = None
    end: AwareDatetime | None = None
    feeling: Feeling | None = None
    how: How | None = None
    where: Where | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "ProjectSessionParams":
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError("end must not be before start")
        return self

    def body(self, exclude: frozenset[str] = frozenset()) -> dict[str, Any]:
        attributes = self.model_dump(
            mode="json",
            exclude={"project_id", "project_challenge_id"} | set(exclude),
            exclude_none=True,
        )
        return {
            "data": {
                "type": NanoKind.PROJECT_SESSION.api_name,
                "attributes": {k.replace("_", "-"): v for k, v in attributes.items()},
                "relationships": {
                    NanoKind.PROJECT.unique_name: {
                        "data": {"type": NanoKind.PROJECT.api_name, "id": str(self.project_id)},
                    },
                    NanoKind.PROJECT_CHALLENGE.unique_name: {
                        "data": {"type": NanoKind.PROJECT_CHALLENGE.api_name, "id": str(self.project_challenge_id)},
                    },
                },
            }
        }


def _pydantic_reason(exc: ValidationError) -> tuple[str, list[dict[str, Any]]]:
    errors = [
        {"field": ".".join(str(p) for p in e["loc"]) or "<params>", "message": e["msg"], "type": e["type"]}
        for e in exc.errors(include_url=False, include_input=False)
    ]
    first = errors[0]
    return f"{first['field']}: {first['message']}", errors


# =============================================================================
# Descriptors
# =============================================================================


def collection(kind: NanoKind, payload: Any) -> ResponseShape:
    """Shape of `{"data": {"<kinds>": [...]}}`."""
    return ResponseShape(list[payload], ("data", kind.api_name))


def item(kind: NanoKind, payload: Any) -> ResponseShape:
    """Shape of `{"data": {"<kind>": {...}}}`."""
    return ResponseShape(payload, ("data", kind.unique_name))


@dataclass(frozen=True)
class Endpoint:
    """Static definition of one remote operation."""

    name: str
    method: str
    path: str
    response: ResponseShape
    params: type[EndpointParams] = NoParams
    requires_auth: bool = True
    doc: str = ""

    def __post_init__(self) -> None:
        missing = self.path_fields - set(self.params.model_fields)
        if missing:
            raise ValueError(f"{self.name}: path fields {sorted(missing)} not in {self.params.__name__}")

    @property
    def path_fields(self) -> frozenset[str]:
        return frozenset(name for _, name, _, _ in string.Formatter().parse(self.path) if name)

    def coerce_params(self, params: Any = None) -> EndpointParams:
        """Validate caller input into this endpoint's params type.

        Raises:
            InvalidParams: If a field is missing, unknown or malformed

        """
        if isinstance(params, self.params):
            return params
        if params is None:
            params = {}
        elif isinstance(params, BaseModel):
            params = params.model_dump()
        elif not isinstance(params, Mapping):
            raise InvalidParams(f"{self.name} expects a mapping or {self.params.__name__}, got {type(params).__name__}")
        try:
            return self.params.model_validate(dict(params))
        except ValidationError as exc:
            reason, errors = _pydantic_reason(exc)
            raise InvalidParams(f"{self.name}: {reason}", errors) from exc


ENDPOINTS: tuple[Endpoint, ...] = (
    # Session
    Endpoint(
        "sign_in",
        "POST",
        "users/sign_in",
        ResponseShape(LoginResponse),
        params=LoginParams,
        requires_auth=False,
        doc="Exchange identifier and password for an auth token.",
    ),
    Endpoint(
        "sign_out",
        "POST",
        "users/logout",
        ResponseShape(None),
        doc="Invalidate the current auth token on the service.",
    ),
    # Public site data
    Endpoint(
        "fundometer",
        "GET",
        "fundometer",
        ResponseShape(Fundometer),
        requires_auth=False,
        doc="Get current fundraising progress.",
    ),
    Endpoint(
        "store_items",
        "GET",
        "store_items",
        ResponseShape(list[StoreItem]),
        requires_auth=False,
        doc="List all store items.",
    ),
    Endpoint(
        "random_offer",
        "GET",
        "random_offer",
        item(NanoKind.POST, Post),
        requires_auth=False,
        doc="Get a random sponsor offer.",
    ),
    Endpoint(
        "offers",
        "GET",
        "offers",
        collection(NanoKind.POST, Post),
        requires_auth=False,
        doc="List current sponsor offers.",
    ),
    Endpoint(
        "get_page",
        "GET",
        "pages/{slug}",
        item(NanoKind.PAGE, Page),
        params=SlugParams,
        requires_auth=False,
        doc="Get a content page, e.g. 'pep-talks' or 'nano-prep-101'.",
    ),
    # Users
    Endpoint(
        "search_users",
        "GET",
        "search",
        collection(NanoKind.USER, User),
        params=SearchParams,
        doc="Search users by name.",
    ),
    Endpoint(
        "current_user",
        "GET",
        "users/current",
        item(NanoKind.USER, User),
        params=IncludeParams,
        doc="Get the logged-in user.",
    ),
    Endpoint(
        "get_user",
        "GET",
        "users/{slug}",
        item(NanoKind.USER, User),
        params=SlugIncludeParams,
        doc="Get a user by slug.",
    ),
    Endpoint(
        "list_notifications",
        "GET",
        "notifications",
        collection(NanoKind.NOTIFICATION, Notification),
        doc="List notifications for the logged-in user.",
    ),
    # Challenges
    Endpoint(
        "available_challenges",
        "GET",
        "challenges/available",
        collection(NanoKind.CHALLENGE, Challenge),
        doc="List challenges the logged-in user can join.",
    ),
    Endpoint(
        "get_challenge",
        "GET",
        "challenges/{id}",
        item(NanoKind.CHALLENGE, Challenge),
        params=IdParams,
        doc="Get a challenge by ID.",
    ),
    # Projects and goals
    Endpoint(
        "list_projects",
        "GET",
        "projects",
        collection(NanoKind.PROJECT, Project),
        params=ListParams,
        doc="List projects, usually filtered with filter={'user_id': ...}.",
    ),
    Endpoint(
        "get_project",
        "GET",
        "projects/{id}",
        item(NanoKind.PROJECT, Project),
        params=IdIncludeParams,
        doc="Get a project by ID.",
    ),
    Endpoint(
        "list_project_challenges",
        "GET",
        "projects/{id}/project-challenges",
        collection(NanoKind.PROJECT_CHALLENGE, ProjectChallenge),
        params=IdParams,
        doc="List the goals a project has taken part in.",
    ),
    Endpoint(
        "daily_aggregates",
        "GET",
        "project-challenges/{id}/daily-aggregates",
        collection(NanoKind.DAILY_AGGREGATE, DailyAggregate),
        params=IdParams,
        doc="Get per-day counts for a project goal.",
    ),
    Endpoint(
        "add_project_session",
        "POST",
        "project-sessions",
        item(NanoKind.PROJECT_SESSION, ProjectSession),
        params=ProjectSessionParams,
        doc="Log a writing session against a project goal and return the saved session.",
    ),
    # Badges
    Endpoint(
        "list_badges",
        "GET",
        "badges",
        collection(NanoKind.BADGE, Badge),
        doc="List all badges.",
    ),
    Endpoint(
        "get_badge",
        "GET",
        "badges/{id}",
        item(NanoKind.BADGE, Badge),
        params=IdParams,
        doc="Get a badge by ID.",
    ),
    Endpoint(
        "list_user_badges",
        "GET",
        "user-badges",
        collection(NanoKind.USER_BADGE, UserBadge),
        params=ListParams,
        doc="List awarded badges, usually filtered with filter={'user_id': ...}.",
    ),
    # Groups
    Endpoint(
        "list_groups",
        "GET",
        "groups",
        collection(NanoKind.GROUP, Group),
        params=ListParams,
        doc="List groups.",
    ),
    Endpoint(
        "get_group",
        "GET",
        "groups/{slug}",
        item(NanoKind.GROUP, Group),
        params=SlugIncludeParams,
        doc="Get a group by slug.",
    ),
)

ENDPOINTS_BY_NAME: dict[str, Endpoint] = {endpoint.name: endpoint for endpoint in ENDPOINTS}


# =============================================================================
# Queries by kind and relation links
# =============================================================================

QueryBy = Literal["all", "id", "slug"]


@functools.lru_cache(maxsize=None)
def kind_endpoint(kind: NanoKind, by: QueryBy) -> Endpoint:
    """
    Endpoint reading resources of any kind: all of them, one by ID, or one by slug.

    Resources decode into the kind's model, or NanoResource for kinds without
    one. Not every kind answers every query; slugs exist only for some kinds.
    """
    model = model_for(kind)
    name = f"get_{by}[{kind.api_name}]"
    if by == "all":
        return Endpoint(name, "GET", kind.api_name, collection(kind, model), params=ListParams)
    if by == "id":
        return Endpoint(name, "GET", f"{kind.api_name}/{{id}}", item(kind, model), params=IdIncludeParams)
    if by == "slug":
        return Endpoint(name, "GET", f"{kind.api_name}/{{slug}}", item(kind, model), params=SlugIncludeParams)
    raise ValueError(f"unknown query {by!r}")


@functools.lru_cache(maxsize=None)
def _related_base(kind: NanoKind, many: bool) -> Endpoint:
    model = model_for(kind)
    if many:
        return Endpoint(f"get_all_related[{kind.api_name}]", "GET", "", collection(kind, model))
    return Endpoint(f"get_unique_related[{kind.unique_name}]", "GET", "", item(kind, model))


def related_endpoint(kind: NanoKind, link: RelationLink, many: bool) -> Endpoint:
    """
    Endpoint following the `related` URL of a relation link.

    Args:
        kind: Kind of the related resources
        link: The relation's links, from an object's `relationships`
        many: True for a list relation, False for a single one

    """
    path = link.related
    if not path.startswith(("http://", "https://")):
        path = path.lstrip("/")
    return dataclasses.replace(_related_base(kind, many), path=path)
