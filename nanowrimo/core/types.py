"""
Domain types for NaNoWriMo API resources.

Each model mirrors one JSON resource shape. Attribute names are kebab-case
on the wire; unknown fields are ignored so the service can add fields
without breaking decoding. Optional fields decode to None when absent.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Annotated, Any, ClassVar, Generic, TypeVar, Union

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    RootModel,
    Tag,
    computed_field,
    field_serializer,
)

from nanowrimo.core.enums import (
    ActionType,
    AdheresTo,
    AdminLevel,
    BadgeType,
    ContentType,
    DisplayStatus,
    EventType,
    Feeling,
    GroupType,
    How,
    JoiningRule,
    NanoKind,
    PrivacySetting,
    ProjectStatus,
    RegistrationPath,
    UnitType,
    Where,
    WritingType,
)


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class NanoModel(BaseModel):
    """Base for every decoded value: immutable, kebab-case, forward compatible."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=_kebab,
    )


# =============================================================================
# References and links
# =============================================================================


class ObjectRef(NanoModel):
    """Kind and ID of a related resource, enough to find it in `included`."""

    id: int
    kind: NanoKind = Field(..., alias="type")

    @field_serializer("id")
    def _id_as_string(self, value: int) -> str:
        return str(value)


class RelationLink(NanoModel):
    """URLs for one relationship: the link itself and the related resources."""

    this: str = Field(..., alias="self")
    related: str


def _ref_shape(value: Any) -> str:
    return "many" if isinstance(value, list | tuple) else "one"


RefData = Annotated[
    Union[Annotated[ObjectRef, Tag("one")], Annotated[tuple[ObjectRef, ...], Tag("many")]],
    Discriminator(_ref_shape),
]


class Relation(NanoModel):
    """One entry of `relationships`: its links and, when included, its refs."""

    links: RelationLink | None = None
    data: RefData | None = None

    @property
    def refs(self) -> tuple[ObjectRef, ...]:
        if self.data is None:
            return ()
        if isinstance(self.data, ObjectRef):
            return (self.data,)
        return self.data


class RelationInfo(RootModel[dict[str, Relation]]):
    """
    Relationships of a resource, keyed by the related kind.

    The service names single relations by item name (`user`) and lists by
    collection name (`project-challenges`); lookups accept a NanoKind and
    try both.
    """

    model_config = ConfigDict(frozen=True)

    def get(self, kind: NanoKind) -> Relation | None:
        return self.root.get(kind.api_name) or self.root.get(kind.unique_name)

    def refs(self, kind: NanoKind) -> tuple[ObjectRef, ...]:
        relation = self.get(kind)
        return relation.refs if relation else ()

    def link(self, kind: NanoKind, many: bool | None = None) -> RelationLink | None:
        """Links of the relation to a kind; `many` picks the list or the single relation."""
        if many is None:
            relation = self.get(kind)
        else:
            relation = self.root.get(kind.api_name if many else kind.unique_name)
        return relation.links if relation else None


class LinkInfo(NanoModel):
    """`links` of a resource: always `self`, sometimes more."""

    model_config = ConfigDict(extra="allow")

    this: str = Field(..., alias="self")

    @property
    def others(self) -> dict[str, str]:
        return dict(self.model_extra or {})


class NanoObject(NanoModel):
    """A resource with a numeric ID, a kind, and its relationships."""

    kind: ClassVar[NanoKind]

    id: int
    relationships: RelationInfo | None = None
    links: LinkInfo | None = None

    @computed_field
    @property
    def type(self) -> str:
        """Wire name of the kind, emitted so encoded objects can be told apart."""
        return self.kind.api_name

    def refs(self, kind: NanoKind) -> tuple[ObjectRef, ...]:
        """Refs to related resources of a kind, empty when none were included."""
        if self.relationships is None:
            return ()
        return self.relationships.refs(kind)

    def ref(self) -> ObjectRef:
        return ObjectRef(id=self.id, kind=self.kind)


class NanoResource(NanoModel):
    """A resource of a kind without a dedicated model; attributes stay in `model_extra`."""

    model_config = ConfigDict(extra="allow")

    id: int
    type: str
    relationships: RelationInfo | None = None
    links: LinkInfo | None = None

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


# =============================================================================
# Plain records
# =============================================================================


class LoginResponse(NanoModel):
    """The response from logging in."""

    auth_token: str = Field(..., alias="auth_token")


class Fundometer(NanoModel):
    """Current fundraising progress."""

    goal: int
    raised: float
    donor_count: int = Field(..., alias="donorCount")


class StoreItem(NanoModel):
    """An item from the NaNoWriMo store."""

    handle: str
    image: str
    title: str


# =============================================================================
# Users
# =============================================================================


class StatsInfo(NanoModel):
    """Which profile stats a user shows, and their values."""

    projects: int | None = None
    projects_enabled: bool | None = None
    streak: int | None = None
    streak_enabled: bool | None = None
    word_count: int | None = None
    word_count_enabled: bool | None = None
    wordiest: int | None = None
    wordiest_enabled: bool | None = None
    writing_pace: int | None = None
    writing_pace_enabled: bool | None = None
    years_done: int | None = None
    years_enabled: bool | None = None
    years_won: int | None = None


class PrivacySettings(NanoModel):
    send_nanomessages: PrivacySetting
    view_buddies: PrivacySetting
    view_profile: PrivacySetting
    view_projects: PrivacySetting
    view_search: PrivacySetting
    visibility_activity_logs: bool
    visibility_buddy_lists: bool
    visibility_regions: bool


class User(NanoObject):
    """A NaNoWriMo user."""

    kind: ClassVar[NanoKind] = NanoKind.USER

    name: str
    slug: str
    admin_level: AdminLevel | None = None
    avatar: str | None = None
    bio: str | None = None
    confirmed_at: AwareDatetime | None = None
    created_at: AwareDatetime | None = None
    email: str | None = None
    halo: bool | None = None
    laurels: int | None = None
    location: str | None = None
    notifications_viewed_at: AwareDatetime | None = None
    plate: str | None = None
    postal_code: str | None = None
    privacy_settings: PrivacySettings | None = None
    registration_path: RegistrationPath | None = None
    stats: StatsInfo | None = None
    time_zone: str | None = None


# =============================================================================
# Projects and goals
# =============================================================================


class Project(NanoObject):
    """A writing project."""

    kind: ClassVar[NanoKind] = NanoKind.PROJECT

    title: str
    slug: str | None = None
    user_id: int | None = None
    status: ProjectStatus | None = None
    privacy: PrivacySetting | None = None
    writing_type: WritingType | None = None
    unit_type: UnitType | None = None
    unit_count: int | None = None
    primary: int | None = None
    summary: str | None = None
    excerpt: str | None = None
    cover: str | None = None
    pinterest_url: str | None = None
    playlist_url: str | None = None
    created_at: AwareDatetime | None = None


class Challenge(NanoObject):
    """An event a project can take part in."""

    kind: ClassVar[NanoKind] = NanoKind.CHALLENGE

    name: str
    starts_at: date
    ends_at: date
    default_goal: int
    unit_type: UnitType
    user_id: int | None = None
    event_type: EventType | None = None
    flexible_goal: bool | None = None
    prep_starts_at: date | None = None
    win_allowed_at: date | None = None
    writing_type: WritingType | None = None


class ProjectChallenge(NanoObject):
    """A project's goal within one challenge, with its running count."""

    kind: ClassVar[NanoKind] = NanoKind.PROJECT_CHALLENGE

    project_id: int
    challenge_id: int
    name: str
    goal: int
    current_count: int
    starts_at: date
    ends_at: date
    unit_type: UnitType
    event_type: EventType | None = None
    user_id: int | None = None
    start_count: int | None = None
    streak: int | None = None
    speed: int | None = None
    feeling: Feeling | None = None
    how: How | None = None
    writing_type: WritingType | None = None
    writing_location: str | None = None
    last_recompute: AwareDatetime | None = None
    won_at: AwareDatetime | None = None


Goal = ProjectChallenge


class DailyAggregate(NanoObject):
    """Total count for one project on one day."""

    kind: ClassVar[NanoKind] = NanoKind.DAILY_AGGREGATE

    count: int
    day: date
    project_id: int
    unit_type: UnitType
    user_id: int | None = None


class ProjectSession(NanoObject):
    """A single writing session logged against a project."""

    kind: ClassVar[NanoKind] = NanoKind.PROJECT_SESSION

    count: int
    unit_type: UnitType | None = None
    project_id: int | None = None
    project_challenge_id: int | None = None
    session_date: date | None = None
    start: AwareDatetime | None = None
    end: AwareDatetime | None = None
    feeling: Feeling | None = None
    how: How | None = None
    where: Where | None = None
    created_at: AwareDatetime | None = None

    @property
    def duration(self) -> timedelta | None:
        """Length of the session when both ends are known."""
        if self.start is None or self.end is None:
            return None
        return self.end - self.start


# =============================================================================
# Badges
# =============================================================================


class Badge(NanoObject):
    kind: ClassVar[NanoKind] = NanoKind.BADGE

    title: str
    badge_type: BadgeType
    active: bool | None = None
    adheres_to: AdheresTo | None = None
    description: str | None = None
    generic_description: str | None = None
    awarded: str | None = None
    awarded_description: str | None = None
    unawarded: str | None = None
    list_order: int | None = None
    suborder: int | None = None
    winner: bool | None = None


class UserBadge(NanoObject):
    kind: ClassVar[NanoKind] = NanoKind.USER_BADGE

    badge_id: int
    user_id: int
    project_challenge_id: int | None = None
    created_at: AwareDatetime | None = None


# =============================================================================
# Groups and notifications
# =============================================================================


class Group(NanoObject):
    """A region, buddy list, writing group or event."""

    kind: ClassVar[NanoKind] = NanoKind.GROUP

    name: str
    slug: str
    group_type: GroupType
    description: str | None = None
    avatar: str | None = None
    plate: str | None = None
    url: str | None = None
    forum_link: str | None = None
    time_zone: str | None = None
    joining_rule: JoiningRule | None = None
    latitude: float | None = None
    longitude: float | None = None
    member_count: int | None = None
    max_member_count: int | None = None
    group_id: int | None = None
    user_id: int | None = None
    start_dt: AwareDatetime | None = None
    end_dt: AwareDatetime | None = None
    created_at: AwareDatetime | None = None
    updated_at: AwareDatetime | None = None


class Notification(NanoObject):
    kind: ClassVar[NanoKind] = NanoKind.NOTIFICATION

    headline: str
    content: str
    action_type: ActionType
    display_status: DisplayStatus
    display_at: AwareDatetime
    user_id: int
    action_id: int | None = None
    data_count: int | None = None
    image_url: str | None = None
    redirect_url: str | None = None
    last_viewed_at: AwareDatetime | None = None
    created_at: AwareDatetime | None = None
    updated_at: AwareDatetime | None = None


# =============================================================================
# Site content
# =============================================================================


class Page(NanoObject):
    """A content page such as a pep talk."""

    kind: ClassVar[NanoKind] = NanoKind.PAGE

    headline: str
    body: str
    url: str
    content_type: ContentType
    show_after: AwareDatetime | None = None
    promotional_card_image: str | None = None


class Post(NanoObject):
    """A post, including sponsor offers."""

    kind: ClassVar[NanoKind] = NanoKind.POST

    headline: str
    body: str
    content_type: ContentType
    published: bool
    subhead: str | None = None
    card_image: str | None = None
    external_link: str | None = None
    offer_code: str | None = None
    api_code: str | None = None
    order: int | None = None
    expires_at: date | None = None


class PostInfo(NanoModel):
    """Neighbouring posts and author cards sent alongside a post or page."""

    after_posts: tuple[Post, ...] = ()
    author_cards: tuple[Post, ...] = ()
    before_posts: tuple[Post, ...] = ()


# =============================================================================
# Included resources and full responses
# =============================================================================

MODEL_BY_KIND: dict[NanoKind, type[NanoObject]] = {
    model.kind: model
    for model in (
        Badge,
        Challenge,
        DailyAggregate,
        Group,
        Notification,
        Page,
        Post,
        Project,
        ProjectChallenge,
        ProjectSession,
        User,
        UserBadge,
    )
}


def model_for(kind: NanoKind) -> type[NanoObject] | type[NanoResource]:
    """Model that decodes resources of a kind; NanoResource when none is defined."""
    return MODEL_BY_KIND.get(kind, NanoResource)


_OTHER = "other"
_TAGS = frozenset(kind.api_name for kind in MODEL_BY_KIND)


def _kind_tag(value: Any) -> str:
    if isinstance(value, NanoResource):
        return _OTHER
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if kind in _TAGS:
        return kind
    return _OTHER


IncludedObject = Annotated[
    Union[
        tuple(Annotated[model, Tag(kind.api_name)] for kind, model in MODEL_BY_KIND.items())
        + (Annotated[NanoResource, Tag(_OTHER)],)
    ],
    Discriminator(_kind_tag),
]
"""Any resource in `included`, decoded by its `type` into the matching model."""

T = TypeVar("T")


@dataclass(frozen=True)
class Response(Generic[T]):
    """
    A decoded payload together with the rest of its response document.

    `included` holds the related resources asked for with `include`; use
    get_ref to find the one an ObjectRef points at.
    """

    data: T
    included: tuple[NanoObject | NanoResource, ...] = ()
    post_info: PostInfo | None = None

    def get_ref(self, ref: ObjectRef) -> NanoObject | NanoResource | None:
        """The included resource a reference points at, or None if it was not included."""
        for obj in self.included:
            if obj.id == ref.id and obj.type == ref.kind.api_name:
                return obj
        return None

    def related(self, obj: NanoObject, kind: NanoKind) -> list[NanoObject | NanoResource]:
        """Included resources of a kind that `obj` refers to, in reference order."""
        found = []
        for ref in obj.refs(kind):
            resource = self.get_ref(ref)
            if resource is not None:
                found.append(resource)
        return found
