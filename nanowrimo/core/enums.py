"""
Enumerations used by the NaNoWriMo API.

Most are integer-coded on the wire; the string-coded ones accept the
service's inconsistent capitalisation when decoding.
"""

from enum import Enum, IntEnum


class _LenientStrEnum(str, Enum):
    """String enum that matches case-insensitively when decoding."""

    @classmethod
    def _missing_(cls, value: object) -> "_LenientStrEnum | None":
        if not isinstance(value, str):
            return None
        folded = value.strip().lower()
        for member in cls:
            if member.value.lower() == folded:
                return member
        return None


# =============================================================================
# Resource kinds
# =============================================================================


class NanoKind(str, Enum):
    """A kind of API resource, valued by its collection name."""

    BADGE = "badges"
    CHALLENGE = "challenges"
    DAILY_AGGREGATE = "daily-aggregates"
    FAVORITE_AUTHOR = "favorite-authors"
    FAVORITE_BOOK = "favorite-books"
    GENRE = "genres"
    GROUP = "groups"
    GROUP_EXTERNAL_LINK = "group-external-links"
    GROUP_USER = "group-users"
    LOCATION = "locations"
    LOCATION_GROUP = "location-groups"
    NANO_MESSAGE = "nanomessages"
    NOTIFICATION = "notifications"
    PAGE = "pages"
    POST = "posts"
    PROJECT = "projects"
    PROJECT_CHALLENGE = "project-challenges"
    PROJECT_SESSION = "project-sessions"
    STOPWATCH = "stopwatches"
    TIMER = "timers"
    USER = "users"
    USER_BADGE = "user-badges"
    WRITING_LOCATION = "writing-locations"
    WRITING_METHOD = "writing-methods"

    @property
    def api_name(self) -> str:
        """Name of the collection, used in paths and `include`."""
        return self.value

    @property
    def unique_name(self) -> str:
        """Name of a single item of this kind."""
        if self is NanoKind.STOPWATCH:
            return "stopwatch"
        return self.value[:-1]


# =============================================================================
# Integer-coded
# =============================================================================


class PrivacySetting(IntEnum):
    PRIVATE = 0
    BUDDIES = 1
    ANYONE = 2


class EventType(IntEnum):
    NANOWRIMO = 0
    CAMP_NANO = 1
    CUSTOM = 2


class AdminLevel(IntEnum):
    USER = 0
    ADMIN = 1


class DisplayStatus(IntEnum):
    ALL_NOTIFS = 0
    RECENT_NOTIFS = 1


class WritingType(IntEnum):
    NOVEL = 0
    SHORT_STORIES = 1
    MEMOIR = 2
    SCRIPT = 3
    NONFICTION = 4
    POETRY = 5
    OTHER = 6


class JoiningRule(IntEnum):
    ADMIN_ONLY = 0
    ANY_USER = 1


class UnitType(IntEnum):
    WORDS = 0
    HOURS = 1


class Feeling(IntEnum):
    UPSET = 1
    STRESSED = 2
    OKAY = 3
    PRETTY_GOOD = 4
    GREAT = 5


class Where(IntEnum):
    HOME = 0
    OFFICE = 1
    LIBRARY = 2
    CAFE = 3


class How(IntEnum):
    BY_HAND = 0
    TYPEWRITER = 1
    LAPTOP = 2
    PHONE = 3


class InvitationStatus(IntEnum):
    BLOCKED = -2
    SENT = 0
    ACCEPTED = 1


# =============================================================================
# String-coded
# =============================================================================


class ProjectStatus(_LenientStrEnum):
    PREPPING = "Prepping"
    IN_PROGRESS = "In Progress"
    DRAFTED = "Drafted"
    COMPLETED = "Completed"
    PUBLISHED = "Published"

    @classmethod
    def _missing_(cls, value: object) -> "ProjectStatus | None":
        if isinstance(value, str) and value.strip().lower() == "inprogress":
            return cls.IN_PROGRESS
        return super()._missing_(value)


class GroupType(_LenientStrEnum):
    EVERYONE = "everyone"
    REGION = "region"
    BUDDIES = "buddies"
    WRITING_GROUP = "writing group"
    EVENT = "event"


class EntryMethod(_LenientStrEnum):
    JOIN = "join"
    CREATOR = "creator"
    CREATE = "create"
    INVITED = "invited"
    BLOCKED = "blocked"


class ActionType(_LenientStrEnum):
    BADGE_AWARDED = "BADGE_AWARDED"
    BUDDIES_PAGE = "BUDDIES_PAGE"
    NANOMESSAGES = "NANOMESSAGES"
    PROJECTS_PAGE = "PROJECTS_PAGE"


class ContentType(_LenientStrEnum):
    GENERAL_CONTENT = "General content"
    STACKED_CONTENT = "Stacked Content"
    PLATE = "Plate"
    GROUP_OF_PEOPLE = "Group of people"
    GROUP_OF_PAGE_CARDS = "Group of page cards"
    PERSON_CARD = "Person Card"
    PEP_TALK = "Pep Talk"
    PLAIN_TEXT = "Plain Text"


class RegistrationPath(_LenientStrEnum):
    EMAIL = "email"
    FACEBOOK = "Facebook"
    GOOGLE = "Google"


class BadgeType(_LenientStrEnum):
    WORD_COUNT = "word count"
    SELF_AWARDED = "self-awarded"
    PARTICIPATION = "participation"


class AdheresTo(_LenientStrEnum):
    UNKNOWN = ""
    USER = "user"
    PROJECT_CHALLENGE = "project_challenge"
