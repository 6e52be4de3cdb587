"""
Core layer - Raw types, pipeline and endpoint table.

This layer provides:
- Typed pydantic models matching the NaNoWriMo resource shapes, with
  relationships, links and the included resources of a response
- Session holding the shared credential
- Request builder and dispatcher with status mapping and path-aware decoding
- The declarative endpoint table the bindings are generated from
"""

from nanowrimo.core.client import APIClient, RawResponse, Request, RequestBuilder, error_for_status
from nanowrimo.core.decoder import ResponseShape, decode, decode_as, decode_response, encode, encode_response
from nanowrimo.core.endpoints import (
    ENDPOINTS,
    ENDPOINTS_BY_NAME,
    Endpoint,
    EndpointParams,
    kind_endpoint,
    related_endpoint,
)
from nanowrimo.core.enums import NanoKind
from nanowrimo.core.errors import (
    APIError,
    DecodeError,
    DecodeIssue,
    ErrorDetail,
    Forbidden,
    InvalidParams,
    NanoError,
    NotFound,
    RateLimited,
    ServiceError,
    TransportError,
    Unauthenticated,
)
from nanowrimo.core.resolver import DnsResolver, ResolutionError, ResolvingTransport
from nanowrimo.core.session import Credential, Session
from nanowrimo.core.settings import ClientSettings
from nanowrimo.core.types import (
    Badge,
    Challenge,
    DailyAggregate,
    Fundometer,
    Goal,
    Group,
    LinkInfo,
    LoginResponse,
    NanoObject,
    NanoResource,
    Notification,
    ObjectRef,
    Page,
    Post,
    PostInfo,
    PrivacySettings,
    Project,
    ProjectChallenge,
    ProjectSession,
    Relation,
    RelationInfo,
    RelationLink,
    Response,
    StatsInfo,
    StoreItem,
    User,
    UserBadge,
    model_for,
)

__all__ = [
    "ENDPOINTS",
    "ENDPOINTS_BY_NAME",
    "APIClient",
    "APIError",
    "Badge",
    "Challenge",
    "ClientSettings",
    "Credential",
    "DailyAggregate",
    "DecodeError",
    "DecodeIssue",
    "DnsResolver",
    "Endpoint",
    "EndpointParams",
    "ErrorDetail",
    "Forbidden",
    "Fundometer",
    "Goal",
    "Group",
    "InvalidParams",
    "LinkInfo",
    "LoginResponse",
    "NanoError",
    "NanoKind",
    "NanoObject",
    "NanoResource",
    "NotFound",
    "Notification",
    "ObjectRef",
    "Page",
    "Post",
    "PostInfo",
    "PrivacySettings",
    "Project",
    "ProjectChallenge",
    "ProjectSession",
    "RateLimited",
    "RawResponse",
    "Relation",
    "RelationInfo",
    "RelationLink",
    "Request",
    "RequestBuilder",
    "ResolutionError",
    "ResolvingTransport",
    "Response",
    "ResponseShape",
    "ServiceError",
    "Session",
    "StatsInfo",
    "StoreItem",
    "TransportError",
    "Unauthenticated",
    "User",
    "UserBadge",
    "decode",
    "decode_as",
    "decode_response",
    "encode",
    "encode_response",
    "error_for_status",
    "kind_endpoint",
    "model_for",
    "related_endpoint",
]
