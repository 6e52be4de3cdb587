"""
Path-aware JSON decoding into domain types.

A ResponseShape describes where the payload sits inside the response
envelope (e.g. `data.projects`) and what type it decodes to. Decoding
failures become DecodeError with the exact field trail, the expected JSON
kind and the kind actually received.
"""

import types
import typing
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel, Tag, TypeAdapter, ValidationError, create_model

from nanowrimo.core.errors import DecodeError, DecodeIssue
from nanowrimo.core.types import IncludedObject, Post, PostInfo, Response

_ENVELOPE_CONFIG = ConfigDict(extra="ignore", frozen=True)

# pydantic error type -> JSON kind the field wanted
_EXPECTED_BY_ERROR = {
    "int_type": "number",
    "int_parsing": "number",
    "int_from_float": "number",
    "float_type": "number",
    "float_parsing": "number",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "string_type": "string",
    "list_type": "array",
    "tuple_type": "array",
    "set_type": "array",
    "dict_type": "object",
    "model_type": "object",
    "model_attributes_type": "object",
    "dataclass_type": "object",
    "datetime_type": "datetime",
    "datetime_parsing": "datetime",
    "datetime_from_date_parsing": "datetime",
    "timezone_aware": "datetime with timezone",
    "date_type": "date",
    "date_parsing": "date",
    "date_from_datetime_parsing": "date",
    "date_from_datetime_inexact": "date",
    "none_required": "null",
    "json_invalid": "valid JSON",
    "json_type": "JSON",
}


def format_path(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic location as `data.projects[0].id`."""
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        elif out:
            out += f".{part}"
        else:
            out = str(part)
    return out


def json_kind(value: Any) -> str:
    """Name the JSON kind of an already-parsed value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _strip_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _plain(annotation: Any) -> Any:
    """Drop Annotated metadata and Optional around a type."""
    while typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]
    annotation = _strip_optional(annotation)
    while typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]
    if isinstance(annotation, type) and issubclass(annotation, RootModel):
        return _plain(annotation.model_fields["root"].annotation)
    return annotation


def _tagged_member(annotation: Any, part: int | str) -> Any:
    """Member of a tagged union selected by `part`, or None when `part` is no tag."""
    if typing.get_origin(annotation) not in (typing.Union, types.UnionType):
        return None
    for member in typing.get_args(annotation):
        if typing.get_origin(member) is typing.Annotated:
            base, *metadata = typing.get_args(member)
            if any(isinstance(m, Tag) and m.tag == part for m in metadata):
                return base
    return None


def _field_annotation(model: type[BaseModel], key: str) -> Any:
    for name, info in model.model_fields.items():
        if key in (name, info.alias):
            return info.annotation
    return None


def _step(current: Any, part: int | str) -> Any:
    origin = typing.get_origin(current)
    if isinstance(current, type) and issubclass(current, BaseModel):
        return _field_annotation(current, str(part))
    if origin in (list, tuple, set, frozenset):
        args = typing.get_args(current)
        return args[0] if args else Any
    if origin is dict:
        args = typing.get_args(current)
        return args[1] if len(args) == 2 else Any
    return None


def walk_location(root: Any, loc: tuple[int | str, ...]) -> tuple[Any, tuple[int | str, ...]]:
    """
    Follow a pydantic location through a type.

    Returns:
        The annotation found there (None when the trail is lost) and the
        location without the tags of discriminated unions

    """
    current = root
    shown: list[int | str] = []
    for part in loc:
        if current is not None:
            current = _plain(current)
            member = _tagged_member(current, part)
            if member is not None:
                current = member
                continue
            current = _step(current, part)
        shown.append(part)
    return current, tuple(shown)


def annotation_at(root: Any, loc: tuple[int | str, ...]) -> Any:
    """Follow a location through a type, returning the annotation found there."""
    return walk_location(root, loc)[0]


def expected_kind(annotation: Any) -> str:
    """Name the JSON kind a type annotation decodes from."""
    annotation = _plain(annotation)
    origin = typing.get_origin(annotation)
    if origin in (list, tuple, set, frozenset):
        return "array"
    if origin is dict:
        return "object"
    if not isinstance(annotation, type):
        return "value"
    if issubclass(annotation, Enum):
        return "one of " + ", ".join(repr(m.value) for m in annotation)
    if issubclass(annotation, bool):
        return "boolean"
    if issubclass(annotation, int | float):
        return "number"
    if issubclass(annotation, str):
        return "string"
    if issubclass(annotation, datetime):
        return "datetime"
    if issubclass(annotation, date):
        return "date"
    if issubclass(annotation, BaseModel):
        return "object"
    return annotation.__name__


def _issue_from_error(root: Any, error: dict[str, Any]) -> DecodeIssue:
    annotation, loc = walk_location(root, tuple(error.get("loc", ())))
    error_type = error.get("type", "")
    path = format_path(loc)

    if error_type == "missing":
        return DecodeIssue(path, expected_kind(annotation), "missing", error.get("msg", ""))

    if error_type == "json_invalid":
        return DecodeIssue(path, "valid JSON", "invalid JSON", error.get("msg", ""))

    if error_type == "enum":
        expected = "one of " + str((error.get("ctx") or {}).get("expected", ""))
    elif error_type in _EXPECTED_BY_ERROR:
        expected = _EXPECTED_BY_ERROR[error_type]
    else:
        expected = expected_kind(annotation)

    return DecodeIssue(path, expected, json_kind(error.get("input")), error.get("msg", ""))


def decode_error_from(root: Any, exc: ValidationError) -> DecodeError:
    """Convert a pydantic ValidationError into a DecodeError."""
    issues = [_issue_from_error(root, error) for error in exc.errors(include_url=False)]
    return DecodeError(issues)


# =============================================================================
# Response shapes
# =============================================================================

# Top-level members that sit beside the payload in an enveloped document
_POST_INFO_KEYS = ("after-posts", "author-cards", "before-posts")
_DOCUMENT_FIELDS: dict[str, Any] = {
    "included": (tuple[IncludedObject, ...] | None, Field(None, alias="included")),
    **{_key.replace("-", "_"): (tuple[Post, ...] | None, Field(None, alias=_key)) for _key in _POST_INFO_KEYS},
}


def _field_name(key: str) -> str:
    return key.replace("-", "_")


def _envelope_model(payload: Any, keys: tuple[str, ...]) -> Any:
    """Wrap `payload` in nested models, innermost key last.

    The outermost model also carries `included` and the post neighbours.
    """
    model = payload
    for depth, key in enumerate(reversed(keys)):
        prefix = keys[: len(keys) - depth]
        fields = {_field_name(key): (model, Field(..., alias=key))}
        if len(prefix) == 1:
            fields.update(_DOCUMENT_FIELDS)
        model = create_model(
            "Envelope_" + "_".join(_field_name(k) for k in prefix),
            __config__=_ENVELOPE_CONFIG,
            **fields,
        )
    return model


@dataclass(frozen=True)
class ResponseShape:
    """Where a payload sits in the response body and what it decodes to.

    `envelope=("data", "projects")` decodes `{"data": {"projects": [...]}}`
    and returns the inner list. An empty envelope decodes the whole body.
    A payload of None expects no body at all.
    """

    payload: Any
    envelope: tuple[str, ...] = ()
    root: Any = field(init=False, repr=False, compare=False)
    adapter: TypeAdapter | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.payload is None:
            object.__setattr__(self, "root", None)
            object.__setattr__(self, "adapter", None)
            return
        root = _envelope_model(self.payload, self.envelope)
        object.__setattr__(self, "root", root)
        object.__setattr__(self, "adapter", TypeAdapter(root))

    def unwrap(self, value: Any) -> Any:
        for key in self.envelope:
            value = getattr(value, _field_name(key))
        return value

    def wrap(self, payload: Any) -> Any:
        """Build the envelope around a payload, the inverse of unwrap."""
        value = payload
        for key in reversed(self.envelope):
            value = {key: value}
        return value


def _validate(shape: ResponseShape, content: bytes | str) -> Any:
    try:
        return shape.adapter.validate_json(content)
    except ValidationError as exc:
        raise decode_error_from(shape.root, exc) from exc


def decode(shape: ResponseShape, content: bytes | str) -> Any:
    """Decode a response body according to its shape.

    Raises:
        DecodeError: With the field path of the first mismatch

    """
    if shape.adapter is None:
        return None
    return shape.unwrap(_validate(shape, content))


def decode_response(shape: ResponseShape, content: bytes | str) -> Response:
    """
    Decode a response body, keeping the included resources and post neighbours.

    Args:
        shape: The response shape of the endpoint
        content: Raw response body

    Returns:
        Response with the payload as `data`

    Raises:
        DecodeError: With the field path of the first mismatch

    """
    if shape.adapter is None:
        return Response(None)
    document = _validate(shape, content)
    if not shape.envelope:
        return Response(document)

    post_info = None
    neighbours = {_field_name(key): getattr(document, _field_name(key)) for key in _POST_INFO_KEYS}
    if any(value is not None for value in neighbours.values()):
        post_info = PostInfo(**{name: value or () for name, value in neighbours.items()})
    return Response(shape.unwrap(document), document.included or (), post_info)


def decode_as(target: Any, content: bytes | str) -> Any:
    """Decode a bare JSON document straight into `target`."""
    return decode(ResponseShape(target), content)


def encode(value: Any, target: Any = None) -> bytes:
    """Serialize a domain value back to wire JSON."""
    adapter = TypeAdapter(target if target is not None else type(value))
    return adapter.dump_json(value, by_alias=True)


def encode_response(shape: ResponseShape, response: Response) -> bytes:
    """Serialize a Response back into the document decode_response reads."""
    if shape.adapter is None:
        raise ValueError("shape expects no body")
    if not shape.envelope:
        return shape.adapter.dump_json(response.data, by_alias=True)

    document = shape.wrap(response.data)
    document["included"] = response.included
    if response.post_info is not None:
        for key in _POST_INFO_KEYS:
            document[key] = getattr(response.post_info, _field_name(key))
    return shape.adapter.dump_json(shape.adapter.validate_python(document), by_alias=True)
