"""Type descriptors: the abstract data shapes consumed by the schema compiler.

Descriptors can be declared by hand or derived from Python annotations with
:func:`describe`, which understands dataclasses, pydantic models, enums and
the usual ``typing`` containers.
"""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
import types
import typing
import uuid
from collections import abc
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from pydantic import BaseModel

from .errors import UnsupportedShapeError
from .model import SchemaNode

__all__ = [
    "PrimitiveKind",
    "Identity",
    "Shape",
    "PrimitiveShape",
    "OptionalShape",
    "SequenceShape",
    "DictShape",
    "EnumShape",
    "RecordShape",
    "KnownAlias",
    "Field",
    "Embed",
    "KNOWN_ALIASES",
    "STRING",
    "INTEGER",
    "FLOAT",
    "BOOLEAN",
    "describe",
    "identity_of",
]


class PrimitiveKind(str, enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"

    @property
    def schema_type(self) -> str:
        return "number" if self is PrimitiveKind.FLOAT else self.value


@dataclass(slots=True, frozen=True)
class Identity:
    """Stable ``(namespace, local name)`` pair used for naming and memoisation."""

    namespace: str = ""
    name: str = ""

    @property
    def anonymous(self) -> bool:
        return not self.name

    def __str__(self) -> str:
        if not self.namespace:
            return self.name or "<anonymous>"
        return f"{self.namespace}.{self.name}"


class Shape:
    """Base class of every descriptor variant."""

    __slots__ = ()


@dataclass(slots=True, frozen=True)
class PrimitiveShape(Shape):
    kind: PrimitiveKind


@dataclass(slots=True, frozen=True)
class OptionalShape(Shape):
    inner: Shape


@dataclass(slots=True, frozen=True)
class SequenceShape(Shape):
    element: Shape


@dataclass(slots=True, frozen=True)
class DictShape(Shape):
    value: Shape
    key: Shape = PrimitiveShape(PrimitiveKind.STRING)


@dataclass(slots=True, frozen=True)
class EnumShape(Shape):
    identity: Identity
    base: PrimitiveKind
    values: tuple[Any, ...] = ()


@dataclass(slots=True, frozen=True)
class KnownAlias(Shape):
    """Externally known type mapped straight onto a schema template."""

    identity: Identity
    schema: SchemaNode = field(compare=False, hash=False)

    @property
    def referenceable(self) -> bool:
        return self.schema.type == "object" or bool(self.schema.enum_values)


@dataclass(slots=True, frozen=True)
class Field:
    """One record member.

    ``name`` is the wire name; ``attribute`` is the declared name used for
    metadata lookups and defaults to ``name``.
    """

    name: str
    shape: Shape
    embedded: bool = False
    omit_empty: bool = False
    attribute: str = ""
    description: str | None = None
    example: Any = None

    @property
    def required(self) -> bool:
        return not self.omit_empty and not isinstance(self.shape, OptionalShape)

    @property
    def declared_name(self) -> str:
        return self.attribute or self.name


@dataclass(slots=True, frozen=True, eq=False)
class RecordShape(Shape):
    """Struct-like shape; ``fields`` is filled once, right after construction.

    Equality is identity based so that cyclic records stay hashable.
    """

    identity: Identity
    fields: list[Field] = field(default_factory=list)
    customize: Callable[[SchemaNode], SchemaNode | None] | None = None


STRING = PrimitiveShape(PrimitiveKind.STRING)
INTEGER = PrimitiveShape(PrimitiveKind.INTEGER)
FLOAT = PrimitiveShape(PrimitiveKind.FLOAT)
BOOLEAN = PrimitiveShape(PrimitiveKind.BOOLEAN)


class _EmbedMarker:
    """``Annotated`` marker that splices a record field into its owner."""

    _instance: _EmbedMarker | None = None

    def __new__(cls) -> _EmbedMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Embed"


Embed = _EmbedMarker()

# Known aliases: (python type, schema type, format).  Every entry is
# primitive-equivalent, so the compiler inlines them at each use.
ALIAS_DEFINITIONS: list[tuple[type, str, str | None]] = [
    (datetime.datetime, "string", "date-time"),
    (datetime.date, "string", "date"),
    (datetime.time, "string", "time"),
    (uuid.UUID, "string", "uuid"),
    (decimal.Decimal, "number", None),
    (bytes, "string", "byte"),
]


def identity_of(tp: type) -> Identity:
    return Identity(tp.__module__, tp.__qualname__)


KNOWN_ALIASES: dict[type, KnownAlias] = {
    tp: KnownAlias(identity_of(tp), SchemaNode(type=schema_type, format=fmt))
    for tp, schema_type, fmt in ALIAS_DEFINITIONS
}

_PRIMITIVES: dict[type, PrimitiveShape] = {
    bool: BOOLEAN,
    int: INTEGER,
    float: FLOAT,
    str: STRING,
}

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, abc.Sequence, abc.Set, abc.MutableSequence, abc.Iterable)
_MAPPING_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)


def describe(tp: Any, *, _memo: dict[Any, Shape] | None = None) -> Shape:
    """Return the descriptor for a Python type annotation.

    Shapes are passed through unchanged.  Records are memoised per call so
    self-referencing classes produce a cyclic descriptor graph.
    """

    if isinstance(tp, Shape):
        return tp
    memo = {} if _memo is None else _memo

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is typing.Annotated:
        return describe(args[0], _memo=memo)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not type(None)]
        if len(members) != 1:
            raise UnsupportedShapeError(f"union types are not supported: {tp!r}")
        return OptionalShape(describe(members[0], _memo=memo))
    if origin is typing.Literal:
        return _enum_from_values(Identity(), list(args), tp)
    if origin is not None:
        if origin in _MAPPING_ORIGINS:
            if len(args) != 2:
                raise UnsupportedShapeError(f"mapping key and value types are missing: {tp!r}")
            key, value = args
            return DictShape(value=describe(value, _memo=memo), key=describe(key, _memo=memo))
        if origin in _SEQUENCE_ORIGINS:
            if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
                raise UnsupportedShapeError(f"only homogeneous tuples are supported: {tp!r}")
            if not args:
                raise UnsupportedShapeError(f"sequence element type is missing: {tp!r}")
            return SequenceShape(describe(args[0], _memo=memo))
        raise UnsupportedShapeError(f"unsupported generic type: {tp!r}")

    if not isinstance(tp, type):
        raise UnsupportedShapeError(f"cannot describe {tp!r}")
    if tp in memo:
        return memo[tp]
    if tp in KNOWN_ALIASES:
        return KNOWN_ALIASES[tp]
    if issubclass(tp, enum.Enum):
        return _enum_from_values(identity_of(tp), [member.value for member in tp], tp)
    for base, shape in _PRIMITIVES.items():
        if issubclass(tp, base):
            return shape
    if issubclass(tp, BaseModel):
        return _describe_record(tp, _pydantic_fields, memo)
    if dataclasses.is_dataclass(tp):
        return _describe_record(tp, _dataclass_fields, memo)
    raise UnsupportedShapeError(f"no descriptor rule for {tp!r}")


def _enum_from_values(identity: Identity, values: list[Any], source: Any) -> EnumShape:
    if values and all(isinstance(v, str) for v in values):
        base = PrimitiveKind.STRING
    elif values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        base = PrimitiveKind.INTEGER
    else:
        raise UnsupportedShapeError(f"enum values must all be strings or all integers: {source!r}")
    return EnumShape(identity, base, tuple(values))


def _describe_record(
    tp: type,
    fields_of: Callable[[type, dict[Any, Shape]], list[Field]],
    memo: dict[Any, Shape],
) -> RecordShape:
    customize = getattr(tp, "apply_custom_schema", None)
    record = RecordShape(identity_of(tp), [], customize if callable(customize) else None)
    memo[tp] = record
    record.fields.extend(fields_of(tp, memo))
    return record


def _split_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    if typing.get_origin(annotation) is typing.Annotated:
        inner, *extras = typing.get_args(annotation)
        return inner, tuple(extras)
    return annotation, ()


def _dataclass_fields(tp: type, memo: dict[Any, Shape]) -> list[Field]:
    try:
        hints = typing.get_type_hints(tp, localns={tp.__name__: tp}, include_extras=True)
    except (NameError, TypeError) as exc:
        raise UnsupportedShapeError(f"cannot resolve the annotations of {tp.__qualname__}: {exc}") from exc
    result = []
    for member in dataclasses.fields(tp):
        annotation, extras = _split_annotated(hints[member.name])
        has_default = (
            member.default is not dataclasses.MISSING
            or member.default_factory is not dataclasses.MISSING
        )
        result.append(
            Field(
                name=member.metadata.get("name", member.name),
                shape=describe(annotation, _memo=memo),
                embedded=Embed in extras or bool(member.metadata.get("embed")),
                omit_empty=has_default or bool(member.metadata.get("omitempty")),
                attribute=member.name,
                description=member.metadata.get("description"),
                example=member.metadata.get("example"),
            )
        )
    return result


def _pydantic_fields(tp: type[BaseModel], memo: dict[Any, Shape]) -> list[Field]:
    result = []
    for name, info in tp.model_fields.items():
        annotation, extras = _split_annotated(info.annotation)
        extras = extras + tuple(info.metadata)
        result.append(
            Field(
                name=info.serialization_alias or info.alias or name,
                shape=describe(annotation, _memo=memo),
                embedded=Embed in extras,
                omit_empty=not info.is_required(),
                attribute=name,
                description=info.description,
                example=info.examples[0] if info.examples else None,
            )
        )
    return result
