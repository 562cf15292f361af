"""Memoising schema compiler: descriptors in, named and inline schema nodes out.

One :class:`SchemaRegistry` serves one compilation pass.  Named shapes
(records, enums and object-like aliases) are bound under their canonical name
before their members are compiled, so repeated and cyclic references resolve
to the same ``$ref``.  The registry is not thread-safe; give each concurrent
pass its own instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence

from .descriptors import (
    DictShape,
    EnumShape,
    Field,
    Identity,
    KnownAlias,
    OptionalShape,
    PrimitiveKind,
    PrimitiveShape,
    RecordShape,
    SequenceShape,
    Shape,
)
from .errors import (
    HookError,
    MetadataLookupError,
    NameCollisionError,
    UnsupportedKeyTypeError,
    UnsupportedShapeError,
)
from .metadata import MetadataProvider, NullMetadataProvider
from .model import SchemaNode
from .naming import anonymous_name, schema_name

__all__ = ["SchemaHook", "SchemaCustomizer", "SchemaRegistry"]

LOGGER = logging.getLogger(__name__)

SchemaHook = Callable[[SchemaNode], "SchemaNode | None"]
SchemaCustomizer = Callable[[Shape, SchemaNode], "SchemaNode | None"]


@dataclass(slots=True)
class _State:
    schemas: dict[str, SchemaNode]
    owners: dict[str, Identity]
    embedded_only: set[str]
    anonymous: dict[object, tuple[Shape, str]]


class SchemaRegistry:
    """Compile type descriptors into schema nodes, reusing named schemas.

    Parameters
    ----------
    strip_prefixes:
        Namespace prefixes dropped from schema names.
    metadata:
        Source of type/field descriptions and enum values.
    hooks:
        Per-identity post-creation mutators, applied in order.
    customizers:
        Callables ``(shape, node)`` applied to every named node after the
        per-identity hooks.
    enum_values:
        Explicit enum values per identity, taking precedence over the
        descriptor and the metadata provider.
    """

    def __init__(
        self,
        *,
        strip_prefixes: Iterable[str] = (),
        metadata: MetadataProvider | None = None,
        hooks: Mapping[Identity, Sequence[SchemaHook]] | None = None,
        customizers: Iterable[SchemaCustomizer] = (),
        enum_values: Mapping[Identity, Sequence[Any]] | None = None,
    ):
        self.strip_prefixes = tuple(strip_prefixes)
        self.metadata = metadata if metadata is not None else NullMetadataProvider()
        self._hooks: dict[Identity, list[SchemaHook]] = {
            identity: list(items) for identity, items in (hooks or {}).items()
        }
        self._customizers = list(customizers)
        self._enum_values = {identity: list(values) for identity, values in (enum_values or {}).items()}
        self._state = _State(schemas={}, owners={}, embedded_only=set(), anonymous={})
        self._in_hook = False

    # --------------------------------------------------------------------- API
    def __len__(self) -> int:
        return len(self.schemas())

    def __contains__(self, name: object) -> bool:
        return name in self._state.schemas and name not in self._state.embedded_only

    def get(self, name: str) -> SchemaNode | None:
        if name in self:
            return self._state.schemas[name]
        return None

    def schemas(self) -> dict[str, SchemaNode]:
        """Snapshot of every visible named schema, sorted by name."""

        return {
            name: node
            for name, node in sorted(self._state.schemas.items())
            if name not in self._state.embedded_only
        }

    def add_hook(self, identity: Identity, hook: SchemaHook) -> None:
        self._hooks.setdefault(identity, []).append(hook)

    def compile(self, shape: Shape) -> SchemaNode:
        """Return the schema (or ``$ref``) for ``shape``, registering as needed.

        A failed call leaves the registry exactly as it was before the call.
        """

        if self._in_hook:
            raise HookError("schemas cannot be compiled from inside a customisation hook")
        saved = _State(
            schemas=dict(self._state.schemas),
            owners=dict(self._state.owners),
            embedded_only=set(self._state.embedded_only),
            anonymous=dict(self._state.anonymous),
        )
        try:
            return self._compile(shape, optional=False)
        except Exception:
            self._state = saved
            raise

    # ---------------------------------------------------------------- dispatch
    def _compile(self, shape: Shape, *, optional: bool) -> SchemaNode:
        if isinstance(shape, OptionalShape):
            return self._compile(shape.inner, optional=True)
        if isinstance(shape, PrimitiveShape):
            node = SchemaNode(type=shape.kind.schema_type)
        elif isinstance(shape, SequenceShape):
            node = SchemaNode(type="array", items=self._compile(shape.element, optional=False), nullable=True)
        elif isinstance(shape, DictShape):
            node = self._compile_dict(shape)
        elif isinstance(shape, EnumShape):
            node = self._compile_enum(shape)
        elif isinstance(shape, KnownAlias):
            node = self._compile_alias(shape)
        elif isinstance(shape, RecordShape):
            node = self._compile_record(shape)
        else:
            raise UnsupportedShapeError(f"no compilation rule for {type(shape).__name__}")

        if not optional:
            return node
        if node.is_reference:
            return SchemaNode(all_of=[node], nullable=True)
        node.nullable = True
        return node

    def _compile_dict(self, shape: DictShape) -> SchemaNode:
        key = shape.key
        if not (
            (isinstance(key, PrimitiveShape) and key.kind is PrimitiveKind.STRING)
            or (isinstance(key, EnumShape) and key.base is PrimitiveKind.STRING)
        ):
            raise UnsupportedKeyTypeError(f"dictionary keys must be text, got {key!r}")
        value = self._compile(shape.value, optional=False)
        return SchemaNode(type="object", additional_properties=value, nullable=True)

    # ------------------------------------------------------------------ naming
    def _name_for(self, shape: Shape, identity: Identity) -> str:
        if not identity.anonymous:
            return schema_name(identity, self.strip_prefixes)
        # Anonymous enums compare by value; anonymous records by instance.
        key = shape if isinstance(shape, EnumShape) else id(shape)
        seen = self._state.anonymous.get(key)
        if seen is not None:
            return seen[1]
        name = anonymous_name(len(self._state.schemas))
        self._state.anonymous[key] = (shape, name)
        return name

    def _lookup_existing(self, name: str, identity: Identity) -> bool:
        owner = self._state.owners.get(name)
        if owner is None:
            return False
        if owner != identity:
            raise NameCollisionError(name, owner, identity)
        LOGGER.debug("Reusing schema %s", name)
        return True

    def _bind(self, name: str, identity: Identity, node: SchemaNode) -> None:
        node.canonical_name = name
        self._state.schemas[name] = node
        self._state.owners[name] = identity
        LOGGER.debug("Registered schema %s for %s", name, identity)

    # ------------------------------------------------------------------- enums
    def _compile_enum(self, shape: EnumShape) -> SchemaNode:
        name = self._name_for(shape, shape.identity)
        if self._lookup_existing(name, shape.identity):
            return SchemaNode.reference(name)

        values = self._enum_values.get(shape.identity) or list(shape.values)
        if not values and not shape.identity.anonymous:
            values = list(self._metadata_call(self.metadata.get_enum_values, shape.identity))
        if not values:
            raise UnsupportedShapeError(f"enum {name} has no values")
        values = _dedupe_enum(name, values, shape.base)

        node = SchemaNode(type=shape.base.schema_type, enum_values=values)
        node.description = self._type_description(shape.identity)
        self._bind(name, shape.identity, node)
        self._finish(shape, shape.identity, node)
        return SchemaNode.reference(name)

    # ----------------------------------------------------------------- aliases
    def _compile_alias(self, shape: KnownAlias) -> SchemaNode:
        if not shape.referenceable:
            node = shape.schema.model_copy(deep=True)
            return self._apply_hooks(shape, shape.identity, node, register=False)

        name = self._name_for(shape, shape.identity)
        if self._lookup_existing(name, shape.identity):
            return SchemaNode.reference(name)
        node = shape.schema.model_copy(deep=True)
        self._bind(name, shape.identity, node)
        self._finish(shape, shape.identity, node)
        return SchemaNode.reference(name)

    # ----------------------------------------------------------------- records
    def _compile_record(self, shape: RecordShape, *, embedded: bool = False) -> SchemaNode:
        identity = shape.identity
        name = self._name_for(shape, identity)
        if self._lookup_existing(name, identity):
            if not embedded:
                self._state.embedded_only.discard(name)
            return SchemaNode.reference(name)

        node = SchemaNode(type="object", properties={})
        node.description = self._type_description(identity)
        # Bound before the fields so that cycles terminate on the lookup above.
        self._bind(name, identity, node)
        if embedded:
            self._state.embedded_only.add(name)

        required: list[str] = []
        for member in shape.fields:
            if member.embedded:
                self._splice(node, required, member)
            else:
                self._add_property(node, required, identity, member)
        node.required = required or None

        self._finish(shape, identity, node)
        return SchemaNode.reference(name)

    def _splice(self, node: SchemaNode, required: list[str], member: Field) -> None:
        target = member.shape
        if isinstance(target, OptionalShape):
            target = target.inner
        if not isinstance(target, RecordShape):
            raise UnsupportedShapeError(f"embedded field {member.name!r} is not a record")

        ref = self._compile_record(target, embedded=True)
        embedded = self._state.schemas[ref.referenced_name]
        embedded_required = set(embedded.required or ())
        for prop_name, prop in (embedded.properties or {}).items():
            _assign(node, required, prop_name, prop.model_copy(deep=True), prop_name in embedded_required)

    def _add_property(self, node: SchemaNode, required: list[str], owner: Identity, member: Field) -> None:
        prop = self._compile(member.shape, optional=False)

        description = member.description
        if description is None and not owner.anonymous:
            description = self._metadata_call(
                self.metadata.get_field_description, owner.namespace, owner.name, member.declared_name
            )
        deprecated = bool(description) and _is_deprecated(description)
        if description or member.example is not None:
            if prop.is_reference:
                prop = SchemaNode(all_of=[prop])
            if description:
                prop.description = description
            if member.example is not None:
                prop.example = member.example
            if deprecated:
                prop.deprecated = True
        _assign(node, required, member.name, prop, member.required)

    # ------------------------------------------------------------------- hooks
    def _finish(self, shape: Shape, identity: Identity, node: SchemaNode) -> None:
        result = self._apply_hooks(shape, identity, node, register=True)
        if result is not node:
            result.canonical_name = node.canonical_name
            self._state.schemas[node.canonical_name] = result

    def _apply_hooks(self, shape: Shape, identity: Identity, node: SchemaNode, *, register: bool) -> SchemaNode:
        hooks: list[SchemaHook] = []
        if isinstance(shape, RecordShape) and shape.customize is not None:
            hooks.append(shape.customize)
        hooks.extend(self._hooks.get(identity, ()))

        self._in_hook = True
        try:
            for hook in hooks:
                result = hook(node)
                if result is not None:
                    node = result
            if register:
                for customizer in self._customizers:
                    result = customizer(shape, node)
                    if result is not None:
                        node = result
        finally:
            self._in_hook = False
        return node

    # ---------------------------------------------------------------- metadata
    def _type_description(self, identity: Identity) -> str | None:
        if identity.anonymous:
            return None
        return self._metadata_call(self.metadata.get_type_description, identity.namespace, identity.name)

    @staticmethod
    def _metadata_call(func: Callable[..., Any], *args: Any) -> Any:
        try:
            return func(*args)
        except MetadataLookupError:
            raise
        except Exception as exc:
            raise MetadataLookupError(f"metadata lookup {func.__name__}{args} failed: {exc}") from exc


def _assign(node: SchemaNode, required: list[str], name: str, prop: SchemaNode, is_required: bool) -> None:
    """Set a property; a later assignment of the same name replaces the earlier one."""

    if node.properties is None:
        node.properties = {}
    node.properties[name] = prop
    if name in required:
        required.remove(name)
    if is_required:
        required.append(name)


def _is_deprecated(text: str) -> bool:
    return any(line.strip().startswith("Deprecated:") for line in text.splitlines())


def _dedupe_enum(name: str, values: Sequence[Any], base: PrimitiveKind) -> list[Any]:
    expected: tuple[type, ...] = (str,) if base is PrimitiveKind.STRING else (int,)
    result: list[Any] = []
    for value in values:
        if not isinstance(value, expected) or isinstance(value, bool):
            raise UnsupportedShapeError(f"enum {name} value {value!r} does not match base {base.value}")
        if value in result:
            LOGGER.warning("Dropping duplicate value %r from enum %s", value, name)
            continue
        result.append(value)
    return result
