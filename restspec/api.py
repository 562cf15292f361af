"""Public facade: declare routes and models, then build the document."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from .assembler import build_paths
from .descriptors import EnumShape, Identity, KnownAlias, RecordShape, Shape, describe
from .metadata import MetadataProvider
from .model import Components, Document, Info, SchemaNode, SecurityScheme
from .registry import SchemaCustomizer, SchemaHook, SchemaRegistry
from .routes import Route, RouteTable
from .validation import DocumentValidator, ReferenceValidator

__all__ = ["API"]

LOGGER = logging.getLogger(__name__)


class API:
    """An API definition: a route table plus model registrations.

    Parameters
    ----------
    name:
        Document title.
    version:
        Document version, ``0.0.0`` unless given.
    strip_prefixes:
        Namespace prefixes omitted from schema names, e.g. ``["myapp"]``
        turns ``myapp.models.User`` into ``User``.
    metadata:
        Provider of descriptions and enum values; see :mod:`restspec.metadata`.
    validator:
        Document validator run by :meth:`spec`; defaults to
        :class:`~restspec.validation.ReferenceValidator`.
    customizers:
        Callables ``(shape, node)`` applied to every named schema.
    """

    def __init__(
        self,
        name: str,
        *,
        version: str = "0.0.0",
        description: str | None = None,
        strip_prefixes: Iterable[str] = (),
        metadata: MetadataProvider | None = None,
        validator: DocumentValidator | None = None,
        customizers: Iterable[SchemaCustomizer] = (),
    ):
        self.name = name
        self.version = version
        self.description = description
        self.strip_prefixes = list(strip_prefixes)
        self.metadata = metadata
        self.validator = validator if validator is not None else ReferenceValidator()
        self.customizers = list(customizers)
        self.routes = RouteTable()
        self.security_schemes: dict[str, SecurityScheme] = {}
        self._models: list[Shape] = []
        self._hooks: dict[Identity, list[SchemaHook]] = {}
        self._enum_values: dict[Identity, list[Any]] = {}

    # ------------------------------------------------------------------ routes
    def route(self, method: str, pattern: str) -> Route:
        return self.routes.upsert(method, pattern)

    def get(self, pattern: str) -> Route:
        return self.route("GET", pattern)

    def head(self, pattern: str) -> Route:
        return self.route("HEAD", pattern)

    def post(self, pattern: str) -> Route:
        return self.route("POST", pattern)

    def put(self, pattern: str) -> Route:
        return self.route("PUT", pattern)

    def patch(self, pattern: str) -> Route:
        return self.route("PATCH", pattern)

    def delete(self, pattern: str) -> Route:
        return self.route("DELETE", pattern)

    def connect(self, pattern: str) -> Route:
        return self.route("CONNECT", pattern)

    def options(self, pattern: str) -> Route:
        return self.route("OPTIONS", pattern)

    def trace(self, pattern: str) -> Route:
        return self.route("TRACE", pattern)

    def merge(self, route: Route) -> Route:
        """Merge a route from another source; existing settings are kept."""

        return self.routes.merge(route)

    # ------------------------------------------------------------------ models
    def register_model(
        self,
        model: Any,
        *hooks: SchemaHook,
        description: str | None = None,
        enum_values: Sequence[Any] | None = None,
    ) -> Shape:
        """Register a model so it is always emitted, optionally customised.

        ``hooks`` run once after the schema is built, in registration order;
        ``description`` replaces the generated description; ``enum_values``
        override the values of an enum model.
        """

        shape = describe(model)
        identity = _identity(shape)
        if identity is None:
            raise TypeError(f"only named records, enums and aliases can be registered, got {shape!r}")
        if description is not None:
            self._hooks.setdefault(identity, []).append(_describe_as(description))
        self._hooks.setdefault(identity, []).extend(hooks)
        if enum_values is not None:
            self._enum_values[identity] = list(enum_values)
        self._models.append(shape)
        return shape

    def add_security_scheme(self, name: str, scheme: SecurityScheme) -> None:
        self.security_schemes[name] = scheme

    # -------------------------------------------------------------------- spec
    def new_registry(self) -> SchemaRegistry:
        return SchemaRegistry(
            strip_prefixes=self.strip_prefixes,
            metadata=self.metadata,
            hooks=self._hooks,
            customizers=self.customizers,
            enum_values=self._enum_values,
        )

    def spec(self) -> Document:
        """Compile every model and route into a validated document."""

        registry = self.new_registry()
        for shape in self._models:
            registry.compile(shape)
        paths = build_paths(self.routes, registry)

        document = Document(
            info=Info(title=self.name, version=self.version, description=self.description),
            paths=paths,
            components=Components(
                schemas=registry.schemas(),
                security_schemes=dict(self.security_schemes) or None,
            ),
        )
        self.validator.validate(document)
        LOGGER.info(
            "Built spec %s: paths=%d operations=%d schemas=%d",
            self.name,
            len(document.paths),
            len(document.operations()),
            len(document.components.schemas),
        )
        return document


def _identity(shape: Shape) -> Identity | None:
    if isinstance(shape, (RecordShape, EnumShape, KnownAlias)) and not shape.identity.anonymous:
        return shape.identity
    return None


def _describe_as(description: str) -> SchemaHook:
    def hook(node: SchemaNode) -> None:
        node.description = description

    return hook
