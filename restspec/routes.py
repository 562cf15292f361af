"""Route table: patterns, methods and the models attached to each route."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from pydantic import BaseModel, ConfigDict, field_validator

from .descriptors import PrimitiveKind, Shape, describe
from .model import Parameter

__all__ = [
    "METHODS",
    "PathParam",
    "QueryParam",
    "Params",
    "Route",
    "RouteTable",
]

LOGGER = logging.getLogger(__name__)

# Output order of operations within a path item.
METHODS: tuple[str, ...] = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "CONNECT", "OPTIONS", "TRACE")


class _ParamBase(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    description: str = ""
    regexp: str = ""
    customize: Callable[[Parameter], None] | None = None

    @field_validator("regexp")
    @classmethod
    def _check_regexp(cls, value: str) -> str:
        if value:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid parameter pattern {value!r}: {exc}") from exc
        return value


class PathParam(_ParamBase):
    """A ``{placeholder}`` in the route pattern; always required."""


class QueryParam(_ParamBase):
    required: bool = False
    allow_empty: bool = False
    type: PrimitiveKind = PrimitiveKind.STRING
    example: Any = None


@dataclass(slots=True)
class Params:
    path: dict[str, PathParam] = field(default_factory=dict)
    query: dict[str, QueryParam] = field(default_factory=dict)


@dataclass(slots=True)
class Route:
    """One ``(method, pattern)`` entry with a fluent configuration API."""

    method: str
    pattern: str
    params: Params = field(default_factory=Params)
    request: Shape | None = None
    responses: dict[int, Shape | None] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    operation_id: str = ""
    description: str = ""
    security: list[dict[str, list[str]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.method = self.method.upper()

    def has_path_parameter(self, name: str, param: PathParam | None = None) -> Route:
        self.params.path[name] = param or PathParam()
        return self

    def has_query_parameter(self, name: str, param: QueryParam | None = None) -> Route:
        self.params.query[name] = param or QueryParam()
        return self

    def has_request_model(self, model: Any) -> Route:
        self.request = describe(model)
        return self

    def has_response_model(self, status: int, model: Any = None) -> Route:
        self.responses[int(status)] = None if model is None else describe(model)
        return self

    def has_tags(self, tags: list[str]) -> Route:
        self.tags = list(tags)
        return self

    def has_operation_id(self, operation_id: str) -> Route:
        self.operation_id = operation_id
        return self

    def has_description(self, description: str) -> Route:
        self.description = description
        return self

    def requires_security(self, requirement: dict[str, list[str]]) -> Route:
        self.security.append({name: list(scopes) for name, scopes in requirement.items()})
        return self

    def merge(self, other: Route) -> Route:
        """Fold ``other`` into this route without overwriting anything set here."""

        self.request = self.request if self.request is not None else other.request
        self.tags = self.tags or list(other.tags)
        self.operation_id = self.operation_id or other.operation_id
        self.description = self.description or other.description
        self.security = self.security or list(other.security)
        for name, path_param in other.params.path.items():
            self.params.path.setdefault(name, path_param)
        for name, query_param in other.params.query.items():
            self.params.query.setdefault(name, query_param)
        for status, shape in other.responses.items():
            self.responses.setdefault(status, shape)
        return self


class RouteTable:
    """Ordered ``pattern -> method -> Route`` mapping with upsert semantics."""

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, Route]] = {}

    def __len__(self) -> int:
        return sum(len(methods) for methods in self._routes.values())

    def __iter__(self) -> Iterator[Route]:
        for methods in self._routes.values():
            yield from methods.values()

    def patterns(self) -> list[str]:
        return list(self._routes)

    def methods(self, pattern: str) -> dict[str, Route]:
        return dict(self._routes.get(pattern, {}))

    def get(self, method: str, pattern: str) -> Route | None:
        return self._routes.get(pattern, {}).get(method.upper())

    def upsert(self, method: str, pattern: str) -> Route:
        methods = self._routes.setdefault(pattern, {})
        method = method.upper()
        if method not in methods:
            methods[method] = Route(method=method, pattern=pattern)
        return methods[method]

    def merge(self, route: Route) -> Route:
        existing = self.get(route.method, route.pattern)
        if existing is None:
            LOGGER.debug("Adding route %s %s", route.method, route.pattern)
            self._routes.setdefault(route.pattern, {})[route.method] = route
            return route
        LOGGER.debug("Merging into route %s %s", route.method, route.pattern)
        return existing.merge(route)
