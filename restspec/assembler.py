"""Walk a route table and assemble the operations of a document."""

from __future__ import annotations

import logging
import re
from http import HTTPStatus

from .errors import ValidationFailedError, ValidationIssue
from .model import MediaType, Operation, Parameter, RequestBody, Response, SchemaNode
from .registry import SchemaRegistry
from .routes import METHODS, PathParam, Route, RouteTable

__all__ = ["JSON_CONTENT", "split_query", "split_pattern", "build_operation", "build_paths"]

LOGGER = logging.getLogger(__name__)

JSON_CONTENT = "application/json"

# ``{name}`` or ``{name:regexp}``; the regexp may itself contain braces.
_PLACEHOLDER = re.compile(r"\{([^{}:]+)(?::((?:[^{}]|\{[^{}]*\})+))?\}")


def split_query(pattern: str) -> tuple[str, str]:
    """Split ``pattern`` at the first ``?`` that is not inside a placeholder."""

    depth = 0
    for index, char in enumerate(pattern):
        if char == "{":
            depth += 1
        elif char == "}":
            depth = max(depth - 1, 0)
        elif char == "?" and depth == 0:
            return pattern[:index], pattern[index + 1:]
    return pattern, ""


def split_pattern(pattern: str) -> tuple[str, dict[str, str]]:
    """Return the document path for ``pattern`` and its inline regexps.

    The query string is dropped and ``{id:\\d+}`` becomes ``{id}``.
    """

    path = split_query(pattern)[0] or "/"
    regexps: dict[str, str] = {}

    def _replace(match: re.Match[str]) -> str:
        name, regexp = match.group(1), match.group(2)
        regexps[name] = regexp or ""
        return "{" + name + "}"

    return _PLACEHOLDER.sub(_replace, path), regexps


def build_operation(route: Route, registry: SchemaRegistry) -> Operation:
    _, inline = split_pattern(route.pattern)
    operation = Operation(
        tags=list(route.tags) or None,
        description=route.description or None,
        operation_id=route.operation_id or None,
        security=[dict(item) for item in route.security] or None,
    )

    path_params = dict(route.params.path)
    for name in inline:
        path_params.setdefault(name, PathParam())

    parameters: list[Parameter] = []
    for name in sorted(path_params):
        param = path_params[name]
        regexp = param.regexp or inline.get(name, "")
        parameter = Parameter(
            name=name,
            location="path",
            description=param.description or None,
            required=True,
            schema_=SchemaNode(type="string", pattern=regexp or None),
        )
        if param.customize is not None:
            param.customize(parameter)
        parameters.append(parameter)

    for name in sorted(route.params.query):
        param = route.params.query[name]
        parameter = Parameter(
            name=name,
            location="query",
            description=param.description or None,
            required=param.required,
            allow_empty_value=param.allow_empty or None,
            schema_=SchemaNode(type=param.type.schema_type, pattern=param.regexp or None),
            example=param.example,
        )
        if param.customize is not None:
            param.customize(parameter)
        parameters.append(parameter)
    operation.parameters = parameters or None

    if route.request is not None:
        operation.request_body = RequestBody(
            content={JSON_CONTENT: MediaType(schema_=registry.compile(route.request))},
        )

    for status in sorted(route.responses):
        shape = route.responses[status]
        response = Response(description=_status_text(status))
        if shape is not None:
            response.content = {JSON_CONTENT: MediaType(schema_=registry.compile(shape))}
        operation.responses[str(status)] = response
    return operation


def build_paths(routes: RouteTable, registry: SchemaRegistry) -> dict[str, dict[str, Operation]]:
    """Assemble every route; two patterns that share a path must not share a method."""

    paths: dict[str, dict[str, Operation]] = {}
    for pattern in routes.patterns():
        path, _ = split_pattern(pattern)
        item = paths.setdefault(path, {})
        methods = routes.methods(pattern)
        for method in sorted(methods, key=_method_order):
            key = method.lower()
            if key in item:
                raise ValidationFailedError(
                    [ValidationIssue(f"paths.{path}.{key}", f"duplicate operation from pattern {pattern!r}")]
                )
            item[key] = build_operation(methods[method], registry)
            LOGGER.debug("Assembled %s %s", method, path)
    return paths


def _method_order(method: str) -> tuple[int, str]:
    return (METHODS.index(method) if method in METHODS else len(METHODS), method)


def _status_text(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""
