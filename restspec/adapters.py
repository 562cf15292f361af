"""Route adapters: pull route presence from external routers.

An adapter yields :class:`RouteInfo` tuples.  Only the presence of routes and
parameters is merged into the API; descriptions, types and constraints stay
under the control of explicit declarations.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Iterator, NamedTuple
from urllib.parse import parse_qsl

from .assembler import split_pattern, split_query
from .routes import Params, PathParam, QueryParam, Route

__all__ = ["RouteInfo", "parse_pattern", "merge", "flask_routes", "merge_flask"]

LOGGER = logging.getLogger(__name__)

# Werkzeug rule variables: ``<name>`` or ``<converter:name>``.
_FLASK_VARIABLE = re.compile(r"<(?:[^<>:]+:)?([^<>]+)>")
_FLASK_SKIPPED_METHODS = {"HEAD", "OPTIONS"}


class RouteInfo(NamedTuple):
    method: str
    pattern: str
    path_params: tuple[str, ...] = ()
    query_params: tuple[str, ...] = ()


def parse_pattern(method: str, pattern: str) -> RouteInfo:
    """Return the placeholders used by a ``/a/{id}?q={q}`` style pattern."""

    path, query = split_query(pattern)
    _, regexps = split_pattern(path)
    query_params = []
    for _, value in parse_qsl(query, keep_blank_values=True):
        name = _placeholder(value)
        if name is not None:
            query_params.append(name)
    return RouteInfo(method.upper(), pattern, tuple(regexps), tuple(query_params))


def merge(api: Any, routes: Iterable[RouteInfo | tuple[str, str]]) -> int:
    """Merge adapter output into ``api``; returns the number of routes seen.

    Plain ``(method, pattern)`` pairs are parsed with :func:`parse_pattern`.
    """

    count = 0
    for entry in routes:
        info = entry if isinstance(entry, RouteInfo) else parse_pattern(*entry)
        params = Params(
            path={name: PathParam() for name in info.path_params},
            query={name: QueryParam() for name in info.query_params},
        )
        api.merge(Route(method=info.method, pattern=info.pattern, params=params))
        count += 1
    LOGGER.info("Merged %d routes from adapter", count)
    return count


def flask_routes(app: Any) -> Iterator[RouteInfo]:
    """Yield the routes registered on a Flask application's ``url_map``."""

    try:
        from flask import Flask
    except ImportError as exc:  # pragma: no cover - optional dependency path
        raise ImportError("flask is required for the Flask adapter; install restspec[flask]") from exc

    if not isinstance(app, Flask):
        raise TypeError(f"expected a Flask application, got {type(app).__name__}")

    for rule in app.url_map.iter_rules():
        if rule.endpoint == "static":
            continue
        pattern = _FLASK_VARIABLE.sub(lambda match: "{" + match.group(1) + "}", rule.rule)
        path_params = tuple(sorted(rule.arguments))
        for method in sorted(rule.methods or ()):
            if method in _FLASK_SKIPPED_METHODS:
                continue
            yield RouteInfo(method, pattern, path_params, ())


def merge_flask(api: Any, app: Any) -> int:
    return merge(api, flask_routes(app))


def _placeholder(segment: str) -> str | None:
    if segment.startswith("{") and segment.endswith("}") and len(segment) > 2:
        return segment[1:-1]
    return None
