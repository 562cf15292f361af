"""Canonical schema names for type identities."""

from __future__ import annotations

from typing import Iterable

from .descriptors import Identity

__all__ = ["normalize", "schema_name", "anonymous_name"]

# Namespace separators and generic-parameter delimiters are not valid in a
# components key, so they collapse onto underscores.
_NORMALIZER = str.maketrans({"/": "_", ".": "_", "[": "_", "]": "_", ",": "_", " ": None, "'": None})


def normalize(name: str) -> str:
    return name.translate(_NORMALIZER)


def anonymous_name(registered_count: int) -> str:
    return f"AnonymousType{registered_count}"


def schema_name(identity: Identity, strip_prefixes: Iterable[str] = ()) -> str:
    """Return the canonical schema name for ``identity``.

    The namespace is dropped when it is empty or starts with one of
    ``strip_prefixes``; otherwise it is kept as ``namespace/name``.
    Anonymous identities have no canonical name and must be named by the
    registry with :func:`anonymous_name`.
    """

    if identity.anonymous:
        raise ValueError("anonymous identities are named by the registry")
    namespace = identity.namespace
    if not namespace or any(namespace.startswith(prefix) for prefix in strip_prefixes):
        return normalize(identity.name)
    return normalize(f"{namespace}/{identity.name}")
