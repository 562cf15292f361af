"""Metadata providers: documentation text and enum values for type identities."""

from __future__ import annotations

import enum
import importlib
import logging
from typing import Any, Callable, Mapping, Protocol, Sequence, runtime_checkable

from .descriptors import Identity
from .errors import MetadataLookupError

__all__ = [
    "MetadataProvider",
    "NullMetadataProvider",
    "StaticMetadataProvider",
    "CommentMetadataProvider",
    "enum_members",
]

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class MetadataProvider(Protocol):
    def get_type_description(self, namespace: str, name: str) -> str | None: ...

    def get_field_description(self, namespace: str, name: str, field: str) -> str | None: ...

    def get_enum_values(self, identity: Identity) -> Sequence[Any]: ...


class NullMetadataProvider:
    """Provider that knows nothing; the default for hand-declared descriptors."""

    def get_type_description(self, namespace: str, name: str) -> str | None:
        return None

    def get_field_description(self, namespace: str, name: str, field: str) -> str | None:
        return None

    def get_enum_values(self, identity: Identity) -> Sequence[Any]:
        return ()


class StaticMetadataProvider:
    """Provider backed by plain mappings, e.g. a sidecar comments file.

    ``comments`` is keyed ``"<namespace>.<Type>"`` for types and
    ``"<namespace>.<Type>.<field>"`` for fields; ``enums`` by the same type key.
    """

    def __init__(
        self,
        comments: Mapping[str, str] | None = None,
        enums: Mapping[str, Sequence[Any]] | None = None,
    ):
        self.comments = dict(comments or {})
        self.enums = {key: list(values) for key, values in (enums or {}).items()}

    def get_type_description(self, namespace: str, name: str) -> str | None:
        return self.comments.get(_key(namespace, name))

    def get_field_description(self, namespace: str, name: str, field: str) -> str | None:
        return self.comments.get(_key(namespace, name, field))

    def get_enum_values(self, identity: Identity) -> Sequence[Any]:
        return self.enums.get(_key(identity.namespace, identity.name), ())


class CommentMetadataProvider:
    """Provider reading comments from module source, one load per namespace.

    Parameters
    ----------
    loader:
        Callable returning the comment map of a module name.  Defaults to
        :func:`restspec.comments.extract_comments`.  It is called at most
        once per namespace; the result is cached for the provider's lifetime.
    """

    def __init__(self, loader: Callable[[str], Mapping[str, str]] | None = None):
        if loader is None:
            from .comments import extract_comments

            loader = extract_comments
        self._loader = loader
        self._cache: dict[str, Mapping[str, str]] = {}

    def comments_for(self, namespace: str) -> Mapping[str, str]:
        if namespace not in self._cache:
            LOGGER.debug("Loading comments for namespace %s", namespace or "<empty>")
            try:
                self._cache[namespace] = self._loader(namespace) if namespace else {}
            except MetadataLookupError:
                raise
            except Exception as exc:
                raise MetadataLookupError(f"could not load comments for {namespace!r}: {exc}") from exc
        return self._cache[namespace]

    def get_type_description(self, namespace: str, name: str) -> str | None:
        return self.comments_for(namespace).get(_key(namespace, name))

    def get_field_description(self, namespace: str, name: str, field: str) -> str | None:
        return self.comments_for(namespace).get(_key(namespace, name, field))

    def get_enum_values(self, identity: Identity) -> Sequence[Any]:
        return enum_members(identity)


def enum_members(identity: Identity) -> list[Any]:
    """Return the member values of the ``Enum`` class named by ``identity``."""

    try:
        target: Any = importlib.import_module(identity.namespace)
        for part in identity.name.split("."):
            target = getattr(target, part)
    except (ImportError, AttributeError) as exc:
        raise MetadataLookupError(f"cannot resolve enum {identity}: {exc}") from exc
    if not (isinstance(target, type) and issubclass(target, enum.Enum)):
        raise MetadataLookupError(f"{identity} is not an Enum")
    return [member.value for member in target]


def _key(*parts: str) -> str:
    return ".".join(part for part in parts if part)
