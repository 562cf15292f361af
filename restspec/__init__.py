"""Public interface for the restspec package."""

from .api import API
from .descriptors import (
    Embed,
    Field,
    Identity,
    KnownAlias,
    PrimitiveKind,
    describe,
)
from .errors import (
    HookError,
    MetadataLookupError,
    NameCollisionError,
    RestSpecError,
    UnsupportedKeyTypeError,
    UnsupportedShapeError,
    ValidationFailedError,
)
from .metadata import CommentMetadataProvider, StaticMetadataProvider
from .model import Document, SchemaNode, oauth2_code_flow
from .registry import SchemaRegistry
from .routes import PathParam, QueryParam, Route

__all__ = [
    "API",
    "CommentMetadataProvider",
    "Document",
    "Embed",
    "Field",
    "HookError",
    "Identity",
    "KnownAlias",
    "MetadataLookupError",
    "NameCollisionError",
    "PathParam",
    "PrimitiveKind",
    "QueryParam",
    "RestSpecError",
    "Route",
    "SchemaNode",
    "SchemaRegistry",
    "StaticMetadataProvider",
    "UnsupportedKeyTypeError",
    "UnsupportedShapeError",
    "ValidationFailedError",
    "describe",
    "oauth2_code_flow",
]
__version__ = "0.1.0"
