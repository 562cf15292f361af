"""Encoding of assembled documents and loading of sidecar comment maps."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .model import Document

__all__ = [
    "document_to_json",
    "document_to_yaml",
    "write_document",
    "load_comment_map",
]

LOGGER = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


def document_to_json(document: Document, *, indent: int | None = 2) -> str:
    return json.dumps(document.to_dict(), indent=indent) + "\n"


def document_to_yaml(document: Document) -> str:
    return yaml.safe_dump(document.to_dict(), sort_keys=False, allow_unicode=True)


def write_document(document: Document, path: str | Path, *, fmt: str | None = None) -> Path:
    """Write ``document`` to ``path`` as JSON or YAML.

    The format follows ``fmt`` when given, otherwise the file suffix
    (``.yaml``/``.yml`` for YAML, anything else for JSON).
    """

    path = Path(path)
    if fmt is None:
        fmt = "yaml" if path.suffix.lower() in _YAML_SUFFIXES else "json"
    if fmt not in {"json", "yaml"}:
        raise ValueError(f"unknown document format {fmt!r}")

    text = document_to_yaml(document) if fmt == "yaml" else document_to_json(document)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    LOGGER.info("Wrote %s document to %s", fmt, path)
    return path


def load_comment_map(path: str | Path) -> dict[str, str]:
    """Read a ``{"<namespace>.<Type>[.<field>]": text}`` map from JSON or YAML."""

    path = Path(path)
    text = path.read_text(encoding="utf-8")
    raw: Any = yaml.safe_load(text) if path.suffix.lower() in _YAML_SUFFIXES else json.loads(text)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"comment map in {path} must be a mapping, got {type(raw).__name__}")
    return {str(key): str(value) for key, value in raw.items()}
