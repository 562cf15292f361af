"""Collect documentation text from Python module source.

The extractor reads a module with :mod:`ast` (the module is not executed) and
returns a flat map::

    "<module>.<Class>"          -> class docstring
    "<module>.<Class>.<attr>"   -> attribute docstring
    "<module>.<CONSTANT>"       -> module-level constant docstring

Attribute docstrings are string literals placed directly after an
assignment, as understood by Sphinx autodoc.
"""

from __future__ import annotations

import ast
import importlib.util
import inspect
import logging
from pathlib import Path
from typing import Iterator

__all__ = ["extract_comments", "extract_comments_from_source"]

LOGGER = logging.getLogger(__name__)


def extract_comments(module_name: str) -> dict[str, str]:
    """Return the comment map of an importable module.

    A name that does not resolve to a Python source file yields an empty map.
    """

    try:
        spec = importlib.util.find_spec(module_name)
    except (ImportError, ValueError):
        spec = None
    if spec is None or not spec.origin or not spec.origin.endswith(".py"):
        LOGGER.debug("No Python source for %s; no comments collected", module_name)
        return {}

    path = Path(spec.origin)
    source = path.read_text(encoding="utf-8")
    comments = extract_comments_from_source(module_name, source, filename=str(path))
    LOGGER.debug("Collected %d comments from %s", len(comments), path)
    return comments


def extract_comments_from_source(module_name: str, source: str, *, filename: str = "<string>") -> dict[str, str]:
    tree = ast.parse(source, filename=filename)
    comments: dict[str, str] = {}

    for name, doc in _attribute_docs(tree.body):
        comments[f"{module_name}.{name}"] = doc

    for qualname, node in _iter_classes(tree.body, prefix=""):
        key = f"{module_name}.{qualname}"
        doc = ast.get_docstring(node)
        if doc:
            comments[key] = doc
        for attr, attr_doc in _attribute_docs(node.body):
            comments[f"{key}.{attr}"] = attr_doc
    return comments


def _iter_classes(body: list[ast.stmt], prefix: str) -> Iterator[tuple[str, ast.ClassDef]]:
    for node in body:
        if isinstance(node, ast.ClassDef):
            qualname = f"{prefix}{node.name}"
            yield qualname, node
            yield from _iter_classes(node.body, prefix=f"{qualname}.")


def _attribute_docs(body: list[ast.stmt]) -> Iterator[tuple[str, str]]:
    for current, following in zip(body, body[1:]):
        names = _assigned_names(current)
        if not names:
            continue
        if not (
            isinstance(following, ast.Expr)
            and isinstance(following.value, ast.Constant)
            and isinstance(following.value.value, str)
        ):
            continue
        doc = inspect.cleandoc(following.value.value)
        if not doc:
            continue
        for name in names:
            yield name, doc


def _assigned_names(node: ast.stmt) -> list[str]:
    if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
        return [node.target.id]
    if isinstance(node, ast.Assign):
        return [target.id for target in node.targets if isinstance(target, ast.Name)]
    return []
