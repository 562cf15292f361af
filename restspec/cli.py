"""Command-line interface entry points for restspec."""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .api import API
from .comments import extract_comments
from .errors import RestSpecError
from .io import document_to_json, document_to_yaml, write_document

__all__ = ["main", "load_api"]

LOGGER = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else getattr(logging, args.log_level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format="%(levelname)s:%(name)s:%(message)s")

    try:
        if args.command == "spec":
            return _cmd_spec(args)
        if args.command == "comments":
            return _cmd_comments(args)
    except RestSpecError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    parser.error("Unknown command")
    return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restspec",
        description="Build OpenAPI documents from declared routes and models.",
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        help="Set logging level (debug, info, warning, error, critical).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    spec = subparsers.add_parser("spec", help="Build and print the document of an API object")
    spec.add_argument(
        "target",
        help="API location as module:attribute (an API or a factory returning one); the module must be on PYTHONPATH",
    )
    spec.add_argument("--format", choices=("json", "yaml"), help="Output format (default: from --output suffix, else json)")
    spec.add_argument("--output", type=Path, help="Write the document to this file instead of stdout")
    spec.add_argument(
        "--strip-prefix",
        action="append",
        default=[],
        metavar="PREFIX",
        help="Additional namespace prefix to drop from schema names (repeatable)",
    )

    comments = subparsers.add_parser("comments", help="Print the documentation comments of a module as JSON")
    comments.add_argument("module", help="Importable module name")

    return parser


def load_api(target: str) -> API:
    """Resolve ``module:attribute`` to an :class:`API` instance.

    The module must already be importable, e.g. through ``PYTHONPATH``.
    """

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise SystemExit(f"target must look like module:attribute, got {target!r}")

    module = importlib.import_module(module_name)
    obj: Any = module
    for part in attribute.split("."):
        obj = getattr(obj, part)
    if not isinstance(obj, API) and callable(obj):
        obj = obj()
    if not isinstance(obj, API):
        raise SystemExit(f"{target} did not resolve to an API (got {type(obj).__name__})")
    return obj


def _cmd_spec(args: argparse.Namespace) -> int:
    api = load_api(args.target)
    api.strip_prefixes.extend(args.strip_prefix)
    document = api.spec()

    if args.output:
        write_document(document, args.output, fmt=args.format)
        return 0

    text = document_to_yaml(document) if args.format == "yaml" else document_to_json(document)
    sys.stdout.write(text)
    return 0


def _cmd_comments(args: argparse.Namespace) -> int:
    comments = extract_comments(args.module)
    LOGGER.info("Found %d comments in %s", len(comments), args.module)
    print(json.dumps(comments, indent=2, sort_keys=True))
    return 0
