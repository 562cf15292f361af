"""Structural validation of assembled documents."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator, Protocol, runtime_checkable

from .errors import ValidationFailedError, ValidationIssue
from .model import REF_PREFIX, Document

__all__ = ["DocumentValidator", "ReferenceValidator", "validate_document"]

LOGGER = logging.getLogger(__name__)

_SCHEMA_TYPES = {"string", "integer", "number", "boolean", "array", "object"}
_TEMPLATE_PARAM = re.compile(r"\{([^{}]+)\}")


@runtime_checkable
class DocumentValidator(Protocol):
    def validate(self, document: Document) -> None:
        """Raise :class:`ValidationFailedError` when ``document`` is inconsistent."""


class ReferenceValidator:
    """Check that a document is internally consistent.

    Covered: every ``$ref`` resolves, schema types and patterns are valid,
    arrays declare items, path templates and path parameters agree, every
    operation has a response, operation ids are unique and security
    requirements name declared schemes.
    """

    def validate(self, document: Document) -> None:
        issues = list(self.issues(document.to_dict()))
        if issues:
            for issue in issues:
                LOGGER.debug("Validation issue: %s", issue)
            raise ValidationFailedError(issues)

    def issues(self, raw: dict[str, Any]) -> Iterator[ValidationIssue]:
        components = raw.get("components", {})
        schemas = components.get("schemas", {})
        security_schemes = components.get("securitySchemes", {})

        for name, schema in schemas.items():
            yield from _schema_issues(schema, f"components.schemas.{name}", schemas)

        operation_ids: dict[str, str] = {}
        for path, item in raw.get("paths", {}).items():
            template = set(_TEMPLATE_PARAM.findall(path))
            for method, operation in item.items():
                where = f"paths.{path}.{method}"
                declared: set[str] = set()
                for index, param in enumerate(operation.get("parameters", [])):
                    param_where = f"{where}.parameters[{index}]"
                    if param["in"] == "path":
                        declared.add(param["name"])
                        if not param.get("required"):
                            yield ValidationIssue(param_where, "path parameters must be required")
                        if param["name"] not in template:
                            yield ValidationIssue(param_where, f"{param['name']!r} is not in the path template")
                    if "schema" in param:
                        yield from _schema_issues(param["schema"], f"{param_where}.schema", schemas)
                for missing in sorted(template - declared):
                    yield ValidationIssue(where, f"path parameter {missing!r} is not declared")

                body = operation.get("requestBody")
                if body is not None:
                    for media, content in body.get("content", {}).items():
                        if "schema" in content:
                            yield from _schema_issues(content["schema"], f"{where}.requestBody.{media}", schemas)

                responses = operation.get("responses", {})
                if not responses:
                    yield ValidationIssue(where, "operation has no responses")
                for status, response in responses.items():
                    for media, content in (response.get("content") or {}).items():
                        if "schema" in content:
                            yield from _schema_issues(
                                content["schema"], f"{where}.responses.{status}.{media}", schemas
                            )

                operation_id = operation.get("operationId")
                if operation_id:
                    if operation_id in operation_ids:
                        yield ValidationIssue(
                            where, f"operationId {operation_id!r} already used by {operation_ids[operation_id]}"
                        )
                    else:
                        operation_ids[operation_id] = where

                for requirement in operation.get("security", []):
                    for scheme in requirement:
                        if scheme not in security_schemes:
                            yield ValidationIssue(where, f"unknown security scheme {scheme!r}")


def validate_document(document: Document) -> None:
    ReferenceValidator().validate(document)


def _schema_issues(schema: dict[str, Any], where: str, schemas: dict[str, Any]) -> Iterator[ValidationIssue]:
    ref = schema.get("$ref")
    if ref is not None:
        if not ref.startswith(REF_PREFIX) or ref[len(REF_PREFIX):] not in schemas:
            yield ValidationIssue(where, f"unresolved reference {ref!r}")
        return

    kind = schema.get("type")
    if kind is not None and kind not in _SCHEMA_TYPES:
        yield ValidationIssue(where, f"unknown schema type {kind!r}")
    if kind == "array" and "items" not in schema:
        yield ValidationIssue(where, "array schema without items")

    pattern = schema.get("pattern")
    if pattern is not None:
        try:
            re.compile(pattern)
        except re.error as exc:
            yield ValidationIssue(where, f"malformed pattern {pattern!r}: {exc}")

    for name, prop in (schema.get("properties") or {}).items():
        yield from _schema_issues(prop, f"{where}.properties.{name}", schemas)
    for name in schema.get("required") or ():
        if name not in (schema.get("properties") or {}):
            yield ValidationIssue(where, f"required property {name!r} is not defined")
    if isinstance(schema.get("items"), dict):
        yield from _schema_issues(schema["items"], f"{where}.items", schemas)
    if isinstance(schema.get("additionalProperties"), dict):
        yield from _schema_issues(schema["additionalProperties"], f"{where}.additionalProperties", schemas)
    for index, member in enumerate(schema.get("allOf") or ()):
        yield from _schema_issues(member, f"{where}.allOf[{index}]", schemas)
