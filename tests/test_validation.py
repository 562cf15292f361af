"""Tests for structural document validation."""

from __future__ import annotations

import pytest

from restspec.errors import ValidationFailedError
from restspec.model import (
    Components,
    Document,
    Info,
    MediaType,
    Operation,
    Parameter,
    Response,
    SchemaNode,
)
from restspec.validation import DocumentValidator, ReferenceValidator, validate_document


def _document(operation: Operation, *, path: str = "/users/{id}", schemas=None) -> Document:
    return Document(
        info=Info(title="Test"),
        paths={path: {"get": operation}},
        components=Components(schemas=schemas or {}),
    )


def _path_param(name: str = "id", required: bool = True) -> Parameter:
    return Parameter(name=name, location="path", required=required, schema_=SchemaNode(type="string"))


def _ok(schema: SchemaNode | None = None) -> dict[str, Response]:
    content = None if schema is None else {"application/json": MediaType(schema_=schema)}
    return {"200": Response(description="OK", content=content)}


def _messages(document: Document) -> list[str]:
    return [issue.message for issue in ReferenceValidator().issues(document.to_dict())]


def test_valid_document_passes():
    user = SchemaNode(
        type="object",
        properties={"id": SchemaNode(type="integer")},
        required=["id"],
    )
    document = _document(
        Operation(parameters=[_path_param()], responses=_ok(SchemaNode.reference("User"))),
        schemas={"User": user},
    )

    validate_document(document)
    assert isinstance(ReferenceValidator(), DocumentValidator)


def test_unresolved_reference():
    document = _document(
        Operation(parameters=[_path_param()], responses=_ok(SchemaNode.reference("Missing")))
    )

    with pytest.raises(ValidationFailedError) as info:
        validate_document(document)
    assert len(info.value.issues) == 1
    assert "Missing" in info.value.issues[0].message
    assert info.value.issues[0].location == "paths./users/{id}.get.responses.200.application/json"


def test_schema_level_problems():
    broken = SchemaNode(
        type="object",
        properties={
            "list": SchemaNode(type="array"),
            "code": SchemaNode(type="string", pattern="(["),
            "kind": SchemaNode(type="text"),
            "nested": SchemaNode(all_of=[SchemaNode.reference("Nowhere")]),
        },
        required=["list", "ghost"],
    )
    document = _document(
        Operation(parameters=[_path_param()], responses=_ok()),
        schemas={"Broken": broken},
    )

    messages = _messages(document)

    assert "array schema without items" in messages
    assert any(message.startswith("malformed pattern") for message in messages)
    assert "unknown schema type 'text'" in messages
    assert "unresolved reference '#/components/schemas/Nowhere'" in messages
    assert "required property 'ghost' is not defined" in messages


def test_path_parameter_consistency():
    document = _document(
        Operation(
            parameters=[_path_param("id", required=False), _path_param("other")],
            responses=_ok(),
        ),
        path="/users/{id}/posts/{post}",
    )

    messages = _messages(document)

    assert "path parameters must be required" in messages
    assert "'other' is not in the path template" in messages
    assert "path parameter 'post' is not declared" in messages


def test_operation_without_responses():
    document = _document(Operation(parameters=[_path_param()]))

    assert _messages(document) == ["operation has no responses"]


def test_unknown_security_scheme():
    document = _document(
        Operation(parameters=[_path_param()], responses=_ok(), security=[{"oauth": ["read"]}])
    )

    assert _messages(document) == ["unknown security scheme 'oauth'"]


def test_error_message_summarises_issues():
    operations = {
        f"/items{i}": {"get": Operation()} for i in range(7)
    }
    document = Document(info=Info(title="Test"), paths=operations)

    with pytest.raises(ValidationFailedError) as info:
        validate_document(document)
    assert len(info.value.issues) == 7
    assert "(+2 more)" in str(info.value)
