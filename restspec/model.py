"""Compiled output types: schema nodes, operations and the assembled document.

The models mirror the OpenAPI 3.0 object names so that ``Document.to_dict``
yields a structure ready for JSON or YAML encoding.  Fields that are unset stay
``None`` and are dropped on export.
"""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "OPENAPI_VERSION",
    "REF_PREFIX",
    "SchemaNode",
    "SchemaRef",
    "Parameter",
    "MediaType",
    "RequestBody",
    "Response",
    "Operation",
    "SecurityScheme",
    "Info",
    "Components",
    "Document",
    "oauth2_code_flow",
]

OPENAPI_VERSION = "3.0.0"
REF_PREFIX = "#/components/schemas/"

_DUMP_OPTIONS: dict[str, Any] = dict(mode="json", by_alias=True, exclude_none=True)


class SchemaNode(BaseModel):
    """One schema object, either inline or a ``$ref`` to a named schema.

    Extra attributes (``minimum``, ``maxItems`` and friends) may be set by
    customisation hooks and are exported verbatim.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    canonical_name: str = Field(default="", exclude=True)
    ref: str | None = Field(default=None, alias="$ref")
    type: str | None = None
    format: str | None = None
    title: str | None = None
    description: str | None = None
    properties: dict[str, SchemaNode] | None = None
    required: list[str] | None = None
    items: SchemaNode | None = None
    additional_properties: SchemaNode | None = Field(default=None, alias="additionalProperties")
    all_of: list[SchemaNode] | None = Field(default=None, alias="allOf")
    enum_values: list[Any] | None = Field(default=None, alias="enum")
    pattern: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    default: Any = None
    example: Any = None
    nullable: bool | None = None
    deprecated: bool | None = None

    @classmethod
    def reference(cls, name: str) -> SchemaNode:
        return cls(ref=REF_PREFIX + name)

    @property
    def is_reference(self) -> bool:
        return self.ref is not None

    @property
    def referenced_name(self) -> str | None:
        if self.ref is None or not self.ref.startswith(REF_PREFIX):
            return None
        return self.ref[len(REF_PREFIX):]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(**_DUMP_OPTIONS)


# A reference is a schema node whose only populated field is ``$ref``.
SchemaRef = SchemaNode


class Parameter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    location: str = Field(alias="in")
    description: str | None = None
    required: bool = False
    allow_empty_value: bool | None = Field(default=None, alias="allowEmptyValue")
    schema_: SchemaNode | None = Field(default=None, alias="schema")
    example: Any = None


class MediaType(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_: SchemaNode | None = Field(default=None, alias="schema")


class RequestBody(BaseModel):
    description: str | None = None
    content: dict[str, MediaType] = Field(default_factory=dict)
    required: bool | None = None


class Response(BaseModel):
    description: str = ""
    content: dict[str, MediaType] | None = None


class Operation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tags: list[str] | None = None
    description: str | None = None
    operation_id: str | None = Field(default=None, alias="operationId")
    parameters: list[Parameter] | None = None
    request_body: RequestBody | None = Field(default=None, alias="requestBody")
    responses: dict[str, Response] = Field(default_factory=dict)
    security: list[dict[str, list[str]]] | None = None


class SecurityScheme(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    description: str | None = None
    name: str | None = None
    location: str | None = Field(default=None, alias="in")
    scheme: str | None = None
    bearer_format: str | None = Field(default=None, alias="bearerFormat")
    flows: dict[str, dict[str, Any]] | None = None


def oauth2_code_flow(
    authorization_url: str,
    token_url: str,
    *,
    refresh_url: str | None = None,
    scopes: dict[str, str] | None = None,
    description: str | None = None,
) -> SecurityScheme:
    """Return an OAuth2 authorisation-code security scheme."""

    flow: dict[str, Any] = {
        "authorizationUrl": authorization_url,
        "tokenUrl": token_url,
        "scopes": dict(scopes or {}),
    }
    if refresh_url:
        flow["refreshUrl"] = refresh_url
    return SecurityScheme(type="oauth2", description=description, flows={"authorizationCode": flow})


class Info(BaseModel):
    title: str
    version: str = "0.0.0"
    description: str | None = None


class Components(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schemas: dict[str, SchemaNode] = Field(default_factory=dict)
    security_schemes: dict[str, SecurityScheme] | None = Field(default=None, alias="securitySchemes")


class Document(BaseModel):
    """Abstract API description handed to encoders and validators."""

    openapi: str = OPENAPI_VERSION
    info: Info
    paths: dict[str, dict[str, Operation]] = Field(default_factory=dict)
    components: Components = Field(default_factory=Components)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(**_DUMP_OPTIONS)

    def operations(self) -> list[tuple[str, str, Operation]]:
        return [
            (path, method, operation)
            for path, item in self.paths.items()
            for method, operation in item.items()
        ]


ParameterCustomizer = Callable[[Parameter], None]
