"""End-to-end tests: routes and models in, OpenAPI document out."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Annotated, Optional

import pytest

from restspec import API, Embed, PathParam, QueryParam, Route, oauth2_code_flow
from restspec.descriptors import PrimitiveKind
from restspec.errors import UnsupportedKeyTypeError, UnsupportedShapeError, ValidationFailedError
from restspec.metadata import StaticMetadataProvider
from restspec.routes import METHODS, Params


@dataclass
class User:
    id: int
    name: str


@dataclass
class Order:
    id: int
    buyer: User
    notes: Optional[str] = None


@dataclass
class Lookup:
    by_number: dict[int, str]


class Status(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class Ticket:
    status: Status
    tags: list[str] = field(default_factory=list)


def make_api(**kwargs) -> API:
    return API("Example API", strip_prefixes=[__name__], **kwargs)


def test_single_route_document():
    api = make_api()
    api.get("/users/{id}").has_response_model(200, User)

    raw = api.spec().to_dict()

    assert raw["openapi"] == "3.0.0"
    assert raw["info"] == {"title": "Example API", "version": "0.0.0"}
    assert list(raw["paths"]) == ["/users/{id}"]
    operation = raw["paths"]["/users/{id}"]["get"]
    assert list(operation["responses"]) == ["200"]
    assert operation["responses"]["200"] == {
        "description": "OK",
        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/User"}}},
    }
    assert operation["parameters"] == [
        {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}
    ]
    assert raw["components"]["schemas"] == {
        "User": {
            "type": "object",
            "properties": {"id": {"type": "integer"}, "name": {"type": "string"}},
            "required": ["id", "name"],
        }
    }


def test_shared_model_is_emitted_once():
    api = make_api()
    api.get("/users/{id}").has_response_model(200, User)
    api.post("/orders").has_request_model(Order).has_response_model(201, Order)

    document = api.spec()

    assert sorted(document.components.schemas) == ["Order", "User"]
    order = document.components.schemas["Order"]
    assert order.properties["buyer"].ref == "#/components/schemas/User"
    assert order.required == ["id", "buyer"]
    post = document.paths["/orders"]["post"]
    assert post.request_body.content["application/json"].schema_.ref == "#/components/schemas/Order"
    assert post.responses["201"].description == "Created"


def test_non_text_dictionary_key_fails():
    api = make_api()
    api.get("/lookup").has_response_model(200, Lookup)

    with pytest.raises(UnsupportedKeyTypeError):
        api.spec()


def test_path_and_query_parameters():
    api = make_api()
    api.get(r"/items/{id:\d+}?sort={sort}").has_path_parameter(
        "id", PathParam(description="Item id")
    ).has_query_parameter(
        "limit",
        QueryParam(
            description="Page size",
            required=True,
            allow_empty=True,
            regexp="^[0-9]+$",
            type=PrimitiveKind.INTEGER,
            example=10,
        ),
    ).has_query_parameter("filter").has_response_model(200, User)

    raw = api.spec().to_dict()

    assert list(raw["paths"]) == ["/items/{id}"]
    params = raw["paths"]["/items/{id}"]["get"]["parameters"]
    assert params == [
        {
            "name": "id",
            "in": "path",
            "description": "Item id",
            "required": True,
            "schema": {"type": "string", "pattern": r"\d+"},
        },
        {"name": "filter", "in": "query", "required": False, "schema": {"type": "string"}},
        {
            "name": "limit",
            "in": "query",
            "description": "Page size",
            "required": True,
            "allowEmptyValue": True,
            "schema": {"type": "integer", "pattern": "^[0-9]+$"},
            "example": 10,
        },
    ]


def test_parameter_customisation():
    def add_example(parameter):
        parameter.example = "abc"

    api = make_api()
    api.get("/users/{id}").has_path_parameter("id", PathParam(customize=add_example)).has_response_model(200, User)

    raw = api.spec().to_dict()

    assert raw["paths"]["/users/{id}"]["get"]["parameters"][0]["example"] == "abc"


def test_invalid_parameter_pattern_is_rejected():
    with pytest.raises(ValueError):
        PathParam(regexp="([")


def test_every_method_in_fixed_order():
    api = make_api()
    for method in reversed(METHODS):
        api.route(method, "/things").has_response_model(204)

    raw = api.spec().to_dict()

    assert list(raw["paths"]["/things"]) == [method.lower() for method in METHODS]
    assert raw["paths"]["/things"]["get"]["responses"] == {"204": {"description": "No Content"}}
    assert raw["components"]["schemas"] == {}


def test_method_shortcuts_share_route_table():
    api = make_api()
    route = api.put("/users/{id}")

    assert api.put("/users/{id}") is route
    assert api.routes.get("put", "/users/{id}") is route
    assert len(api.routes) == 1


def test_operation_metadata_is_copied():
    api = make_api()
    (
        api.get("/users")
        .has_tags(["users"])
        .has_operation_id("listUsers")
        .has_description("List every user.")
        .has_response_model(200, list[User])
    )

    operation = api.spec().to_dict()["paths"]["/users"]["get"]

    assert operation["tags"] == ["users"]
    assert operation["operationId"] == "listUsers"
    assert operation["description"] == "List every user."
    assert operation["responses"]["200"]["content"]["application/json"]["schema"] == {
        "type": "array",
        "items": {"$ref": "#/components/schemas/User"},
        "nullable": True,
    }


def test_duplicate_operation_ids_fail_validation():
    api = make_api()
    api.get("/a").has_operation_id("same").has_response_model(200)
    api.get("/b").has_operation_id("same").has_response_model(200)

    with pytest.raises(ValidationFailedError) as info:
        api.spec()
    assert "same" in str(info.value)


def test_patterns_sharing_a_path_cannot_share_a_method():
    api = make_api()
    api.get("/users/{id}").has_response_model(200, User)
    api.get(r"/users/{id:\d+}").has_response_model(200, User)

    with pytest.raises(ValidationFailedError):
        api.spec()


def test_registered_models_are_always_emitted():
    def minimum_tags(node):
        node.properties["tags"].min_items = 1

    api = make_api()
    api.register_model(Ticket, minimum_tags, description="A support ticket.")
    api.register_model(Status, enum_values=["open", "closed", "pending"])

    schemas = api.spec().to_dict()["components"]["schemas"]

    assert schemas["Ticket"]["description"] == "A support ticket."
    assert schemas["Ticket"]["properties"]["tags"]["min_items"] == 1
    assert schemas["Ticket"]["required"] == ["status"]
    assert schemas["Status"] == {"type": "string", "enum": ["open", "closed", "pending"]}


def test_register_model_rejects_unnamed_shapes():
    api = make_api()

    with pytest.raises(TypeError):
        api.register_model(int)
    with pytest.raises(UnsupportedShapeError):
        api.register_model(complex)


def test_descriptions_from_metadata_provider():
    provider = StaticMetadataProvider(
        comments={
            f"{__name__}.User": "A registered user.",
            f"{__name__}.User.name": "Display name.",
        }
    )
    api = make_api(metadata=provider)
    api.get("/users/{id}").has_response_model(200, User)

    user = api.spec().components.schemas["User"]

    assert user.description == "A registered user."
    assert user.properties["name"].description == "Display name."


def test_security_schemes_and_requirements():
    api = make_api()
    api.add_security_scheme(
        "oauth",
        oauth2_code_flow(
            "https://auth.example.com/authorize",
            "https://auth.example.com/token",
            scopes={"read": "Read access"},
        ),
    )
    api.get("/users/{id}").requires_security({"oauth": ["read"]}).has_response_model(200, User)

    raw = api.spec().to_dict()

    assert raw["components"]["securitySchemes"]["oauth"] == {
        "type": "oauth2",
        "flows": {
            "authorizationCode": {
                "authorizationUrl": "https://auth.example.com/authorize",
                "tokenUrl": "https://auth.example.com/token",
                "scopes": {"read": "Read access"},
            }
        },
    }
    assert raw["paths"]["/users/{id}"]["get"]["security"] == [{"oauth": ["read"]}]


def test_unknown_security_scheme_fails_validation():
    api = make_api()
    api.get("/me").requires_security({"apiKey": []}).has_response_model(200, User)

    with pytest.raises(ValidationFailedError):
        api.spec()


def test_merge_keeps_existing_settings():
    api = make_api()
    api.get("/users/{id}").has_path_parameter("id", PathParam(description="Declared")).has_response_model(
        200, User
    ).has_description("Declared route")

    incoming = Route(
        method="get",
        pattern="/users/{id}",
        params=Params(path={"id": PathParam(description="Adapter")}, query={"fields": QueryParam()}),
        responses={404: None},
        description="Adapter route",
    )
    merged = api.merge(incoming)

    assert merged is api.routes.get("GET", "/users/{id}")
    assert merged.params.path["id"].description == "Declared"
    assert "fields" in merged.params.query
    assert sorted(merged.responses) == [200, 404]
    assert merged.description == "Declared route"


def test_merge_adds_unknown_routes():
    api = make_api()
    route = Route(method="delete", pattern="/users/{id}", responses={204: None})

    assert api.merge(route) is route
    assert api.routes.methods("/users/{id}") == {"DELETE": route}


def test_version_and_description():
    api = API("Versioned", version="1.2.3", description="Example service.")
    api.get("/health").has_response_model(200)

    info = api.spec().to_dict()["info"]

    assert info == {"title": "Versioned", "version": "1.2.3", "description": "Example service."}


def test_spec_is_repeatable():
    api = make_api()
    api.get("/users/{id}").has_response_model(200, User)

    assert api.spec().to_dict() == api.spec().to_dict()


@dataclass
class Audit:
    created_by: str
    updated_by: Optional[str] = None


@dataclass
class Report:
    title: str
    audit: Annotated[Audit, Embed]

    @classmethod
    def apply_custom_schema(cls, node):
        node.properties["title"].example = "Quarterly report"


def test_embedded_fields_and_class_customisation():
    api = make_api()
    api.get("/reports").has_response_model(200, list[Report])

    schemas = api.spec().to_dict()["components"]["schemas"]

    assert list(schemas) == ["Report"]
    assert list(schemas["Report"]["properties"]) == ["title", "created_by", "updated_by"]
    assert schemas["Report"]["required"] == ["title", "created_by"]
    assert schemas["Report"]["properties"]["title"]["example"] == "Quarterly report"


def test_question_marks_inside_placeholders_are_not_query_strings():
    api = make_api()
    api.get(r"/users/{id:\d+?}/{kind:(admin)?}?page={page}").has_response_model(200, User)

    raw = api.spec().to_dict()

    assert list(raw["paths"]) == ["/users/{id}/{kind}"]
    params = {param["name"]: param for param in raw["paths"]["/users/{id}/{kind}"]["get"]["parameters"]}
    assert params["id"]["schema"]["pattern"] == r"\d+?"
    assert params["kind"]["schema"]["pattern"] == "(admin)?"
