"""
AST generation of the shared, once-per-table infrastructure.

The connection wrapper resolves table name, region and endpoint from explicit
builder values, then environment variables, then boto3's own defaults. The
configuration module exposes table constants, a lazily created process-wide
client and one repository factory per entity.
"""

import logging
import ast
from typing import List, Optional, Sequence, Tuple

from dynamo_codegen.ast_codegen.base import (
    add_location, create_annotated_assign, create_assign, create_attribute, create_attribute_call,
    create_call, create_class_def, create_conditional, create_dict, create_docstring,
    create_function_def, create_if, create_import, create_is_none, create_is_not_none,
    create_method_call, create_module, create_module_docstring, create_name, create_raise,
    create_return, create_string_constant, create_subscript_assign, create_tuple, create_type_annotation,
)
from dynamo_codegen.ast_codegen.repositories import repository_class_name
from dynamo_codegen.constants import ArnMarkers, EnvironmentVariables, OutputLayout
from dynamo_codegen.domain.models import EntityDescriptor, TableBinding
from dynamo_codegen.domain.naming import to_snake_case


logger = logging.getLogger(__name__)

CLIENT = OutputLayout.CLIENT_CLASS
TOKEN = "_CONSTRUCTION_TOKEN"

# (builder attribute, environment variable constant, environment variable names)
_RESOLVED_SETTINGS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("table_name", "TABLE_NAME_ENV_VARS", EnvironmentVariables.TABLE_NAME),
    ("region", "REGION_ENV_VARS", EnvironmentVariables.REGION),
    ("endpoint", "ENDPOINT_ENV_VARS", EnvironmentVariables.ENDPOINT),
)


def _none() -> ast.Constant:
    return add_location(ast.Constant(value=None))


def _optional_str() -> ast.expr:
    return create_type_annotation("Optional", create_name("str"))


# ---- Connection wrapper ----

def create_env_lookup_function() -> ast.FunctionDef:
    """``_from_environment(value, names)``: explicit value, else the first non-empty variable."""
    loop = add_location(ast.For(
        target=create_name("name", store=True),
        iter=create_name("names"),
        body=[
            create_assign("candidate", create_attribute_call("os.environ", "get", args=[create_name("name")])),
            create_if(create_name("candidate"), [create_return(create_name("candidate"))]),
        ],
        orelse=[],
    ))
    return create_function_def(
        "_from_environment",
        [
            ("value", _optional_str(), None),
            ("names", create_type_annotation("Sequence", create_name("str")), None),
        ],
        [
            create_if(create_is_not_none(create_name("value")), [create_return(create_name("value"))]),
            loop,
            create_return(_none()),
        ],
        returns=_optional_str(),
        first=None,
    )


def create_client_builder_class() -> ast.ClassDef:
    """Creates the nested ``Builder`` of the connection wrapper."""
    attributes = ["table_name", "region", "endpoint", "existing_resource"]
    init_method = create_function_def(
        "__init__",
        [],
        [create_assign(f"self._{attribute}", _none()) for attribute in attributes],
        returns=_none(),
    )

    setters = []
    for attribute in attributes:
        annotation = create_name("Any") if attribute == "existing_resource" else _optional_str()
        setters.append(create_function_def(
            attribute,
            [("value", annotation, None)],
            [create_assign(f"self._{attribute}", create_name("value")), create_return(create_name("self"))],
            returns=create_string_constant(f"{CLIENT}.Builder"),
        ))

    resource_kwargs: List[ast.stmt] = [
        create_annotated_assign(
            "options",
            create_type_annotation("Dict", create_name("str"), create_name("Any")),
            create_dict([], [])
        )
    ]
    for option, variable in (("region_name", "region"), ("endpoint_url", "endpoint")):
        resource_kwargs.append(create_if(create_name(variable), [
            create_subscript_assign(create_name("options"), create_string_constant(option), create_name(variable))
        ]))

    build_body: List[ast.stmt] = [
        create_if(create_is_not_none(create_attribute("self._existing_resource")), [
            create_return(create_call(CLIENT, args=[
                create_name(TOKEN), create_attribute("self._existing_resource"), create_attribute("self._table_name")
            ]))
        ]),
    ]
    for attribute, env_constant, _ in _RESOLVED_SETTINGS:
        build_body.append(create_assign(attribute, create_call("_from_environment", args=[
            create_attribute(f"self._{attribute}"), create_name(env_constant)
        ])))
    build_body.extend(resource_kwargs)
    build_body.append(create_assign("resource", add_location(ast.Call(
        func=create_attribute("boto3.resource"),
        args=[create_string_constant("dynamodb")],
        keywords=[add_location(ast.keyword(arg=None, value=create_name("options")))]
    ))))
    build_body.append(create_return(create_call(CLIENT, args=[
        create_name(TOKEN), create_name("resource"), create_name("table_name")
    ])))

    build_method = create_function_def(
        "build",
        [],
        build_body,
        returns=create_string_constant(CLIENT),
        docstring=(
            "Create the client. An existing resource is used as-is; otherwise explicit values win "
            "over environment variables, and anything still unset is left to boto3."
        ),
    )

    return create_class_def(
        "Builder",
        [],
        [create_docstring(f"Fluent builder for {CLIENT}.")] + [init_method] + setters + [build_method]
    )


def create_client_class() -> ast.ClassDef:
    """Creates the connection wrapper class with its guarded constructor."""
    init_method = create_function_def(
        "__init__",
        [
            ("token", create_name("object"), None),
            ("resource", create_name("Any"), None),
            ("table_name", _optional_str(), None),
        ],
        [
            create_if(
                add_location(ast.Compare(left=create_name("token"), ops=[ast.IsNot()], comparators=[create_name(TOKEN)])),
                [create_raise(create_call("TypeError", args=[create_string_constant(
                    f"Use {CLIENT}.builder() or {CLIENT}.wrap() to create a client"
                )]))]
            ),
            create_assign("self._resource", create_name("resource")),
            create_assign("self._table_name", create_name("table_name")),
            create_assign("self._table", _none()),
        ],
        returns=_none(),
    )

    resource_property = create_function_def(
        "resource", [], [create_return(create_attribute("self._resource"))],
        returns=create_name("Any"), decorators=["property"],
        docstring="The underlying boto3 DynamoDB service resource.",
    )
    table_name_property = create_function_def(
        "table_name", [], [create_return(create_attribute("self._table_name"))],
        returns=_optional_str(), decorators=["property"],
    )
    table_property = create_function_def(
        "table",
        [],
        [
            create_if(create_is_none(create_attribute("self._table")), [
                create_assign("self._table", create_attribute_call("self._resource", "Table", args=[
                    create_attribute("self._table_name")
                ]))
            ]),
            create_return(create_attribute("self._table")),
        ],
        returns=create_name("Any"),
        decorators=["property"],
        docstring="The bound Table resource, created on first use.",
    )
    builder_method = create_function_def(
        "builder", [], [create_return(create_attribute_call(CLIENT, "Builder"))],
        returns=create_string_constant(f"{CLIENT}.Builder"),
        decorators=["staticmethod"],
        first=None,
    )
    wrap_method = create_function_def(
        "wrap",
        [("resource", create_name("Any"), None), ("table_name", create_name("str"), None)],
        [create_return(create_call(CLIENT, args=[
            create_name(TOKEN), create_name("resource"), create_name("table_name")
        ]))],
        returns=create_string_constant(CLIENT),
        decorators=["staticmethod"],
        first=None,
        docstring="Wrap an already constructed boto3 DynamoDB resource.",
    )

    return create_class_def(CLIENT, [], [
        create_docstring("Shared DynamoDB connection: a boto3 service resource plus the bound table name."),
        init_method,
        resource_property,
        table_name_property,
        table_property,
        builder_method,
        wrap_method,
        create_client_builder_class(),
    ])


def generate_client_ast() -> ast.Module:
    """Generates the complete AST Module for the connection wrapper."""
    env_constants = [
        create_assign(env_constant, create_tuple([create_string_constant(name) for name in names]))
        for _, env_constant, names in _RESOLVED_SETTINGS
    ]
    return create_module(
        [
            create_module_docstring("DynamoDB connection wrapper shared by all repositories of this table."),
            create_import("os"),
            create_import("typing", ["Any", "Dict", "Optional", "Sequence"]),
            create_import("boto3"),
        ]
        + env_constants
        + [
            create_assign(TOKEN, create_call("object")),
            create_env_lookup_function(),
            create_client_class(),
        ]
    )


def generate_client_code() -> str:
    """Generates the Python code string for the connection wrapper module."""
    return ast.unparse(generate_client_ast())


# ---- Configuration module ----

def is_deploy_time_arn(table_arn: Optional[str]) -> bool:
    """True for ARN-shaped values and unresolved deploy-time tokens."""
    if not table_arn:
        return False
    return table_arn.startswith(ArnMarkers.ARN_PREFIX) or any(
        marker in table_arn for marker in ArnMarkers.TOKEN_MARKERS
    )


def _table_arn_expression(table_arn: Optional[str]) -> ast.expr:
    if not is_deploy_time_arn(table_arn):
        return add_location(ast.Constant(value=table_arn))
    return add_location(ast.BoolOp(op=ast.Or(), values=[
        create_attribute_call("os.environ", "get", args=[create_string_constant(EnvironmentVariables.TABLE_ARN)]),
        create_string_constant(table_arn),
    ]))


def repository_factory_name(entity: EntityDescriptor) -> str:
    return f"{to_snake_case(entity.name)}_repository"


def create_get_client_function() -> ast.FunctionDef:
    """Double-checked lazy initialization of the shared client."""
    initialize = create_if(create_is_none(create_name("_shared_client")), [
        create_assign("_shared_client", create_method_call(create_call("client_builder"), "build"))
    ])
    locked = add_location(ast.With(
        items=[ast.withitem(context_expr=create_name("_lock"), optional_vars=None)],
        body=[initialize],
    ))
    return create_function_def(
        "get_client",
        [],
        [
            add_location(ast.Global(names=["_shared_client"])),
            create_if(create_is_none(create_name("_shared_client")), [locked]),
            create_return(create_name("_shared_client")),
        ],
        returns=create_name(CLIENT),
        first=None,
        docstring="Return the process-wide client, creating it on first use.",
    )


def create_repository_factory(entity: EntityDescriptor) -> ast.FunctionDef:
    repository = repository_class_name(entity)
    return create_function_def(
        repository_factory_name(entity),
        [("client", create_type_annotation("Optional", create_name(CLIENT)), _none())],
        [create_return(create_call(repository, args=[create_conditional(
            create_is_not_none(create_name("client")), create_name("client"), create_call("get_client")
        )]))],
        returns=create_name(repository),
        first=None,
        docstring=f"Create a {repository} on the given client, or on the shared client when omitted.",
    )


def generate_config_ast(table_binding: TableBinding, entities: Sequence[EntityDescriptor]) -> ast.Module:
    """Generates the complete AST Module for the table configuration."""
    if is_deploy_time_arn(table_binding.table_arn):
        logger.debug(f"Table ARN of '{table_binding.table_name}' can be overridden via {EnvironmentVariables.TABLE_ARN}")

    imports: List[ast.stmt] = [
        create_import("os"),
        create_import("threading"),
        create_import("typing", ["Optional"]),
        create_import(f"..{OutputLayout.CLIENT_PACKAGE}.{OutputLayout.CLIENT_MODULE}", [CLIENT]),
    ]
    for entity in sorted(entities, key=lambda e: e.name):
        imports.append(create_import(
            f"..{OutputLayout.REPOSITORY_PACKAGE}.{to_snake_case(repository_class_name(entity))}",
            [repository_class_name(entity)]
        ))

    constants: List[ast.stmt] = [
        create_assign("TABLE_NAME", create_string_constant(table_binding.table_name)),
        create_assign("TABLE_ARN", _table_arn_expression(table_binding.table_arn)),
        create_assign("REGION", add_location(ast.Constant(value=table_binding.region))),
        create_annotated_assign("_shared_client", create_type_annotation("Optional", create_name(CLIENT)), _none()),
        create_assign("_lock", create_attribute_call("threading", "Lock")),
    ]

    client_builder = create_function_def(
        "client_builder",
        [],
        [create_return(create_method_call(
            create_method_call(create_attribute_call(CLIENT, "builder"), "table_name", args=[create_name("TABLE_NAME")]),
            "region",
            args=[create_name("REGION")]
        ))],
        returns=create_string_constant(f"{CLIENT}.Builder"),
        first=None,
        docstring="Return a client builder pre-set with this table's name and region.",
    )

    functions: List[ast.stmt] = [create_get_client_function(), client_builder]
    functions.extend(create_repository_factory(entity) for entity in entities)

    return create_module(
        [create_module_docstring(f"Configuration of table '{table_binding.table_name}'.")]
        + imports
        + constants
        + functions
    )


def generate_config_code(table_binding: TableBinding, entities: Sequence[EntityDescriptor]) -> str:
    """Generates the Python code string for the table configuration module."""
    return ast.unparse(generate_config_ast(table_binding, entities))
