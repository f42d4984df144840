import logging
import ast
from typing import List, Sequence

from dynamo_codegen.ast_codegen.base import (
    add_location, create_annotated_assign, create_assign, create_attribute, create_attribute_call,
    create_class_def, create_comprehension, create_dict, create_docstring,
    create_expression_statement, create_function_def, create_if, create_import, create_is_none,
    create_is_not_none, create_keyword, create_module, create_module_docstring,
    create_name, create_not, create_return, create_string_constant, create_subscript_assign,
    create_type_annotation, pluralize,
)
from dynamo_codegen.ast_codegen.keys import index_constant_name, keys_class_name
from dynamo_codegen.ast_codegen.type_refs import TypeUsage, annotation_for, to_storage_expression
from dynamo_codegen.ast_codegen.validators import validator_class_name
from dynamo_codegen.constants import OutputLayout
from dynamo_codegen.domain.models import (
    EntityDescriptor, EnumType, FieldType, KeyDescriptor, ScalarType, SecondaryIndex, TableBinding,
)
from dynamo_codegen.domain.naming import to_snake_case
from dynamo_codegen.domain.type_mapping import describe_key


logger = logging.getLogger(__name__)


def repository_class_name(entity: EntityDescriptor) -> str:
    return f"{entity.name}{OutputLayout.REPOSITORY_SUFFIX}"


def query_method_name(index: SecondaryIndex) -> str:
    return f"query_by_{to_snake_case(index.index_name)}"


def key_argument(key: KeyDescriptor) -> ast.expr:
    """Key parameter as handed to key construction; timestamps and enums become strings."""
    value = create_name(key.identifier)
    if isinstance(key.type_ref, EnumType) or (
        isinstance(key.type_ref, ScalarType) and key.type_ref.kind == FieldType.TIMESTAMP
    ):
        return to_storage_expression(key.type_ref, value)
    return value


def _key_call(entity: EntityDescriptor) -> ast.Call:
    return create_attribute_call(
        keys_class_name(entity), "key", args=[key_argument(key) for key in entity.key_fields]
    )


def _key_params(keys: Sequence[KeyDescriptor]):
    return [(key.identifier, annotation_for(key.type_ref), None) for key in keys]


def _table_call(method: str, keywords: List[ast.keyword]) -> ast.Call:
    return add_location(ast.Call(
        func=create_attribute(f"self._table.{method}"),
        args=[],
        keywords=keywords
    ))


def create_constructors(entity: EntityDescriptor) -> List[ast.FunctionDef]:
    """Creates ``__init__(client)`` and the ``from_resource`` alternate constructor."""
    init_method = create_function_def(
        "__init__",
        [("client", create_string_constant(OutputLayout.CLIENT_CLASS), None)],
        [create_assign("self._table", create_attribute("client.table"))],
        returns=add_location(ast.Constant(value=None)),
    )
    from_resource = create_function_def(
        "from_resource",
        [("resource", create_name("Any"), None), ("table_name", create_name("str"), None)],
        [
            create_assign("repository", create_attribute_call("cls", "__new__", args=[create_name("cls")])),
            create_assign("repository._table", create_attribute_call("resource", "Table", args=[create_name("table_name")])),
            create_return(create_name("repository")),
        ],
        returns=create_string_constant(repository_class_name(entity)),
        decorators=["classmethod"],
        first="cls",
        docstring="Create a repository over an already constructed DynamoDB resource (e.g. in tests).",
    )
    return [init_method, from_resource]


def create_save_method(entity: EntityDescriptor) -> ast.FunctionDef:
    """Creates ``save``; validation always runs before the write."""
    return create_function_def(
        "save",
        [("entity", create_name(entity.name), None)],
        [
            create_expression_statement(create_attribute_call(
                validator_class_name(entity), "validate", args=[create_name("entity")]
            )),
            create_expression_statement(_table_call("put_item", [
                create_keyword("Item", create_attribute_call("entity", "to_item"))
            ])),
        ],
        returns=add_location(ast.Constant(value=None)),
        docstring=f"Validate and store a {entity.name}; raises ValidationError without writing when invalid.",
    )


def create_find_by_key_method(entity: EntityDescriptor) -> ast.FunctionDef:
    return create_function_def(
        "find_by_key",
        _key_params(entity.key_fields),
        [
            create_assign("response", _table_call("get_item", [create_keyword("Key", _key_call(entity))])),
            create_assign("item", create_attribute_call("response", "get", args=[create_string_constant("Item")])),
            create_if(create_is_none(create_name("item")), [create_return(add_location(ast.Constant(value=None)))]),
            create_return(create_attribute_call(entity.name, "from_item", args=[create_name("item")])),
        ],
        returns=create_type_annotation("Optional", create_name(entity.name)),
    )


def create_delete_by_key_method(entity: EntityDescriptor) -> ast.FunctionDef:
    return create_function_def(
        "delete_by_key",
        _key_params(entity.key_fields),
        [create_expression_statement(_table_call("delete_item", [create_keyword("Key", _key_call(entity))]))],
        returns=add_location(ast.Constant(value=None)),
    )


def create_query_method(entity: EntityDescriptor, index: SecondaryIndex) -> ast.FunctionDef:
    """Creates ``query_by_<index>(pk, sk=None)``; the sort key condition only applies when given."""
    partition_key = describe_key(entity, index.partition_key)
    sort_key = describe_key(entity, index.sort_key) if index.has_sort_key else None

    params = [(partition_key.identifier, annotation_for(partition_key.type_ref), None)]
    body: List[ast.stmt] = [
        create_assign("key_condition", create_string_constant("#pk = :pk")),
        create_assign("expression_names", create_dict(
            [create_string_constant("#pk")], [create_string_constant(partition_key.storage_name)]
        )),
        create_assign("expression_values", create_dict(
            [create_string_constant(":pk")], [key_argument(partition_key)]
        )),
    ]
    if sort_key is not None:
        params.append((
            sort_key.identifier,
            create_type_annotation("Optional", annotation_for(sort_key.type_ref)),
            add_location(ast.Constant(value=None)),
        ))
        body.append(create_if(create_is_not_none(create_name(sort_key.identifier)), [
            add_location(ast.AugAssign(
                target=create_name("key_condition", store=True),
                op=ast.Add(),
                value=create_string_constant(" AND #sk = :sk")
            )),
            create_subscript_assign(
                create_name("expression_names"), create_string_constant("#sk"),
                create_string_constant(sort_key.storage_name)
            ),
            create_subscript_assign(
                create_name("expression_values"), create_string_constant(":sk"), key_argument(sort_key)
            ),
        ]))

    body.append(create_return(add_location(ast.Call(
        func=create_attribute("self._query_all"),
        args=[],
        keywords=[
            create_keyword("IndexName", create_attribute(
                f"{keys_class_name(entity)}.{index_constant_name(index.index_name)}"
            )),
            create_keyword("KeyConditionExpression", create_name("key_condition")),
            create_keyword("ExpressionAttributeNames", create_name("expression_names")),
            create_keyword("ExpressionAttributeValues", create_name("expression_values")),
        ]
    ))))

    return create_function_def(
        query_method_name(index),
        params,
        body,
        returns=create_type_annotation("List", create_name(entity.name)),
        docstring=f"Return every {entity.name} matching the '{index.index_name}' index key; all result pages are read.",
    )


def create_query_all_method(entity: EntityDescriptor) -> ast.FunctionDef:
    """Creates ``_query_all`` following LastEvaluatedKey until the result set is exhausted."""
    items = create_attribute_call("response", "get", args=[
        create_string_constant("Items"), add_location(ast.List(elts=[], ctx=ast.Load()))
    ])
    loop_body: List[ast.stmt] = [
        create_assign("response", add_location(ast.Call(
            func=create_attribute("self._table.query"),
            args=[],
            keywords=[add_location(ast.keyword(arg=None, value=create_name("kwargs")))]
        ))),
        create_expression_statement(create_attribute_call("results", "extend", args=[
            create_comprehension(
                "generator",
                create_attribute_call(entity.name, "from_item", args=[create_name("item")]),
                "item",
                items
            )
        ])),
        create_assign("last_key", create_attribute_call("response", "get", args=[
            create_string_constant("LastEvaluatedKey")
        ])),
        create_if(create_not(create_name("last_key")), [create_return(create_name("results"))]),
        create_subscript_assign(
            create_name("kwargs"), create_string_constant("ExclusiveStartKey"), create_name("last_key")
        ),
    ]
    return create_function_def(
        "_query_all",
        [],
        [
            create_annotated_assign(
                "results",
                create_type_annotation("List", create_name(entity.name)),
                add_location(ast.List(elts=[], ctx=ast.Load()))
            ),
            add_location(ast.While(test=add_location(ast.Constant(value=True)), body=loop_body, orelse=[])),
        ],
        returns=create_type_annotation("List", create_name(entity.name)),
        kwargs_name="kwargs",
        kwargs_annotation=create_name("Any"),
    )


def create_repository_class(entity: EntityDescriptor, table_binding: TableBinding) -> ast.ClassDef:
    """Creates the AST ClassDef for an entity repository."""
    body: List[ast.stmt] = [create_docstring(
        f"Stores and loads {pluralize(entity.name)} in table '{table_binding.table_name}'.\n\n"
        "Access is by primary key or secondary index query only; no scan operation is provided."
    )]
    body.extend(create_constructors(entity))
    body.append(create_save_method(entity))
    body.append(create_find_by_key_method(entity))
    body.append(create_delete_by_key_method(entity))

    indexes = table_binding.secondary_indexes
    for index in indexes:
        body.append(create_query_method(entity, index))
    if indexes:
        body.append(create_query_all_method(entity))

    return create_class_def(name=repository_class_name(entity), bases=[], body=body)


def _repository_type_usage(entity: EntityDescriptor, table_binding: TableBinding) -> TypeUsage:
    usage = TypeUsage(typing_names={"TYPE_CHECKING", "Any", "Optional"})
    keys = list(entity.key_fields)
    for index in table_binding.secondary_indexes:
        usage.typing_names.add("List")
        keys.append(describe_key(entity, index.partition_key))
        if index.has_sort_key:
            keys.append(describe_key(entity, index.sort_key))
    for key in keys:
        usage.add(key.type_ref, optional=False)
    return usage


def generate_repository_ast(entity: EntityDescriptor, table_binding: TableBinding) -> ast.Module:
    """Generates the complete AST Module for an entity repository."""
    usage = _repository_type_usage(entity, table_binding)

    imports = usage.standard_imports()
    imports.append(create_import(f"..{OutputLayout.KEYS_PACKAGE}.{to_snake_case(keys_class_name(entity))}", [keys_class_name(entity)]))
    for type_name in sorted(usage.records | usage.enums):
        imports.append(create_import(f"..{OutputLayout.NESTED_PACKAGE}.{to_snake_case(type_name)}", [type_name]))
    imports.append(create_import(f"..{to_snake_case(entity.name)}", [entity.name]))
    imports.append(create_import(
        f"..{OutputLayout.VALIDATORS_PACKAGE}.{to_snake_case(validator_class_name(entity))}",
        [validator_class_name(entity)]
    ))

    type_checking_import = create_if(create_name("TYPE_CHECKING"), [create_import(
        f"..{OutputLayout.CLIENT_PACKAGE}.{OutputLayout.CLIENT_MODULE}", [OutputLayout.CLIENT_CLASS]
    )])

    return create_module(
        [create_module_docstring(f"Repository for {entity.name}.")]
        + imports
        + [type_checking_import, create_repository_class(entity, table_binding)]
    )


def generate_repository_code(entity: EntityDescriptor, table_binding: TableBinding) -> str:
    """Generates the Python code string for an entity repository module."""
    return ast.unparse(generate_repository_ast(entity, table_binding))
