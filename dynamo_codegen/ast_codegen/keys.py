import logging
import ast
from typing import List, Optional

from dynamo_codegen.ast_codegen.base import (
    add_location, create_assign, create_attribute, create_call, create_class_def, create_dict,
    create_docstring, create_function_def, create_import, create_module,
    create_module_docstring, create_name, create_raise, create_return, create_string_constant,
    create_type_annotation,
)
from dynamo_codegen.constants import OutputLayout
from dynamo_codegen.domain.models import (
    EntityDescriptor, EnumType, FieldType, KeyDescriptor, ScalarType, TableBinding,
)
from dynamo_codegen.domain.naming import to_constant_case


logger = logging.getLogger(__name__)


def keys_class_name(entity: EntityDescriptor) -> str:
    return f"{entity.name}{OutputLayout.KEYS_SUFFIX}"


def index_constant_name(index_name: str) -> str:
    """``by-email`` -> ``INDEX_BY_EMAIL``."""
    return f"INDEX_{to_constant_case(index_name).lstrip('_')}"


def key_component_annotation(key: KeyDescriptor) -> ast.expr:
    """
    Annotation of a key component as handed to the key factory.

    Timestamps and enums arrive already converted to their string form.
    """
    if isinstance(key.type_ref, ScalarType):
        if key.type_ref.kind == FieldType.NUMBER:
            return create_name("Decimal")
        if key.type_ref.kind == FieldType.BOOLEAN:
            return create_name("bool")
        return create_name("str")
    if isinstance(key.type_ref, EnumType):
        return create_name("str")
    return create_name("Any")


def _uses_decimal(entity: EntityDescriptor) -> bool:
    return any(
        isinstance(key.type_ref, ScalarType) and key.type_ref.kind == FieldType.NUMBER
        for key in entity.key_fields
    )


def create_key_method(entity: EntityDescriptor) -> ast.FunctionDef:
    """Creates ``key(partition[, sort])`` returning the storage key mapping."""
    class_name = keys_class_name(entity)
    params = [(key.identifier, key_component_annotation(key), None) for key in entity.key_fields]

    keys = [create_attribute(f"{class_name}.PARTITION_KEY_FIELD")]
    values = [create_name(entity.partition_key.identifier)]
    if entity.sort_key is not None:
        keys.append(create_attribute(f"{class_name}.SORT_KEY_FIELD"))
        values.append(create_name(entity.sort_key.identifier))

    return create_function_def(
        "key",
        params,
        [create_return(create_dict(keys, values))],
        returns=create_type_annotation("Dict", create_name("str"), create_name("Any")),
        decorators=["staticmethod"],
        first=None,
        docstring=f"Build the primary key of a {entity.name} item.",
    )


def create_keys_class(entity: EntityDescriptor, table_binding: Optional[TableBinding] = None) -> ast.ClassDef:
    """Creates the AST ClassDef of the non-instantiable key helper."""
    class_name = keys_class_name(entity)
    body: List[ast.stmt] = [
        create_docstring(f"Key helper for {entity.name}; storage attribute names and key construction."),
        create_assign("PARTITION_KEY_FIELD", create_string_constant(entity.partition_key.storage_name)),
    ]
    if entity.sort_key is not None:
        body.append(create_assign("SORT_KEY_FIELD", create_string_constant(entity.sort_key.storage_name)))

    if table_binding is not None:
        for index in table_binding.secondary_indexes:
            body.append(create_assign(index_constant_name(index.index_name), create_string_constant(index.index_name)))

    body.append(create_function_def(
        "__init__",
        [],
        [create_raise(create_call("TypeError", args=[
            create_string_constant(f"{class_name} is a utility class and cannot be instantiated")
        ]))],
        returns=add_location(ast.Constant(value=None)),
    ))
    body.append(create_key_method(entity))
    return create_class_def(name=class_name, bases=[], body=body)


def generate_keys_ast(entity: EntityDescriptor, table_binding: Optional[TableBinding] = None) -> ast.Module:
    """Generates the complete AST Module for an entity's key helper."""
    logger.debug(f"Emitting key helper for {entity.name} ({len(entity.key_fields)} key component(s))")
    imports: List[ast.stmt] = []
    if _uses_decimal(entity):
        imports.append(create_import("decimal", ["Decimal"]))
    imports.append(create_import("typing", ["Any", "Dict"]))

    return create_module(
        [create_module_docstring(f"Key helper for {entity.name}.")]
        + imports
        + [create_keys_class(entity, table_binding)]
    )


def generate_keys_code(entity: EntityDescriptor, table_binding: Optional[TableBinding] = None) -> str:
    """Generates the Python code string for a key helper module."""
    return ast.unparse(generate_keys_ast(entity, table_binding))
