import logging
import ast
from typing import Dict, List, Optional, Sequence

from dynamo_codegen.ast_codegen.base import (
    add_location, create_annotated_assign, create_assign, create_attribute, create_attribute_call,
    create_call, create_class_def, create_comprehension, create_compare, create_conditional,
    create_dict, create_docstring, create_fstring, create_function_def,
    create_if, create_import, create_is_not_none, create_literal, create_module, create_module_docstring,
    create_name, create_not, create_return, create_string_constant, create_subscript,
    create_subscript_assign, create_tuple, create_type_annotation,
)
from dynamo_codegen.ast_codegen.type_refs import (
    TypeUsage, from_storage_expression, needs_hashable, optional_annotation_for, to_storage_expression,
)
from dynamo_codegen.constants import OutputLayout
from dynamo_codegen.domain.models import (
    AnyType, EnumDescriptor, EnumType, FieldType, ListType, RecordDescriptor, ResolvedField,
    ScalarType, SetType,
)
from dynamo_codegen.domain.naming import to_snake_case


logger = logging.getLogger(__name__)


def private_attribute(identifier: str) -> str:
    """Name of the instance attribute backing a field (avoids ``__`` name mangling)."""
    if identifier.startswith("_"):
        return f"_field{identifier}"
    return f"_{identifier}"


def _self_attribute(field: ResolvedField, owner: str = "self") -> ast.expr:
    return create_attribute(f"{owner}.{private_attribute(field.identifier)}")


def _quoted(name: str) -> ast.Constant:
    """Forward reference annotation."""
    return create_string_constant(name)


# ---- Defaults ----

def _default_expression(
    field: ResolvedField, enums_by_name: Dict[str, EnumDescriptor], owner: str
) -> Optional[ast.expr]:
    """Literal initializer for a schema default value, or None when it cannot be expressed."""
    default = field.field.default
    type_ref = field.type_ref

    if isinstance(type_ref, EnumType):
        enum = enums_by_name.get(type_ref.name)
        constant = enum.constant_for(default) if enum else None
        if constant is None:
            logger.warning(
                f"Default '{default}' of {owner}.{field.identifier} is not one of its enum values; skipping default"
            )
            return None
        return create_attribute(f"{type_ref.name}.{constant}")

    if isinstance(type_ref, ScalarType):
        if type_ref.kind == FieldType.STRING:
            return create_string_constant(str(default))
        if type_ref.kind == FieldType.NUMBER and not isinstance(default, bool):
            return create_call("Decimal", args=[create_string_constant(str(default))])
        if type_ref.kind == FieldType.BOOLEAN:
            if isinstance(default, bool):
                return create_literal(default)
            if str(default).lower() in ("true", "false"):
                return create_literal(str(default).lower() == "true")
        if type_ref.kind == FieldType.TIMESTAMP and isinstance(default, str):
            return create_attribute_call("datetime", "fromisoformat", args=[create_string_constant(default)])

    elif isinstance(type_ref, AnyType):
        return create_literal(default)

    elif isinstance(type_ref, ListType) and isinstance(default, (list, tuple)):
        element = type_ref.element
        if isinstance(element, AnyType) or (
            isinstance(element, ScalarType) and element.kind in (FieldType.STRING, FieldType.BOOLEAN)
        ):
            return create_literal(list(default))

    elif isinstance(type_ref, SetType) and isinstance(default, (list, tuple)):
        if type_ref.element.kind == FieldType.STRING:
            return create_call("set", args=[create_literal([str(value) for value in default])])

    logger.warning(
        f"Default {default!r} of {owner}.{field.identifier} cannot be expressed as a literal; skipping default"
    )
    return None


# ---- Class members ----

def _create_class_constants(record: RecordDescriptor) -> List[ast.stmt]:
    constants: List[ast.stmt] = []
    if record.is_entity:
        constants.append(create_assign("PARTITION_KEY", create_string_constant(record.partition_key)))
        if record.sort_key:
            constants.append(create_assign("SORT_KEY", create_string_constant(record.sort_key)))

    renamed = [field for field in record.fields if field.needs_attribute_annotation]
    constants.append(create_assign(
        "ATTRIBUTE_NAMES",
        create_dict(
            keys=[create_string_constant(field.identifier) for field in renamed],
            values=[create_string_constant(field.storage_name) for field in renamed]
        )
    ))
    return constants


def create_init_method(record: RecordDescriptor, enums_by_name: Dict[str, EnumDescriptor]) -> ast.FunctionDef:
    """Creates ``__init__`` taking every field as an optional keyword, in declaration order."""
    params = []
    body: List[ast.stmt] = []
    for field in record.fields:
        params.append((field.identifier, optional_annotation_for(field.type_ref), add_location(ast.Constant(value=None))))
        value: ast.expr = create_name(field.identifier)
        if field.field.has_default:
            default = _default_expression(field, enums_by_name, record.name)
            if default is not None:
                value = create_conditional(create_is_not_none(create_name(field.identifier)), value, default)
        body.append(create_assign(f"self.{private_attribute(field.identifier)}", value))

    return create_function_def("__init__", params, body, returns=add_location(ast.Constant(value=None)))


def _property_docstring(record: RecordDescriptor, field: ResolvedField) -> Optional[str]:
    lines = []
    if record.is_entity and field.identifier == record.partition_key:
        lines.append("Partition key.")
    elif record.is_entity and field.identifier == record.sort_key:
        lines.append("Sort key.")
    if field.field.description:
        lines.append(field.field.description)
    if field.needs_attribute_annotation:
        lines.append(f"Stored as '{field.storage_name}'.")
    return " ".join(lines) if lines else None


def create_accessors(record: RecordDescriptor, field: ResolvedField) -> List[ast.FunctionDef]:
    """Creates the property getter and setter of one field."""
    annotation = optional_annotation_for(field.type_ref)
    getter = create_function_def(
        field.identifier,
        [],
        [create_return(_self_attribute(field))],
        returns=annotation,
        decorators=["property"],
        docstring=_property_docstring(record, field),
    )
    setter = create_function_def(
        field.identifier,
        [("value", optional_annotation_for(field.type_ref), None)],
        [create_assign(f"self.{private_attribute(field.identifier)}", create_name("value"))],
        returns=add_location(ast.Constant(value=None)),
        decorators=[f"{field.identifier}.setter"],
    )
    return [getter, setter]


def create_to_item_method(record: RecordDescriptor) -> ast.FunctionDef:
    """Creates ``to_item`` producing the storage attribute map; absent values are left out."""
    body: List[ast.stmt] = [
        create_annotated_assign(
            "item",
            create_type_annotation("Dict", create_name("str"), create_name("Any")),
            create_dict([], [])
        )
    ]
    for field in record.fields:
        attribute = _self_attribute(field)
        # empty sets cannot be stored
        test = attribute if isinstance(field.type_ref, SetType) else create_is_not_none(attribute)
        body.append(create_if(test, [
            create_subscript_assign(
                create_name("item"),
                create_string_constant(field.storage_name),
                to_storage_expression(field.type_ref, _self_attribute(field))
            )
        ]))
    body.append(create_return(create_name("item")))

    return create_function_def(
        "to_item", [], body,
        returns=create_type_annotation("Dict", create_name("str"), create_name("Any")),
        docstring="Return the item representation keyed by storage attribute names.",
    )


def create_from_item_method(record: RecordDescriptor) -> ast.FunctionDef:
    """Creates the ``from_item`` classmethod rebuilding an instance from a storage attribute map."""
    body: List[ast.stmt] = [create_assign("entity", create_call("cls"))]
    for field in record.fields:
        raw_value = create_attribute_call("item", "get", args=[create_string_constant(field.storage_name)])
        stored = create_subscript(create_name("item"), create_string_constant(field.storage_name))
        body.append(create_if(create_is_not_none(raw_value), [
            create_assign(
                f"entity.{private_attribute(field.identifier)}",
                from_storage_expression(field.type_ref, stored)
            )
        ]))
    body.append(create_return(create_name("entity")))

    return create_function_def(
        "from_item",
        [("item", create_type_annotation("Dict", create_name("str"), create_name("Any")), None)],
        body,
        returns=_quoted(record.name),
        decorators=["classmethod"],
        first="cls",
    )


def create_eq_method(record: RecordDescriptor) -> ast.FunctionDef:
    body: List[ast.stmt] = [
        create_if(
            create_not(create_call("isinstance", args=[create_name("other"), create_name(record.name)])),
            [create_return(create_name("NotImplemented"))]
        )
    ]
    if record.fields:
        body.append(create_return(create_compare(
            create_tuple([_self_attribute(field) for field in record.fields]),
            ast.Eq(),
            create_tuple([_self_attribute(field, owner="other") for field in record.fields]),
        )))
    else:
        body.append(create_return(add_location(ast.Constant(value=True))))

    return create_function_def(
        "__eq__", [("other", create_name("object"), None)], body, returns=create_name("bool")
    )


def create_hash_method(record: RecordDescriptor) -> ast.FunctionDef:
    if record.fields:
        values = []
        for field in record.fields:
            value = _self_attribute(field)
            if needs_hashable(field.type_ref):
                value = create_call("_hashable", args=[value])
            values.append(value)
        body = [create_return(create_call("hash", args=[create_tuple(values)]))]
    else:
        body = [create_return(add_location(ast.Constant(value=0)))]
    return create_function_def("__hash__", [], body, returns=create_name("int"))


def create_repr_method(record: RecordDescriptor) -> ast.FunctionDef:
    """Creates ``__repr__`` rendering ``Name{field=value, ...}``."""
    if not record.fields:
        value: ast.expr = create_string_constant(f"{record.name}{{}}")
    else:
        parts = []
        for index, field in enumerate(record.fields):
            prefix = record.name + "{" if index == 0 else ", "
            parts.append(f"{prefix}{field.identifier}=")
            parts.append((_self_attribute(field), "r"))
        parts.append("}")
        value = create_fstring(parts)
    return create_function_def("__repr__", [], [create_return(value)], returns=create_name("str"))


def create_builder_class(record: RecordDescriptor) -> ast.ClassDef:
    """Creates the nested fluent ``Builder`` class."""
    init_body: List[ast.stmt] = [
        create_assign(f"self.{private_attribute(field.identifier)}", add_location(ast.Constant(value=None)))
        for field in record.fields
    ]
    body: List[ast.stmt] = [
        create_docstring(f"Fluent builder for {record.name}."),
        create_function_def("__init__", [], init_body, returns=add_location(ast.Constant(value=None))),
    ]

    for field in record.fields:
        body.append(create_function_def(
            field.identifier,
            [("value", optional_annotation_for(field.type_ref), None)],
            [
                create_assign(f"self.{private_attribute(field.identifier)}", create_name("value")),
                create_return(create_name("self")),
            ],
            returns=_quoted(f"{record.name}.Builder"),
        ))

    body.append(create_function_def(
        "build",
        [],
        [create_return(create_call(
            record.name,
            keywords=[
                add_location(ast.keyword(arg=field.identifier, value=_self_attribute(field)))
                for field in record.fields
            ]
        ))],
        returns=_quoted(record.name),
    ))
    return create_class_def("Builder", [], body)


def create_hashable_helper() -> ast.FunctionDef:
    """Module-level ``_hashable`` turning nested lists, sets and dicts into hashable values."""
    def _recurse(iterable: ast.expr) -> ast.expr:
        return create_comprehension(
            "generator", create_call("_hashable", args=[create_name("item")]), "item", iterable
        )

    def _isinstance(*types: str) -> ast.expr:
        spec = create_name(types[0]) if len(types) == 1 else create_tuple([create_name(t) for t in types])
        return create_call("isinstance", args=[create_name("value"), spec])

    body: List[ast.stmt] = [
        create_if(_isinstance("dict"), [create_return(create_call(
            "frozenset", args=[_recurse(create_attribute_call("value", "items"))]
        ))]),
        create_if(_isinstance("list", "tuple"), [create_return(create_call(
            "tuple", args=[_recurse(create_name("value"))]
        ))]),
        create_if(_isinstance("set", "frozenset"), [create_return(create_call(
            "frozenset", args=[_recurse(create_name("value"))]
        ))]),
        create_return(create_name("value")),
    ]
    return create_function_def(
        "_hashable", [("value", create_name("Any"), None)], body, returns=create_name("Any"), first=None
    )


def create_record_class(record: RecordDescriptor, enums_by_name: Dict[str, EnumDescriptor]) -> ast.ClassDef:
    """Creates the AST ClassDef for an entity or nested record type."""
    if record.description:
        docstring = record.description
    elif record.is_entity:
        docstring = f"{record.name} entity."
    else:
        docstring = f"{record.name} nested record."

    body: List[ast.stmt] = [create_docstring(docstring)]
    body.extend(_create_class_constants(record))
    body.append(create_init_method(record, enums_by_name))
    for field in record.fields:
        body.extend(create_accessors(record, field))

    body.append(create_function_def(
        "builder", [], [create_return(create_attribute_call("cls", "Builder"))],
        returns=_quoted(f"{record.name}.Builder"),
        decorators=["classmethod"],
        first="cls",
    ))
    body.append(create_to_item_method(record))
    body.append(create_from_item_method(record))
    body.append(create_eq_method(record))
    body.append(create_hash_method(record))
    body.append(create_repr_method(record))
    body.append(create_builder_class(record))

    return create_class_def(name=record.name, bases=[], body=body)


def _type_module_prefix(record: RecordDescriptor) -> str:
    """Entities live at the namespace root, nested types in the nested sub-package."""
    if record.is_entity:
        return f".{OutputLayout.NESTED_PACKAGE}."
    return "."


def generate_record_ast(record: RecordDescriptor, enums: Sequence[EnumDescriptor] = ()) -> ast.Module:
    """Generates the complete AST Module for an entity or nested record type."""
    enums_by_name = {enum.name: enum for enum in enums}

    usage = TypeUsage(typing_names={"Any", "Dict"})
    for field in record.fields:
        usage.add(field.type_ref)

    imports = usage.standard_imports()
    prefix = _type_module_prefix(record)
    for type_name in sorted(usage.records | usage.enums):
        imports.append(create_import(f"{prefix}{to_snake_case(type_name)}", [type_name]))

    module_body: List[ast.stmt] = [
        create_module_docstring(f"{record.name} {'entity' if record.is_entity else 'nested record'}.")
    ]
    module_body.extend(imports)
    if any(needs_hashable(field.type_ref) for field in record.fields):
        module_body.append(create_hashable_helper())
    module_body.append(create_record_class(record, enums_by_name))
    return create_module(module_body)


def generate_record_code(record: RecordDescriptor, enums: Sequence[EnumDescriptor] = ()) -> str:
    """Generates the Python code string for an entity or nested record module."""
    module_ast = generate_record_ast(record, enums)
    return ast.unparse(module_ast)


def generate_enum_ast(enum: EnumDescriptor) -> ast.Module:
    """Generates the AST Module for an enum type; members keep declaration order."""
    body: List[ast.stmt] = [create_docstring(f"Allowed values of {enum.owner}.{enum.field_name}.")]
    for constant, value in enum.members:
        body.append(create_assign(constant, create_string_constant(value)))

    return create_module([
        create_module_docstring(f"{enum.name} enum."),
        create_import("enum", ["Enum"]),
        create_class_def(name=enum.name, bases=["str", "Enum"], body=body),
    ])


def generate_enum_code(enum: EnumDescriptor) -> str:
    """Generates the Python code string for an enum module."""
    return ast.unparse(generate_enum_ast(enum))
