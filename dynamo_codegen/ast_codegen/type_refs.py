"""
Type reference rendering shared by the emitters.

Turns the domain's type references into annotations, storage conversions and
the imports a generated module needs for them.
"""

import ast
from dataclasses import dataclass, field
from typing import List, Set

from dynamo_codegen.ast_codegen.base import (
    add_location, create_attribute_call, create_call, create_comprehension,
    create_import, create_method_call, create_name, create_type_annotation,
)
from dynamo_codegen.domain.models import (
    AnyType, EnumType, FieldType, ListType, RecordType, ScalarType, SetType, TypeRef,
)

_SCALAR_ANNOTATIONS = {
    FieldType.STRING: "str",
    FieldType.NUMBER: "Decimal",
    FieldType.BOOLEAN: "bool",
    FieldType.TIMESTAMP: "datetime",
}


def annotation_for(type_ref: TypeRef) -> ast.expr:
    """Annotation of a value of the given type (without ``Optional``)."""
    if isinstance(type_ref, ScalarType):
        return create_name(_SCALAR_ANNOTATIONS[type_ref.kind])
    if isinstance(type_ref, ListType):
        return create_type_annotation("List", annotation_for(type_ref.element))
    if isinstance(type_ref, SetType):
        return create_type_annotation("Set", annotation_for(type_ref.element))
    if isinstance(type_ref, (RecordType, EnumType)):
        return create_name(type_ref.name)
    return create_name("Any")


def optional_annotation_for(type_ref: TypeRef) -> ast.expr:
    if isinstance(type_ref, AnyType):
        return create_name("Any")
    return create_type_annotation("Optional", annotation_for(type_ref))


def _element_name(depth: int) -> str:
    return "element" if depth == 0 else f"element{depth}"


def _decimal_of(value: ast.expr) -> ast.Call:
    return create_call("Decimal", args=[create_call("str", args=[value])])


def needs_storage_conversion(type_ref: TypeRef) -> bool:
    if isinstance(type_ref, ScalarType):
        return type_ref.kind in (FieldType.NUMBER, FieldType.TIMESTAMP)
    if isinstance(type_ref, ListType):
        return needs_storage_conversion(type_ref.element)
    if isinstance(type_ref, SetType):
        return type_ref.element.kind == FieldType.NUMBER
    return isinstance(type_ref, (RecordType, EnumType))


def to_storage_expression(type_ref: TypeRef, value: ast.expr, depth: int = 0) -> ast.expr:
    """Expression converting ``value`` to its item (storage) representation."""
    if isinstance(type_ref, ScalarType):
        if type_ref.kind == FieldType.NUMBER:
            return _decimal_of(value)
        if type_ref.kind == FieldType.TIMESTAMP:
            return create_method_call(value, "isoformat")
        return value
    if isinstance(type_ref, EnumType):
        return add_location(ast.Attribute(value=value, attr="value", ctx=ast.Load()))
    if isinstance(type_ref, RecordType):
        return create_method_call(value, "to_item")
    if isinstance(type_ref, ListType):
        if not needs_storage_conversion(type_ref.element):
            return create_call("list", args=[value])
        element = _element_name(depth)
        return create_comprehension(
            "list", to_storage_expression(type_ref.element, create_name(element), depth + 1), element, value
        )
    if isinstance(type_ref, SetType):
        if not needs_storage_conversion(type_ref):
            return create_call("set", args=[value])
        element = _element_name(depth)
        return create_comprehension("set", _decimal_of(create_name(element)), element, value)
    return value


def from_storage_expression(type_ref: TypeRef, value: ast.expr, depth: int = 0) -> ast.expr:
    """Expression converting an item (storage) value back to the field's type."""
    if isinstance(type_ref, ScalarType):
        if type_ref.kind == FieldType.TIMESTAMP:
            return create_attribute_call("datetime", "fromisoformat", args=[value])
        return value
    if isinstance(type_ref, EnumType):
        return create_call(type_ref.name, args=[value])
    if isinstance(type_ref, RecordType):
        return create_attribute_call(type_ref.name, "from_item", args=[value])
    if isinstance(type_ref, ListType):
        element_ref = type_ref.element
        if isinstance(element_ref, (RecordType, EnumType, SetType)) or (
            isinstance(element_ref, ScalarType) and element_ref.kind == FieldType.TIMESTAMP
        ):
            element = _element_name(depth)
            return create_comprehension(
                "list", from_storage_expression(element_ref, create_name(element), depth + 1), element, value
            )
        return create_call("list", args=[value])
    if isinstance(type_ref, SetType):
        return create_call("set", args=[value])
    return value


def needs_hashable(type_ref: TypeRef) -> bool:
    """Values of these types may be unhashable (lists, sets, dicts)."""
    return isinstance(type_ref, (ListType, SetType, AnyType))


@dataclass
class TypeUsage:
    """Names a generated module has to import for the types it mentions."""

    typing_names: Set[str] = field(default_factory=set)
    records: Set[str] = field(default_factory=set)
    enums: Set[str] = field(default_factory=set)
    decimal: bool = False
    datetime: bool = False

    def add(self, type_ref: TypeRef, optional: bool = True) -> "TypeUsage":
        if optional and not isinstance(type_ref, AnyType):
            self.typing_names.add("Optional")
        if isinstance(type_ref, ScalarType):
            if type_ref.kind == FieldType.NUMBER:
                self.decimal = True
            elif type_ref.kind == FieldType.TIMESTAMP:
                self.datetime = True
        elif isinstance(type_ref, ListType):
            self.typing_names.add("List")
            self.add(type_ref.element, optional=False)
        elif isinstance(type_ref, SetType):
            self.typing_names.add("Set")
            self.add(type_ref.element, optional=False)
        elif isinstance(type_ref, RecordType):
            self.records.add(type_ref.name)
        elif isinstance(type_ref, EnumType):
            self.enums.add(type_ref.name)
        else:
            self.typing_names.add("Any")
        return self

    def standard_imports(self) -> List[ast.stmt]:
        """``datetime``, ``decimal`` and ``typing`` imports, in that order."""
        imports: List[ast.stmt] = []
        if self.datetime:
            imports.append(create_import("datetime", ["datetime"]))
        if self.decimal:
            imports.append(create_import("decimal", ["Decimal"]))
        if self.typing_names:
            imports.append(create_import("typing", sorted(self.typing_names)))
        return imports
