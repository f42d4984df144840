"""
Domain module for dynamo-codegen.

This module contains the generation inputs, naming rules and type mapping,
separated from AST emission and file output concerns.
"""

from .models import (
    AnyType,
    EntityDescriptor,
    EnumDescriptor,
    EnumType,
    Field,
    FieldConstraints,
    FieldType,
    GeneratedFile,
    KeyDescriptor,
    ListItems,
    ListType,
    NestedField,
    PrimaryKey,
    RecordDescriptor,
    RecordType,
    ResolvedField,
    ScalarType,
    Schema,
    SecondaryIndex,
    SetType,
    TableBinding,
    TypeRef,
)

from .naming import (
    NameCollision,
    capitalize,
    detect_collisions,
    enum_constant_names,
    find_collisions,
    is_valid_identifier,
    is_valid_package_name,
    needs_attribute_annotation,
    resolve_identifier,
    resolve_key_identifier,
    to_camel_case,
    to_constant_case,
    to_snake_case,
)

from .type_mapping import (
    TypeMapper,
    describe_entity,
    describe_key,
    map_scalar,
)

__all__ = [
    # Schema input
    'Field',
    'FieldConstraints',
    'FieldType',
    'ListItems',
    'NestedField',
    'PrimaryKey',
    'Schema',
    'SecondaryIndex',
    'TableBinding',

    # Type references
    'AnyType',
    'EnumType',
    'ListType',
    'RecordType',
    'ScalarType',
    'SetType',
    'TypeRef',

    # Descriptions
    'EntityDescriptor',
    'EnumDescriptor',
    'GeneratedFile',
    'KeyDescriptor',
    'RecordDescriptor',
    'ResolvedField',

    # Naming
    'NameCollision',
    'capitalize',
    'detect_collisions',
    'enum_constant_names',
    'find_collisions',
    'is_valid_identifier',
    'is_valid_package_name',
    'needs_attribute_annotation',
    'resolve_identifier',
    'resolve_key_identifier',
    'to_camel_case',
    'to_constant_case',
    'to_snake_case',

    # Type mapping
    'TypeMapper',
    'describe_entity',
    'describe_key',
    'map_scalar',
]
