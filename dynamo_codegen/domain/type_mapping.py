"""
Type mapping domain logic for dynamo-codegen.

This module maps the closed schema type vocabulary to target type references
and describes every named type (entity, nested record, enum) a schema needs
before any source is emitted.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..constants import OutputLayout
from ..exceptions import CodeGenerationError
from .models import (
    AnyType,
    EntityDescriptor,
    EnumDescriptor,
    EnumType,
    FieldType,
    KeyDescriptor,
    ListItems,
    ListType,
    NestedField,
    RecordDescriptor,
    RecordType,
    ResolvedField,
    ScalarType,
    Schema,
    SetType,
    TypeRef,
)
from .naming import capitalize, enum_constant_names, resolve_identifier, to_camel_case

logger = logging.getLogger(__name__)

_SCALARS = {
    FieldType.STRING: ScalarType(FieldType.STRING),
    FieldType.NUMBER: ScalarType(FieldType.NUMBER),
    FieldType.BOOLEAN: ScalarType(FieldType.BOOLEAN),
    FieldType.TIMESTAMP: ScalarType(FieldType.TIMESTAMP),
}

_SETS = {
    FieldType.STRING_SET: SetType(ScalarType(FieldType.STRING)),
    FieldType.NUMBER_SET: SetType(ScalarType(FieldType.NUMBER)),
}


def map_scalar(type_name: Optional[str]) -> TypeRef:
    """
    Map a type name that needs no materialization.

    Scalars and sets map to their own references; ``list`` maps to a list of
    untyped values and ``map`` or any unrecognized name degrades to ``AnyType``.
    """
    field_type = FieldType.from_name(type_name)
    if field_type in _SCALARS:
        return _SCALARS[field_type]
    if field_type in _SETS:
        return _SETS[field_type]
    if field_type == FieldType.LIST:
        return ListType(AnyType())
    if field_type == FieldType.UNKNOWN:
        logger.debug(f"Unrecognized schema type '{type_name}' degrades to Any")
    return AnyType()


class TypeMapper:
    """
    Maps fields to type references, materializing nested types as it goes.

    One mapper is used per entity; the records and enums it collects are
    returned in materialization order, which follows field declaration order
    depth-first.
    """

    def __init__(self, entity_name: str):
        self.entity_name = entity_name
        self.records: List[RecordDescriptor] = []
        self.enums: List[EnumDescriptor] = []

    def map_field(self, field: NestedField, containing_type: str) -> TypeRef:
        """Map one field declared on ``containing_type``."""
        identifier = resolve_identifier(field)
        field_type = field.field_type

        if field.is_enum:
            return self._materialize_enum(field, containing_type + capitalize(identifier), containing_type)

        if field_type == FieldType.MAP:
            if field.fields:
                name = containing_type + capitalize(identifier)
                self.describe_record(name, field.fields, description=field.description)
                return RecordType(name)
            return AnyType()

        if field_type == FieldType.LIST:
            return ListType(self._map_element(field.items, containing_type + capitalize(identifier)))

        return map_scalar(field.type)

    def _map_element(self, items: Optional[ListItems], base_name: str) -> TypeRef:
        if items is None:
            return AnyType()
        if items.is_record:
            name = base_name + OutputLayout.LIST_ITEM_SUFFIX
            self.describe_record(name, items.fields)
            return RecordType(name)
        return map_scalar(items.type)

    def _materialize_enum(self, field: NestedField, name: str, owner: str) -> EnumType:
        values = tuple(str(value) for value in field.enum_values)
        self.enums.append(
            EnumDescriptor(
                name=name,
                values=values,
                constants=enum_constant_names(values),
                owner=owner,
                field_name=field.name,
            )
        )
        return EnumType(name)

    def resolve_fields(self, fields: Sequence[NestedField], containing_type: str) -> tuple:
        return tuple(
            ResolvedField(
                field=field,
                identifier=resolve_identifier(field),
                type_ref=self.map_field(field, containing_type),
            )
            for field in fields
        )

    def describe_record(
        self, name: str, fields: Sequence[NestedField], description: Optional[str] = None
    ) -> RecordDescriptor:
        """Describe a nested record type and register it (its own nested types first)."""
        record = RecordDescriptor(
            name=name,
            fields=self.resolve_fields(fields, name),
            description=description,
        )
        self.records.append(record)
        return record


def _key_descriptor(schema: Schema, resolved: Dict[str, ResolvedField], storage_name: str) -> KeyDescriptor:
    field = resolved.get(storage_name)
    if field is not None:
        return KeyDescriptor(storage_name=storage_name, identifier=field.identifier, type_ref=field.type_ref)
    logger.warning(
        f"Key attribute '{storage_name}' is not declared on {schema.name}; treating it as a string"
    )
    return KeyDescriptor(
        storage_name=storage_name,
        identifier=to_camel_case(storage_name),
        type_ref=ScalarType(FieldType.STRING),
    )


def describe_key(entity: EntityDescriptor, storage_name: str) -> KeyDescriptor:
    """Describe a key attribute (e.g. a secondary index key) of an already described entity."""
    resolved = {field.storage_name: field for field in entity.record.fields}
    return _key_descriptor(entity.schema, resolved, storage_name)


def describe_entity(schema: Schema) -> EntityDescriptor:
    """
    Describe the entity type of a schema and every nested type it needs.

    Args:
        schema: Entity schema (already checked for identifier collisions)

    Returns:
        EntityDescriptor with the root record, nested records and enums

    Raises:
        CodeGenerationError: If two materialized types share a name
    """
    entity_name = schema.name
    mapper = TypeMapper(entity_name)
    fields = mapper.resolve_fields(schema.fields, entity_name)
    resolved = {field.storage_name: field for field in fields}

    partition_key = _key_descriptor(schema, resolved, schema.primary_key.partition_key)
    sort_key = None
    if schema.primary_key.has_sort_key:
        sort_key = _key_descriptor(schema, resolved, schema.primary_key.sort_key)

    record = RecordDescriptor(
        name=entity_name,
        fields=fields,
        description=schema.description,
        is_entity=True,
        partition_key=partition_key.identifier,
        sort_key=sort_key.identifier if sort_key else None,
    )

    seen: Dict[str, str] = {entity_name: "entity"}
    for type_name, kind in [(r.name, "nested record") for r in mapper.records] + [
        (e.name, "enum") for e in mapper.enums
    ]:
        if type_name in seen:
            raise CodeGenerationError(
                f"Type name '{type_name}' is produced twice ({seen[type_name]} and {kind})",
                component="type_mapping",
                entity=entity_name,
            )
        seen[type_name] = kind

    return EntityDescriptor(
        schema=schema,
        record=record,
        nested_records=tuple(mapper.records),
        enums=tuple(mapper.enums),
        partition_key=partition_key,
        sort_key=sort_key,
    )
