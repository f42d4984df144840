"""
Tests for the type mapper and the entity description stage.

These work on descriptions only; no source is generated.
"""

from unittest import TestCase

import pytest

from dynamo_codegen.domain.models import (
    AnyType,
    EnumType,
    Field,
    FieldType,
    ListItems,
    ListType,
    NestedField,
    RecordType,
    ScalarType,
    SetType,
)
from dynamo_codegen.domain.type_mapping import TypeMapper, describe_entity, describe_key, map_scalar
from dynamo_codegen.exceptions import CodeGenerationError

from schema_factories import make_schema, order_schema, user_schema


class TestMapScalar(TestCase):
    """Test cases for map_scalar"""

    def test_scalars(self):
        assert map_scalar("string") == ScalarType(FieldType.STRING)
        assert map_scalar("number") == ScalarType(FieldType.NUMBER)
        assert map_scalar("boolean") == ScalarType(FieldType.BOOLEAN)
        assert map_scalar("timestamp") == ScalarType(FieldType.TIMESTAMP)

    def test_bool_alias(self):
        assert map_scalar("bool") == ScalarType(FieldType.BOOLEAN)

    def test_sets(self):
        assert map_scalar("string-set") == SetType(ScalarType(FieldType.STRING))
        assert map_scalar("number-set") == SetType(ScalarType(FieldType.NUMBER))

    def test_untyped_list_and_map(self):
        assert map_scalar("list") == ListType(AnyType())
        assert map_scalar("map") == AnyType()

    def test_unknown_type_degrades_to_any(self):
        assert map_scalar("binary") == AnyType()
        assert map_scalar(None) == AnyType()


class TestTypeMapper(TestCase):
    """Test cases for TypeMapper.map_field"""

    def test_enum_field_materializes_enum(self):
        mapper = TypeMapper("Order")
        field = Field(name="status", type="string", enum_values=("open", "closed"))

        type_ref = mapper.map_field(field, "Order")

        assert type_ref == EnumType("OrderStatus")
        assert len(mapper.enums) == 1
        enum = mapper.enums[0]
        assert enum.values == ("open", "closed")
        assert enum.constants == ("OPEN", "CLOSED")
        assert enum.owner == "Order"
        assert enum.field_name == "status"

    def test_map_with_fields_materializes_record(self):
        mapper = TypeMapper("Order")
        field = Field(name="ship-to", type="map", fields=(NestedField(name="city", type="string"),))

        type_ref = mapper.map_field(field, "Order")

        assert type_ref == RecordType("OrderShipTo")
        assert [record.name for record in mapper.records] == ["OrderShipTo"]
        assert mapper.records[0].fields[0].identifier == "city"
        assert mapper.records[0].is_entity is False

    def test_map_without_fields_is_untyped(self):
        mapper = TypeMapper("Order")
        assert mapper.map_field(Field(name="meta", type="map"), "Order") == AnyType()
        assert mapper.records == []

    def test_list_of_records_gets_item_suffix(self):
        mapper = TypeMapper("Order")
        field = Field(name="lines", type="list", items=ListItems(type="map", fields=(
            NestedField(name="sku", type="string"),
        )))
        assert mapper.map_field(field, "Order") == ListType(RecordType("OrderLinesItem"))

    def test_list_of_scalars(self):
        mapper = TypeMapper("Order")
        field = Field(name="notes", type="list", items=ListItems(type="timestamp"))
        assert mapper.map_field(field, "Order") == ListType(ScalarType(FieldType.TIMESTAMP))

    def test_list_without_items_is_untyped(self):
        mapper = TypeMapper("Order")
        assert mapper.map_field(Field(name="misc", type="list"), "Order") == ListType(AnyType())

    def test_nested_types_are_named_after_their_container(self):
        mapper = TypeMapper("Order")
        field = Field(name="shipping", type="map", fields=(
            NestedField(name="address", type="map", fields=(NestedField(name="zip", type="string"),)),
            NestedField(name="speed", type="string", enum_values=("fast", "slow")),
        ))

        mapper.map_field(field, "Order")

        # inner records are registered before the record that contains them
        assert [record.name for record in mapper.records] == ["OrderShippingAddress", "OrderShipping"]
        assert [enum.name for enum in mapper.enums] == ["OrderShippingSpeed"]
        assert mapper.enums[0].owner == "OrderShipping"


class TestDescribeEntity(TestCase):
    """Test cases for describe_entity"""

    def test_user_schema(self):
        entity = describe_entity(user_schema())

        assert entity.name == "User"
        assert [field.identifier for field in entity.record.fields] == ["userId", "entityType", "email"]
        assert entity.record.is_entity
        assert entity.record.partition_key == "userId"
        assert entity.record.sort_key == "entityType"
        assert entity.partition_key.storage_name == "userId"
        assert entity.sort_key.identifier == "entityType"
        assert entity.nested_records == ()
        assert entity.enums == ()

    def test_order_schema_materializes_nested_types(self):
        entity = describe_entity(order_schema())

        assert [record.name for record in entity.nested_records] == ["OrderShipping", "OrderLinesItem"]
        assert entity.enum_names == ("OrderStatus",)
        assert entity.partition_key.identifier == "orderId"
        assert entity.partition_key.storage_name == "order-id"
        assert entity.sort_key.type_ref == ScalarType(FieldType.TIMESTAMP)

        renamed = {f.storage_name: f.identifier for f in entity.record.fields if f.needs_attribute_annotation}
        assert renamed == {"order-id": "orderId", "class": "class_"}

    def test_missing_entity_name_defaults(self):
        schema = make_schema([Field(name="id", type="string")], partition_key="id", entity_name=None)
        assert describe_entity(schema).name == "Entity"

    def test_partition_key_only(self):
        schema = make_schema([Field(name="id", type="string")], partition_key="id")
        entity = describe_entity(schema)
        assert entity.sort_key is None
        assert len(entity.key_fields) == 1

    def test_undeclared_key_is_a_string(self):
        schema = make_schema([Field(name="email", type="string")], partition_key="tenant-id")
        entity = describe_entity(schema)
        assert entity.partition_key.identifier == "tenantId"
        assert entity.partition_key.type_ref == ScalarType(FieldType.STRING)

    def test_describe_key_for_index_attribute(self):
        entity = describe_entity(order_schema())
        key = describe_key(entity, "status")
        assert key.identifier == "status"
        assert key.type_ref == EnumType("OrderStatus")

    def test_duplicate_type_names_fail(self):
        schema = make_schema(
            [
                Field(name="id", type="string"),
                Field(name="lines", type="map", fields=(NestedField(name="a", type="string"),)),
                Field(name="linesItem", type="map", fields=(NestedField(name="b", type="string"),)),
                Field(name="ok", type="list", items=ListItems(type="map", fields=(NestedField(name="c", type="string"),))),
                Field(name="ok-item", type="map", fields=(NestedField(name="d", type="string"),)),
            ],
            partition_key="id",
            entity_name="Doc",
        )
        with pytest.raises(CodeGenerationError) as exc_info:
            describe_entity(schema)
        assert "DocOkItem" in str(exc_info.value)
