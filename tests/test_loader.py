"""
Tests for schema and table metadata loading
"""

import json
from unittest import TestCase

import pytest

from dynamo_codegen.domain.models import Field
from dynamo_codegen.exceptions import SchemaLoadError
from dynamo_codegen.loader import (
    load_schema,
    load_table_binding,
    read_document,
    schema_from_dict,
    table_binding_from_dict,
)


ORDER_DOCUMENT = {
    "schemaVersion": 1.0,
    "entityName": "Order",
    "description": "A customer order.",
    "primaryKey": {"partitionKey": "order-id", "sortKey": "createdAt"},
    "fields": [
        {"name": "order-id", "type": "string", "required": True},
        {"name": "createdAt", "type": "timestamp", "required": True},
        {"name": "status", "type": "string", "enum": ["pending", "shipped"], "defaultValue": "pending"},
        {"name": "class", "type": "string", "nameOverride": "category"},
        {"name": "sku", "type": "string", "constraints": {"minLength": 3, "maxLength": 12, "pattern": "[A-Z]+"}},
        {"name": "total", "type": "number", "constraints": {"min": 0}},
        {
            "name": "lines",
            "type": "list",
            "items": {"type": "map", "fields": [{"name": "qty", "type": "number"}]},
        },
        {"name": "shipping", "type": "map", "fields": [{"name": "street", "type": "string"}]},
    ],
}


class TestSchemaFromDict(TestCase):
    """Test cases for schema_from_dict"""

    def setUp(self):
        self.schema = schema_from_dict(ORDER_DOCUMENT)

    def test_entity(self):
        assert self.schema.name == "Order"
        assert self.schema.description == "A customer order."
        assert self.schema.schema_version == "1.0"
        assert self.schema.primary_key.partition_key == "order-id"
        assert self.schema.primary_key.sort_key == "createdAt"

    def test_fields_keep_declaration_order(self):
        assert [f.name for f in self.schema.fields] == [
            "order-id", "createdAt", "status", "class", "sku", "total", "lines", "shipping"
        ]
        assert all(isinstance(f, Field) for f in self.schema.fields)

    def test_aliases(self):
        status = self.schema.find_field("status")
        assert status.enum_values == ("pending", "shipped")
        assert status.default == "pending"
        assert self.schema.find_field("class").name_override == "category"

    def test_constraints(self):
        sku = self.schema.find_field("sku").constraints
        assert (sku.min_length, sku.max_length, sku.pattern) == (3, 12, "[A-Z]+")
        assert self.schema.find_field("total").constraints.min == 0

    def test_nested_fields(self):
        lines = self.schema.find_field("lines")
        assert lines.items.type == "map"
        assert [f.name for f in lines.items.fields] == ["qty"]
        assert [f.name for f in self.schema.find_field("shipping").fields] == ["street"]

    def test_entity_block(self):
        schema = schema_from_dict({
            "schemaVersion": "2",
            "entity": {
                "name": "User",
                "primaryKey": {"partitionKey": "userId"},
                "fields": [{"name": "userId", "type": "string"}],
            },
        })
        assert schema.name == "User"
        assert schema.primary_key.sort_key is None
        assert [f.name for f in schema.fields] == ["userId"]

    def test_missing_entity_name_falls_back(self):
        schema = schema_from_dict({"primaryKey": {"partitionKey": "id"}, "fields": []})
        assert schema.name == "Entity"

    def test_missing_primary_key(self):
        with self.assertRaises(SchemaLoadError):
            schema_from_dict({"entityName": "User", "fields": []})

    def test_field_without_type(self):
        with self.assertRaises(SchemaLoadError):
            schema_from_dict({"primaryKey": {"partitionKey": "id"}, "fields": [{"name": "id"}]})


class TestTableBindingFromDict(TestCase):

    def test_indexes(self):
        binding = table_binding_from_dict({
            "tableName": "app-table",
            "tableArn": "${Token[TOKEN.1]}",
            "region": "eu-west-1",
            "globalSecondaryIndexes": [{"indexName": "by-email", "partitionKey": "email"}],
            "localSecondaryIndexes": [{"indexName": "by-date", "partitionKey": "userId", "sortKey": "createdAt"}],
        })
        assert binding.table_name == "app-table"
        assert binding.table_arn == "${Token[TOKEN.1]}"
        assert binding.region == "eu-west-1"
        assert [i.index_name for i in binding.secondary_indexes] == ["by-email", "by-date"]
        assert binding.local_secondary_indexes[0].sort_key == "createdAt"

    def test_table_name_is_required(self):
        with self.assertRaises(SchemaLoadError):
            table_binding_from_dict({"region": "us-east-1"})


def test_load_json_file(tmp_path):
    path = tmp_path / "order.bprint.json"
    path.write_text(json.dumps(ORDER_DOCUMENT), encoding="utf-8")
    assert load_schema(path).name == "Order"


def test_load_yaml_file(tmp_path):
    path = tmp_path / "user.bprint"
    path.write_text(
        "entityName: User\n"
        "primaryKey:\n"
        "  partitionKey: userId\n"
        "fields:\n"
        "  - name: userId\n"
        "    type: string\n"
        "    required: true\n",
        encoding="utf-8",
    )
    schema = load_schema(str(path))
    assert schema.name == "User"
    assert schema.fields[0].required is True


def test_inline_json():
    binding = load_table_binding('{"tableName": "inline-table"}')
    assert binding.table_name == "inline-table"
    assert binding.secondary_indexes == ()


def test_unreadable_file(tmp_path):
    with pytest.raises(SchemaLoadError) as exc_info:
        read_document(tmp_path / "missing.json")
    assert "missing.json" in exc_info.value.context["source"]


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SchemaLoadError):
        read_document(path)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(SchemaLoadError):
        read_document(path)
