"""
Tests for the Key Helper AST Code Generator
"""

import ast
from unittest import TestCase

from dynamo_codegen.ast_codegen.keys import (
    create_key_method,
    generate_keys_ast,
    generate_keys_code,
    index_constant_name,
    keys_class_name,
)
from dynamo_codegen.domain.models import Field
from dynamo_codegen.domain.type_mapping import describe_entity

from schema_factories import email_index, make_schema, order_schema, table_binding, user_schema


class TestKeyNames(TestCase):

    def test_keys_class_name(self):
        assert keys_class_name(describe_entity(user_schema())) == "UserKeys"

    def test_index_constant_name(self):
        assert index_constant_name("by-email") == "INDEX_BY_EMAIL"
        assert index_constant_name("GSI1") == "INDEX_GSI1"
        assert index_constant_name("1st") == "INDEX_1ST"


class TestGenerateKeys(TestCase):
    """Test cases for generate_keys_ast / generate_keys_code"""

    def test_constants_hold_storage_names(self):
        code = generate_keys_code(describe_entity(order_schema()))
        assert "PARTITION_KEY_FIELD = 'order-id'" in code
        assert "SORT_KEY_FIELD = 'created_at'" in code

    def test_key_factory_takes_resolved_identifiers(self):
        key = create_key_method(describe_entity(user_schema()))
        assert [arg.arg for arg in key.args.args] == ["userId", "entityType"]
        assert any(isinstance(d, ast.Name) and d.id == "staticmethod" for d in key.decorator_list)
        assert "return {UserKeys.PARTITION_KEY_FIELD: userId, UserKeys.SORT_KEY_FIELD: entityType}" in ast.unparse(key)

    def test_partition_key_only(self):
        entity = describe_entity(make_schema([Field(name="id", type="number")], partition_key="id"))
        code = generate_keys_code(entity)
        assert "SORT_KEY_FIELD" not in code
        assert "def key(id: Decimal) -> Dict[str, Any]:" in code
        assert "from decimal import Decimal" in code

    def test_timestamp_and_enum_key_components_are_strings(self):
        code = generate_keys_code(describe_entity(order_schema()))
        assert "def key(orderId: str, created_at: str)" in code

    def test_index_constants_from_binding(self):
        code = generate_keys_code(describe_entity(user_schema()), table_binding([email_index()]))
        assert "INDEX_BY_EMAIL = 'by-email'" in code

    def test_not_instantiable(self):
        module = generate_keys_ast(describe_entity(user_schema()))
        namespace = {}
        exec(compile(module, "<keys>", "exec"), namespace)
        keys = namespace["UserKeys"]
        with self.assertRaises(TypeError):
            keys()
        assert keys.key("u1", "PROFILE") == {"userId": "u1", "entityType": "PROFILE"}
