"""
Tests for the Repository AST Code Generator
"""

import ast
from unittest import TestCase

from dynamo_codegen.ast_codegen.repositories import (
    create_query_method,
    create_save_method,
    generate_repository_ast,
    generate_repository_code,
    query_method_name,
    repository_class_name,
)
from dynamo_codegen.domain.type_mapping import describe_entity

from schema_factories import email_index, order_schema, order_status_index, table_binding, user_schema


def _repository_methods(module: ast.Module):
    class_node = next(n for n in module.body if isinstance(n, ast.ClassDef))
    return {n.name: n for n in class_node.body if isinstance(n, ast.FunctionDef)}


class TestRepositoryNames(TestCase):

    def test_names(self):
        assert repository_class_name(describe_entity(user_schema())) == "UserRepository"
        assert query_method_name(email_index()) == "query_by_by_email"
        assert query_method_name(order_status_index()) == "query_by_status_created"


class TestGenerateRepository(TestCase):
    """Test cases for generate_repository_ast / generate_repository_code"""

    def setUp(self):
        self.user = describe_entity(user_schema())
        self.order = describe_entity(order_schema())

    def test_code_parses(self):
        ast.parse(generate_repository_code(self.user, table_binding([email_index()])))
        ast.parse(generate_repository_code(self.order, table_binding([order_status_index()])))

    def test_operations(self):
        methods = _repository_methods(generate_repository_ast(self.user, table_binding()))
        assert set(methods) == {"__init__", "from_resource", "save", "find_by_key", "delete_by_key"}

    def test_never_emits_scan(self):
        code = generate_repository_code(self.user, table_binding([email_index()]))
        assert "scan" not in code.replace("no scan operation", "")

    def test_save_validates_before_writing(self):
        body = create_save_method(self.user).body
        statements = [ast.unparse(statement) for statement in body if not isinstance(statement, ast.Expr) or not isinstance(statement.value, ast.Constant)]
        assert statements == ["UserValidator.validate(entity)", "self._table.put_item(Item=entity.to_item())"]

    def test_key_parameters(self):
        methods = _repository_methods(generate_repository_ast(self.user, table_binding()))
        for name in ("find_by_key", "delete_by_key"):
            assert [arg.arg for arg in methods[name].args.args] == ["self", "userId", "entityType"]
            assert [ast.unparse(arg.annotation) for arg in methods[name].args.args[1:]] == ["str", "str"]

    def test_find_by_key_returns_optional(self):
        methods = _repository_methods(generate_repository_ast(self.user, table_binding()))
        assert ast.unparse(methods["find_by_key"].returns) == "Optional[User]"
        assert "UserKeys.key(userId, entityType)" in ast.unparse(methods["find_by_key"])

    def test_timestamp_keys_are_converted(self):
        methods = _repository_methods(generate_repository_ast(self.order, table_binding()))
        assert "OrderKeys.key(orderId, created_at.isoformat())" in ast.unparse(methods["find_by_key"])

    def test_query_without_sort_key(self):
        method = create_query_method(self.user, email_index())
        code = ast.unparse(method)
        assert [arg.arg for arg in method.args.args] == ["self", "email"]
        assert "expression_names = {'#pk': 'email'}" in code
        assert "IndexName=UserKeys.INDEX_BY_EMAIL" in code
        assert "#sk" not in code

    def test_query_with_optional_sort_key(self):
        method = create_query_method(self.order, order_status_index())
        code = ast.unparse(method)
        assert [arg.arg for arg in method.args.args] == ["self", "status", "created_at"]
        assert ast.unparse(method.args.defaults[0]) == "None"
        assert "expression_values = {':pk': status.value}" in code
        assert "if created_at is not None:" in code
        assert "key_condition += ' AND #sk = :sk'" in code
        assert "expression_values[':sk'] = created_at.isoformat()" in code

    def test_pagination_helper_only_with_indexes(self):
        without = _repository_methods(generate_repository_ast(self.user, table_binding()))
        assert "_query_all" not in without

        code = generate_repository_code(self.user, table_binding([email_index()]))
        assert "LastEvaluatedKey" in code
        assert "kwargs['ExclusiveStartKey'] = last_key" in code

    def test_imports(self):
        code = generate_repository_code(self.order, table_binding([order_status_index()]))
        assert "from ..keys.order_keys import OrderKeys" in code
        assert "from ..order import Order" in code
        assert "from ..validators.order_validator import OrderValidator" in code
        assert "from ..nested.order_status import OrderStatus" in code
        assert "from datetime import datetime" in code
        assert "if TYPE_CHECKING:" in code
        assert "from ..client.dynamodb_table_client import DynamoDbTableClient" in code
        assert "import boto3" not in code
