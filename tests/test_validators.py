"""
Tests for the Validator AST Code Generator
"""

import ast
from unittest import TestCase

from dynamo_codegen.ast_codegen.validators import (
    create_constraint_checks,
    generate_validation_error_code,
    generate_validator_ast,
    generate_validator_code,
    pattern_constant_name,
    validator_class_name,
)
from dynamo_codegen.domain.models import Field, FieldConstraints
from dynamo_codegen.domain.type_mapping import describe_entity

from schema_factories import make_schema, order_schema, user_schema


def _field(entity, identifier):
    return next(f for f in entity.record.fields if f.identifier == identifier)


class TestValidationErrorModule(TestCase):

    def test_error_types(self):
        code = generate_validation_error_code()
        ast.parse(code)
        assert "@dataclass(frozen=True)" in code
        assert "class FieldViolation:" in code
        assert "class ValidationError(Exception):" in code

    def test_error_message_lists_every_violation(self):
        namespace = {"__name__": "validation_error_under_test"}
        exec(generate_validation_error_code(), namespace)
        violation = namespace["FieldViolation"]
        error = namespace["ValidationError"]("User", [
            violation("email", "required", "email is required"),
            violation("age", "min", "age must be >= 0"),
        ])
        assert str(error) == "User validation failed: email is required; age must be >= 0"
        assert len(error.errors) == 2
        assert error.entity_name == "User"


class TestConstraintChecks(TestCase):
    """Test cases for create_constraint_checks"""

    def setUp(self):
        self.order = describe_entity(order_schema())

    def test_required_check(self):
        statements, pattern = create_constraint_checks(_field(describe_entity(user_schema()), "email"))
        assert pattern is None
        assert len(statements) == 1
        assert "if entity.email is None:" in ast.unparse(statements[0])
        assert "FieldViolation('email', 'required', 'email is required')" in ast.unparse(statements[0])

    def test_string_constraints(self):
        statements, pattern = create_constraint_checks(_field(self.order, "sku"))
        code = ast.unparse(statements[0])
        assert code.startswith("if entity.sku is not None:")
        assert "len(entity.sku) < 3" in code
        assert "len(entity.sku) > 12" in code
        assert "not _SKU_PATTERN.fullmatch(entity.sku)" in code
        assert ast.unparse(pattern) == "_SKU_PATTERN = re.compile('[A-Z]{3}-[0-9]+')"

    def test_number_constraints(self):
        statements, _ = create_constraint_checks(_field(self.order, "total"))
        code = ast.unparse(statements[0])
        assert "entity.total < Decimal('0')" in code
        assert "'total must be >= 0'" in code
        assert "entity.total > Decimal('10000')" in code

    def test_messages_use_storage_name(self):
        schema = make_schema(
            [Field(name="id", type="string"), Field(name="display-name", type="string", required=True)],
            partition_key="id",
        )
        statements, _ = create_constraint_checks(_field(describe_entity(schema), "displayName"))
        code = ast.unparse(statements[0])
        assert "entity.displayName is None" in code
        assert "'display-name is required'" in code

    def test_enum_fields_skip_string_constraints(self):
        schema = make_schema(
            [
                Field(name="id", type="string"),
                Field(name="tier", type="string", enum_values=("gold",), required=True,
                      constraints=FieldConstraints(min_length=10)),
            ],
            partition_key="id",
        )
        statements, _ = create_constraint_checks(_field(describe_entity(schema), "tier"))
        assert len(statements) == 1
        assert "len(" not in ast.unparse(statements[0])

    def test_pattern_constant_name(self):
        assert pattern_constant_name(_field(self.order, "sku")) == "_SKU_PATTERN"
        assert pattern_constant_name(_field(self.order, "orderId")) == "_ORDER_ID_PATTERN"

    def test_pattern_constant_names_are_unique(self):
        schema = make_schema(
            [
                Field(name="userId", type="string"),
                Field(name="order_id", type="string", constraints=FieldConstraints(pattern="A.*")),
                Field(name="orderId", type="string", constraints=FieldConstraints(pattern="B.*")),
            ],
        )
        entity = describe_entity(schema)
        taken = set()
        assert pattern_constant_name(_field(entity, "order_id"), taken) == "_ORDER_ID_PATTERN"
        assert pattern_constant_name(_field(entity, "orderId"), taken) == "_ORDER_ID_2_PATTERN"
        assert taken == {"_ORDER_ID_PATTERN", "_ORDER_ID_2_PATTERN"}

        code = generate_validator_code(entity)
        assert "_ORDER_ID_PATTERN = re.compile('A.*')" in code
        assert "_ORDER_ID_2_PATTERN = re.compile('B.*')" in code


class TestGenerateValidator(TestCase):
    """Test cases for generate_validator_ast / generate_validator_code"""

    def test_class_name(self):
        assert validator_class_name(describe_entity(user_schema())) == "UserValidator"

    def test_imports(self):
        code = generate_validator_code(describe_entity(order_schema()))
        assert "import re" in code
        assert "from decimal import Decimal" in code
        assert "from ..order import Order" in code
        assert "from .validation_error import FieldViolation, ValidationError" in code

    def test_validate_collects_then_raises(self):
        code = generate_validator_code(describe_entity(user_schema()))
        assert "errors: List[FieldViolation] = []" in code
        assert "raise ValidationError('User', errors)" in code

    def test_no_checks_gives_noop(self):
        schema = make_schema([Field(name="id", type="string")], partition_key="id")
        module = generate_validator_ast(describe_entity(schema))
        validator = next(n for n in module.body if isinstance(n, ast.ClassDef))
        validate = next(n for n in validator.body if isinstance(n, ast.FunctionDef) and n.name == "validate")
        assert isinstance(validate.body[-1], ast.Pass)

        code = ast.unparse(module)
        assert "ValidationError" not in code.split("class UserValidator")[0]
        assert "import re" not in code
