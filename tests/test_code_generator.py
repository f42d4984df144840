# File: tests/test_code_generator.py
# Batch generation tests: layout, determinism and all-or-nothing failure.

from pathlib import Path, PurePosixPath
from unittest import TestCase

import pytest

from dynamo_codegen.ast_codegen.code_generator import (
    CodeGenerator,
    CodeGeneratorFactory,
    CodeGeneratorStrategy,
    InitPyGenerator,
    check_index_names,
    check_type_names,
    generate_for_table,
)
from dynamo_codegen.constants import FileCategories
from dynamo_codegen.domain.models import Field, SecondaryIndex
from dynamo_codegen.domain.type_mapping import describe_entity
from dynamo_codegen.exceptions import CodeGenerationError, ConfigurationError, NameCollisionError

from schema_factories import email_index, make_schema, order_schema, table_binding, user_schema


def _relative_files(root: Path):
    return sorted(str(path.relative_to(root).as_posix()) for path in root.rglob("*") if path.is_file())


class TestCodeGeneratorFactory(TestCase):

    def test_create_known_strategy(self):
        assert isinstance(CodeGeneratorFactory.create(FileCategories.PACKAGE), InitPyGenerator)

    def test_unknown_strategy(self):
        with self.assertRaises(ValueError):
            CodeGeneratorFactory.create("migrations")

    def test_every_category_is_registered(self):
        for category in (
            FileCategories.ENTITY, FileCategories.NESTED, FileCategories.ENUM, FileCategories.KEYS,
            FileCategories.VALIDATION_ERROR, FileCategories.VALIDATOR, FileCategories.REPOSITORY,
            FileCategories.CLIENT, FileCategories.CONFIG, FileCategories.PACKAGE,
        ):
            assert isinstance(CodeGeneratorFactory.create(category), CodeGeneratorStrategy)


class TestPlan(TestCase):
    """Test cases for CodeGenerator.plan (in memory, nothing written)"""

    def setUp(self):
        self.generator = CodeGenerator("unused", "com.example.model", format_code=False)

    def test_layout_with_table_binding(self):
        files = self.generator.plan([user_schema()], table_binding([email_index()]))
        paths = [str(f.path) for f in files]
        assert paths == sorted(paths)
        assert set(paths) == {
            "com/__init__.py",
            "com/example/__init__.py",
            "com/example/model/__init__.py",
            "com/example/model/user.py",
            "com/example/model/keys/__init__.py",
            "com/example/model/keys/user_keys.py",
            "com/example/model/validators/__init__.py",
            "com/example/model/validators/user_validator.py",
            "com/example/model/validators/validation_error.py",
            "com/example/model/repository/__init__.py",
            "com/example/model/repository/user_repository.py",
            "com/example/model/client/__init__.py",
            "com/example/model/client/dynamodb_table_client.py",
            "com/example/model/config/__init__.py",
            "com/example/model/config/table_config.py",
        }

    def test_no_binding_skips_client_config_and_repositories(self):
        paths = {str(f.path) for f in self.generator.plan([user_schema()])}
        assert not any("/repository/" in p or "/client/" in p or "/config/" in p for p in paths)
        assert "com/example/model/keys/user_keys.py" in paths

    def test_nested_types_get_their_own_modules(self):
        paths = {str(f.path) for f in self.generator.plan([order_schema()])}
        assert "com/example/model/nested/__init__.py" in paths
        assert "com/example/model/nested/order_shipping.py" in paths
        assert "com/example/model/nested/order_lines_item.py" in paths
        assert "com/example/model/nested/order_status.py" in paths

    def test_categories(self):
        files = self.generator.plan([order_schema()], table_binding())
        by_path = {str(f.path): f.category for f in files}
        assert by_path["com/example/model/order.py"] == FileCategories.ENTITY
        assert by_path["com/example/model/nested/order_shipping.py"] == FileCategories.NESTED
        assert by_path["com/example/model/nested/order_status.py"] == FileCategories.ENUM
        assert by_path["com/example/model/config/table_config.py"] == FileCategories.CONFIG

    def test_init_files_are_empty(self):
        files = self.generator.plan([user_schema()])
        assert all(f.content == "" for f in files if f.path.name == "__init__.py")

    def test_collision_aborts_before_rendering(self):
        bad = make_schema(
            [Field(name="id", type="string"), Field(name="user-name", type="string"), Field(name="userName", type="string")],
            partition_key="id",
            entity_name="Account",
        )
        with self.assertRaises(NameCollisionError) as ctx:
            self.generator.plan([user_schema(), bad])
        assert ctx.exception.entity_name == "Account"

    def test_clashing_entities_fail(self):
        with self.assertRaises(CodeGenerationError):
            self.generator.plan([user_schema(), user_schema()])

    def test_check_type_names_across_entities(self):
        shipping = make_schema([Field(name="id", type="string")], partition_key="id", entity_name="OrderShipping")
        with self.assertRaises(CodeGenerationError):
            check_type_names([describe_entity(order_schema()), describe_entity(shipping)])

    def test_entity_named_like_a_sub_package(self):
        for name in ("Config", "Keys", "Repository"):
            schema = make_schema([Field(name="id", type="string")], partition_key="id", entity_name=name)
            with self.assertRaises(CodeGenerationError) as ctx:
                self.generator.plan([schema], table_binding())
            assert ctx.exception.context["entity"] == name

    def test_entity_named_like_an_imported_class(self):
        schema = make_schema([Field(name="id", type="string")], partition_key="id", entity_name="ValidationError")
        with self.assertRaises(CodeGenerationError):
            check_type_names([describe_entity(schema)])

    def test_index_names_differing_in_separators(self):
        binding = table_binding([
            email_index(),
            SecondaryIndex(index_name="by_email", partition_key="email"),
        ])
        with self.assertRaises(CodeGenerationError) as ctx:
            self.generator.plan([user_schema()], binding)
        assert ctx.exception.context["index"] == "by_email"

    def test_distinct_index_names_pass(self):
        check_index_names(table_binding([
            email_index(),
            SecondaryIndex(index_name="by-status", partition_key="status"),
        ]))

    def test_single_part_namespace(self):
        generator = CodeGenerator("unused", "models", format_code=False)
        paths = {str(f.path) for f in generator.plan([user_schema()])}
        assert "models/__init__.py" in paths
        assert "models/user.py" in paths

    def test_invalid_namespace(self):
        with self.assertRaises(ConfigurationError) as ctx:
            CodeGenerator("unused", "my-app.model")
        assert ctx.exception.context["invalid_parts"] == ["my-app"]


def test_generate_for_table_writes_sorted_files(tmp_path):
    written = generate_for_table(
        [user_schema()], namespace="app.model", output_dir=str(tmp_path), table_binding=table_binding()
    )
    assert written == sorted(written)
    assert all(path.is_file() for path in written)
    assert "app/model/repository/user_repository.py" in _relative_files(tmp_path)


def test_generation_is_deterministic(tmp_path):
    first, second = tmp_path / "first", tmp_path / "second"
    for output in (first, second):
        generate_for_table(
            [order_schema(), user_schema()], namespace="app.model", output_dir=str(output),
            table_binding=table_binding([email_index()]),
        )

    assert _relative_files(first) == _relative_files(second)
    for relative in _relative_files(first):
        assert (first / relative).read_bytes() == (second / relative).read_bytes()


def test_collision_writes_nothing(tmp_path):
    bad = make_schema(
        [Field(name="id", type="string"), Field(name="order-date", type="string"), Field(name="orderDate", type="string")],
        partition_key="id",
        entity_name="Account",
    )
    with pytest.raises(NameCollisionError):
        generate_for_table([user_schema(), bad], namespace="app.model", output_dir=str(tmp_path))
    assert _relative_files(tmp_path) == []


def test_generated_modules_are_black_formatted(tmp_path):
    generate_for_table([user_schema()], namespace="app.model", output_dir=str(tmp_path), line_length=100)
    content = (tmp_path / "app" / "model" / "user.py").read_text(encoding="utf-8")
    assert content.endswith("\n")
    assert '"""' in content
    assert "ATTRIBUTE_NAMES = {}" in content


def test_unformatted_output_still_ends_with_newline(tmp_path):
    generator = CodeGenerator(str(tmp_path), "app.model", format_code=False)
    files = generator.plan([user_schema()])
    entity = next(f for f in files if f.path == PurePosixPath("app/model/user.py"))
    assert entity.content.endswith("\n")
