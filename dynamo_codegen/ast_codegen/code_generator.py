"""
DynamoDB AST Code Generator

This module drives the emitters: it describes every schema, renders each
output module in memory and only then writes the tree to disk.
"""

import logging
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence, Type
from abc import ABC, abstractmethod

from dynamo_codegen.codegen_utils import format_python_code_using_black
from dynamo_codegen.constants import DefaultConfig, FileCategories, OutputLayout
from dynamo_codegen.domain.models import EntityDescriptor, GeneratedFile, Schema, TableBinding
from dynamo_codegen.domain.naming import detect_collisions, is_valid_package_name, to_snake_case
from dynamo_codegen.domain.type_mapping import describe_entity
from dynamo_codegen.exceptions import CodeGenerationError, ConfigurationError, DynamoCodegenError

from dynamo_codegen.ast_codegen.entities import generate_enum_code, generate_record_code
from dynamo_codegen.ast_codegen.keys import generate_keys_code, index_constant_name, keys_class_name
from dynamo_codegen.ast_codegen.validators import (
    generate_validation_error_code, generate_validator_code, validator_class_name,
)
from dynamo_codegen.ast_codegen.repositories import generate_repository_code, query_method_name, repository_class_name
from dynamo_codegen.ast_codegen.infrastructure import generate_client_code, generate_config_code

logger = logging.getLogger(__name__)

# ---- Design Patterns ----

# Strategy Pattern for different code generators
class CodeGeneratorStrategy(ABC):
    """Abstract Strategy for code generation"""

    @abstractmethod
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        """Generate code for a specific component."""
        pass

# Concrete Strategy implementations
class EntityGenerator(CodeGeneratorStrategy):
    """Generates an entity or nested record module"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        entity = entities[0]
        record = kwargs.get('record', entity.record)
        return generate_record_code(record, entity.enums)


class EnumGenerator(CodeGeneratorStrategy):
    """Generates an enum module"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        return generate_enum_code(kwargs['enum'])


class KeysGenerator(CodeGeneratorStrategy):
    """Generates an entity key helper module"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        return generate_keys_code(entities[0], kwargs.get('table_binding'))


class ValidationErrorGenerator(CodeGeneratorStrategy):
    """Generates the shared validation error module"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        return generate_validation_error_code()


class ValidatorGenerator(CodeGeneratorStrategy):
    """Generates an entity validator module"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        return generate_validator_code(entities[0])


class RepositoryGenerator(CodeGeneratorStrategy):
    """Generates an entity repository module"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        return generate_repository_code(entities[0], kwargs['table_binding'])


class ClientGenerator(CodeGeneratorStrategy):
    """Generates the DynamoDB connection wrapper module"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        return generate_client_code()


class ConfigGenerator(CodeGeneratorStrategy):
    """Generates the table configuration module"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        return generate_config_code(kwargs['table_binding'], entities)


class InitPyGenerator(CodeGeneratorStrategy):
    """Generates empty __init__.py files"""
    def generate_code(self, entities: Sequence[EntityDescriptor], **kwargs) -> str:
        return ""


# Factory Pattern for creating generators
class CodeGeneratorFactory:
    """Factory for creating code generator strategies"""

    _registry: Dict[str, Type[CodeGeneratorStrategy]] = {
        FileCategories.ENTITY: EntityGenerator,
        FileCategories.NESTED: EntityGenerator,
        FileCategories.ENUM: EnumGenerator,
        FileCategories.KEYS: KeysGenerator,
        FileCategories.VALIDATION_ERROR: ValidationErrorGenerator,
        FileCategories.VALIDATOR: ValidatorGenerator,
        FileCategories.REPOSITORY: RepositoryGenerator,
        FileCategories.CLIENT: ClientGenerator,
        FileCategories.CONFIG: ConfigGenerator,
        FileCategories.PACKAGE: InitPyGenerator,
    }

    @classmethod
    def register(cls, name: str, generator_class: Type[CodeGeneratorStrategy]) -> None:
        """Register a new generator strategy"""
        cls._registry[name] = generator_class

    @classmethod
    def create(cls, name: str) -> CodeGeneratorStrategy:
        """Create a generator strategy instance by name"""
        generator_class = cls._registry.get(name)
        if not generator_class:
            raise ValueError(f"Unknown generator type: {name}")
        return generator_class()


def _module_file(name: str) -> str:
    return f"{to_snake_case(name)}{OutputLayout.PYTHON_EXTENSION}"


def check_type_names(entities: Sequence[EntityDescriptor]) -> None:
    """Every emitted type of a batch must have its own module and a name free of the generated imports."""
    owners: Dict[str, str] = {}
    for entity in entities:
        module = to_snake_case(entity.name)
        if module in OutputLayout.SUB_PACKAGES:
            raise CodeGenerationError(
                f"Entity '{entity.name}' maps to module '{module}', which is a generated sub-package",
                component="code_generator",
                entity=entity.name,
            )

        names = [entity.name]
        names.extend(record.name for record in entity.nested_records)
        names.extend(entity.enum_names)
        for type_name in names:
            if type_name in OutputLayout.IMPORTED_NAMES:
                raise CodeGenerationError(
                    f"Type '{type_name}' of entity '{entity.name}' shadows a name imported by generated modules",
                    component="code_generator",
                    entity=entity.name,
                )
            module = to_snake_case(type_name)
            if module in owners:
                raise CodeGenerationError(
                    f"Type '{type_name}' of entity '{entity.name}' maps to module '{module}', "
                    f"already produced for entity '{owners[module]}'",
                    component="code_generator",
                    entity=entity.name,
                )
            owners[module] = entity.name


def check_index_names(table_binding: TableBinding) -> None:
    """Index names must stay distinct once turned into query methods and constants."""
    owners: Dict[str, str] = {}
    for index in table_binding.secondary_indexes:
        for generated_name in (query_method_name(index), index_constant_name(index.index_name)):
            if generated_name in owners:
                raise CodeGenerationError(
                    f"Indexes '{owners[generated_name]}' and '{index.index_name}' both map to '{generated_name}'",
                    component="code_generator",
                    context={"index": index.index_name},
                )
            owners[generated_name] = index.index_name


# Facade Pattern for simplified interface
class CodeGenerator:
    """Facade for the code generation system"""

    def __init__(
        self,
        output_dir: str,
        namespace: str = DefaultConfig.NAMESPACE,
        format_code: bool = DefaultConfig.FORMAT_CODE,
        line_length: int = DefaultConfig.LINE_LENGTH,
    ):
        invalid = [part for part in namespace.split(".") if not is_valid_package_name(part)]
        if invalid:
            raise ConfigurationError(
                f"'{namespace}' is not a valid package namespace",
                context={"invalid_parts": invalid},
            )
        self.output_dir = Path(output_dir)
        self.namespace = namespace
        self.format_code = format_code
        self.line_length = line_length
        self.package_path = PurePosixPath(*namespace.split("."))

    def render_file(
        self,
        generator_name: str,
        output_path: PurePosixPath,
        entities: Sequence[EntityDescriptor],
        **kwargs
    ) -> GeneratedFile:
        """Render one file in memory using a specific generator strategy"""
        try:
            generator = CodeGeneratorFactory.create(generator_name)
            code = generator.generate_code(entities, **kwargs)
        except DynamoCodegenError:
            raise
        except Exception as e:
            logger.error(f"Error generating file '{output_path}': {e}", exc_info=True)
            entity = entities[0].name if entities else None
            raise CodeGenerationError(
                f"Failed to generate '{output_path}': {e}", component=generator_name, entity=entity
            ) from e

        if self.format_code and output_path.suffix == OutputLayout.PYTHON_EXTENSION:
            code = format_python_code_using_black(output_path, code, self.line_length)
        elif code and not code.endswith("\n"):
            code += "\n"

        return GeneratedFile(path=output_path, content=code, category=generator_name)

    def _package_files(self, sub_packages: Iterable[str]) -> List[GeneratedFile]:
        """__init__.py for every namespace level and every emitted sub-package."""
        packages = [self.package_path.parents[i] for i in range(len(self.package_path.parts) - 1)]
        packages.append(self.package_path)
        packages.extend(self.package_path / sub_package for sub_package in sub_packages)
        return [
            self.render_file(FileCategories.PACKAGE, package / OutputLayout.INIT_FILE, [])
            for package in packages
        ]

    def _entity_files(self, entity: EntityDescriptor, table_binding: Optional[TableBinding]) -> List[GeneratedFile]:
        root = self.package_path
        nested = root / OutputLayout.NESTED_PACKAGE

        files = [self.render_file(FileCategories.ENTITY, root / _module_file(entity.name), [entity])]
        for record in entity.nested_records:
            files.append(self.render_file(FileCategories.NESTED, nested / _module_file(record.name), [entity], record=record))
        for enum in entity.enums:
            files.append(self.render_file(FileCategories.ENUM, nested / _module_file(enum.name), [entity], enum=enum))

        files.append(self.render_file(
            FileCategories.KEYS,
            root / OutputLayout.KEYS_PACKAGE / _module_file(keys_class_name(entity)),
            [entity],
            table_binding=table_binding,
        ))
        files.append(self.render_file(
            FileCategories.VALIDATOR,
            root / OutputLayout.VALIDATORS_PACKAGE / _module_file(validator_class_name(entity)),
            [entity],
        ))
        if table_binding is not None:
            files.append(self.render_file(
                FileCategories.REPOSITORY,
                root / OutputLayout.REPOSITORY_PACKAGE / _module_file(repository_class_name(entity)),
                [entity],
                table_binding=table_binding,
            ))
        return files

    def plan(self, schemas: Sequence[Schema], table_binding: Optional[TableBinding] = None) -> List[GeneratedFile]:
        """
        Render every output file in memory.

        Collisions and type-name clashes in any schema abort the batch before
        a single file is rendered.

        Args:
            schemas: Entity schemas of one table
            table_binding: Table metadata; without it no client, config or
                repository modules are produced

        Returns:
            Files sorted by path

        Raises:
            NameCollisionError: If two fields of a schema resolve to the same identifier
            CodeGenerationError: If emitted type names clash or an emitter fails
        """
        schemas = list(schemas)
        for schema in schemas:
            detect_collisions(schema.fields, schema.name)

        entities = [describe_entity(schema) for schema in schemas]
        check_type_names(entities)
        if table_binding is not None:
            check_index_names(table_binding)
        logger.debug(f"Described {len(entities)} entit{'y' if len(entities) == 1 else 'ies'}")

        root = self.package_path
        sub_packages = [OutputLayout.KEYS_PACKAGE, OutputLayout.VALIDATORS_PACKAGE]
        if any(entity.nested_records or entity.enums for entity in entities):
            sub_packages.append(OutputLayout.NESTED_PACKAGE)

        files: List[GeneratedFile] = []
        if table_binding is not None:
            sub_packages.extend([
                OutputLayout.CLIENT_PACKAGE, OutputLayout.CONFIG_PACKAGE, OutputLayout.REPOSITORY_PACKAGE
            ])
            files.append(self.render_file(
                FileCategories.CLIENT,
                root / OutputLayout.CLIENT_PACKAGE / f"{OutputLayout.CLIENT_MODULE}{OutputLayout.PYTHON_EXTENSION}",
                entities,
            ))
            files.append(self.render_file(
                FileCategories.CONFIG,
                root / OutputLayout.CONFIG_PACKAGE / f"{OutputLayout.CONFIG_MODULE}{OutputLayout.PYTHON_EXTENSION}",
                entities,
                table_binding=table_binding,
            ))
        else:
            logger.info("No table metadata given; skipping client, config and repository modules")

        for entity in entities:
            files.extend(self._entity_files(entity, table_binding))

        files.append(self.render_file(
            FileCategories.VALIDATION_ERROR,
            root / OutputLayout.VALIDATORS_PACKAGE / f"{OutputLayout.VALIDATION_ERROR_MODULE}{OutputLayout.PYTHON_EXTENSION}",
            entities,
        ))
        files.extend(self._package_files(sorted(sub_packages)))

        return sorted(files, key=lambda generated: generated.path)

    def write(self, files: Iterable[GeneratedFile]) -> List[Path]:
        """Write rendered files below the output directory in path order"""
        written = []
        for generated in sorted(files, key=lambda f: f.path):
            output_path = self.output_dir / generated.path
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(generated.content)
            logger.info(f"Generated file: {output_path}")
            written.append(output_path)
        return written

    def generate(self, schemas: Sequence[Schema], table_binding: Optional[TableBinding] = None) -> List[Path]:
        """Plan the whole batch, then write it; nothing is written when planning fails"""
        files = self.plan(schemas, table_binding)
        return self.write(files)


# Helper function to simplify the code generation process
def generate_for_table(
    schemas: Sequence[Schema],
    namespace: str,
    output_dir: str,
    table_binding: Optional[TableBinding] = None,
    format_code: bool = DefaultConfig.FORMAT_CODE,
    line_length: int = DefaultConfig.LINE_LENGTH,
) -> List[Path]:
    """Generate the data-access package for every entity of one table"""
    generator = CodeGenerator(output_dir, namespace, format_code=format_code, line_length=line_length)
    written = generator.generate(schemas, table_binding)

    logger.info(f"Successfully generated {len(written)} files under {output_dir}")
    return written
