"""
Centralized constants for dynamo-codegen.

This module contains configuration constants, type names, output layout and
environment variable names used by the emitters and by the generated code.
"""

import keyword
from typing import Dict, Set, Tuple


# =============================================================================
# CORE CONFIGURATION
# =============================================================================

class DefaultConfig:
    """Default configuration values."""

    OUTPUT_DIR = "./generated"
    NAMESPACE = "generated.model"
    DEFAULT_ENTITY_NAME = "Entity"

    # Formatting
    FORMAT_CODE = True
    LINE_LENGTH = 120


# =============================================================================
# SCHEMA TYPE VOCABULARY
# =============================================================================

class SchemaTypes:
    """Type names accepted in a schema field declaration."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    LIST = "list"
    MAP = "map"
    STRING_SET = "string-set"
    NUMBER_SET = "number-set"

    # Alternative spellings seen in schemas
    ALIASES: Dict[str, str] = {
        "bool": "boolean",
        "stringSet": "string-set",
        "string_set": "string-set",
        "numberSet": "number-set",
        "number_set": "number-set",
    }


# =============================================================================
# NAMING
# =============================================================================

class FieldNames:
    """Identifiers that generated code cannot use as-is."""

    PYTHON_KEYWORDS: Set[str] = set(keyword.kwlist)

    # Would shadow the implicit first parameter of generated methods
    RESERVED_PARAMETERS: Set[str] = {"self", "cls"}

    # Members of generated entity and Builder classes; a field with one of
    # these names would replace the member instead of getting a property
    GENERATED_MEMBERS: Set[str] = {
        "builder", "Builder", "build", "to_item", "from_item",
        "PARTITION_KEY", "SORT_KEY", "ATTRIBUTE_NAMES",
    }

    RESERVED: Set[str] = PYTHON_KEYWORDS | RESERVED_PARAMETERS | GENERATED_MEMBERS


# =============================================================================
# OUTPUT LAYOUT
# =============================================================================

class OutputLayout:
    """Sub-package names and fixed module names of the generated tree."""

    NESTED_PACKAGE = "nested"
    KEYS_PACKAGE = "keys"
    VALIDATORS_PACKAGE = "validators"
    REPOSITORY_PACKAGE = "repository"
    CLIENT_PACKAGE = "client"
    CONFIG_PACKAGE = "config"

    VALIDATION_ERROR_MODULE = "validation_error"
    CLIENT_MODULE = "dynamodb_table_client"
    CONFIG_MODULE = "table_config"

    CLIENT_CLASS = "DynamoDbTableClient"
    VALIDATION_ERROR_CLASS = "ValidationError"
    FIELD_VIOLATION_CLASS = "FieldViolation"

    KEYS_SUFFIX = "Keys"
    VALIDATOR_SUFFIX = "Validator"
    REPOSITORY_SUFFIX = "Repository"
    LIST_ITEM_SUFFIX = "Item"

    INIT_FILE = "__init__.py"
    PYTHON_EXTENSION = ".py"

    # Entity modules sit beside the sub-packages at the namespace root
    SUB_PACKAGES: Tuple[str, ...] = (
        NESTED_PACKAGE, KEYS_PACKAGE, VALIDATORS_PACKAGE, REPOSITORY_PACKAGE, CLIENT_PACKAGE, CONFIG_PACKAGE,
    )

    # Names generated modules import next to the entity types
    IMPORTED_NAMES: Tuple[str, ...] = (
        CLIENT_CLASS, VALIDATION_ERROR_CLASS, FIELD_VIOLATION_CLASS,
        "Any", "Dict", "List", "Optional", "Set", "Decimal", "Enum",
    )


class FileCategories:
    """Emission categories of generated files."""

    ENTITY = "entity"
    NESTED = "nested"
    ENUM = "enum"
    KEYS = "keys"
    VALIDATION_ERROR = "validation_error"
    VALIDATOR = "validator"
    REPOSITORY = "repository"
    CLIENT = "client"
    CONFIG = "config"
    PACKAGE = "package"


# =============================================================================
# GENERATED RUNTIME
# =============================================================================

class EnvironmentVariables:
    """Environment variables consulted by the generated code at runtime."""

    TABLE_NAME: Tuple[str, ...] = ("DYNAMODB_TABLE_NAME",)
    REGION: Tuple[str, ...] = ("AWS_REGION", "AWS_DEFAULT_REGION")
    ENDPOINT: Tuple[str, ...] = ("DYNAMODB_ENDPOINT",)
    TABLE_ARN = "DYNAMODB_TABLE_ARN"


class ViolationKinds:
    """Constraint kinds reported by generated validators."""

    REQUIRED = "required"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    PATTERN = "pattern"
    MIN = "min"
    MAX = "max"


class ArnMarkers:
    """Substrings that mark a table ARN as deploy-time or ARN-shaped."""

    ARN_PREFIX = "arn:"
    TOKEN_MARKERS: Tuple[str, ...] = ("${Token[", "Token[", "${")
