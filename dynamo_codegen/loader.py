"""
Schema and table metadata loading.

Schema files (``.bprint``) and table metadata are JSON or YAML documents.
They are parsed with pydantic models that accept the camelCase spellings and
aliases seen in the wild, then converted to the frozen domain dataclasses the
generator works on. Structural validation beyond what is needed to build the
domain model stays with the upstream schema tooling.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field as PydanticField, ValidationError, model_validator

from dynamo_codegen.domain.models import (
    Field,
    FieldConstraints,
    ListItems,
    NestedField,
    PrimaryKey,
    Schema,
    SecondaryIndex,
    TableBinding,
)
from dynamo_codegen.exceptions import SchemaLoadError

logger = logging.getLogger(__name__)

_INPUT_CONFIG = ConfigDict(extra="ignore", populate_by_name=True)


# --- Pydantic models of the input documents ---

class ConstraintsInput(BaseModel):
    model_config = _INPUT_CONFIG

    min_length: Optional[int] = PydanticField(default=None, alias="minLength")
    max_length: Optional[int] = PydanticField(default=None, alias="maxLength")
    pattern: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None


class ItemsInput(BaseModel):
    model_config = _INPUT_CONFIG

    type: str
    fields: Optional[List["FieldInput"]] = None


class FieldInput(BaseModel):
    model_config = _INPUT_CONFIG

    name: str = PydanticField(..., min_length=1)
    type: str = PydanticField(..., min_length=1)
    required: bool = False
    name_override: Optional[str] = PydanticField(default=None, alias="nameOverride")
    description: Optional[str] = None
    default: Any = None
    enum_values: Optional[List[str]] = PydanticField(default=None, alias="enumValues")
    constraints: Optional[ConstraintsInput] = None
    fields: Optional[List["FieldInput"]] = None
    items: Optional[ItemsInput] = None

    @model_validator(mode="before")
    @classmethod
    def accept_aliases(cls, data: Any) -> Any:
        """``enum`` and ``defaultValue`` are accepted as alternative spellings."""
        if isinstance(data, dict):
            data = dict(data)
            if "enum" in data and "enumValues" not in data:
                data["enumValues"] = data.pop("enum")
            if "defaultValue" in data and "default" not in data:
                data["default"] = data.pop("defaultValue")
        return data


class PrimaryKeyInput(BaseModel):
    model_config = _INPUT_CONFIG

    partition_key: str = PydanticField(..., alias="partitionKey", min_length=1)
    sort_key: Optional[str] = PydanticField(default=None, alias="sortKey")


class SchemaInput(BaseModel):
    model_config = _INPUT_CONFIG

    schema_version: Optional[str] = PydanticField(default=None, alias="schemaVersion")
    entity_name: Optional[str] = PydanticField(default=None, alias="entityName")
    description: Optional[str] = None
    primary_key: PrimaryKeyInput = PydanticField(..., alias="primaryKey")
    fields: List[FieldInput] = PydanticField(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def flatten_entity_block(cls, data: Any) -> Any:
        """Older schemas nest name, key and fields under an ``entity`` block."""
        if isinstance(data, dict) and isinstance(data.get("entity"), dict):
            data = dict(data)
            entity = data.pop("entity")
            data.setdefault("entityName", entity.get("name"))
            for key in ("primaryKey", "fields", "description"):
                if key in entity:
                    data.setdefault(key, entity[key])
        if isinstance(data, dict) and data.get("schemaVersion") is not None:
            data = dict(data)
            data["schemaVersion"] = str(data["schemaVersion"])
        return data


class SecondaryIndexInput(BaseModel):
    model_config = _INPUT_CONFIG

    index_name: str = PydanticField(..., alias="indexName", min_length=1)
    partition_key: str = PydanticField(..., alias="partitionKey", min_length=1)
    sort_key: Optional[str] = PydanticField(default=None, alias="sortKey")


class TableMetadataInput(BaseModel):
    model_config = _INPUT_CONFIG

    table_name: str = PydanticField(..., alias="tableName", min_length=1)
    table_arn: Optional[str] = PydanticField(default=None, alias="tableArn")
    region: Optional[str] = None
    global_secondary_indexes: List[SecondaryIndexInput] = PydanticField(
        default_factory=list, alias="globalSecondaryIndexes"
    )
    local_secondary_indexes: List[SecondaryIndexInput] = PydanticField(
        default_factory=list, alias="localSecondaryIndexes"
    )


ItemsInput.model_rebuild()
FieldInput.model_rebuild()


# --- Conversion to domain dataclasses ---

def _to_constraints(constraints: Optional[ConstraintsInput]) -> Optional[FieldConstraints]:
    if constraints is None:
        return None
    return FieldConstraints(
        min_length=constraints.min_length,
        max_length=constraints.max_length,
        pattern=constraints.pattern,
        min=constraints.min,
        max=constraints.max,
    )


def _to_field(field: FieldInput, field_class=NestedField) -> NestedField:
    items = None
    if field.items is not None:
        items = ListItems(
            type=field.items.type,
            fields=tuple(_to_field(f) for f in field.items.fields) if field.items.fields else None,
        )
    return field_class(
        name=field.name,
        type=field.type,
        required=field.required,
        name_override=field.name_override,
        description=field.description,
        default=field.default,
        enum_values=tuple(field.enum_values) if field.enum_values else None,
        constraints=_to_constraints(field.constraints),
        fields=tuple(_to_field(f) for f in field.fields) if field.fields else None,
        items=items,
    )


def _to_index(index: SecondaryIndexInput) -> SecondaryIndex:
    return SecondaryIndex(index_name=index.index_name, partition_key=index.partition_key, sort_key=index.sort_key)


def schema_from_dict(data: Dict[str, Any], source: Optional[str] = None) -> Schema:
    """Build a Schema from an already parsed document."""
    try:
        parsed = SchemaInput.model_validate(data)
    except ValidationError as e:
        raise SchemaLoadError(f"Invalid schema: {e}", source=source) from e

    return Schema(
        entity_name=parsed.entity_name,
        primary_key=PrimaryKey(
            partition_key=parsed.primary_key.partition_key,
            sort_key=parsed.primary_key.sort_key,
        ),
        fields=tuple(_to_field(field, Field) for field in parsed.fields),
        description=parsed.description,
        schema_version=parsed.schema_version,
    )


def table_binding_from_dict(data: Dict[str, Any], source: Optional[str] = None) -> TableBinding:
    """Build a TableBinding from an already parsed document."""
    try:
        parsed = TableMetadataInput.model_validate(data)
    except ValidationError as e:
        raise SchemaLoadError(f"Invalid table metadata: {e}", source=source) from e

    return TableBinding(
        table_name=parsed.table_name,
        table_arn=parsed.table_arn,
        region=parsed.region,
        global_secondary_indexes=tuple(_to_index(index) for index in parsed.global_secondary_indexes),
        local_secondary_indexes=tuple(_to_index(index) for index in parsed.local_secondary_indexes),
    )


def read_document(source: Union[str, Path]) -> Dict[str, Any]:
    """
    Parse a JSON or YAML document.

    ``source`` is a file path, or inline JSON when it starts with ``{``.
    """
    text = str(source)
    if isinstance(source, str) and text.lstrip().startswith("{"):
        origin = "<inline>"
    else:
        path = Path(source)
        origin = str(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaLoadError(f"Could not read {path}: {e}", source=origin) from e

    try:
        if origin.endswith(".json") or origin == "<inline>":
            document = json.loads(text)
        else:
            # YAML is a superset of JSON, so .bprint files in either syntax load here
            document = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaLoadError(f"Could not parse {origin}: {e}", source=origin) from e

    if not isinstance(document, dict):
        raise SchemaLoadError(f"Expected a mapping at the top level of {origin}", source=origin)
    logger.debug(f"Read document from {origin}")
    return document


def load_schema(source: Union[str, Path]) -> Schema:
    """Load an entity schema from a file path or inline JSON."""
    schema = schema_from_dict(read_document(source), source=str(source))
    logger.info(f"Loaded schema for entity '{schema.name}' ({len(schema.fields)} fields)")
    return schema


def load_table_binding(source: Union[str, Path]) -> TableBinding:
    """Load table metadata from a file path or inline JSON."""
    binding = table_binding_from_dict(read_document(source), source=str(source))
    logger.info(
        f"Loaded table metadata for '{binding.table_name}' "
        f"({len(binding.secondary_indexes)} secondary index(es))"
    )
    return binding
