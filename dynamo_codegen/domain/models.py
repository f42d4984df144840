"""
Core domain models for dynamo-codegen.

These models represent the generator's inputs (schemas and table bindings),
the resolved view of a field used during emission, and the descriptions of
every named type the run will produce. All of them are immutable and live for
a single generation run only.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Optional, Tuple, Union

from ..constants import DefaultConfig, SchemaTypes


class FieldType(Enum):
    """The closed type vocabulary of a schema field."""

    STRING = SchemaTypes.STRING
    NUMBER = SchemaTypes.NUMBER
    BOOLEAN = SchemaTypes.BOOLEAN
    TIMESTAMP = SchemaTypes.TIMESTAMP
    LIST = SchemaTypes.LIST
    MAP = SchemaTypes.MAP
    STRING_SET = SchemaTypes.STRING_SET
    NUMBER_SET = SchemaTypes.NUMBER_SET
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, type_name: Optional[str]) -> "FieldType":
        """Look up a schema type name; unrecognized names map to UNKNOWN."""
        if not type_name:
            return cls.UNKNOWN
        canonical = SchemaTypes.ALIASES.get(type_name, type_name)
        try:
            return cls(canonical)
        except ValueError:
            return cls.UNKNOWN


# =============================================================================
# SCHEMA INPUT
# =============================================================================

@dataclass(frozen=True)
class FieldConstraints:
    """Validation bounds of a field (string: lengths and pattern, number: min/max)."""

    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def has_number_constraints(self) -> bool:
        return self.min is not None or self.max is not None


@dataclass(frozen=True)
class ListItems:
    """Element declaration of a ``list`` field."""

    type: str
    fields: Optional[Tuple["NestedField", ...]] = None

    @property
    def field_type(self) -> FieldType:
        return FieldType.from_name(self.type)

    @property
    def is_record(self) -> bool:
        return self.field_type == FieldType.MAP and bool(self.fields)


@dataclass(frozen=True)
class NestedField:
    """
    A field declaration as it appears inside a map or a list of maps.

    ``name`` is the storage-facing attribute name; ``name_override`` is an
    explicit code identifier that wins over automatic conversion.
    """

    name: str
    type: str
    required: bool = False
    name_override: Optional[str] = None
    description: Optional[str] = None
    default: Any = None
    enum_values: Optional[Tuple[str, ...]] = None
    constraints: Optional[FieldConstraints] = None
    fields: Optional[Tuple["NestedField", ...]] = None
    items: Optional[ListItems] = None

    @property
    def field_type(self) -> FieldType:
        return FieldType.from_name(self.type)

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def is_enum(self) -> bool:
        return self.field_type == FieldType.STRING and bool(self.enum_values)


@dataclass(frozen=True)
class Field(NestedField):
    """A top-level entity field; the only kind that can be a partition or sort key."""


@dataclass(frozen=True)
class PrimaryKey:
    """Key declaration of an entity, by storage attribute name."""

    partition_key: str
    sort_key: Optional[str] = None

    @property
    def has_sort_key(self) -> bool:
        return bool(self.sort_key)


@dataclass(frozen=True)
class Schema:
    """An entity schema: name, key declaration and ordered field list."""

    entity_name: Optional[str]
    primary_key: PrimaryKey
    fields: Tuple[Field, ...]
    description: Optional[str] = None
    schema_version: Optional[str] = None

    @property
    def name(self) -> str:
        """Entity type name; schemas without one fall back to ``Entity``."""
        return self.entity_name or DefaultConfig.DEFAULT_ENTITY_NAME

    def find_field(self, storage_name: str) -> Optional[Field]:
        for field in self.fields:
            if field.name == storage_name:
                return field
        return None


@dataclass(frozen=True)
class SecondaryIndex:
    """A global or local secondary index over the bound table."""

    index_name: str
    partition_key: str
    sort_key: Optional[str] = None

    @property
    def has_sort_key(self) -> bool:
        return bool(self.sort_key)


@dataclass(frozen=True)
class TableBinding:
    """
    Physical table metadata.

    ``table_arn`` may be a deploy-time placeholder token rather than a real
    ARN; the generated configuration prefers an environment override then.
    """

    table_name: str
    table_arn: Optional[str] = None
    region: Optional[str] = None
    global_secondary_indexes: Tuple[SecondaryIndex, ...] = ()
    local_secondary_indexes: Tuple[SecondaryIndex, ...] = ()

    @property
    def secondary_indexes(self) -> Tuple[SecondaryIndex, ...]:
        return tuple(self.global_secondary_indexes) + tuple(self.local_secondary_indexes)


# =============================================================================
# TYPE REFERENCES
# =============================================================================

@dataclass(frozen=True)
class ScalarType:
    """string, number, boolean or timestamp."""

    kind: FieldType


@dataclass(frozen=True)
class ListType:
    element: "TypeRef"


@dataclass(frozen=True)
class SetType:
    element: ScalarType


@dataclass(frozen=True)
class RecordType:
    """Reference to a materialized nested record type."""

    name: str


@dataclass(frozen=True)
class EnumType:
    """Reference to a materialized enum type."""

    name: str


@dataclass(frozen=True)
class AnyType:
    """Untyped value (unknown types and maps without declared fields)."""


TypeRef = Union[ScalarType, ListType, SetType, RecordType, EnumType, AnyType]


# =============================================================================
# RESOLVED FIELDS AND DESCRIPTIONS
# =============================================================================

@dataclass(frozen=True)
class ResolvedField:
    """A field paired with its code identifier and target type."""

    field: NestedField
    identifier: str
    type_ref: TypeRef

    @property
    def storage_name(self) -> str:
        return self.field.name

    @property
    def required(self) -> bool:
        return self.field.required

    @property
    def needs_attribute_annotation(self) -> bool:
        return self.identifier != self.field.name


@dataclass(frozen=True)
class KeyDescriptor:
    """A key attribute as seen by key helpers and repositories."""

    storage_name: str
    identifier: str
    type_ref: TypeRef


@dataclass(frozen=True)
class EnumDescriptor:
    """An enum type materialized from a string field with enum values."""

    name: str
    values: Tuple[str, ...]
    constants: Tuple[str, ...]
    owner: str
    field_name: str

    @property
    def members(self) -> Tuple[Tuple[str, str], ...]:
        return tuple(zip(self.constants, self.values))

    def constant_for(self, value: Any) -> Optional[str]:
        for constant, member_value in self.members:
            if member_value == value:
                return constant
        return None


@dataclass(frozen=True)
class RecordDescriptor:
    """An entity or nested record type: its name and resolved fields."""

    name: str
    fields: Tuple[ResolvedField, ...]
    description: Optional[str] = None
    is_entity: bool = False
    partition_key: Optional[str] = None
    sort_key: Optional[str] = None


@dataclass(frozen=True)
class EntityDescriptor:
    """Everything emitted for one schema, described before any source exists."""

    schema: Schema
    record: RecordDescriptor
    nested_records: Tuple[RecordDescriptor, ...]
    enums: Tuple[EnumDescriptor, ...]
    partition_key: KeyDescriptor
    sort_key: Optional[KeyDescriptor] = None

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def has_sort_key(self) -> bool:
        return self.sort_key is not None

    @property
    def key_fields(self) -> Tuple[KeyDescriptor, ...]:
        if self.sort_key is None:
            return (self.partition_key,)
        return (self.partition_key, self.sort_key)

    @property
    def enum_names(self) -> Tuple[str, ...]:
        return tuple(enum.name for enum in self.enums)


@dataclass(frozen=True)
class GeneratedFile:
    """One rendered output file, relative to the output root."""

    path: PurePosixPath
    content: str
    category: str
