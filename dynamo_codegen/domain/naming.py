"""
Naming convention utilities for dynamo-codegen.

This module maps external (storage) attribute names to code identifiers and
derives the type, module and constant names used across the generated tree.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..constants import FieldNames
from ..exceptions import NameCollisionError
from .models import NestedField

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[-_]")
_ILLEGAL_IDENTIFIER_CHARS = re.compile(r"[^0-9a-zA-Z_]")


@dataclass(frozen=True)
class NameCollision:
    """Storage names that all resolve to the same identifier."""

    identifier: str
    original_names: Tuple[str, ...]


def is_valid_identifier(name: str) -> bool:
    """
    Check if a string can be used verbatim as a generated field identifier.

    Keywords, the implicit ``self``/``cls`` parameters and the members of
    generated classes are rejected.
    """
    if not name:
        return False
    return name.isidentifier() and name not in FieldNames.RESERVED


def is_valid_package_name(name: str) -> bool:
    """Check if a string can be one dotted part of the generated package namespace."""
    return bool(name) and name.isidentifier() and name not in FieldNames.PYTHON_KEYWORDS


def to_camel_case(name: str) -> str:
    """
    Convert an external attribute name to a camelCase identifier.

    Example:
        >>> to_camel_case("order-date")
        'orderDate'
        >>> to_camel_case("2fa-enabled")
        '_2faEnabled'
        >>> to_camel_case("TTL")
        'ttl'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")
    if not name:
        return name

    if len(name) > 1 and name == name.upper() and not _SEPARATORS.search(name):
        result = name.lower()
    else:
        parts = [part for part in _SEPARATORS.split(name) if part]
        pieces = []
        for part in parts:
            if not pieces:
                if part == part.upper():
                    pieces.append(part.lower())
                else:
                    pieces.append(part[0].lower() + part[1:])
            else:
                pieces.append(part[0].upper() + part[1:])
        result = "".join(pieces)

    result = _ILLEGAL_IDENTIFIER_CHARS.sub("", result)
    if not result:
        return "_"
    if result[0].isdigit():
        result = "_" + result
    if result in FieldNames.RESERVED:
        result += "_"
    return result


def resolve_identifier(field: NestedField) -> str:
    """
    Resolve the code identifier of a field.

    An explicit override is used verbatim; a name that is already a valid
    identifier is kept; anything else goes through :func:`to_camel_case`.
    """
    if field.name_override:
        return field.name_override
    if is_valid_identifier(field.name):
        return field.name
    return to_camel_case(field.name)


def needs_attribute_annotation(field: NestedField, identifier: str) -> bool:
    """True when the identifier differs from the storage name and must be mapped back."""
    return identifier != field.name


def resolve_key_identifier(fields: Iterable[NestedField], storage_name: str) -> str:
    """Resolve a key attribute referenced by storage name, falling back to camelCase."""
    for field in fields:
        if field.name == storage_name:
            return resolve_identifier(field)
    logger.debug(f"Key attribute '{storage_name}' is not a declared field; using camelCase conversion")
    return to_camel_case(storage_name)


def find_collisions(fields: Sequence[NestedField]) -> List[NameCollision]:
    """
    Group fields by resolved identifier and return every group with more than one member.

    Nested field lists (map fields and list-of-map items) are checked as their
    own scopes, since they become separate record types.
    """
    by_identifier: Dict[str, List[str]] = {}
    for field in fields:
        by_identifier.setdefault(resolve_identifier(field), []).append(field.name)

    collisions = [
        NameCollision(identifier=identifier, original_names=tuple(names))
        for identifier, names in by_identifier.items()
        if len(names) > 1
    ]

    for field in fields:
        if field.fields:
            collisions.extend(find_collisions(field.fields))
        if field.items is not None and field.items.fields:
            collisions.extend(find_collisions(field.items.fields))
    return collisions


def detect_collisions(fields: Sequence[NestedField], entity_name: Optional[str] = None) -> None:
    """Raise :class:`NameCollisionError` when any two fields resolve to the same identifier."""
    collisions = find_collisions(fields)
    if collisions:
        raise NameCollisionError(collisions, entity_name=entity_name)


def capitalize(name: str) -> str:
    """Upper-case the first character only (``orderItems`` -> ``OrderItems``)."""
    if not name:
        return name
    return name[0].upper() + name[1:]


def to_snake_case(name: str) -> str:
    """
    Convert CamelCase or PascalCase to snake_case.

    Example:
        >>> to_snake_case("UserAccount")
        'user_account'
        >>> to_snake_case("GSI1-ByEmail")
        'gsi1_by_email'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")

    name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    name = re.sub("([a-z0-9])([A-Z])", r"\1_\2", name)
    name = re.sub(r"[^0-9a-zA-Z]+", "_", name)
    name = re.sub("_+", "_", name).strip("_")
    return name.lower()


def to_constant_case(name: str) -> str:
    """Convert any name to an UPPER_SNAKE constant name; a leading digit gets a ``_`` prefix."""
    constant = to_snake_case(name).upper()
    if not constant:
        return "_"
    if constant[0].isdigit():
        constant = "_" + constant
    return constant


def enum_constant_names(values: Sequence[str]) -> Tuple[str, ...]:
    """
    Derive unique, valid member names for enum values.

    Values starting with a digit get a ``VALUE_`` prefix; names that end up
    identical get a numeric suffix in declaration order.
    """
    names: List[str] = []
    seen = set()
    for value in values:
        base = re.sub(r"[^0-9a-zA-Z]+", "_", str(value)).strip("_").upper() or "VALUE"
        if base[0].isdigit():
            base = f"VALUE_{base}"
        candidate = base
        counter = 2
        while candidate in seen:
            candidate = f"{base}_{counter}"
            counter += 1
        seen.add(candidate)
        names.append(candidate)
    return tuple(names)
