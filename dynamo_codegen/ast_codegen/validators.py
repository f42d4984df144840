"""
AST generation of validators.

One shared module defines the violation and error types; every entity gets a
validator whose ``validate`` collects all violations before raising.
"""

import logging
import ast
from typing import List, Optional, Set, Tuple

from dynamo_codegen.ast_codegen.base import (
    add_location, create_annotated_assign, create_assign, create_attribute, create_attribute_call,
    create_call, create_class_def, create_comprehension, create_compare, create_docstring,
    create_expression_statement, create_fstring, create_function_def, create_if, create_import,
    create_is_none, create_is_not_none, create_keyword, create_method_call, create_module,
    create_module_docstring, create_name, create_not, create_raise, create_string_constant,
    create_type_annotation,
)
from dynamo_codegen.constants import OutputLayout, ViolationKinds
from dynamo_codegen.domain.models import (
    EntityDescriptor, FieldConstraints, FieldType, ResolvedField, ScalarType,
)
from dynamo_codegen.domain.naming import to_constant_case, to_snake_case


logger = logging.getLogger(__name__)

VIOLATION = OutputLayout.FIELD_VIOLATION_CLASS
ERROR = OutputLayout.VALIDATION_ERROR_CLASS


def validator_class_name(entity: EntityDescriptor) -> str:
    return f"{entity.name}{OutputLayout.VALIDATOR_SUFFIX}"


def pattern_constant_name(field: ResolvedField, taken: Optional[Set[str]] = None) -> str:
    """
    Module-level name of a field's compiled pattern.

    Distinct identifiers can share a constant case (``order_id``, ``orderId``);
    names already in ``taken`` get a numeric suffix, and the result is added to it.
    """
    base = to_constant_case(field.identifier).lstrip("_")
    candidate = f"_{base}_PATTERN"
    if taken is None:
        return candidate
    counter = 2
    while candidate in taken:
        candidate = f"_{base}_{counter}_PATTERN"
        counter += 1
    taken.add(candidate)
    return candidate


def _number_literal(bound: float) -> ast.Call:
    if isinstance(bound, float) and bound.is_integer():
        bound = int(bound)
    return create_call("Decimal", args=[create_string_constant(str(bound))])


def _format_bound(bound: float) -> str:
    if isinstance(bound, float) and bound.is_integer():
        return str(int(bound))
    return str(bound)


# ---- Shared error module ----

def generate_validation_error_ast() -> ast.Module:
    """Generates the module holding FieldViolation and ValidationError."""
    violation_class = create_class_def(
        name=VIOLATION,
        bases=[],
        body=[
            create_docstring("A single constraint violation: storage field name, constraint kind and message."),
            create_annotated_assign("field", create_name("str")),
            create_annotated_assign("constraint", create_name("str")),
            create_annotated_assign("message", create_name("str")),
        ],
        decorator_list=[create_call("dataclass", keywords=[
            create_keyword("frozen", add_location(ast.Constant(value=True)))
        ])]
    )

    joined_messages = create_method_call(create_string_constant("; "), "join", args=[
        create_comprehension(
            "generator", create_attribute("violation.message"), "violation", create_attribute("self.errors")
        )
    ])

    init_method = create_function_def(
        "__init__",
        [
            ("entity_name", create_name("str"), None),
            ("errors", create_type_annotation("List", create_name(VIOLATION)), None),
        ],
        [
            create_assign("self.entity_name", create_name("entity_name")),
            create_assign("self.errors", create_call("list", args=[create_name("errors")])),
            create_assign("details", joined_messages),
            create_expression_statement(create_method_call(create_call("super"), "__init__", args=[
                create_fstring([
                    (create_name("entity_name"), None),
                    " validation failed: ",
                    (create_name("details"), None),
                ])
            ])),
        ],
        returns=add_location(ast.Constant(value=None)),
    )

    error_class = create_class_def(
        name=ERROR,
        bases=["Exception"],
        body=[
            create_docstring("Raised when an entity violates one or more constraints; carries every violation found."),
            init_method,
        ]
    )

    return create_module([
        create_module_docstring("Validation error types shared by all validators."),
        create_import("dataclasses", ["dataclass"]),
        create_import("typing", ["List"]),
        violation_class,
        error_class,
    ])


def generate_validation_error_code() -> str:
    """Generates the Python code string for the shared validation error module."""
    return ast.unparse(generate_validation_error_ast())


# ---- Per-entity validators ----

def _violation(field: ResolvedField, kind: str, message: str) -> ast.stmt:
    """``errors.append(FieldViolation(<storage name>, <kind>, <message>))``."""
    return create_expression_statement(create_attribute_call("errors", "append", args=[
        create_call(VIOLATION, args=[
            create_string_constant(field.storage_name),
            create_string_constant(kind),
            create_string_constant(message),
        ])
    ]))


def _applicable_constraints(field: ResolvedField) -> Optional[FieldConstraints]:
    """Constraints that apply to the field's type; collections and enums only get the required check."""
    constraints = field.field.constraints
    if constraints is None or not isinstance(field.type_ref, ScalarType):
        return None
    if field.type_ref.kind in (FieldType.STRING, FieldType.NUMBER):
        return constraints
    return None


def create_constraint_checks(
    field: ResolvedField, pattern_names: Optional[Set[str]] = None
) -> Tuple[List[ast.stmt], Optional[ast.stmt]]:
    """
    Creates the checks for one field.

    Returns:
        (statements for ``validate``, module-level pattern constant or None)
    """
    value = create_attribute(f"entity.{field.identifier}")
    name = field.storage_name
    statements: List[ast.stmt] = []
    pattern_constant = None

    if field.required:
        statements.append(create_if(create_is_none(value), [
            _violation(field, ViolationKinds.REQUIRED, f"{name} is required")
        ]))

    constraints = _applicable_constraints(field)
    if constraints is None:
        return statements, pattern_constant

    checks: List[ast.stmt] = []
    if field.type_ref.kind == FieldType.STRING:
        length = create_call("len", args=[create_attribute(f"entity.{field.identifier}")])
        if constraints.min_length is not None:
            checks.append(create_if(
                create_compare(length, ast.Lt(), add_location(ast.Constant(value=constraints.min_length))),
                [_violation(field, ViolationKinds.MIN_LENGTH,
                            f"{name} must be at least {constraints.min_length} characters")]
            ))
        if constraints.max_length is not None:
            length = create_call("len", args=[create_attribute(f"entity.{field.identifier}")])
            checks.append(create_if(
                create_compare(length, ast.Gt(), add_location(ast.Constant(value=constraints.max_length))),
                [_violation(field, ViolationKinds.MAX_LENGTH,
                            f"{name} must be at most {constraints.max_length} characters")]
            ))
        if constraints.pattern is not None:
            constant = pattern_constant_name(field, pattern_names)
            pattern_constant = create_assign(constant, create_attribute_call(
                "re", "compile", args=[create_string_constant(constraints.pattern)]
            ))
            checks.append(create_if(
                create_not(create_attribute_call(constant, "fullmatch", args=[
                    create_attribute(f"entity.{field.identifier}")
                ])),
                [_violation(field, ViolationKinds.PATTERN, f"{name} must match pattern {constraints.pattern}")]
            ))
    else:
        if constraints.min is not None:
            checks.append(create_if(
                create_compare(create_attribute(f"entity.{field.identifier}"), ast.Lt(), _number_literal(constraints.min)),
                [_violation(field, ViolationKinds.MIN, f"{name} must be >= {_format_bound(constraints.min)}")]
            ))
        if constraints.max is not None:
            checks.append(create_if(
                create_compare(create_attribute(f"entity.{field.identifier}"), ast.Gt(), _number_literal(constraints.max)),
                [_violation(field, ViolationKinds.MAX, f"{name} must be <= {_format_bound(constraints.max)}")]
            ))

    if checks:
        statements.append(create_if(create_is_not_none(value), checks))
    return statements, pattern_constant


def generate_validator_ast(entity: EntityDescriptor) -> ast.Module:
    """Generates the complete AST Module for an entity's validator."""
    class_name = validator_class_name(entity)

    checks: List[ast.stmt] = []
    pattern_constants: List[ast.stmt] = []
    pattern_names: Set[str] = set()
    uses_decimal = False
    for field in entity.record.fields:
        statements, pattern_constant = create_constraint_checks(field, pattern_names)
        checks.extend(statements)
        if pattern_constant is not None:
            pattern_constants.append(pattern_constant)
        constraints = _applicable_constraints(field)
        if constraints is not None and field.type_ref.kind == FieldType.NUMBER and constraints.has_number_constraints:
            uses_decimal = True

    if checks:
        validate_body: List[ast.stmt] = [
            create_annotated_assign(
                "errors", create_type_annotation("List", create_name(VIOLATION)), add_location(ast.List(elts=[], ctx=ast.Load()))
            )
        ]
        validate_body.extend(checks)
        validate_body.append(create_if(create_name("errors"), [
            create_raise(create_call(ERROR, args=[create_string_constant(entity.name), create_name("errors")]))
        ]))
    else:
        logger.debug(f"{entity.name} declares no required fields or constraints; validator is a no-op")
        validate_body = []

    validator_class = create_class_def(
        name=class_name,
        bases=[],
        body=[
            create_docstring(f"Validates {entity.name} instances against the schema's required flags and constraints."),
            create_function_def(
                "__init__",
                [],
                [create_raise(create_call("TypeError", args=[
                    create_string_constant(f"{class_name} is a utility class and cannot be instantiated")
                ]))],
                returns=add_location(ast.Constant(value=None)),
            ),
            create_function_def(
                "validate",
                [("entity", create_name(entity.name), None)],
                validate_body,
                returns=add_location(ast.Constant(value=None)),
                decorators=["staticmethod"],
                first=None,
                docstring=f"Raise {ERROR} listing every violation found on the given {entity.name}.",
            ),
        ]
    )

    imports: List[ast.stmt] = []
    if pattern_constants:
        imports.append(create_import("re"))
    if uses_decimal:
        imports.append(create_import("decimal", ["Decimal"]))
    if checks:
        imports.append(create_import("typing", ["List"]))
    imports.append(create_import(f"..{to_snake_case(entity.name)}", [entity.name]))
    violation_names = [VIOLATION, ERROR] if checks else []
    if violation_names:
        imports.append(create_import(f".{OutputLayout.VALIDATION_ERROR_MODULE}", violation_names))

    return create_module(
        [create_module_docstring(f"Validator for {entity.name}.")]
        + imports
        + pattern_constants
        + [validator_class]
    )


def generate_validator_code(entity: EntityDescriptor) -> str:
    """Generates the Python code string for an entity validator module."""
    return ast.unparse(generate_validator_ast(entity))
