"""
Custom exception hierarchy for dynamo-codegen.

This module provides a comprehensive exception system with rich context
and error recovery guidance for contributors and users.
"""

from typing import Dict, Any, Optional, List, Sequence


class DynamoCodegenError(Exception):
    """
    Base exception for all dynamo-codegen errors.

    Provides rich context and error recovery guidance.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        error_code: Optional[str] = None
    ):
        """
        Initialize the exception with context and recovery suggestions.

        Args:
            message: Human-readable error message
            context: Additional context about where/why the error occurred
            suggestions: List of potential solutions or next steps
            error_code: Unique error code for programmatic handling
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        self.error_code = error_code

    def __str__(self) -> str:
        """Return formatted error message with context."""
        lines = [super().__str__()]

        if self.error_code:
            lines.append(f"Error Code: {self.error_code}")

        if self.context:
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestions:
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  • {suggestion}")

        return "\n".join(lines)


class ConfigurationError(DynamoCodegenError):
    """Raised when generator configuration is invalid or missing."""

    def __init__(self, message: str, config_file: str = None, **kwargs):
        context = kwargs.get('context', {})
        if config_file:
            context['config_file'] = config_file

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the configuration file syntax",
                "Verify the namespace is a dotted Python package path",
                "Check the documentation for configuration examples"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="CONFIG_ERROR"
        )


class SchemaLoadError(DynamoCodegenError):
    """Raised when a schema or table metadata document cannot be read."""

    def __init__(self, message: str, source: str = None, **kwargs):
        context = kwargs.get('context', {})
        if source:
            context['source'] = source

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the file exists and is valid JSON or YAML",
                "Verify entityName, primaryKey and fields are present",
                "Check field entries have both a name and a type"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="SCHEMA_LOAD_ERROR"
        )


class NameCollisionError(DynamoCodegenError):
    """
    Raised when two or more storage attribute names resolve to the same
    code identifier.

    Carries every collision group found for the entity so the caller can add
    a ``nameOverride`` to the offending fields in one pass.
    """

    def __init__(self, collisions: Sequence[Any], entity_name: str = None, **kwargs):
        self.collisions = list(collisions)
        self.entity_name = entity_name

        groups = []
        for collision in self.collisions:
            originals = ", ".join(f"'{name}'" for name in collision.original_names)
            groups.append(f"fields [{originals}] all resolve to identifier '{collision.identifier}'")
        message = "Name collision: " + "; ".join(groups)

        context = kwargs.get('context', {})
        if entity_name:
            context['entity'] = entity_name

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Add nameOverride to one of the conflicting fields in the schema",
                "Rename one of the storage attributes"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="NAME_COLLISION_ERROR"
        )


class CodeGenerationError(DynamoCodegenError):
    """Raised when AST code generation fails."""

    def __init__(self, message: str, component: str = None, entity: str = None, **kwargs):
        context = kwargs.get('context', {})
        if component:
            context['component'] = component  # e.g., 'entity', 'repository', 'config'
        if entity:
            context['entity'] = entity

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the schema for unsupported patterns",
                "Check for nested type names that clash with each other",
                "Try generating one entity at a time"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="CODE_GENERATION_ERROR"
        )

