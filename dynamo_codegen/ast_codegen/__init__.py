"""
DynamoDB AST Code Generator Module

This module provides the AST-based emitters for entities, key helpers,
validators, repositories and the shared table client and configuration.
"""

from .entities import generate_enum_code, generate_record_code
from .keys import generate_keys_code
from .validators import generate_validation_error_code, generate_validator_code
from .repositories import generate_repository_code
from .infrastructure import generate_client_code, generate_config_code
from .code_generator import CodeGenerator, generate_for_table


__all__ = [
    'generate_record_code',
    'generate_enum_code',
    'generate_keys_code',
    'generate_validation_error_code',
    'generate_validator_code',
    'generate_repository_code',
    'generate_client_code',
    'generate_config_code',
    'CodeGenerator',
    'generate_for_table'
]
