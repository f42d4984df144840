from argparse import Namespace
import sys
import logging
from typing import List, Optional, Dict, Any, Literal, Self
import yaml
from pathlib import Path

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
    ConfigDict,
)

from dynamo_codegen.constants import DefaultConfig
from dynamo_codegen.domain.naming import is_valid_package_name

logger = logging.getLogger(__name__)


class GeneratorSettings(BaseModel):
    """Pydantic schema defining the expected structure and types for the configuration."""

    namespace: str = Field(
        DefaultConfig.NAMESPACE,
        min_length=1,
        description="Dotted package the generated modules live in (e.g. 'myapp.model').",
    )
    output_dir: str = Field(
        DefaultConfig.OUTPUT_DIR,
        min_length=1,
        description="Directory the namespace package tree is written below.",
    )
    schemas: List[str] = Field(
        default_factory=list,
        description="Paths of entity schema files (JSON or YAML).",
    )
    table_metadata: Optional[str] = Field(
        default=None,
        description="Path of the table metadata file; without it no client, config or repositories are generated.",
    )
    format_code: bool = Field(
        default=DefaultConfig.FORMAT_CODE,
        description="Whether to format generated modules with black.",
    )
    line_length: int = Field(
        default=DefaultConfig.LINE_LENGTH,
        description="Line length used when formatting generated modules.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level of the generator itself.",
    )

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access."""
        return getattr(self, key)

    @field_validator("namespace")
    @classmethod
    def check_namespace(cls, v: str) -> str:
        """Every dotted part of the namespace must be a usable package name."""
        for part in v.split("."):
            if not is_valid_package_name(part):
                raise ValueError(
                    f"'{v}' is not a valid package namespace: '{part}' is not a valid Python identifier."
                )
        return v

    @field_validator("line_length")
    @classmethod
    def check_line_length(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"line_length must be positive, got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("schemas", mode="before")
    @classmethod
    def check_schema_paths(cls, v: Any) -> List[str]:
        """Accept a single path or a list of non-empty paths."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list):
            raise TypeError("schemas must be a path or a list of paths.")
        processed_list = []
        for index, item in enumerate(v):
            if not isinstance(item, str) or not item.strip():
                raise ValueError(f"Schema path at index {index} must be a non-empty string.")
            processed_list.append(item.strip())
        return processed_list

    @model_validator(mode="after")
    def check_schemas_given(self) -> Self:
        """Perform cross-field validation checks."""
        if not self.schemas:
            raise ValueError("At least one schema file is required (config 'schemas' or --schema).")
        if self.table_metadata is None:
            logger.debug("No table metadata configured; repositories will not be generated.")
        return self

    model_config = ConfigDict(
        extra="ignore",  # Allow and ignore extra fields from input dict
    )


def validate_and_parse_config(config_dict: Dict[str, Any]) -> GeneratorSettings:
    """
    Validates a raw configuration dictionary against GeneratorSettings.
    Exits with error messages if validation fails.
    """
    try:
        validated_config = GeneratorSettings.model_validate(config_dict)
        logger.debug("Configuration dictionary parsed and validated successfully against schema.")
        return validated_config
    except ValidationError as e:
        logger.critical("Configuration validation failed! Please check your config file or arguments.")
        print("\n--- Configuration Errors ---", file=sys.stderr)
        for error in e.errors():
            loc_parts = [str(loc_item) for loc_item in error.get("loc", ())]
            loc_str = " -> ".join(loc_parts) if loc_parts else "Model Level"
            msg = error.get("msg", "Unknown validation error")
            input_value = error.get("input", "N/A")

            print(f"  - Location: '{loc_str}'", file=sys.stderr)
            print(f"    Error:    {msg}", file=sys.stderr)

            if "namespace" in loc_parts:
                print(
                    f"    Hint:     Value '{input_value}' must be dotted Python package names, e.g. 'myapp.model'.",
                    file=sys.stderr,
                )
        print("----------------------------", file=sys.stderr)
        sys.exit(1)


def load_config(config_path: Optional[str], cli_args: Namespace) -> GeneratorSettings:
    """
    Loads configuration from YAML file, merges with CLI arguments,
    validates the result, and returns a validated Pydantic model instance.
    Exits with error messages if validation fails.
    """
    raw_config: Dict[str, Any] = {}

    # 1. Load from YAML file if path is provided
    if config_path:
        config_file = Path(config_path)
        if config_file.is_file():
            try:
                with open(config_file, "r", encoding="utf-8") as f:
                    yaml_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                logger.error(f"Error parsing YAML file {config_path}: {e}")
                logger.warning("Proceeding with defaults and CLI arguments only.")
                yaml_config = None
            if yaml_config and isinstance(yaml_config, dict):
                raw_config.update(yaml_config)
                logger.debug(f"Loaded configuration from {config_path}")
            elif yaml_config:
                logger.warning(f"Content in config file {config_path} is not a dictionary. Ignoring file content.")
        else:
            logger.warning(f"Config file not found at {config_path}. Using defaults and CLI arguments.")

    # 2. Override with CLI arguments (only those explicitly provided)
    overridden_keys = set()
    for key, value in vars(cli_args).items():
        if value is not None and key in GeneratorSettings.model_fields:
            raw_config[key] = value
            overridden_keys.add(key)
    if overridden_keys:
        logger.debug(f"Overridden config keys from CLI arguments: {sorted(overridden_keys)}")

    # 3. Validate
    logger.info("Validating final configuration...")
    validated_config = validate_and_parse_config(raw_config)

    # 4. Post-validation adjustments
    validated_config.output_dir = str(Path(validated_config.output_dir).resolve())

    logger.info("Configuration loaded and validated successfully.")
    return validated_config
