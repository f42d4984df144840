import argparse
import logging
import sys
from typing import List, Optional

from dynamo_codegen.config import load_config
from dynamo_codegen.loader import load_schema, load_table_binding
from dynamo_codegen.ast_codegen.code_generator import generate_for_table
from dynamo_codegen.exceptions import DynamoCodegenError

from dynamo_codegen.colored_logging import (
    setup_colored_logging,
    get_colored_logger,
    log_success,
    log_progress,
    log_highlight,
    log_section
)

# Note: Colored logging will be configured after parsing args
logger = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dynamo-codegen",
        description="Generate a typed DynamoDB data-access package (entities, keys, validators, repositories) from entity schemas.",
    )
    parser.add_argument(
        "--schema",
        dest="schemas",
        action="append",
        help="Entity schema file (JSON or YAML) or inline JSON. Repeat for every entity of the table.",
    )
    parser.add_argument(
        "--package",
        dest="namespace",
        help="Dotted package the generated modules live in (e.g. 'myapp.model'). Overrides config file setting.",
    )
    parser.add_argument(
        "--output",
        dest="output_dir",
        help="Directory the package tree is written below. Overrides config file setting.",
    )
    parser.add_argument(
        "--table-metadata",
        dest="table_metadata",
        help="Table metadata file or inline JSON (tableName, tableArn, region, secondary indexes).",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose DEBUG logging for the generator tool.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output (useful for CI/CD environments).",
    )
    parser.add_argument(
        "--no-format",
        dest="format_code",
        action="store_const",
        const=False,
        help="Write generated modules without formatting them with black.",
    )
    return parser


def main(argv: Optional[List[str]] = None):
    # --- Argument Parsing ---
    args = build_parser().parse_args(argv)

    # --- Logging Setup ---
    use_colors = not args.no_color
    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_colored_logging(level=log_level, use_colors=use_colors)

    global logger
    logger = get_colored_logger(__name__)

    if args.verbose:
        logger.debug("Verbose mode enabled. DEBUG level logging activated.")
        args.log_level = "DEBUG"
    else:
        args.log_level = None

    # --- Main Execution Pipeline ---
    try:
        # 1. Load Configuration
        log_progress(logger, "Loading configuration...")
        config = load_config(args.config, args)
        if not args.verbose and config.log_level != "INFO":
            setup_colored_logging(level=getattr(logging, config.log_level), use_colors=use_colors)
        logger.debug(f"Effective configuration loaded: {config}")

        # 2. Load schemas and table metadata
        log_section(logger, "Schema Loading")
        schemas = [load_schema(source) for source in config.schemas]
        table_binding = None
        if config.table_metadata:
            table_binding = load_table_binding(config.table_metadata)
        log_success(logger, f"Loaded {len(schemas)} schema(s).")

        # 3. Generate
        log_section(logger, "Code Generation")
        log_progress(logger, f"Generating package '{config.namespace}'...")
        written = generate_for_table(
            schemas,
            namespace=config.namespace,
            output_dir=config.output_dir,
            table_binding=table_binding,
            format_code=config.format_code,
            line_length=config.line_length,
        )

        # --- Success ---
        log_section(logger, "COMPLETION")
        log_success(logger, f"Generated {len(written)} files for {len(schemas)} entit{'y' if len(schemas) == 1 else 'ies'}.")
        log_highlight(logger, f"Output: {config.output_dir}")
        if table_binding is None:
            logger.info("Pass --table-metadata to also generate the client, config and repository modules.")

    # --- Error Handling ---
    except DynamoCodegenError as e:
        logger.error(f"Generation failed:\n{e}", exc_info=args.verbose)
        sys.exit(1)
    except Exception as e:
        # Catch any other unexpected exceptions
        logger.error(f"An unexpected error occurred during generation: {e}", exc_info=True)
        sys.exit(1)


# --- Script Entry Point ---
if __name__ == "__main__":
    main()
