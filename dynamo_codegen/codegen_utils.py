import logging
from pathlib import PurePath

import black
from black import (
    FileMode,
    format_str as black_format_str,
    NothingChanged as BlackNothingChanged,
)

from .constants import DefaultConfig


logger = logging.getLogger(__name__)


def format_python_code_using_black(
    filepath: PurePath, code_string: str, line_length: int = DefaultConfig.LINE_LENGTH
) -> str:
    """Formats the given Python code using Black."""
    if not code_string.strip():
        return code_string

    mode = FileMode(line_length=line_length)
    try:
        formatted_code = black_format_str(code_string, mode=mode)
        logger.debug(f"Formatted code using Black: {filepath}")
        return formatted_code
    except BlackNothingChanged:
        logger.debug(f"Black formatter did not change the code: {filepath}")
        return code_string
    except black.InvalidInput as e:
        # Unparsed ASTs are always valid syntax; this only guards against emitter bugs
        logger.error(f"Could not format Python code using Black: {e}", exc_info=False)
        logger.warning(f"Writing unformatted Python code for {filepath} due to Black error.")
        return code_string
