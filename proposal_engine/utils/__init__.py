"""Utilities - validation, filename safety and file helpers."""

from proposal_engine.utils.files import (
    RunWorkspace,
    ensure_directory_exists,
    find_missing_templates,
    format_file_size,
    get_file_size,
    load_config_file,
)
from proposal_engine.utils.validation import (
    normalize_config,
    sanitize_filename,
    validate_output_filename,
    validate_proposal_config,
)

__all__ = [
    "RunWorkspace",
    "ensure_directory_exists",
    "find_missing_templates",
    "format_file_size",
    "get_file_size",
    "load_config_file",
    "normalize_config",
    "sanitize_filename",
    "validate_output_filename",
    "validate_proposal_config",
]
