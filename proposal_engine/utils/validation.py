"""Input validation, config normalization and filename safety."""

import logging
import re
from typing import Any, Dict, List, Optional

from proposal_engine.models.template import MEMBER_ASSOCIATION, STAFF_PROFILES

logger = logging.getLogger(__name__)

SAFE_PDF_FILENAME = re.compile(r"^[\w\-. ]+\.pdf$", re.IGNORECASE)
UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
MAX_FILENAME_LENGTH = 255
DEFAULT_FILENAME = "output.pdf"


# ===========================================
# Config Normalization
# ===========================================

def _find_config(data: Any) -> Optional[Dict[str, Any]]:
    """Depth-first search for a dict carrying Company/Templates keys."""
    if isinstance(data, dict):
        if "Company" in data or "Templates" in data:
            return data
        children = data.values()
    elif isinstance(data, list):
        children = data
    else:
        return None

    for child in children:
        found = _find_config(child)
        if found is not None:
            return found
    return None


def normalize_config(data: Any) -> Any:
    """
    Unwrap a proposal config from the shapes callers send.

    Accepts ``[{config: {...}}]``, ``{JSON: {config: {...}}}``,
    ``{config: {...}}`` or the bare object. Falls back to a recursive
    search for ``Company``/``Templates``. Returns the input unchanged when
    nothing matches so validation can report on it.
    """
    candidate = data
    if isinstance(candidate, list) and candidate:
        candidate = candidate[0]

    if isinstance(candidate, dict):
        wrapped = candidate.get("JSON")
        if isinstance(wrapped, dict) and isinstance(wrapped.get("config"), dict):
            return wrapped["config"]
        if isinstance(candidate.get("config"), dict):
            return candidate["config"]
        if "Company" in candidate or "Templates" in candidate:
            return candidate

    found = _find_config(data)
    if found is not None:
        logger.debug("Config located by recursive search")
        return found
    return data


# ===========================================
# Config Validation
# ===========================================

def _validate_template(template: Any, index: int) -> List[str]:
    errors: List[str] = []

    if not isinstance(template, dict):
        return [f"Template[{index}] must be an object"]

    name = template.get("name")
    if not name or not isinstance(name, str):
        errors.append(f"Template[{index}] missing required field: name")

    if not template.get("fileName") or not isinstance(template.get("fileName"), str):
        errors.append(f"Template[{index}] missing required field: fileName")

    editable = template.get("editable")
    if not isinstance(editable, bool):
        errors.append(f"Template[{index}] editable must be a boolean")

    if editable is True:
        field_values = template.get("fieldValues")
        if not isinstance(field_values, (dict, list)):
            errors.append(f"Editable template[{index}] missing fieldValues object")

    staffs = template.get("staffs")
    members = template.get("members")

    if staffs is not None:
        if name != STAFF_PROFILES:
            errors.append(f"Template[{index}] staffs is only allowed on '{STAFF_PROFILES}'")
        if not isinstance(staffs, list):
            errors.append(f"Staff Profiles template[{index}] staffs must be an array")
        else:
            for staff_index, staff in enumerate(staffs):
                if not isinstance(staff, dict) or not staff.get("name") or not staff.get("fileName"):
                    errors.append(
                        f"Staff[{staff_index}] in template[{index}] missing name or fileName"
                    )

    if members is not None:
        if name != MEMBER_ASSOCIATION:
            errors.append(f"Template[{index}] members is only allowed on '{MEMBER_ASSOCIATION}'")
        if not isinstance(members, list):
            errors.append(f"Member Association template[{index}] members must be an array")

    if staffs is not None and members is not None:
        errors.append(f"Template[{index}] is ambiguous: both staffs and members given")

    if template.get("hasImages") is True and editable is not True:
        errors.append(f"Template[{index}] is ambiguous: hasImages requires editable=true")

    image_mapping = template.get("imageMapping")
    if image_mapping is not None and not isinstance(image_mapping, dict):
        errors.append(f"Template[{index}] imageMapping must be an object")

    return errors


def validate_proposal_config(config: Any) -> List[str]:
    """
    Validate the structure of a proposal configuration.

    Args:
        config: Normalized configuration

    Returns:
        Human readable errors, empty when valid
    """
    if not isinstance(config, dict):
        return ["Configuration must be an object"]

    errors: List[str] = []

    company = config.get("Company")
    if not isinstance(company, str) or not company.strip():
        errors.append("Company name is required and must be a string")

    templates = config.get("Templates")
    if not isinstance(templates, list):
        errors.append("Templates must be an array")
    elif not templates:
        errors.append("Templates must contain at least one template")
    else:
        for index, template in enumerate(templates):
            errors.extend(_validate_template(template, index))

    return errors


def validate_output_filename(output_file_name: Any) -> List[str]:
    """Check a caller-supplied output file name."""
    if output_file_name is None:
        return []
    if not isinstance(output_file_name, str):
        return ["outputFileName must be a string"]
    if not SAFE_PDF_FILENAME.match(output_file_name):
        return ["outputFileName must be a valid PDF filename"]
    return []


# ===========================================
# Filename Safety
# ===========================================

def sanitize_filename(filename: Any) -> str:
    """
    Make a user-supplied name safe to use inside the output directory.

    Strips unsafe characters, turns whitespace into underscores, forces a
    ``.pdf`` extension and caps the length. Idempotent.
    """
    if not filename or not isinstance(filename, str):
        return DEFAULT_FILENAME

    sanitized = UNSAFE_FILENAME_CHARS.sub("", filename)
    sanitized = re.sub(r"\s+", "_", sanitized.strip())

    if sanitized.lower().endswith(".pdf"):
        stem = sanitized[:-4]
    else:
        stem = sanitized
    stem = stem[:MAX_FILENAME_LENGTH - 4]

    if not stem.strip("._"):
        return DEFAULT_FILENAME

    return stem + ".pdf"
