"""Proposal API Routes - Generation, versioning and file access."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse

from proposal_engine.core.database import db_service
from proposal_engine.errors import (
    ConfigValidationError,
    OutputWriteError,
    PersistenceError,
    ProposalNotFoundError,
)
from proposal_engine.models import VersionStatus
from proposal_engine.services.proposal_generator import proposal_generator
from proposal_engine.utils.files import format_file_size
from proposal_engine.utils.validation import normalize_config, sanitize_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proposals", tags=["proposals"])

STAFF_PROFILES_SECTION = "Staff Profiles"
STAFF_PROFILES_HINT = "(Please list names)"


# ===========================================
# Response Envelope
# ===========================================

def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(data: Any, message: str = "Operation successful") -> Dict[str, Any]:
    """Standard success envelope."""
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _timestamp(),
    }


def api_error(message: str, errors: Optional[List[str]] = None, status_code: int = 400) -> HTTPException:
    """HTTPException carrying the standard error envelope."""
    return HTTPException(
        status_code=status_code,
        detail={
            "success": False,
            "message": message,
            "errors": errors or [],
            "status_code": status_code,
            "timestamp": _timestamp(),
        },
    )


async def _read_json(request: Request) -> Any:
    """Request body as JSON; an empty body reads as ``{}``."""
    body = await request.body()
    if not body:
        return {}
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise api_error("Invalid JSON body", [str(e)], 400)


def _first(data: Any) -> Any:
    if isinstance(data, list) and data:
        return data[0]
    return data


def _option(body: Any, key: str) -> Optional[str]:
    if isinstance(body, dict):
        return body.get(key)
    return None


# ===========================================
# Generation
# ===========================================

@router.post("/generate", summary="Generate a proposal PDF")
async def generate_proposal(request: Request) -> Dict[str, Any]:
    """
    Generate a proposal from a configuration.

    Body: ``{config, outputFileName?, createdBy?}`` or the configuration in
    any supported wrapper shape.
    """
    body = _first(await _read_json(request))
    config = body.get("config", body) if isinstance(body, dict) else body

    try:
        result = await proposal_generator.generate(
            config,
            output_file_name=_option(body, "outputFileName"),
            created_by=_option(body, "createdBy"),
        )
    except ConfigValidationError as e:
        raise api_error("Request validation failed", e.errors, 400)
    except (PersistenceError, OutputWriteError) as e:
        logger.error(f"API Error - Generate proposal: {e}")
        raise api_error("Failed to generate proposal", [str(e)], 500)

    return success_response(result.model_dump(mode="json"), "Proposal generated successfully")


@router.post("/generate-from-file", summary="Generate a proposal from a config file")
async def generate_from_file(request: Request) -> Dict[str, Any]:
    """Body: ``{configFilePath?, outputFileName?, createdBy?}``."""
    body = _first(await _read_json(request))

    try:
        result = await proposal_generator.generate_from_config_file(
            _option(body, "configFilePath"),
            output_file_name=_option(body, "outputFileName"),
            created_by=_option(body, "createdBy"),
        )
    except FileNotFoundError as e:
        raise api_error("Configuration file not found", [str(e)], 404)
    except ValueError as e:
        raise api_error("Invalid configuration file", [str(e)], 400)
    except ConfigValidationError as e:
        raise api_error("Request validation failed", e.errors, 400)
    except (PersistenceError, OutputWriteError) as e:
        logger.error(f"API Error - Generate from file: {e}")
        raise api_error("Failed to generate proposal from file", [str(e)], 500)

    return success_response(
        result.model_dump(mode="json"),
        "Proposal generated from file successfully"
    )


@router.get("/status", summary="Service status")
async def get_status() -> Dict[str, Any]:
    return success_response(proposal_generator.get_status(), "Service status retrieved successfully")


@router.post("/validate-templates", summary="Check that all templates are available")
async def validate_templates(request: Request) -> Dict[str, Any]:
    body = _first(await _read_json(request))
    config = body.get("config") if isinstance(body, dict) else None
    if not config:
        raise api_error("Configuration is required", ["Request body must include config object"], 400)

    try:
        validation = proposal_generator.validate_templates(config)
    except ConfigValidationError as e:
        raise api_error("Request validation failed", e.errors, 400)

    if not validation.valid:
        raise api_error(
            "Some templates are missing",
            [f"Missing template: {name}" for name in validation.missing_templates],
            400,
        )

    return success_response(validation.model_dump(), "All templates are available")


# ===========================================
# Files
# ===========================================

@router.get("/download/{filename}", summary="Download a generated proposal")
async def download_file(filename: str) -> FileResponse:
    sanitized = sanitize_filename(filename)
    output_dir = proposal_generator.output_dir.resolve()
    file_path = (output_dir / sanitized).resolve()

    if file_path.parent != output_dir:
        raise api_error("Access denied", ["File access outside output directory not allowed"], 403)

    if not file_path.is_file():
        raise api_error("File not found", [f"File {sanitized} does not exist"], 404)

    return FileResponse(file_path, media_type="application/pdf", filename=sanitized)


@router.get("/files", summary="List generated proposals")
async def list_files() -> Dict[str, Any]:
    output_dir = proposal_generator.output_dir
    if not output_dir.is_dir():
        return success_response([], "No files found (output directory does not exist)")

    files = []
    for path in output_dir.iterdir():
        if not path.is_file() or path.suffix.lower() != ".pdf":
            continue
        stats = path.stat()
        files.append({
            "filename": path.name,
            "size": stats.st_size,
            "size_formatted": format_file_size(stats.st_size),
            "modified_at": datetime.fromtimestamp(stats.st_mtime, timezone.utc).isoformat(),
        })

    files.sort(key=lambda item: item["modified_at"], reverse=True)
    return success_response(files, f"Found {len(files)} proposal files")


# ===========================================
# Template Catalogue
# ===========================================

def clean_section_name(section: str) -> str:
    """Map the form's "Staff Profiles (Please list names)" to the section name."""
    if STAFF_PROFILES_SECTION in section and STAFF_PROFILES_HINT in section:
        return STAFF_PROFILES_SECTION
    return section


@router.post("/templates", summary="Look up templates for proposal sections")
async def get_templates(request: Request) -> Dict[str, Any]:
    """Body: ``{companyName?, proposalSections: [...]}``, optionally in a list."""
    body = _first(await _read_json(request))
    sections = body.get("proposalSections") if isinstance(body, dict) else None
    if not isinstance(sections, list):
        raise api_error("Invalid request", ["proposalSections array is required"], 400)

    names = [clean_section_name(str(section)) for section in sections]

    try:
        rows = await db_service.get_templates_by_names(names)
    except PersistenceError as e:
        raise api_error("Failed to fetch templates", [str(e)], 400)

    by_name = {row.get("name"): row for row in rows}
    ordered = [
        {
            "name": by_name[name].get("name"),
            "path": by_name[name].get("path"),
            "editable": by_name[name].get("editable"),
        }
        for name in names if name in by_name
    ]

    company = body.get("companyName") or "company"
    return success_response(ordered, f"Found {len(rows)} matching template(s) for {company}")


# ===========================================
# Proposals & Versions
# ===========================================

@router.get("/proposal/{proposal_id}", summary="Get a proposal with its versions")
async def get_proposal(proposal_id: str) -> Dict[str, Any]:
    try:
        proposal = await db_service.get_proposal_with_versions(proposal_id)
    except PersistenceError as e:
        raise api_error("Failed to retrieve proposal", [str(e)], 500)

    if proposal is None:
        raise api_error("Proposal not found", [f"Proposal with ID {proposal_id} does not exist"], 404)

    return success_response(
        proposal.model_dump(mode="json"),
        f"Retrieved proposal with {len(proposal.versions)} version(s)"
    )


@router.put("/version/{version_id}/status", summary="Update a version's status")
async def update_version_status(version_id: str, request: Request) -> Dict[str, Any]:
    body = _first(await _read_json(request))
    status = _option(body, "status")
    valid_statuses = [item.value for item in VersionStatus]

    if status not in valid_statuses:
        raise api_error("Invalid status", [f"Status must be one of: {', '.join(valid_statuses)}"], 400)

    try:
        version = await db_service.update_version_status(version_id, status)
    except PersistenceError as e:
        raise api_error("Failed to update version status", [str(e)], 500)

    return success_response(version.model_dump(mode="json"), f"Version status updated to {status}")


@router.post("/{proposal_id}/refine", summary="Create the next version of a proposal")
async def refine_proposal(proposal_id: str, request: Request) -> Dict[str, Any]:
    """
    Body: ``{config?, createdBy?}``, or a configuration in any wrapper shape.

    Without a configuration the latest version's stored one is reused.
    """
    body = _first(await _read_json(request))

    config = body.get("config") if isinstance(body, dict) else None
    if config is None:
        normalized = normalize_config(body)
        if isinstance(normalized, dict) and normalized.get("Company") and normalized.get("Templates"):
            config = normalized

    try:
        result = await proposal_generator.refine(
            proposal_id,
            config=config,
            created_by=_option(body, "createdBy"),
        )
    except ProposalNotFoundError:
        raise api_error("Proposal not found", [f"Proposal with ID {proposal_id} does not exist"], 404)
    except ConfigValidationError as e:
        raise api_error("Request validation failed", e.errors, 400)
    except (PersistenceError, OutputWriteError) as e:
        logger.error(f"API Error - Refine proposal: {e}")
        raise api_error("Failed to refine proposal", [str(e)], 500)

    generation = result.generation_result
    return success_response(
        result.model_dump(mode="json"),
        f"Proposal refined successfully. Created {result.new_version.version_label} "
        f"with {generation.sections_count} sections."
    )
