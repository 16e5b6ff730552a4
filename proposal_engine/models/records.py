"""Result models for generation runs and database records."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from proposal_engine.models.enums import VersionStatus


class ProposalRecord(BaseModel):
    """Row of the ``proposals`` table."""
    id: str = Field(..., description="Proposal ID")
    title: str = Field(..., description="Company the proposal is for")
    created_by: Optional[str] = Field(None, description="Creating user ID")
    created_at: Optional[datetime] = Field(None, description="Creation time")

    class Config:
        from_attributes = True


class ProposalVersionRecord(BaseModel):
    """Row of the ``proposal_versions`` table."""
    id: str = Field(..., description="Version ID")
    proposal_id: str = Field(..., description="Owning proposal")
    version_number: int = Field(..., ge=1, description="1-based version number")
    version_label: str = Field(..., description="Display label, e.g. v2")
    document_path: Optional[str] = Field(None, description="Generated file name")
    status: VersionStatus = Field(VersionStatus.SUBMITTED, description="Review status")
    created_by: Optional[str] = Field(None, description="Creating user ID")
    proposal_data: Optional[Dict[str, Any]] = Field(
        None,
        description="Config snapshot used to generate this version"
    )
    created_at: Optional[datetime] = Field(None, description="Creation time")

    class Config:
        from_attributes = True


class ProposalWithVersions(ProposalRecord):
    """A proposal with its versions, newest first."""
    versions: List[ProposalVersionRecord] = Field(default_factory=list)


class ProposalVersionCreated(BaseModel):
    """Outcome of creating a proposal together with its first version."""
    proposal: ProposalRecord
    version: ProposalVersionRecord
    version_number: int
    version_label: str


class DatabaseInfo(BaseModel):
    """Database identifiers attached to a generation result."""
    proposal_id: str
    version_id: str
    version_number: int
    version_label: str
    status: VersionStatus


class GenerationResult(BaseModel):
    """Summary returned by a proposal generation."""
    success: bool = Field(True, description="Whether generation completed")
    output_path: str = Field(..., description="Absolute path of the merged PDF")
    file_name: str = Field(..., description="File name of the merged PDF")
    location: str = Field(..., description="Download URL")
    file_size: str = Field(..., description="Human readable file size")
    file_size_bytes: int = Field(..., description="File size in bytes")
    company: str = Field(..., description="Company the proposal is for")
    sections_count: int = Field(..., description="Number of TOC entries")
    templates_processed: int = Field(..., description="Number of input templates")
    generated_at: datetime = Field(..., description="Generation time (UTC)")
    database: Optional[DatabaseInfo] = Field(
        None,
        description="Database identifiers when a record was created"
    )


class TemplateValidationResult(BaseModel):
    """Outcome of the template pre-flight check."""
    valid: bool
    missing_templates: List[str] = Field(default_factory=list)
    total_templates: int
    available_templates: int


class RefineResult(BaseModel):
    """Outcome of refining an existing proposal into a new version."""
    proposal: ProposalRecord
    new_version: ProposalVersionRecord
    generation_result: GenerationResult
