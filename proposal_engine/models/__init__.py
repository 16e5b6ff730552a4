"""Models package - All Pydantic models organized by domain."""

from proposal_engine.models.enums import TemplateKind, VersionStatus
from proposal_engine.models.template import (
    FormFillTemplate,
    ImageFillTemplate,
    MemberAssociationTemplate,
    PlainTemplate,
    ProposalConfig,
    StaffMember,
    StaffProfilesTemplate,
    TemplateSpec,
    TOCEntry,
    classify_template,
)
from proposal_engine.models.records import (
    DatabaseInfo,
    GenerationResult,
    ProposalRecord,
    ProposalVersionCreated,
    ProposalVersionRecord,
    ProposalWithVersions,
    RefineResult,
    TemplateValidationResult,
)

__all__ = [
    # Enums
    "TemplateKind",
    "VersionStatus",
    # Config models
    "ProposalConfig",
    "TemplateSpec",
    "PlainTemplate",
    "FormFillTemplate",
    "ImageFillTemplate",
    "MemberAssociationTemplate",
    "StaffProfilesTemplate",
    "StaffMember",
    "TOCEntry",
    "classify_template",
    # Records
    "ProposalRecord",
    "ProposalVersionRecord",
    "ProposalWithVersions",
    "ProposalVersionCreated",
    "DatabaseInfo",
    "GenerationResult",
    "TemplateValidationResult",
    "RefineResult",
]
