"""Enumeration types for the proposal engine."""

from enum import Enum


class TemplateKind(str, Enum):
    """How a template section is turned into pages."""
    PLAIN = "plain"
    FORM_FILL = "form_fill"
    IMAGE_FILL = "image_fill"
    MEMBER_ASSOCIATION = "member_association"
    STAFF_PROFILES = "staff_profiles"


class VersionStatus(str, Enum):
    """Review status of a proposal version."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
