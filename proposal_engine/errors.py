"""Exception hierarchy for the Proposal Engine.

Per-field and per-section errors are raised inside the PDF pipeline and
caught close to where they occur (the section or image is skipped).
Validation, persistence and output errors propagate to the caller.
"""

from typing import List, Optional


class ProposalEngineError(Exception):
    """Base exception for all Proposal Engine errors."""

    pass


class ConfigValidationError(ProposalEngineError):
    """Structural problems in a proposal configuration."""

    def __init__(self, errors: List[str], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(
            message or f"Configuration validation failed: {', '.join(self.errors)}"
        )


class TemplateMissingError(ProposalEngineError):
    """A referenced template file is absent."""

    pass


class FieldNotFoundError(ProposalEngineError):
    """A named form field does not exist in the template."""

    pass


class ImageNotFoundError(ProposalEngineError):
    """An image referenced by a mapping does not exist on disk."""

    pass


class UnsupportedImageFormatError(ProposalEngineError):
    """An image is neither JPEG nor PNG."""

    pass


class MergeReadError(ProposalEngineError):
    """A source PDF could not be read during the merge."""

    pass


class PersistenceError(ProposalEngineError):
    """A database call failed."""

    pass


class OutputWriteError(ProposalEngineError):
    """The final document could not be written."""

    pass


class ProposalNotFoundError(ProposalEngineError):
    """No proposal exists for the requested ID."""

    pass
