"""Services module - Business logic layer."""

from proposal_engine.services.template_processor import TemplateProcessor, template_processor
from proposal_engine.services.proposal_generator import ProposalGenerator, proposal_generator

__all__ = [
    "TemplateProcessor",
    "template_processor",
    "ProposalGenerator",
    "proposal_generator",
]
