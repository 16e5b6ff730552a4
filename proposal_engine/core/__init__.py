"""Core module - Configuration, logging and database."""

from proposal_engine.core.config import get_settings, Settings
from proposal_engine.core.database import ProposalDatabaseService, db_service
from proposal_engine.core.logging import setup_logging

__all__ = [
    "get_settings",
    "Settings",
    "ProposalDatabaseService",
    "db_service",
    "setup_logging",
]
