"""API module - HTTP routes."""

from proposal_engine.api.proposals import router as proposals_router

__all__ = ["proposals_router"]
