"""Proposal Engine - assembles versioned multi-section PDF proposals."""

__version__ = "1.0.0"
