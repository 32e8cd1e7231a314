"""Utility modules for the Paper Desk project.

Sub-modules:
- logging: configure_logging() for structlog setup
- parsing: number/datetime helpers (import directly from src.utils.parsing)
"""

from .logging import configure_logging

__all__ = ["configure_logging"]
