"""
Core Module - Shared application plumbing.

Components:
- logging: loguru sink configuration for the CLI and API
"""

from src.core.logging import configure_logging

__all__ = [
    "configure_logging",
]
