"""
Command-line interface for the xrunner package.

This module provides the main CLI entry point for the build and run tool.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
