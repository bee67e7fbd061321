"""
Command-line interface for GMS.

This package provides the CLI commands for managing the goal store
and running the MCP server.
"""

from .main import cli

__all__ = ["cli"]
