"""CLI commands for egnytectl.

This package contains all subcommand implementations.
"""

from egnytectl.cli.commands import apply, config, install, status

__all__ = ["apply", "config", "install", "status"]
