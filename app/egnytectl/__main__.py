"""Allow running egnytectl with ``python -m egnytectl``."""

from egnytectl.cli.main import app

app()
