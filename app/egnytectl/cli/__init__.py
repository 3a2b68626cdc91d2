"""Command-line interface for egnytectl."""
