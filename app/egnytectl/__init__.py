"""egnytectl - cloud drive mapping reconciliation."""

__version__ = "0.1.0"
