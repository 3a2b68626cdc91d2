"""Core reconciliation, configuration and provisioning logic."""
