"""Shared helpers (numeric safety, logging setup)."""
