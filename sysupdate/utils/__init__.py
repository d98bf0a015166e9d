"""Shared helpers (logging setup)."""
