"""Timestamp helpers shared by records, audit events, and storage names."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Return ISO UTC timestamp used across records and audit events."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def utc_stamp() -> str:
    """Return a filesystem-safe UTC timestamp token (``YYYYmmddHHMMSS``)."""
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")


__all__ = ["utc_now_iso", "utc_stamp"]
