"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime


def now_iso() -> str:
    """Current UTC time as compact ISO 8601 with a ``Z`` suffix (no spaces)."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def short_oid(oid: str, length: int = 10) -> str:
    """Abbreviate an object id for display.

    Examples:
        >>> short_oid("0123456789abcdef")
        '0123456789'
    """
    return oid[:length]
