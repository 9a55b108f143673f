"""Shared utility functions for streamclipper.

This module provides common utilities used across multiple modules:
- utc_iso(): UTC timestamp in ISO format
- format_clock() / format_duration(): human-readable clip times
- parse_timestamp(): "MM:SS" / "HH:MM:SS" strings to seconds
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_iso() -> str:
    """Return current UTC time in ISO 8601 format.
    
    Returns:
        ISO formatted timestamp string like '2024-01-15T10:30:00+00:00'
    """
    return datetime.now(timezone.utc).isoformat()


def _split_hms(seconds: float) -> tuple[int, int, int]:
    total = int(max(0.0, float(seconds)))
    return total // 3600, (total % 3600) // 60, total % 60


def format_clock(seconds: float) -> str:
    """Format seconds with hundredths, e.g. ``01:02:05.50`` or ``01:05.50``."""
    seconds = max(0.0, float(seconds))
    h, m, _ = _split_hms(seconds)
    s = seconds - h * 3600 - m * 60
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:05.2f}"
    return f"{m:02d}:{s:05.2f}"


def format_duration(seconds: float) -> str:
    """Format seconds for display, e.g. ``1:01:05`` or ``1:05``."""
    h, m, s = _split_hms(seconds)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def parse_timestamp(val: str) -> Optional[float]:
    """Parse ``MM:SS`` or ``HH:MM:SS`` into seconds. Returns None on anything else."""
    parts = val.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        parts_f = [float(p) for p in parts]
    except ValueError:
        return None
    sec = 0.0
    for p in parts_f:
        sec = sec * 60.0 + p
    return sec
