"""
Error category enumeration.

Only PERMISSION, CAPTURE_UNSUPPORTED and CAPTURE are ever surfaced to the
user. RESOLUTION and PLAYBACK are recovered by their fallback paths and
exist for logging only.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Internal error categories mapped to user-facing text by the presenter."""

    PERMISSION = "PERMISSION"
    CAPTURE_UNSUPPORTED = "CAPTURE_UNSUPPORTED"
    CAPTURE = "CAPTURE"
    RESOLUTION = "RESOLUTION"
    PLAYBACK = "PLAYBACK"
