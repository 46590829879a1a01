"""
Microphone permission state enumeration.
"""

from __future__ import annotations

from enum import Enum


class PermissionState(str, Enum):
    """
    Platform-reported microphone permission.

    UNKNOWN until the platform has been queried (or when it has no
    permission API at all).
    """

    UNKNOWN = "unknown"
    PROMPT = "prompt"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def parse(cls, raw: object) -> PermissionState:
        """Map a client-reported string onto the enum; anything else is UNKNOWN."""
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN
