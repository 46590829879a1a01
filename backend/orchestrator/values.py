"""
Immutable value objects exchanged between dialogue components.

Rules:
- Values are frozen dataclasses.
- Validation happens at construction; an invalid value never exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResponseOrigin(str, Enum):
    """Where the text of a Response was produced."""

    BACKEND = "backend"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Utterance:
    """One completed speech-to-text result from a single capture session."""

    text: str
    timestamp_ms: int


@dataclass(frozen=True)
class Response:
    """
    Reply to be played back to the user.

    Invariant: text is never blank. audio_ref is an optional resource
    handle (URL or path) for pre-generated speech.
    """

    text: str
    origin: ResponseOrigin
    audio_ref: str | None = None

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Response text must be non-empty")

    def log_details(self) -> dict[str, object]:
        """Compact, log-safe description of this response."""
        return {
            "origin": self.origin.value,
            "text_len": len(self.text),
            "has_audio_ref": self.audio_ref is not None,
        }
