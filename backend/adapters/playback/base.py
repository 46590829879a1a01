"""
Playback capability contracts.

Two independent output paths exist:
- MediaPlayer: plays a pre-generated audio resource (URL/path)
- SpeechSynthesizer: speaks text with fixed persona parameters

Both are interface-only. Path selection, fallback, and cancellation
semantics live in playback/controller.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from constants import (
    SYNTHESIS_PITCH,
    SYNTHESIS_RATE,
    SYNTHESIS_VOLUME,
    TARGET_LANGUAGE,
)


@dataclass(frozen=True)
class SynthesisParams:
    """Voice parameters applied to every synthesized utterance."""

    language: str = TARGET_LANGUAGE
    pitch: float = SYNTHESIS_PITCH
    rate: float = SYNTHESIS_RATE
    volume: float = SYNTHESIS_VOLUME


class MediaPlayer(ABC):
    """
    Plays one audio resource to completion.

    play() returns when the resource has finished playing and raises
    PlaybackFailure if it cannot be loaded or played.
    """

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    async def play(self, source: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        """Halt playback immediately. No-op if nothing is playing."""
        raise NotImplementedError


class SpeechSynthesizer(ABC):
    """
    Speaks one utterance to completion.

    speak() returns when the utterance has ended and raises
    PlaybackFailure on a synthesis error.
    """

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    async def speak(self, text: str, params: SynthesisParams) -> None:
        raise NotImplementedError

    @abstractmethod
    async def cancel(self) -> None:
        """Drop the current utterance immediately. No-op if silent."""
        raise NotImplementedError
