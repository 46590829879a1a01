"""
PlaybackController: play a Response through exactly one active path.

Path order:
1. Media playback of response.audio_ref (if present and supported)
2. Speech synthesis of response.text (fallback, or directly when there is
   no audio_ref)
3. Silent completion when both paths fail or are unsupported

Guarantees:
- play() always completes with a PlaybackOutcome
- cancel() halts the active path and never raises
- A second play() while one is active raises PlaybackBusy
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum

from adapters.playback.base import MediaPlayer, SpeechSynthesizer, SynthesisParams
from orchestrator.errors import PlaybackBusy
from orchestrator.values import Response

from observability.logger import log_event
from observability.metrics import timed


class PlaybackOutcome(str, Enum):
    """How a play() call completed."""

    MEDIA = "media"
    SYNTHESIZED = "synthesized"
    CANCELLED = "cancelled"
    SILENT = "silent"


class _Path(str, Enum):
    MEDIA = "media"
    SYNTHESIS = "synthesis"


class PlaybackController:
    """
    Owns at most one in-flight playback task.

    The task is created per play() call so cancel() can interrupt it
    without cancelling the caller.
    """

    def __init__(
        self,
        *,
        media: MediaPlayer | None,
        synthesizer: SpeechSynthesizer | None,
        session_id: str | None = None,
        params: SynthesisParams | None = None,
    ) -> None:
        self._media = media
        self._synthesizer = synthesizer
        self._session_id = session_id
        self._params = params or SynthesisParams()

        self._task: asyncio.Task[PlaybackOutcome] | None = None
        self._active_path: _Path | None = None
        self._cancel_requested = False

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def play(self, response: Response) -> PlaybackOutcome:
        if self.is_active:
            raise PlaybackBusy("playback already active")

        self._cancel_requested = False
        task = asyncio.ensure_future(self._run(response))
        self._task = task

        try:
            with timed(
                "playback_duration",
                session_id=self._session_id,
                details=response.log_details(),
            ):
                outcome = await task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            outcome = PlaybackOutcome.CANCELLED
        finally:
            if self._task is task:
                self._task = None
                self._active_path = None

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "playback_completed",
            "session_id": self._session_id,
            "outcome": outcome.value,
        })
        return outcome

    async def cancel(self) -> None:
        task = self._task
        if task is None or task.done():
            return

        self._cancel_requested = True
        await self._halt(self._active_path)

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self, response: Response) -> PlaybackOutcome:
        if response.audio_ref and self._media is not None and self._media.available:
            self._active_path = _Path.MEDIA
            try:
                await self._media.play(response.audio_ref)
                return PlaybackOutcome.MEDIA
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._log_path_failure(_Path.MEDIA, exc)
                # The client may still be playing it; never overlap paths
                await self._halt(_Path.MEDIA)

        if self._synthesizer is not None and self._synthesizer.available:
            self._active_path = _Path.SYNTHESIS
            try:
                await self._synthesizer.speak(response.text, self._params)
                return PlaybackOutcome.SYNTHESIZED
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self._log_path_failure(_Path.SYNTHESIS, exc)

        self._active_path = None
        return PlaybackOutcome.SILENT

    async def _halt(self, path: _Path | None) -> None:
        """Stop the given path on the platform. Never raises."""
        try:
            if path is _Path.MEDIA and self._media is not None:
                await self._media.stop()
            elif path is _Path.SYNTHESIS and self._synthesizer is not None:
                await self._synthesizer.cancel()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "playback_stop_error",
                "session_id": self._session_id,
                "path": path.value if path else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

    def _log_path_failure(self, path: _Path, exc: Exception) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "playback_path_failed",
            "session_id": self._session_id,
            "path": path.value,
            "exception": type(exc).__name__,
            "message": str(exc),
        })


def _now_ms() -> int:
    return time.time_ns() // 1_000_000
