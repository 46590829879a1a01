"""
CaptureController: single-utterance capture sessions with ordered events.

Role in the system:
- Wraps a RecognitionEngine.
- Converts platform callbacks into domain events, always in the order
      CaptureStarted -> exactly one terminal -> CaptureEnded
  where the terminal is one of Recognized, NoSpeech,
  CapturePermissionDenied, CaptureFailed.

Architectural constraints:
- At most one open session; start() while open raises CaptureAlreadyActive.
- Duplicate or late engine callbacks are dropped, never forwarded.
- No state machine transitions or orchestration decisions.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from adapters.capture.base import RecognitionEngine
from orchestrator.enums.service import Service
from orchestrator.errors import (
    CaptureAlreadyActive,
    CaptureStartFailed,
    CaptureUnsupported,
)
from orchestrator.events import (
    CaptureEnded,
    CaptureFailed,
    CapturePermissionDenied,
    CaptureStarted,
    Event,
    EventType,
    NoSpeech,
    Recognized,
)

from constants import (
    RECOGNITION_NO_SPEECH_CODES,
    RECOGNITION_NOT_ALLOWED_CODES,
    TARGET_LANGUAGE,
)
from observability.logger import log_event


EventSink = Callable[[Event], Awaitable[None]]


class _CaptureRun:
    """
    Listener bound to one capture run.

    Tracks which events have already been emitted for the run so the
    ordering contract holds whatever the engine does.
    """

    def __init__(self, controller: CaptureController, run_id: int) -> None:
        self._controller = controller
        self.run_id = run_id
        self.started = False
        self.terminated = False
        self.ended = False

    async def on_start(self) -> None:
        await self._ensure_started()

    async def on_result(self, text: str) -> None:
        if not text.strip():
            await self._terminal(EventType.NO_SPEECH)
            return
        await self._terminal(EventType.RECOGNIZED, text=text)

    async def on_error(self, code: str) -> None:
        code = (code or "").strip().lower()
        if code in RECOGNITION_NO_SPEECH_CODES:
            await self._terminal(EventType.NO_SPEECH)
        elif code in RECOGNITION_NOT_ALLOWED_CODES:
            await self._terminal(EventType.CAPTURE_PERMISSION_DENIED)
        else:
            await self._terminal(EventType.CAPTURE_FAILED, reason=code or "unknown")

    async def on_end(self) -> None:
        if self.ended:
            return
        # A session that ends silently (e.g. after stop()) still yields
        # exactly one terminal event.
        await self._terminal(EventType.NO_SPEECH)
        self.ended = True
        self._controller._release(self)
        await self._controller._emit(
            CaptureEnded(
                event_type=EventType.CAPTURE_ENDED,
                ts_ms=_now_ms(),
                service=Service.CAPTURE,
                run_id=self.run_id,
            )
        )

    async def _ensure_started(self) -> None:
        if self.started or self.ended:
            return
        self.started = True
        await self._controller._emit(
            CaptureStarted(
                event_type=EventType.CAPTURE_STARTED,
                ts_ms=_now_ms(),
                service=Service.CAPTURE,
                run_id=self.run_id,
            )
        )

    async def _terminal(
        self,
        event_type: EventType,
        *,
        text: str = "",
        reason: str = "",
    ) -> None:
        if self.terminated or self.ended:
            return
        await self._ensure_started()
        self.terminated = True

        common = {
            "event_type": event_type,
            "ts_ms": _now_ms(),
            "service": Service.CAPTURE,
            "run_id": self.run_id,
        }
        if event_type is EventType.RECOGNIZED:
            event: Event = Recognized(**common, text=text)
        elif event_type is EventType.CAPTURE_PERMISSION_DENIED:
            event = CapturePermissionDenied(**common)
        elif event_type is EventType.CAPTURE_FAILED:
            event = CaptureFailed(**common, reason=reason)
        else:
            event = NoSpeech(**common)

        await self._controller._emit(event)


class CaptureController:
    """
    Single-utterance capture wrapper around a RecognitionEngine.

    Design:
    - One _CaptureRun listener per started session
    - The session stays open until the engine reports on_end
    - All output delivered via events
    """

    def __init__(
        self,
        *,
        emit_event: EventSink,
        engine: RecognitionEngine | None,
        session_id: str | None = None,
        language: str = TARGET_LANGUAGE,
    ) -> None:
        self._emit_event = emit_event
        self._engine = engine
        self._session_id = session_id
        self._language = language
        self._active: _CaptureRun | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._active is not None

    async def start(self, run_id: int) -> None:
        """
        Open a capture session for run_id.

        Raises:
            CaptureAlreadyActive: a session is still open.
            CaptureUnsupported: no recognition capability.
            CaptureStartFailed: the engine refused to start.
        """
        if self._active is not None:
            raise CaptureAlreadyActive(
                f"capture run {self._active.run_id} still open"
            )
        if self._engine is None or not self._engine.available:
            raise CaptureUnsupported("speech recognition not available")

        run = _CaptureRun(self, run_id)
        self._active = run
        try:
            await self._engine.start(language=self._language, listener=run)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._release(run)
            raise CaptureStartFailed(f"{type(exc).__name__}: {exc}") from exc

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "capture_session_opened",
            "session_id": self._session_id,
            "capture_run_id": run_id,
            "language": self._language,
        })

    async def stop(self) -> None:
        """
        Request graceful termination. No-op if no session is open.

        The engine's trailing on_end still yields the terminal and
        CaptureEnded events for the run.
        """
        if self._active is None or self._engine is None:
            return
        await self._engine.stop()

    # ------------------------------------------------------------------
    # Internal (called by _CaptureRun)
    # ------------------------------------------------------------------

    def _release(self, run: _CaptureRun) -> None:
        if self._active is run:
            self._active = None

    async def _emit(self, event: Event) -> None:
        await self._emit_event(event)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000
