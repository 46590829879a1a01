"""
ClientCapabilityBridge: platform capabilities provided by the connected client.

The browser client owns the microphone, the recognizer, the media element
and the speech synthesizer. This module exposes them to the server-side
components through the abstract contracts in adapters/*/base.py, using the
JSON control protocol carried by the session WebSocket.

Request/response pairs (mic access, media, synthesis) are correlated by a
request_id. Recognition callbacks are forwarded to the listener of the
currently open recognition session.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any, Callable, Mapping

from adapters.capture.base import RecognitionEngine, RecognitionListener
from adapters.permission.base import (
    CaptureStream,
    PermissionCallback,
    PermissionProvider,
)
from adapters.playback.base import MediaPlayer, SpeechSynthesizer, SynthesisParams
from orchestrator.enums.permission import PermissionState
from orchestrator.errors import MicrophoneAccessDenied, PlaybackFailure

from constants import CLIENT_REQUEST_TIMEOUT_S
from observability.logger import log_event


ControlSink = Callable[[dict[str, Any]], None]

CAPABILITY_NAMES = ("recognition", "synthesis", "media", "permissions")


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# ---------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------

class ClientCapabilityBridge:
    """
    Correlates outbound capability requests with inbound client replies.

    One bridge per session. Messages are handed to `send`, which must
    enqueue them for delivery (it must not block).
    """

    def __init__(
        self,
        *,
        send: ControlSink,
        session_id: str | None = None,
        request_timeout_s: float = CLIENT_REQUEST_TIMEOUT_S,
    ) -> None:
        self._send = send
        self._session_id = session_id
        self._request_timeout_s = request_timeout_s

        self._capabilities: dict[str, bool] = {name: False for name in CAPABILITY_NAMES}
        self._reported_permission = PermissionState.UNKNOWN
        self._pending: dict[str, asyncio.Future[dict[str, Any]]] = {}

        self.permissions = ClientPermissionProvider(self)
        self.recognition = ClientRecognitionEngine(self)
        self.media = ClientMediaPlayer(self)
        self.synthesis = ClientSpeechSynthesizer(self)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def apply_client_ready(self, data: Mapping[str, Any]) -> None:
        """Record the capabilities and permission the client announced."""
        caps = data.get("capabilities")
        if isinstance(caps, Mapping):
            for name in CAPABILITY_NAMES:
                self._capabilities[name] = bool(caps.get(name, False))
        self._reported_permission = PermissionState.parse(data.get("permission"))

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "client_capabilities",
            "session_id": self._session_id,
            "capabilities": dict(self._capabilities),
            "permission": self._reported_permission.value,
        })

    def supports(self, name: str) -> bool:
        return self._capabilities.get(name, False)

    @property
    def reported_permission(self) -> PermissionState:
        return self._reported_permission

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def send(self, msg_type: str, **fields: Any) -> None:
        self._send({"type": msg_type, **fields})

    async def request(
        self,
        msg_type: str,
        *,
        bounded: bool = True,
        **fields: Any,
    ) -> dict[str, Any]:
        """
        Send a correlated request and wait for the client's reply.

        Unbounded requests (media and speech, which last as long as the
        audio does) end only on the client's reply or on close().

        Raises:
            TimeoutError if a bounded request is not answered in time.
        """
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        timeout = self._request_timeout_s if bounded else None
        try:
            self.send(msg_type, request_id=request_id, **fields)
            try:
                return await asyncio.wait_for(future, timeout=timeout)
            except asyncio.TimeoutError as exc:
                raise TimeoutError(
                    f"{msg_type} {request_id} unanswered after {timeout}s"
                ) from exc
        finally:
            self._pending.pop(request_id, None)

    def close(self) -> None:
        """Cancel every outstanding request (connection gone)."""
        for future in self._pending.values():
            if not future.done():
                future.cancel()
        self._pending.clear()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_client_message(self, data: Mapping[str, Any]) -> bool:
        """
        Route one capability message from the client.

        Returns:
            True if the message belonged to the capability protocol.
        """
        msg_type = data.get("type")

        if msg_type == "PERMISSION_CHANGED":
            self.permissions.notify(PermissionState.parse(data.get("permission")))
            return True

        if msg_type in ("MIC_ACCESS_RESULT", "MEDIA_ENDED", "MEDIA_ERROR",
                        "SYNTHESIS_ENDED", "SYNTHESIS_ERROR"):
            self._resolve(data)
            return True

        if msg_type == "RECOGNITION_STARTED":
            await self.recognition.dispatch_start()
            return True
        if msg_type == "RECOGNITION_RESULT":
            text = data.get("text")
            await self.recognition.dispatch_result(text if isinstance(text, str) else "")
            return True
        if msg_type == "RECOGNITION_ERROR":
            await self.recognition.dispatch_error(str(data.get("error") or ""))
            return True
        if msg_type == "RECOGNITION_ENDED":
            await self.recognition.dispatch_end()
            return True

        return False

    def _resolve(self, data: Mapping[str, Any]) -> None:
        request_id = data.get("request_id")
        future = self._pending.get(request_id) if isinstance(request_id, str) else None
        if future is None or future.done():
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "client_reply_unmatched",
                "session_id": self._session_id,
                "msg_type": data.get("type"),
                "request_id": request_id,
            })
            return
        future.set_result(dict(data))


# ---------------------------------------------------------------------
# Permission
# ---------------------------------------------------------------------

class _ClientCaptureStream(CaptureStream):
    def __init__(self, bridge: ClientCapabilityBridge) -> None:
        self._bridge = bridge
        self._released = False

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._bridge.send("RELEASE_MIC")


class ClientPermissionProvider(PermissionProvider):
    def __init__(self, bridge: ClientCapabilityBridge) -> None:
        self._bridge = bridge
        self._callback: PermissionCallback | None = None

    async def query(self) -> PermissionState:
        if not self._bridge.supports("permissions"):
            raise NotImplementedError("client has no permission API")
        return self._bridge.reported_permission

    def watch(self, callback: PermissionCallback) -> None:
        self._callback = callback

    def notify(self, permission: PermissionState) -> None:
        if self._callback is not None:
            self._callback(permission)

    async def acquire_stream(self) -> CaptureStream:
        reply = await self._bridge.request("REQUEST_MIC_ACCESS")
        if not reply.get("granted"):
            raise MicrophoneAccessDenied(str(reply.get("error") or "access refused"))
        return _ClientCaptureStream(self._bridge)


# ---------------------------------------------------------------------
# Recognition
# ---------------------------------------------------------------------

class ClientRecognitionEngine(RecognitionEngine):
    """Forwards recognizer callbacks to the listener of the open session."""

    def __init__(self, bridge: ClientCapabilityBridge) -> None:
        self._bridge = bridge
        self._listener: RecognitionListener | None = None

    @property
    def available(self) -> bool:
        return self._bridge.supports("recognition")

    async def start(self, *, language: str, listener: RecognitionListener) -> None:
        self._listener = listener
        self._bridge.send("START_RECOGNITION", lang=language)

    async def stop(self) -> None:
        if self._listener is not None:
            self._bridge.send("STOP_RECOGNITION")

    async def dispatch_start(self) -> None:
        if self._listener is not None:
            await self._listener.on_start()

    async def dispatch_result(self, text: str) -> None:
        if self._listener is not None:
            await self._listener.on_result(text)

    async def dispatch_error(self, code: str) -> None:
        if self._listener is not None:
            await self._listener.on_error(code)

    async def dispatch_end(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            await listener.on_end()


# ---------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------

class ClientMediaPlayer(MediaPlayer):
    def __init__(self, bridge: ClientCapabilityBridge) -> None:
        self._bridge = bridge

    @property
    def available(self) -> bool:
        return self._bridge.supports("media")

    async def play(self, source: str) -> None:
        reply = await self._bridge.request("PLAY_MEDIA", bounded=False, url=source)
        if reply.get("type") == "MEDIA_ERROR":
            raise PlaybackFailure(f"media error: {reply.get('error') or 'unknown'}")

    async def stop(self) -> None:
        self._bridge.send("STOP_MEDIA")


class ClientSpeechSynthesizer(SpeechSynthesizer):
    def __init__(self, bridge: ClientCapabilityBridge) -> None:
        self._bridge = bridge

    @property
    def available(self) -> bool:
        return self._bridge.supports("synthesis")

    async def speak(self, text: str, params: SynthesisParams) -> None:
        reply = await self._bridge.request(
            "SPEAK",
            bounded=False,
            text=text,
            lang=params.language,
            pitch=params.pitch,
            rate=params.rate,
            volume=params.volume,
        )
        if reply.get("type") == "SYNTHESIS_ERROR":
            raise PlaybackFailure(f"synthesis error: {reply.get('error') or 'unknown'}")

    async def cancel(self) -> None:
        self._bridge.send("CANCEL_SPEECH")
