"""
Session gateway.

Responsibilities:
- Owns VoiceSession lifecycle (one gateway == one connection == one process)
- Builds and wires the dialogue components to the Runtime
- Routes inbound JSON: user intents -> orchestrator events,
  capability replies -> ClientCapabilityBridge
- Publishes state snapshots back to the client

NOT responsible for:
- Executing commands (Runtime)
- Any state machine logic (reducer)
- Socket I/O (server/routes.py)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

from uuid import uuid4

import httpx

from adapters.capture.controller import CaptureController
from adapters.client.bridge import ClientCapabilityBridge
from adapters.permission.monitor import PermissionMonitor
from adapters.playback.controller import PlaybackController
from adapters.resolver.resolver import ResponseResolver
from orchestrator.enums.permission import PermissionState
from orchestrator.events import (
    AppStarted,
    Event,
    EventType,
    PermissionChanged,
    StartTalk,
    StopSpeaking,
    StopTalk,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import Session

from session.connection_status import ConnectionStatus
from session.error_presenter import present_error
from session.voice_session import VoiceSession

from constants import GREETING_AUDIO_PATH, PAYLOAD_PREVIEW_CHARS, TARGET_LANGUAGE
from observability.logger import log_event

if TYPE_CHECKING:
    from config import AppConfig

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


def state_message(state: Session) -> dict[str, Any]:
    """STATE control message for a published Session."""
    return {
        "type": "STATE",
        **state.snapshot(),
        "error_message": present_error(state.last_error),
    }


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to client, in order
    """
    outbound_json: tuple[dict[str, Any], ...] = ()


_INTENTS: dict[str, type[Event]] = {
    "START_TALK": StartTalk,
    "STOP_TALK": StopTalk,
    "STOP_SPEAKING": StopSpeaking,
}

_INTENT_EVENT_TYPES: dict[str, EventType] = {
    "START_TALK": EventType.START_TALK,
    "STOP_TALK": EventType.STOP_TALK,
    "STOP_SPEAKING": EventType.STOP_SPEAKING,
}


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """One gateway == one voice session."""

    def __init__(
        self,
        *,
        config: AppConfig,
        http_client: httpx.AsyncClient,
    ) -> None:
        self._config = config
        self._http_client = http_client
        self.session: VoiceSession | None = None
        self._unsubscribe_state: Any = None

    async def on_ws_connect(self) -> GatewayResult:
        """Called when a WebSocket connection is established."""
        session_id = _new_session_id()

        self.session = VoiceSession(session_id=session_id)
        self.session.connection_status = ConnectionStatus.UP

        runtime = Runtime(
            initial_state=Session(),
            context=RuntimeExecutionContext(session=self.session),
        )

        bridge = ClientCapabilityBridge(
            send=self.session.enqueue_control,
            session_id=session_id,
        )
        self.session.attach_bridge(bridge)

        permission_monitor = PermissionMonitor(
            provider=bridge.permissions,
            session_id=session_id,
        )
        permission_monitor.subscribe(self._on_permission_changed)

        self.session.attach_components(
            permission_monitor=permission_monitor,
            capture_controller=CaptureController(
                emit_event=runtime.handle_event,
                engine=bridge.recognition,
                session_id=session_id,
            ),
            resolver=ResponseResolver(
                client=self._http_client,
                base_url=self._config.backend_base_url,
                timeout_s=self._config.resolve_timeout_s,
                session_id=session_id,
            ),
            playback_controller=PlaybackController(
                media=bridge.media,
                synthesizer=bridge.synthesis,
                session_id=session_id,
            ),
        )

        # Attach runtime (must be AFTER components)
        self.session.attach_runtime(runtime)
        self._unsubscribe_state = runtime.subscribe(self._publish_state)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_STARTED",
            **self.session.log_context(),
        })

        init_msg: dict[str, Any] = {
            "type": "SESSION_INIT",
            "session_id": session_id,
            "config": {
                "language": TARGET_LANGUAGE,
                "greeting_audio": GREETING_AUDIO_PATH,
            },
            "state": state_message(runtime.state),
        }

        return GatewayResult(outbound_json=(init_msg,) + self._drain_control_out())

    async def on_ws_disconnect(self, reason: str | None = None) -> None:
        """Called when the WebSocket disconnects."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return

        if self._unsubscribe_state is not None:
            self._unsubscribe_state()
            self._unsubscribe_state = None

        if self.session.bridge is not None:
            self.session.bridge.close()

        runtime = self.session.runtime
        if runtime is not None:
            await runtime.shutdown()

        self.session.connection_status = ConnectionStatus.DOWN

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_ENDED",
            "reason": reason,
            **self.session.log_context(),
        })

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route one inbound JSON message."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:PAYLOAD_PREVIEW_CHARS],
            })
            return GatewayResult()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "session_id": self.session.session_id,
                "error": str(e),
                "payload_preview": payload[:PAYLOAD_PREVIEW_CHARS],
            })
            return GatewayResult()

        if not isinstance(data, dict):
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_NOT_OBJECT",
                "session_id": self.session.session_id,
                "payload_preview": payload[:PAYLOAD_PREVIEW_CHARS],
            })
            return GatewayResult()

        msg_type = data.get("type")

        if msg_type in _INTENTS:
            ts_ms = data.get("ts_ms")
            event = _INTENTS[msg_type](
                event_type=_INTENT_EVENT_TYPES[msg_type],
                ts_ms=ts_ms if isinstance(ts_ms, int) else _now_ms(),
            )
            await self._dispatch(event)

        elif msg_type == "CLIENT_READY":
            await self._on_client_ready(data)

        else:
            assert self.session.bridge is not None
            handled = await self.session.bridge.handle_client_message(data)
            if not handled:
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "UNKNOWN_MESSAGE_TYPE",
                    "msg_type": msg_type,
                    "session_id": self.session.session_id,
                })

        return GatewayResult(outbound_json=self._drain_control_out())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _on_client_ready(self, data: dict[str, Any]) -> None:
        assert self.session is not None
        assert self.session.bridge is not None
        assert self.session.permission_monitor is not None

        self.session.bridge.apply_client_ready(data)
        await self.session.permission_monitor.refresh()

        await self._dispatch(
            AppStarted(
                event_type=EventType.APP_STARTED,
                ts_ms=_now_ms(),
                session_id=self.session.session_id,
            )
        )

    async def _on_permission_changed(self, permission: PermissionState) -> None:
        await self._dispatch(
            PermissionChanged(
                event_type=EventType.PERMISSION_CHANGED,
                ts_ms=_now_ms(),
                permission=permission,
            )
        )

    def _publish_state(self, state: Session) -> None:
        if self.session is not None:
            self.session.enqueue_control(state_message(state))

    async def _dispatch(self, event: Event) -> None:
        """Forward event into runtime."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "DISPATCH_WITHOUT_SESSION",
                "dropped_event": event.event_type.value,
            })
            return

        runtime = self.session.runtime
        assert runtime is not None, "Runtime must exist before dispatch"

        await runtime.handle_event(event)

    def _drain_control_out(self) -> tuple[dict[str, Any], ...]:
        if self.session is None:
            return ()
        return self.session.drain_control()
