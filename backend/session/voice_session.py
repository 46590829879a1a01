"""
Voice session container.

- Owns the dialogue components for one connection
- Owns connection status (mutable, gateway-controlled)
- Owns the outbound control queue
- Owned and mutated by SessionGateway
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from session.connection_status import ConnectionStatus

if TYPE_CHECKING:
    from adapters.capture.controller import CaptureController
    from adapters.client.bridge import ClientCapabilityBridge
    from adapters.permission.monitor import PermissionMonitor
    from adapters.playback.controller import PlaybackController
    from adapters.resolver.resolver import ResponseResolver
    from orchestrator.runtime import Runtime


# ---------------------------------------------------------------------
# VoiceSession
# ---------------------------------------------------------------------


@dataclass
class VoiceSession:
    """Mutable runtime container for a single voice session."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    connection_status: ConnectionStatus = ConnectionStatus.DOWN

    # ------------------------------------------------------------------
    # Runtime (executes commands + owns authoritative state)
    # ------------------------------------------------------------------

    runtime: Runtime | None = None

    # ------------------------------------------------------------------
    # Platform capabilities (client-backed)
    # ------------------------------------------------------------------

    bridge: ClientCapabilityBridge | None = None

    # ------------------------------------------------------------------
    # Dialogue components
    # ------------------------------------------------------------------

    permission_monitor: PermissionMonitor | None = None
    capture_controller: CaptureController | None = None
    resolver: ResponseResolver | None = None
    playback_controller: PlaybackController | None = None

    def __post_init__(self) -> None:
        self._control_out: deque[dict[str, Any]] = deque()
        self._control_ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Wiring helpers (called by SessionGateway)
    # ------------------------------------------------------------------

    def attach_bridge(self, bridge: ClientCapabilityBridge) -> None:
        self.bridge = bridge

    def attach_components(
        self,
        *,
        permission_monitor: PermissionMonitor,
        capture_controller: CaptureController,
        resolver: ResponseResolver,
        playback_controller: PlaybackController,
    ) -> None:
        """Attach the four dialogue components."""
        self.permission_monitor = permission_monitor
        self.capture_controller = capture_controller
        self.resolver = resolver
        self.playback_controller = playback_controller

    def attach_runtime(self, runtime: Runtime) -> None:
        """
        Attach the runtime executor.

        Must be called after components are attached.
        """
        self.runtime = runtime

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "connection_status": self.connection_status.value,
        }

    # ------------------------------------------------------------------
    # Outbound control queue
    # ------------------------------------------------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """
        Enqueue a control message for delivery to the client.

        Messages are buffered in FIFO order and later retrieved via
        drain_control(). Never blocks.
        """
        self._control_out.append(msg)
        self._control_ready.set()

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Atomically drain all pending control messages.

        Returns:
            A FIFO-ordered tuple of control messages. Returns an empty
            tuple if no messages are pending.
        """
        self._control_ready.clear()
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out

    async def wait_control(self) -> None:
        """Block until at least one control message has been enqueued."""
        await self._control_ready.wait()
