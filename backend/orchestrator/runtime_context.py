"""
Runtime execution context.

Provides Runtime with live access to session-owned dialogue components
needed for command execution and side effects.

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from orchestrator.enums.permission import PermissionState
from orchestrator.values import Response, Utterance

if TYPE_CHECKING:
    from adapters.playback.controller import PlaybackOutcome
    from session.voice_session import VoiceSession


# ---------------------------------------------------------------------
# Component Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class PermissionMonitorProtocol(Protocol):
    def query(self) -> PermissionState: ...
    async def request_access(self) -> PermissionState: ...


@runtime_checkable
class CaptureControllerProtocol(Protocol):
    async def start(self, run_id: int) -> None: ...
    async def stop(self) -> None: ...


@runtime_checkable
class ResponseResolverProtocol(Protocol):
    async def resolve(self, utterance: Utterance) -> Response:
        """Must never raise."""


@runtime_checkable
class PlaybackControllerProtocol(Protocol):
    async def play(self, response: Response) -> PlaybackOutcome:
        """Must always complete, even when every playback path fails."""

    async def cancel(self) -> None: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    This object provides *live views* into session-owned components
    so Runtime does not need to synchronize or cache anything.

    Runtime is allowed to:
    - Call components

    Runtime is NOT allowed to:
    - Mutate session containers directly
    - Perform orchestration decisions
    """

    def __init__(self, session: VoiceSession) -> None:
        self.session = session

    # ----------------------------
    # Session metadata
    # ----------------------------

    @property
    def session_id(self) -> str:
        return self.session.session_id

    # ----------------------------
    # Components
    # ----------------------------

    @property
    def permission_monitor(self) -> PermissionMonitorProtocol | None:
        return self.session.permission_monitor

    @property
    def capture_controller(self) -> CaptureControllerProtocol | None:
        return self.session.capture_controller

    @property
    def resolver(self) -> ResponseResolverProtocol | None:
        return self.session.resolver

    @property
    def playback_controller(self) -> PlaybackControllerProtocol | None:
        return self.session.playback_controller
