"""
Unified event definitions for the dialogue reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Capability events (capture, resolution, playback) carry the run_id of the
operation that produced them so the reducer can discard stale ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.enums.error_category import ErrorCategory
from orchestrator.enums.permission import PermissionState
from orchestrator.enums.service import Service
from orchestrator.values import Response


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Process lifecycle
    # ------------------------------------------------------------------
    APP_STARTED = "APP_STARTED"

    # ------------------------------------------------------------------
    # User intents
    # ------------------------------------------------------------------
    START_TALK = "START_TALK"
    STOP_TALK = "STOP_TALK"
    STOP_SPEAKING = "STOP_SPEAKING"

    # ------------------------------------------------------------------
    # Permission
    # ------------------------------------------------------------------
    PERMISSION_CHANGED = "PERMISSION_CHANGED"
    ACCESS_RESOLVED = "ACCESS_RESOLVED"

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    CAPTURE_STARTED = "CAPTURE_STARTED"
    RECOGNIZED = "RECOGNIZED"
    NO_SPEECH = "NO_SPEECH"
    CAPTURE_PERMISSION_DENIED = "CAPTURE_PERMISSION_DENIED"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    CAPTURE_ENDED = "CAPTURE_ENDED"
    CAPTURE_REJECTED = "CAPTURE_REJECTED"

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    RESPONSE_RESOLVED = "RESPONSE_RESOLVED"

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------
    PLAYBACK_FINISHED = "PLAYBACK_FINISHED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Service-Scoped Events
# =============================================================================

@dataclass(frozen=True)
class ServiceEvent(Event):
    """
    Base class for events scoped to a versioned capability operation.

    The reducer MUST ignore events whose run_id does not match the
    currently active run for that service.
    """

    service: Service
    run_id: int


# =============================================================================
# Process Lifecycle
# =============================================================================

@dataclass(frozen=True)
class AppStarted(Event):
    """The client process is ready; first entry into the resting mode."""
    session_id: str


# =============================================================================
# User Intents
# =============================================================================

@dataclass(frozen=True)
class StartTalk(Event):
    """User asked to start talking."""


@dataclass(frozen=True)
class StopTalk(Event):
    """User asked to stop the current capture."""


@dataclass(frozen=True)
class StopSpeaking(Event):
    """User asked to silence the current playback."""


# =============================================================================
# Permission Events
# =============================================================================

@dataclass(frozen=True)
class PermissionChanged(Event):
    """Platform reported a microphone permission change."""
    permission: PermissionState


@dataclass(frozen=True)
class AccessResolved(Event):
    """An explicit access request settled (GRANTED or DENIED)."""
    permission: PermissionState


# =============================================================================
# Capture Events
# =============================================================================

@dataclass(frozen=True)
class CaptureStarted(ServiceEvent):
    """Recognition engine began listening."""


@dataclass(frozen=True)
class Recognized(ServiceEvent):
    """
    Terminal: final recognition result.

    At most one per capture run.
    """
    text: str


@dataclass(frozen=True)
class NoSpeech(ServiceEvent):
    """Terminal: the session ended without usable speech."""


@dataclass(frozen=True)
class CapturePermissionDenied(ServiceEvent):
    """Terminal: the platform refused microphone access mid-session."""


@dataclass(frozen=True)
class CaptureFailed(ServiceEvent):
    """Terminal: generic recognition failure."""
    reason: str


@dataclass(frozen=True)
class CaptureEnded(ServiceEvent):
    """Recognition session closed. Always the last event of a run."""


@dataclass(frozen=True)
class CaptureRejected(ServiceEvent):
    """
    CaptureController.start() raised before any session opened.

    Emitted by the runtime, not by the engine. `already_active` marks a
    start that raced the previous session's teardown.
    """
    category: ErrorCategory
    reason: str
    already_active: bool = False


# =============================================================================
# Resolution Events
# =============================================================================

@dataclass(frozen=True)
class ResponseResolved(ServiceEvent):
    """Resolver settled. Resolution never fails, so this always arrives."""
    response: Response


# =============================================================================
# Playback Events
# =============================================================================

@dataclass(frozen=True)
class PlaybackFinished(ServiceEvent):
    """
    Playback completion signal.

    outcome is a PlaybackOutcome value (media, synthesized, cancelled,
    silent); the reducer treats all outcomes alike.
    """
    outcome: str
