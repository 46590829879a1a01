"""
Side-effect command definitions for the dialogue orchestrator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.values import Response, Utterance

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Permission
    REQUEST_ACCESS = "REQUEST_ACCESS"

    # Capture
    START_CAPTURE = "START_CAPTURE"
    STOP_CAPTURE = "STOP_CAPTURE"

    # Resolution
    RESOLVE_UTTERANCE = "RESOLVE_UTTERANCE"

    # Playback
    PLAY_RESPONSE = "PLAY_RESPONSE"
    CANCEL_PLAYBACK = "CANCEL_PLAYBACK"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Permission Commands
# =============================================================================

@dataclass(frozen=True)
class RequestAccess(Command):
    """
    Ask the platform for microphone access.

    The runtime must answer with exactly one AccessResolved event.
    """
    command_type: CommandType = CommandType.REQUEST_ACCESS


# =============================================================================
# Capture Commands
# =============================================================================

@dataclass(frozen=True)
class StartCapture(Command):
    """Request to open a single-utterance capture session."""
    run_id: int
    command_type: CommandType = CommandType.START_CAPTURE


@dataclass(frozen=True)
class StopCapture(Command):
    """Request graceful termination of the active capture session."""
    run_id: int
    command_type: CommandType = CommandType.STOP_CAPTURE


# =============================================================================
# Resolution Commands
# =============================================================================

@dataclass(frozen=True)
class ResolveUtterance(Command):
    """
    Request resolution of an utterance into a Response.

    The runtime must answer with exactly one ResponseResolved event.
    """
    run_id: int
    utterance: Utterance
    command_type: CommandType = CommandType.RESOLVE_UTTERANCE


# =============================================================================
# Playback Commands
# =============================================================================

@dataclass(frozen=True)
class PlayResponse(Command):
    """
    Request playback of a Response.

    The runtime must answer with exactly one PlaybackFinished event.
    """
    run_id: int
    response: Response
    command_type: CommandType = CommandType.PLAY_RESPONSE


@dataclass(frozen=True)
class CancelPlayback(Command):
    """Request immediate halt of the active playback path."""
    run_id: int
    command_type: CommandType = CommandType.CANCEL_PLAYBACK


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
