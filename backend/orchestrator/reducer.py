"""
Pure dialogue reducer.

(session, event) -> (new_session, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (mode, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from orchestrator.commands import (
    CancelPlayback,
    Command,
    LogEvent,
    PlayResponse,
    RequestAccess,
    ResolveUtterance,
    StartCapture,
    StopCapture,
)
from orchestrator.enums.error_category import ErrorCategory
from orchestrator.enums.permission import PermissionState
from orchestrator.enums.service import Service
from orchestrator.enums.state import State
from orchestrator.events import (
    AccessResolved,
    AppStarted,
    CaptureEnded,
    CaptureFailed,
    CapturePermissionDenied,
    CaptureRejected,
    CaptureStarted,
    Event,
    NoSpeech,
    PermissionChanged,
    PlaybackFinished,
    Recognized,
    ResponseResolved,
    ServiceEvent,
    StartTalk,
    StopSpeaking,
    StopTalk,
)
from orchestrator.run_ids import RunIds
from orchestrator.state_dataclass import Session
from orchestrator.values import Response, ResponseOrigin, Utterance
from constants import GREETING_AUDIO_PATH, GREETING_TEXT


# =============================================================================
# Invariants
# =============================================================================
# - Run IDs are bumped ONLY when a new operation starts
# - Stopping or cancelling never bumps run IDs; events for the stopped run
#   are dropped because the mode no longer accepts them
# - LISTENING and SPEAKING are only entered from IDLE / PROCESSING, so they
#   can never overlap
# - Only permission and capture errors are ever written to last_error

GREETING_RESPONSE = Response(
    text=GREETING_TEXT,
    origin=ResponseOrigin.BACKEND,
    audio_ref=GREETING_AUDIO_PATH,
)


# =============================================================================
# Small helpers
# =============================================================================

def _bump_run_id(active_runs: RunIds, service: Service) -> RunIds:
    if service is Service.CAPTURE:
        return replace(active_runs, capture=active_runs.capture + 1)
    if service is Service.RESOLVE:
        return replace(active_runs, resolve=active_runs.resolve + 1)
    if service is Service.PLAYBACK:
        return replace(active_runs, playback=active_runs.playback + 1)
    raise ValueError(service)


def _active_run_for(active_runs: RunIds, service: Service) -> int:
    if service is Service.CAPTURE:
        return active_runs.capture
    if service is Service.RESOLVE:
        return active_runs.resolve
    if service is Service.PLAYBACK:
        return active_runs.playback
    raise ValueError(service)


def _log(
    state: Session,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.mode.value,
            "permission": state.permission_state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "run_ids": {
                "capture": state.active_runs.capture,
                "resolve": state.active_runs.resolve,
                "playback": state.active_runs.playback,
            },
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _state_changed(
    prev: Session, new: Session, event: Event, source: str
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_state": prev.mode.value,
            "to_state": new.mode.value,
            "source": source,
        },
    )


def _ignore(
    state: Session, event: Event, reason: str
) -> tuple[Session, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _noop(
    state: Session, event: Event, decision: str
) -> tuple[Session, tuple[Command, ...]]:
    return state, (_log(state, event, decision),)


def _permission_transition_allowed(
    current: PermissionState,
    new: PermissionState,
    *,
    explicit_request: bool,
) -> bool:
    """
    Permission state machine:
    - unknown -> {granted, denied, prompt}
    - denied -> granted only through an explicit re-request
    - nothing returns to unknown
    - granted may regress on platform-driven revocation
    """
    if new is current or new is PermissionState.UNKNOWN:
        return False
    if current is PermissionState.DENIED and new is PermissionState.GRANTED:
        return explicit_request
    return True


def _return_to_idle(
    state: Session,
    event: Event,
    source: str,
    *,
    error: ErrorCategory | None = None,
    extra: tuple[Command, ...] = (),
    **changes: Any,
) -> tuple[Session, tuple[Command, ...]]:
    new_state = replace(state, mode=State.IDLE, **changes)
    cmds: tuple[Command, ...] = extra
    if error is not None:
        new_state = replace(new_state, last_error=error)
        cmds += (
            _log(new_state, event, "surface_error", {"category": error.value}),
        )
    return (
        new_state,
        _logs_last(cmds + (_state_changed(state, new_state, event, source),)),
    )


def _start_listening(
    state: Session, event: Event, source: str
) -> tuple[Session, tuple[Command, ...]]:
    new_runs = _bump_run_id(state.active_runs, Service.CAPTURE)
    new_state = replace(
        state,
        mode=State.LISTENING,
        active_runs=new_runs,
        last_transcript="",
        last_error=None,
    )
    return (
        new_state,
        _logs_last((
            _log(
                new_state,
                event,
                "start_capture",
                {"capture_run_id": new_runs.capture, "source": source},
            ),
            StartCapture(run_id=new_runs.capture),
            _state_changed(state, new_state, event, source),
        )),
    )


def _start_speaking(
    state: Session,
    event: Event,
    response: Response,
    source: str,
    **changes: Any,
) -> tuple[Session, tuple[Command, ...]]:
    new_runs = _bump_run_id(state.active_runs, Service.PLAYBACK)
    new_state = replace(
        state,
        mode=State.SPEAKING,
        active_runs=new_runs,
        last_response=response,
        **changes,
    )
    return (
        new_state,
        _logs_last((
            _log(
                new_state,
                event,
                "play_response",
                {
                    "playback_run_id": new_runs.playback,
                    "source": source,
                    **response.log_details(),
                },
            ),
            PlayResponse(run_id=new_runs.playback, response=response),
            _state_changed(state, new_state, event, source),
        )),
    )


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(
    state: Session, event: Event
) -> tuple[Session, tuple[Command, ...]]:
    """
    Pure reducer for the dialogue state machine.

    Given the current session and a single event, returns:
    - the next session
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (mode, event) pair is handled or explicitly ignored
    - Version-safe: ignores capability events with stale run IDs
    """
    # ------------------------------------------------------------------
    # Process lifecycle: one-time greeting on first entry to IDLE
    # ------------------------------------------------------------------
    if isinstance(event, AppStarted):
        if state.greeted:
            return _ignore(state, event, "greeting_already_played")
        if state.mode is not State.IDLE:
            return _ignore(state, event, "app_started_not_idle")
        return _start_speaking(
            state, event, GREETING_RESPONSE, "greeting", greeted=True
        )

    # ------------------------------------------------------------------
    # Permission (accepted in every mode)
    # ------------------------------------------------------------------
    if isinstance(event, PermissionChanged):
        if not _permission_transition_allowed(
            state.permission_state,
            event.permission,
            explicit_request=state.awaiting_access,
        ):
            return _ignore(
                state,
                event,
                f"permission_transition_rejected:"
                f"{state.permission_state.value}->{event.permission.value}",
            )
        new_state = replace(state, permission_state=event.permission)
        return new_state, (
            _log(
                new_state,
                event,
                "permission_changed",
                {
                    "from": state.permission_state.value,
                    "to": event.permission.value,
                },
            ),
        )

    if isinstance(event, AccessResolved):
        if not state.awaiting_access:
            return _ignore(state, event, "access_result_without_request")

        new_state = replace(
            state,
            permission_state=event.permission,
            awaiting_access=False,
        )

        if event.permission is PermissionState.GRANTED:
            if new_state.mode is not State.IDLE:
                return _noop(new_state, event, "access_granted_not_idle")
            s2, c2 = _start_listening(new_state, event, "access_granted")
            return s2, _logs_last(
                (_log(new_state, event, "access_granted"),) + c2
            )

        denied_state = replace(new_state, last_error=ErrorCategory.PERMISSION)
        return denied_state, (
            _log(denied_state, event, "access_denied"),
            _log(
                denied_state,
                event,
                "surface_error",
                {"category": ErrorCategory.PERMISSION.value},
            ),
        )

    # ------------------------------------------------------------------
    # Run-id gating for capability events
    # ------------------------------------------------------------------
    if isinstance(event, ServiceEvent):
        if event.run_id != _active_run_for(state.active_runs, event.service):
            return _ignore(
                state, event, f"{event.event_type.value.lower()}_stale"
            )

    # ============================
    # IDLE
    # ============================
    if state.mode is State.IDLE:
        if isinstance(event, StartTalk):
            if state.permission_state is PermissionState.GRANTED:
                return _start_listening(state, event, "start_talk")

            if state.awaiting_access:
                return _ignore(state, event, "access_request_in_flight")

            new_state = replace(state, awaiting_access=True, last_error=None)
            return (
                new_state,
                _logs_last((
                    _log(
                        new_state,
                        event,
                        "request_access",
                        {"permission": state.permission_state.value},
                    ),
                    RequestAccess(),
                )),
            )

        if isinstance(event, StopTalk):
            return _noop(state, event, "stop_talk_noop_in_idle")

        if isinstance(event, StopSpeaking):
            return _noop(state, event, "stop_speaking_noop_in_idle")

        return _ignore(state, event, "idle_unhandled")

    # ============================
    # LISTENING
    # ============================
    if state.mode is State.LISTENING:
        if isinstance(event, CaptureStarted):
            return _noop(state, event, "capture_started")

        if isinstance(event, Recognized):
            new_runs = _bump_run_id(state.active_runs, Service.RESOLVE)
            new_state = replace(
                state,
                mode=State.PROCESSING,
                active_runs=new_runs,
                last_transcript=event.text,
            )
            return (
                new_state,
                _logs_last((
                    _log(
                        new_state,
                        event,
                        "resolve_utterance",
                        {
                            "text_len": len(event.text),
                            "resolve_run_id": new_runs.resolve,
                        },
                    ),
                    ResolveUtterance(
                        run_id=new_runs.resolve,
                        utterance=Utterance(
                            text=event.text, timestamp_ms=event.ts_ms
                        ),
                    ),
                    _state_changed(
                        state, new_state, event, "recognized_to_processing"
                    ),
                )),
            )

        if isinstance(event, NoSpeech):
            return _return_to_idle(
                state, event, "no_speech", error=ErrorCategory.CAPTURE
            )

        if isinstance(event, CaptureFailed):
            return _return_to_idle(
                state,
                event,
                "capture_failed",
                error=ErrorCategory.CAPTURE,
                extra=(_log(state, event, "capture_failed", {"reason": event.reason}),),
            )

        if isinstance(event, CapturePermissionDenied):
            return _return_to_idle(
                state,
                event,
                "capture_permission_denied",
                error=ErrorCategory.PERMISSION,
                permission_state=PermissionState.DENIED,
            )

        if isinstance(event, CaptureRejected):
            # A double-tap before the previous session ended is not a user error
            return _return_to_idle(
                state,
                event,
                "capture_rejected",
                error=None if event.already_active else event.category,
                extra=(_log(state, event, "capture_rejected", {"reason": event.reason}),),
            )

        if isinstance(event, CaptureEnded):
            # Terminal events always precede CaptureEnded; a bare end still
            # has to release the loop.
            return _return_to_idle(
                state, event, "capture_ended_without_result",
                error=ErrorCategory.CAPTURE,
            )

        if isinstance(event, StopTalk):
            return _return_to_idle(
                state,
                event,
                "stop_talk",
                extra=(
                    _log(
                        state,
                        event,
                        "stop_capture",
                        {"capture_run_id": state.active_runs.capture},
                    ),
                    StopCapture(run_id=state.active_runs.capture),
                ),
            )

        if isinstance(event, StartTalk):
            return _ignore(state, event, "already_listening")

        if isinstance(event, StopSpeaking):
            return _noop(state, event, "stop_speaking_noop_in_listening")

        return _ignore(state, event, "listening_unhandled")

    # ============================
    # PROCESSING
    # ============================
    if state.mode is State.PROCESSING:
        if isinstance(event, ResponseResolved):
            return _start_speaking(
                state, event, event.response, "resolved_to_speaking"
            )

        if isinstance(event, StartTalk):
            return _ignore(state, event, "start_talk_disabled_while_processing")

        if isinstance(event, StopTalk):
            return _noop(state, event, "stop_talk_noop_in_processing")

        if isinstance(event, StopSpeaking):
            return _noop(state, event, "stop_speaking_noop_in_processing")

        return _ignore(state, event, "processing_unhandled")

    # ============================
    # SPEAKING
    # ============================
    if state.mode is State.SPEAKING:
        if isinstance(event, PlaybackFinished):
            return _return_to_idle(
                state,
                event,
                "playback_finished",
                extra=(
                    _log(state, event, "playback_finished", {"outcome": event.outcome}),
                ),
            )

        if isinstance(event, StopSpeaking):
            return _return_to_idle(
                state,
                event,
                "stop_speaking",
                extra=(
                    _log(
                        state,
                        event,
                        "cancel_playback",
                        {"playback_run_id": state.active_runs.playback},
                    ),
                    CancelPlayback(run_id=state.active_runs.playback),
                ),
            )

        if isinstance(event, StartTalk):
            return _ignore(state, event, "start_talk_disabled_while_speaking")

        if isinstance(event, StopTalk):
            return _noop(state, event, "stop_talk_noop_in_speaking")

        return _ignore(state, event, "speaking_unhandled")

    return _ignore(state, event, "unknown_state")
