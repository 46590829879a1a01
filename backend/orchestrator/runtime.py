"""
Runtime execution shell for a single dialogue session.

Responsibilities:
- Own the authoritative Session state
- Serialize every event through one ordered channel into the pure reducer
- Execute commands with side effects (permission, capture, resolve, playback)
- Run long operations as background tasks that report back as events
- Publish state transitions to subscribers

Non-responsibilities:
- No orchestration decisions (reducer only)
- No transport concerns (WebSocket, JSON protocol)
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import TYPE_CHECKING, Awaitable, Callable

from orchestrator.reducer import reduce
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
from orchestrator.enums.service import Service
from orchestrator.errors import CaptureAlreadyActive, CaptureError
from orchestrator.events import (
    AccessResolved,
    CaptureRejected,
    Event,
    EventType,
    PlaybackFinished,
    ResponseResolved,
)
from orchestrator.state_dataclass import Session
from orchestrator.values import Response, Utterance

from observability.logger import log_event


if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


StateListener = Callable[[Session], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for a single dialogue session.

    Responsibilities:
    - Own the authoritative Session
    - Act as the universal event sink for the session
      (gateway intents, capability callbacks, background completions)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects

    Architectural role:
    Runtime is the bridge between the pure orchestration layer
    (reducer + immutable Session) and the imperative world
    (components, logging, IO, time).

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - Events are processed strictly in arrival order; events raised while
      a command executes are queued, never processed re-entrantly
    - All side effects occur *after* state has been updated
    - Runtime never performs orchestration logic itself
    """

    def __init__(
        self,
        *,
        initial_state: Session,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context

        # Single ordered event channel
        self._inbox: deque[Event] = deque()
        self._draining = False

        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> Session:
        """
        Return the current immutable Session.

        This state is the single source of truth for the dialogue's
        control flow. Consumers must never modify it; it is only replaced
        internally by Runtime via the reducer.
        """
        return self._state

    # ------------------------------------------------------------------
    # Publish / subscribe
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener called with every new Session after a transition.

        Returns an unsubscribe callable.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self, state: Session) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "STATE_LISTENER_ERROR",
                    "session_id": self._ctx.session_id,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })

    # ------------------------------------------------------------------
    # Event channel
    # ------------------------------------------------------------------

    async def handle_event(self, event: Event) -> None:
        """
        Enqueue an event and drain the channel.

        This method is the *only* entry point for events affecting
        Session state. All event sources converge here:
        - Gateway (user intents, process start)
        - PermissionMonitor (platform permission changes)
        - CaptureController (recognition events)
        - Background tasks (access, resolution, playback completion)

        If the channel is already being drained (the call originates from
        inside command execution) the event is queued and this call returns
        immediately; the outer drain processes it next.
        """
        self._inbox.append(event)
        if self._draining:
            return

        self._draining = True
        try:
            while self._inbox:
                await self._process(self._inbox.popleft())
        finally:
            self._draining = False

    async def _process(self, event: Event) -> None:
        prev_state = self._state
        new_state, commands = reduce(prev_state, event)
        self._state = new_state

        if new_state != prev_state:
            self._publish(new_state)

        for cmd in commands:
            await self._execute_command(cmd)

    # ------------------------------------------------------------------
    # Background operations
    # ------------------------------------------------------------------

    def _spawn(self, coro: Awaitable[None]) -> None:
        task: asyncio.Task[None] = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def settle(self) -> None:
        """
        Wait until no background operation is outstanding.

        Operations spawned while waiting are awaited as well.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """
        Clean shutdown of runtime.

        Halts any active playback, cancels in-flight background tasks and
        waits for them to finish. Called by gateway on disconnect.
        """
        playback = self._ctx.playback_controller
        if playback is not None:
            await playback.cancel()

        for task in list(self._tasks):
            task.cancel()

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            })

        elif isinstance(cmd, RequestAccess):
            assert self._ctx.permission_monitor is not None, "PermissionMonitor missing"
            self._spawn(self._request_access())

        elif isinstance(cmd, StartCapture):
            assert self._ctx.capture_controller is not None, "CaptureController missing"
            try:
                await self._ctx.capture_controller.start(cmd.run_id)
            except CaptureError as exc:
                await self.handle_event(
                    CaptureRejected(
                        event_type=EventType.CAPTURE_REJECTED,
                        ts_ms=_now_ms(),
                        service=Service.CAPTURE,
                        run_id=cmd.run_id,
                        category=exc.category,
                        reason=f"{type(exc).__name__}: {exc}",
                        already_active=isinstance(exc, CaptureAlreadyActive),
                    )
                )
                return

            log_event({
                "ts_ms": _now_ms(),
                "event_type": "capture_start_executed",
                "session_id": self._ctx.session_id,
                "capture_run_id": cmd.run_id,
            })

        elif isinstance(cmd, StopCapture):
            assert self._ctx.capture_controller is not None, "CaptureController missing"
            await self._ctx.capture_controller.stop()
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "capture_stop_executed",
                "session_id": self._ctx.session_id,
                "capture_run_id": cmd.run_id,
            })

        elif isinstance(cmd, ResolveUtterance):
            assert self._ctx.resolver is not None, "ResponseResolver missing"
            self._spawn(self._resolve(cmd.run_id, cmd.utterance))

        elif isinstance(cmd, PlayResponse):
            assert self._ctx.playback_controller is not None, "PlaybackController missing"
            self._spawn(self._play(cmd.run_id, cmd.response))

        elif isinstance(cmd, CancelPlayback):
            assert self._ctx.playback_controller is not None, "PlaybackController missing"
            await self._ctx.playback_controller.cancel()
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "playback_cancel_executed",
                "session_id": self._ctx.session_id,
                "playback_run_id": cmd.run_id,
            })

        else:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "COMMAND_NOT_IMPLEMENTED",
                "session_id": self._ctx.session_id,
                "command_type": type(cmd).__name__,
            })

    async def _request_access(self) -> None:
        monitor = self._ctx.permission_monitor
        assert monitor is not None
        permission = await monitor.request_access()
        await self.handle_event(
            AccessResolved(
                event_type=EventType.ACCESS_RESOLVED,
                ts_ms=_now_ms(),
                permission=permission,
            )
        )

    async def _resolve(self, run_id: int, utterance: Utterance) -> None:
        resolver = self._ctx.resolver
        assert resolver is not None
        response = await resolver.resolve(utterance)
        await self.handle_event(
            ResponseResolved(
                event_type=EventType.RESPONSE_RESOLVED,
                ts_ms=_now_ms(),
                service=Service.RESOLVE,
                run_id=run_id,
                response=response,
            )
        )

    async def _play(self, run_id: int, response: Response) -> None:
        playback = self._ctx.playback_controller
        assert playback is not None
        outcome = await playback.play(response)
        await self.handle_event(
            PlaybackFinished(
                event_type=EventType.PLAYBACK_FINISHED,
                ts_ms=_now_ms(),
                service=Service.PLAYBACK,
                run_id=run_id,
                outcome=outcome.value,
            )
        )
