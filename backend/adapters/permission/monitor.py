"""
PermissionMonitor: cached, de-duplicated view of microphone permission.

Responsibilities:
- Query the platform once and cache the result
- Forward real permission changes to subscribers (no duplicates)
- Negotiate access by acquiring and immediately releasing a capture stream

Non-responsibilities:
- No decision about whether capture may start (reducer only)
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from adapters.permission.base import PermissionProvider
from orchestrator.enums.permission import PermissionState

from observability.logger import log_event


PermissionHandler = Callable[[PermissionState], Awaitable[None]]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class PermissionMonitor:
    """
    Wraps a PermissionProvider.

    Guarantees:
    - query() never touches the platform; it returns the cached state
    - each subscriber is called at most once per actual change
    - request_access() never raises
    """

    def __init__(
        self,
        *,
        provider: PermissionProvider | None,
        session_id: str | None = None,
    ) -> None:
        self._provider = provider
        self._session_id = session_id
        self._state = PermissionState.UNKNOWN
        self._handlers: list[PermissionHandler] = []
        self._watching = False
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def query(self) -> PermissionState:
        """Cached permission state; UNKNOWN if never queried."""
        return self._state

    def subscribe(self, handler: PermissionHandler) -> None:
        """Register an async handler called on every actual change."""
        self._handlers.append(handler)

    async def refresh(self) -> PermissionState:
        """
        Query the platform and start watching for changes.

        A platform without a permission API leaves the state UNKNOWN.
        """
        if self._provider is None:
            return self._state

        try:
            state = await self._provider.query()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "permission_query_unsupported",
                "session_id": self._session_id,
                "error": f"{type(exc).__name__}: {exc}",
            })
            return self._state

        if not self._watching:
            self._provider.watch(self._on_platform_change)
            self._watching = True

        await self._apply(state, source="query")
        return self._state

    async def request_access(self) -> PermissionState:
        """
        Acquire a capture stream and release it immediately.

        Resolves to GRANTED or DENIED. Denial is a normal outcome.
        """
        if self._provider is None:
            outcome = PermissionState.DENIED
        else:
            stream = None
            try:
                stream = await self._provider.acquire_stream()
                outcome = PermissionState.GRANTED
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "microphone_access_denied",
                    "session_id": self._session_id,
                    "error": f"{type(exc).__name__}: {exc}",
                })
                outcome = PermissionState.DENIED
            finally:
                if stream is not None:
                    stream.release()

        await self._apply(outcome, source="request_access")
        return outcome

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_platform_change(self, state: PermissionState) -> None:
        """Platform callback (sync); hop onto the loop to notify handlers."""
        task: asyncio.Task[None] = asyncio.ensure_future(self._apply(state, source="platform"))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled() or task.exception() is None:
            return
        exc = task.exception()
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "permission_handler_error",
            "session_id": self._session_id,
            "exception": type(exc).__name__,
            "message": str(exc),
        })

    async def _apply(self, state: PermissionState, *, source: str) -> None:
        if state is self._state:
            return

        previous = self._state
        self._state = state

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "permission_state_observed",
            "session_id": self._session_id,
            "from": previous.value,
            "to": state.value,
            "source": source,
        })

        for handler in list(self._handlers):
            await handler(state)
