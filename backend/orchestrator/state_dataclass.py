"""
Authoritative dialogue session state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior beyond read-only projections.
- Replaced (never mutated) by the reducer; owned by the Runtime.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from orchestrator.enums.error_category import ErrorCategory
from orchestrator.enums.permission import PermissionState
from orchestrator.enums.state import State
from orchestrator.run_ids import RunIds
from orchestrator.values import Response


# =============================================================================
# Session
# =============================================================================

@dataclass(frozen=True)
class Session:
    """Immutable snapshot of all orchestrator-owned dialogue state."""

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    mode: State = State.IDLE

    # ------------------------------------------------------------------
    # Last turn
    # ------------------------------------------------------------------
    last_transcript: str = ""
    last_response: Response | None = None

    # ------------------------------------------------------------------
    # Error handling (user-visible categories only)
    # ------------------------------------------------------------------
    last_error: ErrorCategory | None = None

    # ------------------------------------------------------------------
    # Permission
    # ------------------------------------------------------------------
    permission_state: PermissionState = PermissionState.UNKNOWN

    # True while an explicit access request is in flight
    awaiting_access: bool = False

    # ------------------------------------------------------------------
    # Greeting (fires once per process lifetime)
    # ------------------------------------------------------------------
    greeted: bool = False

    # ------------------------------------------------------------------
    # Run/version tracking
    # ------------------------------------------------------------------
    active_runs: RunIds = field(default_factory=RunIds)

    def snapshot(self) -> dict[str, Any]:
        """Serializable projection published to presentation subscribers."""
        response = self.last_response
        return {
            "mode": self.mode.value,
            "transcript": self.last_transcript,
            "response": response.text if response is not None else "",
            "response_origin": response.origin.value if response is not None else None,
            "error": self.last_error.value if self.last_error is not None else None,
            "permission": self.permission_state.value,
        }
