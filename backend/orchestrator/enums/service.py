"""
Service enumeration for run-id–versioned capability operations.

Rules:
- This enum identifies versioned operations only.
- It must NOT encode behavior or lifecycle rules.
- Reducer logic decides how operations are started, stopped, and cancelled.
"""

from __future__ import annotations

from enum import Enum


class Service(str, Enum):
    """
    Capability operations managed by the orchestrator.

    Each service:
    - Has at most one active run at a time
    - Is identified by a monotonically increasing run_id
    """

    CAPTURE = "CAPTURE"
    RESOLVE = "RESOLVE"
    PLAYBACK = "PLAYBACK"
