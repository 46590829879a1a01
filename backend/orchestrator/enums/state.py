"""
Authoritative dialogue mode enumeration.

Rules:
- This enum defines ONLY the control-plane modes.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    Mutually exclusive modes of the dialogue loop.

    IDLE is the initial and universal resting mode. There is no terminal
    mode: the loop runs for the lifetime of the process.
    """

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    PROCESSING = "PROCESSING"
    SPEAKING = "SPEAKING"
