"""
Connection status tracking for voice sessions.

Connection lifecycle is tracked separately from the dialogue mode.
A session is created UP and goes DOWN exactly once, on disconnect.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    WebSocket lifecycle status.

    Independent of the dialogue State enum: IDLE can occur with either value.
    """
    DOWN = "DOWN"  # Not connected (or already torn down)
    UP = "UP"      # Active WebSocket connection
