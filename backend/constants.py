"""
BEHAVIOUR-AS-CONSTANTS
----------------------
Single source of truth for all fixed behavioural values of the dialogue loop.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Persona / language
# =============================================================================

TARGET_LANGUAGE: Final[str] = "mr-IN"  # Marathi

# =============================================================================
# Speech synthesis parameters (persona voice)
# =============================================================================

SYNTHESIS_PITCH: Final[float] = 1.5  # elevated pitch
SYNTHESIS_RATE: Final[float] = 0.9
SYNTHESIS_VOLUME: Final[float] = 1.0

# =============================================================================
# Remote text-processing service
# =============================================================================

PROCESS_TEXT_PATH: Final[str] = "/api/process-text"
DEFAULT_BACKEND_BASE_URL: Final[str] = "http://127.0.0.1:5000"

# No upstream bound exists; expiry is handled exactly like a transport failure.
RESOLVE_TIMEOUT_S: Final[float] = 10.0

# =============================================================================
# Greeting
# =============================================================================

GREETING_AUDIO_PATH: Final[str] = "/shevanta_greeting.wav"
GREETING_TEXT: Final[str] = (
    "नमस्कार! मी शेवंता आहे. तुम्ही माझ्याशी बोलू शकता. मी तुमच्या आवाजाला उत्तर देईन."
)

# =============================================================================
# Recognition error vocabulary (platform codes)
# =============================================================================

RECOGNITION_NO_SPEECH_CODES: Final[Tuple[str, ...]] = ("no-speech", "aborted")
RECOGNITION_NOT_ALLOWED_CODES: Final[Tuple[str, ...]] = (
    "not-allowed",
    "service-not-allowed",
)

# =============================================================================
# Client transport
# =============================================================================

CLIENT_REQUEST_TIMEOUT_S: Final[float] = 30.0
PAYLOAD_PREVIEW_CHARS: Final[int] = 100
