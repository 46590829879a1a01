"""
User-facing text for surfaced error categories.

Only PERMISSION and capture categories ever reach Session.last_error;
RESOLUTION and PLAYBACK are recovered silently and have no message.
"""

from __future__ import annotations

from typing import Final, Mapping

from orchestrator.enums.error_category import ErrorCategory


ERROR_MESSAGES: Final[Mapping[ErrorCategory, str]] = {
    ErrorCategory.PERMISSION: (
        "माइक्रोफोनची परवानगी आवश्यक आहे. कृपया ब्राउझर सेटिंग्जमध्ये परवानगी द्या."
    ),
    ErrorCategory.CAPTURE_UNSUPPORTED: "तुमचा ब्राउझर आवाज ओळखण्याचे समर्थन करत नाही.",
    ErrorCategory.CAPTURE: "आवाज ओळखण्यात समस्या आली. कृपया पुन्हा प्रयत्न करा.",
}


def present_error(category: ErrorCategory | None) -> str | None:
    """Message for category, or None when nothing should be shown."""
    if category is None:
        return None
    return ERROR_MESSAGES.get(category)
