"""
Local keyword fallback for utterance resolution.

Used whenever the remote text-processing service cannot produce a reply.
Rules are checked in order; the first rule with a keyword contained in the
lower-cased transcript wins. The last rule always matches.
"""

from __future__ import annotations

from typing import Final, Tuple


FallbackRule = Tuple[Tuple[str, ...], str]

CATCH_ALL_REPLY: Final[str] = "मला समजले. तुम्ही आणखी काही विचारू शकता."

FALLBACK_RULES: Final[Tuple[FallbackRule, ...]] = (
    (
        ("नमस्कार", "हॅलो", "hello"),
        "नमस्कार! मी शेवंता आहे. तुम्हाला कसे मदत करू शकते?",
    ),
    (
        ("तुझे नाव", "name"),
        "माझे नाव शेवंता आहे. मी एक आवाज सहाय्यक आहे.",
    ),
    (
        ("कसे आहेस", "how are you"),
        "मी ठीक आहे, धन्यवाद! तुम्ही कसे आहात?",
    ),
    (
        ("धन्यवाद", "thank you"),
        "तुमचे स्वागत आहे! मला तुमची मदत करून आनंद झाला.",
    ),
    (
        ("बाय", "bye"),
        "अलविदा! पुन्हा भेटूया!",
    ),
    # Catch-all
    ((), CATCH_ALL_REPLY),
)


def local_fallback(text: str) -> str:
    """Return the canned reply for text. Never empty."""
    lowered = text.lower()
    for keywords, reply in FALLBACK_RULES:
        if not keywords:
            return reply
        if any(keyword in lowered for keyword in keywords):
            return reply
    return CATCH_ALL_REPLY
