"""
Exception taxonomy for the dialogue components.

Exceptions are raised at component seams (controllers, resolver) and are
converted into domain events by the runtime. None of them is fatal.
"""

from __future__ import annotations

from orchestrator.enums.error_category import ErrorCategory


class DialogueError(Exception):
    """Base class for all dialogue component errors."""

    category: ErrorCategory = ErrorCategory.CAPTURE


# ---------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------

class CaptureError(DialogueError):
    """A capture session could not be started or failed."""

    category = ErrorCategory.CAPTURE


class CaptureAlreadyActive(CaptureError):
    """start() called while a capture session is still open."""


class CaptureUnsupported(CaptureError):
    """The platform offers no speech-recognition capability."""

    category = ErrorCategory.CAPTURE_UNSUPPORTED


class CaptureStartFailed(CaptureError):
    """The recognition engine refused to start."""


# ---------------------------------------------------------------------
# Resolution (always recovered locally)
# ---------------------------------------------------------------------

class ResolutionFailure(DialogueError):
    """Remote resolution was unreachable, rejected, or malformed."""

    category = ErrorCategory.RESOLUTION


# ---------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------

class PlaybackFailure(DialogueError):
    """A media asset or synthesis utterance could not be played."""

    category = ErrorCategory.PLAYBACK


class PlaybackBusy(DialogueError):
    """play() called while another playback path is active."""

    category = ErrorCategory.PLAYBACK


# ---------------------------------------------------------------------
# Permission
# ---------------------------------------------------------------------

class MicrophoneAccessDenied(DialogueError):
    """The platform refused to hand out a capture stream."""

    category = ErrorCategory.PERMISSION
