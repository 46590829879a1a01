"""
Microphone permission capability contract.

This module defines the *interface only*: no caching, de-duplication or
orchestration decisions live here (see permission/monitor.py).

Key invariants:
- The provider reports platform facts; it never decides what happens next.
- A granted capture stream must always be released by the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from orchestrator.enums.permission import PermissionState


PermissionCallback = Callable[[PermissionState], None]


class CaptureStream(ABC):
    """Handle to an acquired microphone stream."""

    @abstractmethod
    def release(self) -> None:
        """Stop every track of the stream. Idempotent."""
        raise NotImplementedError


class PermissionProvider(ABC):
    """
    Abstract interface for the platform permission API.

    Implementations are responsible for:
    - Answering a one-shot permission query
    - Reporting platform-driven permission changes
    - Acquiring a capture stream (which prompts the user when needed)
    """

    @abstractmethod
    async def query(self) -> PermissionState:
        """
        Query the current microphone permission.

        Raises:
            NotImplementedError if the platform has no permission API.
        """
        raise NotImplementedError

    @abstractmethod
    def watch(self, callback: PermissionCallback) -> None:
        """
        Register the single platform change callback.

        The provider may call it with an unchanged state; de-duplication is
        the monitor's job.
        """
        raise NotImplementedError

    @abstractmethod
    async def acquire_stream(self) -> CaptureStream:
        """
        Acquire a microphone capture stream.

        Raises:
            MicrophoneAccessDenied (or any exception) when access is refused.
        """
        raise NotImplementedError
