"""
Speech-recognition capability contract.

This module defines the *interface only*: no ordering guarantees, terminal
de-duplication, or orchestration decisions live here (see
capture/controller.py).

Key invariants:
- One engine session recognizes a single utterance (non-continuous,
  no interim results).
- The engine reports platform callbacks (start/result/error/end) to the
  listener it was started with; it never calls the reducer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol


class RecognitionListener(Protocol):
    """
    Platform-style callbacks for one recognition session.

    Engines may call these in any order, more than once, or not at all;
    the controller normalizes them.
    """

    async def on_start(self) -> None: ...
    async def on_result(self, text: str) -> None: ...
    async def on_error(self, code: str) -> None: ...
    async def on_end(self) -> None: ...


class RecognitionEngine(ABC):
    """
    Abstract interface for a single-utterance speech-recognition engine.

    Implementations are responsible for:
    - Starting one recognition session in the requested language
    - Reporting session callbacks to the listener
    - Graceful stop (which still ends the session via on_end)

    Non-responsibilities:
    - No state machine logic (IDLE/LISTENING/etc.)
    - No run_id handling
    """

    @property
    def available(self) -> bool:
        """False when the platform offers no recognition capability."""
        return True

    @abstractmethod
    async def start(self, *, language: str, listener: RecognitionListener) -> None:
        """
        Begin a recognition session.

        Raises:
            Any exception if the engine refuses to start.
        """
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        """
        Request graceful termination of the current session.

        The engine should still deliver on_end (and may deliver a final
        on_error("no-speech")).
        """
        raise NotImplementedError
