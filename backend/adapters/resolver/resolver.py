"""
ResponseResolver: utterance -> Response via the remote text service.

Wire contract:
    POST {base_url}/api/process-text
    body:     {"text": "<transcript>"}
    response: {"response": "<reply text>", "audio_url": "<optional path>"}

Failure handling:
- Transport errors, timeouts, non-2xx status, bodies that are not JSON
  objects, and wrongly-typed fields are all treated as a failed call.
- A failed call degrades to the local keyword fallback.
- resolve() never raises.
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from adapters.resolver.fallback import local_fallback
from orchestrator.errors import ResolutionFailure
from orchestrator.values import Response, ResponseOrigin, Utterance

from constants import (
    DEFAULT_BACKEND_BASE_URL,
    PAYLOAD_PREVIEW_CHARS,
    PROCESS_TEXT_PATH,
    RESOLVE_TIMEOUT_S,
)
from observability.logger import log_event
from observability.metrics import timed


class ResponseResolver:
    """
    Resolve a recognized utterance into a reply.

    The HTTP client is injected so the app can share one connection pool
    and tests can swap in an httpx.MockTransport.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        base_url: str = DEFAULT_BACKEND_BASE_URL,
        timeout_s: float = RESOLVE_TIMEOUT_S,
        session_id: str | None = None,
    ) -> None:
        self._client = client
        self._url = base_url.rstrip("/") + PROCESS_TEXT_PATH
        self._timeout_s = timeout_s
        self._session_id = session_id

    async def resolve(self, utterance: Utterance) -> Response:
        try:
            with timed(
                "resolve_latency",
                session_id=self._session_id,
                details={"url": self._url},
            ):
                payload = await self._post(utterance.text)
            response = self._parse(payload, utterance.text)
        except ResolutionFailure as exc:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "resolution_fallback",
                "session_id": self._session_id,
                "reason": str(exc),
                "transcript_len": len(utterance.text),
            })
            return Response(
                text=local_fallback(utterance.text),
                origin=ResponseOrigin.FALLBACK,
            )

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "resolution_succeeded",
            "session_id": self._session_id,
            **response.log_details(),
        })
        return response

    async def _post(self, text: str) -> Any:
        try:
            resp = await self._client.post(
                self._url,
                json={"text": text},
                timeout=self._timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise ResolutionFailure(f"timeout after {self._timeout_s}s") from exc
        except httpx.HTTPError as exc:
            raise ResolutionFailure(f"{type(exc).__name__}: {exc}") from exc

        if not resp.is_success:
            raise ResolutionFailure(
                f"status {resp.status_code}: {resp.text[:PAYLOAD_PREVIEW_CHARS]}"
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise ResolutionFailure(
                f"invalid JSON body: {resp.text[:PAYLOAD_PREVIEW_CHARS]}"
            ) from exc

    @staticmethod
    def _parse(payload: Any, transcript: str) -> Response:
        if not isinstance(payload, dict):
            raise ResolutionFailure(f"unexpected body type {type(payload).__name__}")

        text = payload.get("response")
        audio_url = payload.get("audio_url")

        if text is not None and not isinstance(text, str):
            raise ResolutionFailure("field 'response' is not a string")
        if audio_url is not None and not isinstance(audio_url, str):
            raise ResolutionFailure("field 'audio_url' is not a string")

        # An empty reply from the service still yields something to say.
        if not text or not text.strip():
            text = local_fallback(transcript)

        return Response(
            text=text,
            origin=ResponseOrigin.BACKEND,
            audio_ref=audio_url or None,
        )


def _now_ms() -> int:
    return time.time_ns() // 1_000_000
