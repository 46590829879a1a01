"""
Route registration for the dialogue API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pump control messages produced by background work to the client
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
import time

from fastapi import WebSocket, WebSocketDisconnect, FastAPI

from observability.logger import log_event
from session.gateway import SessionGateway, GatewayResult


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = SessionGateway(
            config=app.state.config,
            http_client=app.state.http_client,
        )
        send_lock = asyncio.Lock()
        pump: asyncio.Task[None] | None = None

        try:
            result = await gateway.on_ws_connect()
            await _flush_gateway_result(ws, result, send_lock)
            pump = asyncio.ensure_future(_pump_control(ws, gateway, send_lock))

            while True:
                text = await ws.receive_text()
                result = await gateway.on_json_message(text)
                await _flush_gateway_result(ws, result, send_lock)

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")

        finally:
            if pump is not None:
                pump.cancel()
                await asyncio.gather(pump, return_exceptions=True)


async def _pump_control(
    ws: WebSocket,
    gateway: SessionGateway,
    send_lock: asyncio.Lock,
) -> None:
    """Deliver control messages enqueued outside the inbound loop."""
    session = gateway.session
    assert session is not None
    while True:
        await session.wait_control()
        async with send_lock:
            for msg in session.drain_control():
                await ws.send_text(json.dumps(msg, ensure_ascii=False))


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
    send_lock: asyncio.Lock,
) -> None:
    async with send_lock:
        for msg in result.outbound_json:
            await ws.send_text(json.dumps(msg, ensure_ascii=False))
