# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
from types import SimpleNamespace
from typing import Any

import httpx

from adapters.capture.base import RecognitionEngine, RecognitionListener
from adapters.capture.controller import CaptureController
from adapters.playback.base import SpeechSynthesizer, SynthesisParams
from adapters.playback.controller import PlaybackController, PlaybackOutcome
from adapters.resolver.resolver import ResponseResolver
from orchestrator.enums.error_category import ErrorCategory
from orchestrator.enums.permission import PermissionState
from orchestrator.enums.state import State
from orchestrator.events import AppStarted, EventType, StartTalk, StopSpeaking, StopTalk
from orchestrator.reducer import GREETING_RESPONSE
from orchestrator.runtime import Runtime
from orchestrator.state_dataclass import Session
from orchestrator.values import Response, ResponseOrigin, Utterance


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------

class FakeMonitor:
    def __init__(self, outcome: PermissionState) -> None:
        self.outcome = outcome
        self.requests = 0

    def query(self) -> PermissionState:
        return self.outcome

    async def request_access(self) -> PermissionState:
        self.requests += 1
        return self.outcome


class FakeCapture:
    def __init__(self) -> None:
        self.started: list[int] = []
        self.stops = 0

    async def start(self, run_id: int) -> None:
        self.started.append(run_id)

    async def stop(self) -> None:
        self.stops += 1


class FakeResolver:
    def __init__(self, response: Response) -> None:
        self.response = response
        self.utterances: list[Utterance] = []

    async def resolve(self, utterance: Utterance) -> Response:
        self.utterances.append(utterance)
        return self.response


class FakePlayback:
    def __init__(self, *, hang: bool = False) -> None:
        self.played: list[Response] = []
        self.cancels = 0
        self._release = asyncio.Event() if hang else None

    async def play(self, response: Response) -> PlaybackOutcome:
        self.played.append(response)
        if self._release is not None:
            await self._release.wait()
            return PlaybackOutcome.CANCELLED
        return PlaybackOutcome.SYNTHESIZED

    async def cancel(self) -> None:
        self.cancels += 1
        if self._release is not None:
            self._release.set()


class FakeEngine(RecognitionEngine):
    def __init__(self) -> None:
        self.listener: RecognitionListener | None = None

    async def start(self, *, language: str, listener: RecognitionListener) -> None:
        self.listener = listener

    async def stop(self) -> None:
        pass


class FakeSynth(SpeechSynthesizer):
    def __init__(self) -> None:
        self.spoken: list[str] = []

    async def speak(self, text: str, params: SynthesisParams) -> None:
        self.spoken.append(text)

    async def cancel(self) -> None:
        pass


def make_runtime(initial: Session, **components: Any) -> tuple[Runtime, list[State]]:
    ctx = SimpleNamespace(
        session_id="sess_test",
        permission_monitor=components.get("permission_monitor"),
        capture_controller=components.get("capture_controller"),
        resolver=components.get("resolver"),
        playback_controller=components.get("playback_controller"),
    )
    runtime = Runtime(initial_state=initial, context=ctx)
    modes: list[State] = []
    runtime.subscribe(lambda s: modes.append(s.mode))
    return runtime, modes


def start_talk() -> StartTalk:
    return StartTalk(event_type=EventType.START_TALK, ts_ms=0)


REPLY = Response(text="उत्तर", origin=ResponseOrigin.BACKEND)


# ---------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------

def test_greeting_plays_once_and_returns_to_idle():
    async def run():
        playback = FakePlayback()
        runtime, modes = make_runtime(Session(), playback_controller=playback)
        started = AppStarted(event_type=EventType.APP_STARTED, ts_ms=0, session_id="sess_test")
        await runtime.handle_event(started)
        await runtime.settle()
        await runtime.handle_event(started)
        await runtime.settle()
        return runtime, modes, playback

    runtime, modes, playback = asyncio.run(run())

    assert playback.played == [GREETING_RESPONSE]
    assert modes == [State.SPEAKING, State.IDLE]
    assert runtime.state.greeted


def test_scenario_fallback_turn_end_to_end():
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async def run():
        engine, synth = FakeEngine(), FakeSynth()
        async with httpx.AsyncClient(transport=httpx.MockTransport(unreachable)) as client:
            runtime: Runtime | None = None

            async def emit(event):
                assert runtime is not None
                await runtime.handle_event(event)

            runtime, modes = make_runtime(
                Session(permission_state=PermissionState.GRANTED, greeted=True),
                capture_controller=CaptureController(emit_event=emit, engine=engine),
                resolver=ResponseResolver(client=client, base_url="http://backend.test"),
                playback_controller=PlaybackController(media=None, synthesizer=synth),
            )

            await runtime.handle_event(start_talk())
            await engine.listener.on_start()
            await engine.listener.on_result("नमस्कार")
            await engine.listener.on_end()
            await runtime.settle()
        return runtime, modes, synth

    runtime, modes, synth = asyncio.run(run())

    assert modes == [State.LISTENING, State.PROCESSING, State.SPEAKING, State.IDLE]
    assert runtime.state.last_transcript == "नमस्कार"
    assert runtime.state.last_response.origin == ResponseOrigin.FALLBACK
    assert synth.spoken == ["नमस्कार! मी शेवंता आहे. तुम्हाला कसे मदत करू शकते?"]
    assert runtime.state.last_error is None


def test_denied_access_never_starts_capture():
    async def run():
        monitor, capture = FakeMonitor(PermissionState.DENIED), FakeCapture()
        runtime, modes = make_runtime(
            Session(permission_state=PermissionState.DENIED, greeted=True),
            permission_monitor=monitor,
            capture_controller=capture,
        )
        await runtime.handle_event(start_talk())
        await runtime.settle()
        return runtime, monitor, capture

    runtime, monitor, capture = asyncio.run(run())

    assert monitor.requests == 1
    assert capture.started == []
    assert runtime.state.mode == State.IDLE
    assert runtime.state.last_error == ErrorCategory.PERMISSION


def test_granted_access_starts_capture():
    async def run():
        monitor, capture = FakeMonitor(PermissionState.GRANTED), FakeCapture()
        runtime, _ = make_runtime(
            Session(permission_state=PermissionState.PROMPT, greeted=True),
            permission_monitor=monitor,
            capture_controller=capture,
        )
        await runtime.handle_event(start_talk())
        await runtime.settle()
        return runtime, capture

    runtime, capture = asyncio.run(run())

    assert capture.started == [1]
    assert runtime.state.mode == State.LISTENING
    assert runtime.state.permission_state == PermissionState.GRANTED


def test_capture_start_failure_returns_to_idle_with_category():
    async def run():
        runtime: Runtime | None = None

        async def emit(event):
            await runtime.handle_event(event)

        runtime, modes = make_runtime(
            Session(permission_state=PermissionState.GRANTED, greeted=True),
            capture_controller=CaptureController(emit_event=emit, engine=None),
        )
        await runtime.handle_event(start_talk())
        return runtime, modes

    runtime, modes = asyncio.run(run())

    assert modes == [State.LISTENING, State.IDLE]
    assert runtime.state.last_error == ErrorCategory.CAPTURE_UNSUPPORTED


def test_quick_restart_before_capture_ends_returns_to_idle_silently():
    async def run():
        runtime: Runtime | None = None

        async def emit(event):
            await runtime.handle_event(event)

        engine = FakeEngine()
        runtime, modes = make_runtime(
            Session(permission_state=PermissionState.GRANTED, greeted=True),
            capture_controller=CaptureController(emit_event=emit, engine=engine),
        )
        await runtime.handle_event(start_talk())
        await runtime.handle_event(StopTalk(event_type=EventType.STOP_TALK, ts_ms=0))
        # Engine has not reported its end yet
        await runtime.handle_event(start_talk())
        return runtime, modes

    runtime, modes = asyncio.run(run())

    assert modes == [State.LISTENING, State.IDLE, State.LISTENING, State.IDLE]
    assert runtime.state.last_error is None


def test_stop_talk_stops_capture_without_processing():
    async def run():
        capture, resolver = FakeCapture(), FakeResolver(REPLY)
        runtime, modes = make_runtime(
            Session(permission_state=PermissionState.GRANTED, greeted=True),
            capture_controller=capture,
            resolver=resolver,
        )
        await runtime.handle_event(start_talk())
        await runtime.handle_event(StopTalk(event_type=EventType.STOP_TALK, ts_ms=0))
        await runtime.settle()
        return modes, capture, resolver

    modes, capture, resolver = asyncio.run(run())

    assert modes == [State.LISTENING, State.IDLE]
    assert capture.stops == 1
    assert resolver.utterances == []


def test_stop_speaking_cancels_and_late_completion_is_dropped():
    async def run():
        playback = FakePlayback(hang=True)
        runtime, modes = make_runtime(Session(), playback_controller=playback)
        await runtime.handle_event(
            AppStarted(event_type=EventType.APP_STARTED, ts_ms=0, session_id="sess_test")
        )
        await asyncio.sleep(0)
        await runtime.handle_event(StopSpeaking(event_type=EventType.STOP_SPEAKING, ts_ms=0))
        await runtime.settle()
        return runtime, modes, playback

    runtime, modes, playback = asyncio.run(run())

    assert playback.cancels == 1
    assert modes == [State.SPEAKING, State.IDLE]
    assert runtime.state.mode == State.IDLE


def test_listener_errors_do_not_break_the_loop():
    async def run():
        runtime, modes = make_runtime(
            Session(permission_state=PermissionState.GRANTED, greeted=True),
            capture_controller=FakeCapture(),
        )

        def broken(_: Session) -> None:
            raise RuntimeError("render failed")

        runtime.subscribe(broken)
        await runtime.handle_event(start_talk())
        return runtime, modes

    runtime, modes = asyncio.run(run())
    assert runtime.state.mode == State.LISTENING
    assert modes == [State.LISTENING]


def test_unsubscribe_stops_notifications():
    async def run():
        runtime, _ = make_runtime(
            Session(permission_state=PermissionState.GRANTED, greeted=True),
            capture_controller=FakeCapture(),
        )
        seen: list[Session] = []
        unsubscribe = runtime.subscribe(seen.append)
        unsubscribe()
        await runtime.handle_event(start_talk())
        return seen

    assert asyncio.run(run()) == []


def test_shutdown_cancels_in_flight_playback():
    async def run():
        playback = FakePlayback(hang=True)
        runtime, _ = make_runtime(Session(), playback_controller=playback)
        await runtime.handle_event(
            AppStarted(event_type=EventType.APP_STARTED, ts_ms=0, session_id="sess_test")
        )
        await asyncio.sleep(0)
        await runtime.shutdown()
        return playback

    playback = asyncio.run(run())
    assert playback.cancels == 1
