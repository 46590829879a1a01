# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio

import pytest

from adapters.playback.base import MediaPlayer, SpeechSynthesizer, SynthesisParams
from adapters.playback.controller import PlaybackController, PlaybackOutcome
from orchestrator.errors import PlaybackBusy, PlaybackFailure
from orchestrator.values import Response, ResponseOrigin


class FakeMedia(MediaPlayer):
    def __init__(self, *, fail: bool = False, hang: bool = False, available: bool = True):
        self._fail = fail
        self._hang = hang
        self._available = available
        self.played: list[str] = []
        self.stopped = 0
        self.calls: list[str] | None = None

    @property
    def available(self) -> bool:
        return self._available

    async def play(self, source: str) -> None:
        self.played.append(source)
        if self.calls is not None:
            self.calls.append(f"media:{source}")
        if self._hang:
            await asyncio.Event().wait()
        if self._fail:
            raise PlaybackFailure("cannot load")

    async def stop(self) -> None:
        self.stopped += 1
        if self.calls is not None:
            self.calls.append("media:stop")


class FakeSynth(SpeechSynthesizer):
    def __init__(self, *, fail: bool = False, hang: bool = False):
        self._fail = fail
        self._hang = hang
        self.spoken: list[tuple[str, SynthesisParams]] = []
        self.cancelled = 0
        self.calls: list[str] | None = None

    async def speak(self, text: str, params: SynthesisParams) -> None:
        self.spoken.append((text, params))
        if self.calls is not None:
            self.calls.append(f"speak:{text}")
        if self._hang:
            await asyncio.Event().wait()
        if self._fail:
            raise PlaybackFailure("synthesis error")

    async def cancel(self) -> None:
        self.cancelled += 1


def response(audio_ref: str | None = None) -> Response:
    return Response(text="X", origin=ResponseOrigin.BACKEND, audio_ref=audio_ref)


def test_media_is_played_when_present():
    media, synth = FakeMedia(), FakeSynth()
    ctrl = PlaybackController(media=media, synthesizer=synth)

    outcome = asyncio.run(ctrl.play(response("Y")))

    assert outcome is PlaybackOutcome.MEDIA
    assert media.played == ["Y"]
    assert synth.spoken == []


def test_media_failure_falls_back_to_response_text():
    calls: list[str] = []
    media, synth = FakeMedia(fail=True), FakeSynth()
    media.calls = calls
    synth.calls = calls
    ctrl = PlaybackController(media=media, synthesizer=synth)

    outcome = asyncio.run(ctrl.play(response("Y")))

    assert outcome is PlaybackOutcome.SYNTHESIZED
    # Y first, halted, then the response text; never a locally matched reply
    assert calls == ["media:Y", "media:stop", "speak:X"]


def test_no_audio_ref_goes_straight_to_synthesis_with_persona_params():
    media, synth = FakeMedia(), FakeSynth()
    ctrl = PlaybackController(media=media, synthesizer=synth)

    outcome = asyncio.run(ctrl.play(response()))

    assert outcome is PlaybackOutcome.SYNTHESIZED
    assert media.played == []
    ((text, params),) = synth.spoken
    assert text == "X"
    assert params == SynthesisParams(language="mr-IN", pitch=1.5, rate=0.9, volume=1.0)


def test_unsupported_media_goes_to_synthesis():
    media, synth = FakeMedia(available=False), FakeSynth()
    ctrl = PlaybackController(media=media, synthesizer=synth)

    assert asyncio.run(ctrl.play(response("Y"))) is PlaybackOutcome.SYNTHESIZED
    assert media.played == []


def test_both_paths_failing_completes_silently():
    ctrl = PlaybackController(media=FakeMedia(fail=True), synthesizer=FakeSynth(fail=True))
    assert asyncio.run(ctrl.play(response("Y"))) is PlaybackOutcome.SILENT


def test_no_capabilities_completes_silently():
    ctrl = PlaybackController(media=None, synthesizer=None)
    assert asyncio.run(ctrl.play(response("Y"))) is PlaybackOutcome.SILENT


def test_cancel_during_media_stops_it_and_completes_play():
    async def run():
        media, synth = FakeMedia(hang=True), FakeSynth()
        ctrl = PlaybackController(media=media, synthesizer=synth)

        play = asyncio.ensure_future(ctrl.play(response("Y")))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert ctrl.is_active

        await ctrl.cancel()
        outcome = await play
        return ctrl, media, synth, outcome

    ctrl, media, synth, outcome = asyncio.run(run())

    assert outcome is PlaybackOutcome.CANCELLED
    assert media.stopped == 1
    # Cancelling never falls through to synthesis
    assert synth.spoken == []
    assert not ctrl.is_active


def test_cancel_during_synthesis_cancels_speech():
    async def run():
        synth = FakeSynth(hang=True)
        ctrl = PlaybackController(media=FakeMedia(), synthesizer=synth)

        play = asyncio.ensure_future(ctrl.play(response()))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await ctrl.cancel()
        return synth, await play

    synth, outcome = asyncio.run(run())
    assert outcome is PlaybackOutcome.CANCELLED
    assert synth.cancelled == 1


def test_cancel_when_idle_is_noop():
    media, synth = FakeMedia(), FakeSynth()
    ctrl = PlaybackController(media=media, synthesizer=synth)

    asyncio.run(ctrl.cancel())

    assert media.stopped == 0
    assert synth.cancelled == 0


def test_second_play_while_active_raises_busy():
    async def run():
        ctrl = PlaybackController(media=FakeMedia(hang=True), synthesizer=FakeSynth())
        play = asyncio.ensure_future(ctrl.play(response("Y")))
        await asyncio.sleep(0)
        with pytest.raises(PlaybackBusy):
            await ctrl.play(response("Z"))
        await ctrl.cancel()
        await play

        # Free again after the first play completed
        return ctrl

    ctrl = asyncio.run(run())
    assert not ctrl.is_active
