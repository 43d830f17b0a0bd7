"""Tests for single-flight briefing playback."""

import asyncio

import pytest

from fakes import FakeBackend, FakeSink
from models.report_models import StructuredReport
from services.errors import GenerationError
from services.realtime.speech_playback import (
    IDLE,
    PLAYING,
    SCRIPT_SUMMARY_LIMIT,
    SYNTHESIZING,
    PlaybackHandle,
    SpeechPlaybackController,
    build_script,
)


def _report(title="Operation Dawn", summary="Forces hold the ridge.", **extra):
    return StructuredReport(data={"title": title, "summary": summary, **extra})


def _controller(backend, sink):
    return SpeechPlaybackController(backend, sink, standard_voice="alloy", red_team_voice="onyx")


class TestScript:
    def test_script_includes_title_outcome_summary_and_primary_risk(self):
        report = _report(
            outcome_vector="Stalemate",
            risks=[{"label": "Supply Interdiction"}, {"label": "Second"}],
        )

        script = build_script(report)

        assert script.startswith("Aegis Prime analysis complete.")
        assert "Operation Dawn." in script
        assert "Projected Outcome: Stalemate." in script
        assert "Forces hold the ridge." in script
        assert script.endswith("Primary Factor: Supply Interdiction.")
        assert "Second" not in script

    def test_red_team_intro(self):
        assert build_script(_report(), "red_team").startswith("Nemesis Omega analysis complete.")

    def test_long_summary_is_truncated(self):
        script = build_script(_report(summary="x" * (SCRIPT_SUMMARY_LIMIT + 200)))

        assert "x" * SCRIPT_SUMMARY_LIMIT + "..." in script
        assert "x" * (SCRIPT_SUMMARY_LIMIT + 1) not in script

    def test_nested_values_are_skipped(self):
        report = StructuredReport(data={"title": {"value": "Nested"}, "summary": ["a"], "risks": ["plain"]})

        script = build_script(report)

        assert "Simulation Report." in script
        assert "Primary Factor" not in script


class TestPlayback:
    @pytest.mark.asyncio
    async def test_speak_plays_synthesized_audio(self, backend, sink):
        controller = _controller(backend, sink)

        task = controller.speak(_report())
        assert controller.state == SYNTHESIZING
        handle = await task

        assert controller.state == PLAYING
        assert controller.handle is handle
        assert len(sink.played) == 1
        assert backend.synth_calls[0]["voice"] == "alloy"
        assert backend.synth_calls[0]["script"] == controller.script

    @pytest.mark.asyncio
    async def test_red_team_uses_red_team_voice(self, backend, sink):
        controller = _controller(backend, sink)

        await controller.speak(_report(), "red_team")

        assert backend.synth_calls[0]["voice"] == "onyx"

    @pytest.mark.asyncio
    async def test_rapid_requests_play_only_the_latest(self, sink):
        backend = FakeBackend()
        backend.synth_gate = asyncio.Event()
        controller = _controller(backend, sink)

        first = controller.speak(_report(title="First"))
        await asyncio.sleep(0)
        second = controller.speak(_report(title="Second"))
        backend.synth_gate.set()
        handle = await second

        await asyncio.sleep(0)
        assert first.cancelled()
        assert len(sink.played) == 1
        assert b"Second." in sink.played[0]
        assert controller.handle is handle

    @pytest.mark.asyncio
    async def test_speaking_again_stops_current_playback(self, backend, sink):
        controller = _controller(backend, sink)

        first = await controller.speak(_report(title="First"))
        second = await controller.speak(_report(title="Second"))

        assert first.stopped is True
        assert second.active is True
        assert sink.active_handles() == [second]

    @pytest.mark.asyncio
    async def test_no_audio_leaves_controller_idle(self, sink):
        controller = _controller(FakeBackend(audio=None), sink)

        assert await controller.speak(_report()) is None

        assert controller.state == IDLE
        assert sink.played == []

    @pytest.mark.asyncio
    async def test_synthesis_failure_leaves_controller_idle(self, backend, sink):
        backend.synth_error = GenerationError("tts offline")
        controller = _controller(backend, sink)

        assert await controller.speak(_report()) is None

        assert controller.state == IDLE
        assert sink.played == []

    @pytest.mark.asyncio
    async def test_finished_playback_returns_to_idle(self, backend, sink):
        controller = _controller(backend, sink)

        handle = await controller.speak(_report())
        handle.mark_finished()

        assert controller.state == IDLE
        assert controller.handle is None

    @pytest.mark.asyncio
    async def test_stop_halts_playback_and_is_safe_when_idle(self, backend, sink):
        controller = _controller(backend, sink)
        controller.stop()
        assert controller.state == IDLE

        handle = await controller.speak(_report())
        controller.stop()
        controller.stop()

        assert handle.stopped is True
        assert controller.state == IDLE

    @pytest.mark.asyncio
    async def test_speak_without_report_is_rejected(self, backend, sink):
        controller = _controller(backend, sink)

        with pytest.raises(ValueError):
            controller.speak(None)

        assert backend.synth_calls == []


def test_playback_handle_stop_is_idempotent():
    stops = []
    done = []
    handle = PlaybackHandle(on_stop=lambda: stops.append(1))
    handle.add_done_callback(done.append)

    handle.stop()
    handle.stop()
    handle.mark_finished()

    assert stops == [1]
    assert done == [handle]
    assert handle.active is False
