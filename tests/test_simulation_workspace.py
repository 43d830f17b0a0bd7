"""Tests for the per-session simulation workspace."""

import asyncio
import json

import pytest

from fakes import FakeBackend
from services.realtime.simulation_workspace import SimulationWorkspace
from services.realtime.speech_playback import SpeechPlaybackController
from services.realtime.structured_pipeline import ScenarioContext


class GatedBackend(FakeBackend):
    """Backend that holds each simulation until its scenario is released."""

    def __init__(self, scenarios):
        super().__init__()
        self.gates = {scenario: asyncio.Event() for scenario in scenarios}

    async def generate_once(self, prompt, *, system=None, json_mode=False):
        self.once_calls.append({"prompt": prompt, "system": system, "json_mode": json_mode})
        for scenario, gate in self.gates.items():
            if f"Scenario: {scenario}\n" in prompt:
                await gate.wait()
                return json.dumps({"title": scenario, "summary": f"{scenario} summary"})
        return "detail"


@pytest.mark.asyncio
async def test_overtaken_run_does_not_replace_later_report(sink):
    backend = GatedBackend(["Alpha", "Bravo"])
    workspace = SimulationWorkspace(backend)
    playback = SpeechPlaybackController(backend, sink)

    first = asyncio.create_task(workspace.run(ScenarioContext(scenario="Alpha"), playback=playback))
    await asyncio.sleep(0)
    second = asyncio.create_task(workspace.run(ScenarioContext(scenario="Bravo"), playback=playback))
    await asyncio.sleep(0)

    backend.gates["Bravo"].set()
    await second
    backend.gates["Alpha"].set()
    stale = await first
    briefing = playback._pending
    if briefing is not None:
        await briefing

    assert stale.title == "Alpha"
    assert workspace.report.title == "Bravo"
    assert workspace.context.scenario == "Bravo"
    assert workspace.cache.scenario == "Bravo"
    assert len(backend.synth_calls) == 1
    assert "Bravo." in backend.synth_calls[0]["script"]


@pytest.mark.asyncio
async def test_new_run_clears_expansions_and_toggles_visibility():
    backend = FakeBackend(once_reply=lambda prompt: "detail" if prompt.startswith("Elaborate") else "{}")
    workspace = SimulationWorkspace(backend)

    with pytest.raises(ValueError):
        await workspace.expand("Alpha")

    await workspace.run(ScenarioContext(scenario="First"))
    shown, visible = await workspace.toggle_detail("Alpha")
    assert (shown.from_cache, visible) == (False, True)
    _, visible = await workspace.toggle_detail("Alpha")
    assert visible is False
    _, visible = await workspace.toggle_detail("Alpha")
    assert visible is True

    await workspace.run(ScenarioContext(scenario="Second"))
    assert "Alpha" not in workspace.cache
    result, visible = await workspace.toggle_detail("Alpha")
    assert (result.from_cache, visible) == (False, True)
