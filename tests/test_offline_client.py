"""Tests for the offline simulation backend."""

import json

import pytest

from models.session_models import USER, Turn
from services.openai.offline_client import (
    BRIEFING_TEXT,
    OFFLINE_NOTICE,
    SIMULATION_REPORT,
    OfflineGenerationClient,
)
from services.realtime.structured_pipeline import ScenarioContext, StructuredGenerationPipeline


@pytest.mark.asyncio
async def test_stream_reassembles_canned_briefing():
    client = OfflineGenerationClient(chunk_delay=0)

    chunks = [chunk async for chunk in client.open_stream([Turn(role=USER, text="Give me a briefing")], "Ops", "en")]

    assert len(chunks) > 1
    assert "".join(chunks) == BRIEFING_TEXT


@pytest.mark.asyncio
async def test_unrecognised_prompt_gets_offline_notice():
    client = OfflineGenerationClient(chunk_delay=0)

    assert await client.generate_once("hello there") == OFFLINE_NOTICE


@pytest.mark.asyncio
async def test_simulation_report_decodes_through_pipeline():
    pipeline = StructuredGenerationPipeline(OfflineGenerationClient(chunk_delay=0))

    report = await pipeline.generate(ScenarioContext(scenario="Northern sector unrest"))

    assert report.parse_failed is False
    assert report.data == json.loads(json.dumps(SIMULATION_REPORT))


@pytest.mark.asyncio
async def test_offline_backend_produces_no_audio():
    assert await OfflineGenerationClient().synthesize("Briefing.", "alloy") is None
