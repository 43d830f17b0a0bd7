"""Deterministic generation backend used when no model endpoint is configured."""

import asyncio
import json
import logging
import re
from typing import AsyncIterator, Optional, Sequence

from models.session_models import ImageAttachment, Turn

LOGGER = logging.getLogger(__name__)

OFFLINE_NOTICE = (
    "System is operating in offline simulation mode. No connection to a generation backend "
    "is configured. This response is generated for interface demonstration purposes."
)

BRIEFING_TEXT = (
    "TACTICAL BRIEFING (SIMULATED)\n\n"
    "1. SITUATION: Adversary forces entrenched in high ground. Weather is clear. Supply lines active.\n"
    "2. MISSION: Dislodge hostiles and secure key infrastructure.\n"
    "3. EXECUTION: Phase 1 air interdiction, followed by ground maneuver.\n"
    "4. LOGISTICS: Fuel and ammunition at 90%.\n"
    "5. COMMAND: Signals operative. Proceed on my mark."
)

REPORT_TEXT = (
    "REPORT: OPERATIONS SUMMARY\n\n"
    "STATUS: GREEN\n\n"
    "All sectors report nominal status. Logistics throughput at 94%. Intelligence indicates "
    "reduced chatter in the northern sector. Recommend maintaining current posture."
)

SIMULATION_REPORT = {
    "title": "Operation Silent Echo (Simulation)",
    "summary": (
        "Offline simulation result. The operation focuses on stabilizing the northern sector "
        "using asymmetric drone tactics while securing key infrastructure."
    ),
    "adversary_analysis": {
        "profile": "Hybrid Insurgent Force",
        "perception_filter": "Opportunistic / Resource-Driven",
        "likely_response": "Dispersal into urban cover",
        "red_lines": ["Heavy Artillery Use", "Civilian Displacement > 10k"],
    },
    "cross_domain_matrix": {
        "military_readiness": 8,
        "diplomatic_trust": 6,
        "economic_cost": 4,
        "domestic_morale": 7,
        "legal_compliance": 9,
    },
    "resource_impact": {
        "fuel_depletion": 12,
        "ammo_depletion": 8,
        "budget_burn": 15,
        "manpower_stress": 30,
    },
    "strategic_options": [
        {
            "id": "opt1",
            "name": "Drone Swarm Containment",
            "description": "Deploy localized UAVs to track and hem in hostile movements.",
            "deterrence_score": 75,
            "cost_projection": "Low",
            "civilian_risk": "Low",
            "win_probability": 85,
        },
        {
            "id": "opt2",
            "name": "Rapid Quick Reaction Force",
            "description": "Heliborne assault on key stronghold.",
            "deterrence_score": 90,
            "cost_projection": "High",
            "civilian_risk": "Medium",
            "win_probability": 70,
        },
    ],
    "risks": [
        {"label": "Supply line interdiction", "severity": "High", "description": "Route Bravo is congested."},
        {"label": "Urban dispersal", "severity": "Medium", "description": "Hostiles blend into civilian areas."},
    ],
    "recommendations": [
        {"action": "Pre-position fuel at forward base", "priority": "High"},
        {"action": "Increase ISR coverage over Sector 4", "priority": "Medium"},
    ],
    "rationale": "Option 1 provides the best balance of risk versus reward in the current political climate.",
    "outcome_vector": "Stabilization within 48 hours",
}


def canned_response(prompt: str, json_mode: bool) -> str:
    """Return a canned response chosen from keywords in the prompt."""
    lowered = prompt.lower()
    if json_mode:
        if "strategy" in lowered or "simulate" in lowered:
            return json.dumps(SIMULATION_REPORT)
        return "{}"
    if "briefing" in lowered:
        return BRIEFING_TEXT
    if "report" in lowered:
        return REPORT_TEXT
    return OFFLINE_NOTICE


class OfflineGenerationClient:
    """Serve canned text so the dashboard works without a model endpoint."""

    def __init__(self, chunk_delay: float = 0.02) -> None:
        self.chunk_delay = chunk_delay

    async def open_stream(
        self,
        transcript: Sequence[Turn],
        topic: str,
        language: str,
        image: Optional[ImageAttachment] = None,
    ) -> AsyncIterator[str]:
        prompt = transcript[-1].text if transcript else ""
        LOGGER.info("Offline stream for topic=%s language=%s", topic, language)
        for chunk in re.findall(r"\S+\s*", canned_response(prompt, json_mode=False)):
            if self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)
            yield chunk

    async def generate_once(self, prompt: str, *, system: Optional[str] = None, json_mode: bool = False) -> str:
        return canned_response(prompt, json_mode)

    async def synthesize(self, script: str, voice: str) -> Optional[bytes]:
        # Text-only backend.
        return None
