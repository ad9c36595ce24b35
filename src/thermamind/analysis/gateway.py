# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Analysis gateway: natural-language summaries and speech for a snapshot.

The broadcast sessions only depend on :class:`AnalysisGateway`.  Two
implementations ship: an OpenAI-compatible client and a rule-based
fallback that works offline.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod

import openai

from thermamind.analysis.advisor import (
    NO_ACTION,
    cooling_gap,
    recommend_action,
    savings_estimate,
)
from thermamind.analysis.prompts import (
    SYSTEM_PROMPT,
    build_analysis_prompt,
    build_question_prompt,
)
from thermamind.config import AnalysisConfig
from thermamind.data.models import Cluster, FleetSnapshot, NodeStatus, StatsSnapshot

logger = logging.getLogger(__name__)

MAX_TTS_CHARS = 4096


class AnalysisError(RuntimeError):
    """The analysis or speech service could not produce a result."""


class AnalysisGateway(ABC):
    """Narrow contract to the analysis and speech services."""

    supports_audio: bool = False

    @abstractmethod
    async def analyze(self, snapshot: FleetSnapshot, stats: StatsSnapshot) -> str:
        """Summarize the fleet and recommend one action."""

    @abstractmethod
    async def answer(
        self, question: str, snapshot: FleetSnapshot, stats: StatsSnapshot
    ) -> str:
        """Answer a free-text question about the fleet."""

    async def speak(self, text: str) -> bytes | None:
        """Render *text* to audio; ``None`` when speech is unavailable."""
        return None


# ---------------------------------------------------------------------------
# OpenAI-compatible service
# ---------------------------------------------------------------------------

class OpenAIAnalysisGateway(AnalysisGateway):
    """Chat completions for text, ``audio.speech`` for voice."""

    supports_audio = True

    def __init__(
        self,
        config: AnalysisConfig,
        api_key: str | None = None,
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self.config = config
        self.client = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )

    async def analyze(self, snapshot: FleetSnapshot, stats: StatsSnapshot) -> str:
        prompt = build_analysis_prompt(snapshot, stats, self.config.max_words)
        return await self._complete(prompt, "Failed to generate AI analysis")

    async def answer(
        self, question: str, snapshot: FleetSnapshot, stats: StatsSnapshot
    ) -> str:
        prompt = build_question_prompt(question, snapshot, stats)
        return await self._complete(prompt, "Failed to generate AI response")

    async def speak(self, text: str) -> bytes | None:
        if not text:
            return None
        try:
            resp = await self.client.audio.speech.create(
                model=self.config.tts_model,
                voice=self.config.tts_voice,
                input=text[:MAX_TTS_CHARS],
            )
        except openai.OpenAIError as exc:
            logger.warning("TTS failed: %s", exc)
            raise AnalysisError("Failed to generate speech") from exc
        return resp.content

    async def _complete(self, prompt: str, failure: str) -> str:
        try:
            resp = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.3,
            )
        except openai.OpenAIError as exc:
            logger.warning("Analysis request failed: %s", exc)
            raise AnalysisError(failure) from exc

        text = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        if not text:
            raise AnalysisError("Analysis service returned an empty response")
        return text


# ---------------------------------------------------------------------------
# Offline fallback
# ---------------------------------------------------------------------------

_CLUSTER_REF = re.compile(r"\bcluster\s+([a-z])\b", re.IGNORECASE)


class RuleBasedAnalysisGateway(AnalysisGateway):
    """Deterministic summaries built from the cooling advisor rules."""

    async def analyze(self, snapshot: FleetSnapshot, stats: StatsSnapshot) -> str:
        online = [c for c in snapshot.clusters if c.status is NodeStatus.online]
        parts = [
            f"The fleet is drawing {stats.power_draw_mw:.2f} MW at a PUE of "
            f"{stats.cooling_pue:.2f}, with {len(online)} of "
            f"{len(snapshot.clusters)} clusters online.",
        ]
        spiking = [c.name for c in snapshot.clusters if c.spike_active]
        if spiking:
            parts.append(f"A load spike is affecting {', '.join(spiking)}.")

        worst = _worst_cluster(online)
        if worst is None:
            parts.append("No cluster is reporting telemetry.")
            return " ".join(parts)

        action = recommend_action(worst.avg_gpu_load, worst.avg_cooling)
        if action == NO_ACTION:
            parts.append("Cooling is well matched to load across the fleet.")
        else:
            estimate = savings_estimate(worst.avg_gpu_load, worst.avg_cooling)
            parts.append(
                f"{worst.name} ({worst.profile.site}) runs {worst.avg_gpu_load:.0f}% GPU "
                f"load against {worst.avg_cooling:.0f}% cooling. {action}"
                + (f" Estimated cooling savings: about {estimate}%." if estimate else "")
            )
        return " ".join(parts)

    async def answer(
        self, question: str, snapshot: FleetSnapshot, stats: StatsSnapshot
    ) -> str:
        match = _CLUSTER_REF.search(question)
        if match:
            letter = match.group(1).upper()
            for c in snapshot.clusters:
                if c.profile.name == letter:
                    return (
                        f"{c.name} in {c.profile.site} is {c.activity.value} at "
                        f"{c.avg_gpu_load:.0f}% GPU load and {c.avg_cooling:.0f}% cooling, "
                        f"drawing {c.total_power_kw:.1f} kW with "
                        f"{c.active_node_count}/{c.node_count} nodes online. "
                        f"{recommend_action(c.avg_gpu_load, c.avg_cooling)}"
                    )
            return f"There is no Cluster {letter} in the current fleet."
        return (
            f"Current telemetry shows {stats.power_draw_mw:.2f} MW of draw, "
            f"{stats.energy_savings_pct:.1f}% energy savings and a PUE of "
            f"{stats.cooling_pue:.2f}. Ask about a specific cluster for details."
        )


def _worst_cluster(clusters: list[Cluster]) -> Cluster | None:
    if not clusters:
        return None
    return max(clusters, key=lambda c: abs(cooling_gap(c)))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def get_gateway(config: AnalysisConfig | None = None) -> AnalysisGateway:
    """Pick the analysis gateway for *config*.

    ``auto`` prefers the OpenAI-compatible service when its API key
    resolves and otherwise falls back to the rule-based gateway.
    """
    config = config or AnalysisConfig()
    if config.provider == "rules":
        return RuleBasedAnalysisGateway()

    try:
        api_key = config.api_key.resolve()
    except ValueError:
        if config.provider == "openai":
            raise
        logger.warning("No analysis API key configured; using rule-based analysis")
        return RuleBasedAnalysisGateway()

    logger.info("Analysis gateway: OpenAI-compatible (%s)", config.model)
    return OpenAIAnalysisGateway(config, api_key=api_key)
