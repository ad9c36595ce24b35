"""Tests for the analysis gateways, prompts and cooling advisor."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import openai
import pytest

from thermamind.analysis.advisor import (
    NO_ACTION,
    efficiency_note,
    recommend_action,
    savings_estimate,
)
from thermamind.analysis.gateway import (
    AnalysisError,
    OpenAIAnalysisGateway,
    RuleBasedAnalysisGateway,
    get_gateway,
)
from thermamind.analysis.prompts import build_analysis_prompt, build_question_prompt
from thermamind.config import AnalysisConfig, CredentialRef
from thermamind.engine.aggregator import MetricsAggregator


class FakeCompletions:
    def __init__(self, content: str | None = None, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeSpeech:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    async def create(self, **kwargs):
        if self.error:
            raise self.error
        return SimpleNamespace(content=b"mp3-bytes")


def fake_client(content="Fleet is healthy.", error=None, speech_error=None):
    return SimpleNamespace(
        chat=SimpleNamespace(completions=FakeCompletions(content, error)),
        audio=SimpleNamespace(speech=FakeSpeech(speech_error)),
    )


@pytest.fixture()
def stats(snapshot):
    return MetricsAggregator().compute_stats(snapshot)


class TestAdvisor:
    @pytest.mark.parametrize("load,cooling,expected", [
        (40, 80, "Reduce cooling power: overcooled."),
        (95, 100, "High GPU load detected: scale resources."),
        (45, 55, "Lower cooling and idle GPUs."),
        (70, 75, NO_ACTION),
    ])
    def test_recommend_action(self, load, cooling, expected):
        assert recommend_action(load, cooling) == expected

    @pytest.mark.parametrize("load,cooling,expected", [
        (70, 75, 0),
        (70, 85, 8),
        (40, 80, 20),
        (90, 60, 0),
    ])
    def test_savings_estimate(self, load, cooling, expected):
        assert savings_estimate(load, cooling) == expected

    def test_efficiency_note_vocabulary(self, snapshot):
        for cluster in snapshot.clusters:
            note = efficiency_note(cluster)
            assert note == "offline" or "cooled" in note or note == "well matched"


class TestPrompts:
    def test_analysis_prompt_lists_every_cluster(self, snapshot, stats):
        prompt = build_analysis_prompt(snapshot, stats, max_words=120)
        for cluster in snapshot.clusters:
            assert cluster.name in prompt
        assert "under 120 words" in prompt
        assert "PUE" in prompt

    def test_question_prompt_quotes_question(self, snapshot, stats):
        prompt = build_question_prompt("Which cluster is hottest?", snapshot, stats)
        assert '"Which cluster is hottest?"' in prompt


class TestRuleBasedGateway:
    def setup_method(self):
        self.gateway = RuleBasedAnalysisGateway()

    def test_analyze_mentions_fleet_totals(self, snapshot, stats):
        text = asyncio.run(self.gateway.analyze(snapshot, stats))
        assert f"{stats.power_draw_mw:.2f} MW" in text
        assert "clusters online" in text

    def test_answer_about_cluster(self, snapshot, stats):
        text = asyncio.run(self.gateway.answer("How is cluster c doing?", snapshot, stats))
        assert text.startswith("Cluster C in Stavanger, Norway")

    def test_answer_unknown_cluster(self, snapshot, stats):
        text = asyncio.run(self.gateway.answer("What about Cluster Q?", snapshot, stats))
        assert text == "There is no Cluster Q in the current fleet."

    def test_answer_general_question(self, snapshot, stats):
        text = asyncio.run(self.gateway.answer("How are we doing?", snapshot, stats))
        assert "Ask about a specific cluster" in text

    def test_no_speech(self):
        assert asyncio.run(self.gateway.speak("hello")) is None
        assert self.gateway.supports_audio is False


class TestOpenAIGateway:
    def test_analyze_returns_stripped_text(self, snapshot, stats):
        client = fake_client(content="  Fleet is healthy.  ")
        gateway = OpenAIAnalysisGateway(AnalysisConfig(), client=client)
        assert asyncio.run(gateway.analyze(snapshot, stats)) == "Fleet is healthy."
        call = client.chat.completions.calls[0]
        assert call["model"] == "gpt-4o-mini"
        assert call["messages"][0]["role"] == "system"

    def test_service_error_becomes_analysis_error(self, snapshot, stats):
        client = fake_client(error=openai.OpenAIError("boom"))
        gateway = OpenAIAnalysisGateway(AnalysisConfig(), client=client)
        with pytest.raises(AnalysisError, match="Failed to generate AI response"):
            asyncio.run(gateway.answer("q", snapshot, stats))

    def test_empty_completion_is_an_error(self, snapshot, stats):
        gateway = OpenAIAnalysisGateway(AnalysisConfig(), client=fake_client(content=""))
        with pytest.raises(AnalysisError):
            asyncio.run(gateway.analyze(snapshot, stats))

    def test_speak(self):
        gateway = OpenAIAnalysisGateway(AnalysisConfig(), client=fake_client())
        assert asyncio.run(gateway.speak("hello")) == b"mp3-bytes"

    def test_speak_failure(self):
        client = fake_client(speech_error=openai.OpenAIError("tts down"))
        gateway = OpenAIAnalysisGateway(AnalysisConfig(), client=client)
        with pytest.raises(AnalysisError):
            asyncio.run(gateway.speak("hello"))


class TestGetGateway:
    def test_rules_provider(self):
        assert isinstance(get_gateway(AnalysisConfig(provider="rules")), RuleBasedAnalysisGateway)

    def test_auto_without_key_falls_back(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert isinstance(get_gateway(AnalysisConfig()), RuleBasedAnalysisGateway)

    def test_openai_without_key_raises(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="Could not resolve"):
            get_gateway(AnalysisConfig(provider="openai"))

    def test_auto_with_key(self):
        config = AnalysisConfig(api_key=CredentialRef(value="sk-test"))
        assert isinstance(get_gateway(config), OpenAIAnalysisGateway)
