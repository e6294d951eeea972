#!/usr/bin/env python3
"""
Tests for content analysis: the heuristic judge, the Ollama-backed judge and
the fallback chain that ties them together.
"""
import json
from unittest.mock import MagicMock, patch

from truthlens.analyzer import ContentAnalyzer, HeuristicJudge, build_content_analyzer
from truthlens.llm import LLMJudge, build_analysis_prompt
from truthlens.llm_output import CircuitBreaker, CircuitBreakerConfig, CircuitState
from truthlens.models import AIAnalysis
from truthlens.settings import Settings

LONG_FACTUAL = "The central bank held its benchmark interest rate steady on Tuesday. " * 20


def _client_returning(payload):
    client = MagicMock()
    client.generate.return_value = {"response": payload}
    return client


def _breaker():
    return CircuitBreaker("test", CircuitBreakerConfig(failure_threshold=2, cooldown_seconds=60))


# -----------------------------------------------------------------------------
# Heuristic
# -----------------------------------------------------------------------------


class TestHeuristicJudge:
    """Tests for the deterministic fallback."""

    def setup_method(self):
        self.judge = HeuristicJudge()

    def test_baseline(self):
        """Short neutral text starts at 60."""
        result = self.judge.judge("Council approves budget", "", "")
        assert result.quality_score == 60
        assert result.credibility_score == 60
        assert result.sentiment == "neutral"
        assert result.is_opinion is False
        assert result.is_factual is True
        assert result.model == "heuristic-v1"

    def test_length_bonuses(self):
        """Bodies over 500 and 1000 characters add 5 each."""
        result = self.judge.judge("Rates unchanged", "", LONG_FACTUAL)
        assert result.quality_score == 70

    def test_sensational_cues_penalized(self):
        result = self.judge.judge("Breaking: Shocking bombshell scandal rocks city")
        assert result.quality_score == 30
        assert result.credibility_score == 30
        assert result.is_factual is False

    def test_quality_phrases_boost_credibility(self):
        """Sourcing phrases add 5 quality and a further 3 credibility each."""
        result = self.judge.judge("Study finds link", "According to researchers", "")
        assert result.quality_score == 70
        assert result.credibility_score == 76

    def test_opinion_detection(self):
        result = self.judge.judge("Opinion: I think taxes are too high")
        assert result.is_opinion is True
        assert result.is_factual is False

    def test_sentiment_needs_margin(self):
        """Sentiment leans only with a margin of more than two cues."""
        text = "growth success win great improve"
        assert self.judge.judge("Report", text, "").sentiment == "positive"
        assert self.judge.judge("Report", "crisis loss", "").sentiment == "neutral"


# -----------------------------------------------------------------------------
# LLM judge
# -----------------------------------------------------------------------------


class TestLLMJudge:
    """Tests for the Ollama judge with a mocked client."""

    def test_valid_response(self):
        payload = json.dumps(
            {
                "qualityScore": 82,
                "biasScore": -10,
                "credibilityScore": 77,
                "sentiment": "Neutral",
                "isOpinion": False,
                "isFactual": True,
            }
        )
        client = _client_returning(payload)
        judge = LLMJudge(model="llama3.2:3b", client=client, breaker=_breaker())

        result = judge.judge("Title", "Desc", "Body", "Reuters")

        assert result.quality_score == 82
        assert result.bias_score == -10
        assert result.sentiment == "neutral"
        assert result.model == "llama3.2:3b"
        kwargs = client.generate.call_args.kwargs
        assert kwargs["format"] == "json"
        assert kwargs["options"] == {"temperature": 0.3}
        assert "Source: Reuters" in kwargs["prompt"]

    def test_is_available(self):
        client = MagicMock()
        assert LLMJudge(client=client, breaker=_breaker()).is_available() is True
        client.list.assert_called_once()

    def test_unreachable_server_is_unavailable(self):
        client = MagicMock()
        client.list.side_effect = ConnectionError("connection refused")
        assert LLMJudge(client=client, breaker=_breaker()).is_available() is False

    def test_out_of_range_values_clamped(self):
        client = _client_returning('{"qualityScore": 150, "biasScore": -300, "credibilityScore": "n/a"}')
        judge = LLMJudge(client=client, breaker=_breaker())
        result = judge.judge("Title")
        assert result.quality_score == 100
        assert result.bias_score == -100
        assert result.credibility_score == 50

    def test_unparseable_response_abstains(self):
        breaker = _breaker()
        judge = LLMJudge(client=_client_returning("I cannot help with that."), breaker=breaker)
        assert judge.judge("Title") is None
        assert breaker.get_status()["failure_count"] == 1

    def test_request_error_abstains(self):
        client = MagicMock()
        client.generate.side_effect = TimeoutError("timed out")
        judge = LLMJudge(client=client, breaker=_breaker())
        assert judge.judge("Title") is None

    def test_open_breaker_skips_call(self):
        """After repeated failures the backend is no longer called."""
        client = MagicMock()
        client.generate.side_effect = ConnectionError("refused")
        breaker = _breaker()
        judge = LLMJudge(client=client, breaker=breaker)

        judge.judge("One")
        judge.judge("Two")
        assert breaker.state == CircuitState.OPEN

        judge.judge("Three")
        assert client.generate.call_count == 2

    def test_prompt_truncates_content(self):
        prompt = build_analysis_prompt("T", None, None, "x" * 5000, max_chars=100)
        assert "x" * 100 in prompt
        assert "x" * 101 not in prompt
        assert "Source: Unknown" in prompt
        assert "Description: N/A" in prompt


# -----------------------------------------------------------------------------
# Fallback chain
# -----------------------------------------------------------------------------


class _RaisingJudge:
    name = "broken"

    def judge(self, *args, **kwargs):
        raise RuntimeError("boom")


class _AbstainingJudge:
    name = "abstains"

    def judge(self, *args, **kwargs):
        return None


class _FixedJudge:
    name = "fixed"

    def __init__(self, analysis):
        self.analysis = analysis

    def judge(self, *args, **kwargs):
        return self.analysis


class TestContentAnalyzer:
    """Tests for judge ordering and fallback."""

    def test_heuristic_appended(self):
        analyzer = ContentAnalyzer([_AbstainingJudge()])
        assert isinstance(analyzer.judges[-1], HeuristicJudge)
        assert analyzer.analyze("Council approves budget").model == "heuristic-v1"

    def test_failing_judge_falls_back(self):
        """A raising judge never fails the analysis."""
        result = ContentAnalyzer([_RaisingJudge()]).analyze("Council approves budget")
        assert result.model == "heuristic-v1"
        assert result.quality_score == 60

    def test_first_answer_wins_and_is_clamped(self):
        analysis = AIAnalysis(140, 0, -20, "ecstatic", False, True, "fixed")
        result = ContentAnalyzer([_FixedJudge(analysis)]).analyze("Title")
        assert result.quality_score == 100
        assert result.credibility_score == 0
        assert result.sentiment == "unknown"
        assert result.analyzed_at is not None

    def test_build_without_llm(self):
        analyzer = build_content_analyzer(Settings(llm_enabled=False))
        assert len(analyzer.judges) == 1

    def test_build_with_llm(self):
        with patch.object(LLMJudge, "is_available", return_value=True):
            analyzer = build_content_analyzer(Settings(llm_model="mistral"))
        assert isinstance(analyzer.judges[0], LLMJudge)
        assert analyzer.judges[0].model == "mistral"

    def test_build_skips_unreachable_llm(self):
        """An enabled but unreachable ollama leaves only the heuristic."""
        with patch.object(LLMJudge, "is_available", return_value=False):
            analyzer = build_content_analyzer(Settings(llm_model="mistral"))
        assert len(analyzer.judges) == 1
        assert isinstance(analyzer.judges[0], HeuristicJudge)
