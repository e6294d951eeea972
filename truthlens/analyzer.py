"""
Content analysis (filtering layer 3).

A ContentAnalyzer walks an ordered list of judges and returns the first
judgment it gets. The keyword heuristic always sits last, so every article is
judged even when no model backend is reachable.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import List, Optional, Protocol, Sequence

from .llm import LLMJudge
from .models import AIAnalysis, Sentiment
from .settings import Settings
from .text_signals import QUALITY_PHRASES, clamp

logger = logging.getLogger(__name__)

HEURISTIC_MODEL = "heuristic-v1"

OPINION_CUES = (
    "i think",
    "i believe",
    "in my opinion",
    "arguably",
    "seems like",
    "opinion:",
    "editorial:",
    "commentary:",
    "perspective:",
)
SENSATIONAL_CUES = (
    "shocking",
    "breaking",
    "urgent",
    "explosive",
    "bombshell",
    "you won't believe",
    "unbelievable",
    "incredible",
)
POSITIVE_WORDS = ("success", "win", "good", "great", "positive", "growth", "improve")
NEGATIVE_WORDS = ("fail", "loss", "bad", "crisis", "disaster", "decline", "problem")


class TextJudge(Protocol):
    """Anything that can judge an article's content."""

    name: str

    def judge(
        self,
        title: str,
        description: Optional[str] = None,
        content: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> Optional[AIAnalysis]: ...


def _count(cues: Sequence[str], text: str) -> int:
    return sum(1 for cue in cues if cue in text)


class HeuristicJudge:
    """Deterministic judgment from phrase counts. Never fails, never abstains."""

    name = HEURISTIC_MODEL

    def judge(
        self,
        title: str,
        description: Optional[str] = None,
        content: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> AIAnalysis:
        body = (content or "").lower()
        full_text = f"{(title or '').lower()} {(description or '').lower()} {body}"

        quality_matches = _count(QUALITY_PHRASES, full_text)
        opinion_matches = _count(OPINION_CUES, full_text)
        sensational_matches = _count(SENSATIONAL_CUES, full_text)
        positive = _count(POSITIVE_WORDS, full_text)
        negative = _count(NEGATIVE_WORDS, full_text)

        quality = 60 + quality_matches * 5 - sensational_matches * 10 - opinion_matches * 5
        if len(body) > 500:
            quality += 5
        if len(body) > 1000:
            quality += 5
        credibility = clamp(quality + quality_matches * 3)

        sentiment = Sentiment.NEUTRAL
        if positive > negative + 2:
            sentiment = Sentiment.POSITIVE
        elif negative > positive + 2:
            sentiment = Sentiment.NEGATIVE

        return AIAnalysis(
            quality_score=int(clamp(quality)),
            bias_score=0,
            credibility_score=int(credibility),
            sentiment=sentiment.value,
            is_opinion=opinion_matches > 0,
            is_factual=opinion_matches == 0 and sensational_matches < 2,
            model=HEURISTIC_MODEL,
            analyzed_at=datetime.now(UTC),
        )


def _clamped(analysis: AIAnalysis) -> AIAnalysis:
    sentiment = analysis.sentiment
    if sentiment not in {s.value for s in Sentiment}:
        sentiment = Sentiment.UNKNOWN.value
    return replace(
        analysis,
        quality_score=int(clamp(analysis.quality_score)),
        bias_score=int(clamp(analysis.bias_score, -100, 100)),
        credibility_score=int(clamp(analysis.credibility_score)),
        sentiment=sentiment,
        analyzed_at=analysis.analyzed_at or datetime.now(UTC),
    )


class ContentAnalyzer:
    """Try each judge in order; the heuristic is appended if missing."""

    def __init__(self, judges: Optional[List[TextJudge]] = None):
        judges = list(judges or [])
        if not judges or not isinstance(judges[-1], HeuristicJudge):
            judges.append(HeuristicJudge())
        self.judges = judges

    def analyze(
        self,
        title: str,
        description: Optional[str] = None,
        content: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> AIAnalysis:
        for judge in self.judges:
            try:
                result = judge.judge(title, description, content, source_name)
            except Exception as e:
                logger.warning(
                    f"Judge {getattr(judge, 'name', judge)!r} failed: {e}", exc_info=True
                )
                continue
            if result is not None:
                return _clamped(result)
            logger.debug(f"Judge {getattr(judge, 'name', judge)!r} abstained")
        # Only reachable if the trailing heuristic itself raised
        return AIAnalysis.neutral(model=HEURISTIC_MODEL)


def build_content_analyzer(settings: Settings) -> ContentAnalyzer:
    """Heuristic-only analyzer unless the LLM is enabled and ollama answers."""
    judges: List[TextJudge] = []
    if settings.llm_enabled:
        judge = LLMJudge(
            base_url=settings.ollama_base_url,
            model=settings.llm_model,
            timeout=settings.llm_timeout,
            max_chars=settings.content_max_chars,
        )
        if judge.is_available():
            judges.append(judge)
        else:
            logger.warning(
                f"LLM judge {settings.llm_model!r} unavailable at "
                f"{settings.ollama_base_url}, using heuristic analysis only"
            )
    return ContentAnalyzer(judges)
