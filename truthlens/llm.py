from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Optional

from .llm_output import (
    CircuitBreaker,
    ContentAnalysisOutput,
    get_circuit_breaker,
    parse_and_validate,
)
from .models import AIAnalysis
from .settings import DEFAULT_LLM_MODEL, DEFAULT_OLLAMA_URL

logger = logging.getLogger(__name__)

CIRCUIT_BREAKER_NAME = "content_analysis"
TEMPERATURE = 0.3

ANALYSIS_PROMPT = """Analyze this news article and provide scores. Be objective and factual.

Title: {title}
Source: {source}
Description: {description}
Content: {content}

Respond ONLY with valid JSON in this exact format:
{{
  "qualityScore": <0-100 based on writing quality, depth, evidence>,
  "biasScore": <-100 to 100, negative=left bias, positive=right bias, 0=neutral>,
  "credibilityScore": <0-100 based on factual claims, sources cited>,
  "sentiment": <"positive" | "neutral" | "negative">,
  "isOpinion": <true if opinion piece, false if factual reporting>,
  "isFactual": <true if fact-based, false if speculation>
}}"""


def build_analysis_prompt(
    title: str,
    source: Optional[str],
    description: Optional[str],
    content: Optional[str],
    max_chars: int = 1500,
) -> str:
    return ANALYSIS_PROMPT.format(
        title=title or "",
        source=source or "Unknown",
        description=description or "N/A",
        content=(content or "")[:max_chars],
    )


class LLMJudge:
    """Content judgment through a local Ollama model."""

    def __init__(
        self,
        base_url: str = DEFAULT_OLLAMA_URL,
        model: str = DEFAULT_LLM_MODEL,
        timeout: float = 15.0,
        max_chars: int = 1500,
        breaker: Optional[CircuitBreaker] = None,
        client=None,
    ):
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.max_chars = max_chars
        self.breaker = breaker or get_circuit_breaker(CIRCUIT_BREAKER_NAME)
        self._client = client

    @property
    def name(self) -> str:
        return self.model

    @property
    def client(self):
        """Lazy initialization of the Ollama client."""
        if self._client is None:
            import ollama

            self._client = ollama.Client(host=self.base_url, timeout=self.timeout)
        return self._client

    def is_available(self) -> bool:
        try:
            self.client.list()
            return True
        except Exception as e:
            logger.warning(f"Ollama service not available: {e}")
            return False

    def judge(
        self,
        title: str,
        description: Optional[str] = None,
        content: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> Optional[AIAnalysis]:
        """
        Ask the model for a content judgment.

        Returns None when the breaker is open, the request fails or times out,
        or the response cannot be parsed. Callers fall back to another judge.
        """
        if not self.breaker.allow_request():
            logger.debug(f"Skipping {self.model}: circuit breaker open")
            return None

        prompt = build_analysis_prompt(
            title, source_name, description, content, self.max_chars
        )
        try:
            response = self.client.generate(
                model=self.model,
                prompt=prompt,
                format="json",
                options={"temperature": TEMPERATURE},
            )
        except Exception as e:
            logger.error(f"Content analysis request to {self.model} failed: {e}")
            self.breaker.record_failure()
            return None

        raw = response.get("response", "") if response else ""
        parsed = parse_and_validate(raw, ContentAnalysisOutput)
        if parsed is None:
            self.breaker.record_failure()
            return None

        self.breaker.record_success()
        return AIAnalysis(
            quality_score=parsed.quality_score,
            bias_score=parsed.bias_score,
            credibility_score=parsed.credibility_score,
            sentiment=parsed.sentiment,
            is_opinion=parsed.is_opinion,
            is_factual=parsed.is_factual,
            model=self.model,
            analyzed_at=datetime.now(UTC),
        )
