"""
Article scoring pipeline.

Runs the three filtering layers for an article, combines them into a 0-100
overall score with fixed weights and maps that score onto a curation status.

    keyword  (text_signals)  -> 20%
    credibility (source)     -> 30%
    ai quality               -> 25%
    ai credibility           -> 10%
    engagement               -> 15%   (constant 50 until interaction data exists)

A layer that fails or is missing counts as a neutral 50, so every article
always gets an overall score.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import UTC, datetime
from typing import Optional, Protocol

from .analyzer import ContentAnalyzer
from .categories import CategoryClassifier
from .credibility import SourceCredibilityStore, default_rating, resolve_source_name
from .models import (
    AIAnalysis,
    CredibilityRating,
    CurationStatus,
    FilteringMetadata,
    KeywordFilterResult,
    ScoredArticle,
)
from .orm_models import ArticleRecord
from .settings import ScoringThresholds, ScoringWeights
from .text_signals import analyze_text_signals, clamp, round_half_up

logger = logging.getLogger(__name__)

FILTER_VERSION = "1.0"
NEUTRAL_SCORE = 50
ENGAGEMENT_SCORE = 50


class ScorableArticle(Protocol):
    title: str
    description: Optional[str]
    content: Optional[str]
    source_name: Optional[str]


def compute_overall_score(
    keyword: Optional[int],
    credibility: Optional[int],
    ai_quality: Optional[int],
    ai_credibility: Optional[int],
    weights: ScoringWeights = ScoringWeights(),
    engagement: int = ENGAGEMENT_SCORE,
) -> int:
    """Weighted sum of the layer scores; a None layer counts as 50."""

    def value(score: Optional[int]) -> float:
        return NEUTRAL_SCORE if score is None else score

    total = (
        value(keyword) * weights.keyword
        + value(credibility) * weights.credibility
        + value(ai_quality) * weights.ai_quality
        + value(ai_credibility) * weights.ai_credibility
        + engagement * weights.engagement
    )
    return round_half_up(clamp(total))


def decide_status(
    overall_score: int, thresholds: ScoringThresholds = ScoringThresholds()
) -> CurationStatus:
    if overall_score >= thresholds.approve:
        return CurationStatus.APPROVED
    if overall_score < thresholds.reject:
        return CurationStatus.REJECTED
    return CurationStatus.PENDING


class ArticleScoringPipeline:
    """
    Scores articles and writes the results onto article records.

    The content judgment runs on a worker thread while the keyword and
    credibility layers run on the caller's thread (the credibility store uses
    the caller's session, which must not cross threads). The join waits at most
    ``ai_timeout`` seconds before treating the layer as failed.
    """

    def __init__(
        self,
        credibility_store: SourceCredibilityStore,
        content_analyzer: Optional[ContentAnalyzer] = None,
        categorizer: Optional[CategoryClassifier] = None,
        weights: Optional[ScoringWeights] = None,
        thresholds: Optional[ScoringThresholds] = None,
        max_workers: int = 4,
        ai_timeout: float = 30.0,
    ):
        self.credibility_store = credibility_store
        self.content_analyzer = content_analyzer or ContentAnalyzer()
        self.categorizer = categorizer or CategoryClassifier()
        self.weights = weights or ScoringWeights()
        self.thresholds = thresholds or ScoringThresholds()
        self.ai_timeout = ai_timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="truthlens-score"
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> ArticleScoringPipeline:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def score(self, article: ScorableArticle) -> ScoredArticle:
        title = article.title or ""
        description = article.description
        content = article.content
        source_name = resolve_source_name(
            getattr(article, "source_name", None), getattr(article, "url", None)
        )
        failed = []

        ai_future = self._executor.submit(
            self.content_analyzer.analyze, title, description, content, source_name
        )

        try:
            keyword = analyze_text_signals(title, description or "", content or "")
        except Exception as e:
            logger.error(f"Keyword layer failed for {title[:60]!r}: {e}", exc_info=True)
            keyword = KeywordFilterResult.neutral()
            failed.append("keyword")

        try:
            credibility = self.credibility_store.get_credibility(source_name)
        except Exception as e:
            logger.error(f"Credibility layer failed for {source_name!r}: {e}", exc_info=True)
            credibility = default_rating()
            failed.append("credibility")

        try:
            ai = ai_future.result(timeout=self.ai_timeout)
        except FutureTimeout:
            logger.warning(
                f"Content analysis timed out after {self.ai_timeout}s for {title[:60]!r}"
            )
            ai_future.cancel()
            ai = AIAnalysis.neutral()
            failed.append("ai")
        except Exception as e:
            logger.error(f"Content analysis failed for {title[:60]!r}: {e}", exc_info=True)
            ai = AIAnalysis.neutral()
            failed.append("ai")

        overall = compute_overall_score(
            keyword.score,
            credibility.overall_score,
            ai.quality_score,
            ai.credibility_score,
            self.weights,
        )
        status = decide_status(overall, self.thresholds)

        try:
            categories = self.categorizer.categorize(title, description)
        except Exception as e:
            logger.error(f"Categorization failed for {title[:60]!r}: {e}", exc_info=True)
            categories = []

        if failed:
            logger.info(f"Scored {title[:60]!r} with neutral fallback for {failed}")

        return ScoredArticle(
            metadata=FilteringMetadata(
                keyword_filter=keyword,
                credibility=credibility,
                ai_analysis=ai,
                overall_score=overall,
                is_passing=overall >= self.thresholds.passing,
                filter_version=FILTER_VERSION,
            ),
            status=status,
            categories=categories,
            failed_layers=failed,
        )

    def apply(self, record: ArticleRecord, scored: ScoredArticle) -> ArticleRecord:
        """
        Copy a scoring result onto an article record.

        A status set by a curator (``curated_by``) is left alone; only the
        scores are refreshed.
        """
        write_metadata(record, scored.metadata)
        record.categories_json = _dump_list(scored.categories)
        if record.curated_by is None:
            record.curation_status = scored.status.value
        record.updated_at = datetime.now(UTC)
        return record

    def score_record(self, record: ArticleRecord) -> ScoredArticle:
        scored = self.score(record)
        self.apply(record, scored)
        return scored


def _dump_list(values) -> str:
    return json.dumps(list(values))


def write_metadata(record: ArticleRecord, metadata: FilteringMetadata) -> None:
    kw = metadata.keyword_filter
    record.keyword_passed = kw.passed
    record.flagged_keywords_json = _dump_list(kw.flagged_keywords)
    record.clickbait_score = kw.clickbait_score
    record.sensationalism_score = kw.sensationalism_score
    record.keyword_score = kw.score

    cred: CredibilityRating = metadata.credibility
    record.source_rating = cred.source_rating
    record.bias_rating = cred.bias_rating
    record.factual_reporting = cred.factual_reporting
    record.credibility_score = cred.overall_score

    ai = metadata.ai_analysis
    record.ai_quality_score = ai.quality_score
    record.ai_bias_score = ai.bias_score
    record.ai_credibility_score = ai.credibility_score
    record.ai_sentiment = ai.sentiment
    record.ai_is_opinion = ai.is_opinion
    record.ai_is_factual = ai.is_factual
    record.ai_model = ai.model
    record.ai_analyzed_at = ai.analyzed_at

    record.overall_score = metadata.overall_score
    record.is_passing = metadata.is_passing
    record.filter_version = metadata.filter_version
