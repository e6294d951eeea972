"""
Batch jobs for the periodic pipeline runs.

Each job is a finite run over a bounded window: viral detection looks at the
last 24 hours, verification takes a capped batch of unverified stories. When
to fire them is left to the caller (cron, a scheduler, a CLI).

Jobs open their own ``session_scope()`` unless a session is passed in. A
failure of a single story is logged and skipped; a failure of the store
itself propagates out of the job.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from .analyzer import build_content_analyzer
from .articles import cleanup_old_articles, reprocess_articles
from .categories import CategoryClassifier, initialize_default_categories
from .credibility import SourceCredibilityStore
from .db import session_scope
from .logging_config import log_timing
from .pipeline import ArticleScoringPipeline
from .settings import Settings, get_settings
from .verification import CrossSourceVerifier
from .viral import ViralClusterDetector, get_unverified

logger = logging.getLogger(__name__)

VERIFICATION_BATCH_SIZE = 10
MIN_VIRALITY_FOR_VERIFICATION = 30

# Overlapping detection runs would race for the same clusters
_detection_lock = threading.Lock()


@dataclass
class VerificationBatchReport:
    stories: int = 0
    failed: int = 0
    statuses: Dict[str, int] = field(default_factory=dict)


@contextmanager
def _job_session(session: Optional[Session]) -> Iterator[Session]:
    if session is not None:
        yield session
        return
    with session_scope() as scoped:
        yield scoped


def build_pipeline(
    session: Session, settings: Optional[Settings] = None
) -> ArticleScoringPipeline:
    """Scoring pipeline wired from settings and the categories in the store."""
    settings = settings or get_settings()
    return ArticleScoringPipeline(
        credibility_store=SourceCredibilityStore(session),
        content_analyzer=build_content_analyzer(settings),
        categorizer=CategoryClassifier.from_session(session),
        weights=settings.weights,
        thresholds=settings.thresholds,
        max_workers=settings.scoring_workers,
        ai_timeout=settings.llm_timeout * 2,
    )


@log_timing("initial_setup")
def run_initial_setup(session: Optional[Session] = None) -> Dict[str, int]:
    """Seed the default categories and the curated source ratings."""
    with _job_session(session) as sess:
        categories = initialize_default_categories(sess)
        sources = SourceCredibilityStore(sess).initialize_defaults()
    logger.info(f"Initial setup: {categories} categories, {sources} sources")
    return {"categories": categories, "sources": sources}


@log_timing("viral_detection", count_field="stories_count")
def run_viral_detection(
    session: Optional[Session] = None, cluster_method: str = "title_prefix"
) -> List[int]:
    """Detect newly viral stories; returns the ids of the stories created."""
    if not _detection_lock.acquire(blocking=False):
        logger.info("Viral detection skipped - another run in progress")
        return []
    try:
        with _job_session(session) as sess:
            stories = ViralClusterDetector(sess, cluster_method=cluster_method).detect()
            return [story.id for story in stories]
    finally:
        _detection_lock.release()


@log_timing("verification_batch", count_field="stories_count")
def run_verification_batch(
    session: Optional[Session] = None,
    limit: int = VERIFICATION_BATCH_SIZE,
    min_virality: float = MIN_VIRALITY_FOR_VERIFICATION,
    max_workers: int = 4,
) -> VerificationBatchReport:
    """Verify the most viral unverified stories, one savepoint per story."""
    report = VerificationBatchReport()
    with _job_session(session) as sess:
        verifier = CrossSourceVerifier(sess, max_workers=max_workers)
        story_ids = [s.id for s in get_unverified(sess, limit=limit, min_virality=min_virality)]
        for story_id in story_ids:
            try:
                with sess.begin_nested():
                    story = verifier.verify(story_id)
            except Exception as e:
                logger.error(f"Verification failed for story {story_id}: {e}", exc_info=True)
                report.failed += 1
                continue
            report.stories += 1
            status = story.verification_status
            report.statuses[status] = report.statuses.get(status, 0) + 1

    logger.info(
        f"Verification batch: {report.stories} verified, {report.failed} failed "
        f"({report.statuses})"
    )
    return report


@log_timing("article_cleanup", count_field="articles_count")
def run_cleanup(session: Optional[Session] = None, days: int = 30) -> int:
    with _job_session(session) as sess:
        return cleanup_old_articles(sess, days=days)


@log_timing("article_reprocess", count_field="articles_count")
def run_reprocess(
    session: Optional[Session] = None,
    settings: Optional[Settings] = None,
    batch_size: int = 100,
) -> int:
    """Re-score every stored article with the current weights and judges."""
    with _job_session(session) as sess:
        with build_pipeline(sess, settings) as pipeline:
            return reprocess_articles(sess, pipeline, batch_size=batch_size)
