"""
Article ingestion and queries.

Raw records handed over by aggregator clients are validated, de-duplicated by
URL, scored once through the pipeline and stored. Source statistics are
updated for every stored article.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union
from urllib.parse import urlparse

from pydantic import ValidationError
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .credibility import SourceCredibilityStore, resolve_source_name
from .models import CurationStatus, RawArticle
from .orm_models import ArticleRecord
from .pipeline import ArticleScoringPipeline

logger = logging.getLogger(__name__)

REMOVED_PLACEHOLDER = "[Removed]"

RawInput = Union[RawArticle, Mapping[str, Any]]


class InvalidArticleError(ValueError):
    """Raw article record violates the input contract (e.g. has no URL)."""


class ArticleNotFoundError(LookupError):
    pass


@dataclass
class IngestionReport:
    fetched: int = 0
    unique: int = 0
    stored: int = 0
    duplicates: int = 0
    rejected: int = 0
    skipped: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def parse_raw_article(data: RawInput) -> RawArticle:
    """Validate a raw record; contract violations become InvalidArticleError."""
    if isinstance(data, RawArticle):
        return data
    try:
        return RawArticle.model_validate(data)
    except ValidationError as e:
        raise InvalidArticleError(f"Invalid article record: {e.errors()[:3]}") from e


def is_removed_placeholder(raw: RawArticle) -> bool:
    """Aggregators replace taken-down articles with a '[Removed]' stub."""
    return raw.title == REMOVED_PLACEHOLDER or raw.content == REMOVED_PLACEHOLDER


def _origin(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ArticleIngestor:
    """Stores raw articles, scoring each one as it is created."""

    def __init__(
        self,
        session: Session,
        pipeline: ArticleScoringPipeline,
        credibility_store: Optional[SourceCredibilityStore] = None,
    ):
        self.session = session
        self.pipeline = pipeline
        self.credibility_store = credibility_store or pipeline.credibility_store

    def exists(self, url: str) -> bool:
        return (
            self.session.scalar(select(ArticleRecord.id).where(ArticleRecord.url == url))
            is not None
        )

    def ingest(self, data: RawInput) -> Optional[ArticleRecord]:
        """
        Store one raw article.

        Returns the new record, or None when the URL is already stored
        (including a concurrent insert of the same URL).

        Raises:
            InvalidArticleError: the record has no usable URL.
        """
        raw = parse_raw_article(data)
        if self.exists(raw.url):
            logger.debug(f"Skipping duplicate article {raw.url}")
            return None

        record = ArticleRecord(
            external_id=raw.external_id,
            url=raw.url,
            title=raw.title,
            description=raw.description,
            content=raw.content,
            author=raw.author,
            url_to_image=raw.url_to_image,
            published_at=_as_utc(raw.published_at),
            source_id=raw.source.id,
            source_name=resolve_source_name(raw.source_name, raw.url),
            source_url=raw.source.url or _origin(raw.url),
        )
        scored = self.pipeline.score(record)
        self.pipeline.apply(record, scored)

        try:
            with self.session.begin_nested():
                self.session.add(record)
        except IntegrityError:
            logger.debug(f"Article {raw.url} stored concurrently, skipping")
            return None

        self.credibility_store.record_article(record.source_name, record.curation_status)
        logger.info(
            f"Stored article {record.title[:50]!r} - score {record.overall_score} "
            f"({record.curation_status})"
        )
        return record

    def ingest_many(self, records: Iterable[RawInput]) -> IngestionReport:
        """
        Store a batch of raw articles.

        Records without a URL or repeating a URL earlier in the batch are
        dropped before processing; '[Removed]' stubs are skipped; invalid
        records are counted as rejected and never stop the batch.
        """
        report = IngestionReport()
        seen = set()
        pending: List[RawInput] = []
        for data in records:
            report.fetched += 1
            url = data.url if isinstance(data, RawArticle) else (data or {}).get("url")
            if isinstance(url, str):
                url = url.strip()
            if url and url in seen:
                continue
            if url:
                seen.add(url)
            pending.append(data)
        report.unique = len(seen)

        for data in pending:
            try:
                raw = parse_raw_article(data)
            except InvalidArticleError as e:
                logger.warning(f"Rejected article record: {e}")
                report.rejected += 1
                continue
            if is_removed_placeholder(raw):
                report.skipped += 1
                continue
            if self.ingest(raw) is None:
                report.duplicates += 1
            else:
                report.stored += 1

        logger.info(
            f"Ingestion complete: {report.stored} stored, {report.duplicates} duplicates, "
            f"{report.rejected} rejected, {report.skipped} skipped",
            extra={"articles_count": report.stored},
        )
        return report


def ingest_article(
    session: Session, pipeline: ArticleScoringPipeline, data: RawInput
) -> Optional[ArticleRecord]:
    return ArticleIngestor(session, pipeline).ingest(data)


def ingest_articles(
    session: Session, pipeline: ArticleScoringPipeline, records: Iterable[RawInput]
) -> IngestionReport:
    return ArticleIngestor(session, pipeline).ingest_many(records)


# -----------------------------------------------------------------------------
# Queries and curation
# -----------------------------------------------------------------------------


def find_passing_articles(
    session: Session,
    min_score: int = 60,
    status: Optional[str] = CurationStatus.APPROVED.value,
    limit: int = 20,
    offset: int = 0,
    categories: Optional[Sequence[str]] = None,
    sources: Optional[Sequence[str]] = None,
) -> List[ArticleRecord]:
    """Active articles at or above ``min_score``, newest first."""
    stmt = select(ArticleRecord).where(
        ArticleRecord.is_active.is_(True),
        ArticleRecord.overall_score >= min_score,
    )
    if status:
        stmt = stmt.where(ArticleRecord.curation_status == status)
    if categories:
        stmt = stmt.where(
            or_(
                *[
                    ArticleRecord.categories_json.like(f"%{json.dumps(slug)}%")
                    for slug in categories
                ]
            )
        )
    if sources:
        stmt = stmt.where(ArticleRecord.source_name.in_(list(sources)))
    stmt = (
        stmt.order_by(ArticleRecord.published_at.desc(), ArticleRecord.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(session.scalars(stmt))


def get_article(session: Session, article_id: int) -> ArticleRecord:
    article = session.get(ArticleRecord, article_id)
    if article is None:
        raise ArticleNotFoundError(f"Article {article_id} not found")
    return article


def set_curation_status(
    session: Session,
    article_id: int,
    status: str,
    curated_by: str,
    notes: Optional[str] = None,
) -> ArticleRecord:
    """Manually curate an article. Later rescoring keeps this status."""
    status = CurationStatus(status).value
    article = get_article(session, article_id)
    article.curation_status = status
    article.curated_by = curated_by
    article.curated_at = datetime.now(UTC)
    if notes is not None:
        article.curation_notes = notes
    session.flush()
    logger.info(f"Article {article_id} marked {status} by {curated_by}")
    return article


def reprocess_articles(
    session: Session, pipeline: ArticleScoringPipeline, batch_size: int = 100
) -> int:
    """Re-score every stored article, in id order, one batch at a time."""
    processed = 0
    last_id = 0
    while True:
        batch = list(
            session.scalars(
                select(ArticleRecord)
                .where(ArticleRecord.id > last_id)
                .order_by(ArticleRecord.id)
                .limit(batch_size)
            )
        )
        if not batch:
            break
        for article in batch:
            try:
                pipeline.score_record(article)
                processed += 1
            except Exception as e:
                logger.error(f"Failed to reprocess article {article.id}: {e}", exc_info=True)
        last_id = batch[-1].id
        session.flush()
        logger.info(f"Reprocessed {processed} articles...")
    return processed


def cleanup_old_articles(session: Session, days: int = 30) -> int:
    """
    Soft-delete articles older than ``days`` unless they were approved.

    Age is taken from the publish date, or the ingestion date when the
    aggregator did not supply one.
    """
    cutoff = datetime.now(UTC) - timedelta(days=days)
    published = func.coalesce(ArticleRecord.published_at, ArticleRecord.created_at)
    result = session.execute(
        update(ArticleRecord)
        .where(
            ArticleRecord.is_active.is_(True),
            published < cutoff,
            ArticleRecord.curation_status != CurationStatus.APPROVED.value,
        )
        .values(is_active=False, updated_at=datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )
    removed = result.rowcount or 0
    logger.info(f"Cleanup complete: deactivated {removed} old articles")
    return removed
