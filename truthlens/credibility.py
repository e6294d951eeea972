"""
Source credibility store (filtering layer 2).

This module provides:
- The curated reputation table for well-known publishers
- Domain canonicalization and domain -> source name resolution
- SourceCredibilityStore: get-or-create of source rows, rating updates and
  per-source ingestion statistics

Bias is stored as metadata only; it never changes the credibility score used
by the scoring pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import List, Mapping, Optional
from urllib.parse import urlparse

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .models import (
    BiasRating,
    CredibilityRating,
    CurationStatus,
    FactualReporting,
    RatingSource,
)
from .orm_models import SourceRecord

logger = logging.getLogger(__name__)

UNKNOWN_SOURCE = "Unknown"


@dataclass(frozen=True)
class CuratedRating:
    overall_score: int
    bias_rating: BiasRating
    factual_reporting: FactualReporting


def _rating(score: int, bias: str, factual: str) -> CuratedRating:
    return CuratedRating(score, BiasRating(bias), FactualReporting(factual))


# -----------------------------------------------------------------------------
# Curated publisher ratings
# -----------------------------------------------------------------------------

CURATED_RATINGS: Mapping[str, CuratedRating] = MappingProxyType(
    {
        # Wire services
        "Reuters": _rating(95, "center", "very-high"),
        "Associated Press": _rating(95, "center", "very-high"),
        # Public broadcasters
        "BBC News": _rating(90, "center-left", "high"),
        "BBC": _rating(90, "center-left", "high"),
        "NPR": _rating(88, "center-left", "high"),
        "PBS": _rating(88, "center", "high"),
        # Newspapers
        "The Guardian": _rating(85, "left", "high"),
        "The New York Times": _rating(85, "center-left", "high"),
        "The Washington Post": _rating(85, "center-left", "high"),
        "Wall Street Journal": _rating(85, "center-right", "high"),
        # Business and analysis
        "The Economist": _rating(88, "center", "high"),
        "Financial Times": _rating(88, "center", "high"),
        "Bloomberg": _rating(85, "center", "high"),
        # Cable and international
        "Al Jazeera English": _rating(75, "center-left", "mixed"),
        "CNN": _rating(70, "left", "mixed"),
        "Fox News": _rating(55, "right", "mixed"),
        "MSNBC": _rating(60, "left", "mixed"),
        # Low factual reporting
        "Breitbart News": _rating(35, "right", "low"),
        "The Daily Mail": _rating(45, "right", "low"),
        # Digital
        "BuzzFeed News": _rating(65, "left", "mixed"),
        "Vice News": _rating(70, "left", "high"),
        # Networks and magazines
        "ABC News": _rating(80, "center-left", "high"),
        "CBS News": _rating(80, "center-left", "high"),
        "NBC News": _rating(78, "center-left", "high"),
        "USA Today": _rating(75, "center-left", "high"),
        "Time": _rating(80, "center-left", "high"),
        "Newsweek": _rating(70, "center-left", "mixed"),
        "The Hill": _rating(75, "center", "high"),
        "Politico": _rating(78, "center-left", "high"),
        "The Atlantic": _rating(82, "center-left", "high"),
        "Axios": _rating(82, "center", "high"),
        # Tech and business press
        "Business Insider": _rating(72, "center-left", "high"),
        "TechCrunch": _rating(75, "center-left", "high"),
        "Wired": _rating(78, "center-left", "high"),
        "Ars Technica": _rating(80, "center", "high"),
        "The Verge": _rating(75, "center-left", "high"),
        "Engadget": _rating(75, "center", "high"),
    }
)

# Canonical domain -> source name, for records that arrive without a name
DOMAIN_SOURCE_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "reuters.com": "Reuters",
        "apnews.com": "Associated Press",
        "bbc.com": "BBC News",
        "bbc.co.uk": "BBC News",
        "npr.org": "NPR",
        "pbs.org": "PBS",
        "theguardian.com": "The Guardian",
        "nytimes.com": "The New York Times",
        "washingtonpost.com": "The Washington Post",
        "wsj.com": "Wall Street Journal",
        "economist.com": "The Economist",
        "ft.com": "Financial Times",
        "bloomberg.com": "Bloomberg",
        "aljazeera.com": "Al Jazeera English",
        "cnn.com": "CNN",
        "thehindu.com": "The Hindu",
        "indianexpress.com": "The Indian Express",
        "hindustantimes.com": "Hindustan Times",
        "indiatoday.in": "India Today",
        "ndtv.com": "NDTV",
        "timesofindia.indiatimes.com": "Times of India",
        "economictimes.indiatimes.com": "The Economic Times",
        "business-standard.com": "Business Standard",
        "livemint.com": "Mint",
        "thewire.in": "The Wire",
        "scroll.in": "Scroll.in",
        "thequint.com": "The Quint",
        "theprint.in": "The Print",
    }
)

# Feed and regional hostnames that should resolve to the main domain
DOMAIN_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "bbci.co.uk": "bbc.com",
        "feeds.bbci.co.uk": "bbc.com",
        "feeds.reuters.com": "reuters.com",
        "rss.nytimes.com": "nytimes.com",
        "feeds.washingtonpost.com": "washingtonpost.com",
        "rss.cnn.com": "cnn.com",
        "edition.cnn.com": "cnn.com",
        "feeds.theguardian.com": "theguardian.com",
    }
)


def default_rating() -> CredibilityRating:
    return CredibilityRating()


# -----------------------------------------------------------------------------
# Domain handling
# -----------------------------------------------------------------------------


def canonicalize_domain(url_or_domain: Optional[str]) -> Optional[str]:
    """
    Normalize a URL or bare domain for lookup.

    Lowercases, drops the port, strips one of www./m./mobile./amp. and applies
    DOMAIN_ALIASES.

        >>> canonicalize_domain("https://www.nytimes.com/2024/01/01/story.html")
        'nytimes.com'
        >>> canonicalize_domain("feeds.bbci.co.uk")
        'bbc.com'
    """
    if not url_or_domain or not isinstance(url_or_domain, str):
        return None
    value = url_or_domain.strip()
    if not value:
        return None

    if "://" in value or value.startswith("//"):
        parsed = urlparse(value)
        domain = parsed.netloc or parsed.path.split("/")[0]
    else:
        domain = value.split("/")[0]

    domain = domain.lower().split(":")[0]
    for prefix in ("www.", "m.", "mobile.", "amp."):
        if domain.startswith(prefix):
            domain = domain[len(prefix) :]
            break

    if not domain or "." not in domain:
        return None
    return DOMAIN_ALIASES.get(domain, domain)


def resolve_source_name(name: Optional[str], url: Optional[str] = None) -> str:
    """
    Pick the source name for an article.

    Uses the supplied name when present, otherwise maps the article URL's
    domain to a known publisher, otherwise buckets it under "Unknown".
    """
    if name and name.strip():
        return name.strip()
    domain = canonicalize_domain(url)
    if domain and domain in DOMAIN_SOURCE_NAMES:
        return DOMAIN_SOURCE_NAMES[domain]
    return UNKNOWN_SOURCE


def to_rating(source: SourceRecord) -> CredibilityRating:
    return CredibilityRating(
        overall_score=source.overall_score,
        bias_rating=source.bias_rating,
        factual_reporting=source.factual_reporting,
        rating_source=source.rating_source,
        last_updated=source.last_updated,
    )


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class SourceCredibilityStore:
    """Source rows keyed by unique name, created lazily on first sight."""

    def __init__(self, session: Session):
        self.session = session

    def _find(self, name: str) -> Optional[SourceRecord]:
        return self.session.scalars(
            select(SourceRecord).where(SourceRecord.name == name)
        ).first()

    def _insert_ignore(self, values: dict) -> None:
        """Insert a source row unless one with the same name already exists."""
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        elif dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        else:
            dialect_insert = None

        if dialect_insert is not None:
            stmt = (
                dialect_insert(SourceRecord)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["name"])
            )
            self.session.execute(stmt)
            return

        try:
            with self.session.begin_nested():
                self.session.add(SourceRecord(**values))
        except IntegrityError:
            logger.debug(f"Source {values['name']!r} created concurrently")

    def get_or_create(self, name: str) -> SourceRecord:
        """
        Return the source row for ``name``, creating it if needed.

        New rows take the curated rating when the publisher is known, or the
        neutral default {50, unknown, unknown} otherwise.
        """
        name = (name or "").strip() or UNKNOWN_SOURCE
        source = self._find(name)
        if source is not None:
            return source

        curated = CURATED_RATINGS.get(name)
        values = {
            "name": name,
            "overall_score": curated.overall_score if curated else 50,
            "bias_rating": (
                curated.bias_rating.value if curated else BiasRating.UNKNOWN.value
            ),
            "factual_reporting": (
                curated.factual_reporting.value
                if curated
                else FactualReporting.UNKNOWN.value
            ),
            "rating_source": (
                RatingSource.CURATED.value if curated else RatingSource.DEFAULT.value
            ),
            "last_updated": datetime.now(UTC),
        }
        self._insert_ignore(values)
        source = self._find(name)
        if source is None:
            raise SQLAlchemyError(f"Source {name!r} missing after insert")
        logger.info(f"Registered new source {name!r} (rating={source.overall_score})")
        return source

    def get_credibility(self, name: str) -> CredibilityRating:
        """Rating for a source; storage failures degrade to the neutral default."""
        try:
            with self.session.begin_nested():
                source = self.get_or_create(name)
                return to_rating(source)
        except SQLAlchemyError as e:
            logger.error(f"Error getting credibility for {name!r}: {e}", exc_info=True)
            return default_rating()

    def update(
        self,
        name: str,
        overall_score: int,
        bias_rating: str,
        factual_reporting: str,
        rating_source: str = RatingSource.MANUAL.value,
    ) -> SourceRecord:
        """Set a source's rating, creating the row if it does not exist yet."""
        if not 0 <= overall_score <= 100:
            raise ValueError(f"overall_score must be within 0-100, got {overall_score}")
        bias = BiasRating(bias_rating).value
        factual = FactualReporting(factual_reporting).value
        source_kind = RatingSource(rating_source).value

        source = self.get_or_create(name)
        source.overall_score = overall_score
        source.bias_rating = bias
        source.factual_reporting = factual
        source.rating_source = source_kind
        source.last_updated = datetime.now(UTC)
        self.session.flush()
        logger.info(f"Updated credibility for {name!r}: {overall_score}")
        return source

    def initialize_defaults(self) -> int:
        """Write the curated table into the store. Safe to run repeatedly."""
        for name, rating in CURATED_RATINGS.items():
            self.update(
                name,
                rating.overall_score,
                rating.bias_rating.value,
                rating.factual_reporting.value,
                rating_source=RatingSource.CURATED.value,
            )
        logger.info(f"Initialized {len(CURATED_RATINGS)} default source ratings")
        return len(CURATED_RATINGS)

    def record_article(self, name: str, status: Optional[str] = None) -> None:
        """
        Count a stored article against its source.

        Increments run as single UPDATE statements so concurrent ingestion
        never loses counts.
        """
        source = self.get_or_create(name)
        values = {
            "total_articles_fetched": SourceRecord.total_articles_fetched + 1,
            "last_fetched": datetime.now(UTC),
        }
        if status == CurationStatus.APPROVED.value:
            values["articles_approved"] = SourceRecord.articles_approved + 1
        elif status == CurationStatus.REJECTED.value:
            values["articles_rejected"] = SourceRecord.articles_rejected + 1

        self.session.execute(
            update(SourceRecord)
            .where(SourceRecord.id == source.id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.session.expire(source)

    def list_sources(
        self, enabled: Optional[bool] = True, sort_by: str = "name"
    ) -> List[SourceRecord]:
        stmt = select(SourceRecord)
        if enabled is not None:
            stmt = stmt.where(SourceRecord.is_enabled == enabled)
        order_column = getattr(SourceRecord, sort_by, SourceRecord.name)
        return list(self.session.scalars(stmt.order_by(order_column)))
