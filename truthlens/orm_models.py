"""
SQLAlchemy ORM models for the TruthLens database.

Portable schema definitions for SQLite (development) and PostgreSQL.

Tables:
- Source: publishers with credibility ratings and ingestion stats
- Category: keyword-driven article categories
- Article: ingested articles with flattened filtering metadata
- ViralStory: detected story clusters and their verification state
- ViralStoryKeyword: keyword claims used to de-duplicate story clusters
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import List

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class SourceRecord(Base):
    """News publisher with its credibility rating."""

    __tablename__ = "sources"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    url = Column(Text)
    domain = Column(String(255))
    # Credibility rating
    overall_score = Column(Integer, nullable=False, default=50)
    bias_rating = Column(String(20), nullable=False, default="unknown")
    factual_reporting = Column(String(20), nullable=False, default="unknown")
    rating_source = Column(String(20), nullable=False, default="default")
    last_updated = Column(DateTime, default=_utcnow)
    # Configuration
    is_enabled = Column(Boolean, default=True)
    last_fetched = Column(DateTime)
    # Statistics
    total_articles_fetched = Column(Integer, nullable=False, default=0)
    articles_approved = Column(Integer, nullable=False, default=0)
    articles_rejected = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_utcnow)

    __table_args__ = (Index("idx_sources_domain", "domain"),)


class CategoryRecord(Base):
    """Article category matched by keyword lists."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    keywords_json = Column(Text, nullable=False, default="[]")
    color = Column(String(20), default="#667eea")
    icon = Column(String(50), default="newspaper")
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)

    @property
    def keywords(self) -> List[str]:
        return json.loads(self.keywords_json or "[]")


class ArticleRecord(Base):
    """Ingested article with its multi-layer filtering metadata."""

    __tablename__ = "articles"

    id = Column(Integer, primary_key=True)
    external_id = Column(String(255))
    url = Column(Text, unique=True, nullable=False)
    title = Column(Text, nullable=False, default="")
    description = Column(Text)
    content = Column(Text)
    author = Column(Text)
    url_to_image = Column(Text)
    published_at = Column(DateTime)
    source_id = Column(String(255))
    source_name = Column(String(255), nullable=False, default="Unknown")
    source_url = Column(Text)

    # Layer 1: keyword filter
    keyword_passed = Column(Boolean, default=False)
    flagged_keywords_json = Column(Text, default="[]")
    clickbait_score = Column(Integer, default=0)
    sensationalism_score = Column(Integer, default=0)
    keyword_score = Column(Integer, default=50)
    # Layer 2: source credibility
    source_rating = Column(Integer, default=50)
    bias_rating = Column(String(20), default="unknown")
    factual_reporting = Column(String(20), default="unknown")
    credibility_score = Column(Integer, default=50)
    # Layer 3: content analysis
    ai_quality_score = Column(Integer)
    ai_bias_score = Column(Integer)
    ai_credibility_score = Column(Integer)
    ai_sentiment = Column(String(20), default="unknown")
    ai_is_opinion = Column(Boolean, default=False)
    ai_is_factual = Column(Boolean, default=True)
    ai_model = Column(String(100))
    ai_analyzed_at = Column(DateTime)
    # Weighted combination
    overall_score = Column(Integer, nullable=False, default=50)
    is_passing = Column(Boolean, default=False)
    filter_version = Column(String(10), default="1.0")

    # Curation
    curation_status = Column(String(20), nullable=False, default="pending")
    curated_by = Column(String(255))
    curated_at = Column(DateTime)
    curation_notes = Column(Text)

    categories_json = Column(Text, default="[]")
    # Interactions
    views = Column(Integer, default=0)
    saves = Column(Integer, default=0)
    shares = Column(Integer, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_articles_published", "published_at"),
        Index("idx_articles_source_name", "source_name"),
        Index("idx_articles_curation_status", "curation_status"),
        Index("idx_articles_overall_score", "overall_score"),
        Index(
            "idx_articles_curation_composite",
            "curation_status",
            "overall_score",
            "published_at",
        ),
    )

    @property
    def flagged_keywords(self) -> List[str]:
        return json.loads(self.flagged_keywords_json or "[]")

    @property
    def categories(self) -> List[str]:
        return json.loads(self.categories_json or "[]")

    @property
    def full_text(self) -> str:
        return f"{self.title or ''} {self.description or ''} {self.content or ''}"


class ViralStoryRecord(Base):
    """Cluster of same-topic articles tracked for verification."""

    __tablename__ = "viral_stories"

    id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    summary = Column(Text)
    keywords_json = Column(Text, nullable=False, default="[]")

    # Virality
    virality_score = Column(Float, nullable=False, default=0.0)
    first_detected = Column(DateTime, default=_utcnow)
    sources_count = Column(Integer, nullable=False, default=0)
    velocity = Column(Float, nullable=False, default=0.0)

    # Verification
    verification_status = Column(String(20), nullable=False, default="unverified")
    confidence_score = Column(Integer, nullable=False, default=0)
    last_checked = Column(DateTime)
    checked_by = Column(String(20), default="auto")
    verified_at = Column(DateTime)
    verifier_notes = Column(Text)

    claims_json = Column(Text, nullable=False, default="[]")
    related_articles_json = Column(Text, nullable=False, default="[]")
    fact_checks_json = Column(Text, nullable=False, default="[]")

    # Misinformation analysis
    misinformation_type = Column(String(30), nullable=False, default="none")
    misinformation_flags_json = Column(Text, default="[]")
    misinformation_risk = Column(Integer, default=0)

    cluster_method = Column(String(50), default="title_prefix")
    is_active = Column(Boolean, nullable=False, default=True)
    is_trending = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    story_keywords = relationship(
        "ViralStoryKeyword", back_populates="story", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_viral_stories_virality", "virality_score"),
        Index("idx_viral_stories_status", "verification_status"),
        Index("idx_viral_stories_created", "created_at"),
    )

    @property
    def keywords(self) -> List[str]:
        return json.loads(self.keywords_json or "[]")


class ViralStoryKeyword(Base):
    """
    Keyword claimed by a viral story.

    The unique constraint on ``keyword`` makes "no two stories share a
    significant keyword" hold even when detection runs concurrently.
    """

    __tablename__ = "viral_story_keywords"

    id = Column(Integer, primary_key=True)
    story_id = Column(
        Integer, ForeignKey("viral_stories.id", ondelete="CASCADE"), nullable=False
    )
    keyword = Column(String(100), unique=True, nullable=False)

    story = relationship("ViralStoryRecord", back_populates="story_keywords")

    __table_args__ = (Index("idx_viral_story_keywords_story", "story_id"),)
