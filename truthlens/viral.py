"""
Viral story detection.

Finds topics that several publishers covered within the recent window and
records each new one as a viral story. Two grouping strategies:

- ``title_prefix`` (default): articles share the lowercased headline text
  before the first colon, e.g. every "Election Results: ..." headline.
- ``keyword_jaccard``: greedy clustering on headline keyword sets, joining
  an article to the cluster with the best average Jaccard similarity.

A story owns its significant keywords through the ``viral_story_keywords``
table, whose unique constraint stops two detection runs from tracking the same
topic twice.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import RelatedArticle, VerificationStatus, dump_records
from .orm_models import ArticleRecord, ViralStoryKeyword, ViralStoryRecord

logger = logging.getLogger(__name__)

DETECTION_WINDOW_HOURS = 24
MIN_DISTINCT_SOURCES = 3
MAX_CLUSTERS_PER_RUN = 20
MIN_KEYWORD_LENGTH = 4  # significant tokens are longer than 3 characters
DEFAULT_MEMBER_SCORE = 50
JACCARD_THRESHOLD = 0.3

CLUSTER_TITLE_PREFIX = "title_prefix"
CLUSTER_KEYWORD_JACCARD = "keyword_jaccard"
CLUSTER_METHODS = (CLUSTER_TITLE_PREFIX, CLUSTER_KEYWORD_JACCARD)

_WORD_RE = re.compile(r"\b[a-z0-9']+\b")


def topic_signature(title: str) -> str:
    """Lowercased headline text before the first colon."""
    return (title or "").split(":", 1)[0].strip().lower()


def significant_tokens(text: str) -> List[str]:
    """Whitespace tokens longer than three characters, first occurrence order."""
    return list(dict.fromkeys(w for w in text.split() if len(w) >= MIN_KEYWORD_LENGTH))


def headline_keywords(title: str) -> Set[str]:
    return {w for w in _WORD_RE.findall((title or "").lower()) if len(w) >= MIN_KEYWORD_LENGTH}


def keyword_overlap(keywords1: Set[str], keywords2: Set[str]) -> float:
    """Jaccard similarity of two keyword sets (0.0 when either is empty)."""
    if not keywords1 or not keywords2:
        return 0.0
    return len(keywords1 & keywords2) / len(keywords1 | keywords2)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass
class ArticleCluster:
    signature: str
    keywords: List[str]
    articles: List[ArticleRecord] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.articles)

    @property
    def sources(self) -> Set[str]:
        return {a.source_name for a in self.articles}

    @property
    def average_score(self) -> float:
        if not self.articles:
            return 0.0
        scores = [
            DEFAULT_MEMBER_SCORE if a.overall_score is None else a.overall_score
            for a in self.articles
        ]
        return sum(scores) / len(scores)


def virality_score(article_count: int, average_member_score: float) -> float:
    return min(100.0, article_count * 10 + average_member_score * 0.5)


class ViralClusterDetector:
    def __init__(
        self,
        session: Session,
        window_hours: int = DETECTION_WINDOW_HOURS,
        min_sources: int = MIN_DISTINCT_SOURCES,
        max_clusters: int = MAX_CLUSTERS_PER_RUN,
        cluster_method: str = CLUSTER_TITLE_PREFIX,
        similarity_threshold: float = JACCARD_THRESHOLD,
    ):
        if cluster_method not in CLUSTER_METHODS:
            raise ValueError(
                f"Unknown cluster method {cluster_method!r}, expected one of {CLUSTER_METHODS}"
            )
        self.session = session
        self.window_hours = window_hours
        self.min_sources = min_sources
        self.max_clusters = max_clusters
        self.cluster_method = cluster_method
        self.similarity_threshold = similarity_threshold

    def recent_articles(self, now: Optional[datetime] = None) -> List[ArticleRecord]:
        cutoff = (now or datetime.now(UTC)) - timedelta(hours=self.window_hours)
        return list(
            self.session.scalars(
                select(ArticleRecord)
                .where(
                    ArticleRecord.is_active.is_(True),
                    ArticleRecord.published_at >= cutoff,
                )
                .order_by(ArticleRecord.published_at, ArticleRecord.id)
            )
        )

    def _group_by_prefix(self, articles: Sequence[ArticleRecord]) -> List[ArticleCluster]:
        groups: Dict[str, ArticleCluster] = {}
        for article in articles:
            signature = topic_signature(article.title)
            if signature not in groups:
                groups[signature] = ArticleCluster(signature, significant_tokens(signature))
            groups[signature].articles.append(article)
        return list(groups.values())

    def _group_by_keywords(self, articles: Sequence[ArticleRecord]) -> List[ArticleCluster]:
        keyword_sets = {a.id: headline_keywords(a.title) for a in articles}
        groups: List[List[ArticleRecord]] = []

        for article in articles:
            keywords = keyword_sets[article.id]
            best_group = None
            best_similarity = 0.0
            for group in groups:
                similarities = [keyword_overlap(keywords, keyword_sets[m.id]) for m in group]
                average = sum(similarities) / len(similarities)
                if average > best_similarity:
                    best_similarity = average
                    best_group = group
            if best_group is not None and best_similarity >= self.similarity_threshold:
                best_group.append(article)
            else:
                groups.append([article])

        clusters = []
        for group in groups:
            # keywords used by at least half of the members describe the topic
            counts = Counter(k for m in group for k in keyword_sets[m.id])
            quorum = (len(group) + 1) // 2
            shared = sorted(
                (k for k, c in counts.items() if c >= quorum),
                key=lambda k: (-counts[k], k),
            )
            clusters.append(ArticleCluster(" ".join(shared), shared, list(group)))
        return clusters

    def find_clusters(self, articles: Sequence[ArticleRecord]) -> List[ArticleCluster]:
        """Groups covered by enough distinct sources, largest first."""
        if self.cluster_method == CLUSTER_KEYWORD_JACCARD:
            clusters = self._group_by_keywords(articles)
        else:
            clusters = self._group_by_prefix(articles)
        clusters = [c for c in clusters if len(c.sources) >= self.min_sources]
        clusters.sort(key=lambda c: c.count, reverse=True)
        return clusters[: self.max_clusters]

    def is_tracked(self, keywords: Sequence[str]) -> bool:
        """True if any existing story already owns one of these keywords."""
        if not keywords:
            return False
        return (
            self.session.scalar(
                select(ViralStoryKeyword.id)
                .where(ViralStoryKeyword.keyword.in_(list(keywords)))
                .limit(1)
            )
            is not None
        )

    def _create_story(self, cluster: ArticleCluster, now: datetime) -> Optional[ViralStoryRecord]:
        first = cluster.articles[0]
        related = [
            RelatedArticle(
                article_id=a.id,
                url=a.url,
                title=a.title,
                source=a.source_name,
                published_at=_as_utc(a.published_at).isoformat() if a.published_at else None,
                credibility_score=a.overall_score,
            )
            for a in cluster.articles
        ]
        story = ViralStoryRecord(
            title=first.title,
            summary=first.description,
            keywords_json=json.dumps(cluster.keywords),
            virality_score=virality_score(cluster.count, cluster.average_score),
            first_detected=now,
            sources_count=len(cluster.sources),
            velocity=cluster.count / self.window_hours,
            verification_status=VerificationStatus.UNVERIFIED.value,
            confidence_score=0,
            related_articles_json=dump_records(related),
            cluster_method=self.cluster_method,
        )
        story.story_keywords = [ViralStoryKeyword(keyword=k) for k in cluster.keywords]
        try:
            with self.session.begin_nested():
                self.session.add(story)
                self.session.flush()
        except IntegrityError:
            # another run claimed one of the keywords between check and insert
            logger.info(f"Story {cluster.signature!r} already tracked, skipping")
            return None
        return story

    def detect(self, now: Optional[datetime] = None) -> List[ViralStoryRecord]:
        """Create stories for newly viral topics and return them."""
        now = now or datetime.now(UTC)
        articles = self.recent_articles(now)
        clusters = self.find_clusters(articles)
        logger.info(
            f"Found {len(clusters)} candidate clusters among {len(articles)} recent articles"
        )

        created: List[ViralStoryRecord] = []
        for cluster in clusters:
            if not cluster.keywords:
                logger.debug(f"Cluster {cluster.signature!r} has no significant keywords")
                continue
            if self.is_tracked(cluster.keywords):
                continue
            story = self._create_story(cluster, now)
            if story is not None:
                created.append(story)

        logger.info(f"Detected {len(created)} new viral stories")
        return created


# -----------------------------------------------------------------------------
# Story queries
# -----------------------------------------------------------------------------


def get_story(session: Session, story_id: int) -> Optional[ViralStoryRecord]:
    return session.get(ViralStoryRecord, story_id)


def get_trending(session: Session, limit: int = 10) -> List[ViralStoryRecord]:
    return list(
        session.scalars(
            select(ViralStoryRecord)
            .where(ViralStoryRecord.is_trending.is_(True), ViralStoryRecord.is_active.is_(True))
            .order_by(ViralStoryRecord.virality_score.desc(), ViralStoryRecord.id)
            .limit(limit)
        )
    )


def get_unverified(
    session: Session, limit: int = 20, min_virality: float = 30
) -> List[ViralStoryRecord]:
    """Unverified stories viral enough to be worth checking, most viral first."""
    return list(
        session.scalars(
            select(ViralStoryRecord)
            .where(
                ViralStoryRecord.verification_status == VerificationStatus.UNVERIFIED.value,
                ViralStoryRecord.is_active.is_(True),
                ViralStoryRecord.virality_score >= min_virality,
            )
            .order_by(ViralStoryRecord.virality_score.desc(), ViralStoryRecord.id)
            .limit(limit)
        )
    )


def get_fake_news(session: Session, limit: int = 20) -> List[ViralStoryRecord]:
    return list(
        session.scalars(
            select(ViralStoryRecord)
            .where(
                ViralStoryRecord.verification_status.in_(
                    [VerificationStatus.VERIFIED_FALSE.value, VerificationStatus.MISLEADING.value]
                ),
                ViralStoryRecord.is_active.is_(True),
            )
            .order_by(ViralStoryRecord.created_at.desc(), ViralStoryRecord.id.desc())
            .limit(limit)
        )
    )


def get_verified(session: Session, limit: int = 20) -> List[ViralStoryRecord]:
    return list(
        session.scalars(
            select(ViralStoryRecord)
            .where(
                ViralStoryRecord.verification_status.in_(
                    [VerificationStatus.VERIFIED_TRUE.value, VerificationStatus.PARTIALLY_TRUE.value]
                ),
                ViralStoryRecord.is_active.is_(True),
            )
            .order_by(ViralStoryRecord.created_at.desc(), ViralStoryRecord.id.desc())
            .limit(limit)
        )
    )
