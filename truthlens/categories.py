"""
Keyword-driven article categories.

An article joins every active category whose keyword list has at least one
case-insensitive substring hit in its title or description.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from .orm_models import CategoryRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryDefinition:
    name: str
    slug: str
    keywords: Tuple[str, ...]
    color: str = "#667eea"
    icon: str = "newspaper"
    display_order: int = 0


DEFAULT_CATEGORIES: Tuple[CategoryDefinition, ...] = (
    CategoryDefinition(
        "Politics",
        "politics",
        ("government", "election", "president", "congress", "senate",
         "parliament", "vote", "democrat", "republican", "policy"),
        "#e74c3c",
        "landmark",
        0,
    ),
    CategoryDefinition(
        "Technology",
        "technology",
        ("tech", "software", "hardware", "AI", "artificial intelligence",
         "startup", "app", "digital", "cyber", "robot"),
        "#3498db",
        "microchip",
        1,
    ),
    CategoryDefinition(
        "Business",
        "business",
        ("economy", "market", "stock", "finance", "company", "CEO",
         "investment", "trade", "profit", "revenue"),
        "#27ae60",
        "briefcase",
        2,
    ),
    CategoryDefinition(
        "Science",
        "science",
        ("research", "study", "scientist", "discovery", "experiment", "space",
         "NASA", "physics", "biology", "chemistry"),
        "#9b59b6",
        "flask",
        3,
    ),
    CategoryDefinition(
        "Health",
        "health",
        ("medical", "doctor", "hospital", "disease", "treatment", "vaccine",
         "drug", "health", "patient", "FDA"),
        "#1abc9c",
        "heart-pulse",
        4,
    ),
    CategoryDefinition(
        "Sports",
        "sports",
        ("game", "team", "player", "championship", "score", "league", "coach",
         "athlete", "tournament", "match"),
        "#f39c12",
        "football",
        5,
    ),
    CategoryDefinition(
        "Entertainment",
        "entertainment",
        ("movie", "film", "music", "celebrity", "actor", "singer", "album",
         "show", "TV", "streaming"),
        "#e91e63",
        "film",
        6,
    ),
    CategoryDefinition(
        "World",
        "world",
        ("international", "global", "foreign", "country", "nation", "war",
         "peace", "treaty", "UN", "diplomat"),
        "#00bcd4",
        "globe",
        7,
    ),
    CategoryDefinition(
        "Environment",
        "environment",
        ("climate", "environment", "pollution", "carbon", "renewable", "green",
         "sustainable", "wildlife", "ocean", "forest"),
        "#4caf50",
        "leaf",
        8,
    ),
    CategoryDefinition(
        "Education",
        "education",
        ("school", "university", "college", "student", "teacher", "education",
         "learning", "academic", "degree", "curriculum"),
        "#ff9800",
        "graduation-cap",
        9,
    ),
)


class CategoryClassifier:
    """Matches article text against a fixed set of category keyword lists."""

    def __init__(self, categories: Sequence[CategoryDefinition] = DEFAULT_CATEGORIES):
        self._categories = tuple(
            (c.slug, tuple(k.lower() for k in c.keywords)) for c in categories
        )

    @classmethod
    def from_session(cls, session: Session) -> CategoryClassifier:
        """Build a classifier from the active categories stored in the database."""
        rows = session.scalars(
            select(CategoryRecord)
            .where(CategoryRecord.is_active.is_(True))
            .order_by(CategoryRecord.display_order)
        ).all()
        if not rows:
            logger.debug("No stored categories, using defaults")
            return cls()
        return cls(
            [
                CategoryDefinition(r.name, r.slug, tuple(r.keywords))
                for r in rows
            ]
        )

    def categorize(self, title: str, description: Optional[str] = None) -> List[str]:
        text = f"{title or ''} {description or ''}".lower()
        return [
            slug
            for slug, keywords in self._categories
            if any(keyword in text for keyword in keywords)
        ]


def initialize_default_categories(session: Session) -> int:
    """Upsert the default categories by slug. Safe to run repeatedly."""
    for definition in DEFAULT_CATEGORIES:
        record = session.scalars(
            select(CategoryRecord).where(CategoryRecord.slug == definition.slug)
        ).first()
        if record is None:
            record = CategoryRecord(slug=definition.slug)
            session.add(record)
        record.name = definition.name
        record.keywords_json = json.dumps(list(definition.keywords))
        record.color = definition.color
        record.icon = definition.icon
        record.display_order = definition.display_order
        record.is_active = True
    session.flush()
    logger.info(f"Initialized {len(DEFAULT_CATEGORIES)} default categories")
    return len(DEFAULT_CATEGORIES)
