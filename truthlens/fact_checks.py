"""
Fact-checking organization registry and rating normalization.

The registry is a fixed lookup table; organizations are not queried live.
Raw verdicts in each organization's own vocabulary are mapped onto one
six-point scale so they can be weighed together.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Mapping, Optional
from urllib.parse import quote_plus

from .models import FactCheck, FactCheckRating


@dataclass(frozen=True)
class FactCheckSource:
    name: str
    domain: str
    search_url: str
    country: str
    credibility_score: int

    def search_link(self, query: str) -> str:
        return f"{self.search_url}{quote_plus(query)}"


OTHER_SOURCE = "other"

FACT_CHECK_SOURCES: Mapping[str, FactCheckSource] = MappingProxyType(
    {
        "alt_news": FactCheckSource(
            "Alt News", "altnews.in", "https://www.altnews.in/?s=", "india", 82
        ),
        "boom_live": FactCheckSource(
            "Boom Live", "boomlive.in", "https://www.boomlive.in/search?q=", "india", 80
        ),
        "snopes": FactCheckSource(
            "Snopes", "snopes.com", "https://www.snopes.com/?s=", "usa", 85
        ),
        "politifact": FactCheckSource(
            "PolitiFact",
            "politifact.com",
            "https://www.politifact.com/search/?q=",
            "usa",
            88,
        ),
        "factcheck_org": FactCheckSource(
            "FactCheck.org", "factcheck.org", "https://www.factcheck.org/?s=", "usa", 90
        ),
        "afp_factcheck": FactCheckSource(
            "AFP Fact Check",
            "factcheck.afp.com",
            "https://factcheck.afp.com/search?search=",
            "international",
            92,
        ),
        "reuters_factcheck": FactCheckSource(
            "Reuters Fact Check",
            "reuters.com/fact-check",
            "https://www.reuters.com/site-search/?query=",
            "international",
            95,
        ),
    }
)

# Organization verdict vocabularies, lowercased with punctuation collapsed
RATING_ALIASES: Mapping[str, FactCheckRating] = MappingProxyType(
    {
        # six-point scale itself
        "true": FactCheckRating.TRUE,
        "mostly true": FactCheckRating.MOSTLY_TRUE,
        "half true": FactCheckRating.HALF_TRUE,
        "mostly false": FactCheckRating.MOSTLY_FALSE,
        "false": FactCheckRating.FALSE,
        "pants on fire": FactCheckRating.PANTS_ON_FIRE,
        # Snopes
        "correct attribution": FactCheckRating.TRUE,
        "mixture": FactCheckRating.HALF_TRUE,
        "miscaptioned": FactCheckRating.MOSTLY_FALSE,
        "misattributed": FactCheckRating.FALSE,
        "fake": FactCheckRating.FALSE,
        "scam": FactCheckRating.FALSE,
        "labeled satire": FactCheckRating.UNRATED,
        "unproven": FactCheckRating.UNRATED,
        # AFP / Reuters / Alt News / Boom
        "accurate": FactCheckRating.TRUE,
        "correct": FactCheckRating.TRUE,
        "verified": FactCheckRating.TRUE,
        "partly false": FactCheckRating.HALF_TRUE,
        "partly true": FactCheckRating.HALF_TRUE,
        "half truth": FactCheckRating.HALF_TRUE,
        "missing context": FactCheckRating.HALF_TRUE,
        "misleading": FactCheckRating.MOSTLY_FALSE,
        "altered": FactCheckRating.FALSE,
        "fabricated": FactCheckRating.FALSE,
        "incorrect": FactCheckRating.FALSE,
        "no evidence": FactCheckRating.FALSE,
        "hoax": FactCheckRating.FALSE,
        "satire": FactCheckRating.UNRATED,
    }
)

SUPPORTING_RATINGS = frozenset({FactCheckRating.TRUE.value, FactCheckRating.MOSTLY_TRUE.value})
CONTRADICTING_RATINGS = frozenset(
    {
        FactCheckRating.FALSE.value,
        FactCheckRating.MOSTLY_FALSE.value,
        FactCheckRating.PANTS_ON_FIRE.value,
    }
)

_PUNCT_RE = re.compile(r"[\s_\-!.:]+")


def normalize_rating(raw: Optional[str]) -> str:
    """
    Map an organization's verdict onto the shared scale.

        >>> normalize_rating("Pants on Fire!")
        'pants_on_fire'
        >>> normalize_rating("Mixture")
        'half_true'

    Unknown or empty verdicts are "unrated".
    """
    if not raw:
        return FactCheckRating.UNRATED.value
    key = _PUNCT_RE.sub(" ", raw.lower()).strip()
    rating = RATING_ALIASES.get(key)
    return (rating or FactCheckRating.UNRATED).value


def get_fact_check_source(source_id: str) -> Optional[FactCheckSource]:
    return FACT_CHECK_SOURCES.get(source_id)


def make_fact_check(
    source: str,
    url: str,
    rating: str,
    summary: str = "",
    checked_at: Optional[datetime] = None,
) -> FactCheck:
    """Build a fact-check entry; unregistered organizations are filed as "other"."""
    source_id = source if source in FACT_CHECK_SOURCES else OTHER_SOURCE
    return FactCheck(
        source=source_id,
        url=url,
        rating=rating,
        normalized_rating=normalize_rating(rating),
        summary=summary,
        checked_at=(checked_at or datetime.now(UTC)).isoformat(),
    )
