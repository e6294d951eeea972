"""
Typed records for TruthLens.

Enums and dataclasses for the filtering layers, viral stories, claims and
fact-checks, plus the pydantic model that validates raw article records handed
over by the aggregator clients.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class BiasRating(str, Enum):
    """Political lean of a publisher (metadata only)."""

    LEFT = "left"
    CENTER_LEFT = "center-left"
    CENTER = "center"
    CENTER_RIGHT = "center-right"
    RIGHT = "right"
    UNKNOWN = "unknown"


class FactualReporting(str, Enum):
    """Factual reporting tier of a publisher."""

    VERY_HIGH = "very-high"
    HIGH = "high"
    MIXED = "mixed"
    LOW = "low"
    VERY_LOW = "very-low"
    UNKNOWN = "unknown"


class RatingSource(str, Enum):
    """Where a source's credibility rating came from."""

    MANUAL = "manual"
    CURATED = "curated"
    DEFAULT = "default"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    UNKNOWN = "unknown"


class CurationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"


class VerificationStatus(str, Enum):
    """Verification state of a viral story (and of individual claims)."""

    UNVERIFIED = "unverified"
    UNDER_REVIEW = "under_review"
    VERIFIED_TRUE = "verified_true"
    VERIFIED_FALSE = "verified_false"
    PARTIALLY_TRUE = "partially_true"
    MISLEADING = "misleading"
    SATIRE = "satire"
    OPINION = "opinion"


class ClaimType(str, Enum):
    FACTUAL = "factual"
    OPINION = "opinion"
    PREDICTION = "prediction"
    QUOTE = "quote"
    STATISTIC = "statistic"
    EVENT = "event"


class FactCheckRating(str, Enum):
    """Shared six-point scale (plus unrated) for fact-checker verdicts."""

    TRUE = "true"
    MOSTLY_TRUE = "mostly_true"
    HALF_TRUE = "half_true"
    MOSTLY_FALSE = "mostly_false"
    FALSE = "false"
    PANTS_ON_FIRE = "pants_on_fire"
    UNRATED = "unrated"


class MisinformationType(str, Enum):
    FABRICATED = "fabricated"
    MANIPULATED = "manipulated"
    OUT_OF_CONTEXT = "out_of_context"
    MISLEADING_HEADLINE = "misleading_headline"
    SATIRE_MISUNDERSTOOD = "satire_misunderstood"
    OLD_NEWS_RECYCLED = "old_news_recycled"
    PARTIAL_TRUTH = "partial_truth"
    NONE = "none"


# -----------------------------------------------------------------------------
# Filtering layers
# -----------------------------------------------------------------------------


@dataclass
class KeywordFilterResult:
    """Layer 1: clickbait / sensational language signals."""

    passed: bool
    score: int
    flagged_keywords: List[str] = field(default_factory=list)
    clickbait_score: int = 0
    sensationalism_score: int = 0
    quality_indicators: List[str] = field(default_factory=list)

    @classmethod
    def neutral(cls) -> KeywordFilterResult:
        return cls(passed=True, score=50)


@dataclass
class CredibilityRating:
    """Layer 2: reputation of the publishing source."""

    overall_score: int = 50
    bias_rating: str = BiasRating.UNKNOWN.value
    factual_reporting: str = FactualReporting.UNKNOWN.value
    rating_source: str = RatingSource.DEFAULT.value
    last_updated: Optional[datetime] = None

    @property
    def source_rating(self) -> int:
        return self.overall_score


@dataclass
class AIAnalysis:
    """Layer 3: content judgment from a language model or the heuristic."""

    quality_score: int
    bias_score: int
    credibility_score: int
    sentiment: str
    is_opinion: bool
    is_factual: bool
    model: str
    analyzed_at: Optional[datetime] = None

    @classmethod
    def neutral(cls, model: str = "unavailable") -> AIAnalysis:
        return cls(
            quality_score=50,
            bias_score=0,
            credibility_score=50,
            sentiment=Sentiment.UNKNOWN.value,
            is_opinion=False,
            is_factual=True,
            model=model,
        )


@dataclass
class FilteringMetadata:
    keyword_filter: KeywordFilterResult
    credibility: CredibilityRating
    ai_analysis: AIAnalysis
    overall_score: int
    is_passing: bool
    filter_version: str = "1.0"


@dataclass
class ScoredArticle:
    """Result of running an article through the scoring pipeline."""

    metadata: FilteringMetadata
    status: CurationStatus
    categories: List[str] = field(default_factory=list)
    failed_layers: List[str] = field(default_factory=list)

    @property
    def overall_score(self) -> int:
        return self.metadata.overall_score


# -----------------------------------------------------------------------------
# Viral story records (stored as JSON text columns)
# -----------------------------------------------------------------------------


@dataclass
class Evidence:
    source: str
    url: str
    supports: bool
    excerpt: str = ""
    credibility_score: int = 50


@dataclass
class ClaimVerification:
    status: str = VerificationStatus.UNVERIFIED.value
    evidence: List[Evidence] = field(default_factory=list)
    confidence_score: int = 0


@dataclass
class Claim:
    text: str
    type: str
    verification: ClaimVerification = field(default_factory=ClaimVerification)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Claim:
        verification = data.get("verification") or {}
        return cls(
            text=data["text"],
            type=data.get("type", ClaimType.FACTUAL.value),
            verification=ClaimVerification(
                status=verification.get("status", VerificationStatus.UNVERIFIED.value),
                evidence=[Evidence(**e) for e in verification.get("evidence", [])],
                confidence_score=verification.get("confidence_score", 0),
            ),
        )


@dataclass
class RelatedArticle:
    article_id: Optional[int]
    url: str
    title: str
    source: str
    published_at: Optional[str] = None  # ISO 8601
    credibility_score: Optional[int] = None


@dataclass
class FactCheck:
    source: str
    url: str
    rating: str
    normalized_rating: str
    summary: str = ""
    checked_at: Optional[str] = None  # ISO 8601


@dataclass
class MisinformationAnalysis:
    type: str = MisinformationType.NONE.value
    flags: List[str] = field(default_factory=list)
    risk_score: int = 0


@dataclass
class VerificationResult:
    status: str
    confidence: int


def dump_records(records: List[Any]) -> str:
    """Serialize a list of dataclass records for a JSON text column."""
    return json.dumps([asdict(r) for r in records], ensure_ascii=False)


def load_records(json_str: Optional[str]) -> List[Dict[str, Any]]:
    if not json_str:
        return []
    return json.loads(json_str)


# -----------------------------------------------------------------------------
# Raw article input (aggregator collaborator contract)
# -----------------------------------------------------------------------------


class RawSource(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None


class RawArticle(BaseModel):
    """Normalized article record supplied by an aggregator client."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str = Field(..., min_length=1)
    title: str = ""
    description: Optional[str] = None
    content: Optional[str] = None
    url_to_image: Optional[str] = Field(None, alias="urlToImage")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    author: Optional[str] = None
    source: RawSource = Field(default_factory=RawSource)
    external_id: Optional[str] = Field(None, alias="externalId")

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        return (v or "").strip() if isinstance(v, str) or v is None else str(v)

    @property
    def source_name(self) -> Optional[str]:
        return self.source.name
