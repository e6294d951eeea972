"""
Cross-source verification of viral stories.

A verification run moves a story from ``under_review`` to a concrete status:

1. Claims are extracted once from the story's related articles.
2. Every claim is matched against the text of each related article; articles
   sharing enough of the claim's words count as evidence.
3. Claim evidence and the story's fact-checks are combined into a status and a
   confidence that measures distance from a 50/50 split.
4. A high misinformation risk downgrades the result by one notch.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .claims import extract_claims
from .fact_checks import CONTRADICTING_RATINGS, SUPPORTING_RATINGS, make_fact_check
from .misinformation import analyze_for_misinformation, is_high_risk
from .models import (
    Claim,
    ClaimVerification,
    Evidence,
    FactCheck,
    FactCheckRating,
    MisinformationAnalysis,
    MisinformationType,
    VerificationResult,
    VerificationStatus,
    dump_records,
    load_records,
)
from .orm_models import ArticleRecord, ViralStoryRecord
from .text_signals import clamp, round_half_up
from .viral import get_story

logger = logging.getLogger(__name__)

CLAIM_SOURCE_ARTICLES = 5
MIN_CLAIM_WORD_LENGTH = 4
EVIDENCE_THRESHOLD = 0.5
SUPPORT_THRESHOLD = 0.7
EXCERPT_CHARS = 200
FACT_CHECK_WEIGHT = 3
DEFAULT_EVIDENCE_CREDIBILITY = 50

# One-notch downgrades applied when misinformation risk is high
DOWNGRADES = {
    VerificationStatus.VERIFIED_TRUE.value: VerificationStatus.PARTIALLY_TRUE.value,
    VerificationStatus.PARTIALLY_TRUE.value: VerificationStatus.MISLEADING.value,
}


class StoryNotFoundError(LookupError):
    pass


def calculate_verification_confidence(
    evidence: Iterable[Evidence], fact_checks: Iterable[FactCheck]
) -> VerificationResult:
    """
    Combine corroborating evidence and fact-checker verdicts.

    Each evidence item counts once for or against; each fact-check with a
    true/false leaning verdict counts three times. Confidence is how far the
    support ratio sits from an even split, so balanced evidence yields 0
    whichever way the status falls.
    """
    supporting = 0
    contradicting = 0
    for item in evidence:
        if item.supports:
            supporting += 1
        else:
            contradicting += 1
    for check in fact_checks:
        if check.normalized_rating in SUPPORTING_RATINGS:
            supporting += FACT_CHECK_WEIGHT
        elif check.normalized_rating in CONTRADICTING_RATINGS:
            contradicting += FACT_CHECK_WEIGHT

    if supporting == 0 and contradicting == 0:
        return VerificationResult(VerificationStatus.UNVERIFIED.value, 0)

    ratio = supporting / (supporting + contradicting)
    if ratio >= 0.8:
        status = VerificationStatus.VERIFIED_TRUE
    elif ratio >= 0.6:
        status = VerificationStatus.PARTIALLY_TRUE
    elif ratio >= 0.4:
        status = VerificationStatus.MISLEADING
    else:
        status = VerificationStatus.VERIFIED_FALSE
    return VerificationResult(status.value, round_half_up(abs(ratio - 0.5) * 2 * 100))


def apply_misinformation_penalty(
    result: VerificationResult, analysis: MisinformationAnalysis
) -> VerificationResult:
    if not is_high_risk(analysis):
        return result
    return VerificationResult(
        DOWNGRADES.get(result.status, result.status),
        max(0, result.confidence - analysis.risk_score),
    )


def claim_words(claim_text: str) -> List[str]:
    return [w for w in claim_text.lower().split(" ") if len(w) >= MIN_CLAIM_WORD_LENGTH]


def gather_evidence(
    claim_text: str, sources: Sequence[Tuple[Dict[str, Any], str, str]]
) -> List[Evidence]:
    """
    Match one claim against pre-fetched article texts.

    ``sources`` holds ``(related_article, lowercased_text, description)``
    triples. An article is evidence when more than half of the claim's words
    appear in it, and supporting evidence when more than 70% do.
    """
    words = claim_words(claim_text)
    if not words:
        return []

    evidence = []
    for related, text, description in sources:
        matching = sum(1 for w in words if w in text)
        ratio = matching / len(words)
        if ratio <= EVIDENCE_THRESHOLD:
            continue
        credibility = related.get("credibility_score")
        evidence.append(
            Evidence(
                source=related.get("source") or "Unknown",
                url=related.get("url") or "",
                supports=ratio > SUPPORT_THRESHOLD,
                excerpt=(description or "")[:EXCERPT_CHARS],
                credibility_score=(
                    DEFAULT_EVIDENCE_CREDIBILITY if credibility is None else credibility
                ),
            )
        )
    return evidence


def _load_fact_checks(story: ViralStoryRecord) -> List[FactCheck]:
    return [FactCheck(**f) for f in load_records(story.fact_checks_json)]


def _load_claims(story: ViralStoryRecord) -> List[Claim]:
    return [Claim.from_dict(c) for c in load_records(story.claims_json)]


class CrossSourceVerifier:
    def __init__(self, session: Session, max_workers: int = 4):
        self.session = session
        self.max_workers = max_workers

    def get_story(self, story_id: int) -> ViralStoryRecord:
        story = get_story(self.session, story_id)
        if story is None:
            raise StoryNotFoundError(f"Viral story {story_id} not found")
        return story

    def _fetch_article(self, related: Dict[str, Any]) -> Optional[ArticleRecord]:
        try:
            if related.get("article_id") is not None:
                return self.session.get(ArticleRecord, related["article_id"])
            return None
        except SQLAlchemyError as e:
            logger.warning(f"Could not load related article {related.get('url')}: {e}")
            return None

    def _load_related(
        self, story: ViralStoryRecord
    ) -> List[Tuple[Dict[str, Any], ArticleRecord]]:
        loaded = []
        for related in load_records(story.related_articles_json):
            article = self._fetch_article(related)
            if article is None:
                logger.debug(f"Related article {related.get('url')} unavailable, skipping")
                continue
            loaded.append((related, article))
        return loaded

    def _evaluate_claim(
        self, claim: Claim, sources: Sequence[Tuple[Dict[str, Any], str, str]]
    ) -> Claim:
        evidence = gather_evidence(claim.text, sources)
        result = calculate_verification_confidence(evidence, [])
        claim.verification = ClaimVerification(
            status=result.status, evidence=evidence, confidence_score=result.confidence
        )
        return claim

    def verify(self, story_id: int) -> ViralStoryRecord:
        """
        Run a full verification pass over one story.

        Raises:
            StoryNotFoundError: no story with this id.
        """
        story = self.get_story(story_id)
        story.verification_status = VerificationStatus.UNDER_REVIEW.value
        story.last_checked = datetime.now(UTC)
        story.checked_by = "auto"
        self.session.flush()

        try:
            self._verify(story)
        except Exception:
            story.verification_status = VerificationStatus.UNVERIFIED.value
            story.confidence_score = 0
            self.session.flush()
            raise
        return story

    def _verify(self, story: ViralStoryRecord) -> None:
        related = self._load_related(story)

        claims = _load_claims(story)
        if not claims:
            text = " ".join(
                f"{article.title} {article.description or ''}"
                for _, article in related[:CLAIM_SOURCE_ARTICLES]
            )
            claims = extract_claims(text)
            logger.debug(f"Extracted {len(claims)} claims for story {story.id}")

        # Article texts are read once; claims are then matched without touching the session
        sources = [
            (r, article.full_text.lower(), article.description or "") for r, article in related
        ]
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="truthlens-verify"
        ) as executor:
            claims = list(executor.map(lambda c: self._evaluate_claim(c, sources), claims))

        all_evidence = [e for claim in claims for e in claim.verification.evidence]
        result = calculate_verification_confidence(all_evidence, _load_fact_checks(story))

        misinformation = analyze_for_misinformation(story.title, story.summary)
        result = apply_misinformation_penalty(result, misinformation)

        story.claims_json = dump_records(claims)
        story.verification_status = result.status
        story.confidence_score = result.confidence
        story.verified_at = datetime.now(UTC)
        if misinformation.type != MisinformationType.NONE.value:
            story.misinformation_type = misinformation.type
        story.misinformation_flags_json = json.dumps(misinformation.flags)
        story.misinformation_risk = misinformation.risk_score
        self.session.flush()

        logger.info(
            f"Story {story.id} verified as {result.status} "
            f"(confidence {result.confidence}, {len(claims)} claims)",
            extra={"claims_count": len(claims)},
        )

    def add_fact_check(
        self,
        story_id: int,
        source: str,
        url: str,
        rating: str,
        summary: str = "",
    ) -> ViralStoryRecord:
        """Attach a fact-checker verdict and re-verify the story."""
        story = self.get_story(story_id)
        fact_checks = _load_fact_checks(story)
        fact_checks.append(make_fact_check(source, url, rating, summary))
        story.fact_checks_json = dump_records(fact_checks)
        self.session.flush()
        return self.verify(story_id)

    def update_verification(
        self,
        story_id: int,
        status: str,
        confidence: int,
        notes: Optional[str] = None,
    ) -> ViralStoryRecord:
        """Manual override by a reviewer."""
        status = VerificationStatus(status).value
        if not 0 <= confidence <= 100:
            raise ValueError(f"confidence must be within 0-100, got {confidence}")

        story = self.get_story(story_id)
        now = datetime.now(UTC)
        story.verification_status = status
        story.confidence_score = confidence
        story.last_checked = now
        story.checked_by = "manual"
        if notes is not None:
            story.verifier_notes = notes
        if status not in (
            VerificationStatus.UNVERIFIED.value,
            VerificationStatus.UNDER_REVIEW.value,
        ):
            story.verified_at = now
        self.session.flush()
        logger.info(f"Story {story_id} manually set to {status} ({confidence})")
        return story


# -----------------------------------------------------------------------------
# Reporting
# -----------------------------------------------------------------------------

VERIFICATION_SCORES = {
    VerificationStatus.VERIFIED_TRUE.value: 100,
    VerificationStatus.PARTIALLY_TRUE.value: 70,
    VerificationStatus.UNVERIFIED.value: 50,
    VerificationStatus.UNDER_REVIEW.value: 50,
    VerificationStatus.MISLEADING.value: 30,
    VerificationStatus.VERIFIED_FALSE.value: 10,
    VerificationStatus.SATIRE.value: 40,
    VerificationStatus.OPINION.value: 60,
}

FACT_CHECK_SCORES = {
    FactCheckRating.TRUE.value: 100,
    FactCheckRating.MOSTLY_TRUE.value: 80,
    FactCheckRating.HALF_TRUE.value: 50,
    FactCheckRating.MOSTLY_FALSE.value: 30,
    FactCheckRating.FALSE.value: 10,
    FactCheckRating.PANTS_ON_FIRE.value: 0,
}

RECOMMENDATIONS = {
    VerificationStatus.VERIFIED_TRUE.value: (
        "This story appears to be accurate based on multiple credible sources."
    ),
    VerificationStatus.VERIFIED_FALSE.value: (
        "This story has been debunked. Exercise caution before sharing."
    ),
    VerificationStatus.PARTIALLY_TRUE.value: (
        "This story contains both accurate and inaccurate elements. Verify specific claims."
    ),
    VerificationStatus.MISLEADING.value: (
        "This story may be misleading. Check the original sources for context."
    ),
}
DEFAULT_RECOMMENDATION = "This story has not been fully verified. Wait for more information."


def reliability_score(story: ViralStoryRecord) -> int:
    """
    Blend verification outcome, source credibility and fact-check verdicts.

    Starts from 50 and mixes in the verification score (weight 0.4), then the
    average related-article credibility and the average fact-check score
    (0.3 each) when those exist.
    """
    score = 50 * 0.6 + VERIFICATION_SCORES.get(story.verification_status, 50) * 0.4

    related = load_records(story.related_articles_json)
    if related:
        credibilities = [
            DEFAULT_EVIDENCE_CREDIBILITY if r.get("credibility_score") is None
            else r["credibility_score"]
            for r in related
        ]
        score = score * 0.7 + (sum(credibilities) / len(credibilities)) * 0.3

    fact_checks = _load_fact_checks(story)
    if fact_checks:
        scores = [FACT_CHECK_SCORES.get(f.normalized_rating, 50) for f in fact_checks]
        score = score * 0.7 + (sum(scores) / len(scores)) * 0.3

    return clamp(round_half_up(score))


def get_verification_summary(story: ViralStoryRecord) -> Dict[str, Any]:
    claims = _load_claims(story)
    claim_statuses = [c.verification.status for c in claims]
    counted = (
        VerificationStatus.VERIFIED_TRUE.value,
        VerificationStatus.VERIFIED_FALSE.value,
        VerificationStatus.PARTIALLY_TRUE.value,
        VerificationStatus.UNVERIFIED.value,
    )
    return {
        "title": story.title,
        "status": story.verification_status,
        "confidence": story.confidence_score,
        "virality_score": story.virality_score,
        "sources_count": len(load_records(story.related_articles_json)),
        "fact_checks_count": len(load_records(story.fact_checks_json)),
        "claims_analyzed": len(claims),
        "claims_summary": {status: claim_statuses.count(status) for status in counted},
        "misinformation_type": story.misinformation_type,
        "reliability_score": reliability_score(story),
        "recommendation": RECOMMENDATIONS.get(story.verification_status, DEFAULT_RECOMMENDATION),
    }
