"""Pattern-based extraction of checkable claims from article text."""

from __future__ import annotations

import re
from typing import List, Pattern, Tuple

from .models import Claim, ClaimType, ClaimVerification

MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|"
    "November|December"
)

# (claim type, pattern), in extraction order
CLAIM_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    (
        ClaimType.STATISTIC.value,
        re.compile(
            r"(\d+[\.,]?\d*)\s*(percent|%|million|billion|crore|lakh|thousand)",
            re.IGNORECASE,
        ),
    ),
    (
        # Attribution name must be capitalized, so this one is case-sensitive
        # apart from the verbs.
        ClaimType.QUOTE.value,
        re.compile(
            r'"([^"]+)"\s*(?:(?i:said|says|stated|claimed|according to))\s*'
            r"([A-Z][a-z]+\s+[A-Z][a-z]+)?"
        ),
    ),
    (
        ClaimType.EVENT.value,
        re.compile(
            r"(?i:(happened|occurred|took place|broke out)\s+(in|at|on))\s+"
            r"([A-Z][a-zA-Z\s]+)"
        ),
    ),
    (
        "date_claim",
        re.compile(
            rf"(on|since|from|until)\s+(\d{{1,2}}[/\-]\d{{1,2}}[/\-]\d{{2,4}}|\d{{4}}|{MONTHS})",
            re.IGNORECASE,
        ),
    ),
)

# date_claim is matched by find_date_references() but kept out of the claims list
EMITTED_CLAIM_TYPES = frozenset(
    {ClaimType.STATISTIC.value, ClaimType.QUOTE.value, ClaimType.EVENT.value}
)


def extract_claims(text: str) -> List[Claim]:
    """
    Find statistic, quote and event claims in ``text``.

    Claims come back grouped by type in that order, each unverified. A span
    matched by more than one pattern appears once per pattern.
    """
    if not text:
        return []
    claims: List[Claim] = []
    for claim_type, pattern in CLAIM_PATTERNS:
        if claim_type not in EMITTED_CLAIM_TYPES:
            continue
        for match in pattern.finditer(text):
            claims.append(
                Claim(text=match.group(0), type=claim_type, verification=ClaimVerification())
            )
    return claims


def find_date_references(text: str) -> List[str]:
    if not text:
        return []
    pattern = dict(CLAIM_PATTERNS)["date_claim"]
    return [m.group(0) for m in pattern.finditer(text)]
