"""
Headline and body language signals (filtering layer 1).

Counts clickbait phrasing in the title, sensational vocabulary across the
whole article and sourcing phrases that indicate reporting quality, then folds
them into a 0-100 score. Pure functions; the pattern tables are compiled once
at import.
"""

from __future__ import annotations

import math
import re
from typing import List, Pattern, Tuple

from .models import KeywordFilterResult

CLICKBAIT_PHRASES: Tuple[str, ...] = (
    r"^breaking\s*:",
    r"you won'?t believe",
    r"you won'?t believe what",
    r"what happened next",
    r"this is why",
    r"the reason is",
    r"will blow your mind",
    r"will shock you",
    r"number \d+ will",
    r"one weird trick",
    r"doctors hate",
    r"scientists are baffled",
    r"this simple trick",
    r"you need to see",
    r"goes viral",
    r"the internet is",
    r"everyone is talking about",
    r"you'?re doing it wrong",
    r"what they don'?t want you to know",
    r"the truth about",
    r"exposed",
    r"you'?ll never guess",
    r"this changes everything",
    r"mind-blowing",
    r"jaw-dropping",
)

SENSATIONAL_WORDS: Tuple[str, ...] = (
    "shocking",
    "explosive",
    "bombshell",
    "devastating",
    "horrifying",
    "terrifying",
    "outrageous",
    "insane",
    "crazy",
    "unbelievable",
    "incredible",
    "amazing",
    "stunning",
    "breaking",
    "urgent",
    "emergency",
    "crisis",
    "disaster",
    "catastrophe",
    "scandal",
    "chaos",
    "rage",
    "fury",
    "slams",
    "destroys",
    "obliterates",
    "annihilates",
    "epic",
    "massive",
    "huge",
    "brutal",
)

QUALITY_PHRASES: Tuple[str, ...] = (
    "according to",
    "research shows",
    "study finds",
    "data indicates",
    "experts say",
    "report states",
    "analysis reveals",
    "evidence suggests",
    "officials confirm",
    "sources report",
)

CLICKBAIT_POINTS = 30
SENSATIONAL_POINTS = 15
QUALITY_POINTS = 10
MAX_QUALITY_BONUS = 30
PASSING_SCORE = 50

_CLICKBAIT_RES: List[Tuple[str, Pattern[str]]] = [
    (p, re.compile(p, re.IGNORECASE)) for p in CLICKBAIT_PHRASES
]
_SENSATIONAL_RES: List[Tuple[str, Pattern[str]]] = [
    (w, re.compile(rf"\b{re.escape(w)}\b", re.IGNORECASE)) for w in SENSATIONAL_WORDS
]
_QUALITY_RES: List[Tuple[str, Pattern[str]]] = [
    (p, re.compile(re.escape(p), re.IGNORECASE)) for p in QUALITY_PHRASES
]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def find_clickbait_phrases(title: str) -> List[str]:
    """Matched text of each clickbait pattern found in the title, one per pattern."""
    title_text = (title or "").lower()
    found = []
    for _, rx in _CLICKBAIT_RES:
        match = rx.search(title_text)
        if match:
            found.append(match.group(0).rstrip(" :"))
    return found


def find_quality_phrases(text: str) -> List[str]:
    full_text = (text or "").lower()
    return [p for p, rx in _QUALITY_RES if rx.search(full_text)]


def analyze_text_signals(
    title: str, description: str = "", content: str = ""
) -> KeywordFilterResult:
    """
    Score an article's wording.

    Each clickbait pattern matching the title counts once (30 points each).
    Each sensational word counts twice if it appears in the title, once if it
    only appears in the body (15 points each). Sourcing phrases add up to 30
    bonus points. The score is 100 minus the average penalty plus the bonus.
    """
    title_text = (title or "").lower()
    full_text = f"{title or ''} {description or ''} {content or ''}".lower()

    flagged: List[str] = find_clickbait_phrases(title_text)
    clickbait_score = min(100, len(flagged) * CLICKBAIT_POINTS)

    sensational_matches = 0
    for word, rx in _SENSATIONAL_RES:
        if not rx.search(full_text):
            continue
        flagged.append(word)
        sensational_matches += 2 if rx.search(title_text) else 1
    sensationalism_score = min(100, sensational_matches * SENSATIONAL_POINTS)

    quality = find_quality_phrases(full_text)
    quality_bonus = min(MAX_QUALITY_BONUS, len(quality) * QUALITY_POINTS)

    raw = 100 - (clickbait_score + sensationalism_score) / 2 + quality_bonus
    score = round_half_up(clamp(raw))

    return KeywordFilterResult(
        passed=score >= PASSING_SCORE,
        score=score,
        flagged_keywords=list(dict.fromkeys(flagged)),
        clickbait_score=clickbait_score,
        sensationalism_score=sensationalism_score,
        quality_indicators=quality,
    )


def is_likely_clickbait(title: str) -> bool:
    """Quick headline check: mixed ?/!, repeated !, or any clickbait phrase."""
    if not title:
        return False
    if "?" in title and "!" in title:
        return True
    if title.count("!") > 1:
        return True
    return bool(find_clickbait_phrases(title))
