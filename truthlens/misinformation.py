"""
Misinformation cue detection.

Each pattern family carries a flag name and a risk weight. Every matching
pattern adds its family's flag and weight, so the risk score is a running
total, not a percentage, and can exceed 100.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

from .models import MisinformationAnalysis, MisinformationType


@dataclass(frozen=True)
class PatternFamily:
    name: str
    flag: str
    weight: int
    patterns: Tuple[Pattern[str], ...]


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


PATTERN_FAMILIES: Tuple[PatternFamily, ...] = (
    PatternFamily(
        "fabricated",
        "fabricated_pattern",
        30,
        _compile(
            r"breaking\s*:?\s*\d+\s*(dead|killed|injured)",
            r"exposed\s*:?\s*(secret|hidden|truth)",
            r"they\s+don'?t\s+want\s+you\s+to\s+know",
        ),
    ),
    PatternFamily(
        "clickbait",
        "clickbait",
        15,
        _compile(
            r"you\s+won'?t\s+believe",
            r"what\s+happened\s+next",
            r"shocking\s+(truth|revelation|secret)",
            r"\d+\s+reasons?\s+why",
        ),
    ),
    PatternFamily(
        "emotional_manipulation",
        "emotional_manipulation",
        10,
        _compile(
            r"(outrage|outraged|furious|anger|angry)\s+over",
            r"slam(s|med)?\s+",
            r"destroy(s|ed)?\s+",
            r"epic(ally)?\s+(fail|burn|destroy)",
        ),
    ),
    PatternFamily(
        "out_of_context",
        "possibly_old_content",
        20,
        _compile(
            r"old\s+(video|photo|image|news)",
            r"resurfaced\s+(video|photo|clip)",
        ),
    ),
)

# First flag present wins, regardless of which family scored more
TYPE_PRIORITY: Tuple[Tuple[str, MisinformationType], ...] = (
    ("fabricated_pattern", MisinformationType.FABRICATED),
    ("possibly_old_content", MisinformationType.OUT_OF_CONTEXT),
    ("clickbait", MisinformationType.MISLEADING_HEADLINE),
)

HIGH_RISK_THRESHOLD = 50


def analyze_for_misinformation(
    title: str, content: Optional[str] = None
) -> MisinformationAnalysis:
    text = f"{title or ''} {content or ''}"
    analysis = MisinformationAnalysis()

    for family in PATTERN_FAMILIES:
        for pattern in family.patterns:
            if pattern.search(text):
                analysis.flags.append(family.flag)
                analysis.risk_score += family.weight

    for flag, misinfo_type in TYPE_PRIORITY:
        if flag in analysis.flags:
            analysis.type = misinfo_type.value
            break
    return analysis


def is_high_risk(analysis: MisinformationAnalysis) -> bool:
    return analysis.risk_score > HIGH_RISK_THRESHOLD
