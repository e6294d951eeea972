#!/usr/bin/env python3
"""Tests for misinformation cue detection."""
from truthlens.misinformation import analyze_for_misinformation, is_high_risk


class TestAnalyzeForMisinformation:
    """Tests for pattern families, risk totals and type priority."""

    def test_clean_headline(self):
        analysis = analyze_for_misinformation("Council approves budget")
        assert analysis.type == "none"
        assert analysis.flags == []
        assert analysis.risk_score == 0

    def test_fabricated_casualty_claim(self):
        analysis = analyze_for_misinformation("Breaking: 12 dead in bridge collapse")
        assert analysis.type == "fabricated"
        assert analysis.flags == ["fabricated_pattern"]
        assert analysis.risk_score == 30

    def test_each_pattern_adds_weight(self):
        """Two clickbait patterns count twice."""
        analysis = analyze_for_misinformation("You won't believe what happened next")
        assert analysis.flags == ["clickbait", "clickbait"]
        assert analysis.risk_score == 30
        assert analysis.type == "misleading_headline"

    def test_type_priority(self):
        """Out-of-context outranks clickbait regardless of weight."""
        analysis = analyze_for_misinformation("You won't believe this old photo")
        assert analysis.type == "out_of_context"
        assert analysis.risk_score == 35

    def test_emotional_manipulation_has_no_type(self):
        analysis = analyze_for_misinformation("Senator slams budget plan")
        assert analysis.flags == ["emotional_manipulation"]
        assert analysis.type == "none"

    def test_content_is_scanned(self):
        analysis = analyze_for_misinformation("Flood photos", "A resurfaced video shows the dam")
        assert analysis.flags == ["possibly_old_content"]

    def test_high_risk(self):
        analysis = analyze_for_misinformation("Exposed: hidden truth they don't want you to know")
        assert analysis.risk_score == 60
        assert is_high_risk(analysis) is True

    def test_threshold_is_exclusive(self):
        analysis = analyze_for_misinformation("Breaking: 3 dead, old video resurfaced")
        assert analysis.risk_score == 50
        assert is_high_risk(analysis) is False
