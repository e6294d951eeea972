#!/usr/bin/env python3
"""Tests for claim extraction."""
from truthlens.claims import extract_claims, find_date_references


class TestExtractClaims:
    """Tests for statistic, quote and event patterns."""

    def test_statistics(self):
        claims = extract_claims("Unemployment fell to 4.5 percent, affecting 2 million people.")
        assert [c.text for c in claims] == ["4.5 percent", "2 million"]
        assert all(c.type == "statistic" for c in claims)

    def test_indian_units(self):
        claims = extract_claims("The scheme cost 500 crore and reached 3 lakh families")
        assert [c.text for c in claims] == ["500 crore", "3 lakh"]

    def test_quote_with_attribution(self):
        claims = extract_claims('"We will rebuild the bridge" said John Smith on Monday')
        quotes = [c for c in claims if c.type == "quote"]
        assert len(quotes) == 1
        assert quotes[0].text == '"We will rebuild the bridge" said John Smith'

    def test_event(self):
        claims = extract_claims("The explosion happened in Central Park")
        assert len(claims) == 1
        assert claims[0].type == "event"
        assert claims[0].text == "happened in Central Park"

    def test_event_needs_capitalized_place(self):
        assert extract_claims("it happened in the evening") == []

    def test_grouped_by_type_and_unverified(self):
        """Statistics come before quotes, quotes before events."""
        text = (
            'The riot broke out in Old Town. "Calm is restored" said Jane Doe. '
            "Damage reached 3 million."
        )
        claims = extract_claims(text)
        assert [c.type for c in claims] == ["statistic", "quote", "event"]
        assert all(c.verification.status == "unverified" for c in claims)
        assert all(c.verification.evidence == [] for c in claims)

    def test_date_references_not_emitted(self):
        """Date references are matched but never become claims."""
        text = "The rule has applied since 2019"
        assert extract_claims(text) == []
        assert find_date_references(text) == ["since 2019"]

    def test_empty_text(self):
        assert extract_claims("") == []
        assert extract_claims(None) == []
