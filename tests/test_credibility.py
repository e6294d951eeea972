#!/usr/bin/env python3
"""
Tests for the source credibility store.

Covers domain canonicalization, source name resolution, the curated table,
lazy get-or-create and per-source article statistics.
"""
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from truthlens.credibility import (
    CURATED_RATINGS,
    SourceCredibilityStore,
    canonicalize_domain,
    resolve_source_name,
)
from truthlens.orm_models import SourceRecord

# -----------------------------------------------------------------------------
# Domain handling
# -----------------------------------------------------------------------------


class TestCanonicalizeDomain:
    """Tests for domain canonicalization."""

    def test_full_url(self):
        """Extract domain from a URL and strip www."""
        assert canonicalize_domain("https://www.nytimes.com/2024/story.html") == "nytimes.com"

    def test_strips_mobile_prefix(self):
        assert canonicalize_domain("m.bbc.co.uk") == "bbc.co.uk"

    def test_applies_alias(self):
        """Feed hostnames resolve to the main domain."""
        assert canonicalize_domain("feeds.bbci.co.uk") == "bbc.com"

    def test_port_and_case(self):
        assert canonicalize_domain("Example.COM:443") == "example.com"

    def test_rejects_garbage(self):
        """Inputs without a dotted host give None."""
        assert canonicalize_domain("localhost:8080") is None
        assert canonicalize_domain("") is None
        assert canonicalize_domain(None) is None


class TestResolveSourceName:
    """Tests for picking an article's source name."""

    def test_supplied_name_wins(self):
        assert resolve_source_name(" Reuters ", "https://cnn.com/x") == "Reuters"

    def test_falls_back_to_domain_map(self):
        assert resolve_source_name(None, "https://www.reuters.com/world/x") == "Reuters"
        assert resolve_source_name("", "https://www.ndtv.com/india/x") == "NDTV"

    def test_unknown_bucket(self):
        """Unmapped domains and missing URLs land in 'Unknown'."""
        assert resolve_source_name(None, "https://someblog.example.org/post") == "Unknown"
        assert resolve_source_name(None, None) == "Unknown"


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class TestSourceCredibilityStore:
    """Tests for lazy creation and rating lookups."""

    def test_curated_source_rating(self, session):
        """A curated publisher gets its table rating on first sight."""
        rating = SourceCredibilityStore(session).get_credibility("Reuters")
        assert rating.overall_score == 95
        assert rating.factual_reporting == "very-high"
        assert rating.bias_rating == "center"
        assert rating.rating_source == "curated"

    def test_unknown_source_default(self, session):
        """Unknown publishers start at the neutral default."""
        rating = SourceCredibilityStore(session).get_credibility("Some Blog")
        assert rating.overall_score == 50
        assert rating.bias_rating == "unknown"
        assert rating.factual_reporting == "unknown"
        assert rating.rating_source == "default"

    def test_get_or_create_is_idempotent(self, session):
        """Repeated sightings never create a second row."""
        store = SourceCredibilityStore(session)
        first = store.get_or_create("Some Blog")
        second = store.get_or_create("Some Blog")
        assert first.id == second.id
        count = session.scalar(
            select(func.count()).select_from(SourceRecord).where(SourceRecord.name == "Some Blog")
        )
        assert count == 1

    def test_blank_name_uses_unknown_bucket(self, session):
        source = SourceCredibilityStore(session).get_or_create("  ")
        assert source.name == "Unknown"

    def test_storage_failure_degrades_to_default(self, session):
        """A failing lookup returns the neutral rating instead of raising."""
        store = SourceCredibilityStore(session)
        with patch.object(
            store, "get_or_create", side_effect=OperationalError("select", {}, Exception("down"))
        ):
            rating = store.get_credibility("Reuters")
        assert rating.overall_score == 50
        assert rating.rating_source == "default"

    def test_update_rating(self, session):
        store = SourceCredibilityStore(session)
        store.update("Some Blog", 72, "center", "high")
        rating = store.get_credibility("Some Blog")
        assert rating.overall_score == 72
        assert rating.rating_source == "manual"

    def test_update_validates(self, session):
        """Out-of-range scores and unknown enum values are rejected."""
        store = SourceCredibilityStore(session)
        with pytest.raises(ValueError):
            store.update("Some Blog", 101, "center", "high")
        with pytest.raises(ValueError):
            store.update("Some Blog", 70, "sideways", "high")

    def test_initialize_defaults(self, session):
        """Seeding writes every curated publisher and can run twice."""
        store = SourceCredibilityStore(session)
        assert store.initialize_defaults() == len(CURATED_RATINGS)
        store.initialize_defaults()
        count = session.scalar(select(func.count()).select_from(SourceRecord))
        assert count == len(CURATED_RATINGS)

    def test_record_article_counts(self, session):
        """Stored articles bump the fetch total and the status counter."""
        store = SourceCredibilityStore(session)
        store.record_article("Reuters", "approved")
        store.record_article("Reuters", "rejected")
        store.record_article("Reuters", "pending")
        source = store.get_or_create("Reuters")
        assert source.total_articles_fetched == 3
        assert source.articles_approved == 1
        assert source.articles_rejected == 1
        assert source.last_fetched is not None

    def test_list_sources(self, session):
        store = SourceCredibilityStore(session)
        store.get_or_create("Zeta News")
        store.get_or_create("Alpha Daily")
        names = [s.name for s in store.list_sources()]
        assert names == ["Alpha Daily", "Zeta News"]
