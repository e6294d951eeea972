#!/usr/bin/env python3
"""
Tests for the batch jobs, run against the test session.
"""
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from sqlalchemy import func, select

from truthlens import jobs
from truthlens.credibility import CURATED_RATINGS
from truthlens.categories import DEFAULT_CATEGORIES
from truthlens.orm_models import CategoryRecord, SourceRecord, ViralStoryRecord
from truthlens.settings import Settings
from truthlens.verification import CrossSourceVerifier


class TestInitialSetup:
    def test_seeds_categories_and_sources(self, session):
        counts = jobs.run_initial_setup(session)
        assert counts == {"categories": len(DEFAULT_CATEGORIES), "sources": len(CURATED_RATINGS)}
        assert session.scalar(select(func.count(CategoryRecord.id))) == len(DEFAULT_CATEGORIES)
        assert session.scalar(select(func.count(SourceRecord.id))) == len(CURATED_RATINGS)

    def test_rerun_does_not_duplicate(self, session):
        jobs.run_initial_setup(session)
        jobs.run_initial_setup(session)
        assert session.scalar(select(func.count(SourceRecord.id))) == len(CURATED_RATINGS)


class TestViralDetectionJob:
    """Tests for run_viral_detection."""

    def _cover(self, make_article):
        recent = datetime.now(UTC) - timedelta(hours=1)
        for source in ("Reuters", "BBC News", "NPR"):
            make_article(
                title=f"Storm Warning: {source} coverage",
                source_name=source,
                published_at=recent,
            )

    def test_returns_created_ids(self, session, make_article):
        self._cover(make_article)
        story_ids = jobs.run_viral_detection(session)
        assert len(story_ids) == 1
        assert session.get(ViralStoryRecord, story_ids[0]).keywords == ["storm", "warning"]

        assert jobs.run_viral_detection(session) == []

    def test_skips_while_another_run_holds_the_lock(self, session, make_article):
        self._cover(make_article)
        assert jobs._detection_lock.acquire(blocking=False)
        try:
            assert jobs.run_viral_detection(session) == []
        finally:
            jobs._detection_lock.release()
        assert session.scalar(select(func.count(ViralStoryRecord.id))) == 0


class TestVerificationBatch:
    """Tests for run_verification_batch."""

    def _story(self, session, title, virality):
        story = ViralStoryRecord(title=title, virality_score=virality)
        session.add(story)
        session.flush()
        return story

    def test_failing_story_does_not_stop_the_batch(self, session):
        bad = self._story(session, "Broken story", 90)
        good = self._story(session, "Quiet story", 50)
        self._story(session, "Too small", 10)

        original = CrossSourceVerifier.verify

        def flaky(verifier, story_id):
            if story_id == bad.id:
                raise RuntimeError("evidence lookup failed")
            return original(verifier, story_id)

        with patch.object(CrossSourceVerifier, "verify", flaky):
            report = jobs.run_verification_batch(session)

        assert report.stories == 1
        assert report.failed == 1
        assert report.statuses == {"unverified": 1}
        assert good.checked_by == "auto"
        assert good.last_checked is not None
        assert bad.verification_status == "unverified"

    def test_respects_limit(self, session):
        for i in range(3):
            self._story(session, f"Story {i}", 40 + i)
        report = jobs.run_verification_batch(session, limit=2)
        assert report.stories == 2


class TestMaintenanceJobs:
    def test_cleanup(self, session, make_article):
        make_article(published_at=datetime.now(UTC) - timedelta(days=40))
        make_article()
        assert jobs.run_cleanup(session, days=30) == 1

    def test_reprocess(self, session, make_article):
        make_article(title="Central bank holds rates", source_name="Reuters", overall_score=0)
        make_article(title="Markets open higher", source_name="Unknown Blog", overall_score=0)

        processed = jobs.run_reprocess(session, settings=Settings(llm_enabled=False))

        assert processed == 2

    def test_build_pipeline_without_llm(self, session):
        with jobs.build_pipeline(session, Settings(llm_enabled=False)) as pipeline:
            assert pipeline is not None
