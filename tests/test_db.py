#!/usr/bin/env python3
"""
Tests for engine setup and transaction scoping against a SQLite file.
"""
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from truthlens import db
from truthlens.credibility import SourceCredibilityStore
from truthlens.db import create_db_engine, init_db, session_scope
from truthlens.orm_models import Base, SourceRecord


def _source_count(sess):
    return sess.scalar(select(func.count(SourceRecord.id)))


class TestSqliteTransactions:
    """Savepoints must nest inside the outer transaction, not commit it."""

    def setup_method(self):
        self.engine = None

    def teardown_method(self):
        if self.engine is not None:
            self.engine.dispose()

    def _sessions(self, tmp_path):
        self.engine = create_db_engine(f"sqlite:///{tmp_path / 'truthlens.sqlite3'}")
        Base.metadata.create_all(self.engine)
        return sessionmaker(bind=self.engine, autoflush=False, future=True)

    def test_rollback_discards_work_done_in_savepoints(self, tmp_path):
        Session = self._sessions(tmp_path)

        with Session() as sess:
            SourceCredibilityStore(sess).get_credibility("Daily Planet")
            sess.rollback()

        with Session() as sess:
            assert _source_count(sess) == 0

    def test_failed_savepoint_keeps_earlier_work(self, tmp_path):
        Session = self._sessions(tmp_path)

        with Session() as sess:
            sess.add(SourceRecord(name="Daily Planet"))
            sess.flush()
            with pytest.raises(IntegrityError):
                with sess.begin_nested():
                    sess.add(SourceRecord(name="Daily Planet"))
            sess.add(SourceRecord(name="Gotham Gazette"))
            sess.commit()

        with Session() as sess:
            names = sess.scalars(select(SourceRecord.name).order_by(SourceRecord.name)).all()
            assert names == ["Daily Planet", "Gotham Gazette"]


class TestSessionScope:
    """Tests for the commit/rollback context manager on the default engine."""

    @pytest.fixture(autouse=True)
    def _file_database(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'scope.sqlite3'}")
        monkeypatch.setattr(db, "_engine", None)
        init_db()
        yield
        db._engine.dispose()

    def test_failure_rolls_back_everything(self):
        with pytest.raises(RuntimeError):
            with session_scope() as sess:
                store = SourceCredibilityStore(sess)
                store.get_credibility("Daily Planet")
                store.record_article("Daily Planet", "approved")
                raise RuntimeError("batch failed")

        with session_scope() as sess:
            assert _source_count(sess) == 0

    def test_success_commits(self):
        with session_scope() as sess:
            SourceCredibilityStore(sess).record_article("Daily Planet", "approved")

        with session_scope() as sess:
            source = sess.scalars(select(SourceRecord)).one()
            assert source.total_articles_fetched == 1
            assert source.articles_approved == 1
