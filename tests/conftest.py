"""Shared fixtures: an in-memory database per test."""
from datetime import UTC, datetime

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from truthlens.db import create_db_engine
from truthlens.orm_models import ArticleRecord, Base


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    sess = sessionmaker(bind=engine, autoflush=False, future=True)()
    try:
        yield sess
    finally:
        sess.close()


@pytest.fixture
def make_article(session):
    """Insert an article row directly, bypassing scoring."""
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        values = {
            "url": f"https://example.com/articles/{counter['n']}",
            "title": f"Article {counter['n']}",
            "source_name": "Example",
            "published_at": datetime.now(UTC),
            "overall_score": 50,
        }
        values.update(fields)
        article = ArticleRecord(**values)
        session.add(article)
        session.flush()
        return article

    return _make
