"""Initial schema - all tables for TruthLens

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates sources, categories, articles, viral_stories and the
viral_story_keywords claim table. For databases created with init_db(),
run: alembic stamp head
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "sources",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("url", sa.Text()),
        sa.Column("domain", sa.String(255)),
        sa.Column("overall_score", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("bias_rating", sa.String(20), nullable=False, server_default="unknown"),
        sa.Column(
            "factual_reporting", sa.String(20), nullable=False, server_default="unknown"
        ),
        sa.Column("rating_source", sa.String(20), nullable=False, server_default="default"),
        sa.Column("last_updated", sa.DateTime()),
        sa.Column("is_enabled", sa.Boolean(), server_default=sa.true()),
        sa.Column("last_fetched", sa.DateTime()),
        sa.Column(
            "total_articles_fetched", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("articles_approved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("articles_rejected", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("idx_sources_domain", "sources", ["domain"])

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("keywords_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("color", sa.String(20), server_default="#667eea"),
        sa.Column("icon", sa.String(50), server_default="newspaper"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), server_default="0"),
    )

    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(255)),
        sa.Column("url", sa.Text(), nullable=False, unique=True),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.Text()),
        sa.Column("content", sa.Text()),
        sa.Column("author", sa.Text()),
        sa.Column("url_to_image", sa.Text()),
        sa.Column("published_at", sa.DateTime()),
        sa.Column("source_id", sa.String(255)),
        sa.Column("source_name", sa.String(255), nullable=False, server_default="Unknown"),
        sa.Column("source_url", sa.Text()),
        # Keyword filter
        sa.Column("keyword_passed", sa.Boolean(), server_default=sa.false()),
        sa.Column("flagged_keywords_json", sa.Text(), server_default="[]"),
        sa.Column("clickbait_score", sa.Integer(), server_default="0"),
        sa.Column("sensationalism_score", sa.Integer(), server_default="0"),
        sa.Column("keyword_score", sa.Integer(), server_default="50"),
        # Source credibility
        sa.Column("source_rating", sa.Integer(), server_default="50"),
        sa.Column("bias_rating", sa.String(20), server_default="unknown"),
        sa.Column("factual_reporting", sa.String(20), server_default="unknown"),
        sa.Column("credibility_score", sa.Integer(), server_default="50"),
        # Content analysis
        sa.Column("ai_quality_score", sa.Integer()),
        sa.Column("ai_bias_score", sa.Integer()),
        sa.Column("ai_credibility_score", sa.Integer()),
        sa.Column("ai_sentiment", sa.String(20), server_default="unknown"),
        sa.Column("ai_is_opinion", sa.Boolean(), server_default=sa.false()),
        sa.Column("ai_is_factual", sa.Boolean(), server_default=sa.true()),
        sa.Column("ai_model", sa.String(100)),
        sa.Column("ai_analyzed_at", sa.DateTime()),
        sa.Column("overall_score", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("is_passing", sa.Boolean(), server_default=sa.false()),
        sa.Column("filter_version", sa.String(10), server_default="1.0"),
        # Curation
        sa.Column("curation_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("curated_by", sa.String(255)),
        sa.Column("curated_at", sa.DateTime()),
        sa.Column("curation_notes", sa.Text()),
        sa.Column("categories_json", sa.Text(), server_default="[]"),
        sa.Column("views", sa.Integer(), server_default="0"),
        sa.Column("saves", sa.Integer(), server_default="0"),
        sa.Column("shares", sa.Integer(), server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("idx_articles_published", "articles", ["published_at"])
    op.create_index("idx_articles_source_name", "articles", ["source_name"])
    op.create_index("idx_articles_curation_status", "articles", ["curation_status"])
    op.create_index("idx_articles_overall_score", "articles", ["overall_score"])
    op.create_index(
        "idx_articles_curation_composite",
        "articles",
        ["curation_status", "overall_score", "published_at"],
    )

    op.create_table(
        "viral_stories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text()),
        sa.Column("keywords_json", sa.Text(), nullable=False, server_default="[]"),
        # Virality
        sa.Column("virality_score", sa.Float(), nullable=False, server_default="0.0"),
        sa.Column("first_detected", sa.DateTime()),
        sa.Column("sources_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("velocity", sa.Float(), nullable=False, server_default="0.0"),
        # Verification
        sa.Column(
            "verification_status", sa.String(20), nullable=False, server_default="unverified"
        ),
        sa.Column("confidence_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_checked", sa.DateTime()),
        sa.Column("checked_by", sa.String(20), server_default="auto"),
        sa.Column("verified_at", sa.DateTime()),
        sa.Column("verifier_notes", sa.Text()),
        sa.Column("claims_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("related_articles_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("fact_checks_json", sa.Text(), nullable=False, server_default="[]"),
        # Misinformation analysis
        sa.Column(
            "misinformation_type", sa.String(30), nullable=False, server_default="none"
        ),
        sa.Column("misinformation_flags_json", sa.Text(), server_default="[]"),
        sa.Column("misinformation_risk", sa.Integer(), server_default="0"),
        sa.Column("cluster_method", sa.String(50), server_default="title_prefix"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_trending", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("idx_viral_stories_virality", "viral_stories", ["virality_score"])
    op.create_index("idx_viral_stories_status", "viral_stories", ["verification_status"])
    op.create_index("idx_viral_stories_created", "viral_stories", ["created_at"])

    # One row per keyword; the unique constraint keeps stories from overlapping
    op.create_table(
        "viral_story_keywords",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "story_id",
            sa.Integer(),
            sa.ForeignKey("viral_stories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("keyword", sa.String(100), nullable=False, unique=True),
    )
    op.create_index("idx_viral_story_keywords_story", "viral_story_keywords", ["story_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("viral_story_keywords")
    op.drop_table("viral_stories")
    op.drop_table("articles")
    op.drop_table("categories")
    op.drop_table("sources")
