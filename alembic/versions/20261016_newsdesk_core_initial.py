"""newsdesk core initial schema

Revision ID: 20261016_newsdesk_core_initial
Revises:
Create Date: 2026-10-16 09:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261016_newsdesk_core_initial"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), nullable=False)


def _status(name: str = "status", nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.String(length=20), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "tenants",
        _id(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("ai_rewrite_enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_table(
        "languages",
        _id(),
        sa.Column("code", sa.String(length=10), nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_table(
        "domains",
        _id(),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("host", sa.String(length=255), nullable=False),
        _status(),
        sa.Column("is_primary", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("host"),
    )
    op.create_index("ix_domains_tenant_id", "domains", ["tenant_id"], unique=False)
    op.create_table(
        "categories",
        _id(),
        sa.Column("tenant_id", sa.String(length=36), nullable=True),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "slug", name="uq_categories_tenant_slug"),
    )
    op.create_table(
        "reporters",
        _id(),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("auto_publish", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_reporters_tenant", "reporters", ["tenant_id"], unique=False)
    op.create_table(
        "prompts",
        _id(),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_prompts_key", "prompts", ["key"], unique=True)

    op.create_table(
        "articles",
        _id(),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("domain_id", sa.String(length=36), nullable=True),
        sa.Column("language_id", sa.String(length=36), nullable=True),
        sa.Column("language_code", sa.String(length=10), nullable=False),
        sa.Column("author_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category_ids", sa.JSON(), nullable=False),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        sa.Column("raw", sa.JSON(), nullable=True),
        sa.Column("publish_ready", sa.Boolean(), server_default=sa.false(), nullable=False),
        _status(),
        _status("ai_status"),
        _status("ai_mode", nullable=True),
        sa.Column("ai_queue", sa.JSON(), nullable=False),
        sa.Column("ai_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ai_finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ai_error", sa.String(length=120), nullable=True),
        sa.Column("ai_skip_reason", sa.String(length=120), nullable=True),
        sa.Column("ai_raw", sa.Text(), nullable=True),
        sa.Column("web_article_id", sa.String(length=36), nullable=True),
        sa.Column("short_news_id", sa.String(length=36), nullable=True),
        sa.Column("newspaper_article_id", sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["domain_id"], ["domains.id"]),
        sa.ForeignKeyConstraint(["language_id"], ["languages.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_articles_tenant_id", "articles", ["tenant_id"], unique=False)
    op.create_index("ix_articles_author_id", "articles", ["author_id"], unique=False)

    op.create_table(
        "newspaper_articles",
        _id(),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("base_article_id", sa.String(length=36), nullable=False),
        sa.Column("author_id", sa.String(length=64), nullable=False),
        sa.Column("language_code", sa.String(length=10), nullable=False),
        sa.Column("headline", sa.String(length=500), nullable=False),
        sa.Column("subtitle", sa.String(length=500), nullable=True),
        sa.Column("lead", sa.Text(), nullable=True),
        sa.Column("dateline", sa.String(length=200), nullable=True),
        sa.Column("body", sa.JSON(), nullable=False),
        sa.Column("highlights", sa.JSON(), nullable=False),
        sa.Column("state", sa.String(length=120), nullable=True),
        sa.Column("district", sa.String(length=120), nullable=True),
        sa.Column("mandal", sa.String(length=120), nullable=True),
        sa.Column("village", sa.String(length=120), nullable=True),
        sa.Column("place_name", sa.String(length=200), nullable=True),
        sa.Column("word_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("char_count", sa.Integer(), server_default="0", nullable=False),
        _status(),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["base_article_id"], ["articles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_newspaper_articles_author_created",
        "newspaper_articles",
        ["author_id", "created_at"],
        unique=False,
    )
    op.create_index("ix_newspaper_articles_base", "newspaper_articles", ["base_article_id"], unique=False)

    op.create_table(
        "web_articles",
        _id(),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("domain_id", sa.String(length=36), nullable=True),
        sa.Column("language_id", sa.String(length=36), nullable=True),
        sa.Column("base_article_id", sa.String(length=36), nullable=True),
        sa.Column("author_id", sa.String(length=64), nullable=False),
        sa.Column("slug", sa.String(length=160), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("lead", sa.Text(), nullable=True),
        sa.Column("meta_title", sa.String(length=160), nullable=True),
        sa.Column("meta_description", sa.String(length=320), nullable=True),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("content_html", sa.Text(), nullable=False),
        sa.Column("content_json", sa.JSON(), nullable=False),
        sa.Column("plain_text", sa.Text(), nullable=False),
        sa.Column("json_ld", sa.JSON(), nullable=True),
        sa.Column("canonical_url", sa.String(length=1024), nullable=True),
        sa.Column("cover_image_url", sa.String(length=1024), nullable=True),
        _status(),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["domain_id"], ["domains.id"]),
        sa.ForeignKeyConstraint(["language_id"], ["languages.id"]),
        sa.ForeignKeyConstraint(["base_article_id"], ["articles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id", "domain_id", "language_id", "slug",
            name="uq_web_articles_scope_slug",
            postgresql_nulls_not_distinct=True,
        ),
    )

    op.create_table(
        "short_news",
        _id(),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("base_article_id", sa.String(length=36), nullable=True),
        sa.Column("author_id", sa.String(length=64), nullable=False),
        sa.Column("language_code", sa.String(length=10), nullable=False),
        sa.Column("category_id", sa.String(length=36), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("subtitle", sa.String(length=300), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("word_count", sa.Integer(), server_default="0", nullable=False),
        _status(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["base_article_id"], ["articles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )

    for table, target, fk_table, constraint in (
        ("article_reads", "article_id", "web_articles", "uq_article_reads_user_article"),
        ("short_news_reads", "short_news_id", "short_news", "uq_short_news_reads_user_item"),
    ):
        op.create_table(
            table,
            _id(),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column(target, sa.String(length=36), nullable=False),
            sa.Column("total_time_ms", sa.BigInteger(), server_default="0", nullable=False),
            sa.Column("max_scroll_percent", sa.Integer(), server_default="0", nullable=False),
            sa.Column("completed", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("sessions_count", sa.Integer(), server_default="1", nullable=False),
            sa.Column("first_read_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
            sa.Column("last_event_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
            sa.ForeignKeyConstraint([target], [f"{fk_table}.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", target, name=constraint),
        )
        op.create_index(f"ix_{table}_user_id", table, ["user_id"], unique=False)

    op.create_table(
        "ai_usage_events",
        _id(),
        sa.Column("article_id", sa.String(length=36), nullable=True),
        sa.Column("tenant_id", sa.String(length=36), nullable=True),
        sa.Column("provider", sa.String(length=20), nullable=False),
        sa.Column("model", sa.String(length=80), nullable=False),
        sa.Column("purpose", sa.String(length=40), nullable=False),
        sa.Column("prompt_tokens", sa.Integer(), nullable=True),
        sa.Column("completion_tokens", sa.Integer(), nullable=True),
        sa.Column("total_tokens", sa.Integer(), nullable=True),
        sa.Column("prompt_chars", sa.Integer(), server_default="0", nullable=False),
        sa.Column("response_chars", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["article_id"], ["articles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ai_usage_events_article_id", "ai_usage_events", ["article_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_ai_usage_events_article_id", table_name="ai_usage_events")
    op.drop_table("ai_usage_events")
    for table in ("short_news_reads", "article_reads"):
        op.drop_index(f"ix_{table}_user_id", table_name=table)
        op.drop_table(table)
    op.drop_table("short_news")
    op.drop_table("web_articles")
    op.drop_index("ix_newspaper_articles_base", table_name="newspaper_articles")
    op.drop_index("ix_newspaper_articles_author_created", table_name="newspaper_articles")
    op.drop_table("newspaper_articles")
    op.drop_index("ix_articles_author_id", table_name="articles")
    op.drop_index("ix_articles_tenant_id", table_name="articles")
    op.drop_table("articles")
    op.drop_index("ix_prompts_key", table_name="prompts")
    op.drop_table("prompts")
    op.drop_index("ix_reporters_tenant", table_name="reporters")
    op.drop_table("reporters")
    op.drop_table("categories")
    op.drop_index("ix_domains_tenant_id", table_name="domains")
    op.drop_table("domains")
    op.drop_table("languages")
    op.drop_table("tenants")
