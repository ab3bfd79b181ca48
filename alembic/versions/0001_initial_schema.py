"""Initial schema: repositories, generated documentation, source snapshots, runs.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

docs_status = sa.Enum("not_started", "generating", "complete", "error", name="docsstatus")
run_status = sa.Enum("running", "completed", "failed", name="runstatus")
run_trigger = sa.Enum("push", "sync", name="runtrigger")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _repo_fk() -> sa.Column:
    return sa.Column(
        "repo_id",
        sa.Uuid(),
        sa.ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "repositories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("github_id", sa.BigInteger(), nullable=False),
        sa.Column("owner", sa.String(length=256), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("html_url", sa.Text(), nullable=True),
        sa.Column("default_branch", sa.String(length=255), nullable=False),
        sa.Column("webhook_id", sa.BigInteger(), nullable=True),
        sa.Column("webhook_error", sa.Text(), nullable=True),
        sa.Column("merkle_root", sa.String(length=64), nullable=True),
        sa.Column("docs_status", docs_status, nullable=False),
        sa.Column("docs_progress", sa.Integer(), nullable=False),
        sa.Column("docs_message", sa.Text(), nullable=True),
        sa.Column("docs_updated_at", sa.DateTime(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_repositories"),
        sa.UniqueConstraint("github_id", name="uq_repositories_github_id"),
        sa.UniqueConstraint("full_name", name="uq_repositories_full_name"),
    )
    op.create_index("ix_repositories_owner", "repositories", ["owner"])
    op.create_index("ix_repositories_name", "repositories", ["name"])
    op.create_index("ix_repositories_docs_status", "repositories", ["docs_status"])

    op.create_table(
        "repo_documentation",
        sa.Column("id", sa.Uuid(), nullable=False),
        _repo_fk(),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("chunk_hashes", sa.JSON(), nullable=False),
        sa.Column("source_sha", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_repo_documentation"),
        sa.UniqueConstraint("repo_id", "file_path", name="uq_repo_documentation_repo_file"),
    )
    op.create_index("ix_repo_documentation_repo_id", "repo_documentation", ["repo_id"])

    op.create_table(
        "repo_contents",
        sa.Column("id", sa.Uuid(), nullable=False),
        _repo_fk(),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("sha", sa.String(length=64), nullable=True),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_repo_contents"),
        sa.UniqueConstraint("repo_id", "file_path", name="uq_repo_contents_repo_file"),
    )
    op.create_index("ix_repo_contents_repo_id", "repo_contents", ["repo_id"])

    op.create_table(
        "doc_runs",
        sa.Column("id", sa.Uuid(), nullable=False),
        _repo_fk(),
        sa.Column("trigger", run_trigger, nullable=False),
        sa.Column("status", run_status, nullable=False),
        sa.Column("delivery_id", sa.String(length=64), nullable=True),
        sa.Column("state", sa.JSON(), nullable=False),
        sa.Column("changed_files", sa.Integer(), nullable=False),
        sa.Column("updated_files", sa.Integer(), nullable=False),
        sa.Column("removed_files", sa.Integer(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_doc_runs"),
    )
    op.create_index("ix_doc_runs_status", "doc_runs", ["status"])
    op.create_index("ix_doc_runs_repo_created", "doc_runs", ["repo_id", "created_at"])


def downgrade() -> None:
    op.drop_table("doc_runs")
    op.drop_table("repo_contents")
    op.drop_table("repo_documentation")
    op.drop_table("repositories")
    bind = op.get_bind()
    for enum in (run_trigger, run_status, docs_status):
        enum.drop(bind, checkfirst=True)
