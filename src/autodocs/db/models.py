"""
autodocs.db.models

Persistence schema for tracked repositories and their generated documentation.

Responsibilities:
- Repository: one row per tracked GitHub repository (webhook + docs status + merkle root)
- RepoDocumentation: one generated Markdown document per source file
- RepoContent: raw source snapshots the documentation was generated from
- DocRun: durable record of each documentation pipeline execution
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autodocs.db.base import Base


def _utcnow() -> datetime:
    # Naive UTC timestamps: SQLite drops tzinfo anyway, keep both backends consistent.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class DocsStatus(enum.StrEnum):
    not_started = "not_started"
    generating = "generating"
    complete = "complete"
    error = "error"


class RunStatus(enum.StrEnum):
    running = "running"
    completed = "completed"
    failed = "failed"


class RunTrigger(enum.StrEnum):
    push = "push"
    sync = "sync"


class Repository(Base):
    __tablename__ = "repositories"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    github_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    # Subject of the user who connected the repo; NULL when first seen through a webhook.
    owner: Mapped[str | None] = mapped_column(String(256), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    html_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_branch: Mapped[str] = mapped_column(String(255), nullable=False, default="main")

    webhook_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    webhook_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    merkle_root: Mapped[str | None] = mapped_column(String(64), nullable=True)

    docs_status: Mapped[DocsStatus] = mapped_column(
        Enum(DocsStatus), nullable=False, default=DocsStatus.not_started, index=True
    )
    docs_progress: Mapped[int] = mapped_column(nullable=False, default=0)
    docs_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    docs_updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    documents: Mapped[list[RepoDocumentation]] = relationship(
        back_populates="repository", cascade="all, delete-orphan", passive_deletes=True
    )
    contents: Mapped[list[RepoContent]] = relationship(
        back_populates="repository", cascade="all, delete-orphan", passive_deletes=True
    )
    runs: Mapped[list[DocRun]] = relationship(
        back_populates="repository", cascade="all, delete-orphan", passive_deletes=True
    )


class RepoDocumentation(Base):
    __tablename__ = "repo_documentation"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repo_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    # sha256 of each source chunk the document was produced from; equal hashes skip regeneration.
    chunk_hashes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    source_sha: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    repository: Mapped[Repository] = relationship(back_populates="documents")

    __table_args__ = (
        UniqueConstraint("repo_id", "file_path", name="uq_repo_documentation_repo_file"),
        Index("ix_repo_documentation_repo_id", "repo_id"),
    )


class RepoContent(Base):
    __tablename__ = "repo_contents"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repo_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sha: Mapped[str | None] = mapped_column(String(64), nullable=True)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    size: Mapped[int] = mapped_column(nullable=False, default=0)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    repository: Mapped[Repository] = relationship(back_populates="contents")

    __table_args__ = (
        UniqueConstraint("repo_id", "file_path", name="uq_repo_contents_repo_file"),
        Index("ix_repo_contents_repo_id", "repo_id"),
    )


class DocRun(Base):
    __tablename__ = "doc_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repo_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    trigger: Mapped[RunTrigger] = mapped_column(Enum(RunTrigger), nullable=False)
    status: Mapped[RunStatus] = mapped_column(Enum(RunStatus), nullable=False, index=True)
    delivery_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Last checkpointed pipeline state (file contents stripped before persisting).
    state: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    changed_files: Mapped[int] = mapped_column(nullable=False, default=0)
    updated_files: Mapped[int] = mapped_column(nullable=False, default=0)
    removed_files: Mapped[int] = mapped_column(nullable=False, default=0)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    repository: Mapped[Repository] = relationship(back_populates="runs")

    __table_args__ = (Index("ix_doc_runs_repo_created", "repo_id", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# Enum member names equal their values, so the stored strings match the JSON the API returns.
