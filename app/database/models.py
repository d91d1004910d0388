"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    ForeignKey,
    Integer,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

# JSONB on PostgreSQL, plain JSON on SQLite test databases
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    """A Statement of Advice project."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    client_name: Mapped[str | None] = mapped_column(String, nullable=True)
    owner_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="draft"
    )  # draft | in_progress | review | completed
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now, onupdate=utc_now
    )

    # Relationships
    documents: Mapped[list["SourceDocument"]] = relationship(
        "SourceDocument", back_populates="project", cascade="all, delete-orphan"
    )
    workflow_state: Mapped["WorkflowState | None"] = relationship(
        "WorkflowState", back_populates="project", cascade="all, delete-orphan", uselist=False
    )
    sections: Mapped[list["SoaSection"]] = relationship(
        "SoaSection", back_populates="project", cascade="all, delete-orphan"
    )
    versions: Mapped[list["SoaVersion"]] = relationship(
        "SoaVersion", back_populates="project", cascade="all, delete-orphan"
    )
    comments: Mapped[list["SectionComment"]] = relationship(
        "SectionComment", back_populates="project", cascade="all, delete-orphan"
    )


class SourceDocument(Base):
    """Extracted text of a document uploaded for a project."""

    __tablename__ = "source_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    document_type: Mapped[str | None] = mapped_column(
        String, nullable=True
    )  # fact_find | payslip | super_statement | ...
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="documents")


class WorkflowState(Base):
    """Persisted step state machine for a project's SOA workflow."""

    __tablename__ = "workflow_states"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    step_statuses: Mapped[dict] = mapped_column(
        JSONType, nullable=False, comment="step1..step6 -> pending | in_progress | completed | failed | awaiting_approval"
    )
    step_outputs: Mapped[dict] = mapped_column(
        JSONType, nullable=False, default=dict, comment="Informational per-step outputs"
    )
    workflow_run_id: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="External run handle of the active execution"
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now, onupdate=utc_now
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="workflow_state")


class SoaSection(Base):
    """A node of the hierarchical SOA section tree."""

    __tablename__ = "soa_sections"
    __table_args__ = (
        UniqueConstraint("project_id", "section_key", name="uq_soa_sections_project_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    section_key: Mapped[str] = mapped_column(String, nullable=False)  # M1 | M3_S2 | M4_S4_SS1
    parent_key: Mapped[str | None] = mapped_column(String, nullable=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    content_type: Mapped[str] = mapped_column(
        String, nullable=False, default="text"
    )  # text | table | bullets | mixed
    content: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    sources: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    missing_fields: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="pending"
    )  # pending | generated | reviewed | approved
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now, onupdate=utc_now
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="sections")
    comments: Mapped[list["SectionComment"]] = relationship(
        "SectionComment", back_populates="section", cascade="all, delete-orphan", passive_deletes=True
    )


class SoaVersion(Base):
    """Append-only version log entry holding a structural patch."""

    __tablename__ = "soa_versions"
    __table_args__ = (
        UniqueConstraint("project_id", "version_number", name="uq_soa_versions_project_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    patch: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    author_id: Mapped[str] = mapped_column(String, nullable=False)
    change_kind: Mapped[str] = mapped_column(
        String, nullable=False
    )  # generation | edit | approval
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="versions")


class SectionComment(Base):
    """Reviewer comment on a section; not part of the version history."""

    __tablename__ = "section_comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    section_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("soa_sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    section_key: Mapped[str] = mapped_column(String, nullable=False)
    author_id: Mapped[str] = mapped_column(String, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")  # open | resolved
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utc_now, onupdate=utc_now
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="comments")
    section: Mapped["SoaSection"] = relationship("SoaSection", back_populates="comments")
