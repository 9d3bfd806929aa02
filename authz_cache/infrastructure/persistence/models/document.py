"""Document and DocumentAssignment ORM models (read-only mapping)."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from authz_cache.infrastructure.persistence.database import Base
from authz_cache.infrastructure.persistence.models.mixins import BaseModelMixin, IdMixin


class Document(BaseModelMixin, Base):
    """Document. Table: document. Soft-deleted rows are treated as missing."""

    __tablename__ = "document"

    title: Mapped[str] = mapped_column(String, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )


class DocumentAssignment(IdMixin, Base):
    """User assignment on a document (EDITOR / APPROVER). Table: document_assignment."""

    __tablename__ = "document_assignment"

    document_id: Mapped[str] = mapped_column(
        String, ForeignKey("document.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
    )
    assignment_type: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "document_id", "user_id", "assignment_type", name="uq_document_assignment"
        ),
        Index("ix_document_assignment_user", "user_id"),
        Index("ix_document_assignment_document", "document_id"),
    )
