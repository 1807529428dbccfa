from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
import sqlalchemy as sa

from checklist_engine.db.base import Base

_JSON = sa.JSON().with_variant(JSONB(), "postgresql")


class TemplateNodeRecord(Base):
    """
    One row per folder or template. Children are found through
    parent_folder_id; folders keep no list of their own.
    """

    __tablename__ = "template_nodes"
    __table_args__ = (
        CheckConstraint("kind IN ('folder','template')", name="ck_template_nodes_kind"),
        CheckConstraint("version >= 1", name="ck_template_nodes_version"),
        CheckConstraint("usage_count >= 0", name="ck_template_nodes_usage_count"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    parent_folder_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("template_nodes.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # folder only
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # template only
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fields: Mapped[list | None] = mapped_column(_JSON, nullable=True)
    tags: Mapped[list | None] = mapped_column(_JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
