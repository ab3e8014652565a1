"""Class group model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transforme.db.base import Base


class ClassGroup(Base):
    """A group of students taught together at one orphanage."""

    __tablename__ = "class_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    orphanage_id: Mapped[str] = mapped_column(
        ForeignKey("orphanages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    student_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    age_range: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    orphanage: Mapped["Orphanage"] = relationship("Orphanage", back_populates="class_groups")


__all__ = ["ClassGroup"]
