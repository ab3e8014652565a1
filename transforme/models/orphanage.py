"""Orphanage model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transforme.db.base import Base


class Orphanage(Base):
    """An orphanage where classes are taught; ground truth for GPS checks."""

    __tablename__ = "orphanages"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    indonesian_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    curriculum: Mapped[str | None] = mapped_column(String(255), nullable=True)
    running_since: Mapped[str | None] = mapped_column(String(50), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    student_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    classes_per_week: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hours_per_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    website_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    class_groups: Mapped[list["ClassGroup"]] = relationship(
        "ClassGroup",
        back_populates="orphanage",
        cascade="all, delete-orphan",
        order_by="ClassGroup.sort_order",
    )

    @property
    def has_coordinates(self) -> bool:
        """Return ``True`` when both latitude and longitude are known."""

        return self.latitude is not None and self.longitude is not None


__all__ = ["Orphanage"]
