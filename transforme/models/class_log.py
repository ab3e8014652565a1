"""Class log and class log photo models."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transforme.db.base import Base


class ClassLog(Base):
    """A single teaching session with its photo-verification results.

    The ``ai_*``, ``photo_*`` and ``exif_date_taken`` columns are written by
    the verification services only; the update payloads never expose them.
    """

    __tablename__ = "class_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    orphanage_id: Mapped[str] = mapped_column(
        ForeignKey("orphanages.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    teacher_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    class_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    class_time: Mapped[str | None] = mapped_column(String(20), nullable=True)
    student_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    ai_kids_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ai_location: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_photo_timestamp: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ai_orphanage_match: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ai_confidence_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_primary_photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_analyzed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    photo_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    photo_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    ai_gps_distance: Mapped[float | None] = mapped_column(Float, nullable=True)

    exif_date_taken: Mapped[str | None] = mapped_column(String(30), nullable=True)
    ai_date_match: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ai_date_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_time_match: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ai_time_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    orphanage: Mapped["Orphanage"] = relationship("Orphanage")
    teacher: Mapped["User"] = relationship("User")
    photos: Mapped[list["ClassLogPhoto"]] = relationship(
        "ClassLogPhoto",
        back_populates="class_log",
        cascade="all, delete-orphan",
        order_by="ClassLogPhoto.sort_order",
    )

    @property
    def orphanage_name(self) -> str | None:
        return self.orphanage.name if self.orphanage else None

    @property
    def teacher_name(self) -> str | None:
        return self.teacher.name if self.teacher else None


class ClassLogPhoto(Base):
    """A photo attached to a class log."""

    __tablename__ = "class_log_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_log_id: Mapped[int] = mapped_column(
        ForeignKey("class_logs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    caption: Mapped[str | None] = mapped_column(String(500), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    class_log: Mapped["ClassLog"] = relationship("ClassLog", back_populates="photos")


__all__ = ["ClassLog", "ClassLogPhoto"]
