"""Transparency report schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ReportGenerate(BaseModel):
    quarter: int = Field(ge=1, le=4)
    year: int = Field(ge=2000, le=2100)


class ReportUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = None


class TransparencyReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    quarter: int
    year: int
    total_classes: int
    total_students: int
    total_teachers: int
    orphanage_count: int
    content: str | None
    published: bool
    generated_at: datetime | None
    published_at: datetime | None
    created_by_id: int | None


class TransparencyReportList(BaseModel):
    reports: list[TransparencyReportOut]


__all__ = [
    "ReportGenerate",
    "ReportUpdate",
    "TransparencyReportList",
    "TransparencyReportOut",
]
