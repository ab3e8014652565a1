"""Class log request and response schemas."""

from __future__ import annotations

from datetime import date, datetime

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from .common import Pagination, parse_iso_date


class PhotoGps(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class PhotoInput(BaseModel):
    """A photo already uploaded to storage."""

    url: str = Field(min_length=1)
    caption: str | None = Field(default=None, max_length=500)
    sort_order: int | None = Field(default=None, ge=0)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("Photo url must be an absolute http(s) URL")
        return value


def _require_photos(value: list[PhotoInput]) -> list[PhotoInput]:
    if len(value) == 0:
        raise ValueError("At least one photo is required")
    return value


PhotoList = Annotated[list[PhotoInput], AfterValidator(_require_photos)]


class ClassLogCreate(BaseModel):
    """Payload submitted by a teacher manager after a class."""

    orphanage_id: str = Field(min_length=1)
    teacher_id: int
    class_date: date
    class_time: str | None = Field(default=None, max_length=20)
    student_count: int | None = Field(default=None, ge=0)
    photos: PhotoList
    notes: str | None = Field(default=None, max_length=2000)
    photo_gps: PhotoGps | None = None
    exif_date_taken: str | None = Field(default=None, max_length=30)

    @field_validator("class_date", mode="before")
    @classmethod
    def validate_class_date(cls, value: object) -> date:
        return parse_iso_date(value)


class ClassLogUpdate(BaseModel):
    """Editable fields of a class log; verification results are not editable."""

    model_config = ConfigDict(extra="ignore")

    orphanage_id: str | None = Field(default=None, min_length=1)
    class_date: date | None = None
    class_time: str | None = Field(default=None, max_length=20)
    student_count: int | None = Field(default=None, ge=0)
    photos: PhotoList | None = None
    notes: str | None = Field(default=None, max_length=2000)
    photo_gps: PhotoGps | None = None
    exif_date_taken: str | None = Field(default=None, max_length=30)

    @field_validator("class_date", mode="before")
    @classmethod
    def validate_class_date(cls, value: object) -> date | None:
        if value is None:
            return None
        return parse_iso_date(value)


class AnalyzeRequest(BaseModel):
    """Optional overrides for a manual re-analysis."""

    photo_urls: list[str] | None = None
    photo_gps: PhotoGps | None = None


class ClassLogPhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    caption: str | None
    sort_order: int


class Verification(BaseModel):
    """Tri-state badges derived from the stored verification fields."""

    orphanage: bool | None
    date: bool | None
    time: bool | None


class ClassLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    orphanage_id: str
    orphanage_name: str | None
    teacher_id: int
    teacher_name: str | None
    class_date: date
    class_time: str | None
    class_time_display: str | None = None
    student_count: int | None
    photo_url: str | None
    notes: str | None
    ai_kids_count: int | None
    ai_location: str | None
    ai_photo_timestamp: str | None
    ai_orphanage_match: str | None
    ai_confidence_notes: str | None
    ai_primary_photo_url: str | None
    ai_analyzed_at: datetime | None
    photo_latitude: float | None
    photo_longitude: float | None
    ai_gps_distance: float | None
    exif_date_taken: str | None
    ai_date_match: str | None
    ai_date_notes: str | None
    ai_time_match: str | None
    ai_time_notes: str | None
    created_at: datetime | None
    photos: list[ClassLogPhotoOut]
    verification: Verification | None = None


class ClassLogList(BaseModel):
    class_logs: list[ClassLogOut]
    pagination: Pagination


class AnalysisOut(BaseModel):
    primary_photo_url: str
    kids_count: int
    location: str | None
    photo_timestamp: str | None
    orphanage_match: str | None
    confidence_notes: str | None
    gps_distance: float | None


class AnalyzeResponse(BaseModel):
    analysis: AnalysisOut
    class_log: ClassLogOut


__all__ = [
    "AnalysisOut",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "ClassLogCreate",
    "ClassLogList",
    "ClassLogOut",
    "ClassLogPhotoOut",
    "ClassLogUpdate",
    "PhotoGps",
    "PhotoInput",
    "Verification",
]
