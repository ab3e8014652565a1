"""Event schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import parse_iso_date


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    event_date: date | None = None
    orphanage_id: str | None = None
    cover_image_url: str | None = None
    active: bool = True

    @field_validator("event_date", mode="before")
    @classmethod
    def validate_event_date(cls, value: object) -> date | None:
        if value in (None, ""):
            return None
        return parse_iso_date(value)


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    event_date: date | None = None
    orphanage_id: str | None = None
    cover_image_url: str | None = None
    active: bool | None = None

    @field_validator("event_date", mode="before")
    @classmethod
    def validate_event_date(cls, value: object) -> date | None:
        if value in (None, ""):
            return None
        return parse_iso_date(value)


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    event_date: date | None
    orphanage_id: str | None
    created_by_id: int | None
    cover_image_url: str | None
    active: bool
    created_at: datetime | None


class EventList(BaseModel):
    events: list[EventOut]


__all__ = ["EventCreate", "EventList", "EventOut", "EventUpdate"]
