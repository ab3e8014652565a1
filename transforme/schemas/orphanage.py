"""Orphanage and class group schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class OrphanageBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    indonesian_name: str | None = Field(default=None, max_length=255)
    address: str | None = None
    location: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    curriculum: str | None = Field(default=None, max_length=255)
    running_since: str | None = Field(default=None, max_length=50)
    image_url: str | None = None
    student_count: int = Field(default=0, ge=0)
    classes_per_week: int = Field(default=0, ge=0)
    hours_per_week: int | None = Field(default=None, ge=0)


class OrphanageCreate(OrphanageBase):
    website_url: str | None = None


class OrphanageUpdate(OrphanageBase):
    pass


class GeocodeRequest(BaseModel):
    address: str = Field(min_length=1)


class GeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    display_name: str


class ClassGroupCreate(BaseModel):
    orphanage_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    student_count: int = Field(ge=0)
    age_range: str | None = Field(default=None, max_length=50)
    sort_order: int | None = Field(default=None, ge=0)


class ClassGroupUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    student_count: int = Field(ge=0)
    age_range: str | None = Field(default=None, max_length=50)
    sort_order: int | None = Field(default=None, ge=0)


class ClassGroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    orphanage_id: str
    name: str
    student_count: int
    age_range: str | None
    sort_order: int


class OrphanageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    indonesian_name: str | None
    address: str | None
    location: str
    description: str
    curriculum: str | None
    running_since: str | None
    image_url: str | None
    student_count: int
    classes_per_week: int
    hours_per_week: int | None
    latitude: float | None
    longitude: float | None
    website_url: str | None
    created_at: datetime | None
    updated_at: datetime | None
    class_groups: list[ClassGroupOut] = []


class OrphanageList(BaseModel):
    orphanages: list[OrphanageOut]


class ClassGroupList(BaseModel):
    class_groups: list[ClassGroupOut]


__all__ = [
    "ClassGroupCreate",
    "ClassGroupList",
    "ClassGroupOut",
    "ClassGroupUpdate",
    "GeocodeRequest",
    "GeocodeResponse",
    "OrphanageCreate",
    "OrphanageList",
    "OrphanageOut",
    "OrphanageUpdate",
]
