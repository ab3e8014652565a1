"""Donation and donor portal schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .common import Pagination


class DonationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    donor_email: str
    donor_name: str | None
    amount: int
    currency: str
    frequency: str
    status: str
    provider: str
    created_at: datetime | None


class DonationList(BaseModel):
    donations: list[DonationOut]
    pagination: Pagination


class DonationStats(BaseModel):
    total_raised: int
    total_donations: int
    recurring_total: int
    recurring_count: int
    one_time_total: int
    one_time_count: int
    unique_donors: int
    totals_by_currency: dict[str, int]


class DonorDonationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: int
    currency: str
    frequency: str
    status: str
    created_at: datetime | None


class DonorDonationList(BaseModel):
    donations: list[DonorDonationOut]


class SendOtpRequest(BaseModel):
    email: EmailStr


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    code: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")


class DonorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str | None
    last_login_at: datetime | None


class DonorMe(BaseModel):
    donor: DonorOut


__all__ = [
    "DonationList",
    "DonationOut",
    "DonationStats",
    "DonorDonationList",
    "DonorDonationOut",
    "DonorMe",
    "DonorOut",
    "SendOtpRequest",
    "VerifyOtpRequest",
]
