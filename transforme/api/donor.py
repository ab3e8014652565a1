"""Donor portal: email one-time-code login and donation history."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from transforme.core.rate_limit import enforce_rate_limit
from transforme.db import get_session_dependency
from transforme.models import Donor
from transforme.schemas.donation import (
    DonorDonationList,
    DonorMe,
    SendOtpRequest,
    VerifyOtpRequest,
)
from transforme.services import donor_auth

router = APIRouter(prefix="/donor", tags=["donor"])


@router.post("/send-otp")
def send_otp(
    payload: SendOtpRequest,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, bool]:
    """Email a six-digit login code, enrolling the address if it is new."""

    email = donor_auth.normalize_email(payload.email)
    enforce_rate_limit("otp_send", email, "Too many code requests. Please try again later.")
    donor_auth.send_otp(session, email)
    return {"success": True}


@router.post("/verify-otp", response_model=DonorMe)
def verify_otp(
    payload: VerifyOtpRequest,
    response: Response,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, Donor]:
    """Exchange a valid code for the ``donor_session`` cookie."""

    email = donor_auth.normalize_email(payload.email)
    enforce_rate_limit("otp_verify", email, "Too many attempts. Please try again later.")
    donor = donor_auth.verify_otp(session, email, payload.code)
    donor_auth.set_session_cookie(response, donor_auth.create_donor_session(donor))
    return {"donor": donor}


@router.get("/me", response_model=DonorMe)
def read_current_donor(
    donor: Annotated[Donor, Depends(donor_auth.get_current_donor)],
) -> dict[str, Donor]:
    return {"donor": donor}


@router.get("/donations", response_model=DonorDonationList)
def list_my_donations(
    donor: Annotated[Donor, Depends(donor_auth.get_current_donor)],
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, object]:
    return {"donations": donor_auth.list_donor_donations(session, donor)}


@router.post("/logout")
def logout(response: Response) -> dict[str, bool]:
    donor_auth.clear_session_cookie(response)
    return {"success": True}
