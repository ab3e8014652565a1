"""Transactional email through the Resend HTTP API."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import httpx
import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from transforme.core.config import get_settings

LOGGER = structlog.get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

_TEMPLATES_DIR = Path(__file__).parent / "templates"
_ENV = Environment(
    loader=FileSystemLoader(_TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)


class EmailDeliveryError(RuntimeError):
    """Raised when the email provider rejects a message."""


def render_template(template_name: str, context: Mapping[str, Any]) -> str:
    """Render an email template with the provided context."""

    template = _ENV.get_template(template_name)
    return template.render(context)


def send_email(
    recipient: str,
    subject: str,
    html: str,
    *,
    client: httpx.Client | None = None,
) -> bool:
    """Send ``html`` to ``recipient``; returns ``False`` when email is not configured."""

    settings = get_settings()
    if not settings.resend_api_key:
        LOGGER.info("email_skipped", reason="missing_api_key", recipient=recipient, subject=subject)
        return False

    payload = {"from": settings.email_from, "to": [recipient], "subject": subject, "html": html}
    headers = {"Authorization": f"Bearer {settings.resend_api_key}"}
    try:
        if client is None:
            with httpx.Client(timeout=10.0) as owned:
                response = owned.post(RESEND_API_URL, json=payload, headers=headers)
        else:
            response = client.post(RESEND_API_URL, json=payload, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        LOGGER.error("email_send_failed", recipient=recipient, subject=subject, error=str(exc))
        raise EmailDeliveryError(str(exc)) from exc

    LOGGER.info("email_sent", recipient=recipient, subject=subject)
    return True


def send_invite_email(recipient: str, *, invited_by: str, roles: list[str]) -> bool:
    settings = get_settings()
    html = render_template(
        "invite.html",
        {
            "recipient": recipient,
            "invited_by": invited_by,
            "role_labels": ", ".join(role.replace("_", " ") for role in roles),
            "login_url": f"{settings.admin_base_url.rstrip('/')}/admin/login",
        },
    )
    return send_email(
        recipient, "You're invited to the TransforMe Academy admin panel", html
    )


def send_donor_otp_email(recipient: str, code: str) -> bool:
    html = render_template(
        "donor_otp.html",
        {"code": code, "ttl_minutes": get_settings().otp_ttl_minutes},
    )
    return send_email(recipient, f"Your login code: {code}", html)


__all__ = [
    "EmailDeliveryError",
    "render_template",
    "send_donor_otp_email",
    "send_email",
    "send_invite_email",
]
