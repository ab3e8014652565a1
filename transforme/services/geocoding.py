"""Address geocoding through an OpenStreetMap Nominatim endpoint."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog

from transforme.core.config import get_settings

LOGGER = structlog.get_logger(__name__)

GEOCODE_TIMEOUT_SECONDS = 10.0


class GeocodingError(RuntimeError):
    """Raised when the geocoding service cannot be reached or answers with an error."""


@dataclass(frozen=True, slots=True)
class GeocodingResult:
    latitude: float
    longitude: float
    display_name: str


def geocode_address(
    address: str, *, client: httpx.Client | None = None
) -> GeocodingResult | None:
    """Return coordinates for ``address`` or ``None`` when it cannot be resolved.

    Transport failures and error responses raise :class:`GeocodingError`.
    """

    if not address or not address.strip():
        return None

    settings = get_settings()
    params = {"q": address.strip(), "format": "json", "limit": "1"}
    headers = {"User-Agent": settings.geocoder_user_agent}
    try:
        if client is None:
            with httpx.Client(timeout=GEOCODE_TIMEOUT_SECONDS) as owned:
                response = owned.get(settings.geocoder_url, params=params, headers=headers)
        else:
            response = client.get(settings.geocoder_url, params=params, headers=headers)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.warning("geocode_failed", address=address, error=str(exc))
        raise GeocodingError(f"Geocoding service request failed: {exc}") from exc

    if not isinstance(data, list) or not data:
        LOGGER.info("geocode_no_results", address=address)
        return None

    first = data[0]
    try:
        latitude = float(first["lat"])
        longitude = float(first["lon"])
    except (KeyError, TypeError, ValueError):
        LOGGER.warning("geocode_malformed_result", address=address)
        return None

    return GeocodingResult(
        latitude=latitude,
        longitude=longitude,
        display_name=first.get("display_name") or address,
    )


__all__ = ["GeocodingError", "GeocodingResult", "geocode_address"]
