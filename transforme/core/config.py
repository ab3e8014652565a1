"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./transforme.db", alias="DATABASE_URL"
    )
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    redis_enabled_flag: bool = Field(default=False, alias="REDIS_ENABLED")

    auth0_domain: str | None = Field(default=None, alias="AUTH0_DOMAIN")
    auth0_audience: str | None = Field(default=None, alias="AUTH0_AUDIENCE")
    cron_secret: str | None = Field(default=None, alias="CRON_SECRET")
    usage_api_secret: str | None = Field(default=None, alias="USAGE_API_SECRET")

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    vision_model: str = Field(default="gpt-4o-mini", alias="VISION_MODEL")
    vision_timeout_seconds: float = Field(default=60.0, alias="VISION_TIMEOUT_SECONDS")

    aws_region: str = Field(default="ap-southeast-1", alias="AWS_REGION")
    aws_s3_bucket: str = Field(default="local", alias="AWS_S3_BUCKET")
    aws_access_key_id: str | None = Field(
        default=None, alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: str | None = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )
    local_storage_path: str = Field(
        default="/tmp/transforme-media", alias="LOCAL_STORAGE_PATH"
    )
    public_media_base_url: str | None = Field(
        default=None, alias="PUBLIC_MEDIA_BASE_URL"
    )
    api_base_url: str = Field(default="http://localhost:8000", alias="API_BASE_URL")

    resend_api_key: str | None = Field(default=None, alias="RESEND_API_KEY")
    email_from: str = Field(
        default="TransforMe Academy <noreply@transformeacademy.org>",
        alias="EMAIL_FROM",
    )
    admin_base_url: str = Field(
        default="http://localhost:3000", alias="ADMIN_BASE_URL"
    )

    donor_jwt_secret: str | None = Field(default=None, alias="DONOR_JWT_SECRET")
    donor_session_days: int = Field(default=90, alias="DONOR_SESSION_DAYS")
    otp_ttl_minutes: int = Field(default=10, alias="OTP_TTL_MINUTES")
    secure_cookies: bool = Field(default=True, alias="SECURE_COOKIES")

    geocoder_url: str = Field(
        default="https://nominatim.openstreetmap.org/search", alias="GEOCODER_URL"
    )
    geocoder_user_agent: str = Field(
        default="TransforMeAcademy/1.0 (admin geocoding)",
        alias="GEOCODER_USER_AGENT",
    )

    mercury_api_token: str | None = Field(default=None, alias="MERCURY_API_TOKEN")
    mercury_api_url: str = Field(
        default="https://api.mercury.com/api/v1", alias="MERCURY_API_URL"
    )
    wise_api_token: str | None = Field(default=None, alias="WISE_API_TOKEN")
    wise_profile_id: str | None = Field(default=None, alias="WISE_PROFILE_ID")
    wise_api_url: str = Field(default="https://api.wise.com", alias="WISE_API_URL")
    exchange_rate_url: str = Field(
        default="https://open.er-api.com/v6/latest/USD", alias="EXCHANGE_RATE_URL"
    )

    gps_high_meters: int = Field(default=200, alias="GPS_HIGH_METERS")
    gps_likely_meters: int = Field(default=500, alias="GPS_LIKELY_METERS")
    gps_uncertain_meters: int = Field(default=2000, alias="GPS_UNCERTAIN_METERS")
    time_match_tolerance_hours: int = Field(
        default=2, alias="TIME_MATCH_TOLERANCE_HOURS"
    )
    date_match_tolerance_days: int = Field(
        default=0, alias="DATE_MATCH_TOLERANCE_DAYS"
    )

    app_log_level: str = Field(default="warning", alias="APP_LOG_LEVEL")
    app_log_retention_days: int = Field(default=30, alias="APP_LOG_RETENTION_DAYS")

    class_rate_idr: int = Field(default=300_000, alias="CLASS_RATE_IDR")
    invoice_from_entity: str = Field(
        default="TransforMe Academy", alias="INVOICE_FROM_ENTITY"
    )
    invoice_to_entity: str = Field(
        default="White Light Ventures, Inc", alias="INVOICE_TO_ENTITY"
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    @property
    def redis_enabled(self) -> bool:
        """Return ``True`` when Redis integrations should be used."""

        return self.redis_enabled_flag


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
