"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from expiry_tracker.domain.models import Channel
from expiry_tracker.domain.notifications import NotificationPolicy
from expiry_tracker.errors import ConfigurationError

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    endpoints_table: str = "push_endpoints"
    push_channel: Channel = Channel.WEB_PUSH

    vapid_public_key: str | None = None
    vapid_private_key: str | None = None
    vapid_subject: str = "mailto:admin@example.com"
    webpush_ttl_seconds: int = 86400

    line_channel_access_token: str | None = None
    line_channel_secret: str | None = None

    onesignal_app_id: str | None = None
    onesignal_api_key: str | None = None
    onesignal_base_url: str = "https://api.onesignal.com"

    cron_secret: str | None = None
    lookahead_days: int = Field(default=2, ge=0)
    max_listed_items: int = Field(default=5, ge=1)
    notification_policy: NotificationPolicy = NotificationPolicy.BATCH
    suppress_repeat_notifications: bool = False
    reference_timezone: str = "UTC"
    delivery_timeout_seconds: float = Field(default=10.0, gt=0)
    dispatch_concurrency: int = Field(default=8, ge=1)
    notification_url: str = "/"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def validate_channel(self) -> None:
        """Raise ConfigurationError when the selected channel lacks credentials."""
        missing = [
            name
            for name in _CHANNEL_REQUIREMENTS[self.push_channel]
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"{self.push_channel.value} channel requires: {', '.join(missing)}"
            )


_CHANNEL_REQUIREMENTS: dict[Channel, tuple[str, ...]] = {
    Channel.WEB_PUSH: ("vapid_public_key", "vapid_private_key"),
    Channel.LINE: ("line_channel_access_token", "line_channel_secret"),
    Channel.ONESIGNAL: ("onesignal_app_id", "onesignal_api_key"),
}


def parse_bearer_token(raw: str | None) -> str | None:
    """Extract the token from an Authorization header value."""
    if raw is None:
        return None
    scheme, _, token = raw.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
