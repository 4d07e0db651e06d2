"""Runtime settings for the notifications service, loaded from the environment."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Channel transport, dispatch and sweep settings.

    Protean's own configuration (providers, processing mode) lives under
    ``[tool.protean]`` in ``pyproject.toml``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # SMTP transport
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_secure: bool = False  # implicit TLS (port 465); otherwise STARTTLS when available
    smtp_user: str | None = None
    smtp_password: str | None = Field(default=None, alias="SMTP_PASS")
    smtp_from: str = "noreply@plantops.local"
    smtp_timeout_seconds: float = Field(default=10.0, gt=0)

    frontend_url: str = "http://localhost:3000"

    # Dispatch
    dispatch_max_workers: int = Field(default=8, ge=1, le=64)
    channel_timeout_seconds: float = Field(default=15.0, gt=0)
    auto_seed_preferences: bool = False

    # Maintenance
    max_retries: int = Field(default=3, ge=0)
    sweep_batch_size: int = Field(default=500, ge=1)
    in_app_retention_days: int = Field(default=30, ge=1)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


@lru_cache
def get_settings() -> Settings:
    return Settings()
