"""Modelvault configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024

_INSECURE_DEFAULTS = {
    "api_key": "insecure-service-key-change-me",
}


class ModelvaultSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MODELVAULT_")

    environment: str = "development"

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/modelvault.db"

    # API
    api_title: str = "Modelvault"
    api_version: str = "0.1.0"
    api_key: str = "insecure-service-key-change-me"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    # Object storage
    storage_dir: str = "./data/objects"

    # Upload ceilings per size class, in bytes
    image_max_bytes: int = 5 * MIB
    model_max_bytes: int = 100 * MIB
    viewable_max_bytes: int = 15 * MIB

    # Stripe
    stripe_webhook_secret: str = ""
    stripe_signature_tolerance: int = 300  # seconds, 0 disables the check

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development":
            if insecure_fields:
                env_vars = ", ".join(f"MODELVAULT_{f.upper()}" for f in insecure_fields)
                raise RuntimeError(
                    f"Insecure default values detected in '{self.environment}' environment. "
                    f"Set these environment variables to secure values: {env_vars}."
                )
            if not self.stripe_webhook_secret:
                raise RuntimeError(
                    "MODELVAULT_STRIPE_WEBHOOK_SECRET must be set outside development; "
                    "unsigned checkout events would be able to grant entitlements."
                )

        if insecure_fields:
            warnings.warn(
                "Using insecure default service key, set MODELVAULT_API_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> ModelvaultSettings:
    settings = ModelvaultSettings()
    settings.validate_for_production()
    return settings
