"""Application configuration with environment variables."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "1.00.00"

    # Database
    DATABASE_URL: str

    # Server binding (used by `intake serve`)
    HOST: str = "0.0.0.0"
    PORT: int = 5057

    # Wire protocol for the submission endpoints:
    # "plain" = multipart form bodies, "encrypted" = sealed JSON envelopes
    SUBMISSION_MODE: Literal["plain", "encrypted"] = "plain"

    # Envelope key material (AES-256-CBC). Must be identical on clients.
    ENVELOPE_KEY: str = ""  # exactly 32 bytes
    ENVELOPE_IV: str = ""  # exactly 16 bytes

    # Upload limits
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024  # per image
    MAX_ENVELOPE_BODY_BYTES: int = 50 * 1024 * 1024
    ALLOWED_IMAGE_TYPES: str = "image/jpeg,image/png"

    # CORS
    CORS_ORIGINS: str = "*"

    # Rate Limiting (requests per minute)
    RATE_LIMIT_SUBMISSIONS: int = 30
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Logging / error tracking
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def allowed_image_types_list(self) -> list[str]:
        """Parse ALLOWED_IMAGE_TYPES into a lowercase list."""
        return [t.strip().lower() for t in self.ALLOWED_IMAGE_TYPES.split(",") if t.strip()]

    @property
    def envelope_enabled(self) -> bool:
        return self.SUBMISSION_MODE == "encrypted"


settings = Settings()
