from __future__ import annotations

from typing import ClassVar, final

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PLACEHOLDER_ACCESS_TOKEN_SECRET = "access_token_secret_change_me"


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [x.strip() for x in value.split(",") if x.strip()]


@final
class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )
    app_name: str = "Nota Backend"
    api_prefix: str = "/api/v1"

    # Environment (ENVIRONMENT): development | production
    environment: str = "development"

    database_url: str = "sqlite:///./dev.db"
    log_level: str = "INFO"

    cors_allow_origins: str = "*"

    # Bearer access tokens (HMAC-signed, see nota_backend.access_tokens)
    access_token_secret: str = _PLACEHOLDER_ACCESS_TOKEN_SECRET
    access_token_max_age_seconds: int = 60 * 60 * 12  # 12 hours

    # Created on startup when both are set; never overwrites an existing account.
    bootstrap_admin_username: str = ""
    bootstrap_admin_password: str = ""

    # Upload safety policy. This limit governs validation.
    upload_max_size_bytes: int = 10 * 1024 * 1024
    upload_allowed_extensions: str = "txt,md,pdf,png,jpg,jpeg,gif"
    upload_allowed_mime_types: str = (
        "text/plain,text/markdown,application/pdf,image/png,image/jpeg,image/gif"
    )
    # Transport-level hard stop while reading multipart bodies.
    http_upload_max_size_bytes: int = 25 * 1024 * 1024

    # Activity log consumer queue; events beyond this are dropped with a warning.
    activity_log_queue_size: int = 1000
    # Attempts per event before the write is given up and logged.
    activity_log_write_attempts: int = 3

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":  # pyright: ignore[reportUnusedFunction]
        if self.environment.strip().lower() != "production":
            return self

        errors: list[str] = []

        secret = self.access_token_secret.strip()
        if not secret or secret == _PLACEHOLDER_ACCESS_TOKEN_SECRET:
            errors.append("ACCESS_TOKEN_SECRET must be set in production")

        if self.bootstrap_admin_username.strip() and not self.bootstrap_admin_password:
            errors.append("BOOTSTRAP_ADMIN_PASSWORD must be set when BOOTSTRAP_ADMIN_USERNAME is")

        cors_v = self.cors_allow_origins.strip()
        if not cors_v or cors_v == "*":
            errors.append("CORS_ALLOW_ORIGINS must be explicit (not '*') in production")

        if self.database_url.strip().lower().startswith("sqlite"):
            errors.append("DATABASE_URL must not point at SQLite in production")

        if self.upload_max_size_bytes <= 0:
            errors.append("UPLOAD_MAX_SIZE_BYTES must be positive")

        if errors:
            raise ValueError("Invalid production settings: " + "; ".join(errors))
        return self

    def cors_origins_list(self) -> list[str]:
        v = self.cors_allow_origins.strip()
        if not v:
            return []
        if v == "*":
            return ["*"]
        return _split_csv(v)

    def upload_allowed_extensions_list(self) -> list[str]:
        return [e.lower().lstrip(".") for e in _split_csv(self.upload_allowed_extensions)]

    def upload_allowed_mime_types_list(self) -> list[str]:
        return [m.lower() for m in _split_csv(self.upload_allowed_mime_types)]

    def security_warnings(self) -> list[str]:
        warnings: list[str] = []
        secret = self.access_token_secret.strip()
        if not secret or secret == _PLACEHOLDER_ACCESS_TOKEN_SECRET:
            warnings.append("ACCESS_TOKEN_SECRET is missing or using placeholder value")
        if self.cors_allow_origins.strip() == "*":
            warnings.append("CORS_ALLOW_ORIGINS='*' is permissive")
        if self.upload_max_size_bytes > self.http_upload_max_size_bytes:
            warnings.append(
                "UPLOAD_MAX_SIZE_BYTES exceeds HTTP_UPLOAD_MAX_SIZE_BYTES; "
                "the transport limit will reject first"
            )
        return warnings


# The validator is invoked by Pydantic at runtime.
_ = Settings._validate_production_settings


settings = Settings()
