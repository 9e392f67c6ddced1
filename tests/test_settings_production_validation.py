from __future__ import annotations

import pytest

from nota_backend.config import Settings


def test_settings_development_allows_placeholders():
    # Development should stay frictionless: placeholder values are allowed.
    Settings.model_validate({"environment": "development"})


def test_settings_production_requires_secrets_and_core_config():
    with pytest.raises(Exception) as excinfo:
        Settings.model_validate(
            {"environment": "production", "bootstrap_admin_username": "root"}
        )

    msg = str(excinfo.value)
    assert "ACCESS_TOKEN_SECRET" in msg
    assert "BOOTSTRAP_ADMIN_PASSWORD" in msg
    assert "CORS_ALLOW_ORIGINS" in msg
    assert "DATABASE_URL" in msg


def test_settings_production_allows_safe_values_when_configured():
    s = Settings.model_validate(
        {
            "environment": "production",
            "database_url": "postgresql+psycopg://u:p@localhost:5432/nota",
            "access_token_secret": "strong-access-token-secret",
            "cors_allow_origins": "https://example.com",
            "bootstrap_admin_username": "root",
            "bootstrap_admin_password": "Strong-Admin-Password-1",
        }
    )
    assert s.security_warnings() == []


def test_settings_production_rejects_non_positive_upload_limit():
    with pytest.raises(Exception) as excinfo:
        Settings.model_validate(
            {
                "environment": "production",
                "database_url": "postgresql+psycopg://u:p@localhost:5432/nota",
                "access_token_secret": "strong-access-token-secret",
                "cors_allow_origins": "https://example.com",
                "upload_max_size_bytes": 0,
            }
        )
    assert "UPLOAD_MAX_SIZE_BYTES" in str(excinfo.value)


def test_csv_settings_are_normalized():
    s = Settings.model_validate(
        {
            "upload_allowed_extensions": " .PNG, txt ,,",
            "upload_allowed_mime_types": "Image/PNG,text/plain",
            "cors_allow_origins": "https://a.example, https://b.example",
        }
    )
    assert s.upload_allowed_extensions_list() == ["png", "txt"]
    assert s.upload_allowed_mime_types_list() == ["image/png", "text/plain"]
    assert s.cors_origins_list() == ["https://a.example", "https://b.example"]


def test_security_warnings_flag_permissive_development_defaults():
    warnings = Settings.model_validate({"environment": "development"}).security_warnings()
    assert any("ACCESS_TOKEN_SECRET" in w for w in warnings)
    assert any("CORS_ALLOW_ORIGINS" in w for w in warnings)
