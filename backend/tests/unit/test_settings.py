"""
Unit tests for Pydantic Settings configuration.

Tests settings defaults, derived values and validation.
"""

import pytest
from pydantic import ValidationError

from gylde.config.settings import Settings


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_has_defaults(self):
        """Settings should have sensible defaults."""
        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.premium_max_photos == 20
        assert settings.live_ping_seconds >= 1
        assert settings.auth_audience == "authenticated"

    def test_is_production_property(self):
        assert Settings(_env_file=None, environment="Production").is_production is True
        settings = Settings(_env_file=None, environment="development")
        assert settings.is_production is False
        assert settings.is_development is True

    def test_allowed_origins_includes_localhost(self):
        settings = Settings(_env_file=None)
        assert "http://localhost:4200" in settings.allowed_origins

    def test_jwks_url_derived_from_issuer(self):
        settings = Settings(_env_file=None, auth_issuer="https://auth.gylde.test/auth/v1/")
        assert settings.jwks_url == "https://auth.gylde.test/auth/v1/.well-known/jwks.json"

    def test_explicit_jwks_url_wins(self):
        settings = Settings(
            _env_file=None,
            auth_issuer="https://auth.gylde.test/auth/v1",
            auth_jwks_url="https://keys.gylde.test/jwks.json",
        )
        assert settings.jwks_url == "https://keys.gylde.test/jwks.json"

    def test_loads_from_environment(self, monkeypatch):
        monkeypatch.setenv("PREMIUM_MAX_PHOTOS", "25")
        monkeypatch.setenv("STRIPE_PRICE_PLUS_MONTHLY", "price_plus_m")
        settings = Settings(_env_file=None)
        assert settings.premium_max_photos == 25
        assert settings.stripe_price_plus_monthly == "price_plus_m"

    @pytest.mark.parametrize("field", ["premium_max_photos", "live_ping_seconds"])
    def test_rejects_non_positive_limits(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})
