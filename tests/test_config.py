"""
Tests for settings loading.
"""

import pytest
from pydantic import ValidationError

from plataforma.auth import IdentityOptions, JwtSettings
from plataforma.config import Settings, configure, get_settings, on_settings_loaded, reset_settings

from fornecedores.settings import AppSettings


@pytest.fixture
def clean_settings():
    reset_settings()
    yield
    reset_settings()


class TestSettings:
    """Test Settings defaults and validation."""

    def test_secret_is_generated_outside_production(self):
        settings = Settings(environment="testing")
        assert settings.secret_key != "__auto_generate__"
        assert len(settings.secret_key) > 32

    def test_secret_is_required_in_production(self):
        with pytest.raises(ValidationError):
            Settings(environment="production")

    def test_auth_secret_overrides_secret_key(self):
        settings = Settings(environment="testing", secret_key="a" * 40, auth_secret_key="b" * 40)
        assert settings.effective_auth_secret == "b" * 40

    def test_environment_from_env_var(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "testing")
        monkeypatch.setenv("AUTH_ISSUER", "OutroSistema")
        settings = Settings()
        assert settings.is_testing
        assert settings.auth_issuer == "OutroSistema"

    def test_app_defaults(self):
        settings = AppSettings(environment="testing")
        assert settings.app_name == "Fornecedores API"
        assert settings.auto_create_tables is True
        assert settings.database_url.startswith("sqlite+aiosqlite")


class TestDerivedOptions:
    def test_jwt_settings(self):
        settings = Settings(environment="testing", secret_key="k" * 40)
        jwt_settings = JwtSettings.from_settings(settings)
        assert jwt_settings.issuer == "MeuSistema"
        assert jwt_settings.audience == "https://localhost"
        assert jwt_settings.expires_in == 7200
        assert jwt_settings.secret_key == "k" * 40

    def test_identity_options(self):
        settings = Settings(
            environment="testing",
            identity_lockout_max_failed_attempts=3,
            identity_password_required_length=10,
        )
        options = IdentityOptions.from_settings(settings)
        assert options.lockout.max_failed_access_attempts == 3
        assert options.password.required_length == 10


class TestConfigure:
    """Test configure() / get_settings()."""

    def test_configure_with_class_and_overrides(self, clean_settings):
        settings = configure(settings_class=AppSettings, environment="testing", port=9000)
        assert isinstance(settings, AppSettings)
        assert get_settings() is settings
        assert settings.port == 9000

    def test_on_settings_loaded_callback(self, clean_settings):
        loaded = []

        @on_settings_loaded
        def registrar(settings):
            loaded.append(settings.app_name)

        configure(environment="testing", app_name="Callback")
        assert "Callback" in loaded
