"""Settings loading and the production checklist."""

from oldrao.core.config import DEFAULT_SESSION_SECRET, EnvironmentMode, Settings


def test_server_address_from_environment(monkeypatch):
    monkeypatch.setenv("API_HOST", "127.0.0.1")
    monkeypatch.setenv("API_PORT", "8080")

    settings = Settings()

    assert settings.api_host == "127.0.0.1"
    assert settings.api_port == 8080


def test_production_requires_real_secret_and_database(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "PRODUCTION")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("SESSION_SECRET", DEFAULT_SESSION_SECRET)

    settings = Settings()

    assert settings.env_mode == EnvironmentMode.PRODUCTION
    assert settings.validate_production_config() == ["SESSION_SECRET", "DATABASE_URL"]


def test_development_allows_defaults():
    assert Settings().validate_production_config() == []
