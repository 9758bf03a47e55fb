"""Testes unitários para config/settings.py.

Valida defaults e métodos de validação.
"""

from __future__ import annotations

import pytest

from onboarding_agent.config.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ENVIRONMENT", "TICKET_BACKEND", "TICKET_API_BASE_URL", "TICKET_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)


class TestSettingsDefaults:
    """Testes para valores padrão de Settings."""

    def test_default_environment_is_development(self) -> None:
        s = Settings(_env_file=None)
        assert s.environment == "development"
        assert s.is_development is True
        assert s.is_production is False

    def test_default_retry_policy(self) -> None:
        """Retry padrão: 3 tentativas, base 0.5s, teto 8s."""
        s = Settings(_env_file=None)
        assert s.ticket_max_attempts == 3
        assert s.ticket_backoff_base_seconds == 0.5
        assert s.ticket_backoff_max_seconds == 8.0

    def test_default_session_window(self) -> None:
        s = Settings(_env_file=None)
        assert s.session_idle_timeout_minutes == 1440
        assert s.session_preserve_incomplete is False
        assert s.shutdown_grace_seconds == 30.0

    def test_defaults_are_valid(self) -> None:
        assert Settings(_env_file=None).validate_all() == []


class TestTicketValidation:
    """Testes para validate_ticket_config."""

    def test_memory_backend_forbidden_in_production(self) -> None:
        s = Settings(_env_file=None, environment="production", ticket_backend="memory")
        errors = s.validate_ticket_config()
        assert any("proibido" in e for e in errors)

    def test_http_backend_requires_url_and_token(self) -> None:
        s = Settings(_env_file=None, ticket_backend="http")
        errors = s.validate_ticket_config()
        assert any("TICKET_API_BASE_URL" in e for e in errors)
        assert any("TICKET_API_TOKEN" in e for e in errors)

    def test_http_backend_configured(self) -> None:
        s = Settings(
            _env_file=None,
            environment="production",
            ticket_backend="http",
            ticket_api_base_url="https://tickets.example.com",
            ticket_api_token="token",
        )
        assert s.validate_ticket_config() == []

    def test_production_requires_https(self) -> None:
        s = Settings(
            _env_file=None,
            environment="production",
            ticket_backend="http",
            ticket_api_base_url="http://tickets.example.com",
            ticket_api_token="token",
        )
        assert any("https" in e for e in s.validate_ticket_config())

    @pytest.mark.parametrize(
        ("field", "value"),
        [("ticket_max_attempts", 0), ("ticket_backoff_base_seconds", 0), ("ticket_sync_mode", "later")],
    )
    def test_invalid_retry_values(self, field: str, value) -> None:
        s = Settings(_env_file=None, **{field: value})
        assert s.validate_ticket_config()


class TestOtherValidation:
    def test_unknown_session_backend(self) -> None:
        s = Settings(_env_file=None, session_store_backend="redis")
        assert s.validate_session_config()

    def test_unknown_match_mode(self) -> None:
        s = Settings(_env_file=None, keyword_match_mode="regex")
        assert s.validate_stage_config()

    def test_env_vars_are_read(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TICKET_SYNC_MODE", "background")
        monkeypatch.setenv("SESSION_PRESERVE_INCOMPLETE", "true")
        get_settings.cache_clear()
        try:
            s = get_settings()
            assert s.ticket_sync_mode == "background"
            assert s.session_preserve_incomplete is True
        finally:
            get_settings.cache_clear()
