"""Configurações da aplicação via variáveis de ambiente.

O núcleo (StageEngine, TicketSync, SessionStore) nunca lê o ambiente:
recebe os valores já resolvidos a partir desta estrutura no startup.
Nunca hardcode tokens ou valores sensíveis.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_TICKET_BACKENDS = frozenset({"memory", "http"})
VALID_SYNC_MODES = frozenset({"inline", "background"})
VALID_MATCH_MODES = frozenset({"word", "substring"})


class Settings(BaseSettings):
    """Configurações lidas do ambiente (ou de um arquivo .env)."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Aplicação
    service_name: str = "onboarding_agent"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text
    cors_allowed_origins: list[str] = ["*"]

    # Sessões
    session_store_backend: str = "memory"
    session_idle_timeout_minutes: int = 1440  # 24h sem atividade
    session_preserve_incomplete: bool = False  # Sweep mantém sessões incompletas
    session_sweep_interval_seconds: int = 300  # 0 desabilita sweep periódico

    # Catálogo de estágios
    stage_catalog_path: str | None = None  # JSON com definições; None usa o padrão
    keyword_match_mode: str = "word"  # word | substring

    # Serviço de tickets
    ticket_backend: str = "memory"  # memory | http
    ticket_api_base_url: str | None = None
    ticket_api_token: str | None = None
    ticket_request_timeout_seconds: float = 10.0
    ticket_max_attempts: int = 3  # Tentativas por chamada (inclui a primeira)
    ticket_backoff_base_seconds: float = 0.5
    ticket_backoff_max_seconds: float = 8.0
    ticket_sync_mode: str = "inline"  # inline | background
    ticket_create_on_start: bool = False  # Cria ticket já no start da sessão

    # Ciclo de vida
    shutdown_grace_seconds: float = 30.0

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_staging(self) -> bool:
        """Retorna True se ambiente é staging."""
        return self.environment.lower() in ("staging", "stage")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")

    def validate_session_config(self) -> list[str]:
        """Valida backend e janelas de sessão."""
        errors: list[str] = []
        if self.session_store_backend.lower() != "memory":
            errors.append(
                f"SESSION_STORE_BACKEND '{self.session_store_backend}' inválido. Valores válidos: memory"
            )
        if self.session_idle_timeout_minutes <= 0:
            errors.append("SESSION_IDLE_TIMEOUT_MINUTES deve ser > 0")
        if self.session_sweep_interval_seconds < 0:
            errors.append("SESSION_SWEEP_INTERVAL_SECONDS deve ser >= 0")
        return errors

    def validate_stage_config(self) -> list[str]:
        """Valida modo de correspondência de keywords."""
        errors: list[str] = []
        if self.keyword_match_mode.lower() not in VALID_MATCH_MODES:
            errors.append(
                f"KEYWORD_MATCH_MODE '{self.keyword_match_mode}' inválido. "
                f"Valores válidos: {sorted(VALID_MATCH_MODES)}"
            )
        return errors

    def validate_ticket_config(self) -> list[str]:
        """Valida backend, credenciais e política de retry do serviço de tickets.

        Em staging/prod, o backend em memória é proibido: tickets precisam
        chegar ao sistema externo.
        """
        errors: list[str] = []
        backend = self.ticket_backend.lower()

        if backend not in VALID_TICKET_BACKENDS:
            errors.append(
                f"TICKET_BACKEND '{backend}' inválido. Valores válidos: {sorted(VALID_TICKET_BACKENDS)}"
            )

        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append("TICKET_BACKEND=memory é proibido em staging/production")

        if backend == "http":
            if not self.ticket_api_base_url:
                errors.append("TICKET_BACKEND=http requer TICKET_API_BASE_URL configurado")
            elif self.is_production and self.ticket_api_base_url.startswith("http://"):
                errors.append("TICKET_API_BASE_URL deve usar https em production")
            if not self.ticket_api_token:
                errors.append("TICKET_BACKEND=http requer TICKET_API_TOKEN configurado")

        if self.ticket_sync_mode.lower() not in VALID_SYNC_MODES:
            errors.append("TICKET_SYNC_MODE inválido: use inline | background")
        if self.ticket_max_attempts < 1:
            errors.append("TICKET_MAX_ATTEMPTS deve ser >= 1")
        if self.ticket_backoff_base_seconds <= 0:
            errors.append("TICKET_BACKOFF_BASE_SECONDS deve ser > 0")
        if self.ticket_backoff_max_seconds < self.ticket_backoff_base_seconds:
            errors.append("TICKET_BACKOFF_MAX_SECONDS deve ser >= TICKET_BACKOFF_BASE_SECONDS")
        if self.ticket_request_timeout_seconds <= 0:
            errors.append("TICKET_REQUEST_TIMEOUT_SECONDS deve ser > 0")
        return errors

    def validate_all(self) -> list[str]:
        errors: list[str] = []
        errors.extend(self.validate_session_config())
        errors.extend(self.validate_stage_config())
        errors.extend(self.validate_ticket_config())
        if self.shutdown_grace_seconds < 0:
            errors.append("SHUTDOWN_GRACE_SECONDS deve ser >= 0")
        return errors


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings."""
    return Settings()
