"""Taxonomia de erros do núcleo de onboarding.

- SessionNotFoundError: session_id desconhecido (nunca retentado)
- OnboardingValidationError: identidade incompleta ou inválida no start
- TicketRetryableError: falha transitória do serviço de tickets
- TicketFatalError: falha permanente do serviço de tickets
- StoreCorruptionError: violação de invariante detectada no update
"""

from __future__ import annotations


class OnboardingError(Exception):
    """Base de todos os erros do domínio."""


class SessionNotFoundError(OnboardingError):
    """Sessão não encontrada (ou já removida pelo sweep)."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id


class OnboardingValidationError(OnboardingError):
    """Dados obrigatórios ausentes ou inválidos."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class StoreCorruptionError(OnboardingError):
    """Update rejeitado por violar invariante da sessão."""

    def __init__(self, session_id: str, reason: str) -> None:
        super().__init__(f"invariant violation on session {session_id}: {reason}")
        self.session_id = session_id
        self.reason = reason


class TicketServiceError(OnboardingError):
    """Erro do colaborador de tickets."""

    is_retryable: bool = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TicketRetryableError(TicketServiceError):
    """Timeout, 5xx, rate limit ou falha de conexão."""

    is_retryable = True


class TicketFatalError(TicketServiceError):
    """Credenciais inválidas ou payload malformado."""

    is_retryable = False
