"""Protocolo do colaborador externo de tickets."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TicketServiceProtocol(ABC):
    """Capacidade mínima para espelhar uma sessão em um ticket externo.

    Implementações devem levantar TicketRetryableError ou TicketFatalError;
    a política de retry pertence ao TicketSync, não ao cliente.
    """

    @abstractmethod
    async def create_ticket(self, session_id: str, user_id: str, stage_name: str) -> str:
        """Cria o ticket e retorna o identificador externo."""
        ...

    @abstractmethod
    async def update_ticket(self, ticket_id: str, stage_name: str) -> None:
        """Atualiza status/labels do ticket para o estágio informado."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Libera recursos (conexões HTTP); no-op por padrão."""
