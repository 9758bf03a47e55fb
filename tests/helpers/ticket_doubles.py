"""Dublês do serviço de tickets para testes."""

from __future__ import annotations

import asyncio

from onboarding_agent.domain.protocols.ticket_service import TicketServiceProtocol


class RecordingTicketService(TicketServiceProtocol):
    """Registra chamadas e permite roteirizar falhas.

    `create_failures` / `update_failures` são consumidas em ordem: cada
    chamada levanta a próxima exceção da lista até ela esvaziar.
    """

    def __init__(self, create_delay: float = 0.0) -> None:
        self.create_calls: list[tuple[str, str, str]] = []
        self.update_calls: list[tuple[str, str]] = []
        self.create_failures: list[Exception] = []
        self.update_failures: list[Exception] = []
        self.tickets: dict[str, str] = {}
        self.closed = False
        self._create_delay = create_delay

    async def create_ticket(self, session_id: str, user_id: str, stage_name: str) -> str:
        self.create_calls.append((session_id, user_id, stage_name))
        if self._create_delay:
            await asyncio.sleep(self._create_delay)
        if self.create_failures:
            raise self.create_failures.pop(0)
        ticket_id = f"T-{len(self.tickets) + 1}"
        self.tickets[ticket_id] = stage_name
        return ticket_id

    async def update_ticket(self, ticket_id: str, stage_name: str) -> None:
        self.update_calls.append((ticket_id, stage_name))
        if self.update_failures:
            raise self.update_failures.pop(0)
        self.tickets[ticket_id] = stage_name

    async def close(self) -> None:
        self.closed = True


async def no_sleep(_: float) -> None:
    """Substitui asyncio.sleep no backoff dos testes."""
    return None
