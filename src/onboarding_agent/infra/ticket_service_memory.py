"""Serviço de tickets em memória (apenas dev/testes)."""

from __future__ import annotations

import itertools
import logging

from onboarding_agent.domain.errors import TicketFatalError
from onboarding_agent.domain.protocols.ticket_service import TicketServiceProtocol
from onboarding_agent.observability.logging import get_logger, short_id

logger: logging.Logger = get_logger(__name__)


class InMemoryTicketService(TicketServiceProtocol):
    """Guarda tickets em dict: {ticket_id: {"session_id", "user_id", "stage"}}."""

    def __init__(self, prefix: str = "ONB") -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)
        self.tickets: dict[str, dict[str, str]] = {}

    async def create_ticket(self, session_id: str, user_id: str, stage_name: str) -> str:
        ticket_id = f"{self._prefix}-{next(self._counter)}"
        self.tickets[ticket_id] = {
            "session_id": session_id,
            "user_id": user_id,
            "stage": stage_name,
        }
        logger.debug(
            "Ticket created (in-memory)",
            extra={"session_id": short_id(session_id), "ticket_id": ticket_id},
        )
        return ticket_id

    async def update_ticket(self, ticket_id: str, stage_name: str) -> None:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            raise TicketFatalError(f"unknown ticket {ticket_id}", status_code=404)
        ticket["stage"] = stage_name
        logger.debug("Ticket updated (in-memory)", extra={"ticket_id": ticket_id, "stage": stage_name})
