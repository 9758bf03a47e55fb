"""Contratos de domínio (store de sessão e serviço de tickets)."""

from onboarding_agent.domain.protocols.session_store import SessionMutator, SessionStoreProtocol
from onboarding_agent.domain.protocols.ticket_service import TicketServiceProtocol

__all__ = [
    "SessionMutator",
    "SessionStoreProtocol",
    "TicketServiceProtocol",
]
