"""Infraestrutura: store de sessões e clientes do serviço de tickets."""

from onboarding_agent.infra.session_store import create_session_store
from onboarding_agent.infra.session_store_memory import InMemorySessionStore
from onboarding_agent.infra.ticket_service import create_ticket_service
from onboarding_agent.infra.ticket_service_http import HttpTicketService
from onboarding_agent.infra.ticket_service_memory import InMemoryTicketService

__all__ = [
    "HttpTicketService",
    "InMemorySessionStore",
    "InMemoryTicketService",
    "create_session_store",
    "create_ticket_service",
]
