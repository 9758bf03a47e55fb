"""Factory do serviço de tickets conforme backend configurado."""

from __future__ import annotations

from typing import TYPE_CHECKING

from onboarding_agent.domain.protocols.ticket_service import TicketServiceProtocol
from onboarding_agent.infra.ticket_service_http import HttpTicketService
from onboarding_agent.infra.ticket_service_memory import InMemoryTicketService
from onboarding_agent.observability.logging import get_logger

if TYPE_CHECKING:
    from onboarding_agent.config.settings import Settings

logger = get_logger(__name__)


def create_ticket_service(settings: Settings) -> TicketServiceProtocol:
    """Cria o cliente do serviço de tickets (memory | http)."""
    backend = settings.ticket_backend.lower()

    if backend == "http":
        if not settings.ticket_api_base_url or not settings.ticket_api_token:
            raise ValueError("TICKET_BACKEND=http requer TICKET_API_BASE_URL e TICKET_API_TOKEN")
        service: TicketServiceProtocol = HttpTicketService(
            base_url=settings.ticket_api_base_url,
            token=settings.ticket_api_token,
            timeout_seconds=settings.ticket_request_timeout_seconds,
            user_agent=f"{settings.service_name}/{settings.version}",
        )
    elif backend == "memory":
        service = InMemoryTicketService()
    else:
        raise ValueError(f"ticket backend não suportado: {settings.ticket_backend}")

    logger.info("Ticket service created", extra={"backend": backend})
    return service
