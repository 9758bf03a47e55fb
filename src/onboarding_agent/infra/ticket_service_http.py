"""Cliente HTTP do serviço externo de tickets.

Endpoints:
- POST {base}/tickets            → {"id": "..."}
- PUT  {base}/tickets/{ticket_id} → 2xx

Falhas HTTP são traduzidas para TicketRetryableError / TicketFatalError.
"""

from __future__ import annotations

import logging

import httpx

from onboarding_agent.domain.errors import TicketFatalError, TicketRetryableError, TicketServiceError
from onboarding_agent.domain.protocols.ticket_service import TicketServiceProtocol
from onboarding_agent.infra.http import HttpClient, HttpClientConfig, HttpError
from onboarding_agent.observability.logging import get_logger, short_id

logger: logging.Logger = get_logger(__name__)


def _translate(exc: HttpError) -> TicketServiceError:
    if exc.is_retryable:
        return TicketRetryableError(str(exc), status_code=exc.status_code)
    return TicketFatalError(str(exc), status_code=exc.status_code)


class HttpTicketService(TicketServiceProtocol):
    """Implementação HTTP autenticada por bearer token."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout_seconds: float = 10.0,
        user_agent: str = "onboarding_agent",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = HttpClientConfig(
            base_url=base_url.rstrip("/"),
            timeout_seconds=timeout_seconds,
            default_headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": user_agent,
            },
        )
        self._http = HttpClient(config, transport=transport)

    async def create_ticket(self, session_id: str, user_id: str, stage_name: str) -> str:
        payload = {
            "session_id": session_id,
            "user_id": user_id,
            "stage": stage_name,
            "summary": f"Onboarding for {user_id}",
            "labels": ["onboarding", f"stage:{stage_name}"],
        }
        try:
            response = await self._http.post("/tickets", json=payload)
        except HttpError as exc:
            raise _translate(exc) from exc

        try:
            ticket_id = response.json().get("id")
        except ValueError as exc:
            raise TicketFatalError("ticket service returned invalid JSON") from exc
        if not ticket_id:
            raise TicketFatalError("ticket service response missing id")

        logger.info(
            "Ticket created",
            extra={"session_id": short_id(session_id), "ticket_id": ticket_id, "stage": stage_name},
        )
        return str(ticket_id)

    async def update_ticket(self, ticket_id: str, stage_name: str) -> None:
        payload = {"stage": stage_name, "labels": ["onboarding", f"stage:{stage_name}"]}
        try:
            await self._http.put(f"/tickets/{ticket_id}", json=payload)
        except HttpError as exc:
            raise _translate(exc) from exc
        logger.info("Ticket updated", extra={"ticket_id": ticket_id, "stage": stage_name})

    async def close(self) -> None:
        await self._http.close()
