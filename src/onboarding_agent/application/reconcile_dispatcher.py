"""Despacho de reconciliações de ticket (inline ou em background).

- inline: a reconciliação roda no caminho do request e o desfecho é retornado
- background: a reconciliação vira uma asyncio.Task rastreada; o request
  responde sem esperar o serviço de tickets

Em ambos os modos a serialização por sessão é garantida pelo TicketSync.
No shutdown, tasks pendentes têm um período de graça limitado e depois são
canceladas; o estágio já persistido continua válido.
"""

from __future__ import annotations

import asyncio
import logging

from onboarding_agent.application.ticket_sync import TicketSync
from onboarding_agent.domain.errors import OnboardingError
from onboarding_agent.domain.ticket import ReconcileOutcome, TicketEvent
from onboarding_agent.observability.logging import get_logger, short_id

logger: logging.Logger = get_logger(__name__)

INLINE = "inline"
BACKGROUND = "background"


class ReconcileDispatcher:
    """Executa TicketSync.reconcile conforme o modo configurado."""

    def __init__(self, ticket_sync: TicketSync, mode: str = INLINE) -> None:
        if mode not in (INLINE, BACKGROUND):
            raise ValueError(f"unknown ticket sync mode: {mode}")
        self._sync = ticket_sync
        self._mode = mode
        self._tasks: set[asyncio.Task[ReconcileOutcome | None]] = set()
        self._closed = False

    @property
    def mode(self) -> str:
        return self._mode

    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def submit(self, session_id: str, event: TicketEvent | None = None) -> ReconcileOutcome | None:
        """Dispara reconciliação; retorna o desfecho apenas no modo inline."""
        if self._closed:
            logger.warning("reconcile_rejected_shutting_down", extra={"session_id": short_id(session_id)})
            return None

        if self._mode == INLINE:
            return await self._run(session_id, event)

        task = asyncio.create_task(self._run(session_id, event), name=f"reconcile:{session_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return None

    async def _run(self, session_id: str, event: TicketEvent | None) -> ReconcileOutcome | None:
        try:
            return await self._sync.reconcile(session_id, event)
        except OnboardingError as exc:
            # estágio já persistido; o usuário não vê falha de sincronização
            logger.warning(
                "reconcile_aborted",
                extra={"session_id": short_id(session_id), "error": type(exc).__name__},
            )
            return None

    async def drain(self) -> None:
        """Aguarda todas as tasks pendentes (usado em testes e no shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, grace_seconds: float) -> int:
        """Aguarda até `grace_seconds` e cancela o que restar.

        Returns:
            Quantidade de reconciliações abandonadas
        """
        self._closed = True
        pending = [task for task in self._tasks if not task.done()]
        if not pending:
            return 0

        logger.info(
            "Waiting for in-flight reconciliations",
            extra={"pending": len(pending), "grace_seconds": grace_seconds},
        )
        _, still_running = await asyncio.wait(pending, timeout=grace_seconds)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Reconciliations abandoned on shutdown", extra={"abandoned": len(still_running)})
        return len(still_running)
