"""TicketSync: espelha o estágio persistido da sessão em um ticket externo.

Garantias:
- Reconciliações do mesmo session_id são serializadas (asyncio.Lock por id)
- O estágio espelhado é sempre o persistido no SessionStore, nunca o do
  evento: uma reconciliação atrasada não sobrescreve um estágio mais novo
- create_ticket só é emitido enquanto a sessão persistida não tem ticket_id:
  cada tentativa relê o estado antes de chamar o serviço, e o ticket_id é
  gravado via SessionStore.update antes de liberar o lock
- Falhas nunca revertem o estágio; a sessão guarda `last_error` e a próxima
  reconciliação parte do estado persistido
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from onboarding_agent.domain.errors import (
    SessionNotFoundError,
    TicketFatalError,
    TicketRetryableError,
    TicketServiceError,
)
from onboarding_agent.domain.protocols.session_store import SessionStoreProtocol
from onboarding_agent.domain.protocols.ticket_service import TicketServiceProtocol
from onboarding_agent.domain.session import Session
from onboarding_agent.domain.stages import DEFAULT_STAGE_CATALOG, Stage, StageCatalog
from onboarding_agent.domain.ticket import ReconcileOutcome, TicketEvent
from onboarding_agent.observability.logging import get_logger, short_id

logger: logging.Logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class TicketSyncPolicy:
    """Política de retry com defaults conservadores."""

    max_attempts: int = 3
    backoff_base_seconds: float = 0.5
    backoff_max_seconds: float = 8.0


def _calculate_backoff(attempt: int, base_seconds: float, max_seconds: float) -> float:
    """Calcula tempo de espera com backoff exponencial."""
    backoff = (2**attempt) * base_seconds
    return min(backoff, max_seconds)


class TicketSync:
    """Reconcilia sessões com o serviço de tickets."""

    def __init__(
        self,
        store: SessionStoreProtocol,
        ticket_service: TicketServiceProtocol,
        catalog: StageCatalog | None = None,
        policy: TicketSyncPolicy | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self._store = store
        self._tickets = ticket_service
        self._catalog = catalog or DEFAULT_STAGE_CATALOG
        self._policy = policy or TicketSyncPolicy()
        self._sleep = sleep or asyncio.sleep
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def forget(self, session_id: str) -> None:
        """Descarta o lock de uma sessão removida (chamado pelo sweep)."""
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    async def reconcile(
        self,
        session_id: str,
        event: TicketEvent | None = None,
        force: bool = False,
    ) -> ReconcileOutcome:
        """Leva o ticket externo ao estágio persistido da sessão.

        Args:
            session_id: sessão a reconciliar
            event: transição que originou o pedido (None em reconciliação manual)
            force: reabilita sync desabilitado por falha fatal

        Raises:
            SessionNotFoundError: sessão desconhecida
        """
        async with self._lock_for(session_id):
            started = time.perf_counter()
            session = self._store.get(session_id)

            if force and session.ticket.sync_disabled:
                session = self._store.update(session_id, _reenable_sync)
                logger.info("ticket_sync_reenabled", extra={"session_id": short_id(session_id)})

            if session.ticket.sync_disabled:
                logger.info(
                    "ticket_sync_skipped_disabled",
                    extra={"session_id": short_id(session_id), "last_error": session.ticket.last_error},
                )
                return ReconcileOutcome.SKIPPED

            try:
                outcome = await self._reconcile_locked(session, event)
            except TicketRetryableError as exc:
                self._record_failure(session_id, exc, disable=False)
                outcome = ReconcileOutcome.RETRYABLE_FAILURE
            except TicketFatalError as exc:
                self._record_failure(session_id, exc, disable=True)
                outcome = ReconcileOutcome.FATAL_FAILURE

            logger.info(
                "ticket_reconcile_finished",
                extra={
                    "session_id": short_id(session_id),
                    "outcome": outcome,
                    "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            return outcome

    async def _reconcile_locked(self, session: Session, event: TicketEvent | None) -> ReconcileOutcome:
        session_id = session.session_id
        stage = session.current_stage
        stage_name = self._catalog.get(stage).display_name
        ticket = session.ticket

        if ticket.ticket_id is None:
            repair = event is not None and not event.is_first_transition
            if repair:
                logger.warning(
                    "ticket_missing_repair",
                    extra={"session_id": short_id(session_id), "stage": stage},
                )

            ticket_id = await self._create(session, stage, stage_name)
            if repair:
                await self._with_retry(
                    "update_ticket",
                    session_id,
                    lambda: self._tickets.update_ticket(ticket_id, stage_name),
                )
            return ReconcileOutcome.SUCCESS

        if ticket.synced_stage is not None and ticket.synced_stage.ordinal >= stage.ordinal:
            logger.debug(
                "ticket_already_synced",
                extra={"session_id": short_id(session_id), "stage": stage},
            )
            if ticket.last_error:
                self._record_synced(session_id, ticket.synced_stage)
            return ReconcileOutcome.SUCCESS

        existing_id = ticket.ticket_id
        await self._with_retry(
            "update_ticket",
            session_id,
            lambda: self._tickets.update_ticket(existing_id, stage_name),
        )
        self._record_synced(session_id, stage)
        return ReconcileOutcome.SUCCESS

    async def _create(self, session: Session, stage: Stage, stage_name: str) -> str:
        """Emite create uma única vez e grava o ticket_id na sessão."""
        session_id = session.session_id
        user_id = session.user.user_id

        async def create_once() -> str:
            current = self._store.get(session_id)
            if current.ticket.ticket_id is not None:
                logger.info(
                    "ticket_create_skipped_existing",
                    extra={"session_id": short_id(session_id), "ticket_id": current.ticket.ticket_id},
                )
                return current.ticket.ticket_id
            return await self._tickets.create_ticket(session_id, user_id, stage_name)

        ticket_id = await self._with_retry("create_ticket", session_id, create_once)

        def record_created(target: Session) -> None:
            if target.ticket.ticket_id is None:
                target.ticket.ticket_id = ticket_id
            target.ticket.synced = True
            target.ticket.synced_stage = stage
            target.ticket.last_error = None

        try:
            self._store.update(session_id, record_created)
        except SessionNotFoundError:
            logger.error(
                "ticket_created_for_evicted_session",
                extra={"session_id": short_id(session_id), "ticket_id": ticket_id},
            )
            raise
        return ticket_id

    async def _with_retry(
        self,
        operation: str,
        session_id: str,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        """Executa chamada idempotente com backoff em falhas retentáveis."""
        attempt = 0
        while True:
            try:
                return await call()
            except TicketRetryableError:
                attempt += 1
                if attempt >= self._policy.max_attempts:
                    self._log_exhausted(operation, session_id, attempt)
                    raise
                await self._backoff(attempt - 1, operation, session_id)

    async def _backoff(self, attempt: int, operation: str, session_id: str) -> None:
        backoff = _calculate_backoff(
            attempt,
            self._policy.backoff_base_seconds,
            self._policy.backoff_max_seconds,
        )
        logger.info(
            "Aguardando backoff antes de retry",
            extra={
                "operation": operation,
                "session_id": short_id(session_id),
                "backoff_seconds": backoff,
                "next_attempt": attempt + 2,
            },
        )
        await self._sleep(backoff)

    def _log_exhausted(self, operation: str, session_id: str, total: int) -> None:
        logger.error(
            "Esgotou tentativas de retry",
            extra={"operation": operation, "session_id": short_id(session_id), "total_attempts": total},
        )

    def _record_synced(self, session_id: str, stage: Stage) -> None:
        def mutate(target: Session) -> None:
            current = target.ticket.synced_stage
            if current is None or current.ordinal < stage.ordinal:
                target.ticket.synced_stage = stage
            target.ticket.synced = True
            target.ticket.last_error = None

        try:
            self._store.update(session_id, mutate)
        except SessionNotFoundError:
            logger.warning("ticket_synced_for_evicted_session", extra={"session_id": short_id(session_id)})

    def _record_failure(self, session_id: str, exc: TicketServiceError, disable: bool) -> None:
        def mutate(target: Session) -> None:
            target.ticket.last_error = f"{type(exc).__name__}: {exc}"
            if disable:
                target.ticket.sync_disabled = True

        level = logging.ERROR if disable else logging.WARNING
        logger.log(
            level,
            "ticket_sync_failed",
            extra={
                "session_id": short_id(session_id),
                "error": type(exc).__name__,
                "status_code": exc.status_code,
                "sync_disabled": disable,
            },
        )
        try:
            self._store.update(session_id, mutate)
        except SessionNotFoundError:
            logger.warning("ticket_failure_for_evicted_session", extra={"session_id": short_id(session_id)})


def _reenable_sync(target: Session) -> None:
    target.ticket.sync_disabled = False
