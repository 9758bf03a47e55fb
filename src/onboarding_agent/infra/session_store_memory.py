"""Implementação de SessionStore em memória com locks por sessão.

Disciplina de concorrência:
- `_map_lock` protege apenas operações O(1) no dicionário (insert/lookup/delete)
- cada session_id tem seu próprio `threading.Lock`, mantido durante o mutator
- objetos armazenados nunca são mutados in-place: update troca a instância,
  por isso leituras copiam sem precisar do lock da sessão
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from onboarding_agent.domain.errors import SessionNotFoundError, StoreCorruptionError
from onboarding_agent.domain.protocols.session_store import SessionMutator, SessionStoreProtocol
from onboarding_agent.domain.session import Session, SessionSummary, UserIdentity
from onboarding_agent.observability.logging import get_logger, short_id
from onboarding_agent.utils.ids import new_session_id

logger: logging.Logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def check_invariants(before: Session, after: Session) -> str | None:
    """Retorna o motivo da violação ou None se a transição é válida."""
    if after.session_id != before.session_id:
        return "session_id changed"
    if after.current_stage.ordinal < before.current_stage.ordinal:
        return f"stage regression {before.current_stage} -> {after.current_stage}"
    if before.ticket.ticket_id and after.ticket.ticket_id != before.ticket.ticket_id:
        return "ticket_id changed after being set"
    if before.completed and not after.completed:
        return "completion flag reset"
    if len(after.history) < len(before.history):
        return "history truncated"
    return None


class InMemorySessionStore(SessionStoreProtocol):
    """Armazenamento em memória (processo único; sem durabilidade)."""

    def __init__(self, clock: Clock | None = None, max_id_attempts: int = 5) -> None:
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._map_lock = threading.Lock()
        self._clock = clock or _utcnow
        self._max_id_attempts = max_id_attempts

    def create(self, identity: UserIdentity) -> Session:
        now = self._clock()
        for attempt in range(self._max_id_attempts):
            session_id = new_session_id(identity.user_id, now, attempt)
            session = Session(
                session_id=session_id,
                user=identity.model_copy(),
                created_at=now,
                last_activity_at=now,
            )
            with self._map_lock:
                if session_id in self._sessions:
                    continue
                self._sessions[session_id] = session
                self._locks[session_id] = threading.Lock()

            logger.info(
                "Session created (in-memory)",
                extra={"session_id": short_id(session_id), "id_attempts": attempt + 1},
            )
            return session.model_copy(deep=True)

        raise RuntimeError(f"could not allocate a unique session id after {self._max_id_attempts} attempts")

    def get(self, session_id: str) -> Session:
        with self._map_lock:
            session = self._sessions.get(session_id)
        if session is None:
            logger.debug("Session not found (in-memory)", extra={"session_id": short_id(session_id)})
            raise SessionNotFoundError(session_id)
        return session.model_copy(deep=True)

    def update(self, session_id: str, mutator: SessionMutator) -> Session:
        with self._map_lock:
            lock = self._locks.get(session_id)
        if lock is None:
            raise SessionNotFoundError(session_id)

        with lock:
            with self._map_lock:
                current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFoundError(session_id)

            working = current.model_copy(deep=True)
            mutator(working)

            reason = check_invariants(current, working)
            if reason is not None:
                logger.error(
                    "session_invariant_violation",
                    extra={"session_id": short_id(session_id), "reason": reason},
                )
                raise StoreCorruptionError(session_id, reason)

            with self._map_lock:
                if self._sessions.get(session_id) is not current:
                    # removida pelo sweep enquanto o mutator executava
                    raise SessionNotFoundError(session_id)
                self._sessions[session_id] = working

        logger.debug(
            "Session updated (in-memory)",
            extra={"session_id": short_id(session_id), "stage": working.current_stage},
        )
        return working.model_copy(deep=True)

    def list(self) -> list[SessionSummary]:  # noqa: A003
        with self._map_lock:
            snapshot = list(self._sessions.values())
        return [
            SessionSummary(
                session_id=s.session_id,
                user_id=s.user.user_id,
                current_stage=s.current_stage,
                completed=s.completed,
                last_activity_at=s.last_activity_at,
                ticket_id=s.ticket.ticket_id,
            )
            for s in snapshot
        ]

    def snapshot(self) -> list[Session]:
        """Cópias de todas as sessões (usado por health/relatórios)."""
        with self._map_lock:
            sessions = list(self._sessions.values())
        return [s.model_copy(deep=True) for s in sessions]

    def sweep(
        self,
        max_idle: timedelta,
        preserve_incomplete: bool = False,
        on_evict: Callable[[str], None] | None = None,
    ) -> int:
        now = self._clock()
        with self._map_lock:
            candidates = list(self._sessions.items())

        evicted = 0
        for session_id, session in candidates:
            if now - session.last_activity_at <= max_idle:
                continue
            if preserve_incomplete and not session.completed:
                continue
            with self._map_lock:
                # só remove se não houve update desde o snapshot
                if self._sessions.get(session_id) is not session:
                    continue
                del self._sessions[session_id]
                self._locks.pop(session_id, None)
            evicted += 1
            if on_evict is not None:
                on_evict(session_id)

        if evicted:
            logger.info(
                "Sessions evicted by sweep",
                extra={
                    "evicted": evicted,
                    "max_idle_seconds": max_idle.total_seconds(),
                    "preserve_incomplete": preserve_incomplete,
                },
            )
        return evicted

    def count(self) -> int:
        with self._map_lock:
            return len(self._sessions)
