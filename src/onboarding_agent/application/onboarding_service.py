"""OnboardingService: operações expostas ao transporte.

Orquestra o fluxo de cada request:
    SessionStore (get/create) → StageEngine (dentro de SessionStore.update)
    → ReconcileDispatcher/TicketSync → ProgressReporter

Falhas de sincronização de ticket nunca alteram a resposta ao usuário:
o estágio persistido é a fonte de verdade.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from pydantic import BaseModel, Field

from onboarding_agent.application.progress import ProgressReporter
from onboarding_agent.application.reconcile_dispatcher import ReconcileDispatcher
from onboarding_agent.application.stage_engine import StageDecision, StageEngine
from onboarding_agent.application.ticket_sync import TicketSync
from onboarding_agent.domain.errors import OnboardingValidationError
from onboarding_agent.domain.protocols.session_store import SessionStoreProtocol
from onboarding_agent.domain.session import MessageRole, Session, UserIdentity
from onboarding_agent.domain.stages import Stage
from onboarding_agent.domain.ticket import ReconcileOutcome, TicketEvent, TicketEventKind
from onboarding_agent.observability.logging import get_logger, short_id

logger: logging.Logger = get_logger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


class StartSessionResult(BaseModel):
    session_id: str
    welcome_message: str
    stage: Stage
    progress: float


class MessageResult(BaseModel):
    response_message: str
    next_actions: list[str] = Field(default_factory=list)
    stage: Stage
    progress: float
    completed: bool = False


class StatusResult(BaseModel):
    session_id: str
    stage: Stage
    progress: float
    summary_text: str
    completed: bool
    ticket_id: str | None = None


class SessionListItem(BaseModel):
    session_id: str
    user_id: str
    stage: Stage
    progress: float
    completed: bool
    ticket_id: str | None = None


class HealthReport(BaseModel):
    status: Literal["ok", "degraded"]
    details: dict[str, Any] = Field(default_factory=dict)


class OnboardingService:
    """Fachada do núcleo de onboarding."""

    def __init__(
        self,
        store: SessionStoreProtocol,
        engine: StageEngine,
        ticket_sync: TicketSync,
        dispatcher: ReconcileDispatcher,
        reporter: ProgressReporter | None = None,
        idle_timeout: timedelta = timedelta(hours=24),
        preserve_incomplete: bool = False,
        create_ticket_on_start: bool = False,
    ) -> None:
        self._store = store
        self._engine = engine
        self._sync = ticket_sync
        self._dispatcher = dispatcher
        self._reporter = reporter or ProgressReporter(engine.catalog)
        self._idle_timeout = idle_timeout
        self._preserve_incomplete = preserve_incomplete
        self._create_ticket_on_start = create_ticket_on_start

    @property
    def dispatcher(self) -> ReconcileDispatcher:
        return self._dispatcher

    async def start_session(self, user_id: str, username: str, email: str) -> StartSessionResult:
        identity = _validate_identity(user_id, username, email)
        session = self._store.create(identity)

        welcome = self._engine.catalog.get(session.current_stage).guidance

        def record_welcome(target: Session) -> None:
            target.append_message(MessageRole.AGENT, welcome, at=target.created_at)

        session = self._store.update(session.session_id, record_welcome)
        logger.info(
            "onboarding_session_started",
            extra={"session_id": short_id(session.session_id), "stage": session.current_stage},
        )

        if self._create_ticket_on_start:
            await self._dispatcher.submit(
                session.session_id,
                TicketEvent(session.session_id, session.current_stage, TicketEventKind.START),
            )

        return StartSessionResult(
            session_id=session.session_id,
            welcome_message=welcome,
            stage=session.current_stage,
            progress=self._reporter.progress(session),
        )

    async def post_message(self, session_id: str, message: str) -> MessageResult:
        """Processa mensagem do usuário.

        Raises:
            SessionNotFoundError: session_id desconhecido
        """
        decisions: list[StageDecision] = []

        def apply_message(target: Session) -> None:
            now = datetime.now(tz=UTC)
            target.touch(now)
            target.append_message(MessageRole.USER, message or "", at=now)
            decision = self._engine.advance(target, message)
            if decision.new_stage.ordinal > target.current_stage.ordinal:
                target.current_stage = decision.new_stage
            if decision.completed_now and not target.completed:
                target.completed = True
                target.completed_at = now
            target.append_message(MessageRole.AGENT, decision.response_text, at=now)
            decisions.append(decision)

        session = self._store.update(session_id, apply_message)
        decision = decisions[-1]

        if decision.advanced:
            logger.info(
                "onboarding_stage_advanced",
                extra={"session_id": short_id(session_id), "stage": session.current_stage},
            )
        if decision.completed_now:
            logger.info("onboarding_completed", extra={"session_id": short_id(session_id)})

        if decision.ticket_event is not None:
            outcome = await self._dispatcher.submit(session_id, decision.ticket_event)
            if outcome in (ReconcileOutcome.RETRYABLE_FAILURE, ReconcileOutcome.FATAL_FAILURE):
                logger.warning(
                    "ticket_mirroring_lagging",
                    extra={"session_id": short_id(session_id), "outcome": outcome},
                )

        return MessageResult(
            response_message=decision.response_text,
            next_actions=decision.actions,
            stage=session.current_stage,
            progress=self._reporter.progress(session),
            completed=session.completed,
        )

    def get_status(self, session_id: str) -> StatusResult:
        session = self._store.get(session_id)
        return StatusResult(
            session_id=session.session_id,
            stage=session.current_stage,
            progress=self._reporter.progress(session),
            summary_text=self._reporter.summarize(session),
            completed=session.completed,
            ticket_id=session.ticket.ticket_id,
        )

    def list_sessions(self) -> list[SessionListItem]:
        items = [
            SessionListItem(
                session_id=summary.session_id,
                user_id=summary.user_id,
                stage=summary.current_stage,
                progress=self._reporter.stage_progress(summary.current_stage),
                completed=summary.completed,
                ticket_id=summary.ticket_id,
            )
            for summary in self._store.list()
        ]
        items.sort(key=lambda item: item.session_id)
        return items

    def health_check(self) -> HealthReport:
        sessions = self._store.snapshot()
        sync_disabled = sum(1 for s in sessions if s.ticket.sync_disabled)
        sync_lagging = sum(1 for s in sessions if s.ticket.last_error and not s.ticket.sync_disabled)
        status: Literal["ok", "degraded"] = "degraded" if sync_disabled or sync_lagging else "ok"
        return HealthReport(
            status=status,
            details={
                "sessions": len(sessions),
                "completed_sessions": sum(1 for s in sessions if s.completed),
                "ticket_sync_disabled": sync_disabled,
                "ticket_sync_lagging": sync_lagging,
                "pending_reconciliations": self._dispatcher.pending(),
                "ticket_sync_mode": self._dispatcher.mode,
            },
        )

    def sweep(self) -> int:
        """Remove sessões ociosas conforme janela e política configuradas."""
        return self._store.sweep(
            self._idle_timeout,
            preserve_incomplete=self._preserve_incomplete,
            on_evict=self._sync.forget,
        )

    async def reconcile(self, session_id: str) -> ReconcileOutcome:
        """Reconciliação manual: reabilita sync e espelha o estágio persistido.

        Raises:
            SessionNotFoundError: session_id desconhecido
        """
        return await self._sync.reconcile(session_id, event=None, force=True)


def _validate_identity(user_id: str, username: str, email: str) -> UserIdentity:
    values = {"user_id": user_id, "username": username, "email": email}
    missing = [name for name, value in values.items() if not (value or "").strip()]
    if missing:
        raise OnboardingValidationError(
            f"missing required fields: {', '.join(missing)}", fields=missing
        )
    if not _EMAIL_PATTERN.match(email.strip()):
        raise OnboardingValidationError("invalid email address", fields=["email"])
    return UserIdentity(user_id=user_id.strip(), username=username.strip(), email=email.strip())
