"""Models de sessão de onboarding.

Session é a unidade de progresso de um usuário:
- Uma sessão = um session_id único
- current_stage nunca regride
- ticket.ticket_id é definido no máximo uma vez
- history é append-only
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from onboarding_agent.domain.stages import FIRST_STAGE, Stage


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class MessageRole(StrEnum):
    USER = "user"
    AGENT = "agent"


class UserIdentity(BaseModel):
    """Identidade do novo membro do time."""

    user_id: str
    username: str
    email: str


class MessageRecord(BaseModel):
    """Mensagem trocada na sessão (ordem de chegada)."""

    role: MessageRole
    text: str
    stage: Stage
    timestamp: datetime = Field(default_factory=_utcnow)


class TicketRecord(BaseModel):
    """Referência ao ticket externo que espelha a sessão.

    O ciclo de vida do ticket pertence ao serviço externo; aqui guardamos
    apenas o identificador e o estado da última sincronização.
    """

    ticket_id: str | None = None
    synced: bool = False
    synced_stage: Stage | None = None
    sync_disabled: bool = False
    last_error: str | None = None


class Session(BaseModel):
    """Estado completo de uma sessão de onboarding."""

    session_id: str
    user: UserIdentity
    current_stage: Stage = FIRST_STAGE
    created_at: datetime = Field(default_factory=_utcnow)
    last_activity_at: datetime = Field(default_factory=_utcnow)
    history: list[MessageRecord] = Field(default_factory=list)
    ticket: TicketRecord = Field(default_factory=TicketRecord)
    completed: bool = False
    completed_at: datetime | None = None

    def append_message(self, role: MessageRole, text: str, at: datetime | None = None) -> None:
        """Registra mensagem no histórico com o estágio corrente."""
        self.history.append(
            MessageRecord(role=role, text=text, stage=self.current_stage, timestamp=at or _utcnow())
        )

    def touch(self, at: datetime | None = None) -> None:
        self.last_activity_at = at or _utcnow()

    def idle_seconds(self, now: datetime | None = None) -> float:
        return ((now or _utcnow()) - self.last_activity_at).total_seconds()


class SessionSummary(BaseModel):
    """Visão resumida usada em listagens."""

    session_id: str
    user_id: str
    current_stage: Stage
    completed: bool
    last_activity_at: datetime
    ticket_id: str | None = None
