"""Domínio de onboarding: estágios, sessão, tickets e erros.

Exporta:
- Stage, StageDefinition, StageCatalog: catálogo declarativo
- Session, UserIdentity, TicketRecord: estado por usuário
- TicketEvent, ReconcileOutcome: contrato da sincronização
"""

from onboarding_agent.domain.session import (
    MessageRecord,
    MessageRole,
    Session,
    SessionSummary,
    TicketRecord,
    UserIdentity,
)
from onboarding_agent.domain.stages import (
    DEFAULT_STAGE_CATALOG,
    FIRST_STAGE,
    TERMINAL_STAGE,
    Stage,
    StageCatalog,
    StageDefinition,
    load_stage_catalog,
)
from onboarding_agent.domain.ticket import ReconcileOutcome, TicketEvent, TicketEventKind

__all__ = [
    "DEFAULT_STAGE_CATALOG",
    "FIRST_STAGE",
    "TERMINAL_STAGE",
    "MessageRecord",
    "MessageRole",
    "ReconcileOutcome",
    "Session",
    "SessionSummary",
    "Stage",
    "StageCatalog",
    "StageDefinition",
    "TicketEvent",
    "TicketEventKind",
    "TicketRecord",
    "UserIdentity",
    "load_stage_catalog",
]
