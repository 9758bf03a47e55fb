"""Eventos e desfechos da sincronização de tickets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from onboarding_agent.domain.stages import Stage


class TicketEventKind(StrEnum):
    START = "START"
    ADVANCE = "ADVANCE"


@dataclass(slots=True, frozen=True)
class TicketEvent:
    """Pedido de reconciliação emitido por uma transição de estágio."""

    session_id: str
    stage: Stage
    kind: TicketEventKind = TicketEventKind.ADVANCE

    @property
    def is_first_transition(self) -> bool:
        """True para o evento que deve criar o ticket."""
        return self.kind == TicketEventKind.START or self.stage.ordinal <= 1


class ReconcileOutcome(StrEnum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"
    SKIPPED = "skipped"
