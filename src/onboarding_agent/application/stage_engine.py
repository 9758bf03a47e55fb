"""StageEngine puro: decide o próximo estágio a partir do catálogo.

- Puro: sessão + mensagem → decisão, sem I/O e sem modificar a sessão
- Determinístico: mesma entrada, mesma decisão
- Nunca lança exceção para entrada vazia ou desconhecida
- Nunca regride estágio
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from onboarding_agent.domain.session import Session
from onboarding_agent.domain.stages import DEFAULT_STAGE_CATALOG, Stage, StageCatalog, StageDefinition
from onboarding_agent.domain.ticket import TicketEvent
from onboarding_agent.observability.logging import get_logger, short_id

logger: logging.Logger = get_logger(__name__)


@dataclass(slots=True)
class StageDecision:
    """Resultado proposto pelo StageEngine.

    Contém:
    - new_stage: estágio após a mensagem (igual ao atual se nada mudou)
    - response_text: texto a devolver ao usuário
    - actions: próximos passos sugeridos (descritivos)
    - ticket_event: reconciliação a disparar (None quando não houve avanço)
    - advanced: True se houve transição de estágio
    - completed_now: True apenas na primeira confirmação no estágio terminal
    """

    new_stage: Stage
    response_text: str
    actions: list[str] = field(default_factory=list)
    ticket_event: TicketEvent | None = None
    advanced: bool = False
    completed_now: bool = False


class KeywordMatcher:
    """Classifica mensagens por keywords (case-insensitive).

    Modos:
    - word: keyword/frase precisa aparecer como palavra inteira
    - substring: basta aparecer como trecho do texto
    """

    def __init__(self, mode: str = "word") -> None:
        if mode not in ("word", "substring"):
            raise ValueError(f"unknown keyword match mode: {mode}")
        self._mode = mode
        self._patterns: dict[str, re.Pattern[str]] = {}

    @property
    def mode(self) -> str:
        return self._mode

    def matches(self, message: str, keywords: tuple[str, ...]) -> str | None:
        """Retorna a primeira keyword encontrada ou None."""
        text = message.casefold().strip()
        if not text:
            return None
        for keyword in keywords:
            needle = keyword.casefold().strip()
            if not needle:
                continue
            if self._mode == "substring":
                if needle in text:
                    return keyword
            elif self._pattern(needle).search(text):
                return keyword
        return None

    def _pattern(self, needle: str) -> re.Pattern[str]:
        pattern = self._patterns.get(needle)
        if pattern is None:
            pattern = re.compile(r"(?<!\w)" + re.escape(needle) + r"(?!\w)")
            self._patterns[needle] = pattern
        return pattern


class StageEngine:
    """Engine de estágios: dispatcher puro sobre o catálogo."""

    def __init__(
        self,
        catalog: StageCatalog | None = None,
        matcher: KeywordMatcher | None = None,
    ) -> None:
        self._catalog = catalog or DEFAULT_STAGE_CATALOG
        self._matcher = matcher or KeywordMatcher()

    @property
    def catalog(self) -> StageCatalog:
        return self._catalog

    def advance(self, session: Session, message: str | None) -> StageDecision:
        """Calcula a transição para a mensagem recebida.

        Contrato:
        - Sem side effects (a sessão não é alterada)
        - Estágio terminal → confirmação de conclusão, sem ticket_event
        - Sem keyword → estágio mantido, guidance atual reapresentada
        - Keyword → próximo estágio + ticket_event
        """
        current = self._catalog.get(session.current_stage)
        text = message or ""

        if current.stage.is_terminal:
            return self._complete(session, current)

        matched = self._matcher.matches(text, current.keywords)
        if matched is None:
            logger.debug(
                "Stage unchanged",
                extra={"session_id": short_id(session.session_id), "stage": current.stage},
            )
            return StageDecision(
                new_stage=current.stage,
                response_text=current.guidance,
                actions=list(current.actions),
            )

        next_stage = current.stage.next()
        if next_stage is None:
            return self._complete(session, current)
        target = self._catalog.get(next_stage)

        logger.debug(
            "Stage advanced",
            extra={
                "session_id": short_id(session.session_id),
                "from_stage": current.stage,
                "to_stage": target.stage,
                "keyword": matched,
            },
        )
        return StageDecision(
            new_stage=target.stage,
            response_text=target.guidance,
            actions=list(target.actions),
            ticket_event=TicketEvent(session_id=session.session_id, stage=target.stage),
            advanced=True,
        )

    def _complete(self, session: Session, terminal: StageDefinition) -> StageDecision:
        """Confirmação idempotente no estágio terminal."""
        return StageDecision(
            new_stage=terminal.stage,
            response_text=self._catalog.completion_message,
            actions=list(terminal.actions),
            completed_now=not session.completed,
        )
