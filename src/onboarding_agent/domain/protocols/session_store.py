"""Protocolo de domínio para armazenamento de sessões de onboarding."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from onboarding_agent.domain.session import Session, SessionSummary, UserIdentity

SessionMutator = Callable[["Session"], None]


class SessionStoreProtocol(ABC):
    """Contrato do dono exclusivo das sessões.

    Responsabilidades:
    - Criar sessões com id único
    - Entregar cópias destacadas em get/list (nunca a instância interna)
    - Aplicar mutações de forma atômica por session_id (update)
    - Remover sessões ociosas (sweep)

    Disciplina de locks:
    - Updates no mesmo session_id são serializados
    - Updates em sessões diferentes não se bloqueiam
    - Nenhum lock é mantido durante chamadas externas
    """

    @abstractmethod
    def create(self, identity: UserIdentity) -> Session: ...

    @abstractmethod
    def get(self, session_id: str) -> Session:
        """Raises SessionNotFoundError."""
        ...

    @abstractmethod
    def update(self, session_id: str, mutator: SessionMutator) -> Session:
        """Aplica mutator atomicamente e retorna cópia do novo estado.

        Raises:
            SessionNotFoundError: session_id desconhecido
            StoreCorruptionError: mutação viola invariante (estado anterior mantido)
        """
        ...

    @abstractmethod
    def list(self) -> list[SessionSummary]: ...  # noqa: A003

    @abstractmethod
    def snapshot(self) -> list[Session]:
        """Cópias ponto-no-tempo de todas as sessões."""
        ...

    @abstractmethod
    def sweep(
        self,
        max_idle: timedelta,
        preserve_incomplete: bool = False,
        on_evict: Callable[[str], None] | None = None,
    ) -> int:
        """Remove sessões ociosas e retorna quantas foram removidas."""
        ...

    @abstractmethod
    def count(self) -> int: ...
