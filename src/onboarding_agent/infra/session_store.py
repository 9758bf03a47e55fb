"""Factory de SessionStore conforme backend configurado."""

from __future__ import annotations

from onboarding_agent.domain.protocols.session_store import SessionStoreProtocol
from onboarding_agent.infra.session_store_memory import InMemorySessionStore
from onboarding_agent.observability.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_SESSION_BACKENDS = frozenset({"memory"})


def create_session_store(backend: str = "memory") -> SessionStoreProtocol:
    """Cria SessionStore.

    Apenas `memory` é suportado; outros backends devem implementar
    SessionStoreProtocol mantendo a mesma disciplina de locks.
    """
    normalized = backend.lower()
    if normalized not in SUPPORTED_SESSION_BACKENDS:
        raise ValueError(f"session store backend não suportado: {backend}")

    logger.info("Session store created", extra={"backend": normalized})
    return InMemorySessionStore()
