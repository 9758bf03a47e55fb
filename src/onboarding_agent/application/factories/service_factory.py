"""Montagem do OnboardingService a partir de Settings."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from onboarding_agent.application.onboarding_service import OnboardingService
from onboarding_agent.application.progress import ProgressReporter
from onboarding_agent.application.reconcile_dispatcher import ReconcileDispatcher
from onboarding_agent.application.stage_engine import KeywordMatcher, StageEngine
from onboarding_agent.application.ticket_sync import TicketSync, TicketSyncPolicy
from onboarding_agent.domain.stages import load_stage_catalog
from onboarding_agent.infra.session_store import create_session_store
from onboarding_agent.infra.ticket_service import create_ticket_service

if TYPE_CHECKING:
    from onboarding_agent.config.settings import Settings
    from onboarding_agent.domain.protocols.session_store import SessionStoreProtocol
    from onboarding_agent.domain.protocols.ticket_service import TicketServiceProtocol


def build_onboarding_service(
    settings: Settings,
    store: SessionStoreProtocol | None = None,
    ticket_service: TicketServiceProtocol | None = None,
) -> OnboardingService:
    """Cria o serviço com todas as dependências resolvidas.

    Args:
        settings: configuração já validada
        store: SessionStore alternativo (testes)
        ticket_service: cliente de tickets alternativo (testes)
    """
    catalog = load_stage_catalog(settings.stage_catalog_path)
    store = store or create_session_store(settings.session_store_backend)
    ticket_service = ticket_service or create_ticket_service(settings)

    ticket_sync = TicketSync(
        store,
        ticket_service,
        catalog=catalog,
        policy=TicketSyncPolicy(
            max_attempts=settings.ticket_max_attempts,
            backoff_base_seconds=settings.ticket_backoff_base_seconds,
            backoff_max_seconds=settings.ticket_backoff_max_seconds,
        ),
    )
    return OnboardingService(
        store=store,
        engine=StageEngine(catalog, KeywordMatcher(settings.keyword_match_mode.lower())),
        ticket_sync=ticket_sync,
        dispatcher=ReconcileDispatcher(ticket_sync, mode=settings.ticket_sync_mode.lower()),
        reporter=ProgressReporter(catalog),
        idle_timeout=timedelta(minutes=settings.session_idle_timeout_minutes),
        preserve_incomplete=settings.session_preserve_incomplete,
        create_ticket_on_start=settings.ticket_create_on_start,
    )
