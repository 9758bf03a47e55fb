from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient
from helpers.ticket_doubles import RecordingTicketService, no_sleep

from onboarding_agent.api.app import create_app
from onboarding_agent.application.onboarding_service import OnboardingService
from onboarding_agent.application.reconcile_dispatcher import ReconcileDispatcher
from onboarding_agent.application.stage_engine import StageEngine
from onboarding_agent.application.ticket_sync import TicketSync, TicketSyncPolicy
from onboarding_agent.config.settings import get_settings
from onboarding_agent.infra.session_store_memory import InMemorySessionStore


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("TICKET_BACKEND", "memory")
    monkeypatch.setenv("SESSION_SWEEP_INTERVAL_SECONDS", "0")
    get_settings.cache_clear()
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
    get_settings.cache_clear()


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def tickets() -> RecordingTicketService:
    return RecordingTicketService()


@pytest.fixture()
def make_service(
    store: InMemorySessionStore, tickets: RecordingTicketService
) -> Callable[..., OnboardingService]:
    def _factory(mode: str = "inline", max_attempts: int = 3, **kwargs) -> OnboardingService:
        sync = TicketSync(
            store,
            tickets,
            policy=TicketSyncPolicy(max_attempts=max_attempts),
            sleep=no_sleep,
        )
        return OnboardingService(
            store=store,
            engine=StageEngine(),
            ticket_sync=sync,
            dispatcher=ReconcileDispatcher(sync, mode=mode),
            **kwargs,
        )

    return _factory
