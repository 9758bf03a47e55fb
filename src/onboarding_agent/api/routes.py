"""Rotas HTTP do agente de onboarding.

Todas as respostas usam o envelope {"success", "data", "error"}.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from onboarding_agent.api.dependencies import get_onboarding_service, get_settings
from onboarding_agent.application.onboarding_service import OnboardingService
from onboarding_agent.config.settings import Settings
from onboarding_agent.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


class ApiResponse(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None


class StartSessionRequest(BaseModel):
    user_id: str = ""
    username: str = ""
    email: str = ""


class MessageRequest(BaseModel):
    session_id: str
    message: str = ""


def _ok(data: Any) -> ApiResponse:
    return ApiResponse(success=True, data=data)


@router.get("/health")
def health(
    settings: Settings = Depends(get_settings),
    service: OnboardingService = Depends(get_onboarding_service),
) -> dict[str, Any]:
    """Healthcheck com estado da sincronização de tickets."""
    report = service.health_check()
    return {
        "status": report.status,
        "service": settings.service_name,
        "version": settings.version,
        "details": report.details,
    }


@router.post("/api/v1/onboarding/start")
async def start_onboarding(
    body: StartSessionRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> ApiResponse:
    result = await service.start_session(body.user_id, body.username, body.email)
    return _ok(result.model_dump(mode="json"))


@router.post("/api/v1/onboarding/message")
async def post_message(
    body: MessageRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> ApiResponse:
    result = await service.post_message(body.session_id, body.message)
    return _ok(result.model_dump(mode="json"))


@router.get("/api/v1/onboarding/status/{session_id}")
def get_status(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service),
) -> ApiResponse:
    return _ok(service.get_status(session_id).model_dump(mode="json"))


@router.get("/api/v1/onboarding/sessions")
def list_sessions(service: OnboardingService = Depends(get_onboarding_service)) -> ApiResponse:
    items = service.list_sessions()
    return _ok([item.model_dump(mode="json") for item in items])


@router.post("/api/v1/onboarding/reconcile/{session_id}")
async def reconcile_session(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service),
) -> ApiResponse:
    """Reconciliação manual: reabilita sync e espelha o estágio atual."""
    outcome = await service.reconcile(session_id)
    logger.info("manual_reconcile", extra={"outcome": outcome})
    return _ok({"session_id": session_id, "outcome": outcome.value})


@router.post("/internal/sweep")
async def sweep_sessions(service: OnboardingService = Depends(get_onboarding_service)) -> ApiResponse:
    evicted = service.sweep()
    return _ok({"evicted": evicted})
