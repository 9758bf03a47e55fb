"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from onboarding_agent.api.routes import router
from onboarding_agent.application.factories.service_factory import build_onboarding_service
from onboarding_agent.application.onboarding_service import OnboardingService
from onboarding_agent.config.settings import Settings, get_settings
from onboarding_agent.domain.errors import (
    OnboardingValidationError,
    SessionNotFoundError,
    StoreCorruptionError,
)
from onboarding_agent.infra.ticket_service import create_ticket_service
from onboarding_agent.observability.logging import configure_logging, get_logger
from onboarding_agent.observability.middleware import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
)

logger = get_logger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "data": None, "error": message},
    )


async def _session_not_found(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, str(exc))


async def _validation_failed(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def _invalid_body(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, "invalid request body")


async def _store_corruption(request: Request, exc: Exception) -> JSONResponse:
    logger.error("store_corruption_response", extra={"path": request.url.path})
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal error")


async def _sweep_loop(service: OnboardingService, interval_seconds: int) -> None:
    """Executa sweep periódico até ser cancelado."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            service.sweep()
        except Exception:
            logger.exception("periodic_sweep_failed")


@contextlib.asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    service: OnboardingService = app.state.onboarding_service

    sweeper: asyncio.Task[None] | None = None
    if settings.session_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(
            _sweep_loop(service, settings.session_sweep_interval_seconds), name="session-sweep"
        )
    logger.info("onboarding_agent_started", extra={"environment": settings.environment})

    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        abandoned = await service.dispatcher.shutdown(settings.shutdown_grace_seconds)
        await app.state.ticket_service.close()
        logger.info("onboarding_agent_stopped", extra={"abandoned_reconciliations": abandoned})


def create_app(settings: Settings | None = None) -> FastAPI:
    """Cria a aplicação FastAPI."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.log_format)

    validation_errors = settings.validate_all()
    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=_lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(SessionNotFoundError, _session_not_found)
    app.add_exception_handler(OnboardingValidationError, _validation_failed)
    app.add_exception_handler(RequestValidationError, _invalid_body)
    app.add_exception_handler(StoreCorruptionError, _store_corruption)
    app.include_router(router)

    ticket_service = create_ticket_service(settings)
    app.state.settings = settings
    app.state.ticket_service = ticket_service
    app.state.onboarding_service = build_onboarding_service(settings, ticket_service=ticket_service)

    return app


app = create_app()
