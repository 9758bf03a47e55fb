"""Dependências injetadas nas rotas."""

from __future__ import annotations

from fastapi import Request

from onboarding_agent.application.onboarding_service import OnboardingService
from onboarding_agent.config.settings import Settings


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_onboarding_service(request: Request) -> OnboardingService:
    """Retorna o serviço de onboarding ativo."""

    return request.app.state.onboarding_service
