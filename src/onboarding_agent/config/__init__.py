"""Configurações centralizadas do onboarding_agent.

Uso típico:
    from onboarding_agent.config import get_settings
"""

from onboarding_agent.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
