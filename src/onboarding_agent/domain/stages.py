"""Estágios de onboarding e catálogo declarativo.

- Stage: sequência fixa e ordenada de estágios
- StageDefinition: entrada imutável do catálogo (guidance, keywords, ações)
- StageCatalog: catálogo completo, validado contra a ordem de Stage

O catálogo é dado (configuração), não lógica: o StageEngine apenas o consome.
"""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Stage(StrEnum):
    """Sequência canônica de estágios de onboarding."""

    WELCOME = "welcome"
    ENVIRONMENT_SETUP = "environment_setup"
    TEAM_INTRODUCTION = "team_introduction"
    FIRST_TASKS = "first_tasks"
    COMPLETION = "completion"

    @property
    def ordinal(self) -> int:
        """Posição zero-indexada na sequência."""
        return _STAGE_ORDER.index(self)

    @property
    def is_terminal(self) -> bool:
        return self is TERMINAL_STAGE

    def next(self) -> Stage | None:
        """Próximo estágio ou None se terminal."""
        if self.is_terminal:
            return None
        return _STAGE_ORDER[self.ordinal + 1]


_STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)

FIRST_STAGE: Stage = _STAGE_ORDER[0]
TERMINAL_STAGE: Stage = _STAGE_ORDER[-1]


class StageDefinition(BaseModel):
    """Entrada imutável do catálogo de estágios."""

    model_config = ConfigDict(frozen=True)

    stage: Stage
    display_name: str
    guidance: str
    keywords: tuple[str, ...] = ()
    actions: tuple[str, ...] = ()

    @property
    def ordinal(self) -> int:
        return self.stage.ordinal


class StageCatalog(BaseModel):
    """Catálogo ordenado com exatamente uma definição por Stage."""

    model_config = ConfigDict(frozen=True)

    stages: tuple[StageDefinition, ...]
    completion_message: str = Field(
        default=(
            "You have completed onboarding. Welcome aboard! "
            "Reach out to your onboarding buddy any time you need help."
        )
    )

    @model_validator(mode="after")
    def _check_order(self) -> StageCatalog:
        found = [definition.stage for definition in self.stages]
        if found != list(_STAGE_ORDER):
            expected = ", ".join(_STAGE_ORDER)
            raise ValueError(f"stage catalog must define stages in order: {expected}")
        return self

    def get(self, stage: Stage) -> StageDefinition:
        return self.stages[stage.ordinal]

    @property
    def total(self) -> int:
        return len(self.stages)

    @property
    def first(self) -> StageDefinition:
        return self.stages[0]

    @property
    def terminal(self) -> StageDefinition:
        return self.stages[-1]


DEFAULT_STAGE_CATALOG = StageCatalog(
    stages=(
        StageDefinition(
            stage=Stage.WELCOME,
            display_name="Welcome",
            guidance=(
                "Welcome to the CS team! I'll guide you through onboarding step by step. "
                "First, set up your development environment and let me know when you "
                "have completed it."
            ),
            keywords=("ready", "let's start", "let's go", "begin", "completed", "set up"),
            actions=(
                "Request access to the team repositories",
                "Install the required CLI tools",
                "Tell me when your environment is set up",
            ),
        ),
        StageDefinition(
            stage=Stage.ENVIRONMENT_SETUP,
            display_name="Environment Setup",
            guidance=(
                "Great, let's make sure your environment works end to end. Clone the "
                "service repository, run the test suite and log in to the staging "
                "cluster. Tell me when the setup is done."
            ),
            keywords=("setup done", "setup complete", "environment ready", "installed", "done"),
            actions=(
                "Clone the service repository",
                "Run the unit tests locally",
                "Log in to the staging cluster",
            ),
        ),
        StageDefinition(
            stage=Stage.TEAM_INTRODUCTION,
            display_name="Team Introduction",
            guidance=(
                "Time to meet the team. Join the team channel, introduce yourself and "
                "schedule a 1:1 with your onboarding buddy. Let me know once you have "
                "met the team."
            ),
            keywords=("met the team", "introduced", "met everyone", "done"),
            actions=(
                "Join the team chat channel",
                "Post a short introduction",
                "Schedule a 1:1 with your onboarding buddy",
            ),
        ),
        StageDefinition(
            stage=Stage.FIRST_TASKS,
            display_name="First Tasks",
            guidance=(
                "You're ready for your first tasks. Pick a starter issue from the "
                "backlog, open a pull request and get it reviewed. Tell me when your "
                "first task is finished."
            ),
            keywords=("finished", "merged", "task complete", "done"),
            actions=(
                "Pick a starter issue from the backlog",
                "Open a pull request",
                "Ask a teammate for review",
            ),
        ),
        StageDefinition(
            stage=Stage.COMPLETION,
            display_name="Completion",
            guidance=(
                "Congratulations, you finished all onboarding stages! Send me any "
                "message to confirm and close your onboarding."
            ),
            keywords=(),
            actions=(
                "Share feedback about the onboarding process",
                "Join the on-call shadow rotation",
            ),
        ),
    )
)


def load_stage_catalog(path: str | Path | None) -> StageCatalog:
    """Carrega catálogo de um arquivo JSON; sem caminho, usa o padrão.

    Formato aceito: lista de definições ou objeto com chave "stages"
    (e opcionalmente "completion_message").
    """
    if not path:
        return DEFAULT_STAGE_CATALOG

    raw: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, list):
        raw = {"stages": raw}
    return StageCatalog.model_validate(raw)
