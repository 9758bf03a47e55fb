"""Cálculo de progresso e resumos de status (funções puras)."""

from __future__ import annotations

from datetime import UTC, datetime

from onboarding_agent.domain.session import Session
from onboarding_agent.domain.stages import DEFAULT_STAGE_CATALOG, Stage, StageCatalog


def _format_elapsed(seconds: float) -> str:
    total_minutes = max(int(seconds // 60), 0)
    days, remainder = divmod(total_minutes, 60 * 24)
    hours, minutes = divmod(remainder, 60)
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


class ProgressReporter:
    """Deriva percentual e resumo a partir da sessão e do catálogo."""

    def __init__(self, catalog: StageCatalog | None = None) -> None:
        self._catalog = catalog or DEFAULT_STAGE_CATALOG

    def progress(self, session: Session) -> float:
        return self.stage_progress(session.current_stage)

    def stage_progress(self, stage: Stage) -> float:
        """Fração em [0, 1]: ordinal / (total - 1); terminal sempre 1.0."""
        if stage.is_terminal:
            return 1.0
        steps = self._catalog.total - 1
        if steps <= 0:
            return 1.0
        return min(max(stage.ordinal / steps, 0.0), 1.0)

    def summarize(self, session: Session, now: datetime | None = None) -> str:
        definition = self._catalog.get(session.current_stage)
        elapsed = ((now or datetime.now(tz=UTC)) - session.created_at).total_seconds()
        status = "completed" if session.completed else "in progress"
        return (
            f"Onboarding for {session.user.username}: stage {definition.display_name} "
            f"({definition.ordinal + 1}/{self._catalog.total}), "
            f"{self.progress(session) * 100:.0f}% complete, "
            f"started {_format_elapsed(elapsed)} ago, {status}."
        )
