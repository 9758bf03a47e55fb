"""CLI do agente de onboarding (server, chat interativo e status)."""

from __future__ import annotations

from typing import Any

import httpx
import typer

app = typer.Typer(add_completion=False, help="AI onboarding agent for new team members.")

DEFAULT_API_URL = "http://localhost:8080"


class ApiClientError(Exception):
    """Falha ao falar com a API de onboarding."""


class OnboardingApiClient:
    """Cliente síncrono da API HTTP (usado pelos comandos interactive/status)."""

    def __init__(self, api_url: str = DEFAULT_API_URL, client: httpx.Client | None = None) -> None:
        self._client = client or httpx.Client(base_url=api_url.rstrip("/"), timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def _call(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise ApiClientError(f"could not reach onboarding API: {exc}") from exc
        try:
            envelope = response.json()
        except ValueError as exc:
            raise ApiClientError(f"invalid response (HTTP {response.status_code})") from exc
        if not envelope.get("success"):
            raise ApiClientError(envelope.get("error") or f"HTTP {response.status_code}")
        return envelope.get("data") or {}

    def start(self, user_id: str, username: str, email: str) -> dict[str, Any]:
        return self._call(
            "POST",
            "/api/v1/onboarding/start",
            {"user_id": user_id, "username": username, "email": email},
        )

    def send(self, session_id: str, message: str) -> dict[str, Any]:
        return self._call(
            "POST",
            "/api/v1/onboarding/message",
            {"session_id": session_id, "message": message},
        )

    def status(self, session_id: str) -> dict[str, Any]:
        return self._call("GET", f"/api/v1/onboarding/status/{session_id}")


def _api_client(api_url: str) -> OnboardingApiClient:
    return OnboardingApiClient(api_url)


def _format_progress(progress: float) -> str:
    return f"{progress * 100:.0f}%"


def _print_status(data: dict[str, Any]) -> None:
    typer.echo(data.get("summary_text", ""))
    typer.echo(f"Stage: {data.get('stage')}  Progress: {_format_progress(data.get('progress', 0.0))}")


@app.command()
def server(
    host: str = typer.Option("0.0.0.0", help="Bind address."),
    port: int = typer.Option(8080, help="HTTP port."),
) -> None:
    """Sobe a API HTTP com uvicorn."""
    import uvicorn

    from onboarding_agent.config.settings import get_settings

    settings = get_settings()
    uvicorn.run(
        "onboarding_agent.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=int(settings.shutdown_grace_seconds),
    )


@app.command()
def interactive(
    user_id: str = typer.Option(..., "--user-id", help="User identifier."),
    username: str = typer.Option(..., "--username", help="Display name."),
    email: str = typer.Option(..., "--email", help="E-mail address."),
    api_url: str = typer.Option(DEFAULT_API_URL, "--api-url", help="Onboarding API base URL."),
) -> None:
    """Chat interativo; `status` mostra o progresso e `quit`/`exit` encerra."""
    client = _api_client(api_url)
    try:
        try:
            started = client.start(user_id, username, email)
        except ApiClientError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc

        session_id = started["session_id"]
        typer.echo(f"Session: {session_id}")
        typer.echo(f"Agent: {started['welcome_message']}")

        while True:
            try:
                text = typer.prompt("You", default="", show_default=False).strip()
            except typer.Abort:
                break
            if not text:
                continue
            if text.lower() in ("quit", "exit"):
                typer.echo("Goodbye!")
                break

            try:
                if text.lower() == "status":
                    _print_status(client.status(session_id))
                    continue
                reply = client.send(session_id, text)
            except ApiClientError as exc:
                typer.echo(f"Error: {exc}", err=True)
                continue

            typer.echo(f"Agent: {reply['response_message']}")
            actions = reply.get("next_actions") or []
            if actions:
                typer.echo("Next actions:")
                for action in actions:
                    typer.echo(f"  - {action}")
            typer.echo(f"Progress: {_format_progress(reply.get('progress', 0.0))}")
            if reply.get("completed"):
                typer.echo("Onboarding complete!")
    finally:
        client.close()


@app.command()
def status(
    session_id: str = typer.Argument(..., help="Session identifier."),
    api_url: str = typer.Option(DEFAULT_API_URL, "--api-url", help="Onboarding API base URL."),
) -> None:
    """Mostra o resumo de progresso de uma sessão."""
    client = _api_client(api_url)
    try:
        _print_status(client.status(session_id))
    except ApiClientError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        client.close()


if __name__ == "__main__":
    app()
