"""Testes da CLI (typer) contra a API em processo."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from onboarding_agent import cli

runner = CliRunner()


@pytest.fixture()
def api(client, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(cli, "_api_client", lambda api_url: cli.OnboardingApiClient(client=client))
    return client


def _interactive(input_text: str):
    return runner.invoke(
        cli.app,
        ["interactive", "--user-id", "u1", "--username", "Jane", "--email", "jane@example.com"],
        input=input_text,
    )


def test_interactive_session_advances_and_quits(api):
    result = _interactive("I've completed setting up my environment\nstatus\nquit\n")

    assert result.exit_code == 0, result.output
    assert "Session: onb-u1-" in result.output
    assert "Next actions:" in result.output
    assert "Progress: 25%" in result.output
    assert "Environment Setup" in result.output
    assert "Goodbye!" in result.output


def test_interactive_reports_completion(api):
    messages = ["ready", "setup done", "met the team", "finished", "thanks", "exit"]

    result = _interactive("\n".join(messages) + "\n")

    assert result.exit_code == 0, result.output
    assert "Onboarding complete!" in result.output
    assert "Progress: 100%" in result.output


def test_interactive_ends_on_eof(api):
    result = _interactive("ready\n")

    assert result.exit_code == 0, result.output
    assert "Progress: 25%" in result.output


def test_interactive_invalid_email_fails(api):
    result = runner.invoke(
        cli.app,
        ["interactive", "--user-id", "u1", "--username", "Jane", "--email", "nope"],
        input="quit\n",
    )

    assert result.exit_code == 1


def test_status_command(api):
    session_id = api.post(
        "/api/v1/onboarding/start",
        json={"user_id": "u1", "username": "Jane", "email": "jane@example.com"},
    ).json()["data"]["session_id"]

    result = runner.invoke(cli.app, ["status", session_id])

    assert result.exit_code == 0, result.output
    assert "Onboarding for Jane" in result.output
    assert "Progress: 0%" in result.output


def test_status_unknown_session(api):
    result = runner.invoke(cli.app, ["status", "missing"])

    assert result.exit_code == 1
