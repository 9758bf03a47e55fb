from __future__ import annotations


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["service"] == "onboarding_agent"
    assert payload["details"]["sessions"] == 0


def test_health_reports_degraded_sync(client):
    service = client.app.state.onboarding_service
    started = client.post(
        "/api/v1/onboarding/start",
        json={"user_id": "u1", "username": "Jane", "email": "jane@example.com"},
    ).json()["data"]

    def fail(target):
        target.ticket.last_error = "TicketRetryableError: timeout"

    service._store.update(started["session_id"], fail)

    payload = client.get("/health").json()
    assert payload["status"] == "degraded"
    assert payload["details"]["ticket_sync_lagging"] == 1
