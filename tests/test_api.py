"""Summary: API integration tests.

Importance: Validates FastAPI endpoints, envelopes, and status codes against core workflows.
Alternatives: Use manual curl testing only.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from conftest import TRANSCRIPT, FailingProvider, RecordingProvider
from minutemate.api import create_app
from minutemate.app import build_services
from minutemate.config import AppConfig
from minutemate.email import MockEmailTransport


def _client(
    config: AppConfig,
    providers: list[Any] | None = None,
    transport: Any = None,
) -> TestClient:
    """Summary: Build a TestClient over injected fakes.

    Importance: Ensures tests use isolated storage and no network.
    Alternatives: Load AppConfig from environment variables.
    """

    services = build_services(
        config,
        providers=providers if providers is not None else [RecordingProvider("groq")],
        transport=transport if transport is not None else MockEmailTransport(),
    )
    return TestClient(create_app(config, services), raise_server_exceptions=False)


def _create(client: TestClient, **overrides: Any) -> dict[str, Any]:
    payload = {"transcript": TRANSCRIPT, "prompt": "Summarize decisions", "userId": "user-1"}
    payload.update(overrides)
    response = client.post("/api/summarize", json=payload)
    assert response.status_code == 200, response.text
    return response.json()["data"]


def test_health_endpoint(make_config: Callable[..., AppConfig]) -> None:
    """Summary: Verify the health endpoint returns ok.

    Importance: Confirms the API is reachable for uptime checks.
    Alternatives: Use a metrics endpoint only.
    """

    response = _client(make_config()).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_summarize_and_fetch(make_config: Callable[..., AppConfig]) -> None:
    """Summary: Verify the create, read, edit, and delete flow over HTTP.

    Importance: This is the primary user journey.
    Alternatives: Test only the service layer.
    """

    client = _client(make_config())
    created = _create(client)
    assert created["summary"] == "Summary text"
    assert created["provider"] == "groq"
    assert created["userId"] == "user-1"
    assert created["processingTime"] >= 0
    summary_id = created["id"]

    fetched = client.get(f"/api/summarize/{summary_id}").json()
    assert fetched["success"] is True
    assert fetched["data"]["transcript"] == TRANSCRIPT
    assert fetched["data"]["metadata"]["wordCount"] == len(TRANSCRIPT.split())

    edited = client.put(f"/api/summarize/{summary_id}", json={"editedSummary": "Better"})
    assert edited.status_code == 200
    assert edited.json()["data"]["editedSummary"] == "Better"

    deleted = client.delete(f"/api/summarize/{summary_id}")
    assert deleted.json() == {"success": True, "message": "Summary deleted successfully"}
    missing = client.get(f"/api/summarize/{summary_id}")
    assert missing.status_code == 404
    assert missing.json()["error"] == "Summary not found"
    assert client.delete(f"/api/summarize/{summary_id}").status_code == 404


@pytest.mark.parametrize(
    "payload",
    [
        {"transcript": "too short", "prompt": "Summarize"},
        {"transcript": TRANSCRIPT},
        {"transcript": TRANSCRIPT, "prompt": "Summarize", "style": "limerick"},
        {"transcript": TRANSCRIPT, "prompt": "Summarize", "provider": "unknown"},
    ],
)
def test_summarize_validation_errors(
    make_config: Callable[..., AppConfig], payload: dict[str, Any]
) -> None:
    response = _client(make_config()).post("/api/summarize", json=payload)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"]


def test_summarize_service_unavailable(make_config: Callable[..., AppConfig]) -> None:
    """Summary: Verify provider failures and missing keys map to 503.

    Importance: Clients can distinguish outages from bad input.
    Alternatives: Return 500 for every upstream problem.
    """

    failing = _client(make_config(), providers=[FailingProvider("groq")])
    response = failing.post("/api/summarize", json={"transcript": TRANSCRIPT, "prompt": "Go"})
    assert response.status_code == 503
    assert response.json()["error"] == "AI Service Unavailable"
    assert "groq API Error" in response.json()["message"]

    unconfigured = _client(make_config(), providers=[RecordingProvider("groq", available=False)])
    response = unconfigured.post("/api/summarize", json={"transcript": TRANSCRIPT, "prompt": "Go"})
    assert response.status_code == 503


def test_edit_requires_text(make_config: Callable[..., AppConfig]) -> None:
    client = _client(make_config())
    summary_id = _create(client)["id"]
    assert client.put(f"/api/summarize/{summary_id}", json={}).status_code == 400
    assert client.put("/api/summarize/missing", json={"editedSummary": "x"}).status_code == 404


def test_providers_and_styles(make_config: Callable[..., AppConfig]) -> None:
    client = _client(
        make_config(),
        providers=[RecordingProvider("groq", available=False), RecordingProvider("openai")],
    )
    providers = client.get("/api/summarize/providers/list").json()["data"]
    assert providers["default"] == "openai"
    assert [item["id"] for item in providers["providers"]] == ["openai"]
    styles = client.get("/api/summarize/styles/list").json()["data"]
    assert len(styles) == 4
    assert {"id", "name", "description"} == set(styles[0])


def test_history_endpoints(make_config: Callable[..., AppConfig]) -> None:
    """Summary: Verify listing, search, stats, and analytics over HTTP.

    Importance: Backs the history page of the UI.
    Alternatives: Query the database directly from the UI.
    """

    client = _client(make_config())
    _create(client, prompt="Budget review", style="executive")
    _create(client, prompt="Sprint planning", style="technical")
    _create(client, userId="user-2")

    listing = client.get("/api/history/user/user-1", params={"limit": 1}).json()["data"]
    assert len(listing["summaries"]) == 1
    assert "transcript" not in listing["summaries"][0]
    assert listing["pagination"]["totalItems"] == 2
    assert listing["pagination"]["hasNextPage"] is True

    search = client.get(
        "/api/history/user/user-1/search", params={"q": "budget", "style": "executive"}
    ).json()["data"]
    assert [item["prompt"] for item in search["summaries"]] == ["Budget review"]
    assert search["searchParams"]["query"] == "budget"

    stats = client.get("/api/history/user/user-1/stats").json()["data"]
    assert stats["totalSummaries"] == 2
    empty = client.get("/api/history/user/nobody/stats").json()["data"]
    assert empty["totalSummaries"] == 0

    analytics = client.get("/api/history/user/user-1/analytics", params={"period": "7d"}).json()
    assert analytics["data"]["totalSummaries"] == 2
    assert analytics["data"]["period"] == "7d"

    bad = client.get("/api/history/user/user-1", params={"limit": 500})
    assert bad.status_code == 400
    assert client.get("/api/history/user/user-1", params={"page": "abc"}).status_code == 400


def test_history_summary_update_and_delete(make_config: Callable[..., AppConfig]) -> None:
    client = _client(make_config())
    summary_id = _create(client)["id"]
    updated = client.put(
        f"/api/history/summary/{summary_id}", json={"summaryStyle": "technical", "language": "de"}
    ).json()["data"]
    assert updated["summaryStyle"] == "technical"
    assert updated["language"] == "de"
    assert updated["prompt"] == "Summarize decisions"
    assert client.get(f"/api/history/summary/{summary_id}").status_code == 200
    assert client.delete(f"/api/history/summary/{summary_id}").status_code == 200
    assert client.get(f"/api/history/summary/{summary_id}").status_code == 404


def test_email_endpoints(make_config: Callable[..., AppConfig]) -> None:
    """Summary: Verify send, bulk, logs, validate, and status over HTTP.

    Importance: Email delivery is the main way summaries leave the app.
    Alternatives: Copy-paste summaries into a mail client.
    """

    transport = MockEmailTransport(fail_for=["b@test.com"])
    client = _client(make_config(), transport=transport)
    summary_id = _create(client)["id"]

    sent = client.post(
        "/api/email/send", json={"summaryId": summary_id, "recipients": ["a@test.com"]}
    )
    assert sent.status_code == 200
    assert sent.json()["data"]["subject"] == "Meeting Summary"

    invalid = client.post(
        "/api/email/send", json={"summaryId": summary_id, "recipients": ["a@test.com", "bad"]}
    )
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid Email Addresses"

    missing = client.post("/api/email/send", json={"summaryId": "nope", "recipients": ["a@test.com"]})
    assert missing.status_code == 404

    injected = client.post(
        "/api/email/send",
        json={"recipients": ["a@test.com"], "summary": "Hello", "subject": "Notes\nBcc: x@evil.com"},
    )
    assert injected.status_code == 400
    assert injected.json()["success"] is False

    bulk = client.post(
        "/api/email/send-bulk",
        json={"summaryId": summary_id, "recipients": ["a@test.com", "b@test.com", "c@test.com"]},
    ).json()["data"]
    assert (bulk["total"], bulk["successful"], bulk["failed"]) == (3, 2, 1)

    logs = client.get(f"/api/email/logs/{summary_id}").json()["data"]
    assert logs["totalEmails"] == 3
    assert client.get("/api/email/logs/nope").status_code == 404

    validation = client.post("/api/email/validate", json={"emails": ["a@test.com", "bad"]})
    assert validation.json()["data"]["invalidEmails"] == ["bad"]
    assert client.post("/api/email/validate", json={}).status_code == 400

    assert client.get("/api/email/test").status_code == 200
    status = client.get("/api/email/status").json()["data"]
    assert status["configured"] is True


def test_email_unconfigured_returns_503(make_config: Callable[..., AppConfig]) -> None:
    config = make_config(email_provider="none")
    services = build_services(config, providers=[RecordingProvider("groq")])
    client = TestClient(create_app(config, services))
    response = client.post(
        "/api/email/send", json={"summary": "Hello", "recipients": ["a@test.com"]}
    )
    assert response.status_code == 503
    assert response.json()["error"] == "Email Service Unavailable"
    assert client.get("/api/email/test").status_code == 503


def test_api_key_enforced_when_configured(make_config: Callable[..., AppConfig]) -> None:
    """Summary: Verify the API key guard on /api routes.

    Importance: Prevents unauthorized access to summaries.
    Alternatives: Rely on network-level protections only.
    """

    client = _client(make_config(api_key="secret"))
    assert client.get("/api/summarize/styles/list").status_code == 401
    allowed = client.get("/api/summarize/styles/list", headers={"X-API-Key": "secret"})
    assert allowed.status_code == 200
    assert client.get("/health").status_code == 200


def test_unexpected_errors_hide_details(make_config: Callable[..., AppConfig]) -> None:
    class ExplodingProvider(RecordingProvider):
        def complete(self, system_prompt: str, user_prompt: str) -> str:
            raise RuntimeError("database password is hunter2")

    client = _client(make_config(), providers=[ExplodingProvider("groq")])
    response = client.post("/api/summarize", json={"transcript": TRANSCRIPT, "prompt": "Go"})
    assert response.status_code == 500
    assert "hunter2" not in response.text
    assert response.json()["error"] == "Internal Server Error"
