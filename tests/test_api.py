import asyncio

import jwt

from risklens.config import get_settings

from conftest import REMOTE_SUMMARY, TEXAS_CONTRACT

SECRET = "risklens-test-secret-0123456789abcdef"


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_and_blank_text_rejected(client):
    for body in ({}, {"text": ""}, {"text": "   "}):
        response = client.post("/api/analyze", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "No text provided"}


def test_malformed_body_rejected(client):
    response = client.post(
        "/api/analyze", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_colorado_contract_forbidden(client):
    response = client.post(
        "/api/analyze", json={"text": "This Agreement is governed by the laws of Colorado."}
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Colorado contracts are not supported by this analyzer."}


def test_texas_contract_analysis(client):
    response = client.post("/api/analyze", json={"text": TEXAS_CONTRACT})

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"summary", "redFlags", "clauses", "jurisdiction", "timestamp"}
    assert body["summary"] == REMOTE_SUMMARY
    assert body["jurisdiction"] == {"detectedStates": ["texas"], "approvedStates": ["texas"]}
    assert "Automatic renewal clause found" in body["redFlags"]
    assert body["clauses"]["paymentTerms"]
    assert body["clauses"]["dates"] == []


def test_repeat_submission_returns_identical_bytes(client, summarizer_calls):
    first = client.post("/api/analyze", json={"text": TEXAS_CONTRACT})
    second = client.post("/api/analyze", json={"text": TEXAS_CONTRACT})

    assert second.content == first.content
    assert len(summarizer_calls) == 1


def test_eleventh_request_rate_limited(client):
    for i in range(10):
        response = client.post("/api/analyze", json={"text": f"{TEXAS_CONTRACT} Reference number {i}."})
        assert response.status_code == 200

    response = client.post("/api/analyze", json={"text": f"{TEXAS_CONTRACT} One more."})
    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded"}


def test_rate_limit_is_per_forwarded_ip(client):
    for i in range(10):
        client.post(
            "/api/analyze",
            json={"text": f"{TEXAS_CONTRACT} Reference number {i}."},
            headers={"X-Forwarded-For": "198.51.100.4"},
        )

    response = client.post(
        "/api/analyze",
        json={"text": f"{TEXAS_CONTRACT} One more."},
        headers={"X-Forwarded-For": "203.0.113.9"},
    )
    assert response.status_code == 200


def test_invalid_bearer_token_analyzed_as_anonymous(client, store, monkeypatch):
    monkeypatch.setenv("JWT_SECRET", SECRET)
    get_settings.cache_clear()
    headers = {"Authorization": "Bearer not-a-token", "CF-Connecting-IP": "192.0.2.10"}

    response = client.post("/api/analyze", json={"text": TEXAS_CONTRACT}, headers=headers)
    assert response.status_code == 200
    assert asyncio.run(store.get("rate_limit:anon:192.0.2.10")) == "1"

    usage = client.get("/api/usage", headers=headers).json()
    assert usage["identity"] == "anon:192.0.2.10"
    assert usage["authenticated"] is False


def test_free_member_quota_and_usage_report(client, monkeypatch):
    monkeypatch.setenv("JWT_SECRET", SECRET)
    get_settings.cache_clear()
    headers = {"Authorization": f"Bearer {jwt.encode({'userId': 'user-7'}, SECRET, algorithm='HS256')}"}

    for i in range(3):
        response = client.post("/api/analyze", json={"text": f"{TEXAS_CONTRACT} Order {i}."}, headers=headers)
        assert response.status_code == 200

    response = client.post("/api/analyze", json={"text": f"{TEXAS_CONTRACT} Order 4."}, headers=headers)
    assert response.status_code == 429
    assert response.json() == {"error": "Monthly analysis limit reached (3/3 on the free plan)"}

    usage = client.get("/api/usage", headers=headers).json()
    assert usage["identity"] == "user-7"
    assert usage["authenticated"] is True
    assert usage["usage"] == 3
    assert usage["remaining"] == 0
    assert usage["allowed"] is False


def test_anonymous_usage_report(client):
    usage = client.get("/api/usage", headers={"CF-Connecting-IP": "192.0.2.10"}).json()
    assert usage == {
        "identity": "anon:192.0.2.10",
        "authenticated": False,
        "allowed": True,
        "tier": None,
        "status": None,
        "reason": None,
        "usage": None,
        "limit": None,
        "remaining": None,
    }


def test_unexpected_failure_is_opaque_500(client, monkeypatch):
    def explode(text):
        raise RuntimeError("regex engine on fire")

    monkeypatch.setattr("risklens.services.analysis_orchestrator.extract_clauses", explode)

    response = client.post("/api/analyze", json={"text": TEXAS_CONTRACT})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_bare_options_request(client):
    response = client.options("/api/analyze")
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_cors_preflight(client):
    response = client.options(
        "/api/analyze",
        headers={
            "Origin": "https://contracts.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_cors_header_on_simple_response(client):
    response = client.get("/api/health", headers={"Origin": "https://contracts.example.com"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_index_page_served(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "/api/analyze" in response.text
