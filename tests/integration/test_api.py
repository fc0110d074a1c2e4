"""Integration tests for API endpoints"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from arrearsflow.config import settings
from arrearsflow.infrastructure.database.repositories import RuleSetRepository


@pytest.fixture
def scenario_a_payload():
    """Inline debtor evaluated at a fixed instant"""
    return {
        "debtor": {
            "id": "c1",
            "current_balance": "60000",
            "transactions": [
                {"kind": "debit", "occurred_on": "2025-06-01", "amount": "60000", "balance_after": "60000"},
                {"kind": "credit", "occurred_on": "2025-08-17", "amount": "0", "balance_after": "60000"},
            ],
            "last_chat_at": "2025-10-16T12:00:00Z",
        },
        "now": "2025-12-15T12:00:00Z",
    }


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient, scenario_a_payload):
    """Test Prometheus metrics endpoint"""
    client.post("/v1/analyze", json=scenario_a_payload)

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "arrearsflow_analysis_total" in response.text
    assert "arrearsflow_contact_gate_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


def test_analyze_inline_debtor(client: TestClient, scenario_a_payload):
    """POST /v1/analyze grades Scenario A as D against the default rules"""
    response = client.post("/v1/analyze", json=scenario_a_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["assigned_grade"] == "D"
    assert data["days_since_last_payment"] == 120
    assert data["days_since_contact"] == 60
    assert data["is_contact_blocked"] is False
    assert data["fallback_applied"] is False
    assert data["next_action"]["type"] == "chat"
    assert data["next_action"]["template_id"] == "TPL_003"
    assert data["health_score"] == 34.0
    assert data["rule_set_version"] == 0


def test_analyze_recent_contact_is_blocked(client: TestClient, scenario_a_payload):
    scenario_a_payload["debtor"]["last_chat_at"] = "2025-12-15T11:00:00Z"

    data = client.post("/v1/analyze", json=scenario_a_payload).json()

    assert data["is_contact_blocked"] is True
    assert data["next_action"]["type"] == "cooldown"
    assert data["cooldown_remaining_seconds"] > 0


def test_analyze_with_inline_rules(client: TestClient, scenario_a_payload):
    scenario_a_payload["rules"] = [
        {"id": "HOT", "priority": 1, "min_balance": "100000"},
        {"id": "COLD", "priority": 2, "cooldown_amount": "2", "cooldown_unit": "days"},
    ]

    data = client.post("/v1/analyze", json=scenario_a_payload).json()

    assert data["assigned_grade"] == "COLD"
    assert data["rule_set_version"] is None


def test_analyze_empty_rules_rejected(client: TestClient, scenario_a_payload):
    scenario_a_payload["rules"] = []

    response = client.post("/v1/analyze", json=scenario_a_payload)

    assert response.status_code == 422


def test_simulate_matches_inline_analysis(client: TestClient, scenario_a_payload):
    """Simulator and inline analysis share one evaluation path"""
    simulated = client.post(
        "/v1/simulate",
        json={
            "balance": "60000",
            "days_since_payment": 120,
            "days_since_contact": 60,
            "now": "2025-12-15T12:00:00Z",
        },
    ).json()
    inline = client.post("/v1/analyze", json=scenario_a_payload).json()

    assert simulated["assigned_grade"] == inline["assigned_grade"] == "D"
    assert simulated["health_score"] == inline["health_score"]
    assert simulated["is_contact_blocked"] == inline["is_contact_blocked"]


def test_simulate_rejects_negative_balance(client: TestClient):
    response = client.post("/v1/simulate", json={"balance": "-1"})
    assert response.status_code == 422


@pytest.mark.integration
def test_list_debtors_with_grades(client: TestClient, seeded_debtors):
    response = client.get("/v1/debtors")

    assert response.status_code == 200
    data = response.json()
    grades = {item["debtor_id"]: item["assigned_grade"] for item in data["items"]}
    assert grades == {"c1": "D", "c2": "C", "c3": "A"}
    assert data["rule_set_version"] == 0


@pytest.mark.integration
def test_list_debtors_grade_filter(client: TestClient, seeded_debtors):
    data = client.get("/v1/debtors", params={"grade": "D"}).json()

    assert [item["debtor_id"] for item in data["items"]] == ["c1"]
    assert data["grade"] == "D"


@pytest.mark.integration
def test_debtor_detail(client: TestClient, seeded_debtors):
    response = client.get("/v1/debtors/c2/analysis")

    assert response.status_code == 200
    data = response.json()
    assert data["assigned_grade"] == "C"
    assert data["days_since_contact"] == 10  # from the call log
    assert data["days_since_last_payment"] == 50
    assert Decimal(data["balances"]["currency"]) == Decimal("25000")


@pytest.mark.integration
def test_debtor_detail_not_found(client: TestClient, seeded_debtors):
    response = client.get("/v1/debtors/missing/analysis")
    assert response.status_code == 404


@pytest.mark.integration
def test_portfolio_summary(client: TestClient, seeded_debtors):
    response = client.get("/v1/portfolio/summary")

    assert response.status_code == 200
    data = response.json()
    assert data["debtor_count"] == 3
    assert data["grade_counts"] == {"D": 1, "C": 1, "B": 0, "A": 1}
    assert Decimal(data["total_liability"]) == Decimal("85000")
    assert Decimal(data["total_commodity"]) == Decimal("12.5")
    assert data["ranking"] == ["c1", "c2", "c3"]
    assert data["blocked_count"] == 0


@pytest.mark.integration
def test_get_default_rules(client: TestClient):
    data = client.get("/v1/rules").json()

    assert data["version"] == 0
    assert [r["id"] for r in data["rules"]] == ["D", "C", "B", "A"]
    assert data["warnings"] == []


@pytest.mark.integration
def test_publish_rules_creates_new_version(client: TestClient, seeded_debtors):
    response = client.post(
        "/v1/rules",
        json={
            "rules": [
                {"id": "X", "priority": 1, "min_balance": "20000", "cooldown_amount": "1", "cooldown_unit": "days"},
                {"id": "Y", "priority": 2, "min_balance": "1"},
            ]
        },
    )

    assert response.status_code == 201
    published = response.json()
    assert published["version"] == 1
    # Y is not a catch-all: accepted with a warning
    assert len(published["warnings"]) == 1

    assert client.get("/v1/rules").json()["version"] == 1

    summary = client.get("/v1/portfolio/summary").json()
    assert summary["rule_set_version"] == 1
    assert summary["grade_counts"] == {"X": 2, "Y": 1}
    assert summary["fallback_count"] == 1  # c3 has a zero balance and matches nothing


@pytest.mark.integration
def test_publish_empty_rules_rejected(client: TestClient):
    response = client.post("/v1/rules", json={"rules": []})
    assert response.status_code == 422


def test_analyze_inline_rules_without_stored_rule_set(client: TestClient, scenario_a_payload, monkeypatch):
    """Inline rules are enough on their own; no stored or built-in set is needed"""
    monkeypatch.setattr(settings, "seed_default_rules", False)
    scenario_a_payload["rules"] = [{"id": "A", "priority": 1}]

    response = client.post("/v1/analyze", json=scenario_a_payload)

    assert response.status_code == 200
    assert response.json()["assigned_grade"] == "A"


def test_analyze_without_any_rule_set_is_unavailable(client: TestClient, scenario_a_payload, monkeypatch):
    monkeypatch.setattr(settings, "seed_default_rules", False)

    response = client.post("/v1/analyze", json=scenario_a_payload)

    assert response.status_code == 503


def test_simulate_counted_apart_from_real_analyses(client: TestClient):
    def sample(name):
        return REGISTRY.get_sample_value(name, {"grade": "D"}) or 0.0

    simulations_before = sample("arrearsflow_simulation_total")
    analyses_before = sample("arrearsflow_analysis_total")

    client.post("/v1/simulate", json={"balance": "60000", "days_since_payment": 120, "days_since_contact": 60})

    assert sample("arrearsflow_simulation_total") == simulations_before + 1
    assert sample("arrearsflow_analysis_total") == analyses_before


@pytest.mark.integration
def test_portfolio_summary_covers_debtors_beyond_page_limit(client: TestClient, seeded_debtors, monkeypatch):
    monkeypatch.setattr(settings, "list_page_limit", 2)

    data = client.get("/v1/portfolio/summary").json()

    assert data["debtor_count"] == 3
    assert Decimal(data["total_liability"]) == Decimal("85000")
    assert data["grade_counts"] == {"D": 1, "C": 1, "B": 0, "A": 1}


@pytest.mark.integration
def test_list_debtors_pages_with_offset(client: TestClient, seeded_debtors, monkeypatch):
    monkeypatch.setattr(settings, "list_page_limit", 2)

    first = client.get("/v1/debtors").json()
    second = client.get("/v1/debtors", params={"offset": 2}).json()

    assert [item["debtor_id"] for item in first["items"]] == ["c1", "c2"]
    assert first["total"] == 3
    assert first["limit"] == 2
    assert [item["debtor_id"] for item in second["items"]] == ["c3"]
    assert second["offset"] == 2


@pytest.mark.integration
def test_list_debtors_limit_is_capped(client: TestClient, seeded_debtors, monkeypatch):
    monkeypatch.setattr(settings, "list_page_limit", 2)

    data = client.get("/v1/debtors", params={"limit": 50}).json()

    assert data["limit"] == 2
    assert len(data["items"]) == 2


@pytest.mark.integration
def test_list_debtors_grade_filter_searches_every_page(client: TestClient, seeded_debtors, monkeypatch):
    """c3 sits past the first page but is still found by its grade"""
    monkeypatch.setattr(settings, "list_page_limit", 2)

    data = client.get("/v1/debtors", params={"grade": "A"}).json()

    assert [item["debtor_id"] for item in data["items"]] == ["c3"]
    assert data["total"] == 1


@pytest.mark.integration
def test_publish_rules_version_conflict(client: TestClient, monkeypatch):
    """A publish computing an already-taken version is rejected with 409"""
    body = {"rules": [{"id": "A", "priority": 1}]}
    assert client.post("/v1/rules", json=body).status_code == 201

    monkeypatch.setattr(RuleSetRepository, "_next_version", lambda self: 1)
    response = client.post("/v1/rules", json=body)
    monkeypatch.undo()

    assert response.status_code == 409
    assert client.get("/v1/rules").json()["version"] == 1
