"""Schema validation contract tests: verify request validation and RFC 9457 errors."""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

PROBLEM_JSON = "application/problem+json"


@pytest.fixture
def client():
    from starlette.testclient import TestClient

    from infrastructure.container import ServiceContainer, reset_container, set_container
    from infrastructure.settings import AppSettings
    from presentation.main import create_app

    set_container(
        ServiceContainer(AppSettings(seed_demo_data=True), clock=lambda: date(2026, 10, 19))
    )
    with TestClient(create_app()) as test_client:
        yield test_client
    reset_container()


@pytest.mark.contract
class TestRequestValidation:

    def test_non_positive_user_id(self, client):
        resp = client.post("/api/v1/anomalies", json={"user_id": 0, "period": "2026-10"})
        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith(PROBLEM_JSON)
        data = resp.json()
        assert data["title"] == "Validation Error"
        assert data["status"] == 422
        assert any("user_id" in e.get("field", "") for e in data.get("errors", []))

    @pytest.mark.parametrize("period", ["2026-13", "26-10", "2026/10", ""])
    def test_malformed_period(self, client, period):
        resp = client.post("/api/v1/anomalies", json={"user_id": 1001, "period": period})
        assert resp.status_code == 422

    def test_threshold_out_of_range(self, client):
        resp = client.post(
            "/api/v1/anomalies", json={"user_id": 1001, "period": "2026-10", "threshold": 9}
        )
        assert resp.status_code == 422

    def test_empty_scenario(self, client):
        resp = client.post(
            "/api/v1/what-if", json={"user_id": 1001, "period": "2026-10", "scenario": {}}
        )
        assert resp.status_code == 422

    def test_scenario_with_only_nulls(self, client):
        resp = client.post(
            "/api/v1/what-if",
            json={"user_id": 1001, "period": "2026-10", "scenario": {"plan_id": None}},
        )
        assert resp.status_code == 422

    def test_too_many_addons(self, client):
        resp = client.post(
            "/api/v1/what-if",
            json={
                "user_id": 1001,
                "period": "2026-10",
                "scenario": {"addons": [101, 102, 103, 104, 105, 106]},
            },
        )
        assert resp.status_code == 422

    @pytest.mark.parametrize("count", [0, 6])
    def test_scenario_count(self, client, count):
        resp = client.post(
            "/api/v1/what-if/compare",
            json={
                "user_id": 1001,
                "period": "2026-10",
                "scenarios": [{"disable_vas": True}] * count,
            },
        )
        assert resp.status_code == 422


@pytest.mark.contract
class TestDomainErrors:

    def test_future_period(self, client):
        resp = client.post("/api/v1/anomalies", json={"user_id": 1001, "period": "2026-12"})
        assert resp.status_code == 400
        assert resp.headers["content-type"].startswith(PROBLEM_JSON)
        data = resp.json()
        assert data["kind"] == "INVALID_PERIOD"
        assert data["instance"] == "/api/v1/anomalies"

    def test_bill_not_found(self, client):
        resp = client.post("/api/v1/anomalies", json={"user_id": 1001, "period": "2025-01"})
        assert resp.status_code == 404
        assert resp.json()["kind"] == "BILL_NOT_FOUND"

    def test_unknown_bill_id(self, client):
        resp = client.get("/api/v1/bills/B-404")
        assert resp.status_code == 404
        assert resp.json()["kind"] == "BILL_NOT_FOUND"

    def test_unknown_plan(self, client):
        resp = client.post(
            "/api/v1/what-if",
            json={"user_id": 1001, "period": "2026-10", "scenario": {"plan_id": 77}},
        )
        assert resp.status_code == 404
        assert resp.json()["kind"] == "PLAN_NOT_FOUND"

    def test_unknown_plan_in_comparison_is_ranked_last(self, client):
        resp = client.post(
            "/api/v1/what-if/compare",
            json={
                "user_id": 1001,
                "period": "2026-10",
                "scenarios": [{"plan_id": 77}, {"disable_vas": True}],
            },
        )
        assert resp.status_code == 200
        failed = resp.json()["scenarios"][0]
        assert failed["rank"] == 999
        assert failed["error"]


@pytest.fixture
def narrow_client():
    from starlette.testclient import TestClient

    from infrastructure.container import ServiceContainer, reset_container, set_container
    from infrastructure.settings import AppSettings
    from presentation.main import create_app

    settings = AppSettings(seed_demo_data=True, max_addons=2, max_scenarios=2)
    set_container(ServiceContainer(settings, clock=lambda: date(2026, 10, 19)))
    with TestClient(create_app()) as test_client:
        yield test_client
    reset_container()


@pytest.mark.contract
class TestConfiguredLimits:

    def test_addon_limit_follows_settings(self, narrow_client):
        def post(addons):
            return narrow_client.post(
                "/api/v1/what-if",
                json={"user_id": 1001, "period": "2026-10", "scenario": {"addons": addons}},
            )

        assert post([101, 102]).status_code == 200
        assert post([101, 102, 103]).status_code == 422

    def test_scenario_limit_follows_settings(self, narrow_client):
        def post(count):
            return narrow_client.post(
                "/api/v1/what-if/compare",
                json={
                    "user_id": 1001,
                    "period": "2026-10",
                    "scenarios": [{"disable_vas": True}] * count,
                },
            )

        assert post(2).status_code == 200
        assert post(3).status_code == 422
