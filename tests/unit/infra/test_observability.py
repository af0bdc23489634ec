"""Tests for infrastructure.observability."""

from __future__ import annotations

from prometheus_client import REGISTRY
from structlog.testing import capture_logs

from domain.models.anomaly import AnomalyRecord, AnomalyType, Severity
from infrastructure.observability.logging_config import (
    get_logger,
    mask_msisdn,
    mask_phone_numbers,
)
from infrastructure.observability.metrics import record_anomalies, record_simulation


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMaskMsisdn:
    def test_masks_prefixed_number(self):
        assert mask_msisdn("user 905551112233 called") == "user ********2233 called"

    def test_masks_local_number(self):
        assert mask_msisdn("5551112233") == "******2233"

    def test_leaves_other_numbers(self):
        assert mask_msisdn("bill B-1001-2026-10 total 210.00") == "bill B-1001-2026-10 total 210.00"

    def test_processor_masks_string_values(self):
        event = mask_phone_numbers(None, "info", {"event": "lookup 905551112233", "user_id": 1001})
        assert event == {"event": "lookup ********2233", "user_id": 1001}


class TestBusinessMetrics:
    def test_record_anomalies(self):
        labels = {"type": "new_item", "severity": "high"}
        before = _sample("anomalies_detected_total", labels)

        record_anomalies(
            [AnomalyRecord(type=AnomalyType.NEW_ITEM, category="vas", severity=Severity.HIGH)] * 2,
            risk_score=5,
        )

        assert _sample("anomalies_detected_total", labels) == before + 2

    def test_record_simulation(self):
        before = _sample("what_if_simulations_total", {"outcome": "saving"})
        record_simulation("saving")
        assert _sample("what_if_simulations_total", {"outcome": "saving"}) == before + 1


class TestGetLogger:
    def test_bound_context_reaches_event(self):
        with capture_logs() as logs:
            get_logger("billing_assistant.request").bind(user_id=1001).info(
                "http_request", status_code=200
            )

        assert len(logs) == 1
        assert logs[0]["event"] == "http_request"
        assert logs[0]["user_id"] == 1001
        assert logs[0]["status_code"] == 200
