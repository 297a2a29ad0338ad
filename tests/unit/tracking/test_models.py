# tests/unit/tracking/test_models.py — v2
"""Tests for tracking/models.py."""

from __future__ import annotations

from datetime import datetime, timezone

from routecache.tracking.models import MetricRecord


class TestMetricRecord:
    def test_serialization(self):
        record = MetricRecord(
            namespace="RouteCache",
            name="GetCachedRoute_hit_livemode",
            value=1,
            unit="Count",
            timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        dumped = record.model_dump(mode="json")
        assert dumped["value"] == 1.0
        assert dumped["timestamp"].startswith("2026-01-01")
