# src/tracking/metrics.py — v1
"""Request-scoped metric emission.

``MetricsRecorder`` accumulates ``MetricRecord`` entries for a request (or a
process, in the CLI) and mirrors each one to the debug log.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Literal

from routecache.tracking.models import MetricRecord

logger = logging.getLogger(__name__)

MetricUnit = Literal["Count", "Milliseconds", "Percent", "None"]


class MetricsRecorder:
    """Accumulates metrics emitted while handling requests."""

    def __init__(self, namespace: str = "RouteCache") -> None:
        self._namespace = namespace
        self._records: list[MetricRecord] = []

    def put_metric(self, name: str, value: float, unit: MetricUnit = "Count") -> MetricRecord:
        """Record a metric data point.

        Args:
            name: Metric name (e.g. "GetCachedRoute_hit_livemode").
            value: Data point value.
            unit: CloudWatch-style unit name.

        Returns:
            The recorded MetricRecord.
        """
        record = MetricRecord(
            namespace=self._namespace,
            name=name,
            value=value,
            unit=unit,
            timestamp=datetime.now(timezone.utc),
        )
        self._records.append(record)
        logger.debug(
            "metric %s=%s %s", name, value, unit,
            extra={"data": record.model_dump(mode="json")},
        )
        return record

    @property
    def records(self) -> list[MetricRecord]:
        """All recorded data points."""
        return list(self._records)

    def totals(self) -> dict[str, float]:
        """Sum of values per metric name."""
        totals: dict[str, float] = defaultdict(float)
        for record in self._records:
            totals[record.name] += record.value
        return dict(totals)

    def clear(self) -> None:
        self._records.clear()
