# src/tracking/models.py — v2
"""Tracking domain models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class MetricRecord(BaseModel):
    """Single metric data point."""

    namespace: str
    name: str
    value: float
    unit: str
    timestamp: datetime
