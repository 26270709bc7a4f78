"""Telemetry provider system for RoomSync."""

from roomsync.telemetry.base import (
    Attr,
    MetricSample,
    NoopTelemetryProvider,
    Span,
    SpanKind,
    TelemetryProvider,
)
from roomsync.telemetry.mock import MockTelemetryProvider

__all__ = [
    "Attr",
    "MetricSample",
    "MockTelemetryProvider",
    "NoopTelemetryProvider",
    "Span",
    "SpanKind",
    "TelemetryProvider",
]
