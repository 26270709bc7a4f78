"""Recording telemetry provider for tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from roomsync.telemetry.base import MetricSample, Span, SpanKind, TelemetryProvider


class MockTelemetryProvider(TelemetryProvider):
    """Keeps every finished span and metric sample in memory.

    Lookups can be narrowed to one room, which is how most assertions read::

        telemetry = MockTelemetryProvider()
        sync = RoomSync(telemetry=telemetry)
        ...
        (submit,) = telemetry.get_spans(SpanKind.COORDINATOR_SUBMIT, room_id="r1")
        assert telemetry.metric_values("roomsync.submit.duration_ms", room_id="r1")
    """

    def __init__(self) -> None:
        self._active: dict[str, Span] = {}
        self.spans: list[Span] = []
        self.metrics: list[MetricSample] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def open_spans(self) -> list[Span]:
        """Spans started but not yet ended, e.g. a subscriber still registering."""
        return list(self._active.values())

    def get_spans(self, kind: SpanKind, *, room_id: str | None = None) -> list[Span]:
        return [
            s for s in self.spans if s.kind == kind and (room_id is None or s.room_id == room_id)
        ]

    def failed_spans(self, room_id: str | None = None) -> list[Span]:
        return [
            s
            for s in self.spans
            if s.status == "error" and (room_id is None or s.room_id == room_id)
        ]

    def metric_values(self, name: str, *, room_id: str | None = None) -> list[float]:
        return [
            m.value
            for m in self.metrics
            if m.name == name and (room_id is None or m.room_id == room_id)
        ]

    def start_span(
        self,
        kind: SpanKind,
        name: str,
        *,
        attributes: dict[str, Any] | None = None,
        room_id: str | None = None,
        session_id: str | None = None,
    ) -> str:
        span = Span(
            kind=kind,
            name=name,
            attributes=dict(attributes or {}),
            room_id=room_id,
            session_id=session_id,
        )
        self._active[span.id] = span
        return span.id

    def end_span(
        self,
        span_id: str,
        *,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        span = self._active.pop(span_id, None)
        if span is None:
            return
        span.end_time = datetime.now(UTC)
        span.status = status
        span.error_message = error_message
        span.attributes.update(attributes or {})
        self.spans.append(span)

    def set_attribute(self, span_id: str, key: str, value: Any) -> None:
        if span_id in self._active:
            self._active[span_id].attributes[key] = value

    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        self.metrics.append(
            MetricSample(name=name, value=value, unit=unit, attributes=dict(attributes or {}))
        )

    def reset(self) -> None:
        self._active.clear()
        self.spans.clear()
        self.metrics.clear()
