"""Telemetry provider ABC, span and metric records, and the no-op default."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class SpanKind(StrEnum):
    """Span classifications for telemetry."""

    COORDINATOR_SUBMIT = "coordinator.submit"
    COORDINATOR_SUBSCRIBE = "coordinator.subscribe"
    REGISTRY_JOIN = "registry.join"
    REGISTRY_EVICT = "registry.evict"
    EXECUTOR_RUN = "executor.run"
    CUSTOM = "custom"


class Attr:
    """Well-known attribute keys for spans and metrics."""

    ROOM_ID = "room_id"
    SESSION_ID = "session_id"
    EVENT_KIND = "event.kind"
    EVENT_SEQUENCE = "event.sequence"
    EVENT_DUPLICATE = "event.duplicate"
    FROM_SEQUENCE = "subscribe.from_sequence"
    EXECUTOR_NAME = "executor.name"
    EXECUTOR_EXIT_STATUS = "executor.exit_status"
    EVICTED_COUNT = "registry.evicted_count"


@dataclass
class Span:
    """Represents a telemetry span."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    kind: SpanKind = SpanKind.CUSTOM
    name: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    status: str = "ok"
    error_message: str | None = None
    room_id: str | None = None
    session_id: str | None = None

    @property
    def duration_ms(self) -> float | None:
        """Duration in milliseconds, or None if not yet ended."""
        if self.end_time is None:
            return None
        delta = self.end_time - self.start_time
        return delta.total_seconds() * 1000


class TelemetryProvider(ABC):
    """Collects span and metric data from RoomSync operations.

    The default ``NoopTelemetryProvider`` has zero overhead.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for identification."""
        ...

    @abstractmethod
    def start_span(
        self,
        kind: SpanKind,
        name: str,
        *,
        attributes: dict[str, Any] | None = None,
        room_id: str | None = None,
        session_id: str | None = None,
    ) -> str:
        """Start a new span and return its id."""
        ...

    @abstractmethod
    def end_span(
        self,
        span_id: str,
        *,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        """End a previously started span."""
        ...

    @abstractmethod
    def set_attribute(self, span_id: str, key: str, value: Any) -> None:
        """Set an attribute on an active span."""
        ...

    @abstractmethod
    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        """Record a metric value."""
        ...

    def close(self) -> None:  # noqa: B027
        """Close the provider and flush any pending data."""

    @contextmanager
    def span(
        self,
        kind: SpanKind,
        name: str,
        **kwargs: Any,
    ) -> Generator[str, None, None]:
        """Context manager for span lifecycle.

        Yields the span ID and ends the span on exit, recording error status
        if an exception escapes.
        """
        span_id = self.start_span(kind, name, **kwargs)
        try:
            yield span_id
            self.end_span(span_id)
        except BaseException as exc:
            self.end_span(span_id, status="error", error_message=str(exc) or type(exc).__name__)
            raise


@dataclass
class MetricSample:
    """One recorded metric value."""

    name: str
    value: float
    unit: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def room_id(self) -> str | None:
        return self.attributes.get(Attr.ROOM_ID)


class NoopTelemetryProvider(TelemetryProvider):
    """Default provider; every span id is the empty string."""

    @property
    def name(self) -> str:
        return "noop"

    def start_span(self, kind: SpanKind, name: str, **kwargs: Any) -> str:
        return ""

    def end_span(self, span_id: str, **kwargs: Any) -> None:
        pass

    def set_attribute(self, span_id: str, key: str, value: Any) -> None:
        pass

    def record_metric(self, name: str, value: float, **kwargs: Any) -> None:
        pass
