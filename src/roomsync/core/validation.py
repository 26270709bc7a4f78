"""Payload validation for participant submissions."""

from __future__ import annotations

import math
import re
from typing import Any

from pydantic import ValidationError

from roomsync.core.errors import InvalidPayloadError
from roomsync.models.enums import CodeLanguage, EventKind
from roomsync.models.event import (
    CandidateEvent,
    ChatMessagePayload,
    CodeEditPayload,
    DrawingStrokePayload,
)

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

SUPPORTED_LANGUAGES = frozenset(lang.value for lang in CodeLanguage)

# Kinds only the coordinator may append
SYSTEM_KINDS = frozenset({EventKind.CODE_OUTPUT})


def parse_candidate(data: dict[str, Any]) -> CandidateEvent:
    """Build a ``CandidateEvent`` from untrusted wire data."""
    try:
        return CandidateEvent.model_validate(data)
    except ValidationError as exc:
        raise InvalidPayloadError(
            f"Malformed candidate event: {exc.error_count()} error(s)"
        ) from exc


def validate_candidate(candidate: CandidateEvent, *, system: bool = False) -> CandidateEvent:
    """Check a candidate against the per-kind rules.

    Returns the normalized candidate (chat text is trimmed). Raises
    ``InvalidPayloadError`` on the first violated rule.
    """
    payload = candidate.payload
    if payload.kind in SYSTEM_KINDS and not system:
        raise InvalidPayloadError(f"Event kind {payload.kind} cannot be submitted by participants")

    if isinstance(payload, ChatMessagePayload):
        text = payload.text.strip()
        if not text:
            raise InvalidPayloadError("Chat message text is empty")
        if not payload.author_name.strip():
            raise InvalidPayloadError("Chat message author name is empty")
        if text != payload.text:
            trimmed = payload.model_copy(update={"text": text})
            return candidate.model_copy(update={"payload": trimmed})

    elif isinstance(payload, CodeEditPayload):
        if payload.language not in SUPPORTED_LANGUAGES:
            raise InvalidPayloadError(f"Unsupported language: {payload.language}")

    elif isinstance(payload, DrawingStrokePayload):
        _check_stroke(payload)

    return candidate


def _check_stroke(stroke: DrawingStrokePayload) -> None:
    if not stroke.stroke_id.strip():
        raise InvalidPayloadError("Stroke id is empty")
    if not stroke.points:
        raise InvalidPayloadError("Stroke has no points")
    for point in stroke.points:
        if not (0.0 <= point.x <= 1.0 and 0.0 <= point.y <= 1.0):
            raise InvalidPayloadError(
                f"Stroke point ({point.x}, {point.y}) outside the normalized canvas"
            )
    if not math.isfinite(stroke.width) or stroke.width <= 0:
        raise InvalidPayloadError("Stroke width must be a positive finite number")
    if not _HEX_COLOR.match(stroke.color):
        raise InvalidPayloadError(f"Invalid stroke color: {stroke.color}")
