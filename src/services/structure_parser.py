"""
Rhythm Chart Generator - Song Structure Parser

Turns the structure payload produced by the external structuring service
(or a saved song record) into a ``SongStructure``.

The service is an LLM, so its output is treated as untrusted: keys may
be camelCase or snake_case, descriptors may be missing, enum values may
be invented, and sections may be unordered or empty.  Parsing is
tolerant by default — bad fields fall back to defaults with a warning,
and an unusable payload falls back to a single-section structure.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, TypeVar

from loguru import logger

from src.config import (
    DEFAULT_BPM,
    DEFAULT_SECTION_INTENSITY,
    DEFAULT_SECTION_STYLE,
)
from src.services.chart_models import (
    Flow,
    Focus,
    HandBias,
    MotionDescriptors,
    SectionInfo,
    SectionStyle,
    SectionType,
    SongStructure,
    SpecialPattern,
)
from src.utils import clamp, parse_json_payload

# Used when neither the payload nor the caller knows the song length
FALLBACK_DURATION = 600.0

E = TypeVar("E", bound=Enum)


class StructureParseError(ValueError):
    """Raised in strict mode when a structure payload is unusable."""


def default_structure(
    duration: float | None = None, bpm: float = DEFAULT_BPM
) -> SongStructure:
    """A single verse section spanning the whole song."""
    end = duration if duration and duration > 0 else FALLBACK_DURATION
    return SongStructure(
        bpm=bpm if bpm > 0 else DEFAULT_BPM,
        sections=(
            SectionInfo(
                start_time=0.0,
                end_time=end,
                type=SectionType.VERSE,
                intensity=DEFAULT_SECTION_INTENSITY,
                style=SectionStyle(DEFAULT_SECTION_STYLE),
                descriptors=MotionDescriptors(),
            ),
        ),
    )


def _coerce_enum(enum_cls: type[E], value: Any, default: E, field_name: str) -> E:
    if value is None:
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning(
            "⚠️ Unknown {} '{}' in structure, using '{}'",
            field_name,
            value,
            default.value,
        )
        return default


def _as_float(value: Any) -> float | None:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def _pick(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _parse_descriptors(raw: Any) -> MotionDescriptors:
    data = raw if isinstance(raw, dict) else {}
    return MotionDescriptors(
        flow=_coerce_enum(Flow, data.get("flow"), Flow.RANDOM, "flow"),
        hand_bias=_coerce_enum(
            HandBias,
            _pick(data, "hand_bias", "handBias"),
            HandBias.BALANCED,
            "hand_bias",
        ),
        focus=_coerce_enum(Focus, data.get("focus"), Focus.MELODY, "focus"),
        special_pattern=_coerce_enum(
            SpecialPattern,
            _pick(data, "special_pattern", "specialPattern"),
            SpecialPattern.NONE,
            "special_pattern",
        ),
    )


def _parse_section(raw: Any) -> SectionInfo | None:
    if not isinstance(raw, dict):
        return None

    start = _as_float(_pick(raw, "startTime", "start_time", "start"))
    end = _as_float(_pick(raw, "endTime", "end_time", "end"))
    if start is None or end is None or end <= start:
        logger.warning("⚠️ Dropping section with invalid bounds: {}", raw)
        return None

    intensity = _as_float(raw.get("intensity"))
    if intensity is None:
        intensity = DEFAULT_SECTION_INTENSITY

    return SectionInfo(
        start_time=start,
        end_time=end,
        type=_coerce_enum(SectionType, raw.get("type"), SectionType.VERSE, "type"),
        intensity=clamp(intensity, 0.0, 1.0),
        style=_coerce_enum(
            SectionStyle,
            raw.get("style"),
            SectionStyle(DEFAULT_SECTION_STYLE),
            "style",
        ),
        descriptors=_parse_descriptors(raw.get("descriptors")),
    )


def parse_song_structure(
    payload: Any,
    duration: float | None = None,
    strict: bool = False,
) -> SongStructure:
    """
    Build a ``SongStructure`` from a dict or JSON string.

    Parameters
    ----------
    payload : dict or str
        ``{"bpm": float, "sections": [...]}`` in the service's wire shape.
    duration : float, optional
        Song length in seconds, used for the fallback structure.
    strict : bool
        Raise ``StructureParseError`` instead of falling back when the
        payload has no usable bpm or sections.
    """
    data = parse_json_payload(payload)

    bpm = _as_float(data.get("bpm"))
    raw_sections = data.get("sections")
    sections = []
    if isinstance(raw_sections, list):
        sections = [s for s in (_parse_section(r) for r in raw_sections) if s]

    problem = None
    if bpm is None or bpm <= 0:
        problem = f"invalid bpm {data.get('bpm')!r}"
    elif not sections:
        problem = "no usable sections"

    if problem:
        if strict:
            raise StructureParseError(f"Unusable song structure: {problem}")
        logger.warning("⚠️ Unusable song structure ({}), using default", problem)
        return default_structure(
            duration, bpm=bpm if bpm and bpm > 0 else DEFAULT_BPM
        )

    sections.sort(key=lambda s: s.start_time)
    return SongStructure(bpm=bpm, sections=tuple(sections))
