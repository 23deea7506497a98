"""
Rhythm Chart Generator - Chart Validation Service

Checks a generated (or edited) note list for problems that would break
the game loop: lanes outside the highway, notes going back in time,
broken hold durations, duplicate lanes inside one chord.

Key entry points:
- ``validate_notes()``           — collect every issue into a result
- ``assert_chart_invariants()``  — raise ``ChartInvariantError`` on any
  critical issue; the generator runs this on its own output, where a
  failure means a bug in the generator rather than bad input
"""

import math
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from src.services.chart_models import Note, NoteType

# ---------------------------------------------------------------------------
# Diagnostic classes
# ---------------------------------------------------------------------------


class ChartInvariantError(AssertionError):
    """A chart violates an invariant the generator guarantees."""


class Issue:
    """Represents a single validation issue found in a chart."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    def __init__(
        self, severity: str, code: str, message: str, index: Optional[int] = None
    ):
        self.severity = severity
        self.code = code
        self.message = message
        self.index = index

    def __str__(self) -> str:
        sev_icon = {"critical": "❌", "warning": "⚠️", "info": "ℹ️"}.get(
            self.severity, "?"
        )
        loc = f" (note {self.index})" if self.index is not None else ""
        return f"{sev_icon} [{self.code}]{loc} {self.message}"

    def __repr__(self) -> str:
        return (
            f"Issue({self.severity!r}, {self.code!r}, "
            f"{self.message!r}, index={self.index})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "index": self.index,
        }


class ValidationResult:
    """Aggregated validation results for a single chart."""

    def __init__(self, label: str = "<in-memory>", note_count: int = 0):
        self.label = label
        self.note_count = note_count
        self.issues: List[Issue] = []

    @property
    def has_critical(self) -> bool:
        return any(i.severity == Issue.CRITICAL for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == Issue.WARNING for i in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_critical

    def add(
        self, severity: str, code: str, message: str, index: Optional[int] = None
    ) -> None:
        self.issues.append(Issue(severity, code, message, index))

    @property
    def critical_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Issue.CRITICAL)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Issue.WARNING)

    def codes(self) -> List[str]:
        return [i.code for i in self.issues]

    def summary(self) -> str:
        status = "✅ VALID" if self.is_valid else "❌ INVALID"
        parts = [f"{status}: {self.label} ({self.note_count} notes)"]
        if self.critical_count:
            parts.append(f"  {self.critical_count} critical issue(s)")
        if self.warning_count:
            parts.append(f"  {self.warning_count} warning(s)")
        return "\n".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "valid": self.is_valid,
            "note_count": self.note_count,
            "issues": [i.to_dict() for i in self.issues],
            "counts": {
                "critical": self.critical_count,
                "warnings": self.warning_count,
            },
        }


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _check_note(result: ValidationResult, idx: int, note: Note, lane_count: int) -> None:
    if not math.isfinite(note.time):
        result.add(Issue.CRITICAL, "NON_FINITE_TIME", f"time is {note.time}", idx)
    elif note.time < 0:
        result.add(Issue.WARNING, "NEGATIVE_TIME", f"time {note.time:.3f}s < 0", idx)

    if not 0 <= note.lane < lane_count:
        result.add(
            Issue.CRITICAL,
            "LANE_OUT_OF_RANGE",
            f"lane {note.lane} outside [0, {lane_count})",
            idx,
        )

    if not math.isfinite(note.duration) or note.duration < 0:
        result.add(
            Issue.CRITICAL, "BAD_DURATION", f"duration {note.duration} is invalid", idx
        )

    if not isinstance(note.type, NoteType):
        result.add(Issue.CRITICAL, "UNKNOWN_NOTE_TYPE", f"type {note.type!r}", idx)
    elif note.type is NoteType.CATCH and note.duration > 0:
        result.add(Issue.WARNING, "CATCH_HOLD", "catch note has a hold duration", idx)


def validate_notes(
    notes: Sequence[Note], lane_count: int, label: str = "<in-memory>"
) -> ValidationResult:
    """Validate *notes* for a *lane_count*-lane highway."""
    result = ValidationResult(label, note_count=len(notes))

    if not notes:
        result.add(Issue.WARNING, "EMPTY_CHART", "chart contains no notes")
        return result

    chord_time: Optional[float] = None
    chord_lanes: set = set()
    # lane -> (index, end time) of the latest hold on that lane
    open_holds: Dict[int, tuple] = {}

    for idx, note in enumerate(notes):
        _check_note(result, idx, note, lane_count)

        if idx > 0 and note.time < notes[idx - 1].time:
            result.add(
                Issue.CRITICAL,
                "TIME_NOT_MONOTONIC",
                f"{note.time:.3f}s comes after {notes[idx - 1].time:.3f}s",
                idx,
            )

        if note.time != chord_time:
            chord_time = note.time
            chord_lanes = set()
        if note.lane in chord_lanes:
            result.add(
                Issue.CRITICAL,
                "DUPLICATE_CHORD_LANE",
                f"lane {note.lane} used twice at {note.time:.3f}s",
                idx,
            )
        chord_lanes.add(note.lane)

        held = open_holds.get(note.lane)
        if held is not None and note.time < held[1]:
            result.add(
                Issue.WARNING,
                "HOLD_OVERLAP",
                f"note on lane {note.lane} starts inside hold #{held[0]}",
                idx,
            )
        if note.duration > 0:
            open_holds[note.lane] = (idx, note.time + note.duration)

    return result


def assert_chart_invariants(notes: Sequence[Note], lane_count: int) -> None:
    """Raise ``ChartInvariantError`` if *notes* has any critical issue."""
    result = validate_notes(notes, lane_count, label="generated chart")
    if result.is_valid:
        return

    critical = [str(i) for i in result.issues if i.severity == Issue.CRITICAL]
    logger.error("❌ Chart invariant violated:\n{}", "\n".join(critical))
    raise ChartInvariantError(
        f"{len(critical)} chart invariant violation(s): {critical[0]}"
    )
