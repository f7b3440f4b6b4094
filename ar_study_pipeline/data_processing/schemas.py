from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import timedelta
from enum import Enum
from typing import List, Optional, Sequence, Tuple

Row = List[str]


@dataclass(frozen=True)
class Issue:
    """A non-fatal data-quality finding tied to a source table and line."""

    source: str
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.source} - {self.message}"
        return f"{self.source} line {self.line} - {self.message}"


class TableKind(Enum):
    GESTURES = "Gestures"
    LOOKS = "Looks"
    UTTERANCES = "Utterances"
    UTTERANCES_COUNT = "Utterances Count"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def column_count(self) -> int:
        if self is TableKind.GESTURES:
            return 7
        if self is TableKind.LOOKS:
            return 4
        if self is TableKind.UTTERANCES:
            return 7
        if self is TableKind.UTTERANCES_COUNT:
            return 8
        raise ValueError(f"Unhandled table kind: {self!r}")


class FieldKind(Enum):
    INTEGER = "integer"
    ENUM = "enum"
    TEXT = "text"
    TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class FieldSpec:
    """Contract for a single cell; `column` is the zero-based source column read."""

    name: str
    kind: FieldKind
    column: int
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    allowed_values: Tuple[str, ...] = ()
    case_sensitive: bool = False


# Vocabularies of the coding scheme
VIDEO_NAMES: Tuple[str, ...] = ("Desktop", "Desktop1", "Desktop2", "Hololens")
GESTURE_TARGET_VALUES: Tuple[str, ...] = ("s", "o", "c", "b")
GESTURE_INTENT_VALUES: Tuple[str, ...] = ("r", "d", "v", "c")
UTTERANCE_PURPOSE_VALUES: Tuple[str, ...] = ("r", "p", "a", "v")


# -------------------------
# Named rows (built after the line-length check)
# -------------------------
@dataclass(frozen=True)
class GestureRow:
    team: str
    video: str
    timestamp: str
    description: str
    gesturer: str
    target: str
    intent: str

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "GestureRow":
        return cls(*row[:7])


@dataclass(frozen=True)
class LookRow:
    team: str
    video: str
    timestamp: str
    initiator: str

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "LookRow":
        return cls(*row[:4])


@dataclass(frozen=True)
class UtteranceRow:
    team: str
    video: str
    timestamp: str
    purpose: str
    speaker: str
    deictic_pronouns: str
    spatial_deictic: str

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "UtteranceRow":
        return cls(*row[:7])


@dataclass(frozen=True)
class UtteranceCountRow:
    team: str
    video: str
    trial_number: str
    p1_to_self: str
    p2_to_self: str
    p1_to_p2: str
    p2_to_p1: str
    to_instructor: str

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "UtteranceCountRow":
        return cls(*row[:8])


TRIAL_TABLE_COLUMN_COUNT = 9


@dataclass(frozen=True)
class TrialRecord:
    team: str
    trial: str
    modality: str
    chart_type: str
    task_type: str
    task_number: str
    video: str
    start: timedelta
    end: timedelta

    def contains(self, t: timedelta) -> bool:
        return self.start <= t <= self.end


# -------------------------
# Outputs
# -------------------------
@dataclass(frozen=True)
class EventRecord:
    team: str
    trial: str
    modality: str
    chart_type: str
    task_type: str
    task_number: str
    trial_time: str
    event_type: str
    participant: str
    action: str = ""
    action_target: str = ""
    action_intent: str = ""
    utterance_purpose: str = ""
    deictic_pronouns: str = ""
    spatial_deictic: str = ""

    def as_row(self) -> Row:
        return [getattr(self, f.name) for f in fields(self)]


EVENT_TABLE_HEADER: Row = [
    "Team",
    "Trial",
    "Modality",
    "Chart Type",
    "Task Type",
    "Task Number",
    "Trial Time",
    "Event Type",
    "Participant",
    "Action",
    "Action Target",
    "Action Intent",
    "Utterance Purpose",
    "Deictic Pronouns",
    "Spatial Deictic",
]


@dataclass(frozen=True)
class AngleSample:
    """One time step of the participant/chart triangle. Angles are degrees."""

    time: str
    p1_x: str
    p1_y: str
    p2_x: str
    p2_y: str
    p1_angle: Optional[float] = None
    p2_angle: Optional[float] = None
    distance: Optional[float] = None

    def as_row(self) -> Row:
        """Raw coordinate text as read; angles as repr(float), empty when missing."""
        computed = [self.p1_angle, self.p2_angle, self.distance]
        return [self.time, self.p1_x, self.p1_y, self.p2_x, self.p2_y] + [
            "" if v is None else repr(float(v)) for v in computed
        ]


ANGLE_TABLE_HEADER: Row = ["time", "p1_x", "p1_y", "p2_x", "p2_y", "p1_angle", "p2_angle", "distance"]
