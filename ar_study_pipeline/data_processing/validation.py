from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.schemas import (
    GESTURE_INTENT_VALUES,
    GESTURE_TARGET_VALUES,
    UTTERANCE_PURPOSE_VALUES,
    VIDEO_NAMES,
    FieldKind,
    FieldSpec,
    Row,
    TableKind,
)

log = logging.getLogger(__name__)

TIMESTAMP_RE = re.compile(r"[0-9]?[0-9]:[0-5][0-9]")
_INTEGER_RE = re.compile(r"\s*[+-]?\d+\s*")

DEICTIC_PRONOUNS_COLUMN = 5
# The coding sheet validator historically read column 5 for spatial deictic too.
DEFAULT_SPATIAL_DEICTIC_COLUMN = 5


@dataclass(frozen=True)
class ValidationSettings:
    num_teams: int = 10
    num_trials: int = 12
    spatial_deictic_column: int = DEFAULT_SPATIAL_DEICTIC_COLUMN

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "ValidationSettings":
        study = cfg.get("study", {}) or {}
        val = cfg.get("validation", {}) or {}
        return cls(
            num_teams=int(study.get("num_teams", 10)),
            num_trials=int(study.get("num_trials", 12)),
            spatial_deictic_column=int(val.get("spatial_deictic_column", DEFAULT_SPATIAL_DEICTIC_COLUMN)),
        )


# -------------------------
# Field contracts
# -------------------------
def _common_specs(settings: ValidationSettings) -> List[FieldSpec]:
    return [
        FieldSpec("Team number", FieldKind.INTEGER, 0, min_value=1, max_value=settings.num_teams),
        FieldSpec("Video name", FieldKind.ENUM, 1, allowed_values=VIDEO_NAMES, case_sensitive=True),
    ]


def field_specs(kind: TableKind, settings: Optional[ValidationSettings] = None) -> List[FieldSpec]:
    settings = settings or ValidationSettings()
    specs = _common_specs(settings)

    if kind is TableKind.GESTURES:
        return specs + [
            FieldSpec("Time stamp", FieldKind.TIMESTAMP, 2),
            FieldSpec("Gesture description", FieldKind.TEXT, 3),
            FieldSpec("Gesturer", FieldKind.INTEGER, 4, min_value=1, max_value=2),
            FieldSpec("Target", FieldKind.ENUM, 5, allowed_values=GESTURE_TARGET_VALUES),
            FieldSpec("Intent", FieldKind.ENUM, 6, allowed_values=GESTURE_INTENT_VALUES),
        ]
    if kind is TableKind.LOOKS:
        return specs + [
            FieldSpec("Time stamp", FieldKind.TIMESTAMP, 2),
            FieldSpec("Initiator", FieldKind.INTEGER, 3, min_value=1, max_value=2),
        ]
    if kind is TableKind.UTTERANCES:
        return specs + [
            FieldSpec("Time stamp", FieldKind.TIMESTAMP, 2),
            FieldSpec("Purpose", FieldKind.ENUM, 3, allowed_values=UTTERANCE_PURPOSE_VALUES),
            FieldSpec("Speaker", FieldKind.INTEGER, 4, min_value=1, max_value=2),
            FieldSpec("Deictic Pronouns", FieldKind.INTEGER, DEICTIC_PRONOUNS_COLUMN),
            FieldSpec("Spatial Deictic", FieldKind.INTEGER, settings.spatial_deictic_column),
        ]
    if kind is TableKind.UTTERANCES_COUNT:
        return specs + [
            FieldSpec("Trial number", FieldKind.INTEGER, 2, min_value=1, max_value=settings.num_trials),
            FieldSpec("P1 speaking to self", FieldKind.INTEGER, 3),
            FieldSpec("P2 speaking to self", FieldKind.INTEGER, 4),
            FieldSpec("P1 speaking to P2", FieldKind.INTEGER, 5),
            FieldSpec("P2 speaking to P1", FieldKind.INTEGER, 6),
            FieldSpec("Either speaking to instructor", FieldKind.INTEGER, 7),
        ]
    raise ValueError(f"Unhandled table kind: {kind!r}")


# -------------------------
# Cell checks (each returns issue messages, empty when valid)
# -------------------------
def _range_text(min_value: Optional[int], max_value: Optional[int]) -> str:
    if min_value is not None and max_value is not None:
        return f"an integer value in the range {min_value} - {max_value}"
    if min_value is not None:
        return f"an integer value of at least {min_value}"
    if max_value is not None:
        return f"an integer value of at most {max_value}"
    return "an integer value"


def check_line_length(row: Sequence[str], expected: int) -> Optional[str]:
    if len(row) != expected:
        return f"Line does not have the expected number of values. Read {len(row)} values, expected {expected} values."
    return None


def check_integer(
    value: str,
    name: str,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> List[str]:
    expected = _range_text(min_value, max_value)
    if not _INTEGER_RE.fullmatch(value or ""):
        return [f'{name} is not valid. Read: "{value}", expected {expected}.']

    n = int(value)
    if (min_value is not None and n < min_value) or (max_value is not None and n > max_value):
        return [f'{name} is outside the expected range. Read: "{n}", expected {expected}.']
    return []


def check_enum(value: str, name: str, allowed: Sequence[str], case_sensitive: bool = False) -> List[str]:
    allowed_text = ", ".join(allowed)
    if not value:
        return [f"{name} is empty. Expected one of the following values: {allowed_text}."]

    candidate = value if case_sensitive else value.lower()
    if candidate not in allowed:
        return [f'{name} is invalid. Read: "{value}", expected one of the following values: {allowed_text}.']
    return []


def check_timestamp(value: str, name: str = "Time stamp") -> List[str]:
    if not value:
        return [f'{name} is empty. Expected a value in the format: "mm:ss" or "m:ss".']
    if not TIMESTAMP_RE.fullmatch(value):
        return [f'{name} is an invalid format. Read: "{value}", expected a value in the format: "mm:ss" or "m:ss".']
    return []


def check_text(value: str, name: str) -> List[str]:
    if not value:
        return [f"{name} is empty. Expected a non-empty description."]
    return []


def check_field(value: str, spec: FieldSpec) -> List[str]:
    if spec.kind is FieldKind.INTEGER:
        return check_integer(value, spec.name, spec.min_value, spec.max_value)
    if spec.kind is FieldKind.ENUM:
        return check_enum(value, spec.name, spec.allowed_values, spec.case_sensitive)
    if spec.kind is FieldKind.TIMESTAMP:
        return check_timestamp(value, spec.name)
    if spec.kind is FieldKind.TEXT:
        return check_text(value, spec.name)
    raise ValueError(f"Unhandled field kind: {spec.kind!r}")


def validate_row(row: Row, kind: TableKind, specs: Sequence[FieldSpec]) -> List[str]:
    """Line-length first; a wrong-length row gets exactly that one message."""
    length_issue = check_line_length(row, kind.column_count)
    if length_issue is not None:
        return [length_issue]

    messages: List[str] = []
    for spec in specs:
        messages.extend(check_field(row[spec.column], spec))
    return messages


def validate_table(
    rows: Sequence[Row],
    kind: TableKind,
    issues: IssueLog,
    settings: Optional[ValidationSettings] = None,
) -> bool:
    """
    Validates every data row (row 0 is the header) of a table.

    Issues go to the group named after the table. Returns True iff this table
    produced no issues.
    """
    settings = settings or ValidationSettings()
    specs = field_specs(kind, settings)
    name = kind.display_name

    if kind is TableKind.UTTERANCES and settings.spatial_deictic_column == DEICTIC_PRONOUNS_COLUMN:
        log.warning(
            "Utterances: 'Spatial Deictic' is validated from column %d, the same column as 'Deictic Pronouns'. "
            "Set validation.spatial_deictic_column to check its own column.",
            DEICTIC_PRONOUNS_COLUMN,
        )

    group = issues.group(name)
    before = len(group)
    for line_number in range(1, len(rows)):
        for message in validate_row(rows[line_number], kind, specs):
            issues.report(name, name, message, line=line_number)

    n_found = len(group) - before
    log.info("%s: validated %d rows, %d issues", name, max(len(rows) - 1, 0), n_found)
    return n_found == 0
