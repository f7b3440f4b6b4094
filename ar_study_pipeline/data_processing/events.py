from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Sequence, Tuple, Union

from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.reader import write_csv_table
from ar_study_pipeline.data_processing.schemas import (
    EVENT_TABLE_HEADER,
    EventRecord,
    GestureRow,
    LookRow,
    Row,
    TableKind,
    TrialRecord,
    UtteranceRow,
)
from ar_study_pipeline.data_processing.trials import format_timestamp, locate_trial, try_parse_timestamp

log = logging.getLogger(__name__)

TRANSFORM_GROUP = "Transform"

# Output order of the unified timeline
EVENT_TABLES: Tuple[TableKind, ...] = (TableKind.GESTURES, TableKind.LOOKS, TableKind.UTTERANCES)


def modality_of(video: str) -> str:
    """Desktop, Desktop1 and Desktop2 all collapse into one modality."""
    return "Hololens" if "Hololens" in video else "Desktop"


def _trial_fields(
    kind: TableKind,
    line_number: int,
    team: str,
    video: str,
    timestamp: str,
    trials: Sequence[TrialRecord],
    issues: IssueLog,
) -> Dict[str, str]:
    empty = {"trial": "", "chart_type": "", "task_type": "", "task_number": "", "trial_time": ""}
    name = kind.display_name

    event_time = try_parse_timestamp(timestamp)
    if event_time is None:
        issues.report(
            TRANSFORM_GROUP,
            name,
            f'Event\'s time stamp could not be parsed. Read: "{timestamp}", expected a value in the format: "mm:ss".',
            line=line_number,
        )
        return empty

    index = locate_trial(trials, team, video, event_time)
    if index is None:
        issues.report(
            TRANSFORM_GROUP,
            name,
            f'Event\'s time stamp is outside of all trial times. Read: "{timestamp}", '
            f"expected a time stamp falling within the trial times for Team {team} {video} video.",
            line=line_number,
        )
        return empty

    trial = trials[index]
    return {
        "trial": trial.trial,
        "chart_type": trial.chart_type,
        "task_type": trial.task_type,
        "task_number": trial.task_number,
        "trial_time": format_timestamp(event_time - trial.start),
    }


def _gesture_event(row: GestureRow, trial_fields: Dict[str, str]) -> EventRecord:
    return EventRecord(
        team=row.team,
        modality=modality_of(row.video),
        event_type="Gesture",
        participant=row.gesturer,
        action=row.description,
        action_target=row.target,
        action_intent=row.intent,
        **trial_fields,
    )


def _look_event(row: LookRow, trial_fields: Dict[str, str]) -> EventRecord:
    return EventRecord(
        team=row.team,
        modality=modality_of(row.video),
        event_type="Look",
        participant=row.initiator,
        **trial_fields,
    )


def _utterance_event(row: UtteranceRow, trial_fields: Dict[str, str]) -> EventRecord:
    return EventRecord(
        team=row.team,
        modality=modality_of(row.video),
        event_type="Utterance",
        participant=row.speaker,
        utterance_purpose=row.purpose,
        deictic_pronouns=row.deictic_pronouns,
        spatial_deictic=row.spatial_deictic,
        **trial_fields,
    )


def _builder(kind: TableKind) -> Tuple[Callable[[Row], object], Callable[..., EventRecord]]:
    if kind is TableKind.GESTURES:
        return GestureRow.from_row, _gesture_event
    if kind is TableKind.LOOKS:
        return LookRow.from_row, _look_event
    if kind is TableKind.UTTERANCES:
        return UtteranceRow.from_row, _utterance_event
    raise ValueError(f"{kind.display_name} rows are not events")


def transform_table(
    kind: TableKind,
    rows: Sequence[Row],
    trials: Sequence[TrialRecord],
    issues: IssueLog,
) -> List[EventRecord]:
    """One EventRecord per data row with the expected column count (row 0 is the header)."""
    parse_row, make_event = _builder(kind)
    out: List[EventRecord] = []

    for line_number in range(1, len(rows)):
        raw = rows[line_number]
        if len(raw) != kind.column_count:
            issues.report(
                TRANSFORM_GROUP,
                kind.display_name,
                f"Line does not have the expected number of values, no event produced. "
                f"Expected {kind.column_count} values.",
                line=line_number,
            )
            continue

        row = parse_row(raw)
        fields = _trial_fields(kind, line_number, row.team, row.video, row.timestamp, trials, issues)
        out.append(make_event(row, fields))

    return out


def transform_events(
    tables: Mapping[TableKind, Sequence[Row]],
    trials: Sequence[TrialRecord],
    issues: IssueLog,
) -> List[EventRecord]:
    """
    Merges the Gestures, Looks and Utterances tables into one event timeline.

    A table missing from `tables` contributes nothing. Events whose time stamp
    falls outside every trial are kept with empty trial fields.
    """
    issues.group(TRANSFORM_GROUP)
    events: List[EventRecord] = []
    for kind in EVENT_TABLES:
        rows = tables.get(kind)
        if rows is None:
            continue
        table_events = transform_table(kind, rows, trials, issues)
        log.info("%s: %d events", kind.display_name, len(table_events))
        events.extend(table_events)
    return events


def write_event_table(path: Union[str, Path], events: Sequence[EventRecord]) -> Path:
    """Header + one comma-joined line per event, cells written as-is."""
    return write_csv_table(path, (e.as_row() for e in events), header=EVENT_TABLE_HEADER)
