from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import List, Optional, Sequence

from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.schemas import TRIAL_TABLE_COLUMN_COUNT, Row, TrialRecord

log = logging.getLogger(__name__)

TRIAL_DATA_GROUP = "Trial Data"

_TIMESTAMP_PARTS_RE = re.compile(r"\s*(?:(\d+):)?(\d+):(\d+)\s*")


def parse_timestamp(text: str) -> timedelta:
    """Parses video time stamps written as "m:ss", "mm:ss" or "h:mm:ss"."""
    m = _TIMESTAMP_PARTS_RE.fullmatch(text or "")
    if not m:
        raise ValueError(f'Could not parse time stamp "{text}", expected "mm:ss" or "hh:mm:ss".')
    hours = int(m.group(1) or 0)
    return timedelta(hours=hours, minutes=int(m.group(2)), seconds=int(m.group(3)))


def try_parse_timestamp(text: str) -> Optional[timedelta]:
    try:
        return parse_timestamp(text)
    except ValueError:
        return None


def format_timestamp(td: timedelta) -> str:
    """Renders a duration as zero-padded "mm:ss" (minutes are not wrapped at 60)."""
    total = int(td.total_seconds())
    sign = "-" if total < 0 else ""
    minutes, seconds = divmod(abs(total), 60)
    return f"{sign}{minutes:02d}:{seconds:02d}"


def load_trials(rows: Sequence[Row], issues: IssueLog) -> List[TrialRecord]:
    """
    Builds the trial lookup index from the trial metadata table (row 0 is the header).

    Columns: team, trial, modality, chart type, task type, task number, video,
    start, end. Rows that cannot be indexed are reported and left out.
    """
    trials: List[TrialRecord] = []
    issues.group(TRIAL_DATA_GROUP)

    for line_number in range(1, len(rows)):
        row = rows[line_number]
        if len(row) != TRIAL_TABLE_COLUMN_COUNT:
            issues.report(
                TRIAL_DATA_GROUP,
                TRIAL_DATA_GROUP,
                f"Line does not have the expected number of values. Read {len(row)} values, "
                f"expected {TRIAL_TABLE_COLUMN_COUNT} values.",
                line=line_number,
            )
            continue

        start = try_parse_timestamp(row[7])
        end = try_parse_timestamp(row[8])
        if start is None or end is None:
            issues.report(
                TRIAL_DATA_GROUP,
                TRIAL_DATA_GROUP,
                f'Trial start/end time stamps could not be parsed. Read: "{row[7]}" - "{row[8]}", '
                'expected values in the format: "mm:ss" or "hh:mm:ss".',
                line=line_number,
            )
            continue

        trials.append(
            TrialRecord(
                team=row[0],
                trial=row[1],
                modality=row[2],
                chart_type=row[3],
                task_type=row[4],
                task_number=row[5],
                video=row[6],
                start=start,
                end=end,
            )
        )

    log.info("Loaded %d trial records", len(trials))
    return trials


def locate_trial(
    trials: Sequence[TrialRecord],
    team: str,
    video: str,
    event_time: timedelta,
) -> Optional[int]:
    """
    Index of the first trial for this team/video whose [start, end] contains the event time.

    Trials are scanned in table order, so with overlapping intervals the earliest
    listed trial wins. Returns None when no trial matches.
    """
    for index, trial in enumerate(trials):
        if trial.team == team and trial.video == video and trial.contains(event_time):
            return index
    return None
