from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.schemas import Row, TrialRecord
from ar_study_pipeline.data_processing.trials import try_parse_timestamp

log = logging.getLogger(__name__)

ClipWindow = Tuple[TrialRecord, pd.Timestamp, pd.Timestamp]


def parse_wallclock(values: Sequence[str]) -> pd.Series:
    """Wall-clock datetimes, NaT where a value cannot be parsed."""
    s = pd.Series(list(values), dtype=object).astype(str).str.strip()
    return pd.to_datetime(s, errors="coerce", format="mixed")


def trial_clip_times(
    trials: Sequence[TrialRecord],
    video_times_rows: Sequence[Row],
    team: str,
    modality: str,
    issues: IssueLog,
    group: str,
) -> List[ClipWindow]:
    """
    Converts the session's trial video time stamps to wall-clock clip windows.

    video_times_rows: header + rows of (team, modality, video end datetime, video duration).
    The video started at end - duration; each trial window is that start plus the
    trial's start/end video time stamps. Trials keep their table order.
    """
    match: Optional[Row] = None
    for row in video_times_rows[1:]:
        if len(row) >= 4 and row[0] == team and row[1] == modality:
            match = row
            break

    if match is None:
        issues.report(group, group, f"No video times found for Team {team} {modality}.")
        return []

    video_end = parse_wallclock([match[2]]).iloc[0]
    duration = try_parse_timestamp(match[3])
    if pd.isna(video_end) or duration is None:
        issues.report(
            group,
            group,
            f'Video times for Team {team} {modality} could not be parsed. Read: "{match[2]}", "{match[3]}", '
            'expected a valid datetime and a duration in the format "hh:mm:ss".',
        )
        return []

    video_start = video_end - pd.Timedelta(duration)
    windows: List[ClipWindow] = []
    for trial in trials:
        if trial.team == team and trial.modality == modality:
            windows.append((trial, video_start + pd.Timedelta(trial.start), video_start + pd.Timedelta(trial.end)))
    return windows


def clip_session(
    rows: Sequence[Row],
    starts: Sequence,
    ends: Sequence,
    issues: IssueLog,
    source: str,
) -> List[List[Row]]:
    """
    Slices a continuous session log into one segment per (start, end) pair.

    rows: session rows (no header), time stamp in column 0, chronological.
    Each segment holds the rows whose time stamp lies in [start, end], in order.
    Segments come back in the order of `starts`.

    A single forward-only cursor walks the log. Windows are visited in start-time
    order; a window starting before the previous one ended is reported as
    overlapping (rows already consumed are not revisited). A row whose time stamp
    cannot be parsed is reported and judged by the last parsed time stamp.
    Running out of rows stops clipping: segments gathered so far are returned and
    the remaining ones stay empty.
    Line numbers in issues are 1-based positions within `rows`.
    """
    if len(starts) != len(ends):
        raise ValueError(f"Got {len(starts)} clip start times but {len(ends)} end times")

    issues.group(source)
    segments: List[List[Row]] = [[] for _ in starts]
    start_ts = parse_wallclock([str(s) for s in starts])
    end_ts = parse_wallclock([str(e) for e in ends])

    valid: List[int] = []
    for k in range(len(starts)):
        if pd.isna(start_ts.iloc[k]) or pd.isna(end_ts.iloc[k]):
            issues.report(
                source,
                source,
                f'Could not parse clipping times for trial {k + 1}. Read: "{starts[k]}" - "{ends[k]}", '
                "expected valid datetimes.",
            )
        elif start_ts.iloc[k] > end_ts.iloc[k]:
            issues.report(source, source, f"Clipping start time is after the end time for trial {k + 1}.")
        else:
            valid.append(k)

    order = sorted(valid, key=lambda k: start_ts.iloc[k])
    if order != valid:
        log.warning("%s: clip windows are not in session order, clipping them in start-time order", source)

    n = len(rows)
    row_ts = parse_wallclock([r[0] if r else "" for r in rows])

    current: Optional[pd.Timestamp] = None

    def read(i: int) -> Optional[pd.Timestamp]:
        ts = row_ts.iloc[i]
        if pd.isna(ts):
            raw = rows[i][0] if rows[i] else ""
            issues.report(source, source, f'Could not parse time stamp. Read: "{raw}", expected a valid datetime.', line=i + 1)
            return current
        return ts

    idx = 0
    if n:
        current = read(0)

    prev_end: Optional[pd.Timestamp] = None
    for k in order:
        start, end = start_ts.iloc[k], end_ts.iloc[k]
        trial_no = k + 1

        if prev_end is not None and start < prev_end:
            issues.report(source, source, f"Trial {trial_no} overlaps the previous trial; its overlapping rows were already consumed.")

        if idx >= n:
            issues.report(source, source, f"The session data is exhausted before trial {trial_no} starts.")
            return segments

        while current is None or current < start:
            idx += 1
            if idx >= n:
                issues.report(
                    source,
                    source,
                    f"The end of the session data has been reached, but no time has been found past the "
                    f"start time for trial {trial_no}. Start time read: {start}",
                )
                return segments
            current = read(idx)

        log.debug("%s: trial %d starts at data row %d", source, trial_no, idx + 1)

        while current <= end:
            segments[k].append(rows[idx])
            idx += 1
            if idx >= n:
                issues.report(
                    source,
                    source,
                    f"The end of the session data (row {idx}) has been reached, but no time has been found past "
                    f"the end time for trial {trial_no}. End time read: {end}",
                )
                return segments
            current = read(idx)

        log.debug("%s: trial %d finished at data row %d (%d rows)", source, trial_no, idx, len(segments[k]))
        prev_end = end

    return segments
