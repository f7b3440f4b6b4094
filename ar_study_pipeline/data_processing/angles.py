from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.reader import write_csv_table
from ar_study_pipeline.data_processing.schemas import ANGLE_TABLE_HEADER, AngleSample, Row

log = logging.getLogger(__name__)

# The chart sits at the origin of the shared coordinate frame.
CHART_POSITION: Tuple[float, float] = (0.0, 0.0)


def _cell(row: Row, col: int) -> str:
    return row[col] if col < len(row) else ""


def _parse_coords(
    rows: Sequence[Row],
    n: int,
    x_col: int,
    y_col: int,
    participant: int,
    issues: IssueLog,
    source: str,
) -> np.ndarray:
    """(n, 2) float array, NaN rows where a coordinate could not be parsed."""
    out = np.full((n, 2), np.nan)
    for i in range(n):
        for j, (axis, col) in enumerate((("x", x_col), ("y", y_col))):
            raw = _cell(rows[i], col)
            try:
                value = float(raw)
                if not np.isfinite(value):
                    raise ValueError(raw)
                out[i, j] = value
            except ValueError:
                issues.report(
                    source,
                    source,
                    f'Error parsing {axis} value for participant {participant} in column {col}. Read: "{raw}".',
                    line=i + 1,
                )
                out[i, :] = np.nan
                break
    return out


def triangle_angles(p1: np.ndarray, p2: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Angles (degrees) at each participant vertex of the participant/participant/chart triangle.

    p1, p2: (n, 2) arrays of positions. Returns (p1_angle, p2_angle, p1_p2_distance);
    angles are NaN where the triangle is degenerate or a position is missing.
    """
    chart = np.asarray(CHART_POSITION)
    a = np.hypot(*(p1 - chart).T)  # p1 - chart
    b = np.hypot(*(p2 - chart).T)  # p2 - chart
    c = np.hypot(*(p1 - p2).T)  # p1 - p2

    with np.errstate(divide="ignore", invalid="ignore"):
        cos_p1 = (c**2 + a**2 - b**2) / (2 * c * a)
        cos_p2 = (c**2 + b**2 - a**2) / (2 * c * b)

    # Clip only floating point drift; NaN (degenerate) stays NaN.
    p1_angle = np.degrees(np.arccos(np.clip(cos_p1, -1.0, 1.0)))
    p2_angle = np.degrees(np.arccos(np.clip(cos_p2, -1.0, 1.0)))
    return p1_angle, p2_angle, c


def _opt(v: float) -> Optional[float]:
    return float(v) if np.isfinite(v) else None


def calculate_angles(
    p1_rows: Sequence[Row],
    p2_rows: Sequence[Row],
    x_col: int,
    y_col: int,
    issues: IssueLog,
    source: str,
) -> List[AngleSample]:
    """
    Per time step, the angle each participant subtends between the other participant and the chart.

    Output is truncated to the shorter log. The time stamp is column 0 of participant 1.
    A row with an unparsable coordinate still yields a sample (raw text, no angles)
    so both logs stay aligned with the output.
    """
    n = min(len(p1_rows), len(p2_rows))
    if len(p1_rows) != len(p2_rows):
        log.debug("%s: participant logs differ in length (%d vs %d), using %d rows",
                  source, len(p1_rows), len(p2_rows), n)

    issues.group(source)
    p1 = _parse_coords(p1_rows, n, x_col, y_col, 1, issues, source)
    p2 = _parse_coords(p2_rows, n, x_col, y_col, 2, issues, source)
    p1_angle, p2_angle, distance = triangle_angles(p1, p2)

    samples: List[AngleSample] = []
    for i in range(n):
        parsed = bool(np.isfinite(p1[i]).all() and np.isfinite(p2[i]).all())
        if parsed and not (np.isfinite(p1_angle[i]) and np.isfinite(p2_angle[i])):
            issues.report(
                source,
                source,
                "Degenerate triangle (a participant is at the chart or both participants share a position), "
                "angles left empty.",
                line=i + 1,
            )

        samples.append(
            AngleSample(
                time=_cell(p1_rows[i], 0),
                p1_x=_cell(p1_rows[i], x_col),
                p1_y=_cell(p1_rows[i], y_col),
                p2_x=_cell(p2_rows[i], x_col),
                p2_y=_cell(p2_rows[i], y_col),
                p1_angle=_opt(p1_angle[i]) if parsed else None,
                p2_angle=_opt(p2_angle[i]) if parsed else None,
                distance=_opt(distance[i]) if parsed else None,
            )
        )

    return samples


def sample_at_rate(samples: Sequence[AngleSample], dataset_rate: float, sample_rate: float) -> List[AngleSample]:
    """
    Down-samples a series recorded at `dataset_rate` Hz to roughly `sample_rate` Hz.

    Keeps every round(dataset_rate / sample_rate)-th sample starting at the first.
    """
    if dataset_rate <= 0 or sample_rate <= 0:
        raise ValueError(f"Rates must be positive (dataset_rate={dataset_rate}, sample_rate={sample_rate})")
    step = max(1, int(round(dataset_rate / sample_rate)))
    return list(samples[::step])


def write_angle_table(path: Union[str, Path], samples: Sequence[AngleSample]) -> Path:
    """Header + one comma-joined line per sample; missing angles are empty cells."""
    return write_csv_table(path, (s.as_row() for s in samples), header=ANGLE_TABLE_HEADER)
