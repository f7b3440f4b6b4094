from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.schemas import Row


def _numeric_column(rows: Sequence[Row], col: int) -> np.ndarray:
    """Column `col` as floats; NaN where the cell is missing, unparsable or not finite."""
    raw = pd.Series([row[col] if col < len(row) else None for row in rows], dtype=object)
    values = pd.to_numeric(raw, errors="coerce").to_numpy(dtype=float)
    values[~np.isfinite(values)] = np.nan
    return values


def smooth_columns(
    rows: Sequence[Row],
    columns: Iterable[int],
    alpha: float,
    issues: IssueLog,
    source: str,
) -> List[Row]:
    """
    Exponential smoothing of the given (zero-based) columns, each treated as its own series.

        s[0] = x[0]
        s[t] = alpha * x[t] + (1 - alpha) * s[t-1]

    s[t-1] is the already smoothed previous row. Other columns pass through.
    Parse failures (including nan/inf) are reported under `source` and never abort the pass:
      - unparsable x[t]: the previous smoothed value is carried forward
        (first row: the raw text is kept)
      - unparsable s[t-1]: the series restarts at x[t]
    Line numbers in issues are 1-based positions within `rows`.
    """
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"Smoothing weight must be in (0, 1], got {alpha}")

    cols = sorted(set(int(c) for c in columns))
    parsed = {c: _numeric_column(rows, c) for c in cols}
    previous: Dict[int, Optional[float]] = {c: None for c in cols}
    result: List[Row] = []

    for i, row in enumerate(rows):
        out = list(row)
        line = i + 1
        for c in cols:
            if c >= len(row):
                issues.report(source, source, f"Line is too short to smooth column {c}.", line=line)
                previous[c] = None
                continue

            value: Optional[float] = None if np.isnan(parsed[c][i]) else float(parsed[c][i])
            if value is None:
                issues.report(
                    source,
                    source,
                    f'Error trying to parse column {c}. Read: "{row[c]}", expected a valid number.',
                    line=line,
                )

            if i == 0:
                if value is not None:
                    out[c] = repr(value)
                previous[c] = value
                continue

            prev = previous[c]
            if prev is None:
                prev_row = result[i - 1]
                issues.report(
                    source,
                    source,
                    f'Error trying to parse previous smoothed value in column {c}. '
                    f'Read: "{prev_row[c] if c < len(prev_row) else ""}", expected a valid number.',
                    line=line,
                )
                if value is not None:
                    out[c] = repr(value)
                previous[c] = value
                continue

            if value is None:
                out[c] = repr(prev)
                continue

            smoothed = alpha * value + (1.0 - alpha) * prev
            out[c] = repr(smoothed)
            previous[c] = smoothed

        result.append(out)

    return result
