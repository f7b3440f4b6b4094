from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.schemas import Row

log = logging.getLogger(__name__)


def read_csv_table(path: Union[str, Path]) -> List[Row]:
    """
    Reads a comma-delimited text file into rows of string cells.

    Lines are split naively on ',' (the coding sheets never quote values).
    Row 0 is whatever the file starts with; callers decide whether it is a header.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        raise FileNotFoundError(f"Error reading file at given path \"{path}\".") from e

    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()

    rows = [line.split(",") for line in lines]
    log.debug("Read %d rows from %s", len(rows), path.as_posix())
    return rows


def read_table_or_report(path: Optional[Union[str, Path]], group: str, issues: IssueLog) -> Optional[List[Row]]:
    """Reads a table; a missing file is recorded against its own group only."""
    issues.group(group)
    if not path:
        issues.report(group, group, "table error - no input path configured.")
        return None
    try:
        return read_csv_table(path)
    except FileNotFoundError as e:
        log.warning("%s: %s", group, e)
        issues.report(group, group, f"table error - {e}")
        return None


def write_csv_table(
    path: Union[str, Path],
    rows: Iterable[Sequence[str]],
    header: Optional[Sequence[str]] = None,
) -> Path:
    """Writes rows joined with ',' (no escaping), creating the parent folder."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="\n") as f:
        if header is not None:
            f.write(",".join(header) + "\n")
        for row in rows:
            f.write(",".join(str(c) for c in row) + "\n")
    return path
