from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

from ar_study_pipeline.data_processing.events import transform_events, write_event_table
from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.reader import read_table_or_report
from ar_study_pipeline.data_processing.schemas import Row, TableKind, TrialRecord
from ar_study_pipeline.data_processing.trials import TRIAL_DATA_GROUP, load_trials
from ar_study_pipeline.data_processing.validation import ValidationSettings, validate_table
from ar_study_pipeline.utils.timer import timed

log = logging.getLogger(__name__)

EVENT_TABLE_FILE_NAME = "FullEventTable.csv"

# config key under stages.events for each input table
TABLE_CONFIG_KEYS: Dict[TableKind, str] = {
    TableKind.GESTURES: "gestures",
    TableKind.LOOKS: "looks",
    TableKind.UTTERANCES: "utterances",
    TableKind.UTTERANCES_COUNT: "utterances_count",
}


def preprocess_events(cfg: Dict) -> Dict[str, object]:
    """
    Validates the coded event tables and merges them into the full event table.

    Writes <output_dir>/FullEventTable.csv and <output_dir>/ValidationLog.txt.
    """
    stage = cfg["stages"]["events"]
    out_dir = Path(stage["output_dir"])
    settings = ValidationSettings.from_config(cfg)

    issues = IssueLog()
    timings: Dict[str, float] = {}
    tables: Dict[TableKind, List[Row]] = {}
    valid: Dict[str, bool] = {}

    with timed("validate", timings):
        for kind, key in TABLE_CONFIG_KEYS.items():
            rows = read_table_or_report(stage.get(key), kind.display_name, issues)
            if rows is None:
                valid[kind.display_name] = False
                continue
            tables[kind] = rows
            valid[kind.display_name] = validate_table(rows, kind, issues, settings)

    with timed("transform", timings):
        trial_rows = read_table_or_report(cfg.get("inputs", {}).get("trial_data"), TRIAL_DATA_GROUP, issues)
        trials: List[TrialRecord] = load_trials(trial_rows, issues) if trial_rows is not None else []
        if trial_rows is None:
            log.warning("No trial data, every event will be left without trial fields")

        events = transform_events(tables, trials, issues)

    with timed("persist", timings):
        out_dir.mkdir(parents=True, exist_ok=True)
        events_path = out_dir / EVENT_TABLE_FILE_NAME
        write_event_table(events_path, events)
        log_path = issues.write(out_dir)

    log.info(
        "Event preprocessing complete: %s (%d events, %d issues)",
        events_path.as_posix(),
        len(events),
        issues.total,
    )
    return {
        "events_path": str(events_path),
        "log_path": str(log_path),
        "n_events": len(events),
        "n_issues": issues.total,
        "valid": valid,
        "timings": timings,
    }
