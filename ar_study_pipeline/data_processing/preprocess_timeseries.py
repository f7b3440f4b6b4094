from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from ar_study_pipeline.data_processing.angles import calculate_angles, sample_at_rate, write_angle_table
from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.reader import read_csv_table, write_csv_table
from ar_study_pipeline.data_processing.schemas import Row
from ar_study_pipeline.data_processing.smoothing import smooth_columns
from ar_study_pipeline.utils.config import study_settings
from ar_study_pipeline.utils.timer import timed

log = logging.getLogger(__name__)

INPUT_GROUP = "Input"
DEVICES = (0, 1)

DEFAULT_DEVICE_PATTERN = "Team{team}_Trial{trial}_Hololens_Device{device}.csv"
DEFAULT_SMOOTHED_PATTERN = "Team{team}_Trial{trial}_Hololens_Device{device}_Smoothed.csv"
DEFAULT_ANGLES_PATTERN = "Angles_Team{team}_Trial{trial}.csv"


def _sampling_rates(stage: Dict, issues: IssueLog) -> Optional[tuple]:
    """(dataset_rate, sample_rate), or None to skip sampling when either is unusable."""
    try:
        dataset_rate = float(stage["dataset_rate"])
        sample_rate = float(stage["sample_rate"])
    except (KeyError, TypeError, ValueError) as e:
        issues.report("Program Args", "Program Args", f"Sampling skipped, could not read sample/dataset rate: {e}")
        return None
    if dataset_rate <= 0 or sample_rate <= 0:
        issues.report(
            "Program Args",
            "Program Args",
            f"Sampling skipped, rates must be positive (dataset_rate={dataset_rate}, sample_rate={sample_rate}).",
        )
        return None
    return dataset_rate, sample_rate


def preprocess_timeseries(cfg: Dict) -> Dict[str, object]:
    """
    Smooths each device's clipped position log and derives the participant angles per trial.

    For team 1..N, trial 1..T and devices 0/1 reads <input_dir>/<device pattern>,
    writes the smoothed copy, then (when both devices are present) the sampled
    angle table. Issues go to <output_dir>/ValidationLog.txt.
    """
    stage = cfg["stages"]["timeseries"]
    study = study_settings(cfg)
    in_dir = Path(stage["input_dir"])
    out_dir = Path(stage["output_dir"])

    columns = [int(c) for c in stage.get("columns_to_smooth", [])]
    alpha = float(stage.get("smoothing_weight", 1.0))
    x_col = int(stage.get("x_column", 1))
    y_col = int(stage.get("y_column", 3))
    has_header = bool(stage.get("has_header", True))
    device_pattern = stage.get("device_file_pattern", DEFAULT_DEVICE_PATTERN)
    smoothed_pattern = stage.get("smoothed_file_pattern", DEFAULT_SMOOTHED_PATTERN)
    angles_pattern = stage.get("angles_file_pattern", DEFAULT_ANGLES_PATTERN)

    issues = IssueLog()
    issues.group("Program Args")
    issues.group(INPUT_GROUP)
    rates = _sampling_rates(stage, issues)

    timings: Dict[str, float] = {}
    angle_paths: List[str] = []
    n_smoothed = 0
    out_dir.mkdir(parents=True, exist_ok=True)

    for team in tqdm(range(1, study["num_teams"] + 1), desc="Time series teams"):
        for trial in range(1, study["num_trials"] + 1):
            participant: Dict[int, List[Row]] = {}

            for device in DEVICES:
                file_name = device_pattern.format(team=team, trial=trial, device=device)
                try:
                    rows = read_csv_table(in_dir / file_name)
                except FileNotFoundError as e:
                    issues.report(INPUT_GROUP, INPUT_GROUP, f"Error reading input file \"{file_name}\": {e}")
                    continue

                header: Optional[Row] = None
                if has_header and rows:
                    header, rows = rows[0], rows[1:]

                group = f"Input {file_name}"
                with timed("smoothing", timings):
                    smoothed = smooth_columns(rows, columns, alpha, issues, group)
                participant[device] = smoothed
                write_csv_table(
                    out_dir / smoothed_pattern.format(team=team, trial=trial, device=device),
                    smoothed,
                    header=header,
                )
                n_smoothed += 1

            angle_group = f"Participant Angles Team {team} Trial {trial}"
            if len(participant) < len(DEVICES):
                issues.report(angle_group, angle_group, "Participant data missing, angle calculations skipped.")
                continue

            with timed("angles", timings):
                samples = calculate_angles(participant[0], participant[1], x_col, y_col, issues, angle_group)
                if rates is not None:
                    samples = sample_at_rate(samples, *rates)

            angles_path = out_dir / angles_pattern.format(team=team, trial=trial)
            write_angle_table(angles_path, samples)
            angle_paths.append(str(angles_path))

    log_path = issues.write(out_dir)
    log.info(
        "Time series preprocessing complete: %d smoothed logs, %d angle tables, %d issues",
        n_smoothed,
        len(angle_paths),
        issues.total,
    )
    return {
        "output_dir": str(out_dir),
        "log_path": str(log_path),
        "angle_paths": angle_paths,
        "n_smoothed": n_smoothed,
        "n_issues": issues.total,
        "timings": timings,
    }
