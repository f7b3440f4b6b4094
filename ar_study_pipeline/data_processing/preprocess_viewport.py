from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

from tqdm import tqdm

from ar_study_pipeline.data_processing.clipping import clip_session, trial_clip_times
from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.reader import read_csv_table, read_table_or_report, write_csv_table
from ar_study_pipeline.data_processing.trials import TRIAL_DATA_GROUP, load_trials
from ar_study_pipeline.utils.config import study_settings
from ar_study_pipeline.utils.timer import timed

log = logging.getLogger(__name__)

VIDEO_TIMES_GROUP = "Video Times Data"

DEFAULT_SESSION_PATTERN = "Team{team}_{modality}_datalog.csv"
DEFAULT_TRIAL_PATTERN = "Team{team}_Trial{trial}_{modality}_Device{device}.csv"


def preprocess_viewport(cfg: Dict) -> Dict[str, object]:
    """
    Clips each team's continuous viewport log into one file per trial.

    Trial windows come from the trial table (video time stamps) and the video
    times table (wall-clock end + duration of each session video).
    """
    stage = cfg["stages"]["viewport"]
    inputs = cfg.get("inputs", {}) or {}
    study = study_settings(cfg)
    in_dir = Path(stage["input_dir"])
    out_dir = Path(stage["output_dir"])
    modality = str(stage.get("modality", "Hololens"))
    device = str(stage.get("device_id", 0))
    has_header = bool(stage.get("has_header", True))
    session_pattern = stage.get("session_file_pattern", DEFAULT_SESSION_PATTERN)
    trial_pattern = stage.get("trial_file_pattern", DEFAULT_TRIAL_PATTERN)

    issues = IssueLog()
    timings: Dict[str, float] = {}
    written: List[str] = []

    trial_rows = read_table_or_report(inputs.get("trial_data"), TRIAL_DATA_GROUP, issues)
    video_times = read_table_or_report(inputs.get("video_times"), VIDEO_TIMES_GROUP, issues)
    if trial_rows is None or video_times is None:
        log_path = issues.write(out_dir)
        log.warning("Viewport clipping skipped: trial data or video times missing")
        return {"output_dir": str(out_dir), "log_path": str(log_path), "written": written, "n_issues": issues.total}

    trials = load_trials(trial_rows, issues)

    for team in tqdm(range(1, study["num_teams"] + 1), desc="Viewport sessions"):
        group = f"Session Data Team {team} {modality} Clipping Issues"
        issues.group(group)

        file_name = session_pattern.format(team=team, modality=modality)
        try:
            session = read_csv_table(in_dir / file_name)
        except FileNotFoundError as e:
            issues.report(group, group, f"table error - {e}")
            continue

        header = None
        if has_header and session:
            header, session = session[0], session[1:]

        windows = trial_clip_times(trials, video_times, str(team), modality, issues, group)
        if not windows:
            continue

        with timed("clipping", timings):
            segments = clip_session(
                session,
                [w[1] for w in windows],
                [w[2] for w in windows],
                issues,
                group,
            )

        for position, segment in enumerate(segments, start=1):
            path = write_csv_table(
                out_dir / trial_pattern.format(team=team, trial=position, modality=modality, device=device),
                segment,
                header=header,
            )
            written.append(str(path))

    log_path = issues.write(out_dir)
    log.info("Viewport clipping complete: %d trial files, %d issues", len(written), issues.total)
    return {
        "output_dir": str(out_dir),
        "log_path": str(log_path),
        "written": written,
        "n_issues": issues.total,
        "timings": timings,
    }
