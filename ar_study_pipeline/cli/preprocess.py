from __future__ import annotations

import argparse
import logging

from ar_study_pipeline.data_processing.preprocess_events import preprocess_events
from ar_study_pipeline.data_processing.preprocess_timeseries import preprocess_timeseries
from ar_study_pipeline.data_processing.preprocess_viewport import preprocess_viewport
from ar_study_pipeline.utils.config import ensure_dirs, load_config
from ar_study_pipeline.utils.logging import setup_logging

log = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Validate, merge and derive the AR collaboration study tables.")
    p.add_argument("--config", required=True, help="Path to YAML config (supports extends).")
    p.add_argument(
        "--stage",
        required=True,
        choices=["events", "viewport", "timeseries", "all"],
        help="Which stage to run. 'all' runs events, viewport, then timeseries.",
    )
    return p.parse_args()


def main() -> None:
    args = parse_args()
    cfg = load_config(args.config)

    ensure_dirs(cfg)
    setup_logging(level=cfg.get("logging", {}).get("level", "INFO"))

    if args.stage in ("events", "all"):
        preprocess_events(cfg)

    # Viewport clipping writes the per-trial logs the time series stage reads.
    if args.stage in ("viewport", "all"):
        preprocess_viewport(cfg)

    if args.stage in ("timeseries", "all"):
        preprocess_timeseries(cfg)


if __name__ == "__main__":
    main()
