"""
Schedule report writer: JSON output for one scheduling run.

Pure I/O, no DB access. The payload is plain data (``model_dump(mode="json")``)
so any downstream renderer can consume it.

Output files (written by ScheduleStage)
----------------------------------------
  data/outputs/schedules/
    schedule_{date}.json   -- recommendations + summary + errors
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path

from fleet_planner.models.recommendation import ScheduleResult

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1.0.0"


def build_schedule_payload(
    result: ScheduleResult,
    schedule_date: date,
    run_slug: str = "",
) -> dict:
    """Return the JSON-ready dict for ``result``."""
    return {
        "schema_version":  SCHEMA_VERSION,
        "schedule_date":   schedule_date.isoformat(),
        "run_slug":        run_slug,
        **result.model_dump(mode="json"),
    }


def write_schedule_json(
    result: ScheduleResult,
    output_dir: Path,
    schedule_date: date | None = None,
    run_slug: str = "",
) -> Path:
    """Write a scheduling run to a structured JSON file.

    Args:
        result:        Output of ``schedule_all``.
        output_dir:    Target directory (created if missing).
        schedule_date: Service date label. Defaults to today.
        run_slug:      Pipeline run UUID for provenance.

    Returns:
        Path to the written JSON file.
    """
    if schedule_date is None:
        schedule_date = date.today()

    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"schedule_{schedule_date}.json"

    payload = build_schedule_payload(result, schedule_date, run_slug)
    json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info(
        "Schedule JSON written: %s (%d recommendations)",
        json_path, len(result.recommendations),
    )
    return json_path
