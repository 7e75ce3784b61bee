"""
JSON import parser for fleet snapshots.

Format - either a top-level array of trainset objects or an object with a
``"trainsets"`` array. Each object uses the Trainset field names:

Required keys:
  number, status, mileage, last_cleaning, branding_priority,
  availability_percentage

Optional keys:
  id                    (defaults to ``number``)
  bay_position          (defaults to 1)
  fitness_certificates  list of {certificate_type, expiry_date}
  job_cards             list of {status, priority, description}

Omitting ``fitness_certificates`` / ``job_cards`` (or setting them to null)
means "no data"; the engine then uses its simple scoring mode.

See ``config/fleet/sample_fleet.json`` for a full example.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from fleet_planner.models.trainset import InvalidTrainsetError, Trainset, coerce_trainset

logger = logging.getLogger(__name__)

MAX_ERRORS_SHOWN = 10


def parse_fleet_json(path: Path) -> list[Trainset]:
    """Parse a fleet snapshot file into validated :class:`Trainset` objects.

    All records are validated before any are returned. If **any** record
    fails, a single :class:`ValueError` is raised listing the first 10
    failures. Duplicate ``id`` or ``number`` values are failures too.

    Args:
        path: Path to the JSON file (must exist).

    Returns:
        List of validated trainsets in file order.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not valid JSON, has the wrong shape, or
            any record fails validation.
    """
    if not path.exists():
        raise FileNotFoundError(f"Fleet JSON file not found: {path}")

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path.name}: {exc}") from exc

    records = _extract_records(payload, path)
    if not records:
        logger.warning("Fleet JSON contains no trainsets: %s", path)
        return []

    trainsets: list[Trainset] = []
    errors: list[tuple[int, str]] = []
    seen_ids: set[str] = set()
    seen_numbers: set[str] = set()

    for i, record in enumerate(records):
        try:
            trainset = coerce_trainset(_with_default_id(record))
        except InvalidTrainsetError as exc:
            errors.append((i, str(exc)))
            continue

        if trainset.id in seen_ids:
            errors.append((i, f"Duplicate trainset id '{trainset.id}'."))
            continue
        if trainset.number in seen_numbers:
            errors.append((i, f"Duplicate trainset number '{trainset.number}'."))
            continue
        seen_ids.add(trainset.id)
        seen_numbers.add(trainset.number)
        trainsets.append(trainset)

    if errors:
        detail = "\n".join(
            f"  Record {idx}: {msg}" for idx, msg in errors[:MAX_ERRORS_SHOWN]
        )
        suffix = (
            f"\n  … and {len(errors) - MAX_ERRORS_SHOWN} more"
            if len(errors) > MAX_ERRORS_SHOWN else ""
        )
        raise ValueError(
            f"{len(errors)} record(s) failed validation in {path.name}:\n{detail}{suffix}"
        )

    logger.info("Parsed %d trainsets from %s", len(trainsets), path.name)
    return trainsets


# ── Private helpers ────────────────────────────────────────────────────────────

def _extract_records(payload: Any, path: Path) -> list[Any]:
    if isinstance(payload, dict) and "trainsets" in payload:
        payload = payload["trainsets"]
    if not isinstance(payload, list):
        raise ValueError(
            f"{path.name}: expected a JSON array of trainsets or an object "
            "with a 'trainsets' array."
        )
    return payload


def _with_default_id(record: Any) -> Any:
    """Fill ``id`` from ``number`` when the record has no id of its own."""
    if isinstance(record, dict) and record.get("id") is None and record.get("number") is not None:
        return {**record, "id": record["number"]}
    return record
