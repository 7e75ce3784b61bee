"""
Atomic "update status, then recompute metrics".

A status change and the metrics row derived from it are written in one
critical section: a process-wide lock serializes callers in this process
and a ``BEGIN IMMEDIATE`` transaction takes SQLite's write lock before the
UPDATE, so the snapshot read by ``recompute`` is always complete and no
other writer can interleave between the UPDATE and the metrics INSERT.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime

from fleet_planner.db.repositories.metrics_repo import FleetMetricsRepository
from fleet_planner.db.repositories.trainset_repo import TrainsetRepository
from fleet_planner.metrics.aggregator import recompute
from fleet_planner.models.fleet import FleetMetricsSnapshot
from fleet_planner.taxonomy.fleet_taxonomy import TrainsetStatus
from fleet_planner.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

_STATUS_LOCK = threading.Lock()


class TrainsetNotFoundError(LookupError):
    """Raised when a status update targets an unknown trainset id."""

    def __init__(self, trainset_id: str) -> None:
        self.trainset_id = trainset_id
        super().__init__(f"Trainset '{trainset_id}' not found.")


def update_status_and_recompute(
    conn: sqlite3.Connection,
    trainset_id: str,
    status: TrainsetStatus | str,
    now: datetime | None = None,
) -> FleetMetricsSnapshot:
    """Set one trainset's status and persist freshly recomputed fleet metrics.

    Args:
        conn:        Open connection (any pending transaction is committed first).
        trainset_id: Trainset to update.
        status:      New status; plain strings are validated against the enum.
        now:         Timestamp for the metrics row. Defaults to UTC now.

    Returns:
        The metrics snapshot that was persisted.

    Raises:
        ValueError: If ``status`` is not a valid ``TrainsetStatus``.
        TrainsetNotFoundError: If ``trainset_id`` does not exist. Nothing is
            written in that case.
    """
    status = TrainsetStatus(status)
    now = ensure_utc(now) if now else utcnow()

    with _STATUS_LOCK:
        if conn.in_transaction:
            conn.commit()
        conn.execute("BEGIN IMMEDIATE;")
        try:
            trainsets = TrainsetRepository(conn)
            if not trainsets.set_status(trainset_id, status):
                raise TrainsetNotFoundError(trainset_id)
            metrics = recompute(trainsets.load_fleet_snapshot())
            FleetMetricsRepository(conn).persist_metrics(metrics, now)
        except Exception:
            conn.rollback()
            raise
        conn.commit()

    logger.info(
        "Trainset %s -> %s; serviceability now %d%%",
        trainset_id, status.value, metrics.serviceability,
    )
    return metrics
