"""
PipelineStage: shared run/audit wrapper for the fleet planner's batch jobs.

A stage is constructed with an ``AppConfig`` and exposes exactly one public
method, ``run(**kwargs)``. Subclasses only provide ``stage_name`` and
``_execute(run, **kwargs) -> int``; this class takes care of:

  * opening a ``RunMetadata`` audit record (``started``),
  * closing it as ``success`` with the row count returned by ``_execute``,
    or as ``failed`` with the error text, then re-raising,
  * writing the record to ``run_metadata``.

Example::

    class FleetSizeStage(PipelineStage):
        stage_name = "metrics_refresh"

        def _execute(self, run: RunMetadata, **kwargs) -> int:
            with self._connect() as conn:
                return TrainsetRepository(conn).count()

    run = FleetSizeStage(config).run()
    assert run.status == "success"
"""

from __future__ import annotations

import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional
from uuid import uuid4

from fleet_planner.config import AppConfig
from fleet_planner.db.connection import get_connection
from fleet_planner.db.repositories.run_repo import RunMetadataRepository
from fleet_planner.models.meta import RunMetadata
from fleet_planner.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """Base class for audited fleet-planner jobs.

    Attributes:
        stage_name: One of ``VALID_PIPELINE_STAGES``; set by each subclass.
        config:     Application configuration for the run.
        db_path:    SQLite file used by the stage; ``config.database.db_path``
                    unless overridden.
    """

    stage_name: str

    def __init__(self, config: AppConfig, db_path: Optional[str] = None) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path

    def run(self, **kwargs) -> RunMetadata:
        """Run the stage and return its finished audit record.

        Keyword arguments are forwarded to ``_execute``. Any exception from
        ``_execute`` is recorded on the run (``status='failed'``) and then
        propagated unchanged.
        """
        run = self._open_run()
        started = time.perf_counter()

        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            self._close_run(run, "failed", error=str(exc))
            logger.error(
                "[%s] run %s failed after %.2fs: %s",
                self.stage_name, run.run_slug, time.perf_counter() - started, exc,
            )
            raise

        self._close_run(run, "success", rows=rows)
        logger.info(
            "[%s] run %s finished in %.2fs (%d rows)",
            self.stage_name, run.run_slug, time.perf_counter() - started, rows,
        )
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Do the stage's work and return the number of records handled.

        ``run`` may be mutated (e.g. ``schedule_date``) and may be persisted
        early via ``_persist_run`` when child rows need its ``run_id``.
        """

    # ── Helpers for subclasses ────────────────────────────────────────────────

    def _connect(self) -> AbstractContextManager[sqlite3.Connection]:
        """Connection to ``db_path`` using the configured pragmas."""
        db = self.config.database
        return get_connection(
            self.db_path, wal_mode=db.wal_mode, busy_timeout_ms=db.busy_timeout_ms
        )

    def _persist_run(self, run: RunMetadata) -> None:
        """Insert ``run`` on first call, update it afterwards.

        A database error here is logged only, so it can never hide the
        exception that ended the stage.
        """
        try:
            with self._connect() as conn:
                repo = RunMetadataRepository(conn)
                if run.run_id is None:
                    run.run_id = repo.insert_run(run)
                else:
                    repo.update_run(run)
        except sqlite3.Error as exc:
            logger.error("Could not store run record %s: %s", run.run_slug, exc)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _open_run(self) -> RunMetadata:
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            config_snapshot=self.config.model_dump(mode="json"),
            started_at=utcnow(),
        )
        logger.info("[%s] run %s started", self.stage_name, run.run_slug)
        return run

    def _close_run(
        self,
        run: RunMetadata,
        status: str,
        rows: int = 0,
        error: Optional[str] = None,
    ) -> None:
        run.status = status
        run.rows_processed = rows
        run.error_message = error
        run.finished_at = utcnow()
        self._persist_run(run)
