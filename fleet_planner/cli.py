"""
``fleet-planner`` command line.

Every command reads the TOML config (``--config`` or config/default.toml),
sets up logging from it, does its work against the SQLite database and
prints a short plain-text report. Failures print ``[ERROR] ...`` to stderr
and exit with status 1.

Typical session::

    fleet-planner init-db
    fleet-planner import-fleet --file config/fleet/sample_fleet.json
    fleet-planner recommend --date 2026-10-20
    fleet-planner set-status KMRL-003 maintenance
    fleet-planner show-metrics
    fleet-planner alerts --json
"""

from __future__ import annotations

import json
import tomllib
from datetime import date
from pathlib import Path
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError

app = typer.Typer(
    name="fleet-planner",
    help="Rule-based next-day induction planning for a metro trainset fleet.",
    add_completion=False,
)

CONFIG_OPTION = typer.Option(
    None, "--config", help="TOML config file (default: config/default.toml)."
)


def _fail(message: str) -> NoReturn:
    typer.echo(f"[ERROR] {message}", err=True)
    raise typer.Exit(code=1)


def _setup(config_path: Optional[str]):
    """Load the config and configure logging, or exit with status 1."""
    from fleet_planner.config import load_config
    from fleet_planner.utils.logging import configure_logging

    try:
        config = load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as exc:
        _fail(str(exc))
    except (ValidationError, tomllib.TOMLDecodeError) as exc:
        _fail(f"Invalid configuration: {exc}")

    configure_logging(config.logging)
    return config


def _open_db(config, db_path: Optional[str] = None):
    from fleet_planner.db.connection import get_connection

    return get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )


def _iso_date(value: Optional[str], option: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        _fail(f"{option} expects YYYY-MM-DD, got '{value}'.")


# ── Database and config ───────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None, "--db-path", help="Create this database instead of the configured one."
    ),
    config_path: Optional[str] = CONFIG_OPTION,
) -> None:
    """Create the schema (idempotent) and apply pending migrations."""
    from fleet_planner.db.migrations import run_migrations
    from fleet_planner.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _setup(config_path)
    typer.echo(f"Database: {db_path or config.database.db_path}")

    with _open_db(config, db_path) as conn:
        apply_schema(conn)
        applied = run_migrations(conn)

    typer.echo(f"  {len(ALL_TABLE_NAMES)} tables present, {applied} migration(s) applied.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = CONFIG_OPTION,
    show_full: bool = typer.Option(False, "--full", help="Also dump every setting as JSON."),
) -> None:
    """Check that the config loads and print the settings that matter most."""
    config = _setup(config_path)

    fraction = config.scheduler.max_ready_fraction
    rows = [
        ("Database", config.database.db_path),
        ("Fleet seed file", config.data.fleet_seed_file),
        ("Schedule output", config.data.output_dir),
        ("Ready cap", "none" if fraction is None else f"{fraction:.0%}"),
        ("Log level", config.logging.level),
        ("Debug", config.debug),
    ]
    for label, value in rows:
        typer.echo(f"  {label + ':':<18} {value}")

    if show_full:
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))
    typer.echo("[OK] Config valid.")


# ── Fleet data ────────────────────────────────────────────────────────────────

@app.command("import-fleet")
def import_fleet(
    fleet_file: Optional[str] = typer.Option(
        None, "--file", "-f", help="Fleet JSON snapshot (default: data.fleet_seed_file)."
    ),
    config_path: Optional[str] = CONFIG_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate only; write nothing."),
) -> None:
    """Upsert trainsets from a JSON snapshot, then recompute fleet metrics.

    A trainset already in the database is replaced together with its
    certificates and job cards.
    """
    from fleet_planner.db.repositories.metrics_repo import FleetMetricsRepository
    from fleet_planner.db.repositories.trainset_repo import TrainsetRepository
    from fleet_planner.ingestion.fleet_json import parse_fleet_json
    from fleet_planner.metrics.aggregator import recompute
    from fleet_planner.utils.time_utils import utcnow

    config = _setup(config_path)
    source = Path(fleet_file or config.data.fleet_seed_file)

    try:
        trainsets = parse_fleet_json(source)
    except (FileNotFoundError, ValueError) as exc:
        _fail(f"Cannot import {source}:\n{exc}")
    typer.echo(f"Validated {len(trainsets)} trainset(s) from {source}")

    if dry_run:
        for ts in trainsets:
            typer.echo(f"  {ts.number:<10} {ts.status.value:<11} {ts.availability_percentage:g}%")
        typer.echo("[DRY RUN] Nothing written.")
        return

    with _open_db(config) as conn:
        repo = TrainsetRepository(conn)
        repo.upsert_many(trainsets)
        metrics = recompute(repo.load_fleet_snapshot())
        FleetMetricsRepository(conn).persist_metrics(metrics, utcnow())

    typer.echo(
        f"  Fleet now {metrics.total_fleet} trainset(s), "
        f"serviceability {metrics.serviceability}%."
    )
    typer.echo("[OK] Fleet imported.")


@app.command("set-status")
def set_status(
    trainset_id: str = typer.Argument(..., help="Trainset id."),
    status: str = typer.Argument(..., help="ready | standby | maintenance | critical"),
    config_path: Optional[str] = CONFIG_OPTION,
) -> None:
    """Change one trainset's status and refresh fleet metrics in one transaction."""
    from fleet_planner.pipeline.status_update import (
        TrainsetNotFoundError,
        update_status_and_recompute,
    )

    config = _setup(config_path)
    new_status = status.lower()

    try:
        with _open_db(config) as conn:
            m = update_status_and_recompute(conn, trainset_id, new_status)
    except TrainsetNotFoundError as exc:
        _fail(str(exc))
    except ValueError as exc:
        _fail(f"Invalid status '{status}': {exc}")

    typer.echo(
        f"  {trainset_id} -> {new_status} | ready={m.ready} standby={m.standby} "
        f"maintenance={m.maintenance} critical={m.critical}"
    )
    typer.echo("[OK] Status updated.")


# ── Planning ──────────────────────────────────────────────────────────────────

@app.command("recommend")
def recommend_cmd(
    schedule_date: Optional[str] = typer.Option(
        None, "--date", help="Service day to plan, YYYY-MM-DD (default: tomorrow, UTC)."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output", "-o", help="Where to write the schedule JSON (default: data.output_dir)."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print recommendations without storing or exporting them."
    ),
    config_path: Optional[str] = CONFIG_OPTION,
) -> None:
    """Recommend a status for every stored trainset for one service day."""
    from fleet_planner.pipeline.schedule import ScheduleStage

    config = _setup(config_path)
    target = _iso_date(schedule_date, "--date")

    stage = ScheduleStage(config=config)
    try:
        run = stage.run(
            schedule_date=target,
            dry_run=dry_run,
            output_dir=Path(output_dir) if output_dir else None,
        )
    except Exception as exc:
        _fail(f"Scheduling failed: {exc}")

    result = stage.last_result
    typer.echo(f"Schedule for {run.schedule_date} ({run.rows_processed} trainset(s)):")
    for rec in result.recommendations:
        line = (
            f"  {rec.trainset_number or rec.trainset_id:<10} "
            f"{rec.recommended_status.value:<11} "
            f"conf={rec.confidence_score:.2f} prio={rec.priority_score}"
        )
        if rec.is_status_change:
            line += f" (was {rec.current_status.value})"
        if rec.risk_factors:
            line += f" | risks: {len(rec.risk_factors)}"
        typer.echo(line)
    for err in result.errors:
        typer.echo(f"  [SKIPPED] #{err.index}: {err.message}", err=True)

    summary = result.summary
    typer.echo(
        f"  counts={summary.recommendations} "
        f"avg_confidence={summary.average_confidence:.2f} "
        f"high_risk={summary.high_risk_count}"
    )
    if dry_run:
        typer.echo("[DRY RUN] Schedule not stored.")
        return
    if stage.last_output_path:
        typer.echo(f"  Report: {stage.last_output_path}")
    typer.echo("[OK] Schedule stored.")


@app.command("refresh-metrics")
def refresh_metrics(config_path: Optional[str] = CONFIG_OPTION) -> None:
    """Recompute fleet metrics from the stored fleet and persist them."""
    from fleet_planner.pipeline.metrics_refresh import MetricsRefreshStage

    config = _setup(config_path)
    stage = MetricsRefreshStage(config=config)
    try:
        stage.run()
    except Exception as exc:
        _fail(f"Metrics refresh failed: {exc}")

    typer.echo(json.dumps(stage.last_metrics.model_dump(mode="json"), indent=2))
    typer.echo("[OK] Metrics refreshed.")


# ── Reporting ─────────────────────────────────────────────────────────────────

@app.command("show-metrics")
def show_metrics(config_path: Optional[str] = CONFIG_OPTION) -> None:
    """Print the latest stored fleet metrics and planning counters."""
    from fleet_planner.db.repositories.metrics_repo import FleetMetricsRepository

    config = _setup(config_path)
    with _open_db(config) as conn:
        repo = FleetMetricsRepository(conn)
        metrics = repo.get_latest()
        planning = repo.get_planning_status()

    if metrics is None:
        typer.echo("[WARN] No metrics recorded yet; run 'fleet-planner refresh-metrics'.")
    else:
        typer.echo(f"  Total fleet:      {metrics.total_fleet}")
        typer.echo(
            f"  Ready/Standby:    {metrics.ready}/{metrics.standby}  "
            f"Maintenance/Critical: {metrics.maintenance}/{metrics.critical}"
        )
        typer.echo(f"  Serviceability:   {metrics.serviceability}%")
        typer.echo(f"  Avg availability: {metrics.avg_availability}%")

    last = planning.last_optimization.isoformat() if planning.last_optimization else "never"
    typer.echo(f"  Schedules run:    {planning.schedules_generated} (last: {last})")
    typer.echo(f"  Avg confidence:   {planning.ai_confidence_avg}%")


@app.command("alerts")
def alerts_cmd(
    as_json: bool = typer.Option(False, "--json", help="Print alerts as JSON."),
    config_path: Optional[str] = CONFIG_OPTION,
) -> None:
    """List certificate, job-card, availability and cleaning alerts."""
    from fleet_planner.db.repositories.trainset_repo import TrainsetRepository
    from fleet_planner.metrics.alerts import generate_alerts
    from fleet_planner.utils.time_utils import utcnow

    config = _setup(config_path)
    with _open_db(config) as conn:
        fleet = TrainsetRepository(conn).load_fleet_snapshot()

    alerts = generate_alerts(fleet, utcnow())
    if as_json:
        typer.echo(json.dumps([a.model_dump(mode="json") for a in alerts], indent=2))
        return
    for alert in alerts:
        typer.echo(f"  [{alert.priority.value.upper():<8}] {alert.trainset:<10} {alert.message}")
    typer.echo(f"  {len(alerts)} alert(s)." if alerts else "[OK] No alerts.")


if __name__ == "__main__":
    app()
