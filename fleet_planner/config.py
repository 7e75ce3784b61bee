"""
Typed settings for the fleet planner.

``load_config()`` reads ``config/default.toml``, lays ``config/local.toml``
over it when present, then applies ``FLEET_PLANNER_DB_PATH``,
``FLEET_PLANNER_LOG_LEVEL`` and ``FLEET_PLANNER_DEBUG`` (a project ``.env``
is loaded first). The result is a frozen ``AppConfig``.

Pipeline stages and CLI commands take the whole ``AppConfig``; the
recommendation engine only ever sees its ``EngineConfig`` section.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/fleet_planner.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class DataConfig(BaseModel):
    """Filesystem paths for fleet input and schedule output."""

    model_config = ConfigDict(frozen=True)

    fleet_seed_file: str = "config/fleet/sample_fleet.json"
    output_dir: str = "data/outputs/schedules"


class EngineConfig(BaseModel):
    """Thresholds for the rule-based recommendation cascade.

    ``*_simple`` values apply when a trainset carries no certificate or
    job-card data; ``*_aware`` values apply when it does.
    """

    model_config = ConfigDict(frozen=True)

    # Critical triggers
    critical_availability_simple: float = 60.0
    critical_availability_aware: float = 75.0
    critical_mileage_km: float = 65_000.0

    # Maintenance triggers
    heavy_mileage_km: float = 50_000.0
    heavy_mileage_availability: float = 85.0
    maintenance_availability_simple: float = 80.0
    maintenance_mileage_km: float = 45_000.0
    maintenance_availability_aware: float = 90.0
    max_open_job_cards: int = 2

    # Ready triggers
    excellent_availability: float = 95.0
    excellent_branding: int = 8
    strong_availability: float = 90.0
    strong_max_mileage_km: float = 40_000.0
    premium_branding_aware: int = 7

    # Standby tiers
    good_availability: float = 85.0
    backup_branding_below: int = 7

    # Risk annotations
    cleaning_days_simple: int = 10
    cleaning_days_aware: int = 5
    low_branding: int = 3
    declining_availability: float = 70.0
    certificate_warning_days: int = 60
    wear_mileage_km: float = 18_000.0

    @field_validator(
        "critical_availability_simple", "critical_availability_aware",
        "heavy_mileage_availability", "maintenance_availability_simple",
        "maintenance_availability_aware", "excellent_availability",
        "strong_availability", "good_availability", "declining_availability",
    )
    @classmethod
    def validate_percentage(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"Availability thresholds must be in [0, 100], got {v}.")
        return v

    @field_validator(
        "critical_mileage_km", "heavy_mileage_km", "maintenance_mileage_km",
        "strong_max_mileage_km", "wear_mileage_km", "max_open_job_cards",
        "cleaning_days_simple", "cleaning_days_aware", "certificate_warning_days",
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Threshold must be non-negative, got {v}.")
        return v


class SchedulerConfig(BaseModel):
    """Batch scheduling settings."""

    model_config = ConfigDict(frozen=True)

    max_ready_fraction: Optional[float] = None
    write_json: bool = True

    @field_validator("max_ready_fraction")
    @classmethod
    def validate_fraction(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0.0 < v <= 1.0:
            raise ValueError(f"max_ready_fraction must be in (0.0, 1.0], got {v}.")
        return v


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingConfig(BaseModel):
    """Where log lines go and how they look."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/fleet_planner.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def normalise_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}; got {v!r}")
        return level


class AppConfig(BaseModel):
    """Every settings section, as returned by ``load_config()``."""

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    data: DataConfig = DataConfig()
    engine: EngineConfig = EngineConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_ROOT_MARKER = "pyproject.toml"

# env var -> (section, key); section None means a top-level field.
_ENV_OVERRIDES: dict[str, tuple[Optional[str], str]] = {
    "FLEET_PLANNER_DB_PATH": ("database", "db_path"),
    "FLEET_PLANNER_LOG_LEVEL": ("logging", "level"),
    "FLEET_PLANNER_DEBUG": (None, "debug"),
}
_TRUTHY = {"1", "true", "yes", "on"}


def _project_root() -> Path:
    here = Path(__file__).resolve().parent
    for candidate in (here, *here.parents):
        if (candidate / _ROOT_MARKER).exists():
            return candidate
    return here.parent


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` laid over it, table by table."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for var, (section, key) in _ENV_OVERRIDES.items():
        value: Any = os.environ.get(var)
        if not value:
            continue
        if key == "debug":
            value = value.strip().lower() in _TRUTHY
        if section is None:
            layer[key] = value
        else:
            layer.setdefault(section, {})[key] = value
    return layer


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build the ``AppConfig`` for this process.

    Layers, lowest precedence first: the TOML file, a ``local.toml`` next to
    it, then ``FLEET_PLANNER_*`` variables (from the environment or the
    project ``.env``, which never overrides variables already set).

    Args:
        config_path: TOML file to start from; ``config/default.toml`` under
            the project root when omitted.

    Raises:
        FileNotFoundError: ``config_path`` does not exist.
        pydantic.ValidationError: A merged value is out of range.
    """
    root = _project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / "config" / "default.toml"
    if not path.is_file():
        raise FileNotFoundError(
            f"Config file not found: {path} (pass --config or create config/default.toml)"
        )

    raw = _read_toml(path)
    local = path.with_name("local.toml")
    if local.is_file():
        raw = _merge(raw, _read_toml(local))
    raw = _merge(raw, _env_layer())

    project = raw.pop("project", {})
    raw.setdefault("debug", project.get("debug", False))
    return AppConfig.model_validate(raw)
