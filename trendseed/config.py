"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``TRENDSEED_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Job stages, the recommendation resolver, and CLI commands all receive an
``AppConfig`` instance rather than reading environment variables directly.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/trendseed.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class RecommendationConfig(BaseModel):
    """Resolver limits and per-tier fetch windows.

    ``max_limit`` clamps the caller's requested limit. The ``*_fetch_cap``
    values bound how many rows a tier reads before filtering; tiers
    over-fetch a multiple of the requested limit up to these caps.
    """

    model_config = ConfigDict(frozen=True)

    default_limit: int = 8
    max_limit: int = 50
    model_fetch_cap: int = 45
    heuristic_fetch_cap: int = 40
    trending_fetch_cap: int = 50
    tier_timeout_seconds: Optional[float] = 2.0
    default_period: str = "daily"

    @field_validator("default_period")
    @classmethod
    def validate_period(cls, v: str) -> str:
        if v not in {"daily", "weekly"}:
            raise ValueError(f"default_period must be 'daily' or 'weekly', got '{v}'.")
        return v

    @field_validator("tier_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        # 0 disables the per-tier timeout
        if v is not None and v <= 0:
            return None
        return v

    @model_validator(mode="after")
    def validate_limits(self) -> "RecommendationConfig":
        if not 1 <= self.default_limit <= self.max_limit:
            raise ValueError(
                f"default_limit ({self.default_limit}) must be in "
                f"[1, max_limit={self.max_limit}]."
            )
        return self


class JobConfig(BaseModel):
    """Batch job settings."""

    model_config = ConfigDict(frozen=True)

    # Job run by `run-job` when no job name is given.
    default_job: str = "telemetry_rollup"
    # Environment variable consulted when no explicit target date is given.
    metrics_date_env: str = "METRICS_DATE"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/trendseed.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env, or directly
    in tests with only the sections that matter overridden.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    recommendations: RecommendationConfig = RecommendationConfig()
    jobs: JobConfig = JobConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────


def _find_project_root() -> Path:
    """Walk up from this file to find the directory containing ``pyproject.toml``."""
    current = Path(__file__).resolve().parent
    for parent in [current, *current.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return Path.cwd()


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and validate application configuration.

    Args:
        config_path: Explicit TOML path. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        A validated, frozen ``AppConfig``.

    Raises:
        FileNotFoundError: If the TOML file does not exist.
        pydantic.ValidationError: If any value fails validation.
    """
    root = _find_project_root()

    # 1. Load .env (does not override variables already set in the process)
    env_file = root / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply TRENDSEED_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply TRENDSEED_* env vars to the raw config dict.

    Supported overrides:
      TRENDSEED_DB_PATH        → raw["database"]["db_path"]
      TRENDSEED_LOG_LEVEL      → raw["logging"]["level"]
      TRENDSEED_TIER_TIMEOUT   → raw["recommendations"]["tier_timeout_seconds"]
      TRENDSEED_DEBUG          → raw["debug"]
    """
    if db_path := os.environ.get("TRENDSEED_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("TRENDSEED_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if tier_timeout := os.environ.get("TRENDSEED_TIER_TIMEOUT"):
        raw.setdefault("recommendations", {})["tier_timeout_seconds"] = float(tier_timeout)

    if debug := os.environ.get("TRENDSEED_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        recommendations=RecommendationConfig(**raw.get("recommendations", {})),
        jobs=JobConfig(**raw.get("jobs", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
