"""
trendseed — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, job run, resolve, report).
  5. Report result to stdout.

Install and run::

    pip install -e .
    trendseed --help
    trendseed init-db
    trendseed run-job telemetry_rollup --date 2025-01-15
    trendseed run-job trending_refresh
    trendseed resolve --scope card --subject <card-uuid> --format standard
    trendseed trending --scope deck --limit 10
    trendseed export-trending --output data/exports/trending.parquet --format parquet
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="trendseed",
    help="trendseed — trend scoring and recommendation seed resolution.",
    add_completion=False,
)

# Exit code for input errors rejected before any side effect.
EXIT_INPUT_ERROR = 2


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from trendseed.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from trendseed.utils.logging import configure_logging
    configure_logging(config.logging)


def _open_db(config, db_path: Optional[str]):
    from trendseed.db.connection import get_connection

    return get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )


def _parse_scope_or_exit(scope: str):
    from trendseed.taxonomy.event_taxonomy import Scope

    try:
        return Scope(scope.strip().lower())
    except ValueError:
        typer.echo(f"[ERROR] Unknown scope '{scope}'. Use 'card' or 'deck'.", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR)


def _parse_period_or_exit(period: Optional[str], config):
    from trendseed.taxonomy.event_taxonomy import Period

    value = period or config.recommendations.default_period
    try:
        return Period(value.strip().lower())
    except ValueError:
        typer.echo(f"[ERROR] Unknown period '{value}'. Use 'daily' or 'weekly'.", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times: all DDL uses IF NOT EXISTS.
    Also runs pending schema migrations.
    """
    from trendseed.db.migrations import run_migrations
    from trendseed.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    typer.echo(f"Initializing database at: {db_path or config.database.db_path}")

    with _open_db(config, db_path) as conn:
        apply_schema(conn)
        migrations_applied = run_migrations(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo(f"  Migrations applied: {migrations_applied}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)
    rec = config.recommendations
    timeout = f"{rec.tier_timeout_seconds}s" if rec.tier_timeout_seconds else "disabled"

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Default job:      {config.jobs.default_job}")
    typer.echo(f"  Date env var:     {config.jobs.metrics_date_env}")
    typer.echo(f"  Seed limit:       {rec.default_limit} (max {rec.max_limit})")
    typer.echo(f"  Tier timeout:     {timeout}")
    typer.echo(f"  Default period:   {rec.default_period}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("run-job")
def run_job_command(
    job: Optional[str] = typer.Argument(
        None,
        help="telemetry_rollup | trending_refresh | seed_sample (default from config).",
    ),
    target_date: Optional[str] = typer.Option(
        None,
        "--date",
        help="UTC day to process (YYYY-MM-DD). Falls back to $METRICS_DATE, then today.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Run one batch job for a single UTC day.

    \b
    Jobs:
      telemetry_rollup — roll raw events up into daily card/deck metrics.
      trending_refresh — score the day's metrics into trending snapshots.
      seed_sample      — upsert a sample card + deck, then refresh trending.

    Exit codes: 0 succeeded, 1 failed, 2 bad job name or date.
    """
    from trendseed.db.schema import apply_schema
    from trendseed.pipeline.runner import (
        InvalidTargetDateError,
        UnsupportedJobError,
        resolve_job_name,
        resolve_window,
        run_job,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    job_name = job or config.jobs.default_job

    # Validate both inputs before touching the database.
    try:
        resolve_job_name(job_name)
        window = resolve_window(config, target_date)
    except (UnsupportedJobError, InvalidTargetDateError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR)

    typer.echo(f"run-job {job_name} | day={window.metric_date.isoformat()}")

    with _open_db(config, db_path) as conn:
        apply_schema(conn)

    run = run_job(job_name, config, target_date=window.metric_date, db_path=db_path)

    typer.echo(f"  run={run.run_slug} status={run.status} duration_ms={run.duration_ms}")
    typer.echo(f"  metadata={json.dumps(run.metadata, sort_keys=True, default=str)}")
    if run.status != "succeeded":
        typer.echo(f"[ERROR] {job_name} failed: {run.error_message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"[OK] {job_name} complete.")


@app.command("resolve")
def resolve(
    scope: str = typer.Option("card", "--scope", help="card | deck"),
    subject: Optional[str] = typer.Option(None, "--subject", help="Card or deck id."),
    fmt: Optional[str] = typer.Option(None, "--format", help="Format filter (e.g. standard)."),
    surface: Optional[str] = typer.Option(None, "--surface", help="Calling surface tag."),
    period: Optional[str] = typer.Option(None, "--period", help="daily | weekly"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Number of seeds (clamped)."),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Resolve recommendation seeds and print the {data, meta} JSON document."""
    from trendseed.models.seed import ResolveRequest
    from trendseed.recommendations.resolver import RecommendationResolver

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    request = ResolveRequest(
        scope=_parse_scope_or_exit(scope),
        subject_id=subject,
        format=fmt,
        surface=surface,
        period=_parse_period_or_exit(period, config),
        limit=limit,
    )
    result = RecommendationResolver(config, db_path=db_path).resolve(request)
    typer.echo(json.dumps(result.to_payload(), indent=2))


@app.command("trending")
def trending(
    scope: str = typer.Option("card", "--scope", help="card | deck"),
    period: Optional[str] = typer.Option(None, "--period", help="daily | weekly"),
    limit: int = typer.Option(20, "--limit", min=1, help="Rows to show."),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Show the top trending cards or decks with snapshot freshness."""
    from trendseed.db.schema import apply_schema
    from trendseed.reporting.formatters import format_trending_table
    from trendseed.reporting.status import build_trending_report

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_scope = _parse_scope_or_exit(scope)
    target_period = _parse_period_or_exit(period, config)

    with _open_db(config, db_path) as conn:
        apply_schema(conn)
        report = build_trending_report(conn, target_scope, target_period, limit)

    typer.echo(format_trending_table(report))


@app.command("job-status")
def job_status(
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON instead of a table."),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Show the latest run of each job: status, timing, error and counts."""
    from trendseed.db.schema import apply_schema
    from trendseed.reporting.formatters import format_job_status_table
    from trendseed.reporting.status import build_job_status

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        apply_schema(conn)
        jobs = build_job_status(conn)

    if as_json:
        typer.echo(json.dumps(jobs, indent=2, default=str))
    else:
        typer.echo(format_job_status_table(jobs))


@app.command("export-trending")
def export_trending(
    output: str = typer.Option(..., "--output", "-o", help="Destination file path."),
    fmt: str = typer.Option("csv", "--format", help="csv | json | parquet"),
    scope: Optional[str] = typer.Option(None, "--scope", help="Limit to card or deck."),
    period: Optional[str] = typer.Option(None, "--period", help="Limit to daily or weekly."),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Export trending snapshots to a flat CSV, JSON or Parquet file."""
    from trendseed.db.repositories.trending_repo import TrendingRepository
    from trendseed.db.schema import apply_schema
    from trendseed.reporting.export import (
        export_to_csv,
        export_to_json,
        export_to_parquet,
        flatten_snapshots_for_export,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    fmt = fmt.strip().lower()
    if fmt not in {"csv", "json", "parquet"}:
        typer.echo(f"[ERROR] Unknown format '{fmt}'. Use csv, json or parquet.", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR)

    scope_filter = _parse_scope_or_exit(scope) if scope else None
    period_filter = _parse_period_or_exit(period, config) if period else None

    with _open_db(config, db_path) as conn:
        apply_schema(conn)
        snapshots = TrendingRepository(conn).get_all(scope_filter, period_filter)

    rows = flatten_snapshots_for_export(snapshots)
    out_path = Path(output)
    if fmt == "csv":
        export_to_csv(rows, out_path)
    elif fmt == "json":
        export_to_json(rows, out_path)
    else:
        export_to_parquet(rows, out_path)

    typer.echo(f"[OK] Exported {len(rows)} snapshot(s) to {out_path}")


if __name__ == "__main__":
    app()
