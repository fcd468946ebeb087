"""
ASCII terminal formatters for CLI reporting commands.

All formatters accept report dicts from ``reporting.status`` and return
plain multi-line strings suitable for ``typer.echo()``.
"""

from __future__ import annotations

from typing import Any


def format_freshness_banner(is_fresh: bool, age_hours: float | None) -> str:
    """Return a one-line freshness indicator for trending data."""
    if age_hours is None:
        return "  [AGE UNKNOWN] no trending snapshots calculated yet"
    if is_fresh:
        return f"  [FRESH] Calculated {age_hours:.1f}h ago"
    return f"  [STALE] Calculated {age_hours:.1f}h ago -- run trending_refresh"


def format_trending_table(report: dict[str, Any]) -> str:
    """Format a trending report as a ranked table."""
    meta = report["meta"]
    lines = [
        "",
        f"=== Trending {meta['scope']}s ({meta['period']}) ===",
        format_freshness_banner(meta["is_fresh"], meta["age_hours"]),
        "",
    ]
    rows = report["data"]
    if not rows:
        lines.append("  (no snapshots -- run 'run-job trending_refresh' first)")
        return "\n".join(lines)

    lines.append(f"  {'#':>3}  {'Score':>10}  {'Name':<32}  Subject")
    lines.append(f"  {'-' * 3}  {'-' * 10}  {'-' * 32}  {'-' * 36}")
    for row in rows:
        name = (row["name"] or "(not in catalog)")[:32]
        lines.append(
            f"  {row['rank']:>3}  {row['trend_score']:>10.4f}  {name:<32}  {row['subject_id']}"
        )
    return "\n".join(lines)


def format_job_status_table(jobs: list[dict[str, Any]]) -> str:
    """Format the latest run per job type."""
    lines = ["", "=== Job Runs (latest per job) ==="]
    if not jobs:
        lines.append("  (no job runs recorded)")
        return "\n".join(lines)

    lines.append(
        f"  {'Job':<18}  {'Status':<10}  {'Started':<32}  {'Duration':>10}  Details"
    )
    lines.append(f"  {'-' * 18}  {'-' * 10}  {'-' * 32}  {'-' * 10}  {'-' * 24}")
    for job in jobs:
        duration = f"{job['duration_ms']}ms" if job["duration_ms"] is not None else "-"
        if job["error_message"]:
            details = f"ERROR: {job['error_message']}"
        else:
            details = ", ".join(
                f"{k}={v}"
                for k, v in job["metadata"].items()
                if isinstance(v, int) and not isinstance(v, bool)
            )
        lines.append(
            f"  {job['job_type']:<18}  {job['status']:<10}  "
            f"{job['started_at']:<32}  {duration:>10}  {details}"
        )
    return "\n".join(lines)
