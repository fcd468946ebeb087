"""
trendseed.reporting — read-only views over persisted snapshots and job runs.

Modules:
  status     — Trending and job-status report dicts built from the database.
  formatters — ASCII terminal tables for Typer CLI commands.
  export     — CSV / JSON / Parquet flat-file export of trending snapshots.
"""
