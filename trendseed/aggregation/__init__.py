"""
Metric aggregation: collapse one UTC day of raw telemetry into per-subject
daily counters.

Modules
-------
daily_rollup : pure grouping (``rollup_events``) plus the DB-backed
               ``aggregate_window`` used by the telemetry_rollup job.
"""
