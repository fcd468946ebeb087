"""
Flat-file export of trending snapshots for offline analysis.

All writers create parent directories and return the written ``Path``.
Rows are flat: each snapshot component becomes its own ``c_<name>`` column,
so CSV and Parquet outputs load directly in spreadsheets or dataframes.
"""

from __future__ import annotations

import csv
import json
from collections.abc import Sequence
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from trendseed.models.trending import TrendingSnapshot

BASE_COLUMNS: list[str] = [
    "scope",
    "subject_id",
    "period",
    "trend_score",
    "calculated_at",
]


def flatten_snapshots_for_export(snapshots: Sequence[TrendingSnapshot]) -> list[dict]:
    """One flat dict per snapshot; component keys become ``c_<key>`` columns.

    Rows missing a component another row has get ``None`` for it.
    """
    component_keys = sorted({k for s in snapshots for k in s.components})
    rows: list[dict] = []
    for s in snapshots:
        row: dict = {
            "scope": s.scope.value,
            "subject_id": s.subject_id,
            "period": s.period.value,
            "trend_score": s.trend_score,
            "calculated_at": s.calculated_at.isoformat(),
        }
        for key in component_keys:
            value = s.components.get(key)
            row[f"c_{key}"] = float(value) if isinstance(value, (int, float)) else None
        rows.append(row)
    return rows


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file (empty file for no records)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def build_snapshot_table(records: list[dict]) -> pa.Table:
    """Arrow table with string base columns and float64 score/component columns."""
    columns = list(records[0].keys()) if records else list(BASE_COLUMNS)
    fields = [
        pa.field(
            name,
            pa.float64() if name == "trend_score" or name.startswith("c_") else pa.string(),
            nullable=True,
        )
        for name in columns
    ]
    schema = pa.schema(fields)
    arrays = {
        f.name: pa.array([r.get(f.name) for r in records], type=f.type) for f in fields
    }
    return pa.table(arrays, schema=schema)


def export_to_parquet(records: list[dict], path: Path) -> Path:
    """Write ``records`` as a snappy-compressed Parquet file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(build_snapshot_table(records), str(path), compression="snappy")
    return path
