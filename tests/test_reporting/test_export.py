"""Tests for trendseed.reporting.export."""

from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path

import pyarrow.parquet as pq

from trendseed.models.trending import TrendingSnapshot
from trendseed.reporting.export import (
    export_to_csv,
    export_to_json,
    export_to_parquet,
    flatten_snapshots_for_export,
)
from trendseed.taxonomy.event_taxonomy import Scope

CALC_AT = datetime(2025, 1, 16, 3, 0, tzinfo=timezone.utc)


def _snapshots() -> list[TrendingSnapshot]:
    return [
        TrendingSnapshot(
            scope=Scope.CARD, subject_id="c1", trend_score=6.02,
            components={"views": 10, "deck_inclusions": 5, "price_growth": 0.1},
            calculated_at=CALC_AT,
        ),
        TrendingSnapshot(
            scope=Scope.DECK, subject_id="d1", trend_score=42.56,
            components={"views": 100, "imports": 20},
            calculated_at=CALC_AT,
        ),
    ]


class TestFlatten:
    def test_component_columns(self):
        rows = flatten_snapshots_for_export(_snapshots())
        assert rows[0]["scope"] == "card"
        assert rows[0]["c_views"] == 10.0
        assert rows[0]["c_price_growth"] == 0.1
        assert rows[0]["c_imports"] is None
        assert rows[1]["c_deck_inclusions"] is None
        assert rows[1]["calculated_at"] == "2025-01-16T03:00:00+00:00"

    def test_same_columns_for_every_row(self):
        rows = flatten_snapshots_for_export(_snapshots())
        assert rows[0].keys() == rows[1].keys()

    def test_empty(self):
        assert flatten_snapshots_for_export([]) == []


def test_export_to_csv(tmp_path: Path) -> None:
    out = tmp_path / "nested" / "trending.csv"
    result = export_to_csv(flatten_snapshots_for_export(_snapshots()), out)

    assert result == out
    with out.open(encoding="utf-8") as f:
        reader = list(csv.DictReader(f))
    assert len(reader) == 2
    assert reader[1]["subject_id"] == "d1"
    assert reader[1]["trend_score"] == "42.56"


def test_export_to_csv_empty(tmp_path: Path) -> None:
    out = export_to_csv([], tmp_path / "empty.csv")
    assert out.read_text(encoding="utf-8") == ""


def test_export_to_csv_custom_fieldnames(tmp_path: Path) -> None:
    out = tmp_path / "cols.csv"
    export_to_csv(flatten_snapshots_for_export(_snapshots()), out, fieldnames=["subject_id", "trend_score"])
    with out.open(encoding="utf-8") as f:
        assert f.readline().strip() == "subject_id,trend_score"


def test_export_to_json(tmp_path: Path) -> None:
    out = export_to_json(flatten_snapshots_for_export(_snapshots()), tmp_path / "t.json")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data[0]["c_views"] == 10.0


def test_export_to_parquet(tmp_path: Path) -> None:
    out = export_to_parquet(flatten_snapshots_for_export(_snapshots()), tmp_path / "t.parquet")
    table = pq.read_table(str(out))
    assert table.num_rows == 2
    assert table.column("trend_score").to_pylist() == [6.02, 42.56]
    assert table.column("c_imports").to_pylist() == [None, 20.0]


def test_export_to_parquet_empty(tmp_path: Path) -> None:
    table = pq.read_table(str(export_to_parquet([], tmp_path / "empty.parquet")))
    assert table.num_rows == 0
    assert "subject_id" in table.column_names
