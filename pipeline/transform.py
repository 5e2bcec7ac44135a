"""Transform the raw enforcement CSV into Parquet records + chart snapshots."""

from __future__ import annotations

from pathlib import Path

import duckdb
import pandas as pd

from pipeline.aggregate import aggregate
from pipeline.load import SOURCE_COLUMNS, EnforcementRecord, load

RAW_DIR = Path(__file__).resolve().parent.parent / "data" / "raw"
PROCESSED_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"
AGGREGATED_DIR = Path(__file__).resolve().parent.parent / "data" / "aggregated"

RAW_CSV = RAW_DIR / "police_enforcement_2024_fines.csv"

_BUCKET_COLUMNS = [
    "count", "fines", "arrests", "charges", "severe", "total",
    "arrests_per_fine", "charges_per_fine", "severe_share", "fines_share",
]

_RECORD_COLUMNS = """
    CAST(YEAR AS INTEGER) AS YEAR,
    CAST(JURISDICTION AS VARCHAR) AS JURISDICTION,
    CAST(METRIC AS VARCHAR) AS METRIC,
    CAST(AGE_GROUP AS VARCHAR) AS AGE_GROUP,
    CAST(DETECTION_METHOD AS VARCHAR) AS DETECTION_METHOD,
    CAST(FINES AS BIGINT) AS FINES,
    CAST(ARRESTS AS BIGINT) AS ARRESTS,
    CAST(CHARGES AS BIGINT) AS CHARGES,
    CAST(START_DATE AS VARCHAR) AS START_DATE
"""


def _export(con: duckdb.DuckDBPyConnection, sql: str, path: Path) -> int:
    """Run COPY ... TO parquet ZSTD. Returns row count."""
    path.parent.mkdir(parents=True, exist_ok=True)
    con.execute(f"COPY ({sql}) TO '{path}' (FORMAT PARQUET, COMPRESSION ZSTD)")
    count = con.execute(f"SELECT COUNT(*) FROM '{path}'").fetchone()[0]
    size_mb = path.stat().st_size / (1 << 20)
    print(f"    {path.name}: {count:,} rows ({size_mb:.1f} MB)")
    return count


def _records_frame(records: list[EnforcementRecord]) -> pd.DataFrame:
    """Records back in source column layout so load() can read the Parquet."""
    return pd.DataFrame(
        [
            (r.year, r.jurisdiction, r.metric, r.age_group, r.detection_method,
             r.fines, r.arrests, r.charges,
             r.start_date.isoformat() if r.start_date else None)
            for r in records
        ],
        columns=list(SOURCE_COLUMNS),
    )


def _buckets_frame(buckets: dict, key_names: list[str]) -> pd.DataFrame:
    rows = []
    for key, b in buckets.items():
        row = dict(zip(key_names, key))
        row.update(b.model_dump(include=set(_BUCKET_COLUMNS)))
        rows.append(row)
    return pd.DataFrame(rows, columns=key_names + _BUCKET_COLUMNS)


# ── Records -> enforcement.parquet ─────────────────────────────────────

def _transform_records(con: duckdb.DuckDBPyConnection, src: Path, dest: Path) -> list[EnforcementRecord]:
    print(f"\n  Records: {src.name} -> {dest.name}")
    raw_rows = con.execute(
        f"SELECT COUNT(*) FROM read_csv('{src}', header=true, all_varchar=true)"
    ).fetchone()[0]
    records = load(src)
    dropped = raw_rows - len(records)

    records_df = _records_frame(records)
    con.register("records_df", records_df)
    _export(con, f"SELECT {_RECORD_COLUMNS} FROM records_df", dest)
    print(f"    -> {len(records):,} records ({dropped:,} dropped, missing YEAR)")
    return records


# ── Chart snapshots ────────────────────────────────────────────────────

def _build_aggregations(
    con: duckdb.DuckDBPyConnection,
    records: list[EnforcementRecord],
    out_dir: Path,
) -> None:
    print("\n  Building aggregations:")

    snapshots = {
        "metric_summary": (["metric"], aggregate(records, "metric")),
        "yearly_by_metric": (["metric", "year"], aggregate(records, ("metric", "year"))),
        "jurisdiction_by_metric": (
            ["metric", "jurisdiction"], aggregate(records, ("metric", "jurisdiction")),
        ),
    }
    for name, (key_names, buckets) in snapshots.items():
        df = _buckets_frame(buckets, key_names)
        con.register(f"{name}_df", df)
        order = ", ".join(key_names)
        _export(con, f"SELECT * FROM {name}_df ORDER BY {order}", out_dir / f"{name}.parquet")


def transform(
    src: Path = RAW_CSV,
    processed_dir: Path = PROCESSED_DIR,
    aggregated_dir: Path = AGGREGATED_DIR,
) -> None:
    """Load the raw CSV, write typed records and the aggregation snapshots."""
    if not src.exists():
        print(f"    WARNING: {src.name} not found, skipping")
        return

    con = duckdb.connect()
    try:
        records = _transform_records(con, src, processed_dir / "enforcement.parquet")
        _build_aggregations(con, records, aggregated_dir)
    finally:
        con.close()


if __name__ == "__main__":
    transform()
