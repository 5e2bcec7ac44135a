"""Validate processed enforcement records and aggregation snapshots."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import duckdb

from pipeline.resolve import STATE_ABBREVIATIONS

PROCESSED_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"
AGGREGATED_DIR = Path(__file__).resolve().parent.parent / "data" / "aggregated"

CURRENT_YEAR = datetime.now().year
MIN_YEAR = 2008

EXPECTED_METRICS = {"speed_fines", "unlicensed_driving", "non_wearing_seatbelts"}
EXPECTED_AGGS = ["metric_summary", "yearly_by_metric", "jurisdiction_by_metric"]


def _q(sql: str) -> list:
    con = duckdb.connect()
    try:
        return con.execute(sql).fetchall()
    finally:
        con.close()


def _scalar(sql: str):
    rows = _q(sql)
    return rows[0][0] if rows else None


def _header(num: int, title: str) -> None:
    print(f"\n{'─' * 64}")
    print(f"  Check {num}: {title}")
    print(f"{'─' * 64}")


def validate(processed_dir: Path = PROCESSED_DIR, aggregated_dir: Path = AGGREGATED_DIR) -> int:
    """Run all validation checks. Returns count of issues found."""
    issues = 0
    records = processed_dir / "enforcement.parquet"

    # ── Check 1: File existence ──
    _header(1, "File existence")
    if records.exists():
        size_mb = records.stat().st_size / (1 << 20)
        print(f"  PASS  enforcement: {size_mb:.1f} MB")
    else:
        print("  FAIL  enforcement: NOT FOUND")
        issues += 1

    # ── Check 2: Row count ──
    _header(2, "Record count (expect >0)")
    if records.exists():
        count = _scalar(f"SELECT COUNT(*) FROM '{records}'")
        if count:
            print(f"  PASS  {count:,} rows")
        else:
            print("  FAIL  0 rows")
            issues += 1

    # ── Check 3: Year range ──
    _header(3, f"Year range (expect {MIN_YEAR}-{CURRENT_YEAR})")
    if records.exists():
        min_yr = _scalar(f"SELECT MIN(YEAR) FROM '{records}'")
        max_yr = _scalar(f"SELECT MAX(YEAR) FROM '{records}'")
        if min_yr is not None and min_yr >= MIN_YEAR and max_yr <= CURRENT_YEAR:
            print(f"  PASS  {min_yr} - {max_yr}")
        else:
            print(f"  WARN  {min_yr} - {max_yr}")
            issues += 1

    # ── Check 4: Non-negative counts ──
    _header(4, "Non-negative FINES / ARRESTS / CHARGES")
    if records.exists():
        for col in ["FINES", "ARRESTS", "CHARGES"]:
            bad = _scalar(f"SELECT COUNT(*) FROM '{records}' WHERE {col} < 0 OR {col} IS NULL")
            status = "PASS" if bad == 0 else "FAIL"
            if bad:
                issues += 1
            print(f"  {status}  {col}: {bad:,} negative or null")

    # ── Check 5: Jurisdiction codes ──
    _header(5, "Jurisdiction codes")
    if records.exists():
        found = [r[0] for r in _q(f"SELECT DISTINCT JURISDICTION FROM '{records}' ORDER BY 1")]
        unknown = sorted(set(found) - set(STATE_ABBREVIATIONS.values()))
        if not unknown:
            print(f"  PASS  {found}")
        else:
            print(f"  WARN  unrecognised codes: {unknown}")
            issues += 1

    # ── Check 6: Metric presence ──
    _header(6, "Metrics present")
    if records.exists():
        metrics = [r[0] for r in _q(f"SELECT DISTINCT METRIC FROM '{records}' ORDER BY 1")]
        if EXPECTED_METRICS.issubset(set(metrics)):
            print(f"  PASS  {metrics}")
        else:
            print(f"  WARN  {metrics} (expected {sorted(EXPECTED_METRICS)})")
            issues += 1

    # ── Check 7: Age group distribution ──
    _header(7, "Age group distribution")
    if records.exists():
        rows = _q(f"""
            SELECT AGE_GROUP, COUNT(*) AS n,
                   ROUND(COUNT(*) * 100.0 / SUM(COUNT(*)) OVER (), 1) AS pct
            FROM '{records}'
            GROUP BY AGE_GROUP
            ORDER BY n DESC
        """)
        for age, n, pct in rows:
            print(f"  INFO  {age}: {n:,} ({pct}%)")

    # ── Check 8: Aggregation files ──
    _header(8, "Aggregation file existence and sizes")
    for name in EXPECTED_AGGS:
        path = aggregated_dir / f"{name}.parquet"
        if path.exists():
            count = _scalar(f"SELECT COUNT(*) FROM '{path}'")
            size_mb = path.stat().st_size / (1 << 20)
            print(f"  PASS  {name}: {count:,} rows ({size_mb:.1f} MB)")
        else:
            print(f"  FAIL  {name}: NOT FOUND")
            issues += 1

    # ── Summary ──
    print(f"\n{'=' * 64}")
    if issues == 0:
        print("  All checks passed!")
    else:
        print(f"  {issues} issue(s) found")
    print(f"{'=' * 64}")

    return issues


if __name__ == "__main__":
    validate()
