"""Load police enforcement rows (CSV or processed Parquet) into typed records."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import duckdb
from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_AGE_GROUP = "Unknown"

# Source column names, case preserved
SOURCE_COLUMNS = (
    "YEAR", "JURISDICTION", "METRIC", "AGE_GROUP", "DETECTION_METHOD",
    "FINES", "ARRESTS", "CHARGES", "START_DATE",
)
COUNT_COLUMNS = ("FINES", "ARRESTS", "CHARGES")

# START_DATE is M/D/YYYY in the published CSV, ISO once written to Parquet
_DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d")


class EnforcementRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    jurisdiction: str = ""
    metric: str = ""
    age_group: str = UNKNOWN_AGE_GROUP
    detection_method: str | None = None
    start_date: date | None = None
    fines: int = Field(0, ge=0)
    arrests: int = Field(0, ge=0)
    charges: int = Field(0, ge=0)


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    for text in (value, value[:10]):
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
    return None


def _reader(path: Path) -> str:
    if path.suffix.lower() == ".parquet":
        return f"read_parquet('{path}')"
    return f"read_csv('{path}', header=true, all_varchar=true)"


def _raw(name: str, present: set[str]) -> str:
    if name not in present:
        return "CAST(NULL AS VARCHAR)"
    return f'CAST("{name}" AS VARCHAR)'


def _text(name: str, present: set[str]) -> str:
    """Trimmed text, NULL when blank or when the column is absent."""
    return f"NULLIF(TRIM({_raw(name, present)}), '')"


def load(source: str | Path) -> list[EnforcementRecord]:
    """Parse the enforcement table into records, in source row order.

    Rows without a parseable YEAR are dropped. FINES/ARRESTS/CHARGES coerce
    to 0 when missing, unparseable or negative; a blank AGE_GROUP becomes
    "Unknown".
    """
    path = Path(source)
    con = duckdb.connect()
    try:
        con.execute(f"CREATE TABLE raw AS SELECT * FROM {_reader(path)}")
        present = {r[0] for r in con.execute("DESCRIBE raw").fetchall()}

        counts = ",\n".join(
            f"GREATEST(COALESCE(TRY_CAST({_text(c, present)} AS BIGINT), 0), 0) AS {c.lower()}"
            for c in COUNT_COLUMNS
        )
        rows = con.execute(f"""
            SELECT * EXCLUDE (_row) FROM (
                SELECT
                    rowid AS _row,
                    TRY_CAST({_text("YEAR", present)} AS INTEGER) AS year,
                    COALESCE({_raw("JURISDICTION", present)}, '') AS jurisdiction,
                    COALESCE({_raw("METRIC", present)}, '') AS metric,
                    COALESCE({_text("AGE_GROUP", present)}, '{UNKNOWN_AGE_GROUP}') AS age_group,
                    {_text("DETECTION_METHOD", present)} AS detection_method,
                    {_text("START_DATE", present)} AS start_date,
                    {counts}
                FROM raw
            )
            WHERE year IS NOT NULL
            ORDER BY _row
        """).fetchall()
    finally:
        con.close()

    return [
        EnforcementRecord(
            year=year,
            jurisdiction=jurisdiction,
            metric=metric,
            age_group=age_group,
            detection_method=detection_method,
            start_date=_parse_date(start_date),
            fines=fines,
            arrests=arrests,
            charges=charges,
        )
        for (year, jurisdiction, metric, age_group, detection_method,
             start_date, fines, arrests, charges) in rows
    ]
