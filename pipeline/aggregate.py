"""Group enforcement records and reduce fines/arrests/charges into buckets."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field, field_validator

from pipeline.load import EnforcementRecord

# ── Selector sentinels ─────────────────────────────────────────────────
ALL_AGES = "All ages"
AVERAGE = "Average"
ALL_YEARS = "All years"

COUNT_FIELDS = ("fines", "arrests", "charges")
KEY_FIELDS = ("year", "jurisdiction", "metric", "age_group", "detection_method")

POLICE_ISSUED = "Police-issued"
CAMERA_BASED = "Camera-based"


class Reducer(str, Enum):
    SUM = "sum"
    MEAN = "mean"


def ratio(numerator: float, denominator: float) -> float:
    """Division where a zero denominator yields 0 instead of NaN."""
    if not denominator:
        return 0
    return numerator / denominator


def per_thousand(part: float, total: float) -> float:
    return ratio(part, total) * 1000


class FilterConfig(BaseModel):
    """Selector state (metric / year / age group) applied before grouping.

    None and the sentinels bypass their filter. Selecting AVERAGE also
    switches the reducer to a mean across the bypassed years.
    """

    model_config = ConfigDict(frozen=True)

    metric: str | None = None
    year: int | str | None = None
    age_group: str | None = None

    @field_validator("year", mode="before")
    @classmethod
    def _check_year(cls, v: Any) -> int | str | None:
        if v is None or v in (AVERAGE, ALL_YEARS):
            return v
        if isinstance(v, bool):
            raise ValueError(f"invalid year selection: {v!r}")
        if isinstance(v, int):
            return v
        if isinstance(v, str) and v.strip().isdigit():
            return int(v.strip())
        raise ValueError(f"invalid year selection: {v!r}")

    @property
    def reducer(self) -> Reducer:
        return Reducer.MEAN if self.year == AVERAGE else Reducer.SUM

    def apply(self, records: Iterable[EnforcementRecord]) -> list[EnforcementRecord]:
        out = list(records)
        if self.metric is not None:
            out = [r for r in out if r.metric == self.metric]
        if isinstance(self.year, int):
            out = [r for r in out if r.year == self.year]
        if self.age_group is not None and self.age_group != ALL_AGES:
            out = [r for r in out if r.age_group == self.age_group]
        return out


class Bucket(BaseModel):
    """Reduced totals for one aggregation key. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    key: tuple[Any, ...]
    count: int
    fines: int | float = 0
    arrests: int | float = 0
    charges: int | float = 0

    @computed_field
    @property
    def severe(self) -> int | float:
        return self.arrests + self.charges

    @computed_field
    @property
    def total(self) -> int | float:
        return self.fines + self.arrests + self.charges

    @computed_field
    @property
    def arrests_per_fine(self) -> float:
        return ratio(self.arrests, self.fines)

    @computed_field
    @property
    def charges_per_fine(self) -> float:
        return ratio(self.charges, self.fines)

    @computed_field
    @property
    def severe_share(self) -> float:
        return ratio(self.severe, self.total)

    @computed_field
    @property
    def fines_share(self) -> float:
        return ratio(self.fines, self.total)


KeySpec = str | Sequence[str] | Callable[[EnforcementRecord], Any]


def _key_fn(key: KeySpec) -> Callable[[EnforcementRecord], tuple]:
    if callable(key):
        def wrapped(r: EnforcementRecord) -> tuple:
            k = key(r)
            return k if isinstance(k, tuple) else (k,)
        return wrapped

    fields = (key,) if isinstance(key, str) else tuple(key)
    if not 1 <= len(fields) <= 2:
        raise ValueError(f"aggregation key needs one or two fields, got {fields}")
    unknown = [f for f in fields if f not in KEY_FIELDS]
    if unknown:
        raise ValueError(f"unknown key field(s): {unknown}")
    return lambda r: tuple(getattr(r, f) for f in fields)


def _reducers(reducers: Reducer | Mapping[str, Reducer] | None) -> dict[str, Reducer]:
    if reducers is None:
        return {f: Reducer.SUM for f in COUNT_FIELDS}
    if isinstance(reducers, Reducer):
        return {f: reducers for f in COUNT_FIELDS}
    return {f: Reducer(reducers.get(f, Reducer.SUM)) for f in COUNT_FIELDS}


def aggregate(
    records: Iterable[EnforcementRecord],
    key: KeySpec,
    reducers: Reducer | Mapping[str, Reducer] | None = None,
    filters: FilterConfig | None = None,
) -> dict[tuple, Bucket]:
    """Group records by ``key`` and reduce the count fields.

    ``filters`` restricts the records first and, when ``reducers`` is not
    given, picks the reducer (mean for the AVERAGE year selection). Buckets
    come back in first-occurrence order.
    """
    if filters is not None:
        records = filters.apply(records)
        if reducers is None:
            reducers = filters.reducer
    how = _reducers(reducers)
    key_of = _key_fn(key)

    groups: dict[tuple, list[EnforcementRecord]] = {}
    for r in records:
        groups.setdefault(key_of(r), []).append(r)

    buckets: dict[tuple, Bucket] = {}
    for k, members in groups.items():
        values = {}
        for f in COUNT_FIELDS:
            s = sum(getattr(r, f) for r in members)
            values[f] = s / len(members) if how[f] is Reducer.MEAN else s
        buckets[k] = Bucket(key=k, count=len(members), **values)
    return buckets


# ── Derived keys / totals ──────────────────────────────────────────────

def detection_bucket(method: str | None) -> str | None:
    """Collapse a free-text detection method into police vs camera."""
    if not method:
        return None
    if "Police" in method:
        return POLICE_ISSUED
    if "camera" in method.lower():
        return CAMERA_BASED
    return None


def month_key(record: EnforcementRecord) -> str | None:
    if record.start_date is None:
        return None
    return f"{record.start_date.year}-{record.start_date.month:02d}"


def national_total(buckets: Iterable[Bucket], fallback: Iterable[Bucket] | None = None) -> int | float:
    """Sum of bucket totals, falling back to ``fallback`` and finally 1."""
    total = sum(b.total for b in buckets)
    if total == 0 and fallback is not None:
        total = sum(b.total for b in fallback)
    return total or 1


def distinct(records: Iterable[EnforcementRecord], field: str) -> list:
    return sorted({getattr(r, field) for r in records if getattr(r, field) is not None})
