"""Shared chart-data layer for the dashboard, API and MCP server."""

from __future__ import annotations

import math
from functools import lru_cache
from pathlib import Path

from pipeline.aggregate import (
    ALL_AGES,
    ALL_YEARS,
    AVERAGE,
    CAMERA_BASED,
    POLICE_ISSUED,
    FilterConfig,
    aggregate,
    detection_bucket,
    distinct,
    month_key,
    national_total,
    per_thousand,
    ratio,
)
from pipeline.load import EnforcementRecord, load
from pipeline.resolve import GEOGRAPHY_PATH, annotate_features, load_geography

_ROOT = Path(__file__).resolve().parent.parent / "data"
_PROCESSED = _ROOT / "processed" / "enforcement.parquet"
_RAW = _ROOT / "raw" / "police_enforcement_2024_fines.csv"

DEFAULT_METRIC = "speed_fines"
OUTCOMES = ("fines", "arrests", "charges")


@lru_cache(maxsize=4)
def _load_cached(path: str) -> tuple[EnforcementRecord, ...]:
    return tuple(load(path))


def records() -> tuple[EnforcementRecord, ...]:
    """Processed Parquet when the pipeline has run, otherwise the raw CSV.

    Empty when neither file exists yet.
    """
    for path in (_PROCESSED, _RAW):
        if path.exists():
            return _load_cached(str(path))
    return ()


def _counts(b) -> dict:
    return {"fines": b.fines, "arrests": b.arrests, "charges": b.charges}


# ── Filter options ────────────────────────────────────────────────────

def get_filter_options(metric: str | None = None) -> dict:
    """Selector values; sentinel options come first."""
    rows = records()
    scoped = FilterConfig(metric=metric).apply(rows)
    return {
        "metrics": distinct(rows, "metric"),
        "years": [AVERAGE, ALL_YEARS] + distinct(scoped, "year"),
        "age_groups": [ALL_AGES] + distinct(scoped, "age_group"),
        "jurisdictions": distinct(scoped, "jurisdiction"),
    }


# ── Offence comparison (grouped bar / scatter) ───────────────────────

def get_offence_ratios() -> list[dict]:
    buckets = aggregate(records(), "metric")
    return [
        {
            "metric": metric,
            **_counts(b),
            "arrests_per_fine": b.arrests_per_fine,
            "charges_per_fine": b.charges_per_fine,
            "severe_share": b.severe_share,
        }
        for (metric,), b in buckets.items()
    ]


def get_metric_comparison(reference: str = DEFAULT_METRIC) -> list[dict]:
    """Every other metric alongside the reference metric's totals."""
    buckets = aggregate(records(), "metric")
    ref = buckets.get((reference,))
    ref_counts = _counts(ref) if ref else dict.fromkeys(OUTCOMES, 0)
    return [
        {
            "metric": metric,
            **_counts(b),
            **{f"reference_{k}": v for k, v in ref_counts.items()},
        }
        for (metric,), b in buckets.items()
        if metric != reference
    ]


# ── Temporal trend (stacked area / stacked bar) ──────────────────────

def get_yearly_outcomes(metric: str = DEFAULT_METRIC) -> list[dict]:
    buckets = aggregate(records(), "year", filters=FilterConfig(metric=metric))
    out = []
    for (year,), b in sorted(buckets.items()):
        out.append({
            "year": year,
            "fines": b.fines,
            "severe": b.severe,
            "total": b.total,
            "fines_per_1000": per_thousand(b.fines, b.total),
            "severe_per_1000": per_thousand(b.severe, b.total),
            "fines_thousands": b.fines / 1000,
            "severe_thousands": b.severe / 1000,
        })
    return out


def get_monthly_outcomes(metric: str = DEFAULT_METRIC) -> list[dict]:
    dated = [r for r in FilterConfig(metric=metric).apply(records()) if r.start_date]
    buckets = aggregate(dated, month_key)
    return [
        {"month": month, "fines": b.fines, "severe": b.severe, "total": b.total}
        for (month,), b in sorted(buckets.items())
    ]


# ── Jurisdiction consistency (treemap) ───────────────────────────────

def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def jurisdiction_breakdown(filters: FilterConfig) -> list[dict]:
    """Per-jurisdiction totals for a selection; AVERAGE is the per-record mean."""
    buckets = aggregate(records(), "jurisdiction", filters=filters)
    out = []
    for (jurisdiction,), b in buckets.items():
        counts = _counts(b)
        if filters.year == AVERAGE:
            counts = {k: _round_half_up(v) for k, v in counts.items()}
        out.append({
            "jurisdiction": jurisdiction,
            **counts,
            "value": b.total,
            "fines_share": b.fines_share,
        })
    return sorted(out, key=lambda r: r["value"], reverse=True)


def get_jurisdiction_breakdown(
    metric: str = DEFAULT_METRIC,
    year: int | str = AVERAGE,
) -> list[dict]:
    return jurisdiction_breakdown(FilterConfig(metric=metric, year=year))


# ── Age severity (choropleth) ────────────────────────────────────────

def age_severity(filters: FilterConfig, geography: dict | None = None) -> list[dict]:
    """One row per map feature with its severe share of national enforcement.

    Only the metric and age group of ``filters`` apply; years are always
    summed. Raises GeographyUnavailable when no geography is given and the
    boundary file cannot be loaded.
    """
    if geography is None:
        geography = load_geography(GEOGRAPHY_PATH)
    age_group = filters.age_group or ALL_AGES

    rows = FilterConfig(metric=filters.metric).apply(records())
    by_jur = aggregate(rows, "jurisdiction", filters=FilterConfig(age_group=age_group))
    all_ages = aggregate(rows, "jurisdiction")
    total = national_total(
        by_jur.values(),
        fallback=all_ages.values() if age_group != ALL_AGES else None,
    )

    annotate_features(geography, [k for (k,) in all_ages])

    out = []
    for i, feature in enumerate(geography.get("features", [])):
        props = feature["properties"]
        match = props["_match"]
        b = by_jur.get((match,)) if match is not None else None
        counts = _counts(b) if b else dict.fromkeys(OUTCOMES, 0)
        severe = counts["arrests"] + counts["charges"]
        local = sum(counts.values())
        out.append({
            "feature_index": i,
            "jurisdiction": match,
            "label": props["_label"],
            "matched": match is not None,
            "has_data": local > 0,
            **counts,
            "total": local,
            "severe": severe,
            "severe_share": ratio(severe, total),
            "national_total": total,
        })
    return out


def get_age_severity(
    metric: str = DEFAULT_METRIC,
    age_group: str = ALL_AGES,
    geography: dict | None = None,
) -> list[dict]:
    return age_severity(FilterConfig(metric=metric, age_group=age_group), geography)


# ── Detection method (Sankey) ────────────────────────────────────────

def get_detection_flows(metric: str = DEFAULT_METRIC) -> dict:
    """Camera vs police detection flowing into fines / arrests / charges."""
    sources = [CAMERA_BASED, POLICE_ISSUED]
    targets = [o.title() for o in OUTCOMES]
    nodes = sources + targets

    rows = [
        r for r in FilterConfig(metric=metric).apply(records())
        if detection_bucket(r.detection_method)
    ]
    buckets = aggregate(rows, lambda r: detection_bucket(r.detection_method))

    links = []
    for i, source in enumerate(sources):
        b = buckets.get((source,))
        if b is None:
            continue
        for outcome, target in zip(OUTCOMES, targets):
            value = getattr(b, outcome)
            if value > 0:
                links.append({
                    "source": i,
                    "target": nodes.index(target),
                    "value": value,
                    "share_of_source": ratio(value, b.total),
                })
    return {"nodes": nodes, "links": links}
