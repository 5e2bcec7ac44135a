"""FastAPI application for Australian police road enforcement data."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query
from pydantic import ValidationError

from api import queries
from api.models import (
    AgeSeverityRow,
    DetectionFlows,
    FilterOptions,
    JurisdictionRow,
    MetricComparison,
    MonthlyOutcome,
    OffenceRatio,
    YearlyOutcome,
)
from pipeline.aggregate import ALL_AGES, AVERAGE
from pipeline.resolve import GeographyUnavailable

app = FastAPI(
    title="Australian Road Enforcement API",
    description="Fines, arrests and charges by offence metric, jurisdiction, year and age group",
    version="0.1.0",
)


@app.get("/")
def root():
    return {
        "message": "Australian Road Enforcement API",
        "endpoints": [
            "/filters", "/offence-ratios", "/metric-comparison",
            "/yearly-outcomes", "/monthly-outcomes", "/jurisdictions",
            "/age-severity", "/detection-flows",
        ],
    }


@app.get("/filters", response_model=FilterOptions)
def filters(
    metric: str | None = Query(None, description="Offence metric, e.g. speed_fines"),
):
    """Available selector values."""
    return queries.get_filter_options(metric)


@app.get("/offence-ratios", response_model=list[OffenceRatio])
def offence_ratios():
    return queries.get_offence_ratios()


@app.get("/metric-comparison", response_model=list[MetricComparison])
def metric_comparison(
    reference: str = Query(queries.DEFAULT_METRIC, description="Reference metric"),
):
    return queries.get_metric_comparison(reference)


@app.get("/yearly-outcomes", response_model=list[YearlyOutcome])
def yearly_outcomes(
    metric: str = Query(queries.DEFAULT_METRIC, description="Offence metric"),
):
    return queries.get_yearly_outcomes(metric)


@app.get("/monthly-outcomes", response_model=list[MonthlyOutcome])
def monthly_outcomes(
    metric: str = Query(queries.DEFAULT_METRIC, description="Offence metric"),
):
    return queries.get_monthly_outcomes(metric)


@app.get("/jurisdictions", response_model=list[JurisdictionRow])
def jurisdictions(
    metric: str = Query(queries.DEFAULT_METRIC, description="Offence metric"),
    year: str = Query(AVERAGE, description="A year, 'Average' or 'All years'"),
):
    try:
        return queries.get_jurisdiction_breakdown(metric, year)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"invalid year: {year}") from exc


@app.get("/age-severity", response_model=list[AgeSeverityRow])
def age_severity(
    metric: str = Query(queries.DEFAULT_METRIC, description="Offence metric"),
    age_group: str = Query(ALL_AGES, description="Age group or 'All ages'"),
):
    try:
        return queries.get_age_severity(metric, age_group)
    except GeographyUnavailable as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/detection-flows", response_model=DetectionFlows)
def detection_flows(
    metric: str = Query(queries.DEFAULT_METRIC, description="Offence metric"),
):
    return queries.get_detection_flows(metric)
