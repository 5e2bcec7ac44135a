"""Pydantic response models for the API."""

from __future__ import annotations

from pydantic import BaseModel


class FilterOptions(BaseModel):
    metrics: list[str]
    years: list[int | str]
    age_groups: list[str]
    jurisdictions: list[str]


class OffenceRatio(BaseModel):
    metric: str
    fines: int
    arrests: int
    charges: int
    arrests_per_fine: float
    charges_per_fine: float
    severe_share: float


class MetricComparison(BaseModel):
    metric: str
    fines: int
    arrests: int
    charges: int
    reference_fines: int
    reference_arrests: int
    reference_charges: int


class YearlyOutcome(BaseModel):
    year: int
    fines: int
    severe: int
    total: int
    fines_per_1000: float
    severe_per_1000: float
    fines_thousands: float
    severe_thousands: float


class MonthlyOutcome(BaseModel):
    month: str
    fines: int
    severe: int
    total: int


class JurisdictionRow(BaseModel):
    jurisdiction: str
    fines: int
    arrests: int
    charges: int
    value: float
    fines_share: float


class AgeSeverityRow(BaseModel):
    feature_index: int
    jurisdiction: str | None = None
    label: str
    matched: bool
    has_data: bool
    fines: int
    arrests: int
    charges: int
    total: int
    severe: int
    severe_share: float
    national_total: int


class FlowLink(BaseModel):
    source: int
    target: int
    value: int
    share_of_source: float


class DetectionFlows(BaseModel):
    nodes: list[str]
    links: list[FlowLink]
