"""MCP server for Australian police road enforcement data."""

from __future__ import annotations

from fastmcp import FastMCP

from api import queries

mcp = FastMCP(
    "Australian Road Enforcement",
    instructions=(
        "Police road enforcement outcomes (fines, arrests, charges) by offence "
        "metric, jurisdiction, year and age group. Call get_filter_options first "
        "to see available metrics, years and age groups. Metrics include "
        "speed_fines, unlicensed_driving and non_wearing_seatbelts. Jurisdictions "
        "are state/territory codes: NSW, VIC, QLD, WA, SA, TAS, NT, ACT. Year "
        "selectors also accept 'Average' and 'All years'; age group accepts 'All ages'."
    ),
)


@mcp.tool()
def get_filter_options(metric: str | None = None) -> dict:
    """Available metrics, years, age groups and jurisdictions."""
    return queries.get_filter_options(metric)


@mcp.tool()
def get_offence_ratios() -> list[dict]:
    """Arrests per fine and charges per fine for each offence metric."""
    return queries.get_offence_ratios()


@mcp.tool()
def get_metric_comparison(reference: str = "speed_fines") -> list[dict]:
    """Totals of each metric next to the reference metric's totals."""
    return queries.get_metric_comparison(reference)


@mcp.tool()
def get_yearly_outcomes(metric: str = "speed_fines") -> list[dict]:
    """Yearly fines vs severe outcomes (arrests + charges), raw and per 1000."""
    return queries.get_yearly_outcomes(metric)


@mcp.tool()
def get_monthly_outcomes(metric: str = "speed_fines") -> list[dict]:
    """Monthly fines vs severe outcomes by START_DATE."""
    return queries.get_monthly_outcomes(metric)


@mcp.tool()
def get_jurisdiction_breakdown(metric: str = "speed_fines", year: str = "Average") -> list[dict]:
    """Fines/arrests/charges per jurisdiction for a year, 'Average' or 'All years'."""
    return queries.get_jurisdiction_breakdown(metric, year)


@mcp.tool()
def get_age_severity(metric: str = "speed_fines", age_group: str = "All ages") -> list[dict]:
    """Severe-outcome share of national enforcement per state map feature."""
    return queries.get_age_severity(metric, age_group)


@mcp.tool()
def get_detection_flows(metric: str = "speed_fines") -> dict:
    """Camera vs police detection flowing into fines, arrests and charges."""
    return queries.get_detection_flows(metric)


def main():
    mcp.run()


if __name__ == "__main__":
    main()
