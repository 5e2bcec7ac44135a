"""Australian Police Road Enforcement Dashboard."""

from __future__ import annotations

import copy

import streamlit as st

from api import queries
from dashboard import charts
from pipeline.aggregate import AVERAGE, FilterConfig
from pipeline.resolve import GEOGRAPHY_PATH, GeographyUnavailable, load_geography

# ── Page config ────────────────────────────────────────────────────────
st.set_page_config(
    page_title="Road Enforcement EDA",
    page_icon="🚓",
    layout="wide",
)
st.title("Australian Police Road Enforcement")


# ── Helpers ────────────────────────────────────────────────────────────
def show(fig, name: str) -> None:
    """Render a figure with image export in the modebar and an HTML download."""
    st.plotly_chart(fig, use_container_width=True, config=charts.export_config(name, export_format))
    st.download_button(
        "Download HTML", charts.to_html(fig), file_name=f"{name}.html",
        mime="text/html", key=f"dl-{name}",
    )


@st.cache_data(ttl=3600)
def _geography() -> dict:
    return load_geography(GEOGRAPHY_PATH)


# ── Sidebar filters ───────────────────────────────────────────────────
options = queries.get_filter_options()
if not options["metrics"]:
    st.error("No enforcement data found. Run `python -m pipeline.build` first.")
    st.stop()

st.sidebar.header("Filters")
default_metric = queries.DEFAULT_METRIC if queries.DEFAULT_METRIC in options["metrics"] else options["metrics"][0]
metric = st.sidebar.selectbox(
    "Offence metric", options["metrics"],
    index=options["metrics"].index(default_metric),
    help="Speeding, unlicensed driving, seatbelt non-compliance, ...",
)
export_format = st.sidebar.radio(
    "Chart export format", charts.EXPORT_FORMATS, horizontal=True,
    help="Format of the modebar camera download",
)
scoped = queries.get_filter_options(metric)
selection = FilterConfig(metric=metric)

# ── Tabs ───────────────────────────────────────────────────────────────
tab_offence, tab_trend, tab_jur, tab_map, tab_detect = st.tabs([
    "Offence Comparison", "Temporal Trend", "Jurisdictions",
    "Age Severity Map", "Detection Method",
])


# ═══════════════════════════════════════════════════════════════════════
# TAB 1: Offence comparison
# ═══════════════════════════════════════════════════════════════════════
with tab_offence:
    st.subheader("Arrests and Charges per Fine by Offence")
    ratios = queries.get_offence_ratios()
    if ratios:
        show(charts.offence_ratio_bar(ratios), "offence-ratios")

    st.subheader(f"{metric} vs Other Offences")
    comparison = queries.get_metric_comparison(metric)
    if comparison:
        show(charts.metric_comparison_scatter(comparison, metric), "metric-comparison")
    else:
        st.info("No other offence metrics to compare.")


# ═══════════════════════════════════════════════════════════════════════
# TAB 2: Temporal trend
# ═══════════════════════════════════════════════════════════════════════
with tab_trend:
    yearly = queries.get_yearly_outcomes(metric)
    if yearly:
        col1, col2 = st.columns(2)
        with col1:
            st.subheader("Outcome Mix per 1000")
            show(charts.yearly_stacked_area(yearly), "yearly-area")
        with col2:
            st.subheader("Fines vs Severe Outcomes")
            show(charts.yearly_stacked_bar(yearly), "yearly-bar")
    else:
        st.info("No yearly data for this metric.")

    st.subheader("Monthly Trend")
    monthly = queries.get_monthly_outcomes(metric)
    if monthly:
        show(charts.monthly_stacked_area(monthly), "monthly-area")
    else:
        st.caption("No START_DATE values recorded for this metric.")


# ═══════════════════════════════════════════════════════════════════════
# TAB 3: Jurisdiction consistency
# ═══════════════════════════════════════════════════════════════════════
with tab_jur:
    st.subheader("Enforcement Volume and Fines Ratio by Jurisdiction")
    year = st.selectbox("Select year", scoped["years"], index=scoped["years"].index(AVERAGE), key="jur-year")
    selection = selection.model_copy(update={"year": year})
    breakdown = queries.jurisdiction_breakdown(selection)
    if breakdown and any(r["value"] for r in breakdown):
        show(charts.jurisdiction_treemap(breakdown, str(year)), "jurisdiction-treemap")
    else:
        st.info("No jurisdiction data for the selected year.")


# ═══════════════════════════════════════════════════════════════════════
# TAB 4: Age severity choropleth
# ═══════════════════════════════════════════════════════════════════════
with tab_map:
    st.subheader("Severe Outcomes by Jurisdiction")
    age = st.selectbox("Select age group", scoped["age_groups"], index=0, key="map-age")
    selection = selection.model_copy(update={"age_group": age})
    try:
        geo = copy.deepcopy(_geography())
    except GeographyUnavailable as exc:
        st.error(str(exc))
    else:
        rows = queries.age_severity(selection, geography=geo)
        show(charts.age_severity_choropleth(rows, geo), "age-severity-map")
        unmatched = [r["label"] for r in rows if not r["matched"]]
        if unmatched:
            st.caption(f"No data: {', '.join(unmatched)}")


# ═══════════════════════════════════════════════════════════════════════
# TAB 5: Detection method
# ═══════════════════════════════════════════════════════════════════════
with tab_detect:
    st.subheader("Detection Method → Enforcement Outcome")
    flows = queries.get_detection_flows(metric)
    if flows["links"]:
        show(charts.detection_sankey(flows), "detection-flows")
    else:
        st.info("No camera or police detection records for this metric.")
