"""Plotly figure builders for the enforcement dashboard."""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from pipeline.aggregate import ratio

FINES_COLOR = "#3182bd"
SEVERE_COLOR = "#e6550d"
ARREST_COLOR = "#e6550d"
CHARGE_COLOR = "#31a354"
CAMERA_COLOR = "#1976D2"
POLICE_COLOR = "#D32F2F"
OUTCOME_NODE_COLOR = "#555555"
NO_DATA_COLOR = "#eeeeee"

RATIO_LABELS = {"arrests_per_fine": "Arrests per Fine", "charges_per_fine": "Charges per Fine"}


# ── Export helper ──────────────────────────────────────────────────────

EXPORT_FORMATS = ("svg", "png")


def export_config(filename: str, fmt: str = "svg", scale: int = 2) -> dict:
    """Plotly modebar config whose camera button downloads ``filename``."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"unsupported export format: {fmt!r}")
    return {
        "displaylogo": False,
        "toImageButtonOptions": {"format": fmt, "filename": filename, "scale": scale},
    }


def to_html(fig: go.Figure) -> bytes:
    """Standalone interactive HTML for a download button."""
    return fig.to_html(include_plotlyjs="cdn", full_html=True).encode("utf-8")


# ── Offence comparison ─────────────────────────────────────────────────

def offence_ratio_bar(rows: list[dict]) -> go.Figure:
    df = pd.DataFrame(rows, columns=["metric", *RATIO_LABELS])
    long = df.melt(id_vars=["metric"], value_vars=list(RATIO_LABELS),
                   var_name="ratio", value_name="value")
    long["ratio"] = long["ratio"].map(RATIO_LABELS)
    fig = px.bar(
        long, x="metric", y="value", color="ratio", barmode="group",
        color_discrete_map={"Arrests per Fine": "#1f77b4", "Charges per Fine": "#ff7f0e"},
        labels={"metric": "Offence", "value": "Ratio", "ratio": ""},
    )
    fig.update_layout(xaxis_tickangle=-40)
    return fig


def metric_comparison_scatter(rows: list[dict], reference: str) -> go.Figure:
    fig = make_subplots(rows=1, cols=2, subplot_titles=(
        f"{reference} Comparison", "Other Offences Comparison",
    ))
    metrics = [r["metric"] for r in rows]
    panels = [
        (1, "reference_fines", "reference_arrests", "reference_charges"),
        (2, "fines", "arrests", "charges"),
    ]
    for col, x, arrests, charges in panels:
        for field, name, color in [(arrests, "Arrests", ARREST_COLOR), (charges, "Charges", CHARGE_COLOR)]:
            fig.add_trace(go.Scatter(
                x=[r[x] for r in rows], y=[r[field] for r in rows],
                mode="markers", name=name, text=metrics,
                marker=dict(color=color, size=10, opacity=0.7),
                showlegend=col == 1,
                hovertemplate="%{text}<br>Fines: %{x:,}<br>" + name + ": %{y:,}<extra></extra>",
            ), row=1, col=col)
    fig.update_xaxes(title_text=reference, row=1, col=1)
    fig.update_xaxes(title_text="Fines", row=1, col=2)
    fig.update_yaxes(title_text="Arrests / Charges", row=1, col=1)
    return fig


# ── Temporal trend ─────────────────────────────────────────────────────

def yearly_stacked_area(rows: list[dict]) -> go.Figure:
    df = pd.DataFrame(rows, columns=["year", "fines_per_1000", "severe_per_1000"])
    long = df.melt(id_vars=["year"], var_name="series", value_name="per_1000")
    long["series"] = long["series"].map({
        "fines_per_1000": "Fines", "severe_per_1000": "Severe (Arrests+Charges)",
    })
    fig = px.area(
        long, x="year", y="per_1000", color="series",
        color_discrete_sequence=[FINES_COLOR, SEVERE_COLOR],
        labels={"year": "Year", "per_1000": "Per 1000 enforcement actions", "series": ""},
    )
    fig.update_xaxes(dtick=1)
    return fig


def yearly_stacked_bar(rows: list[dict]) -> go.Figure:
    df = pd.DataFrame(rows, columns=["year", "fines_thousands", "severe_thousands"])
    long = df.melt(id_vars=["year"], var_name="series", value_name="thousands")
    long["series"] = long["series"].map({
        "fines_thousands": "Fines", "severe_thousands": "Severe (Arrests+Charges)",
    })
    fig = px.bar(
        long, x="year", y="thousands", color="series", barmode="stack",
        color_discrete_sequence=[FINES_COLOR, SEVERE_COLOR],
        labels={"year": "Year", "thousands": "Count (thousands)", "series": ""},
    )
    fig.update_xaxes(type="category")
    return fig


def monthly_stacked_area(rows: list[dict]) -> go.Figure:
    df = pd.DataFrame(rows, columns=["month", "severe", "fines"])
    df["month"] = pd.to_datetime(df["month"] + "-01")
    long = df.melt(id_vars=["month"], var_name="series", value_name="count")
    long["series"] = long["series"].map({"severe": "Severe (Arrests+Charges)", "fines": "Fines"})
    return px.area(
        long, x="month", y="count", color="series",
        color_discrete_sequence=[SEVERE_COLOR, FINES_COLOR],
        labels={"month": "Month", "count": "Count", "series": ""},
    )


# ── Jurisdiction treemap ───────────────────────────────────────────────

def jurisdiction_treemap(rows: list[dict], year_label: str) -> go.Figure:
    df = pd.DataFrame(rows, columns=[
        "jurisdiction", "fines", "arrests", "charges", "value", "fines_share",
    ])
    fig = px.treemap(
        df, path=[px.Constant("Jurisdictions"), "jurisdiction"], values="value",
        color="fines_share", color_continuous_scale="Viridis",
        custom_data=["fines", "arrests", "charges", "fines_share"],
    )
    fig.update_traces(
        texttemplate="%{label}<br>%{customdata[3]:.0%}",
        hovertemplate=(
            f"<b>%{{label}} ({year_label})</b><br>"
            "Fines: %{customdata[0]:,}<br>Arrests: %{customdata[1]:,}<br>"
            "Charges: %{customdata[2]:,}<br>Fines ratio: %{customdata[3]:.1%}<extra></extra>"
        ),
    )
    fig.update_layout(coloraxis_colorbar=dict(title="Fines ratio", tickformat=".0%"))
    return fig


# ── Age severity choropleth ────────────────────────────────────────────

def age_severity_choropleth(rows: list[dict], geography: dict) -> go.Figure:
    """Matched features shaded by severe share (zero when empty); unmatched drawn grey."""
    geo = {
        "type": "FeatureCollection",
        "features": [{**f, "id": str(i)} for i, f in enumerate(geography.get("features", []))],
    }
    matched = [r for r in rows if r["matched"]]
    unmatched = [r for r in rows if not r["matched"]]
    max_share = max((r["severe_share"] for r in matched), default=0) or 0.01

    fig = go.Figure()
    if unmatched:
        fig.add_trace(go.Choropleth(
            geojson=geo,
            locations=[str(r["feature_index"]) for r in unmatched],
            z=[0] * len(unmatched),
            colorscale=[[0, NO_DATA_COLOR], [1, NO_DATA_COLOR]],
            showscale=False,
            text=[r["label"] for r in unmatched],
            hovertemplate="<b>%{text}</b><br>No data<extra></extra>",
            marker_line_color="#333", marker_line_width=0.5,
        ))
    if matched:
        fig.add_trace(go.Choropleth(
            geojson=geo,
            locations=[str(r["feature_index"]) for r in matched],
            z=[r["severe_share"] for r in matched],
            zmin=0, zmax=max_share,
            colorscale="OrRd",
            text=[r["label"] for r in matched],
            customdata=[
                [r["fines"], r["arrests"], r["charges"], r["severe"],
                 ratio(r["fines"], r["total"]), ratio(r["arrests"], r["total"]),
                 ratio(r["charges"], r["total"])]
                for r in matched
            ],
            hovertemplate=(
                "<b>%{text}</b><br>"
                "Fines: %{customdata[0]:,} (%{customdata[4]:.1%})<br>"
                "Arrests: %{customdata[1]:,} (%{customdata[5]:.1%})<br>"
                "Charges: %{customdata[2]:,} (%{customdata[6]:.1%})<br>"
                "Severe (Arrests+Charges): %{customdata[3]:,}<br>"
                "Severe share of national enforcement: %{z:.2%}<extra></extra>"
            ),
            colorbar=dict(title="Severe outcomes<br>(% of national)", tickformat=".2%"),
            marker_line_color="#333", marker_line_width=0.5,
        ))
    fig.update_geos(fitbounds="locations", visible=False)
    fig.update_layout(margin=dict(l=0, r=0, t=0, b=0))
    return fig


# ── Detection method Sankey ────────────────────────────────────────────

def detection_sankey(flows: dict) -> go.Figure:
    nodes = flows["nodes"]
    node_colors = [
        CAMERA_COLOR if n == "Camera-based" else POLICE_COLOR if n == "Police-issued" else OUTCOME_NODE_COLOR
        for n in nodes
    ]
    links = flows["links"]
    link_colors = [
        "rgba(25,118,210,0.4)" if nodes[l["source"]] == "Camera-based" else "rgba(211,47,47,0.4)"
        for l in links
    ]
    fig = go.Figure(go.Sankey(
        arrangement="snap",
        node=dict(label=nodes, color=node_colors, pad=20, thickness=15),
        link=dict(
            source=[l["source"] for l in links],
            target=[l["target"] for l in links],
            value=[l["value"] for l in links],
            color=link_colors,
            customdata=[l["share_of_source"] for l in links],
            hovertemplate=(
                "%{source.label} → %{target.label}<br>%{value:,} instances<br>"
                "(%{customdata:.1%} of %{source.label})<extra></extra>"
            ),
        ),
    ))
    return fig
