from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from core.aggregations import (
    approval_distribution,
    avg_mileage_by_vehicle_year,
    claim_status_crosstab,
    count_by_status,
    credit_score_histogram,
    driving_experience_averages,
    mileage_distribution,
    risk_approval_crosstab,
    safe_driving_split,
    status_share,
)
from core.charts import STATUS_COLORS, status_color_scale, to_vega_spec
from core.data import empty_applications
from core.filters import FilterCriteria, id_text


TABLE_ROW_LIMIT = 10
TABLE_COLUMNS = ["id", "credit_score", "vehicle_type", "risk_category", "approval_status"]


def _table_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    rows = []
    for record in df.head(TABLE_ROW_LIMIT).to_dict(orient="records"):
        rows.append({col: record.get(col) for col in TABLE_COLUMNS})
    return rows


def _crosstab_chart(rows: List[Dict[str, Any]], key: str, title: str) -> alt.Chart:
    long_df = pd.DataFrame(rows).melt(id_vars=key, value_vars=["Approved", "Rejected"], var_name="status", value_name="count")
    long_df[key] = long_df[key].astype(str)
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X(f"{key}:N", title=title, sort=None),
            xOffset="status:N",
            y=alt.Y("count:Q", title="Applications", axis=alt.Axis(format="d")),
            color=alt.Color("status:N", title="Status", scale=status_color_scale()),
            tooltip=[alt.Tooltip(f"{key}:N", title=title), "status:N", "count:Q"],
        )
        .properties(height=260)
    )


def _build_charts(summaries: Dict[str, Any]) -> Dict[str, Any]:
    charts: Dict[str, Any] = {}

    approval_df = pd.DataFrame(summaries["approval_distribution"])
    if approval_df["value"].sum() > 0:
        bar = (
            alt.Chart(approval_df)
            .mark_bar()
            .encode(
                x=alt.X("name:N", title=None, sort=None),
                y=alt.Y("value:Q", title="Applications", axis=alt.Axis(format="d")),
                color=alt.Color("name:N", scale=status_color_scale(), legend=None),
                tooltip=["name:N", "value:Q"],
            )
            .properties(height=260)
        )
        share_df = pd.DataFrame(summaries["status_share"])
        base = alt.Chart(share_df).encode(
            theta=alt.Theta("value:Q", stack=True),
            color=alt.Color("name:N", title="Status", scale=status_color_scale()),
        )
        pie = base.mark_arc(outerRadius=90) + base.mark_text(radius=110).encode(text="label:N")
        charts["approval_distribution"] = to_vega_spec(bar)
        charts["status_share"] = to_vega_spec(pie)

    safe_df = pd.DataFrame(summaries["safe_driving"])
    if safe_df["value"].sum() > 0:
        donut = (
            alt.Chart(safe_df)
            .mark_arc(innerRadius=60, outerRadius=90)
            .encode(
                theta=alt.Theta("value:Q"),
                color=alt.Color(
                    "name:N",
                    title=None,
                    scale=alt.Scale(domain=["Safe Driving", "Risk Factors"], range=["#000000", "#eab308"]),
                ),
                tooltip=["name:N", "value:Q"],
            )
        )
        charts["safe_driving"] = to_vega_spec(donut)

    if any(r["Approved"] or r["Rejected"] for r in summaries["risk_approval"]):
        charts["risk_approval"] = to_vega_spec(_crosstab_chart(summaries["risk_approval"], "risk", "Risk Category"))

    if summaries["claim_status_approval"]:
        charts["claim_status_approval"] = to_vega_spec(
            _crosstab_chart(summaries["claim_status_approval"], "claim_status", "Claim Status")
        )

    if summaries["driving_experience"]:
        exp_df = pd.DataFrame(summaries["driving_experience"]).melt(
            id_vars="driving_experience",
            value_vars=["avg_past_accidents", "avg_speeding_violations"],
            var_name="metric",
            value_name="average",
        )
        exp_df["driving_experience"] = exp_df["driving_experience"].astype(str)
        exp_chart = (
            alt.Chart(exp_df)
            .mark_bar()
            .encode(
                x=alt.X("driving_experience:N", title="Driving Experience", sort=None),
                xOffset="metric:N",
                y=alt.Y("average:Q", title="Average"),
                color=alt.Color(
                    "metric:N",
                    title=None,
                    scale=alt.Scale(
                        domain=["avg_past_accidents", "avg_speeding_violations"], range=["#14b8a6", "#f97316"]
                    ),
                ),
                tooltip=["driving_experience:N", "metric:N", alt.Tooltip("average:Q", format=".2f")],
            )
            .properties(height=260)
        )
        charts["driving_experience"] = to_vega_spec(exp_chart)

    if summaries["credit_score_bins"]:
        credit_chart = (
            alt.Chart(pd.DataFrame(summaries["credit_score_bins"]))
            .mark_bar(color="#6366f1")
            .encode(
                x=alt.X("range:N", title="Credit Score", sort=None),
                y=alt.Y("count:Q", title="Applications", axis=alt.Axis(format="d")),
                tooltip=["range:N", "count:Q"],
            )
            .properties(height=260)
        )
        charts["credit_score_bins"] = to_vega_spec(credit_chart)

    if summaries["avg_mileage_by_vehicle_year"]:
        year_df = pd.DataFrame(summaries["avg_mileage_by_vehicle_year"]).assign(
            vehicle_year=lambda d: d["vehicle_year"].astype(str)
        )
        year_chart = (
            alt.Chart(year_df)
            .mark_bar(color="#1e90ff")
            .encode(
                x=alt.X("vehicle_year:N", title="Vehicle Year", sort=None),
                y=alt.Y("avg_annual_mileage:Q", title="Avg Annual Mileage", axis=alt.Axis(format="~s")),
                tooltip=["vehicle_year:N", alt.Tooltip("avg_annual_mileage:Q", format=",")],
            )
            .properties(height=260)
        )
        charts["avg_mileage_by_vehicle_year"] = to_vega_spec(year_chart)

    return charts


def compute_admin_dashboard(filters: FilterCriteria, ctx: Dict[str, Any], *, with_charts: bool = True) -> Dict[str, Any]:
    applications: pd.DataFrame = ctx.get("applications", empty_applications())
    filtered: pd.DataFrame = ctx.get("filtered_applications", empty_applications())
    table: pd.DataFrame = ctx.get("table_applications", filtered)

    counts = count_by_status(filtered)
    # Mileage charts intentionally use every loaded application, not the filtered set.
    summaries = {
        "approval_distribution": approval_distribution(filtered),
        "status_share": status_share(counts),
        "risk_approval": risk_approval_crosstab(filtered),
        "safe_driving": safe_driving_split(filtered),
        "credit_score_bins": credit_score_histogram(filtered),
        "claim_status_approval": claim_status_crosstab(filtered),
        "driving_experience": driving_experience_averages(filtered),
        "mileage_distribution": mileage_distribution(applications),
        "avg_mileage_by_vehicle_year": avg_mileage_by_vehicle_year(applications),
    }

    return {
        "filters": asdict(filters),
        "kpis": {
            "total_applications": int(len(filtered)),
            "approved": counts["Approved"],
            "rejected": counts["Rejected"],
        },
        "summaries": summaries,
        "table": _table_rows(table),
        "id_options": [id_text(v) for v in applications["id"].tolist()] if "id" in applications.columns else [],
        "status_colors": STATUS_COLORS,
        "charts": _build_charts(summaries) if with_charts else {},
        "error": ctx.get("error"),
    }
