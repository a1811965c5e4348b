from __future__ import annotations

import math
from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

from core.aggregations import mileage_distribution
from core.charts import to_vega_spec
from core.data import empty_applications, is_blank
from core.filters import id_text


CREDIT_MIN = 300
CREDIT_MAX = 850

RISK_LEVELS = [
    # (minimum score, label, colour)
    (700, "LOW RISK", "#22c55e"),
    (550, "MEDIUM RISK", "#f59e0b"),
]
HIGH_RISK = {"label": "HIGH RISK", "color": "#ef4444"}
VIOLATION_COLORS = ["#ef4444", "#f59e0b", "#1e90ff"]


def _number(value: object, default: float = 0) -> float:
    if is_blank(value) or isinstance(value, bool):
        return default
    out = pd.to_numeric(value, errors="coerce")
    if pd.isna(out) or math.isinf(out):
        return default
    return out.item() if hasattr(out, "item") else out


def risk_level(score: float) -> Dict[str, str]:
    for floor, label, color in RISK_LEVELS:
        if score >= floor:
            return {"label": label, "color": color}
    return dict(HIGH_RISK)


def credit_gauge(score: float) -> Dict[str, float]:
    clamped = min(max(score, CREDIT_MIN), CREDIT_MAX)
    fraction = (clamped - CREDIT_MIN) / (CREDIT_MAX - CREDIT_MIN)
    return {"score": clamped, "fraction": fraction, "needle_angle": -90 + fraction * 180}


def find_application(df: pd.DataFrame, user_id: object) -> Optional[Dict[str, Any]]:
    key = id_text(user_id)
    if not key or df.empty or "id" not in df.columns:
        return None
    match = df[df["id"].map(id_text) == key]
    if match.empty:
        return None
    return match.iloc[0].to_dict()


def compute_user_profile(user_id: object, ctx: Dict[str, Any], *, with_charts: bool = True) -> Dict[str, Any]:
    applications: pd.DataFrame = ctx.get("applications", empty_applications())
    record = find_application(applications, user_id)
    if record is None:
        return {"user_id": id_text(user_id), "found": False}

    credit_score = _number(record.get("credit_score"))
    annual_mileage = _number(record.get("annual_mileage"))
    vehicle_type = record.get("vehicle_type")
    violations = [
        {"name": "DUIs", "value": _number(record.get("duis"))},
        {"name": "Accidents", "value": _number(record.get("past_accidents"))},
        {"name": "Speeding", "value": _number(record.get("speeding_violations"))},
    ]
    mileage = mileage_distribution(applications)

    charts: Dict[str, Any] = {}
    if with_charts:
        violations_df = pd.DataFrame(violations)
        if violations_df["value"].sum() > 0:
            donut = (
                alt.Chart(violations_df)
                .mark_arc(innerRadius=60, outerRadius=100, padAngle=0.05)
                .encode(
                    theta=alt.Theta("value:Q"),
                    color=alt.Color(
                        "name:N",
                        title=None,
                        scale=alt.Scale(domain=[v["name"] for v in violations], range=VIOLATION_COLORS),
                    ),
                    tooltip=["name:N", "value:Q"],
                )
            )
            charts["violations"] = to_vega_spec(donut)
        mileage_chart = (
            alt.Chart(pd.DataFrame(mileage))
            .mark_bar(color="#1e90ff")
            .encode(
                x=alt.X("name:N", title="Annual Mileage", sort=None),
                y=alt.Y("value:Q", title="Applications", axis=alt.Axis(format="d")),
                tooltip=["name:N", "value:Q"],
            )
            .properties(height=260)
        )
        charts["mileage_distribution"] = to_vega_spec(mileage_chart)

    return {
        "user_id": id_text(user_id),
        "found": True,
        "vehicle_type": "-" if is_blank(vehicle_type) else vehicle_type,
        "annual_mileage": annual_mileage,
        "annual_mileage_label": f"{annual_mileage / 1000:.2f}K",
        "credit_score": credit_score,
        "risk_level": risk_level(credit_score),
        "gauge": credit_gauge(credit_score),
        "violations": violations,
        "mileage_distribution": mileage,
        "charts": charts,
    }
