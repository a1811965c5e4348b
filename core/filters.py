from __future__ import annotations

import math
from dataclasses import dataclass

import pandas as pd


ALL = "All"
AGE_GROUPS = ["18-25", "26-35", "36-50", "50+"]
RISK_CATEGORIES = ["Low Risk", "Medium Risk", "High Risk"]


@dataclass(frozen=True)
class FilterCriteria:
    show_approved: bool = True
    show_rejected: bool = True
    age_group: str = ALL
    risk_category: str = ALL
    selected_id: str = ALL


def id_text(value: object) -> str:
    if value is None or value is pd.NA:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value)


def _as_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in {"", "0", "false", "no", "off"}
    return bool(value)


def _as_selector(value: object) -> str:
    s = id_text(value).strip()
    return s or ALL


def normalize_filters(raw: dict) -> FilterCriteria:
    raw = raw or {}
    return FilterCriteria(
        show_approved=_as_bool(raw.get("show_approved"), True),
        show_rejected=_as_bool(raw.get("show_rejected"), True),
        age_group=_as_selector(raw.get("age_group")),
        risk_category=_as_selector(raw.get("risk_category")),
        selected_id=_as_selector(raw.get("selected_id")),
    )


def filter_records(df: pd.DataFrame, criteria: FilterCriteria) -> pd.DataFrame:
    """Rows of ``df`` matching ``criteria``, in their original order.

    Only ``"Approved"`` and ``"Rejected"`` rows are subject to the visibility
    toggles; any other status always passes them.
    """
    if df.empty:
        return df
    mask = pd.Series(True, index=df.index)

    status = df["approval_status"] if "approval_status" in df.columns else pd.Series(None, index=df.index, dtype=object)
    if not criteria.show_approved:
        mask &= status != "Approved"
    if not criteria.show_rejected:
        mask &= status != "Rejected"

    if criteria.age_group != ALL:
        ages = df["age_group"] if "age_group" in df.columns else pd.Series(None, index=df.index, dtype=object)
        mask &= ages == criteria.age_group

    if criteria.risk_category != ALL:
        risks = df["risk_category"] if "risk_category" in df.columns else pd.Series(None, index=df.index, dtype=object)
        mask &= risks == criteria.risk_category

    return df[mask]


def select_by_id(df: pd.DataFrame, selected_id: object) -> pd.DataFrame:
    selected = _as_selector(selected_id)
    if selected == ALL:
        return df
    if "id" not in df.columns:
        return df.iloc[0:0]
    return df[df["id"].map(id_text) == selected].head(1)
