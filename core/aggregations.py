"""Aggregation primitives behind the dashboard charts.

Every function takes a normalized applications frame and returns plain rows
(lists of dicts) whose field names are what the chart layer binds to. None of
them mutate their input or keep state between calls.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from core.data import column_or_default, numeric_column, round_half_up


STATUS_LABELS = ("Approved", "Rejected")
RISK_LABELS = ("Low Risk", "Medium Risk", "High Risk")
UNKNOWN = "Unknown"

SAFE_DRIVING_FLAG = "Safe Driving"
RISK_FACTORS_LABEL = "Risk Factors"

CREDIT_BIN_SIZE = 400

# Low < 8000 <= Medium <= 15000 < High
MILEAGE_LOW_LIMIT = 8000
MILEAGE_HIGH_LIMIT = 15000


def _status(df: pd.DataFrame) -> pd.Series:
    return column_or_default(df, "approval_status", "Pending")


def count_by_status(df: pd.DataFrame) -> Dict[str, int]:
    status = _status(df)
    return {label: int((status == label).sum()) for label in STATUS_LABELS}


def approval_distribution(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return [{"name": label, "value": value} for label, value in count_by_status(df).items()]


def risk_approval_crosstab(df: pd.DataFrame) -> List[Dict[str, Any]]:
    status = _status(df)
    risk = column_or_default(df, "risk_category", None)
    rows = []
    for label in RISK_LABELS:
        in_bucket = status[risk == label]
        rows.append(
            {
                "risk": label,
                "Approved": int((in_bucket == "Approved").sum()),
                "Rejected": int((in_bucket == "Rejected").sum()),
            }
        )
    return rows


def safe_driving_split(df: pd.DataFrame) -> List[Dict[str, Any]]:
    flags = column_or_default(df, "safe_driving_flag", None)
    safe = int((flags == SAFE_DRIVING_FLAG).sum())
    return [
        {"name": SAFE_DRIVING_FLAG, "value": safe},
        {"name": RISK_FACTORS_LABEL, "value": int(len(df)) - safe},
    ]


def credit_score_histogram(df: pd.DataFrame, *, bin_size: int = CREDIT_BIN_SIZE) -> List[Dict[str, Any]]:
    """Count of applications per credit-score bin, ascending by bin start.

    Bins are ``floor(score / bin_size) * bin_size`` wide and labelled
    ``"<start>-<start + bin_size - 1>"``. Scores that are missing or not
    numeric are left out entirely.
    """
    scores = numeric_column(df, "credit_score")
    scores = scores[np.isfinite(scores)]
    if scores.empty:
        return []
    starts = (np.floor(scores / bin_size) * bin_size).astype(int)
    counts = starts.value_counts().sort_index()
    return [{"range": f"{int(start)}-{int(start) + bin_size - 1}", "count": int(n)} for start, n in counts.items()]


def claim_status_crosstab(df: pd.DataFrame) -> List[Dict[str, Any]]:
    frame = pd.DataFrame(
        {
            "claim_status": column_or_default(df, "claim_status", UNKNOWN),
            "status": _status(df),
        }
    )
    rows = []
    for claim, group in frame.groupby("claim_status", sort=False)["status"]:
        rows.append(
            {
                "claim_status": claim,
                "Approved": int((group == "Approved").sum()),
                "Rejected": int((group == "Rejected").sum()),
            }
        )
    return rows


def driving_experience_averages(df: pd.DataFrame) -> List[Dict[str, Any]]:
    frame = pd.DataFrame(
        {
            "driving_experience": column_or_default(df, "driving_experience", UNKNOWN),
            "past_accidents": numeric_column(df, "past_accidents", fill=0),
            "speeding_violations": numeric_column(df, "speeding_violations", fill=0),
        }
    )
    means = frame.groupby("driving_experience", sort=False)[["past_accidents", "speeding_violations"]].mean()
    return [
        {
            "driving_experience": exp,
            "avg_past_accidents": round_half_up(row["past_accidents"], 2),
            "avg_speeding_violations": round_half_up(row["speeding_violations"], 2),
        }
        for exp, row in means.iterrows()
    ]


def mileage_distribution(all_df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Low/Medium/High mileage counts.

    Callers pass the full, unfiltered applications frame here; the admin and
    user views both chart this over every loaded application.
    """
    miles = numeric_column(all_df, "annual_mileage", fill=0)
    low = int((miles < MILEAGE_LOW_LIMIT).sum())
    medium = int(((miles >= MILEAGE_LOW_LIMIT) & (miles <= MILEAGE_HIGH_LIMIT)).sum())
    return [
        {"name": "Low", "value": low},
        {"name": "Medium", "value": medium},
        {"name": "High", "value": int(len(miles)) - low - medium},
    ]


def avg_mileage_by_vehicle_year(all_df: pd.DataFrame) -> List[Dict[str, Any]]:
    frame = pd.DataFrame(
        {
            "vehicle_year": column_or_default(all_df, "vehicle_year", UNKNOWN),
            "annual_mileage": numeric_column(all_df, "annual_mileage", fill=0),
        }
    )
    means = frame.groupby("vehicle_year", sort=False)["annual_mileage"].mean()
    rows = []
    for year, avg in means.items():
        rounded = round_half_up(avg)
        rows.append({"vehicle_year": year, "avg_annual_mileage": None if rounded is None else int(rounded)})
    return rows


def percentage_label(value: Optional[float], total: Optional[float]) -> str:
    if value is None or pd.isna(value) or value == 0:
        return ""
    if not total:
        return ""
    return f"{value / total * 100:.1f}%"


def share_tooltip(value: Optional[float], total: Optional[float]) -> str:
    if not total:
        return "0%"
    return f"{(value or 0) / total * 100:.1f}%"


def status_share(counts: Mapping[str, int]) -> List[Dict[str, Any]]:
    total = sum(counts.get(label, 0) for label in STATUS_LABELS)
    return [
        {"name": label, "value": counts.get(label, 0), "label": percentage_label(counts.get(label, 0), total)}
        for label in STATUS_LABELS
    ]
