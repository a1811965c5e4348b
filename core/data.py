from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd
import requests

from core.filters import FilterCriteria, filter_records, id_text, normalize_filters, select_by_id


logger = logging.getLogger(__name__)

DATA_URL = "https://raw.githubusercontent.com/Surya-461/users/main/users.json"
REQUEST_TIMEOUT = 10.0

DEFAULT_STATUS = "Pending"
STATUS_SOURCES = ("approval_status", "Approval_Status", "policy_status")

RISK_CATEGORY_MAPPING = {
    "Medium": "Medium Risk",
    "Medium Risk": "Medium Risk",
    "High": "High Risk",
    "Low": "Low Risk",
}

RECORD_COLUMNS = [
    "id",
    "credit_score",
    "risk_category",
    "approval_status",
    "age_group",
    "vehicle_type",
    "vehicle_year",
    "annual_mileage",
    "past_accidents",
    "speeding_violations",
    "duis",
    "driving_experience",
    "claim_status",
    "safe_driving_flag",
]


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NA:
        return True
    return isinstance(value, str) and value == ""


def resolve_approval_status(record: Mapping[str, Any]) -> Any:
    """First non-empty of the known status fields, else ``"Pending"``."""
    for key in STATUS_SOURCES:
        value = record.get(key)
        if not is_blank(value):
            return value
    return DEFAULT_STATUS


def normalize_risk_category(value: object) -> object:
    if isinstance(value, str):
        return RISK_CATEGORY_MAPPING.get(value, value)
    return value


def normalize_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a normalized copy of one application record.

    Only ``approval_status`` and ``risk_category`` are rewritten; every other
    field (including the raw ``Approval_Status`` / ``policy_status``) is
    passed through so the result can be normalized again without change.
    """
    out = dict(record)
    out["approval_status"] = resolve_approval_status(record)
    out["risk_category"] = normalize_risk_category(record.get("risk_category"))
    return out


def records_from_payload(payload: object) -> List[Dict[str, Any]]:
    if not isinstance(payload, Mapping):
        return []
    apps = payload.get("applications") or []
    if not isinstance(apps, list):
        return []
    return [a for a in apps if isinstance(a, Mapping)]


def empty_applications() -> pd.DataFrame:
    return pd.DataFrame(columns=RECORD_COLUMNS, dtype=object)


def normalize_applications(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    rows = [normalize_record(r) for r in records]
    if not rows:
        return empty_applications()
    # object dtype keeps ids and labels exactly as they came out of JSON.
    df = pd.DataFrame(rows, dtype=object)
    for col in RECORD_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df


def column_or_default(df: pd.DataFrame, col: str, default: object) -> pd.Series:
    """Categorical column with missing/blank values replaced by ``default``."""
    if col not in df.columns:
        return pd.Series([default] * len(df), index=df.index, dtype=object)
    return df[col].map(lambda v: default if is_blank(v) else v).astype(object)


def numeric_column(df: pd.DataFrame, col: str, *, fill: Optional[float] = None) -> pd.Series:
    if col not in df.columns:
        series = pd.Series([float("nan")] * len(df), index=df.index, dtype=float)
    else:
        series = pd.to_numeric(df[col].map(lambda v: None if is_blank(v) or isinstance(v, bool) else v), errors="coerce")
        series = series.astype(float)
        series = series.where(np.isfinite(series))
    if fill is not None:
        series = series.fillna(fill)
    return series


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    d = Decimal(str(value))
    if not d.is_finite():
        return None
    q = Decimal(10) ** -ndigits
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the kept decimals.
        ctx.prec = max(ctx.prec, d.adjusted() + ndigits + 2)
        return float(d.quantize(q, rounding=ROUND_HALF_UP))


# ---------------- Public API (Streamlit + FastAPI use) ----------------
@lru_cache(maxsize=4)
def _fetch_payload_cached(url: str) -> Dict[str, Any]:
    response = requests.get(url, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    return response.json()


def clear_cache() -> None:
    _fetch_payload_cached.cache_clear()


def load_dashboard_data(url: str = DATA_URL) -> Dict[str, object]:
    try:
        payload = _fetch_payload_cached(url)
    except (requests.RequestException, ValueError) as exc:
        logger.exception("fetching applications from %s failed", url)
        return {"source": url, "applications": empty_applications(), "ids": [], "error": str(exc)}

    applications = normalize_applications(records_from_payload(payload))
    logger.info("loaded %d applications from %s", len(applications), url)
    return {
        "source": url,
        "applications": applications,
        "ids": [id_text(v) for v in applications["id"].tolist()],
        "error": None,
    }


def prepare_context(filters: dict | FilterCriteria, data_ctx: Dict[str, object]) -> Dict[str, object]:
    applications: pd.DataFrame = data_ctx.get("applications", empty_applications())
    filt = filters if isinstance(filters, FilterCriteria) else normalize_filters(filters)

    filtered = filter_records(applications, filt)
    table = select_by_id(filtered, filt.selected_id)

    return {
        "filters": filt,
        "applications": applications,
        "filtered_applications": filtered,
        "table_applications": table,
        "ids": data_ctx.get("ids", []),
        "error": data_ctx.get("error"),
    }
