from __future__ import annotations

import logging
import math
import os

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import FilterCriteriaModel, MetaFiltersResponse
from core.data import DATA_URL, clear_cache, load_dashboard_data, prepare_context
from core.filters import AGE_GROUPS, RISK_CATEGORIES, FilterCriteria, normalize_filters
from core.metrics_admin import TABLE_COLUMNS, compute_admin_dashboard
from core.metrics_user import compute_user_profile


app = FastAPI(title="Underwriting Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _data_url() -> str:
    return os.environ.get("UNDERWRITING_DATA_URL") or DATA_URL


def _filters_from_model(model: FilterCriteriaModel) -> FilterCriteria:
    return normalize_filters(model.model_dump())


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


@app.get("/meta/filters")
def meta_filters():
    try:
        data_ctx = load_dashboard_data(_data_url())
        meta = MetaFiltersResponse(
            age_groups=AGE_GROUPS,
            risk_categories=RISK_CATEGORIES,
            ids=list(data_ctx.get("ids", []) or []),
        )
        return _json(meta.model_dump())
    except Exception as exc:
        logger.exception("meta_filters failed")
        return _error(exc)


@app.post("/admin")
def admin(filters: FilterCriteriaModel):
    try:
        data_ctx = load_dashboard_data(_data_url())
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_admin_dashboard(f, ctx))
    except Exception as exc:
        logger.exception("admin failed")
        return _error(exc)


@app.get("/users/{user_id}")
def user_profile(user_id: str):
    try:
        data_ctx = load_dashboard_data(_data_url())
        payload = compute_user_profile(user_id, data_ctx)
        if not payload["found"]:
            return JSONResponse(status_code=404, content={"error": f"application {user_id} not found", "user_id": user_id})
        return _json(payload)
    except Exception as exc:
        logger.exception("user_profile failed")
        return _error(exc)


@app.post("/refresh")
def refresh():
    clear_cache()
    return {"status": "ok"}


@app.post("/export/admin")
def export_admin(filters: FilterCriteriaModel):
    try:
        data_ctx = load_dashboard_data(_data_url())
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)

        export_df = ctx.get("table_applications")
        if export_df is None or not hasattr(export_df, "to_csv"):
            export_df = pd.DataFrame(columns=TABLE_COLUMNS)
        csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    except Exception as exc:
        logger.exception("export_admin failed")
        return _error(exc)
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=applications.csv"},
    )
