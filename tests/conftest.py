"""Shared test fixtures."""

from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd
import pytest

from core.data import clear_cache, normalize_applications


@pytest.fixture(autouse=True)
def _clear_loader_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def raw_applications() -> List[Dict[str, Any]]:
    return [
        {
            "id": 1,
            "credit_score": 720,
            "risk_category": "Low",
            "Approval_Status": "Approved",
            "age_group": "26-35",
            "vehicle_type": "Sedan",
            "vehicle_year": 2018,
            "annual_mileage": 12000,
            "past_accidents": 2,
            "speeding_violations": 1,
            "duis": 0,
            "driving_experience": "0-9y",
            "claim_status": "No Claim",
            "safe_driving_flag": "Safe Driving",
        },
        {
            "id": 2,
            "credit_score": 540,
            "risk_category": "High",
            "policy_status": "Rejected",
            "age_group": "18-25",
            "vehicle_type": "SUV",
            "vehicle_year": 2015,
            "annual_mileage": 18000,
            "past_accidents": 4,
            "speeding_violations": 3,
            "duis": 1,
            "driving_experience": "0-9y",
            "claim_status": "Claimed",
            "safe_driving_flag": "Risk Factors",
        },
        {
            "id": "3",
            "credit_score": "805",
            "risk_category": "Medium",
            "age_group": "36-50",
            "vehicle_type": "Truck",
            "vehicle_year": 2018,
            "annual_mileage": 7000,
            "driving_experience": "10-19y",
            "safe_driving_flag": "Safe Driving",
        },
        {
            "id": 4,
            "credit_score": "n/a",
            "risk_category": "Severe",
            "Approval_Status": "Approved",
            "age_group": "26-35",
            "annual_mileage": 15000,
            "past_accidents": 1,
            "speeding_violations": 0,
            "claim_status": "No Claim",
        },
    ]


@pytest.fixture
def applications(raw_applications) -> pd.DataFrame:
    return normalize_applications(raw_applications)


@pytest.fixture
def data_ctx(applications) -> Dict[str, object]:
    return {
        "source": "https://example.test/users.json",
        "applications": applications,
        "ids": ["1", "2", "3", "4"],
        "error": None,
    }
