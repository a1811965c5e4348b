from __future__ import annotations

import copy
import logging

import pytest
import requests

from core.data import (
    RECORD_COLUMNS,
    load_dashboard_data,
    normalize_applications,
    normalize_record,
    normalize_risk_category,
    prepare_context,
    records_from_payload,
    resolve_approval_status,
    round_half_up,
)
from core.filters import FilterCriteria


class FakeResponse:
    def __init__(self, payload=None, *, status_error=None, json_error=None):
        self._payload = payload
        self._status_error = status_error
        self._json_error = json_error

    def raise_for_status(self):
        if self._status_error is not None:
            raise self._status_error

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._payload


# ─── Normalization ─────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Medium", "Medium Risk"),
        ("Medium Risk", "Medium Risk"),
        ("High", "High Risk"),
        ("High Risk", "High Risk"),
        ("Low", "Low Risk"),
        ("Severe", "Severe"),
        (None, None),
    ],
)
def test_normalize_risk_category(raw, expected):
    assert normalize_risk_category(raw) == expected


def test_approval_status_precedence():
    assert resolve_approval_status({"Approval_Status": "Approved", "policy_status": "Rejected"}) == "Approved"
    assert resolve_approval_status({"Approval_Status": "", "policy_status": "Rejected"}) == "Rejected"
    assert resolve_approval_status({"policy_status": None}) == "Pending"
    assert resolve_approval_status({}) == "Pending"


def test_whitespace_status_counts_as_present():
    assert resolve_approval_status({"Approval_Status": "  ", "policy_status": "Rejected"}) == "  "


def test_canonical_status_field_wins():
    record = {"approval_status": "Approved", "policy_status": "Rejected"}
    assert resolve_approval_status(record) == "Approved"


def test_normalize_record_does_not_mutate_input(raw_applications):
    original = copy.deepcopy(raw_applications)
    for record in raw_applications:
        normalize_record(record)
    assert raw_applications == original


def test_normalize_is_idempotent(raw_applications):
    samples = raw_applications + [{}, {"risk_category": "Medium", "Approval_Status": "  "}, {"policy_status": "Rejected"}]
    for record in samples:
        once = normalize_record(record)
        assert normalize_record(once) == once


def test_normalize_record_never_raises_on_empty_record():
    out = normalize_record({})
    assert out["approval_status"] == "Pending"
    assert out["risk_category"] is None


def test_normalize_applications_has_every_column(raw_applications):
    df = normalize_applications(raw_applications)
    assert set(RECORD_COLUMNS).issubset(df.columns)
    assert df["id"].tolist() == [1, 2, "3", 4]
    assert df["approval_status"].tolist() == ["Approved", "Rejected", "Pending", "Approved"]
    assert df["risk_category"].tolist() == ["Low Risk", "High Risk", "Medium Risk", "Severe"]


def test_normalize_applications_empty():
    df = normalize_applications([])
    assert df.empty
    assert list(df.columns) == RECORD_COLUMNS


@pytest.mark.parametrize(
    "payload, expected_len",
    [
        ({"applications": [{"id": 1}, {"id": 2}]}, 2),
        ({"applications": None}, 0),
        ({"applications": "oops"}, 0),
        ({}, 0),
        ([{"id": 1}], 0),
    ],
)
def test_records_from_payload(payload, expected_len):
    assert len(records_from_payload(payload)) == expected_len


def test_round_half_up():
    assert round_half_up(2.345, 2) == 2.35
    assert round_half_up(9500.5) == 9501.0
    assert round_half_up(None) is None
    assert round_half_up(1e30) == 1e30
    assert round_half_up(1e27, 2) == 1e27
    assert round_half_up(float("inf")) is None


# ─── Loading ───────────────────────────────────────────────────────────


def test_load_dashboard_data_success(monkeypatch, raw_applications):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse({"applications": raw_applications})

    monkeypatch.setattr(requests, "get", fake_get)
    ctx = load_dashboard_data("https://example.test/users.json")
    assert ctx["error"] is None
    assert len(ctx["applications"]) == 4
    assert ctx["ids"] == ["1", "2", "3", "4"]

    load_dashboard_data("https://example.test/users.json")
    assert len(calls) == 1


def test_load_dashboard_data_missing_applications(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse({"meta": {}}))
    ctx = load_dashboard_data("https://example.test/users.json")
    assert ctx["error"] is None
    assert ctx["applications"].empty
    assert ctx["ids"] == []


def test_load_dashboard_data_network_failure_is_logged(monkeypatch, caplog):
    def fake_get(url, timeout):
        raise requests.ConnectionError("boom")

    monkeypatch.setattr(requests, "get", fake_get)
    with caplog.at_level(logging.ERROR, logger="core.data"):
        ctx = load_dashboard_data("https://example.test/users.json")
    assert ctx["applications"].empty
    assert "boom" in ctx["error"]
    assert "fetching applications" in caplog.text


def test_load_dashboard_data_bad_json(monkeypatch):
    monkeypatch.setattr(
        requests, "get", lambda url, timeout: FakeResponse(json_error=ValueError("Expecting value"))
    )
    ctx = load_dashboard_data("https://example.test/users.json")
    assert ctx["applications"].empty
    assert ctx["error"]


def test_load_dashboard_data_http_error(monkeypatch):
    monkeypatch.setattr(
        requests, "get", lambda url, timeout: FakeResponse(status_error=requests.HTTPError("404 Client Error"))
    )
    ctx = load_dashboard_data("https://example.test/users.json")
    assert ctx["applications"].empty
    assert "404" in ctx["error"]


def test_failed_load_is_not_cached(monkeypatch, raw_applications):
    def failing_get(url, timeout):
        raise requests.Timeout("slow")

    monkeypatch.setattr(requests, "get", failing_get)
    assert load_dashboard_data("https://example.test/users.json")["applications"].empty

    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse({"applications": raw_applications}))
    assert len(load_dashboard_data("https://example.test/users.json")["applications"]) == 4


# ─── Context ───────────────────────────────────────────────────────────


def test_prepare_context_accepts_raw_dict(data_ctx):
    ctx = prepare_context({"show_rejected": False, "selected_id": "1"}, data_ctx)
    assert isinstance(ctx["filters"], FilterCriteria)
    assert ctx["filtered_applications"]["id"].tolist() == [1, "3", 4]
    assert ctx["table_applications"]["id"].tolist() == [1]
    assert len(ctx["applications"]) == 4
