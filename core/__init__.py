"""Core (UI-agnostic) underwriting dashboard logic.

This package contains:
- data loading (remote JSON -> pandas)
- record normalization and filter criteria
- aggregation primitives (JSON-serializable rows)
- page compute functions for the admin and user views
- chart helpers (Altair -> Vega-Lite spec dict)
"""
