from __future__ import annotations

from typing import Any, Dict, Iterable

import altair as alt

alt.data_transformers.disable_max_rows()

STATUS_COLORS = {
    "Approved": "#22c55e",
    "Rejected": "#ef4444",
    "Pending": "#94a3b8",
}


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def status_color_scale(statuses: Iterable[str] = ("Approved", "Rejected")) -> alt.Scale:
    domain = list(statuses)
    return alt.Scale(domain=domain, range=[STATUS_COLORS.get(s, STATUS_COLORS["Pending"]) for s in domain])
