from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class FilterCriteriaModel(BaseModel):
    show_approved: bool = True
    show_rejected: bool = True
    age_group: str = "All"
    risk_category: str = "All"
    selected_id: str = "All"


class MetaFiltersResponse(BaseModel):
    age_groups: List[str] = Field(default_factory=list)
    risk_categories: List[str] = Field(default_factory=list)
    ids: List[str] = Field(default_factory=list)
