from __future__ import annotations

from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field


SessionStatus = Literal["pending", "accepted", "rejected", "completed"]
ResultType = Literal["mutual_connection", "predicted_match", "overlapping_tag"]


class ComparisonResult(BaseModel):
    result_type: ResultType
    profile_a_id: int | None = None
    profile_b_id: int | None = None
    score: float
    details: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")
