from __future__ import annotations

from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field


EdgeType = Literal["connection", "affiliation", "title_similarity", "mutual"]


def profile_node_id(profile_id: int) -> str:
    return f"profile_{profile_id}"


class GraphEdge(BaseModel):
    source_id: str
    target_id: str
    edge_type: EdgeType
    weight: float = Field(ge=0.0, le=1.0)
    properties: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class LinkPrediction(BaseModel):
    user_id: str
    target_node_id: str
    profile_id: int
    score: float
    reason: str

    model_config = ConfigDict(extra="ignore")
