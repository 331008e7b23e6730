from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ProfileRecord(BaseModel):
    """App/DB record shape for a persisted contact profile."""

    id: int | None = None
    full_name: str
    profile_url: str
    email: str | None = None
    company: str | None = None
    title: str | None = None
    tags: List[str] = Field(default_factory=list)
    connected_on: str | None = None
    connected_on_estimated: bool = False

    # Enrichment; absent until an enrichment pass completes
    role_level: str | None = None
    job_function: str | None = None
    industry: str | None = None
    company_size: str | None = None
    skills: List[str] = Field(default_factory=list)
    company_location: str | None = None
    is_public: bool | None = None
    founded_year: str | None = None
    enriched_at: str | None = None

    model_config = ConfigDict(extra="ignore")
