from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


RoleLevel = Literal["IC", "Manager", "Executive"]


class ProfileEnrichmentResult(BaseModel):
    """LLM structured output: strict shape expected from profile enrichment."""

    role_level: RoleLevel = Field(alias="seniority_level")
    job_function: str
    industry: str
    company_size: str | None = None
    skills: List[str] = Field(default_factory=list)
    company_location: str | None = None
    is_public: bool | None = None
    founded_year: str | None = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_fields(self) -> dict:
        return {
            "role_level": self.role_level,
            "job_function": self.job_function,
            "industry": self.industry,
            "company_size": self.company_size,
            "skills": list(self.skills),
            "company_location": self.company_location,
            "is_public": self.is_public,
            "founded_year": self.founded_year,
        }
