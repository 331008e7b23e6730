from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from models import ProfileEnrichmentResult, ProfileRecord
from ports import LLMClientPort
from services.errors import ExternalServiceError


logger = logging.getLogger(__name__)

ENRICHMENT_PROMPT = (
    "Analyze this LinkedIn profile and extract the following information in JSON format.\n\n"
    "Name: {name}\n"
    "Title: {title}\n"
    "Company: {company}\n"
    "Connected on: {connected_on}\n\n"
    "Return ONLY a valid JSON object with these fields:\n"
    '{{"seniority_level": "IC" | "Manager" | "Executive", "job_function": "string", '
    '"industry": "string", "company_size": "string", "skills": ["string"], '
    '"company_location": "string", "is_public": boolean, "founded_year": "string"}}\n'
    "Do not include any explanations, just the JSON object."
)


def build_prompt(profile: ProfileRecord) -> str:
    return ENRICHMENT_PROMPT.format(
        name=profile.full_name,
        title=profile.title or "N/A",
        company=profile.company or "N/A",
        connected_on=(profile.connected_on or "N/A")[:10],
    )


def _contains_any(text: str, needles: List[str]) -> bool:
    return any(n in text for n in needles)


def infer_role_level(title: str) -> str:
    if _contains_any(title, ["ceo", "chief", "president", "founder", "owner", "partner"]):
        return "Executive"
    if _contains_any(title, ["manager", "director", "head of", "lead"]):
        return "Manager"
    return "IC"


def infer_job_function(title: str) -> str:
    if _contains_any(title, ["engineer", "developer", "programmer"]):
        return "Engineering"
    if _contains_any(title, ["sales", "account"]):
        return "Sales"
    if "market" in title:
        return "Marketing"
    if "product" in title:
        return "Product"
    if "design" in title:
        return "Design"
    if _contains_any(title, ["data", "analyst"]):
        return "Data"
    if _contains_any(title, ["hr", "human resources", "recruit"]):
        return "HR"
    if "finance" in title:
        return "Finance"
    return "Other"


def infer_industry(company: str) -> str:
    if _contains_any(company, ["tech", "software", "app", "digital", "computer"]):
        return "Technology"
    if _contains_any(company, ["bank", "finance", "capital", "invest", "fund"]):
        return "Finance"
    if _contains_any(company, ["health", "medical", "hospital", "pharma"]):
        return "Healthcare"
    if _contains_any(company, ["edu", "school", "university", "college"]):
        return "Education"
    if _contains_any(company, ["retail", "shop", "store"]):
        return "Retail"
    return "Other"


def infer_skills(job_function: str, title: str) -> List[str]:
    skills: List[str] = []
    if job_function == "Engineering":
        skills += ["Programming", "Software Development"]
        if _contains_any(title, ["frontend", "front-end", "ui"]):
            skills += ["Frontend Development", "JavaScript", "React"]
        elif _contains_any(title, ["backend", "back-end", "api"]):
            skills += ["Backend Development", "API Design", "Databases"]
        elif "full" in title:
            skills += ["Full Stack Development", "JavaScript", "Databases"]
        elif "mobile" in title:
            skills += ["Mobile Development", "iOS", "Android"]
        elif _contains_any(title, ["devops", "cloud"]):
            skills += ["DevOps", "Cloud Computing", "CI/CD"]
    elif job_function == "Sales":
        skills += ["Sales", "Negotiation", "Client Relationship Management"]
    elif job_function == "Marketing":
        skills += ["Marketing", "Social Media", "Content Creation"]
        if "digital" in title:
            skills += ["Digital Marketing", "SEO", "SEM"]
    elif job_function == "Product":
        skills += ["Product Management", "User Experience", "Roadmapping"]
    elif job_function == "Design":
        skills += ["Design", "User Experience", "Visual Design"]
        if "ux" in title:
            skills += ["UX Design", "User Research", "Wireframing"]
        elif "ui" in title:
            skills += ["UI Design", "Visual Design", "Design Systems"]
    return skills


def fallback_enrichment(profile: ProfileRecord) -> Dict[str, Any]:
    """Rule-based enrichment from title keywords and company substrings."""
    title = (profile.title or "").lower()
    company = (profile.company or "").lower()
    job_function = infer_job_function(title)
    return {
        "role_level": infer_role_level(title),
        "job_function": job_function,
        "industry": infer_industry(company),
        "company_size": "Large" if len(company) > 20 else "Small/Medium",
        "skills": infer_skills(job_function, title),
        "company_location": "Unknown",
        "is_public": _contains_any(company, ["inc", "corp", "ltd"]),
        "founded_year": "Unknown",
    }


def enrich_profile(profile: ProfileRecord, client: Optional[LLMClientPort] = None) -> Dict[str, Any]:
    """Return the enrichment field set for a profile plus its ``source``.

    Either every field comes from a validated provider response, or every field
    comes from the rule-based fallback; never a mix.
    """
    if client is not None:
        try:
            result: ProfileEnrichmentResult = client.enrich_profile(
                name=profile.full_name,
                title=profile.title,
                company=profile.company,
                connected_on=profile.connected_on,
                user_message=build_prompt(profile),
            )
            fields = result.to_fields()
            fields["source"] = "ai"
            return fields
        except ExternalServiceError as e:
            logger.warning(
                f"Enrichment fell back to rules for profile {profile.id}: {e}",
                extra={"step": "enrich", "status": "fallback", "error": type(e).__name__},
            )
    fields = fallback_enrichment(profile)
    fields["source"] = "fallback"
    return fields
