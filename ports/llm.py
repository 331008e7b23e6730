from __future__ import annotations

from typing import Optional, Protocol

from models import ProfileEnrichmentResult


class LLMClientPort(Protocol):
    def enrich_profile(
        self,
        *,
        name: str,
        title: Optional[str],
        company: Optional[str],
        connected_on: Optional[str],
        user_message: str,
        prompt_name: str = "profile_enrichment",
        provider_override: Optional[str] = None,
    ) -> ProfileEnrichmentResult:
        ...
