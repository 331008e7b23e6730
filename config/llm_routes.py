from __future__ import annotations

import os


# Central routing for LLM use-cases. Edit here to change per-operation defaults.
# You can also override per-route model via env vars for quick testing.
#
# Keys are use_case identifiers consumed by services/llm_client.py
ROUTES: dict[str, dict] = {
    # Profile enrichment (provider-routed; default follows AI_PROVIDER)
    "profile_enrichment": {
        "provider": os.getenv("LLM_ENRICHMENT_PROVIDER"),
        "model": os.getenv("OPENAI_MODEL_ENRICHMENT"),  # falls back to global OPENAI_MODEL (when provider is openai)
        "temperature": 0,
        # Logical operation name for logging (not a vendor API name)
        "operation": "profile_enrichment",
    },
}
