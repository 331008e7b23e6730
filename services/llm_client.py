from __future__ import annotations

import json
import re
import time
from typing import Any, Dict, Optional

from pydantic import ValidationError as SchemaError

from config.settings import get_settings
from config.llm_routes import ROUTES
from models import ProfileEnrichmentResult
from services.errors import ExternalServiceError
from utils.llm_logger import log_call, sha256_text


SYSTEM_PROMPT = "You are a precise analyst. Output only valid JSON when asked."


def _extract_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    if not text:
        return None
    # Try raw parse first
    try:
        return json.loads(text)
    except ValueError:
        pass
    # Try fenced code block
    m = re.search(r"```(?:json)?\n([\s\S]*?)\n```", text)
    if m:
        try:
            return json.loads(m.group(1))
        except ValueError:
            pass
    # Try curly braces slice
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            return json.loads(text[start : end + 1])
        except ValueError:
            pass
    return None


class LLMClient:
    """Minimal wrapper to centralize per-use-case routing and logging."""

    def __init__(self) -> None:
        self.settings = get_settings()

    def _usage(self, resp: Any) -> Optional[Dict[str, Any]]:
        usage = getattr(resp, "usage", None)
        if not usage:
            return None
        return {
            "prompt_tokens": getattr(usage, "prompt_tokens", None),
            "completion_tokens": getattr(usage, "completion_tokens", None),
            "total_tokens": getattr(usage, "total_tokens", None),
        }

    def enrich_profile(
        self,
        *,
        name: str,
        title: Optional[str],
        company: Optional[str],
        connected_on: Optional[str],
        user_message: str,
        prompt_name: Optional[str] = "profile_enrichment",
        provider_override: Optional[str] = None,
    ) -> ProfileEnrichmentResult:
        """Gateway method for profile enrichment across providers.

        Routes by config.llm_routes (use_case: "profile_enrichment") unless overridden.
        Returns a validated result; raises ExternalServiceError on timeout, provider
        error or a response that does not match the schema.
        """
        route = ROUTES.get("profile_enrichment", {})
        provider = (provider_override or route.get("provider") or self.settings.ai_provider or "openai").lower()
        model = route.get("model") or self.settings.openai_model or "gpt-4o-mini"
        op = route.get("operation", "profile_enrichment")
        temperature = float(route.get("temperature") or 0)

        # Common logging envelope
        def _log(status: str, *, duration_ms: Optional[int] = None, error: Optional[str] = None, usage: Optional[Dict[str, Any]] = None) -> None:
            log_call(
                caller="llm_client.enrich_profile",
                provider=provider,
                model=model if provider == "openai" else None,
                operation=op,
                prompt_name=prompt_name,
                prompt_hash=sha256_text(user_message),
                duration_ms=duration_ms,
                status=status,
                error=error,
                usage=usage,
                extras={"name": name, "title": title, "company": company, "connected_on": connected_on},
            )

        if provider == "openai":
            call = self._openai_call(model, user_message, temperature)
        elif provider == "linkup":
            call = self._linkup_call(user_message)
        else:
            raise ExternalServiceError(f"Provider not implemented: {provider}")

        # Simple retry/backoff on transient failures
        max_attempts = max(1, self.settings.max_retries)
        backoff_ms = 300
        last_err: Optional[str] = None
        for attempt in range(1, max_attempts + 1):
            _t0 = time.time()
            try:
                data, usage = call()
                result = ProfileEnrichmentResult.model_validate(data)
                _log("ok", duration_ms=int((time.time() - _t0) * 1000), usage=usage)
                return result
            except SchemaError as e:
                # A malformed answer is not retried
                _log("invalid", duration_ms=int((time.time() - _t0) * 1000), error=str(e))
                raise ExternalServiceError(f"Enrichment response failed validation: {e}") from e
            except ExternalServiceError as e:
                last_err = str(e)
                _log("error", duration_ms=int((time.time() - _t0) * 1000), error=last_err)
            except Exception as e:  # provider SDKs raise their own timeout/HTTP error types
                last_err = f"{type(e).__name__}: {e}"
                _log("error", duration_ms=int((time.time() - _t0) * 1000), error=last_err)
            if attempt < max_attempts:
                time.sleep(backoff_ms / 1000.0)
        raise ExternalServiceError(f"Enrichment failed after {max_attempts} attempts: {last_err}")

    def _openai_call(self, model: str, user_message: str, temperature: float = 0.0):
        from openai import OpenAI

        api_key = self.settings.openai_api_key
        if not api_key:
            raise ExternalServiceError("OPENAI_API_KEY missing")
        client = OpenAI(api_key=api_key, timeout=self.settings.http_timeout_seconds)

        def _call():
            resp = client.chat.completions.create(
                model=model,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_message},
                ],
            )
            content = resp.choices[0].message.content if resp.choices else None
            data = _extract_json(content or "")
            if not isinstance(data, dict):
                raise ExternalServiceError("No JSON object in enrichment response")
            return data, self._usage(resp)

        return _call

    def _linkup_call(self, user_message: str):
        from linkup import LinkupClient

        api_key = self.settings.linkup_api_key
        if not api_key:
            raise ExternalServiceError("LINKUP_API_KEY missing")
        client = LinkupClient(api_key=api_key)

        def _call():
            resp = client.search(
                query=user_message,
                depth="standard",
                output_type="structured",
                structured_output_schema=ProfileEnrichmentResult,
            )
            if hasattr(resp, "model_dump"):
                return resp.model_dump(by_alias=True), None
            if isinstance(resp, dict):
                return resp, None
            if isinstance(resp, str):
                data = _extract_json(resp)
                if isinstance(data, dict):
                    return data, None
            raise ExternalServiceError(f"Unexpected Linkup response type: {type(resp).__name__}")

        return _call
