from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from db.repos.connections_repo import ConnectionsRepo
from db.repos.profiles_repo import ProfilesRepo
from models import ProfileRecord
from pipelines.enrich_profiles import default_client, enrich_profiles
from services.enrichment_service import enrich_profile, fallback_enrichment


PROFILE = ProfileRecord(
    id=1,
    full_name="Jane Doe",
    profile_url="https://linkedin.com/in/janedoe",
    company="Acme Software",
    title="Senior Backend Engineer",
    connected_on="2023-01-15T00:00:00+00:00",
)


def _fake_openai(monkeypatch, contents):
    """Patch openai.OpenAI so each create() call returns the next canned content (or raises it)."""
    calls = []

    class _Completions:
        def create(self, **kwargs):
            calls.append(kwargs)
            item = contents[min(len(calls), len(contents)) - 1]
            if isinstance(item, Exception):
                raise item
            message = SimpleNamespace(content=item)
            return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=None)

    class _FakeOpenAI:
        def __init__(self, api_key=None, timeout=None):
            self.chat = SimpleNamespace(completions=_Completions())

    import openai
    monkeypatch.setattr(openai, "OpenAI", _FakeOpenAI)
    return calls


@pytest.fixture
def openai_env(monkeypatch):
    monkeypatch.setenv("AI_ENABLED", "true")
    monkeypatch.setenv("AI_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("MAX_RETRIES", "2")
    import services.llm_client as llm
    monkeypatch.setattr(llm.time, "sleep", lambda _s: None)
    from config.settings import get_settings
    get_settings.cache_clear()
    return llm


def test_fallback_rules():
    fields = fallback_enrichment(PROFILE)
    assert fields["role_level"] == "IC"
    assert fields["job_function"] == "Engineering"
    assert fields["industry"] == "Technology"
    assert "Backend Development" in fields["skills"]
    assert fields["company_location"] == "Unknown"
    assert fallback_enrichment(PROFILE.model_copy(update={"title": "Chief Executive Officer"}))["role_level"] == "Executive"
    assert fallback_enrichment(PROFILE.model_copy(update={"title": "Head of Sales"}))["job_function"] == "Sales"


def test_no_client_uses_rules():
    fields = enrich_profile(PROFILE, None)
    assert fields.pop("source") == "fallback"
    assert fields == fallback_enrichment(PROFILE)


def test_valid_response_is_used(openai_env, monkeypatch):
    payload = {
        "seniority_level": "Manager",
        "job_function": "Engineering",
        "industry": "Technology",
        "company_size": "Large",
        "skills": ["Go"],
        "company_location": "Berlin",
        "is_public": False,
        "founded_year": "2001",
    }
    calls = _fake_openai(monkeypatch, ["```json\n" + json.dumps(payload) + "\n```"])
    fields = enrich_profile(PROFILE, openai_env.LLMClient())
    assert fields.pop("source") == "ai"
    assert fields["role_level"] == "Manager"
    assert fields["skills"] == ["Go"]
    assert calls[0]["temperature"] == 0


def test_route_temperature_reaches_the_provider(openai_env, monkeypatch):
    from config.llm_routes import ROUTES
    monkeypatch.setitem(ROUTES["profile_enrichment"], "temperature", 0.4)
    calls = _fake_openai(monkeypatch, ["not json"])
    enrich_profile(PROFILE, openai_env.LLMClient())
    assert calls[0]["temperature"] == 0.4


def test_timeout_falls_back_to_exact_rule_fields(openai_env, monkeypatch):
    calls = _fake_openai(monkeypatch, [TimeoutError("read timed out")])
    fields = enrich_profile(PROFILE, openai_env.LLMClient())
    assert len(calls) == 2
    assert fields.pop("source") == "fallback"
    assert fields == fallback_enrichment(PROFILE)


def test_invalid_json_falls_back_to_exact_rule_fields(openai_env, monkeypatch):
    _fake_openai(monkeypatch, ["I am not sure about this person."])
    fields = enrich_profile(PROFILE, openai_env.LLMClient())
    assert fields.pop("source") == "fallback"
    assert fields == fallback_enrichment(PROFILE)


def test_schema_mismatch_is_not_retried(openai_env, monkeypatch):
    bad = json.dumps({"seniority_level": "Intern", "job_function": "Engineering", "industry": "Technology"})
    calls = _fake_openai(monkeypatch, [bad])
    fields = enrich_profile(PROFILE, openai_env.LLMClient())
    assert len(calls) == 1
    assert fields.pop("source") == "fallback"
    assert fields == fallback_enrichment(PROFILE)


def test_default_client_respects_ai_gate(monkeypatch):
    assert default_client() is None
    monkeypatch.setenv("AI_ENABLED", "true")
    monkeypatch.setenv("AI_PROVIDER", "stub")
    from config.settings import get_settings
    get_settings.cache_clear()
    assert default_client() is None


def test_missing_key_is_a_configuration_error(monkeypatch):
    monkeypatch.setenv("AI_ENABLED", "true")
    monkeypatch.setenv("AI_PROVIDER", "openai")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    from config.settings import get_settings
    get_settings.cache_clear()
    with pytest.raises(RuntimeError):
        get_settings()


def test_pipeline_isolates_client_crashes(db_conn):
    repo = ProfilesRepo(db_conn)
    for slug, title in (("ann", "Software Engineer"), ("bob", "Sales Manager")):
        pid = repo.upsert_profile(ProfileRecord(full_name=slug.title() + " X", profile_url=f"https://linkedin.com/in/{slug}", title=title))
        ConnectionsRepo(db_conn).upsert_connection("u1", pid, None)

    class _Crashing:
        def enrich_profile(self, **kwargs):
            raise RuntimeError("boom")

    seen = []
    ctx = enrich_profiles(db_conn, "u1", client=_Crashing(), notify=False, on_progress=lambda *a: seen.append(a))
    assert ctx.meta["profiles_enriched"] == 2
    assert ctx.meta["profiles_fallback"] == 2
    assert len(seen) == 2
    assert repo.select_pending_enrichment(user_id="u1") == []
    assert repo.get_by_url("https://linkedin.com/in/bob").role_level == "Manager"
