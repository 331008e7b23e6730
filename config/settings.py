from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    log_level: str

    # Core/runtime
    db_path: str
    run_env: str

    # Name of the account holder; excluded from every import
    owner_name: str | None

    openai_api_key: str | None
    openai_model: str | None
    linkup_api_key: str | None

    # AI gating
    ai_enabled: bool
    ai_provider: str  # stub | openai | linkup

    # Limits/Concurrency/Timeouts
    max_retries: int
    http_timeout_seconds: int
    persist_batch_size: int
    enrich_batch_size: int
    enrich_concurrency: int
    parse_concurrency: int
    max_upload_bytes: int

    # Graph heuristics
    title_similarity_threshold: float
    mutual_min_shared_networks: int
    predicted_match_threshold: float

    # Notifications
    sendgrid_api_key: str | None = None
    sendgrid_url: str = "https://api.sendgrid.com/v3/mail/send"
    from_email: str | None = None
    from_name: str | None = None

    # Logging/tracing
    llm_trace: bool = False
    llm_log_path: str = "logs/llm_calls.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    ai_enabled = _as_bool(os.getenv("AI_ENABLED"), False)
    ai_provider = os.getenv("AI_PROVIDER", "stub")
    openai_api_key = os.getenv("OPENAI_API_KEY")
    linkup_api_key = os.getenv("LINKUP_API_KEY")

    if ai_enabled:
        if ai_provider == "openai" and not openai_api_key:
            raise RuntimeError(
                "OPENAI_API_KEY required when AI_PROVIDER=openai and AI_ENABLED=true"
            )
        if ai_provider == "linkup" and not linkup_api_key:
            raise RuntimeError(
                "LINKUP_API_KEY required when AI_PROVIDER=linkup and AI_ENABLED=true"
            )
    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        db_path=os.getenv("DB_PATH", "network.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        owner_name=os.getenv("OWNER_NAME") or None,
        openai_api_key=openai_api_key,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        linkup_api_key=linkup_api_key,
        ai_enabled=ai_enabled,
        ai_provider=ai_provider,
        max_retries=int(os.getenv("MAX_RETRIES", "2")),
        http_timeout_seconds=int(os.getenv("HTTP_TIMEOUT_SECONDS", "20")),
        persist_batch_size=int(os.getenv("PERSIST_BATCH_SIZE", "200")),
        enrich_batch_size=int(os.getenv("ENRICH_BATCH_SIZE", "100")),
        enrich_concurrency=int(os.getenv("ENRICH_CONCURRENCY", "4")),
        parse_concurrency=int(os.getenv("PARSE_CONCURRENCY", "1")),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))),
        title_similarity_threshold=float(os.getenv("TITLE_SIMILARITY_THRESHOLD", "0.7")),
        mutual_min_shared_networks=int(os.getenv("MUTUAL_MIN_SHARED_NETWORKS", "2")),
        predicted_match_threshold=float(os.getenv("PREDICTED_MATCH_THRESHOLD", "0.3")),
        sendgrid_api_key=os.getenv("SENDGRID_API_KEY"),
        sendgrid_url=os.getenv("SENDGRID_URL", "https://api.sendgrid.com/v3/mail/send"),
        from_email=os.getenv("FROM_EMAIL"),
        from_name=os.getenv("FROM_NAME"),
        llm_trace=_as_bool(os.getenv("LLM_TRACE"), False),
        llm_log_path=os.getenv("LLM_LOG_PATH", "logs/llm_calls.jsonl"),
    )
