from __future__ import annotations

import json
import logging
import os
import sqlite3
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import get_settings
from db.repos.connections_repo import ConnectionsRepo
from db.repos.profiles_repo import ProfilesRepo


logger = logging.getLogger(__name__)

TOP_N = 10


def _llm_usage_for_run(run_id: str) -> Dict[str, Dict[str, int]]:
    """Aggregate LLM usage from the trace log for the given run_id.

    Returns dict like { 'openai': {'calls': N, 'tokens': T}, 'linkup': {...} }
    """
    result: Dict[str, Dict[str, int]] = {}
    log_path = Path(get_settings().llm_log_path)
    if not log_path.exists():
        return result
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except ValueError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            provider = rec.get("provider") or "unknown"
            usage = rec.get("usage") or {}
            bucket = result.setdefault(provider, {"calls": 0, "tokens": 0})
            bucket["calls"] += 1
            bucket["tokens"] += int(usage.get("total_tokens") or 0)
    return result


def _top(counter: Counter, n: int = TOP_N) -> List[Dict[str, Any]]:
    return [{"name": name, "count": count} for name, count in counter.most_common(n)]


def dashboard_stats(conn: sqlite3.Connection, user_id: str) -> Dict[str, Any]:
    """Aggregate one user's network for reporting.

    Connections by year count only real (non-estimated) dates.
    """
    profiles = ProfilesRepo(conn).list_for_user(user_id)
    by_year: Counter = Counter()
    for day in ConnectionsRepo(conn).connected_on_dates(user_id):
        by_year[day[:4]] += 1

    companies: Counter = Counter()
    titles: Counter = Counter()
    industries: Counter = Counter()
    skills: Counter = Counter()
    seniority: Counter = Counter()
    enriched = 0
    for p in profiles:
        if p.company:
            companies[p.company] += 1
        if p.title:
            titles[p.title] += 1
        if p.industry:
            industries[p.industry] += 1
        for skill in p.skills:
            skills[skill] += 1
        if p.role_level:
            seniority[p.role_level] += 1
        if p.enriched_at:
            enriched += 1

    total = len(profiles)
    return {
        "user_id": user_id,
        "total_connections": total,
        "connections_by_year": dict(sorted(by_year.items())),
        "top_companies": _top(companies),
        "top_titles": _top(titles),
        "top_industries": _top(industries),
        "top_skills": _top(skills),
        "seniority": dict(seniority),
        "enrichment": {
            "enriched": enriched,
            "pending": total - enriched,
            "percent": round(100.0 * enriched / total, 1) if total else 0.0,
        },
        "last_upload": ConnectionsRepo(conn).latest_upload(user_id),
    }


def print_summary(title: str, counts: Dict[str, Any], output_path: Optional[Path] = None) -> None:
    """Print a run summary block plus LLM usage for the current RUN_ID."""
    print("\n" + "=" * 60)
    print(title.upper())
    print("=" * 60)
    for key, value in counts.items():
        print(f"  {key.replace('_', ' ').title()}: {value}")
    settings = get_settings()
    run_id = os.getenv("RUN_ID")
    if run_id and settings.llm_trace:
        usage = _llm_usage_for_run(run_id)
        if usage:
            print("LLM Usage:")
            for provider, stats in usage.items():
                print(f"  {provider}: calls={stats.get('calls', 0)}, tokens={stats.get('tokens', 0)}")
    if output_path:
        print(f"Output File: {output_path}")
    print("=" * 60)
