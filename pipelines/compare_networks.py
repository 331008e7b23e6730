from __future__ import annotations

import logging
import sqlite3
from typing import Dict, List, Optional

from config.settings import get_settings
from db.repos.comparisons_repo import ComparisonsRepo
from db.repos.notifications_repo import NotificationsRepo
from db.repos.profiles_repo import ProfilesRepo
from models import ComparisonResult, ProfileRecord
from services.errors import PersistenceError
from services.graph_scoring import match_score
from services.notifications import Notifier


logger = logging.getLogger(__name__)

# pending -> accepted|rejected -> completed; the matching itself does not wait for consent
_TRANSITIONS: Dict[str, tuple] = {
    "pending": ("accepted", "rejected", "completed"),
    "accepted": ("completed",),
    "rejected": (),
    "completed": (),
}


def _transition(conn: sqlite3.Connection, session_id: int, target: str) -> Dict[str, object]:
    repo = ComparisonsRepo(conn)
    session = repo.get_session(session_id)
    current = str(session["status"])
    if target not in _TRANSITIONS.get(current, ()):
        raise ValueError(f"Cannot move comparison session {session_id} from {current} to {target}")
    repo.set_status(session_id, target)
    return repo.get_session(session_id)


def accept_session(conn: sqlite3.Connection, session_id: int) -> Dict[str, object]:
    return _transition(conn, session_id, "accepted")


def reject_session(conn: sqlite3.Connection, session_id: int) -> Dict[str, object]:
    return _transition(conn, session_id, "rejected")


def _tag_vocabulary(profiles: List[ProfileRecord]) -> List[str]:
    seen: List[str] = []
    for profile in profiles:
        for tag in profile.tags:
            if tag not in seen:
                seen.append(tag)
    return seen


def compare_networks(
    conn: sqlite3.Connection,
    user_a: str,
    user_b: str,
    *,
    threshold: Optional[float] = None,
    notify: bool = False,
) -> int:
    """Compare two users' networks and return the completed session id.

    Results: one mutual_connection per shared profile, predicted_match for
    non-mutual pairs scoring at least the threshold, one overlapping_tag per
    shared tag.
    """
    settings = get_settings()
    threshold = settings.predicted_match_threshold if threshold is None else threshold
    repo = ComparisonsRepo(conn)
    profiles_repo = ProfilesRepo(conn)

    session_id = repo.create_session(user_a, user_b)
    profiles_a = profiles_repo.list_for_user(user_a)
    profiles_b = profiles_repo.list_for_user(user_b)
    ids_b = {int(p.id) for p in profiles_b}
    mutual_ids = [int(p.id) for p in profiles_a if int(p.id) in ids_b]
    mutual = set(mutual_ids)

    results: List[ComparisonResult] = []
    for profile_id in mutual_ids:
        results.append(ComparisonResult(
            result_type="mutual_connection",
            profile_a_id=profile_id,
            profile_b_id=profile_id,
            score=1.0,
            details={"type": "mutual_connection"},
        ))

    others_b = [p for p in profiles_b if int(p.id) not in mutual]
    predicted = 0
    for a in profiles_a:
        if int(a.id) in mutual:
            continue
        for b in others_b:
            score, factors = match_score(a, b)
            if score < threshold:
                continue
            predicted += 1
            results.append(ComparisonResult(
                result_type="predicted_match",
                profile_a_id=int(a.id),
                profile_b_id=int(b.id),
                score=score,
                details={"type": "predicted_match", "factors": factors},
            ))

    tags_b = set(_tag_vocabulary(profiles_b))
    shared_tags = [t for t in _tag_vocabulary(profiles_a) if t in tags_b]
    for tag in shared_tags:
        results.append(ComparisonResult(
            result_type="overlapping_tag",
            score=1.0,
            details={"type": "overlapping_tag", "tag": tag},
        ))

    written = 0
    for result in results:
        try:
            repo.add_result(session_id, result, commit=False)
        except PersistenceError as e:
            logger.warning(str(e), extra={"step": "compare", "status": "error", "error": "persistence"})
            continue
        written += 1
    conn.commit()
    repo.set_status(session_id, "completed")
    logger.info(
        f"Comparison {session_id} ({user_a} vs {user_b}): {len(mutual_ids)} mutual, {predicted} predicted, {len(shared_tags)} tags",
        extra={"step": "compare", "status": "completed"},
    )

    if notify:
        other = NotificationsRepo(conn).get_user(user_b) or {}
        Notifier(conn).send(user_a, "comparison_complete", {
            "otherUserName": other.get("full_name") or user_b,
            "mutualConnectionsCount": len(mutual_ids),
            "potentialIntrosCount": predicted,
            "overlappingTagsCount": len(shared_tags),
        })
    return session_id
