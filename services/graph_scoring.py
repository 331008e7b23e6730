from __future__ import annotations

from collections import OrderedDict
from itertools import combinations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from models import GraphEdge, ProfileRecord


# Link prediction weight per touching edge
PREDICTION_WEIGHTS: Dict[str, float] = {
    "mutual": 0.2,
    "affiliation": 0.15,
    "title_similarity": 0.1,
}

# Additive factors for cross-network profile matching
MATCH_WEIGHTS: Dict[str, float] = {
    "same_company": 0.3,
    "same_job_function": 0.2,
    "same_industry": 0.2,
    "same_role_level": 0.1,
    "shared_skill": 0.05,
}


def title_tokens(title: Optional[str]) -> Set[str]:
    return set((title or "").lower().split())


def title_similarity(title_a: Optional[str], title_b: Optional[str]) -> float:
    """Shared lower-cased whitespace tokens over distinct tokens of both titles."""
    a = title_tokens(title_a)
    b = title_tokens(title_b)
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def _ordered_pair(x: str, y: str) -> Tuple[str, str]:
    return (x, y) if x <= y else (y, x)


def _group(members: Iterable[Tuple[str, Optional[str]]]) -> "OrderedDict[str, List[str]]":
    groups: "OrderedDict[str, List[str]]" = OrderedDict()
    for node_id, key in members:
        if not key:
            continue
        bucket = groups.setdefault(key, [])
        if node_id not in bucket:
            bucket.append(node_id)
    return groups


def affiliation_edges(members: Iterable[Tuple[str, Optional[str]]]) -> List[GraphEdge]:
    """One edge per unordered pair of nodes sharing an exact company string."""
    edges: List[GraphEdge] = []
    for company, node_ids in _group(members).items():
        for a, b in combinations(node_ids, 2):
            source, target = _ordered_pair(a, b)
            edges.append(GraphEdge(
                source_id=source,
                target_id=target,
                edge_type="affiliation",
                weight=1.0,
                properties={"company": company},
            ))
    return edges


def title_similarity_edges(
    members: Iterable[Tuple[str, Optional[str], Optional[str]]],
    threshold: float,
) -> List[GraphEdge]:
    """Pairs within a job function whose title similarity reaches the threshold."""
    members = list(members)
    titles = {node_id: title for node_id, _fn, title in members}
    edges: List[GraphEdge] = []
    for job_function, node_ids in _group((n, fn) for n, fn, _t in members).items():
        for a, b in combinations(node_ids, 2):
            similarity = title_similarity(titles.get(a), titles.get(b))
            if similarity < threshold:
                continue
            source, target = _ordered_pair(a, b)
            edges.append(GraphEdge(
                source_id=source,
                target_id=target,
                edge_type="title_similarity",
                weight=similarity,
                properties={"similarity": similarity, "job_function": job_function},
            ))
    return edges


def mutual_edges(owners: Mapping[str, Set[str]], min_shared: int = 2) -> List[GraphEdge]:
    """Edges from each multi-owner node to nodes sharing at least ``min_shared`` of its owners.

    weight = shared owners / owners of the seed node.
    """
    multi = sorted(n for n, users in owners.items() if len(users) > 1)
    edges: List[GraphEdge] = []
    for seed in multi:
        seed_owners = owners[seed]
        for other in multi:
            if other == seed:
                continue
            shared = len(seed_owners & owners[other])
            if shared < max(1, min_shared):
                continue
            edges.append(GraphEdge(
                source_id=seed,
                target_id=other,
                edge_type="mutual",
                weight=shared / len(seed_owners),
                properties={"shared_networks": shared},
            ))
    return edges


def prediction_score(edge_counts: Mapping[str, int]) -> Tuple[float, str]:
    """Weighted edge-type counts clamped to 1.0, plus a readable reason."""
    mutual = int(edge_counts.get("mutual", 0))
    affiliation = int(edge_counts.get("affiliation", 0))
    similar = int(edge_counts.get("title_similarity", 0))
    score = (
        mutual * PREDICTION_WEIGHTS["mutual"]
        + affiliation * PREDICTION_WEIGHTS["affiliation"]
        + similar * PREDICTION_WEIGHTS["title_similarity"]
    )
    reasons: List[str] = []
    if mutual:
        reasons.append(f"{mutual} mutual connections")
    if affiliation:
        reasons.append(f"{affiliation} shared affiliations")
    if similar:
        reasons.append(f"{similar} similar roles")
    reason = "Based on " + ", ".join(reasons) if reasons else "Based on network analysis"
    return min(1.0, round(score, 6)), reason


def _same(a: Any, b: Any) -> bool:
    return bool(a) and bool(b) and a == b


def match_score(a: ProfileRecord, b: ProfileRecord) -> Tuple[float, Dict[str, Any]]:
    """Additive similarity between profiles from two different networks."""
    shared_skills: Sequence[str] = [s for s in (a.skills or []) if s in set(b.skills or [])]
    factors: Dict[str, Any] = {
        "same_company": _same(a.company, b.company),
        "same_job_function": _same(a.job_function, b.job_function),
        "same_industry": _same(a.industry, b.industry),
        "same_role_level": _same(a.role_level, b.role_level),
        "shared_skills": list(shared_skills),
    }
    score = sum(MATCH_WEIGHTS[k] for k in ("same_company", "same_job_function", "same_industry", "same_role_level") if factors[k])
    score += len(shared_skills) * MATCH_WEIGHTS["shared_skill"]
    # Float sums like 0.1 + 0.2 must still clear a 0.3 threshold
    return round(score, 6), factors
