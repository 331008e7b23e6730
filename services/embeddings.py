from __future__ import annotations

import math
from typing import Dict, List, Sequence, Tuple

from models import ProfileRecord


ROLE_LEVELS = ("IC", "Manager", "Executive")
JOB_FUNCTIONS = ("Engineering", "Sales", "Marketing", "Product", "Design", "Data", "HR", "Finance", "Other")
INDUSTRIES = ("Technology", "Finance", "Healthcare", "Education", "Retail", "Other")
COMPANY_SIZES = ("Large", "Small/Medium")
COMMON_SKILLS = (
    "Programming",
    "Software Development",
    "Frontend Development",
    "Backend Development",
    "Full Stack Development",
    "Mobile Development",
    "DevOps",
    "Sales",
    "Marketing",
    "Product Management",
    "Design",
)


def profile_embedding(profile: ProfileRecord) -> List[float]:
    """Deterministic one-hot feature vector over the enrichment attributes."""
    vector: List[float] = []
    vector.extend(1.0 if profile.role_level == level else 0.0 for level in ROLE_LEVELS)
    vector.extend(1.0 if profile.job_function == fn else 0.0 for fn in JOB_FUNCTIONS)
    vector.extend(1.0 if profile.industry == ind else 0.0 for ind in INDUSTRIES)
    vector.extend(1.0 if profile.company_size == size else 0.0 for size in COMPANY_SIZES)
    skills = set(profile.skills or [])
    vector.extend(1.0 if skill in skills else 0.0 for skill in COMMON_SKILLS)
    return vector


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if not norm_a or not norm_b:
        return 0.0
    return dot / (norm_a * norm_b)


def rank_similar(
    target_node: str,
    embeddings: Dict[str, List[float]],
    limit: int = 10,
) -> List[Tuple[str, float]]:
    """Other nodes ordered by cosine similarity to the target, best first."""
    target = embeddings.get(target_node)
    if target is None:
        return []
    scored = [
        (node_id, cosine_similarity(target, embeddings[node_id]))
        for node_id in embeddings
        if node_id != target_node and node_id in embeddings
    ]
    scored.sort(key=lambda item: (-item[1], item[0]))
    return scored[:limit]
