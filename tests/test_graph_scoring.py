from __future__ import annotations

import pytest

from models import ProfileRecord
from services.graph_scoring import (
    affiliation_edges,
    match_score,
    mutual_edges,
    prediction_score,
    title_similarity,
    title_similarity_edges,
)


def test_title_similarity_values():
    assert title_similarity("Software Engineer", "software engineer") == 1.0
    assert title_similarity("Software Engineer", "Sales Manager") == 0.0
    assert title_similarity("Senior Software Engineer", "Software Engineer") == pytest.approx(2 / 3)
    assert title_similarity(None, "") == 0.0


def test_affiliation_edges_cover_every_pair():
    members = [(f"profile_{i}", "Acme") for i in range(1, 6)] + [("profile_9", "Globex"), ("profile_10", None)]
    edges = affiliation_edges(members)
    assert len(edges) == 5 * 4 // 2
    assert all(e.edge_type == "affiliation" and e.weight == 1.0 for e in edges)
    assert all(e.source_id <= e.target_id for e in edges)
    assert {e.properties["company"] for e in edges} == {"Acme"}


def test_title_similarity_edges_respect_threshold_and_function():
    members = [
        ("profile_1", "Engineering", "Software Engineer"),
        ("profile_2", "Engineering", "Software Engineer"),
        ("profile_3", "Engineering", "Senior Software Engineer"),
        ("profile_4", "Sales", "Software Engineer"),
    ]
    edges = title_similarity_edges(members, threshold=0.7)
    assert [(e.source_id, e.target_id) for e in edges] == [("profile_1", "profile_2")]
    assert edges[0].weight == 1.0
    # 2/3 clears a lower threshold
    assert len(title_similarity_edges(members, threshold=0.6)) == 3


def test_mutual_edges_need_enough_shared_owners():
    owners = {
        "profile_1": {"u1", "u2"},
        "profile_2": {"u1", "u2", "u3"},
        "profile_3": {"u3", "u4"},
        "profile_4": {"u1"},
    }
    edges = mutual_edges(owners, min_shared=2)
    pairs = {(e.source_id, e.target_id): e.weight for e in edges}
    assert pairs == {("profile_1", "profile_2"): 1.0, ("profile_2", "profile_1"): pytest.approx(2 / 3)}
    assert len(mutual_edges(owners, min_shared=1)) == 4


def test_prediction_score_and_reason():
    assert prediction_score({}) == (0.0, "Based on network analysis")
    score, reason = prediction_score({"mutual": 1, "affiliation": 2, "title_similarity": 1})
    assert score == pytest.approx(0.6)
    assert reason == "Based on 1 mutual connections, 2 shared affiliations, 1 similar roles"
    assert prediction_score({"mutual": 10})[0] == 1.0


def test_match_score_factors():
    a = ProfileRecord(full_name="A", profile_url="u/a", company="Acme", job_function="Engineering",
                      industry="Technology", role_level="IC", skills=["Programming", "Databases"])
    b = ProfileRecord(full_name="B", profile_url="u/b", company="Acme", job_function="Sales",
                      industry="Technology", role_level="IC", skills=["Databases"])
    score, factors = match_score(a, b)
    assert score == pytest.approx(0.3 + 0.2 + 0.1 + 0.05)
    assert factors["same_company"] and not factors["same_job_function"]
    assert factors["shared_skills"] == ["Databases"]

    c = ProfileRecord(full_name="C", profile_url="u/c", role_level="IC", job_function="Engineering")
    # 0.1 + 0.2 reaches the 0.3 threshold exactly
    assert match_score(a, c)[0] >= 0.3
    assert match_score(ProfileRecord(full_name="D", profile_url="u/d"), ProfileRecord(full_name="E", profile_url="u/e"))[0] == 0.0
