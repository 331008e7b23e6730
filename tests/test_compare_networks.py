from __future__ import annotations

import pytest

from conftest import connections_csv
from db.repos.comparisons_repo import ComparisonsRepo
from db.repos.profiles_repo import ProfilesRepo
from pipelines.compare_networks import accept_session, compare_networks, reject_session
from pipelines.import_export import import_export
from services.errors import NotFoundError, PersistenceError


P1 = "Pat,One,https://linkedin.com/in/p1,,Initech,Analyst,1/15/2021"
P2 = "Pam,Two,https://linkedin.com/in/p2,,Acme,Engineer,1/15/2021"
P3 = "Pia,Three,https://linkedin.com/in/p3,,Acme,Designer,1/15/2021"


@pytest.fixture
def two_networks(db_conn):
    import_export(db_conn, "a", connections_csv(P1, P2).encode("utf-8"), filename="Connections.csv")
    import_export(db_conn, "b", connections_csv(P1, P3).encode("utf-8"), filename="Connections.csv")
    return db_conn


def _pid(conn, slug):
    return int(ProfilesRepo(conn).get_by_url(f"https://linkedin.com/in/{slug}").id)


def test_mutual_and_predicted_matches(two_networks):
    conn = two_networks
    session_id = compare_networks(conn, "a", "b")
    repo = ComparisonsRepo(conn)
    session = repo.get_session(session_id)
    assert session["status"] == "completed"
    assert session["completed_at"]

    mutual = repo.list_results(session_id, "mutual_connection")
    assert [(r.profile_a_id, r.score) for r in mutual] == [(_pid(conn, "p1"), 1.0)]

    predicted = repo.list_results(session_id, "predicted_match")
    # P2 x P3 is the only non-mutual pair; same company alone reaches 0.3
    assert [(r.profile_a_id, r.profile_b_id) for r in predicted] == [(_pid(conn, "p2"), _pid(conn, "p3"))]
    assert predicted[0].score == pytest.approx(0.3)
    assert predicted[0].details["factors"]["same_company"] is True

    tags = {r.details["tag"] for r in repo.list_results(session_id, "overlapping_tag")}
    assert "source:connection" in tags


def test_failed_result_write_is_skipped_and_session_completes(two_networks, monkeypatch):
    original = ComparisonsRepo.add_result

    def _add_result(self, session_id, result, commit=True):
        if result.result_type == "mutual_connection":
            raise PersistenceError("Result write failed")
        return original(self, session_id, result, commit=commit)

    monkeypatch.setattr(ComparisonsRepo, "add_result", _add_result)
    session_id = compare_networks(two_networks, "a", "b")
    repo = ComparisonsRepo(two_networks)
    assert repo.get_session(session_id)["status"] == "completed"
    assert repo.list_results(session_id, "mutual_connection") == []
    assert len(repo.list_results(session_id, "predicted_match")) == 1
    assert repo.list_results(session_id, "overlapping_tag")


def test_threshold_filters_predicted_matches(two_networks):
    session_id = compare_networks(two_networks, "a", "b", threshold=0.5)
    assert ComparisonsRepo(two_networks).list_results(session_id, "predicted_match") == []


def test_session_transitions(db_conn):
    repo = ComparisonsRepo(db_conn)
    session_id = repo.create_session("a", "b")
    assert accept_session(db_conn, session_id)["status"] == "accepted"
    with pytest.raises(ValueError):
        reject_session(db_conn, session_id)

    other = repo.create_session("a", "c")
    assert reject_session(db_conn, other)["status"] == "rejected"
    with pytest.raises(ValueError):
        accept_session(db_conn, other)

    with pytest.raises(NotFoundError):
        accept_session(db_conn, 9999)
