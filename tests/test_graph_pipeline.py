from __future__ import annotations

import pytest

from conftest import connections_csv
from db.repos.graph_repo import GraphRepo
from db.repos.notifications_repo import NotificationsRepo
from db.repos.profiles_repo import ProfilesRepo
from models import profile_node_id
from pipelines.build_graph import build_graph, find_similar_profiles
from pipelines.enrich_profiles import enrich_profiles
from pipelines.import_export import import_export
from pipelines.runner import Pipeline, PipelineCancelled, RunContext
from pipelines.steps.predict_links import PredictLinks
from services.errors import PersistenceError


ANN = "Ann,Archer,https://linkedin.com/in/ann,,Acme,Software Engineer,1/15/2021"
BEN = "Ben,Baker,https://linkedin.com/in/ben,,Acme,Software Engineer,3/2/2022"
CAT = "Cat,Cole,https://linkedin.com/in/cat,,Acme,Senior Software Engineer,4/5/2022"
DAN = "Dan,Drew,https://linkedin.com/in/dan,,Globex,Sales Manager,5/6/2023"
EVE = "Eve,Evans,https://linkedin.com/in/eve,,Acme,Product Manager,6/7/2023"


def _import(conn, user_id, *rows):
    data = connections_csv(*rows).encode("utf-8")
    return import_export(conn, user_id, data, filename="Connections.csv")


def _pid(conn, slug):
    return int(ProfilesRepo(conn).get_by_url(f"https://linkedin.com/in/{slug}").id)


@pytest.fixture
def network(db_conn):
    _import(db_conn, "u1", ANN, BEN, CAT, DAN)
    enrich_profiles(db_conn, "u1", notify=False)
    return db_conn


def test_single_user_graph(network):
    ctx = build_graph(network, "u1")
    graph = GraphRepo(network)
    assert ctx.meta["nodes_registered"] == 4
    # Three Acme profiles -> 3 * 2 / 2 affiliation edges
    assert ctx.meta["affiliation_edges"] == 3
    assert graph.count_edges("affiliation") == 3
    # Ann and Ben share an identical title; Cat's 2/3 overlap stays below 0.7
    assert graph.count_edges("title_similarity") == 1
    assert graph.count_edges("mutual") == 0
    cur = network.cursor()
    cur.execute("SELECT status FROM graph_processing_log ORDER BY id DESC LIMIT 1")
    assert cur.fetchone()[0] == "completed"


def test_rebuild_is_idempotent(network):
    build_graph(network, "u1")
    before = GraphRepo(network).count_edges()
    build_graph(network, "u1")
    assert GraphRepo(network).count_edges() == before


def test_mutual_edges_and_predictions_across_users(network):
    build_graph(network, "u1")
    _import(network, "u2", ANN, BEN, EVE)
    build_graph(network, "u2")
    graph = GraphRepo(network)
    ann, eve = (profile_node_id(_pid(network, s)) for s in ("ann", "eve"))

    assert graph.count_edges("mutual") == 2
    assert sorted(graph.source_user_ids(ann)) == ["u1", "u2"]

    ctx = Pipeline([PredictLinks(network)]).run(RunContext(user_id="u1"))
    predictions = ctx.meta["predictions"]
    assert [p.target_node_id for p in predictions] == [eve]
    # Eve shares Acme with Ann and Ben in u2's network
    assert predictions[0].score == pytest.approx(0.3)
    assert predictions[0].reason == "Based on 2 shared affiliations"

    stored = graph.latest_predictions("u1")
    assert [row["profile_id"] for row in stored] == [_pid(network, "eve")]


def test_similar_profiles_rank_by_embedding(network):
    build_graph(network, "u1")
    ann = _pid(network, "ann")
    ranked = find_similar_profiles(network, ann, limit=3)
    ids = [pid for pid, _ in ranked]
    assert _pid(network, "ben") in ids
    assert ranked[0][1] == pytest.approx(1.0)
    scores = dict(ranked)
    assert scores.get(_pid(network, "dan"), 0.0) < 1.0


def test_cancelled_build_is_logged(network):
    ctx = RunContext()
    ctx.cancel_event.set()
    with pytest.raises(PipelineCancelled):
        build_graph(network, "u1", ctx=ctx)
    cur = network.cursor()
    cur.execute("SELECT status FROM graph_processing_log ORDER BY id DESC LIMIT 1")
    assert cur.fetchone()[0] == "cancelled"


def test_graph_complete_notification_is_logged(network):
    NotificationsRepo(network).upsert_user("u1", "ann@example.com", "Ann")
    build_graph(network, "u1", notify=True)
    cur = network.cursor()
    cur.execute("SELECT template_name, recipient, status FROM email_logs")
    assert cur.fetchall() == [("graph_complete", "ann@example.com", "logged")]


def test_failed_edge_write_is_skipped_and_other_edges_persist(network, monkeypatch):
    ben = profile_node_id(_pid(network, "ben"))
    original = GraphRepo.upsert_edge

    def _upsert_edge(self, edge, commit=True):
        if ben in (edge.source_id, edge.target_id):
            raise PersistenceError(f"Edge upsert failed for {edge.source_id}->{edge.target_id}")
        return original(self, edge, commit=commit)

    monkeypatch.setattr(GraphRepo, "upsert_edge", _upsert_edge)
    ctx = build_graph(network, "u1")
    # Only Ann-Cat survives of the three Acme pairs
    assert ctx.meta["affiliation_edges"] == 1
    assert GraphRepo(network).count_edges("affiliation") == 1
    assert ctx.meta["title_similarity_edges"] == 0
    cur = network.cursor()
    cur.execute("SELECT status FROM graph_processing_log ORDER BY id DESC LIMIT 1")
    assert cur.fetchone()[0] == "completed"
