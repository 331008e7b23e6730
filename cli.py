import argparse
import json
import os
import sys
import uuid as _uuid

from config.settings import get_settings
from db import schema
from db.connection import get_connection
from db.repos.comparisons_repo import ComparisonsRepo
from db.repos.graph_repo import GraphRepo
from db.repos.notifications_repo import NotificationsRepo
from db.repos.profiles_repo import ProfilesRepo
from pipelines.build_graph import build_graph, find_similar_profiles
from pipelines.compare_networks import accept_session, compare_networks, reject_session
from pipelines.enrich_profiles import enrich_profiles
from pipelines.import_export import import_export
from pipelines.runner import Pipeline, RunContext
from pipelines.steps.predict_links import PredictLinks
from services.domain_utils import canonical_profile_url
from services.errors import MalformedInputError, NotFoundError
from services.reporting import dashboard_stats, print_summary
from utils.logging_setup import init_logging


def _open(args):
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    return conn


def cmd_bootstrap(args):
    _open(args)
    print("Schema ready")


def cmd_add_user(args):
    conn = _open(args)
    NotificationsRepo(conn).upsert_user(args.user, args.email, args.name)
    print(f"User {args.user} saved")


def cmd_import(args):
    conn = _open(args)

    def _progress(done):
        print(f"Persisted {done} profiles")

    try:
        ctx = import_export(
            conn,
            args.user,
            args.file,
            owner_name=args.owner_name,
            on_processed=_progress if args.progress else None,
        )
    except MalformedInputError as e:
        print(f"Import failed: {e}", file=sys.stderr)
        sys.exit(2)
    stats = ctx.meta.get("merge_stats") or {}
    print_summary("Network import", {
        "files_parsed": ctx.meta.get("files_parsed", 0),
        "lines_skipped": ctx.meta.get("lines_skipped", 0),
        "contacts_merged": len(ctx.contacts),
        "rows_without_name": stats.get("skipped_no_name", 0),
        "invalid_profiles": ctx.meta.get("invalid_profiles", 0),
        "profiles_saved": ctx.meta.get("processed_profiles", 0),
        "failed_profiles": ctx.meta.get("failed_profiles", 0),
    })


def cmd_enrich(args):
    conn = _open(args)

    def _progress(cur, total, profile_id, name):
        print(f"[{cur}/{total}] Enriching profile_id={profile_id} name={name}")

    ctx = enrich_profiles(
        conn,
        args.user,
        limit=args.limit,
        notify=not args.no_notify,
        on_progress=_progress if args.progress else None,
    )
    print_summary("Profile enrichment", {
        "pending_profiles": ctx.meta.get("pending_profiles_total", 0),
        "profiles_enriched": ctx.meta.get("profiles_enriched", 0),
        "rule_based_fallbacks": ctx.meta.get("profiles_fallback", 0),
        "profiles_failed": ctx.meta.get("profiles_failed", 0),
    })


def cmd_build_graph(args):
    conn = _open(args)
    ctx = build_graph(conn, args.user, threshold=args.threshold, notify=args.notify)
    print_summary("Graph build", {
        "profile_nodes": ctx.meta.get("nodes_registered", 0),
        "affiliation_edges": ctx.meta.get("affiliation_edges", 0),
        "title_similarity_edges": ctx.meta.get("title_similarity_edges", 0),
        "mutual_edges": ctx.meta.get("mutual_edges", 0),
        "embeddings": ctx.meta.get("embeddings", 0),
    })


def cmd_predict(args):
    conn = _open(args)
    if args.latest:
        print(json.dumps(GraphRepo(conn).latest_predictions(args.user, limit=args.limit), indent=2, ensure_ascii=False))
        return
    ctx = RunContext(user_id=args.user)
    ctx.meta["run_id"] = os.getenv("RUN_ID")
    ctx = Pipeline([PredictLinks(conn, limit=args.limit)]).run(ctx)
    profiles = ProfilesRepo(conn).get_many([p.profile_id for p in ctx.meta.get("predictions") or []])
    out = []
    for p in ctx.meta.get("predictions") or []:
        profile = profiles.get(p.profile_id)
        out.append({
            "profile_id": p.profile_id,
            "full_name": profile.full_name if profile else None,
            "company": profile.company if profile else None,
            "score": p.score,
            "reason": p.reason,
        })
    print(json.dumps(out, indent=2, ensure_ascii=False))


def cmd_compare(args):
    conn = _open(args)
    session_id = compare_networks(conn, args.user_a, args.user_b, notify=args.notify)
    repo = ComparisonsRepo(conn)
    results = repo.list_results(session_id)
    counts = {}
    for r in results:
        counts[r.result_type] = counts.get(r.result_type, 0) + 1
    out = {
        "session": repo.get_session(session_id),
        "counts": counts,
        "top_predicted_matches": [
            r.model_dump() for r in repo.list_results(session_id, "predicted_match")[: args.limit]
        ],
    }
    print(json.dumps(out, indent=2, ensure_ascii=False))


def cmd_review_session(args):
    conn = _open(args)
    action = accept_session if args.decision == "accept" else reject_session
    try:
        session = action(conn, args.session_id)
    except (NotFoundError, ValueError) as e:
        print(str(e), file=sys.stderr)
        sys.exit(2)
    print(json.dumps(session, indent=2, ensure_ascii=False))


def cmd_similar(args):
    conn = _open(args)
    try:
        ranked = find_similar_profiles(conn, args.profile_id, limit=args.limit)
    except NotFoundError as e:
        print(f"{e}; run build-graph first", file=sys.stderr)
        sys.exit(2)
    profiles = ProfilesRepo(conn).get_many([pid for pid, _ in ranked])
    out = [
        {
            "profile_id": pid,
            "full_name": profiles[pid].full_name if pid in profiles else None,
            "title": profiles[pid].title if pid in profiles else None,
            "similarity": round(score, 4),
        }
        for pid, score in ranked
    ]
    print(json.dumps(out, indent=2, ensure_ascii=False))


def cmd_report_stats(args):
    conn = _open(args)
    print(json.dumps(dashboard_stats(conn, args.user), indent=2, ensure_ascii=False))


def cmd_report_profile(args):
    conn = _open(args)
    url = canonical_profile_url(args.profile)
    if not url:
        print("Invalid LinkedIn profile URL")
        return
    profile = ProfilesRepo(conn).get_by_url(url)
    if not profile:
        print("No record found for profile")
        return
    result = profile.model_dump()
    try:
        node_id = GraphRepo(conn).node_for_profile(int(profile.id))
        result["graph"] = {
            "node_id": node_id,
            "edges": len(GraphRepo(conn).edges_touching(node_id)),
            "source_user_ids": GraphRepo(conn).source_user_ids(node_id),
        }
    except NotFoundError:
        result["graph"] = None
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))


def main():
    settings = get_settings()
    init_logging(settings.log_level)
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex
    parser = argparse.ArgumentParser(description="Network insights CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite DB (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_boot = sub.add_parser("bootstrap", help="Create tables and indexes")
    p_boot.set_defaults(func=cmd_bootstrap)

    p_user = sub.add_parser("add-user", help="Register a user and their notification email")
    p_user.add_argument("--user", required=True)
    p_user.add_argument("--email", required=True)
    p_user.add_argument("--name", default=None, help="Display name used in notifications")
    p_user.set_defaults(func=cmd_add_user)

    p_imp = sub.add_parser("import", help="Import a LinkedIn data export (ZIP or CSV)")
    p_imp.add_argument("--user", required=True, help="User id owning the import")
    p_imp.add_argument("--file", required=True, help="Path to the export ZIP or a single CSV")
    p_imp.add_argument("--owner-name", default=None, help="Account holder's full name to exclude (default: OWNER_NAME)")
    p_imp.add_argument("--progress", action="store_true", help="Print progress after each batch")
    p_imp.set_defaults(func=cmd_import)

    p_enr = sub.add_parser("enrich", help="Enrich pending profiles (provider from settings.ai_provider)")
    p_enr.add_argument("--user", required=True)
    p_enr.add_argument("--limit", type=int, default=None, help="Max profiles to enrich in this run")
    p_enr.add_argument("--progress", action="store_true", help="Print progress for each profile")
    p_enr.add_argument("--no-notify", action="store_true", help="Skip the completion email")
    p_enr.set_defaults(func=cmd_enrich)

    p_graph = sub.add_parser("build-graph", help="Build profile nodes and edges for a user")
    p_graph.add_argument("--user", required=True)
    p_graph.add_argument("--threshold", type=float, default=None, help="Title similarity threshold (default from settings)")
    p_graph.add_argument("--notify", action="store_true", help="Email the user when the graph is rebuilt")
    p_graph.set_defaults(func=cmd_build_graph)

    p_pred = sub.add_parser("predict", help="Rank profiles the user is not connected to")
    p_pred.add_argument("--user", required=True)
    p_pred.add_argument("--limit", type=int, default=20)
    p_pred.add_argument("--latest", action="store_true", help="Print the most recent stored run instead of recomputing")
    p_pred.set_defaults(func=cmd_predict)

    p_cmp = sub.add_parser("compare", help="Compare two users' networks")
    p_cmp.add_argument("--user-a", required=True)
    p_cmp.add_argument("--user-b", required=True)
    p_cmp.add_argument("--limit", type=int, default=10, help="Predicted matches to print")
    p_cmp.add_argument("--notify", action="store_true", help="Email user A when done")
    p_cmp.set_defaults(func=cmd_compare)

    p_rev = sub.add_parser("review-session", help="Accept or reject a comparison session")
    p_rev.add_argument("--session-id", type=int, required=True)
    p_rev.add_argument("--decision", choices=["accept", "reject"], required=True)
    p_rev.set_defaults(func=cmd_review_session)

    p_sim = sub.add_parser("similar", help="Profiles closest to one profile by embedding")
    p_sim.add_argument("--profile-id", type=int, required=True)
    p_sim.add_argument("--limit", type=int, default=10)
    p_sim.set_defaults(func=cmd_similar)

    p_rs = sub.add_parser("report-stats", help="Dashboard statistics for a user")
    p_rs.add_argument("--user", required=True)
    p_rs.set_defaults(func=cmd_report_stats)

    p_rp = sub.add_parser("report-profile", help="Show a stored profile with its graph context")
    p_rp.add_argument("--profile", required=True, help="LinkedIn profile URL")
    p_rp.set_defaults(func=cmd_report_profile)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
