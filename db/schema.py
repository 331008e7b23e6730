from __future__ import annotations

import sqlite3


def _add_column(cur: sqlite3.Cursor, table: str, column_sql: str) -> None:
    # Backfill columns on databases created before the column existed
    try:
        cur.execute(f"ALTER TABLE {table} ADD COLUMN {column_sql};")
    except sqlite3.OperationalError:
        pass


def bootstrap(conn: sqlite3.Connection) -> None:
    """Create profile, connection, graph and comparison tables plus indexes (idempotent)."""
    cur = conn.cursor()

    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS users (\n"
            "  user_id TEXT PRIMARY KEY,\n"
            "  email TEXT,\n"
            "  full_name TEXT,\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now'))\n"
            ")"
        )
    )

    # Profiles: one row per distinct LinkedIn URL
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS profiles (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  full_name TEXT NOT NULL,\n"
            "  profile_url TEXT NOT NULL UNIQUE,\n"
            "  email TEXT,\n"
            "  company TEXT,\n"
            "  title TEXT,\n"
            "  tags_json TEXT,\n"
            "  role_level TEXT CHECK (role_level IN ('IC', 'Manager', 'Executive')),\n"
            "  job_function TEXT,\n"
            "  industry TEXT,\n"
            "  company_size TEXT,\n"
            "  skills_json TEXT,\n"
            "  company_location TEXT,\n"
            "  is_public INTEGER,\n"
            "  founded_year TEXT,\n"
            "  enriched_at TEXT,\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  updated_at TEXT NOT NULL DEFAULT (datetime('now'))\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_profiles_company ON profiles(company);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_profiles_enriched_at ON profiles(enriched_at);")

    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS connections (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  user_id TEXT NOT NULL,\n"
            "  profile_id INTEGER NOT NULL,\n"
            "  connected_on TEXT,\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  UNIQUE(user_id, profile_id),\n"
            "  FOREIGN KEY(profile_id) REFERENCES profiles(id) ON DELETE CASCADE\n"
            ")"
        )
    )
    _add_column(cur, "connections", "connected_on_estimated INTEGER NOT NULL DEFAULT 0")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_connections_user ON connections(user_id);")

    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS upload_logs (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  user_id TEXT NOT NULL,\n"
            "  filename TEXT,\n"
            "  profiles_count INTEGER NOT NULL DEFAULT 0,\n"
            "  connections_count INTEGER NOT NULL DEFAULT 0,\n"
            "  skipped_count INTEGER NOT NULL DEFAULT 0,\n"
            "  uploaded_at TEXT NOT NULL DEFAULT (datetime('now'))\n"
            ")"
        )
    )

    # Notification tables
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS email_templates (\n"
            "  name TEXT PRIMARY KEY,\n"
            "  subject TEXT NOT NULL,\n"
            "  html_content TEXT NOT NULL,\n"
            "  text_content TEXT\n"
            ")"
        )
    )
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS email_logs (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  user_id TEXT NOT NULL,\n"
            "  template_name TEXT NOT NULL,\n"
            "  recipient TEXT,\n"
            "  status TEXT NOT NULL,\n"
            "  error TEXT,\n"
            "  sent_at TEXT NOT NULL DEFAULT (datetime('now'))\n"
            ")"
        )
    )

    # Graph tables
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS graph_nodes (\n"
            "  node_id TEXT PRIMARY KEY,\n"
            "  type TEXT NOT NULL CHECK (type IN ('profile', 'company', 'industry', 'keyword')),\n"
            "  properties_json TEXT,\n"
            "  source_user_ids_json TEXT NOT NULL DEFAULT '[]',\n"
            "  embedding_json TEXT,\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  updated_at TEXT NOT NULL DEFAULT (datetime('now'))\n"
            ")"
        )
    )
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS graph_edges (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  source_id TEXT NOT NULL,\n"
            "  target_id TEXT NOT NULL,\n"
            "  edge_type TEXT NOT NULL CHECK (edge_type IN ('connection', 'affiliation', 'title_similarity', 'mutual')),\n"
            "  weight REAL NOT NULL DEFAULT 1.0,\n"
            "  properties_json TEXT,\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  UNIQUE(source_id, target_id, edge_type),\n"
            "  FOREIGN KEY(source_id) REFERENCES graph_nodes(node_id) ON DELETE CASCADE,\n"
            "  FOREIGN KEY(target_id) REFERENCES graph_nodes(node_id) ON DELETE CASCADE\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_graph_edges_source ON graph_edges(source_id);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_graph_edges_target ON graph_edges(target_id);")
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS graph_node_profiles (\n"
            "  node_id TEXT NOT NULL,\n"
            "  profile_id INTEGER NOT NULL,\n"
            "  user_id TEXT NOT NULL,\n"
            "  PRIMARY KEY(node_id, profile_id, user_id),\n"
            "  FOREIGN KEY(node_id) REFERENCES graph_nodes(node_id) ON DELETE CASCADE,\n"
            "  FOREIGN KEY(profile_id) REFERENCES profiles(id) ON DELETE CASCADE\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_graph_node_profiles_profile ON graph_node_profiles(profile_id);")
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS graph_processing_log (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  user_id TEXT NOT NULL,\n"
            "  status TEXT NOT NULL CHECK (status IN ('pending', 'processing', 'completed', 'failed', 'cancelled')),\n"
            "  details_json TEXT,\n"
            "  started_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  finished_at TEXT\n"
            ")"
        )
    )
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS graph_predictions (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  run_id TEXT NOT NULL,\n"
            "  user_id TEXT NOT NULL,\n"
            "  target_node_id TEXT NOT NULL,\n"
            "  profile_id INTEGER NOT NULL,\n"
            "  score REAL NOT NULL,\n"
            "  reason TEXT,\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now'))\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_graph_predictions_user ON graph_predictions(user_id, score);")

    # Network comparison
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS comparison_sessions (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  user_a_id TEXT NOT NULL,\n"
            "  user_b_id TEXT NOT NULL,\n"
            "  status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'accepted', 'rejected', 'completed')),\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  completed_at TEXT\n"
            ")"
        )
    )
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS comparison_results (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  session_id INTEGER NOT NULL,\n"
            "  result_type TEXT NOT NULL CHECK (result_type IN ('mutual_connection', 'predicted_match', 'overlapping_tag')),\n"
            "  profile_a_id INTEGER,\n"
            "  profile_b_id INTEGER,\n"
            "  score REAL NOT NULL,\n"
            "  details_json TEXT,\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  FOREIGN KEY(session_id) REFERENCES comparison_sessions(id) ON DELETE CASCADE\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_comparison_results_session ON comparison_results(session_id);")

    # View for joined reads
    cur.execute("DROP VIEW IF EXISTS v_user_profiles;")
    cur.execute(
        (
            "CREATE VIEW v_user_profiles AS\n"
            "SELECT\n"
            "  c.user_id,\n"
            "  c.connected_on,\n"
            "  c.connected_on_estimated,\n"
            "  p.*\n"
            "FROM connections c JOIN profiles p ON p.id = c.profile_id;"
        )
    )

    conn.commit()
