#!/usr/bin/env python
"""
Reference vault backend.

Serves the local HTTP contract used by the VaultShell desktop shell. The
shell launches this file directly (python -u server.py --host ... --port ...),
so it must not rely on package-relative imports.
"""

import os
import sqlite3
import logging
import argparse
from contextlib import closing

from flask import Flask, jsonify, request

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000
DEFAULT_DB_PATH = os.path.join(os.path.expanduser("~"), ".vaultshell", "vault.db")

MASTER_TABLE = "master_password"


def _connect(db_path: str) -> sqlite3.Connection:
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return sqlite3.connect(db_path)


def _table_exists(conn: sqlite3.Connection) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (MASTER_TABLE,)
    ).fetchone()
    return row is not None


def _master_count(conn: sqlite3.Connection) -> int:
    return conn.execute(f"SELECT COUNT(*) FROM {MASTER_TABLE}").fetchone()[0]


def create_app(db_path: str = DEFAULT_DB_PATH) -> Flask:
    """Application factory."""
    app = Flask(__name__)
    app.config["DB_PATH"] = db_path

    @app.route('/init_db', methods=['POST'])
    def init_db():
        with closing(_connect(app.config["DB_PATH"])) as conn, conn:
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {MASTER_TABLE} ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "username TEXT NOT NULL UNIQUE, "
                "password TEXT NOT NULL)"
            )
        logger.info("Database initialized")
        return jsonify({"message": "Database initialized"}), 200

    @app.route('/check_setup_complete', methods=['GET'])
    def check_setup_complete():
        with closing(_connect(app.config["DB_PATH"])) as conn:
            complete = _table_exists(conn) and _master_count(conn) > 0
        return jsonify({"setup_complete": complete})

    @app.route('/add_master_password', methods=['POST'])
    def add_master_password():
        payload = request.get_json(silent=True) or {}
        username = payload.get("username")
        password = payload.get("password")
        if not isinstance(username, str) or not username.strip() \
                or not isinstance(password, str) or not password:
            return jsonify({"message": "Username and password are required"}), 400

        with closing(_connect(app.config["DB_PATH"])) as conn, conn:
            if not _table_exists(conn):
                return jsonify({"message": "Database not initialized"}), 503
            if _master_count(conn) > 0:
                return jsonify({"message": "Master password already set"}), 409
            conn.execute(
                f"INSERT INTO {MASTER_TABLE} (username, password) VALUES (?, ?)",
                (username.strip(), password),
            )
        logger.info("Master password stored")
        return jsonify({"message": "Master password set"}), 201

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="VaultShell reference backend")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--db", default=DEFAULT_DB_PATH, help="SQLite database file")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')
    app = create_app(args.db)
    app.run(host=args.host, port=args.port, debug=False, use_reloader=False)


if __name__ == "__main__":
    main()
