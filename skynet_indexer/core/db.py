"""
SQLite storage for the submission store (deltas) and the confirmation store (actions).
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator

from .config import DB_PATH, ensure_db_directory


@contextmanager
def get_db(db_path: str = DB_PATH) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(db_path, timeout=10.0)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str = DB_PATH):
    """Initialize the database with required tables."""
    ensure_db_directory(db_path)

    with get_db(db_path) as conn:
        cursor = conn.cursor()

        # Submission store: one row per queue table delta
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS deltas (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                partition TEXT NOT NULL,
                ts TEXT NOT NULL,
                code TEXT,
                table_name TEXT,
                scope TEXT,
                primary_key TEXT,
                request_hash TEXT,
                prompt TEXT,        -- params.prompt, used for substring search
                model TEXT,         -- params.model
                document TEXT NOT NULL
            )
        ''')

        # Confirmation store: one row per submit action
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS actions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                partition TEXT NOT NULL,
                ts TEXT NOT NULL,
                trx_id TEXT,
                account TEXT,
                name TEXT,
                request_hash TEXT,
                ipfs_cid TEXT,
                document TEXT NOT NULL
            )
        ''')

        # Join key is indexed on both sides
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_deltas_request_hash ON deltas(request_hash)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_deltas_partition ON deltas(partition)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_actions_request_hash ON actions(request_hash)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_actions_ipfs_cid ON actions(ipfs_cid)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_actions_partition ON actions(partition)')

        conn.commit()


def health_check(db_path: str = DB_PATH):
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            tables = cursor.fetchall()

            # Check if required tables exist
            table_names = [table[0] for table in tables]
            required_tables = ['deltas', 'actions']

            return all(table in table_names for table in required_tables)
    except sqlite3.Error:
        return False
