"""
Data access for the two persisted stores.

Documents are stored whole (as the indexer emitted them, with the handler
annotations) next to the few columns that are queried. Every read returns the
decoded document; a miss is None or an empty collection, never an exception.
"""

import json
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from .config import DB_PATH, SKYNET_ACTION_INDEX, SKYNET_DELTA_INDEX
from .db import get_db, init_db
from .errors import StoreUnavailable
from .schema import (
    IPFS_CID_FIELD,
    REQUEST_HASH_FIELD,
    REQUEST_METADATA_FIELD,
    TIMESTAMP_FIELD,
    format_timestamp,
    parse_timestamp,
)
from ..util.logging import logger

# SQLite default SQLITE_MAX_VARIABLE_NUMBER is 999 on older builds
MAX_BATCH_PARAMS = 500


def partition_name(index_prefix: str, timestamp: Any) -> str:
    """Monthly partition name, e.g. ``skynet-delta-2024.03``."""
    ts = parse_timestamp(timestamp)
    return f"{index_prefix}-{ts:%Y.%m}"


class IndexStore:
    """SQLite-backed submission and confirmation stores."""

    def __init__(self, db_path: str = DB_PATH, delta_index: str = SKYNET_DELTA_INDEX,
                 action_index: str = SKYNET_ACTION_INDEX, initialize: bool = True):
        self.db_path = db_path
        self.delta_index = delta_index
        self.action_index = action_index
        if initialize:
            try:
                init_db(db_path)
            except sqlite3.Error as e:
                raise StoreUnavailable("init_db", e)

    # -- writes ---------------------------------------------------------

    def insert_delta(self, document: Dict[str, Any]) -> int:
        """Persist a submission-side document; returns its row id."""
        ts = document.get(TIMESTAMP_FIELD) or format_timestamp(parse_timestamp(None))
        metadata = document.get(REQUEST_METADATA_FIELD) or {}
        prompt = metadata.get("prompt") if isinstance(metadata, dict) else None
        model = metadata.get("model") if isinstance(metadata, dict) else None

        row = (
            partition_name(self.delta_index, ts),
            ts,
            document.get("code"),
            document.get("table"),
            document.get("scope"),
            _as_optional_text(document.get("primary_key")),
            document.get(REQUEST_HASH_FIELD),
            prompt if isinstance(prompt, str) else None,
            model if isinstance(model, str) else None,
            _dumps(document),
        )
        return self._execute_insert(
            "insert_delta",
            "INSERT INTO deltas (partition, ts, code, table_name, scope, primary_key, "
            "request_hash, prompt, model, document) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            row,
        )

    def insert_action(self, document: Dict[str, Any]) -> int:
        """Persist a confirmation-side document; returns its row id."""
        ts = document.get(TIMESTAMP_FIELD) or format_timestamp(parse_timestamp(None))
        act = document.get("act") or {}

        row = (
            partition_name(self.action_index, ts),
            ts,
            document.get("trx_id"),
            act.get("account"),
            act.get("name"),
            document.get(REQUEST_HASH_FIELD),
            document.get(IPFS_CID_FIELD),
            _dumps(document),
        )
        return self._execute_insert(
            "insert_action",
            "INSERT INTO actions (partition, ts, trx_id, account, name, request_hash, "
            "ipfs_cid, document) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            row,
        )

    # -- submission store reads -----------------------------------------

    def search_deltas_by_prompt(self, prompt: str, model: Optional[str] = None,
                                size: int = 10) -> List[Dict[str, Any]]:
        """Deltas whose prompt contains ``prompt`` (case-sensitive), oldest first."""
        sql = "SELECT document FROM deltas WHERE prompt IS NOT NULL AND instr(prompt, ?) > 0"
        params: List[Any] = [prompt or ""]
        if model:
            sql += " AND model = ?"
            params.append(model)
        sql += " ORDER BY id LIMIT ?"
        params.append(size)

        rows = self._fetchall("search_deltas_by_prompt", sql, params)
        return [_loads(row[0]) for row in rows]

    def find_delta_by_hash(self, request_hash: str) -> Optional[Dict[str, Any]]:
        row = self._fetchone(
            "find_delta_by_hash",
            "SELECT document FROM deltas WHERE request_hash = ? ORDER BY id LIMIT 1",
            (request_hash,),
        )
        logger.log_lookup("delta_by_hash", request_hash, row is not None)
        return _loads(row[0]) if row else None

    # -- confirmation store reads ---------------------------------------

    def find_action_by_hash(self, request_hash: str) -> Optional[Dict[str, Any]]:
        row = self._fetchone(
            "find_action_by_hash",
            "SELECT document FROM actions WHERE request_hash = ? ORDER BY id LIMIT 1",
            (request_hash,),
        )
        logger.log_lookup("action_by_hash", request_hash, row is not None)
        return _loads(row[0]) if row else None

    def find_actions_by_hashes(self, request_hashes: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """First confirmation per hash, in one query per batch of hashes."""
        unique = list(dict.fromkeys(h for h in request_hashes if h))
        found: Dict[str, Dict[str, Any]] = {}

        for start in range(0, len(unique), MAX_BATCH_PARAMS):
            batch = unique[start:start + MAX_BATCH_PARAMS]
            placeholders = ", ".join("?" for _ in batch)
            rows = self._fetchall(
                "find_actions_by_hashes",
                f"SELECT request_hash, document FROM actions WHERE request_hash IN ({placeholders}) ORDER BY id",
                batch,
            )
            for request_hash, document in rows:
                if request_hash not in found:
                    found[request_hash] = _loads(document)

        return found

    def find_action_by_cid(self, ipfs_cid: str) -> Optional[Dict[str, Any]]:
        row = self._fetchone(
            "find_action_by_cid",
            "SELECT document FROM actions WHERE ipfs_cid = ? ORDER BY id LIMIT 1",
            (ipfs_cid,),
        )
        logger.log_lookup("action_by_cid", ipfs_cid, row is not None)
        return _loads(row[0]) if row else None

    # -- stats ----------------------------------------------------------

    def count_deltas(self) -> int:
        return self._fetchone("count_deltas", "SELECT COUNT(*) FROM deltas", ())[0]

    def count_actions(self) -> int:
        return self._fetchone("count_actions", "SELECT COUNT(*) FROM actions", ())[0]

    # -- helpers --------------------------------------------------------

    def _execute_insert(self, operation: str, sql: str, params) -> int:
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(sql, params)
                conn.commit()
                return cursor.lastrowid
        except sqlite3.Error as e:
            logger.error(f"Database error during {operation}: {e}")
            raise StoreUnavailable(operation, e)

    def _fetchone(self, operation: str, sql: str, params):
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(sql, params)
                return cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Database error during {operation}: {e}")
            raise StoreUnavailable(operation, e)

    def _fetchall(self, operation: str, sql: str, params):
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(sql, params)
                return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Database error during {operation}: {e}")
            raise StoreUnavailable(operation, e)


def _dumps(document: Dict[str, Any]) -> str:
    return json.dumps(document, default=_json_default, sort_keys=True)


def _loads(raw: str) -> Dict[str, Any]:
    return json.loads(raw)


def _json_default(value: Any):
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _as_optional_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)
