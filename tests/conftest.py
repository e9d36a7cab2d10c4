"""
Shared fixtures: a temporary SQLite store, a wired host/engine, and document builders.
"""

import json

import pytest

from skynet_indexer.core.correlation import CorrelationEngine
from skynet_indexer.core.dao import IndexStore
from skynet_indexer.core.indexer import SqliteIndexerHost
from skynet_indexer.core.pending_cache import PendingRequestCache
from skynet_indexer.core.search_service import JoinSearchService

CONTRACT = "telos.gpu"


def make_delta(nonce, params=None, body=None, binary_data="", ts="2024-03-01T12:00:00",
               request_id=1, contract=CONTRACT, **extra):
    """Queue table delta in the shape the chain indexer emits."""
    if body is None:
        body = json.dumps({"method": "diffuse", "params": params or {}})
    data = {
        "id": request_id,
        "user": "alice",
        "reward": "20.0000 GPU",
        "min_verification": 1,
        "nonce": nonce,
        "body": body,
        "binary_data": binary_data,
    }
    data.update(extra)
    return {
        "code": contract,
        "table": "queue",
        "scope": contract,
        "primary_key": str(request_id),
        "block_num": 1000 + request_id,
        "@timestamp": ts,
        "data": data,
    }


def make_action(request_hash, ipfs_hash, ts="2024-03-01T12:00:10", request_id=1,
                trx_id="trx-1", contract=CONTRACT, name="submit"):
    """Submit action in the shape the chain indexer emits."""
    return {
        "trx_id": trx_id,
        "block_num": 2000 + request_id,
        "@timestamp": ts,
        "act": {
            "account": contract,
            "name": name,
            "data": {
                "worker": "worker1",
                "request_id": request_id,
                "request_hash": request_hash,
                "ipfs_hash": ipfs_hash,
            },
        },
    }


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "skynet_test.db")


@pytest.fixture
def store(db_path):
    return IndexStore(db_path)


@pytest.fixture
def cache():
    return PendingRequestCache()


@pytest.fixture
def engine(cache):
    return CorrelationEngine(cache)


@pytest.fixture
def host(store, engine):
    host = SqliteIndexerHost(store)
    engine.register(host, contract=CONTRACT)
    return host


@pytest.fixture
def search(store):
    return JoinSearchService(store)
