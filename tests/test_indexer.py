"""
Bundled indexer host: handler dispatch, persistence and error isolation.
"""

from skynet_indexer.core.indexer import SqliteIndexerHost
from skynet_indexer.core.schema import (
    IPFS_CID_FIELD,
    MERGED_METADATA_FIELD,
    REQUEST_HASH_FIELD,
)
from tests.conftest import make_action, make_delta


def test_delta_for_other_contract_is_ignored(host, store):
    assert host.ingest_delta(make_delta(1, params={}, contract="eosio.token")) is None
    assert store.count_deltas() == 0


def test_delta_for_other_table_is_ignored(host, store):
    delta = make_delta(1, params={})
    delta["table"] = "workers"

    assert host.ingest_delta(delta) is None


def test_action_for_other_name_is_ignored(host, store):
    assert host.ingest_action(make_action("H", "cid", name="dequeue")) is None
    assert store.count_actions() == 0


def test_delta_is_annotated_then_persisted(host, store, cache):
    delta = make_delta(1, params={"prompt": "cat"})

    row_id = host.ingest_delta(delta)

    assert row_id is not None
    stored = store.find_delta_by_hash(delta[REQUEST_HASH_FIELD])
    assert stored["data"]["nonce"] == 1
    assert delta[REQUEST_HASH_FIELD] in cache


def test_action_is_annotated_then_persisted(host, store):
    delta = make_delta(1, params={"prompt": "cat"})
    host.ingest_delta(delta)

    host.ingest_action(make_action(delta[REQUEST_HASH_FIELD], "cidABC"))

    stored = store.find_action_by_cid("cidABC")
    assert stored[REQUEST_HASH_FIELD] == delta[REQUEST_HASH_FIELD]
    assert stored[MERGED_METADATA_FIELD]["prompt"] == "cat"


def test_unmatched_action_is_still_persisted(host, store):
    host.ingest_action(make_action("B" * 64, "cidZ"))

    stored = store.find_action_by_cid("cidZ")
    assert stored[MERGED_METADATA_FIELD] == {}
    assert stored[IPFS_CID_FIELD] == "cidZ"


def test_failing_handler_does_not_block_persistence(store):
    host = SqliteIndexerHost(store)

    def broken(document):
        raise RuntimeError("boom")

    host.register_submission_handler("queue", "telos.gpu", {}, broken)

    assert host.ingest_delta(make_delta(1, params={})) is not None
    assert store.count_deltas() == 1


def test_field_mappings_are_merged(host):
    mappings = host.field_mappings()

    assert mappings["delta"][REQUEST_HASH_FIELD] == {"type": "keyword"}
    assert mappings["action"][IPFS_CID_FIELD] == {"type": "keyword"}


def test_unparseable_timestamp_is_indexed(host, store):
    delta = make_delta(1, params={"prompt": "cat"}, ts="not-a-date")

    row_id = host.ingest_delta(delta)

    assert row_id is not None
    stored = store.find_delta_by_hash(delta[REQUEST_HASH_FIELD])
    assert stored["@timestamp"] == "not-a-date"


def test_unparseable_timestamp_on_action_is_indexed(host, store):
    action = make_action("E" * 64, "cidBadTs", ts="yesterday")

    assert host.ingest_action(action) is not None
    assert store.find_action_by_cid("cidBadTs") is not None
