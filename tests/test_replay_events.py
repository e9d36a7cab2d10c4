"""
Replaying a JSON-lines dump of indexer documents.
"""

import json

from scripts.replay_events import classify, main, replay
from skynet_indexer.core.config import SkynetConfig
from skynet_indexer.core.dao import IndexStore
from skynet_indexer.core.hashing import compute_request_hash
from skynet_indexer.core.service import SkynetService
from tests.conftest import make_action, make_delta


def job_lines():
    delta = make_delta(7, params={"prompt": "a cat sat"})
    data = delta["data"]
    request_hash = compute_request_hash(data["nonce"], data["body"], data["binary_data"])
    return [
        json.dumps(delta),
        "",
        json.dumps(make_delta(8, contract="eosio.token")),
        "not json",
        json.dumps({"foo": "bar"}),
        json.dumps(make_action(request_hash, "cidCAT")),
    ]


def test_classify():
    assert classify({"act": {}}) == "action"
    assert classify({"table": "queue"}) == "delta"
    assert classify({}) is None


def test_replay_counts(db_path):
    service = SkynetService(SkynetConfig(db_path=db_path, contract="telos.gpu"))

    counts = replay(service, job_lines())

    assert counts == {"delta": 1, "action": 1, "ignored": 1, "invalid": 2}
    assert service.search.get_metadata_by_reference("cidCAT")["prompt"] == "a cat sat"


def test_main_replays_file(tmp_path, db_path):
    events = tmp_path / "events.jsonl"
    events.write_text("\n".join(job_lines()), encoding="utf-8")

    assert main([str(events), "--db", db_path, "--contract", "telos.gpu"]) == 0

    store = IndexStore(db_path)
    assert store.count_deltas() == 1
    assert store.count_actions() == 1


def test_main_missing_file(tmp_path, db_path):
    assert main([str(tmp_path / "missing.jsonl"), "--db", db_path]) == 1


def test_replay_continues_past_unparseable_timestamp(db_path):
    service = SkynetService(SkynetConfig(db_path=db_path, contract="telos.gpu"))
    lines = [
        json.dumps(make_delta(1, params={"prompt": "bad ts"}, ts="not-a-date", request_id=1)),
        json.dumps(make_delta(2, params={"prompt": "good ts"}, request_id=2)),
    ]

    counts = replay(service, lines)

    assert counts["delta"] == 2
