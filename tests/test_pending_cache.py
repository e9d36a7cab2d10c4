"""
Pending request cache: put/take/sweep semantics and bounds.
"""

from datetime import datetime, timedelta, timezone

import pytest

from skynet_indexer.core.pending_cache import PendingRequestCache
from skynet_indexer.core.schema import SubmissionRecord

NOW = datetime(2024, 3, 2, 12, 0, tzinfo=timezone.utc)


def make_record(nonce=1, arrival=NOW, request_id=None, **fields):
    if request_id is not None:
        fields["id"] = request_id
    return SubmissionRecord(nonce=nonce, body="{}", binary_data="", arrival_time=arrival, fields=fields)


def test_take_returns_exactly_what_was_put():
    cache = PendingRequestCache()
    record = make_record()
    cache.put("H1", record)

    assert cache.take("H1") is record


def test_second_take_is_absent():
    cache = PendingRequestCache()
    cache.put("H1", make_record())

    assert cache.take("H1") is not None
    assert cache.take("H1") is None
    assert "H1" not in cache


def test_take_unknown_identity_returns_none():
    cache = PendingRequestCache()
    assert cache.take("missing") is None
    assert cache.get_stats()["misses"] == 1


def test_put_overwrites_existing_entry():
    cache = PendingRequestCache()
    cache.put("H1", make_record(nonce=1))
    cache.put("H1", make_record(nonce=2))

    assert len(cache) == 1
    assert cache.take("H1").nonce == 2


def test_sweep_removes_entries_older_than_ttl():
    cache = PendingRequestCache()
    cache.put("old", make_record(arrival=NOW - timedelta(hours=24, seconds=1)))
    cache.put("fresh", make_record(arrival=NOW - timedelta(hours=23)))

    removed = cache.sweep(NOW)

    assert removed == 1
    assert "old" not in cache
    assert "fresh" in cache


def test_sweep_keeps_entry_exactly_at_ttl():
    cache = PendingRequestCache()
    cache.put("edge", make_record(arrival=NOW - timedelta(hours=24)))

    assert cache.sweep(NOW) == 0
    assert "edge" in cache


def test_sweep_accepts_naive_now_as_utc():
    cache = PendingRequestCache()
    cache.put("old", make_record(arrival=NOW - timedelta(days=2)))

    assert cache.sweep(NOW.replace(tzinfo=None)) == 1


def test_custom_ttl():
    cache = PendingRequestCache(ttl_sec=60)
    cache.put("H1", make_record(arrival=NOW - timedelta(seconds=61)))

    assert cache.sweep(NOW) == 1


def test_max_entries_evicts_oldest_first():
    cache = PendingRequestCache(max_entries=2)
    cache.put("a", make_record(nonce=1))
    cache.put("b", make_record(nonce=2))
    cache.put("c", make_record(nonce=3))

    assert len(cache) == 2
    assert "a" not in cache
    assert cache.get_stats()["capped"] == 1


def test_request_id_index_follows_entries():
    cache = PendingRequestCache()
    cache.put("H1", make_record(request_id=17))

    assert cache.identity_for_request(17) == "H1"
    cache.take("H1")
    assert cache.identity_for_request(17) is None


def test_peek_does_not_drain():
    cache = PendingRequestCache()
    cache.put("H1", make_record())

    assert cache.peek("H1") is not None
    assert cache.take("H1") is not None


def test_invalid_construction():
    with pytest.raises(ValueError):
        PendingRequestCache(ttl_sec=0)
    with pytest.raises(ValueError):
        PendingRequestCache(max_entries=-1)
