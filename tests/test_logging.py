"""
Structured log lines for correlation, sweep and search events.
"""

import logging

from skynet_indexer.core.pending_cache import PendingRequestCache
from skynet_indexer.core.correlation import CorrelationEngine
from skynet_indexer.util.logging import StructuredLogger, sanitize_payload, summarize_keys
from tests.conftest import make_action


def test_sanitize_payload_truncates_nested_strings():
    payload = {"prompt": "x" * 150, "items": ["short", "y" * 120], "blob": b"\x00" * 8, "n": 3}

    sanitized = sanitize_payload(payload)

    assert sanitized["prompt"] == "x" * 100 + "..."
    assert sanitized["items"] == ["short", "y" * 100 + "..."]
    assert sanitized["blob"] == "<8 bytes>"
    assert sanitized["n"] == 3


def test_summarize_keys():
    assert summarize_keys(["a", "b"]) == "a, b"
    assert summarize_keys([str(i) for i in range(7)], limit=3) == "0, 1, 2 (+4 more)"


def test_log_operation_format(caplog):
    log = StructuredLogger("skynet_indexer.test")

    with caplog.at_level(logging.INFO, logger="skynet_indexer.test"):
        log.log_operation("search.prompt", "success", {"hits": 2})

    assert "Operation: search.prompt, Status: success, Details: {'hits': 2}" in caplog.text


def test_unmatched_confirmation_logs_warning(caplog):
    engine = CorrelationEngine(PendingRequestCache())

    with caplog.at_level(logging.WARNING, logger="skynet_indexer"):
        engine.on_confirmation(make_action("D" * 64, "cid"))

    records = [r for r in caplog.records if "correlation.identity_mismatch" in r.getMessage()]
    assert records and records[0].levelno == logging.WARNING


def test_empty_sweep_is_quiet(caplog):
    log = StructuredLogger("skynet_indexer.sweep_test")

    with caplog.at_level(logging.INFO, logger="skynet_indexer.sweep_test"):
        log.log_sweep(0, 5, "periodic")
        log.log_sweep(2, 3, "periodic")

    assert caplog.text.count("pending.sweep") == 1
