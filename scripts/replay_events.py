#!/usr/bin/env python3
"""
Replay indexer documents into the skynet stores.

Reads a JSON-lines file where each line is either a table delta (has "table")
or a contract action (has "act"), and feeds them in order through the
correlation handlers.
"""

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from skynet_indexer.core.config import get_config
from skynet_indexer.core.service import SkynetService


def classify(document):
    """Return 'action', 'delta' or None for an indexer document."""
    if "act" in document:
        return "action"
    if "table" in document:
        return "delta"
    return None


def replay(service, lines):
    """Feed documents through the host; returns counters."""
    counts = {"delta": 0, "action": 0, "ignored": 0, "invalid": 0}

    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            document = json.loads(line)
        except ValueError as e:
            print(f"WARNING: line {line_no} is not valid JSON: {e}")
            counts["invalid"] += 1
            continue

        kind = classify(document) if isinstance(document, dict) else None
        if kind == "delta":
            row_id = service.host.ingest_delta(document)
        elif kind == "action":
            row_id = service.host.ingest_action(document)
        else:
            print(f"WARNING: line {line_no} is neither a delta nor an action")
            counts["invalid"] += 1
            continue

        if row_id is None:
            counts["ignored"] += 1
        else:
            counts[kind] += 1

    return counts


def main(argv=None):
    parser = argparse.ArgumentParser(description="Replay skynet deltas/actions from a JSON-lines file")
    parser.add_argument("events", help="Path to JSON-lines file of indexer documents")
    parser.add_argument("--db", help="SQLite database path (default: DB_PATH)")
    parser.add_argument("--contract", help="Contract account the handlers bind to (default: SKYNET_CONTRACT)")
    args = parser.parse_args(argv)

    config = get_config()
    overrides = {}
    if args.db:
        overrides["db_path"] = args.db
    if args.contract:
        overrides["contract"] = args.contract
    config = replace(config, **overrides)

    events_path = Path(args.events)
    if not events_path.exists():
        print(f"ERROR: events file not found: {events_path}")
        return 1

    service = SkynetService(config)
    service.start()
    try:
        with events_path.open("r", encoding="utf-8") as f:
            counts = replay(service, f)
    finally:
        service.stop()

    print(f"Replayed {counts['delta']} deltas and {counts['action']} actions "
          f"({counts['ignored']} ignored, {counts['invalid']} invalid)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
