"""
Correlation engine - joins queue submissions with their submit confirmations.

Per job identity the lifecycle is:

    Unseen -> Pending -> Confirmed
    Unseen -> Pending -> Evicted            (swept, never confirmed)
    Unseen -> Confirmed (no metadata)       (confirmation first, or after eviction)

Neither handler raises on bad input; a confirmation with no pending
submission is still emitted, with empty merged metadata.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .config import SkynetConfig
from .errors import DecodeFailure
from .hashing import compute_request_hash, normalize_request_hash
from .indexer import IndexerHost
from .pending_cache import PendingRequestCache
from .schema import (
    IPFS_CID_FIELD,
    MERGED_METADATA_FIELD,
    REQUEST_HASH_FIELD,
    REQUEST_METADATA_ERROR_FIELD,
    REQUEST_METADATA_FIELD,
    TIMESTAMP_FIELD,
    ConfirmationRecord,
    SubmissionRecord,
    merge_metadata,
    parse_request_body,
    parse_timestamp,
)
from ..util.logging import logger

IDENTITY_FROM_EVENT = "event"
IDENTITY_DERIVED = "derived"

HASHED_FIELDS = ("nonce", "body", "binary_data")

DELTA_MAPPINGS = {
    "delta": {
        REQUEST_HASH_FIELD: {"type": "keyword"},
        REQUEST_METADATA_ERROR_FIELD: {"type": "text"}
    }
}

ACTION_MAPPINGS = {
    "action": {
        REQUEST_HASH_FIELD: {"type": "keyword"},
        IPFS_CID_FIELD: {"type": "keyword"}
    }
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CorrelationEngine:
    """Submission and confirmation handlers sharing one pending cache."""

    def __init__(self, cache: PendingRequestCache, identity_source: str = IDENTITY_FROM_EVENT,
                 sweep_on_take: bool = True, clock: Callable[[], datetime] = _utcnow):
        if identity_source not in (IDENTITY_FROM_EVENT, IDENTITY_DERIVED):
            raise ValueError(f"Unknown identity source: {identity_source}")
        self.cache = cache
        self.identity_source = identity_source
        self.sweep_on_take = sweep_on_take
        self.clock = clock

    @classmethod
    def from_config(cls, cache: PendingRequestCache, config: SkynetConfig) -> "CorrelationEngine":
        return cls(cache, identity_source=config.identity_source, sweep_on_take=config.opportunistic_sweep)

    def register(self, host: IndexerHost, contract: str, table: str = "queue", action: str = "submit") -> None:
        """Register both handlers with an indexer host."""
        host.register_submission_handler(table, contract, DELTA_MAPPINGS, self.on_submission)
        host.register_confirmation_handler(action, contract, ACTION_MAPPINGS, self.on_confirmation)

    def on_submission(self, delta: Dict[str, Any]) -> str:
        """Cache a queue row and annotate the delta with its identity and metadata."""
        data = delta.get("data") or {}
        nonce = data.get("nonce")
        body = data.get("body", "")
        binary_data = data.get("binary_data", "")

        request_hash = compute_request_hash(nonce, body, binary_data)
        record = SubmissionRecord(
            nonce=nonce,
            body=body,
            binary_data=binary_data,
            arrival_time=self.clock(),
            request_time=parse_timestamp(delta.get(TIMESTAMP_FIELD)),
            fields={k: v for k, v in data.items() if k not in HASHED_FIELDS},
        )

        parsed_body = None
        try:
            parsed_body = parse_request_body(body)
        except DecodeFailure as e:
            logger.log_decode_failure(request_hash, str(e))
            delta[REQUEST_METADATA_ERROR_FIELD] = str(e)

        self.cache.put(request_hash, record)

        delta[REQUEST_HASH_FIELD] = request_hash
        delta[REQUEST_METADATA_FIELD] = merge_metadata(record, parsed_body)

        logger.log_submission(request_hash, nonce, len(self.cache))
        return request_hash

    def on_confirmation(self, action: Dict[str, Any]) -> ConfirmationRecord:
        """Drain the matching pending submission and annotate the action with the merge."""
        act_data = (action.get("act") or {}).get("data") or {}
        ipfs_cid = act_data.get("ipfs_hash")

        request_hash, record = self._resolve(act_data)

        merged: Dict[str, Any] = {}
        if record is not None:
            parsed_body = None
            try:
                parsed_body = parse_request_body(record.body)
            except DecodeFailure as e:
                action[REQUEST_METADATA_ERROR_FIELD] = str(e)
            merged = merge_metadata(record, parsed_body)
        else:
            logger.log_identity_mismatch(request_hash, self.identity_source)

        action[REQUEST_HASH_FIELD] = request_hash
        action[IPFS_CID_FIELD] = ipfs_cid
        action[MERGED_METADATA_FIELD] = merged

        logger.log_confirmation(request_hash, ipfs_cid, record is not None)

        if record is not None and self.sweep_on_take:
            self.sweep("opportunistic")

        return ConfirmationRecord(
            job_identity=request_hash,
            content_reference=ipfs_cid,
            confirm_time=parse_timestamp(action.get(TIMESTAMP_FIELD)),
            merged_metadata=merged,
        )

    def sweep(self, trigger: str = "manual") -> int:
        """Evict pending submissions older than the cache TTL."""
        removed = self.cache.sweep(self.clock())
        logger.log_sweep(removed, len(self.cache), trigger)
        return removed

    def _resolve(self, act_data: Dict[str, Any]):
        carried = normalize_request_hash(act_data.get("request_hash"))

        if self.identity_source == IDENTITY_DERIVED:
            identity: Optional[str] = self.cache.identity_for_request(act_data.get("request_id"))
            if identity is not None:
                record = self.cache.take(identity)
                if record is not None:
                    return compute_request_hash(record.nonce, record.body, record.binary_data), record

        if not carried:
            return carried, None
        return carried, self.cache.take(carried)
