"""
Record types for the two event streams and the metadata merge between them.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .errors import DecodeFailure
from ..util.logging import logger

# Document fields attached by the handlers and persisted by the host
REQUEST_HASH_FIELD = "@skynetRequestHash"
REQUEST_METADATA_FIELD = "@skynetRequestMetadata"
REQUEST_METADATA_ERROR_FIELD = "@skynetRequestMetadataError"
IPFS_CID_FIELD = "@skynetIPFSCID"
MERGED_METADATA_FIELD = "@skynetMergedMetadata"
TIMESTAMP_FIELD = "@timestamp"

# Raw row fields that never appear in merged metadata
EXCLUDED_RAW_FIELDS = ("body",)


@dataclass(frozen=True)
class SubmissionRecord:
    nonce: int
    body: str
    binary_data: Any
    arrival_time: datetime  # processing time, drives the TTL
    request_time: Optional[datetime] = None  # @timestamp of the delta
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def request_id(self) -> Optional[Any]:
        return self.fields.get("id")


@dataclass(frozen=True)
class ConfirmationRecord:
    job_identity: str
    content_reference: Optional[str]
    confirm_time: datetime
    merged_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def matched(self) -> bool:
        return bool(self.merged_metadata)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp as emitted by the indexer; naive values are UTC.

    Missing or unparseable values fall back to the current time.
    """
    try:
        if isinstance(value, datetime):
            ts = value
        elif isinstance(value, (int, float)):
            ts = datetime.fromtimestamp(value, tz=timezone.utc)
        elif isinstance(value, str) and value:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        else:
            ts = datetime.now(timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        logger.warning(f"Unparseable timestamp {value!r}, using current time: {e}")
        ts = datetime.now(timezone.utc)

    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def parse_request_body(body: Any) -> Dict[str, Any]:
    """Parse a submission body into a mapping.

    Raises:
        DecodeFailure: body is not a JSON object
    """
    if isinstance(body, dict):
        return body
    try:
        parsed = json.loads(body)
    except (TypeError, ValueError) as e:
        raise DecodeFailure(f"Request body is not valid JSON: {e}", body=body)

    if not isinstance(parsed, dict):
        raise DecodeFailure(f"Request body must be a JSON object, got {type(parsed).__name__}", body=body)
    return parsed


def merge_metadata(record: SubmissionRecord, parsed_body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build the flat metadata view of a submission.

    Precedence, lowest to highest (later levels win on key collision):

    ==========  ===========================================================
    level 1     raw row fields from the submission (``body`` excluded)
    level 2     ``nonce`` and ``binary_data`` as recorded
    level 3     ``requestTimestamp`` and ``method`` from the parsed body
    level 4     ``params`` of the parsed body
    ==========  ===========================================================

    Passing ``parsed_body=None`` (decode failure) yields levels 1-3 only.
    """
    merged: Dict[str, Any] = {
        k: v for k, v in record.fields.items() if k not in EXCLUDED_RAW_FIELDS
    }
    merged["nonce"] = record.nonce
    binary_data = record.binary_data
    if isinstance(binary_data, (bytes, bytearray)):
        binary_data = bytes(binary_data).hex()
    merged["binary_data"] = binary_data
    merged["requestTimestamp"] = format_timestamp(record.request_time or record.arrival_time)

    if parsed_body:
        if "method" in parsed_body:
            merged["method"] = parsed_body["method"]
        params = parsed_body.get("params")
        if isinstance(params, dict):
            merged.update(params)

    return merged
