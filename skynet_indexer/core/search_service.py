"""
Join search over the two persisted stores.

Results are confirmation-anchored: a submission whose prompt matches but
which was never confirmed does not appear in the output.
"""

import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Dict, List, Optional

from .config import SkynetConfig
from .dao import IndexStore
from .schema import REQUEST_HASH_FIELD, REQUEST_METADATA_FIELD, TIMESTAMP_FIELD
from ..util.logging import logger, summarize_keys

LOOKUP_BATCH = "batch"
LOOKUP_FANOUT = "fanout"


class JoinSearchService:
    """Prompt search and reverse lookup by content reference."""

    def __init__(self, store: IndexStore, default_size: int = 10, max_size: int = 100,
                 lookup_mode: str = LOOKUP_BATCH, max_workers: int = 4, lookup_timeout_sec: float = 2.0):
        if lookup_mode not in (LOOKUP_BATCH, LOOKUP_FANOUT):
            raise ValueError(f"Unknown lookup mode: {lookup_mode}")
        self.store = store
        self.default_size = default_size
        self.max_size = max_size
        self.lookup_mode = lookup_mode
        self.max_workers = max_workers
        self.lookup_timeout_sec = lookup_timeout_sec

    @classmethod
    def from_config(cls, store: IndexStore, config: SkynetConfig) -> "JoinSearchService":
        return cls(
            store,
            default_size=config.search_default_size,
            max_size=config.search_max_size,
            lookup_mode=config.lookup_mode,
            max_workers=config.search_max_workers,
            lookup_timeout_sec=config.search_lookup_timeout_sec,
        )

    def search_by_prompt(self, prompt: Optional[str] = None, model: Optional[str] = None,
                         size: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Find confirmed jobs whose prompt contains ``prompt``.

        Args:
            prompt: Case-sensitive substring; None or "" matches every prompt
            model: Optional exact model filter
            size: Cap on submission matches (default ``default_size``)

        Returns:
            One dict per confirmed identity, in submission-store order. Each
            combines the request metadata with the confirming action's data
            and its ``timestamp``; confirmation fields win on collision.

        Raises:
            StoreUnavailable: the store failed during a query
        """
        prompt = prompt or ""
        size = self._effective_size(size)

        logger.log_debug(f"searching with params prompt={prompt!r} model={model!r} size={size}")
        requests = self.store.search_deltas_by_prompt(prompt, model=model, size=size)
        if not requests:
            logger.log_search(prompt, 0, 0)
            return []

        # Keep first occurrence per identity, preserving store order
        metadata_by_hash: Dict[str, Dict[str, Any]] = {}
        for doc in requests:
            request_hash = doc.get(REQUEST_HASH_FIELD)
            if request_hash and request_hash not in metadata_by_hash:
                metadata_by_hash[request_hash] = doc.get(REQUEST_METADATA_FIELD) or {}

        hashes = list(metadata_by_hash)
        logger.log_debug(f"looking up submits for {summarize_keys(hashes)}")
        if self.lookup_mode == LOOKUP_FANOUT:
            submits = self._lookup_fanout(hashes)
        else:
            submits = self.store.find_actions_by_hashes(hashes)

        results = []
        for request_hash in hashes:
            submit = submits.get(request_hash)
            if submit is None:
                continue
            results.append(build_search_result(submit, metadata_by_hash[request_hash]))

        logger.log_search(prompt, len(requests), len(results), {"model": model, "mode": self.lookup_mode})
        return results

    def get_metadata_by_reference(self, cid: str) -> Dict[str, Any]:
        """
        Reverse lookup: content reference -> confirmation -> submission.

        Returns an empty dict when either step misses.
        """
        logger.log_debug(f"searching submit with cid {cid}")
        submit = self.store.find_action_by_cid(cid)
        if submit is None:
            return {}

        request_hash = submit.get(REQUEST_HASH_FIELD)
        if not request_hash:
            return {}

        request_doc = self.store.find_delta_by_hash(request_hash)
        if request_doc is None:
            return {}

        result = dict(request_doc.get(REQUEST_METADATA_FIELD) or {})
        result["requestTimestamp"] = request_doc.get(TIMESTAMP_FIELD)
        result["submitTimestamp"] = submit.get(TIMESTAMP_FIELD)
        result["submitID"] = submit.get("trx_id")
        return result

    def _effective_size(self, size: Optional[int]) -> int:
        if not size or size < 1:
            return self.default_size
        return min(size, self.max_size)

    def _lookup_fanout(self, hashes: List[str]) -> Dict[str, Dict[str, Any]]:
        """One lookup per identity on a bounded pool; a timed-out lookup counts as no match.

        All lookups share one deadline, so the whole join is bounded by
        ``lookup_timeout_sec`` however many identities there are.
        """
        found: Dict[str, Dict[str, Any]] = {}
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {h: executor.submit(self.store.find_action_by_hash, h) for h in hashes}
            deadline = time.monotonic() + self.lookup_timeout_sec
            for request_hash, future in futures.items():
                try:
                    submit = future.result(timeout=max(0.0, deadline - time.monotonic()))
                except FutureTimeoutError:
                    logger.warning(f"Lookup for {request_hash} timed out after {self.lookup_timeout_sec}s")
                    continue
                if submit is not None:
                    found[request_hash] = submit
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return found


def build_search_result(submit: Dict[str, Any], metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Combine request metadata with the confirming action; action fields win."""
    result = dict(metadata)
    act_data = (submit.get("act") or {}).get("data") or {}
    result.update(act_data)
    result["timestamp"] = submit.get(TIMESTAMP_FIELD)
    return result
