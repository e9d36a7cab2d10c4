"""
Structured logging for ingestion, correlation and search operations.
"""

import logging
from typing import Any, Dict, List

from ..core.config import debug_enabled


class StructuredLogger:
    """Structured logger for submission/confirmation correlation and join search."""

    def __init__(self, name: str = "skynet_indexer"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {sanitize_payload(details)}"

        self.logger.log(level, message)

    def log_submission(self, request_hash: str, nonce: Any, pending_count: int):
        """Log a submission entering the pending cache."""
        self.log_operation("correlation.submission", "pending", {
            "request_hash": request_hash,
            "nonce": nonce,
            "pending_count": pending_count
        })

    def log_confirmation(self, request_hash: str, ipfs_cid: str, matched: bool):
        """Log a confirmation leaving the correlation engine."""
        self.log_operation("correlation.confirmation", "matched" if matched else "unmatched", {
            "request_hash": request_hash,
            "ipfs_cid": ipfs_cid
        })

    def log_identity_mismatch(self, request_hash: str, source: str):
        """Log a confirmation with no pending submission."""
        self.log_operation("correlation.identity_mismatch", "absent", {
            "request_hash": request_hash,
            "identity_source": source
        }, level=logging.WARNING)

    def log_decode_failure(self, request_hash: str, error: str):
        """Log a submission body that failed to decode."""
        self.log_operation("correlation.decode_failure", "degraded", {
            "request_hash": request_hash,
            "error": error
        }, level=logging.WARNING)

    def log_sweep(self, removed: int, remaining: int, trigger: str):
        """Log a pending cache sweep."""
        if removed == 0:
            self.log_debug(f"sweep ({trigger}) removed nothing, {remaining} pending")
            return
        self.log_operation("pending.sweep", "evicted", {
            "removed": removed,
            "remaining": remaining,
            "trigger": trigger
        })

    def log_search(self, prompt: str, hits: int, results: int, details: Dict[str, Any] = None):
        """Log a prompt search."""
        log_details = {"prompt": prompt, "hits": hits, "results": results}
        if details:
            log_details.update(details)
        self.log_operation("search.prompt", "success", log_details)

    def log_lookup(self, operation: str, key: str, found: bool):
        """Log a single store lookup."""
        self.log_operation(f"lookup.{operation}", "hit" if found else "miss", {"key": key}, level=logging.DEBUG)

    def log_handler_error(self, kind: str, error: Exception):
        """Log an exception raised by an ingestion handler."""
        self.log_operation(f"indexer.{kind}_handler", "failed", {"error": str(error)}, level=logging.ERROR)

    def log_debug(self, message: str) -> None:
        """Log a debug message only when DEBUG is enabled."""
        if debug_enabled():
            self.logger.debug(message)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def sanitize_payload(payload: Any, max_length: int = 100) -> Any:
    """Truncate long strings in nested payloads before logging."""
    if isinstance(payload, dict):
        return {k: sanitize_payload(v, max_length) for k, v in payload.items()}
    elif isinstance(payload, str):
        return payload[:max_length] + "..." if len(payload) > max_length else payload
    elif isinstance(payload, (bytes, bytearray)):
        return f"<{len(payload)} bytes>"
    elif isinstance(payload, list):
        return [sanitize_payload(item, max_length) for item in payload]
    else:
        return payload


def summarize_keys(items: List[str], limit: int = 5) -> str:
    """Render a short list of identifiers for log lines."""
    if len(items) <= limit:
        return ", ".join(items)
    return ", ".join(items[:limit]) + f" (+{len(items) - limit} more)"


# Global logger instance
logger = StructuredLogger()
