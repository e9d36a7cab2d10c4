"""
Runtime configuration for the skynet indexer.
All settings come from environment variables (a local .env file is loaded first); defaults match a local single-node setup.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/skynet.db")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Indexer scoping (contract, table and action the handlers are bound to)
SKYNET_CONTRACT = os.getenv("SKYNET_CONTRACT", "telos.gpu")
SKYNET_QUEUE_TABLE = os.getenv("SKYNET_QUEUE_TABLE", "queue")
SKYNET_SUBMIT_ACTION = os.getenv("SKYNET_SUBMIT_ACTION", "submit")
SKYNET_DELTA_INDEX = os.getenv("SKYNET_DELTA_INDEX", "skynet-delta")
SKYNET_ACTION_INDEX = os.getenv("SKYNET_ACTION_INDEX", "skynet-action")

# Pending request cache
PENDING_TTL_SEC = int(os.getenv("PENDING_TTL_SEC", "86400"))  # 24 hours
PENDING_MAX_ENTRIES = int(os.getenv("PENDING_MAX_ENTRIES", "0"))  # 0 = unbounded
SWEEP_MODE = os.getenv("SWEEP_MODE", "opportunistic")  # opportunistic|periodic|both
SWEEP_INTERVAL_SEC = int(os.getenv("SWEEP_INTERVAL_SEC", "300"))
IDENTITY_SOURCE = os.getenv("IDENTITY_SOURCE", "event")  # event|derived

# Search
SEARCH_DEFAULT_SIZE = int(os.getenv("SEARCH_DEFAULT_SIZE", "10"))
SEARCH_MAX_SIZE = int(os.getenv("SEARCH_MAX_SIZE", "100"))
LOOKUP_MODE = os.getenv("LOOKUP_MODE", "batch")  # batch|fanout
SEARCH_MAX_WORKERS = int(os.getenv("SEARCH_MAX_WORKERS", "4"))
SEARCH_LOOKUP_TIMEOUT_SEC = float(os.getenv("SEARCH_LOOKUP_TIMEOUT_SEC", "2.0"))

# API surface
API_PREFIX = os.getenv("API_PREFIX", "")
INGEST_API_ENABLED = os.getenv("INGEST_API_ENABLED", "true").lower() == "true"

# Version string
VERSION = "1.0.0"

VALID_SWEEP_MODES = ["opportunistic", "periodic", "both"]
VALID_IDENTITY_SOURCES = ["event", "derived"]
VALID_LOOKUP_MODES = ["batch", "fanout"]


@dataclass(frozen=True)
class SkynetConfig:
    db_path: str = DB_PATH
    debug: bool = DEBUG
    contract: str = SKYNET_CONTRACT
    queue_table: str = SKYNET_QUEUE_TABLE
    submit_action: str = SKYNET_SUBMIT_ACTION
    delta_index: str = SKYNET_DELTA_INDEX
    action_index: str = SKYNET_ACTION_INDEX
    pending_ttl_sec: int = PENDING_TTL_SEC
    pending_max_entries: int = PENDING_MAX_ENTRIES
    sweep_mode: str = SWEEP_MODE
    sweep_interval_sec: int = SWEEP_INTERVAL_SEC
    identity_source: str = IDENTITY_SOURCE
    search_default_size: int = SEARCH_DEFAULT_SIZE
    search_max_size: int = SEARCH_MAX_SIZE
    lookup_mode: str = LOOKUP_MODE
    search_max_workers: int = SEARCH_MAX_WORKERS
    search_lookup_timeout_sec: float = SEARCH_LOOKUP_TIMEOUT_SEC
    api_prefix: str = API_PREFIX
    ingest_api_enabled: bool = INGEST_API_ENABLED

    @property
    def periodic_sweep(self) -> bool:
        return self.sweep_mode in ("periodic", "both")

    @property
    def opportunistic_sweep(self) -> bool:
        return self.sweep_mode in ("opportunistic", "both")


def get_config() -> SkynetConfig:
    """Build a config snapshot from the current environment."""
    return SkynetConfig(
        db_path=os.getenv("DB_PATH", "./data/skynet.db"),
        debug=debug_enabled(),
        contract=os.getenv("SKYNET_CONTRACT", "telos.gpu"),
        queue_table=os.getenv("SKYNET_QUEUE_TABLE", "queue"),
        submit_action=os.getenv("SKYNET_SUBMIT_ACTION", "submit"),
        delta_index=os.getenv("SKYNET_DELTA_INDEX", "skynet-delta"),
        action_index=os.getenv("SKYNET_ACTION_INDEX", "skynet-action"),
        pending_ttl_sec=int(os.getenv("PENDING_TTL_SEC", "86400")),
        pending_max_entries=int(os.getenv("PENDING_MAX_ENTRIES", "0")),
        sweep_mode=os.getenv("SWEEP_MODE", "opportunistic"),
        sweep_interval_sec=int(os.getenv("SWEEP_INTERVAL_SEC", "300")),
        identity_source=os.getenv("IDENTITY_SOURCE", "event"),
        search_default_size=int(os.getenv("SEARCH_DEFAULT_SIZE", "10")),
        search_max_size=int(os.getenv("SEARCH_MAX_SIZE", "100")),
        lookup_mode=os.getenv("LOOKUP_MODE", "batch"),
        search_max_workers=int(os.getenv("SEARCH_MAX_WORKERS", "4")),
        search_lookup_timeout_sec=float(os.getenv("SEARCH_LOOKUP_TIMEOUT_SEC", "2.0")),
        api_prefix=os.getenv("API_PREFIX", ""),
        ingest_api_enabled=os.getenv("INGEST_API_ENABLED", "true").lower() == "true",
    )


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory(db_path: str = DB_PATH):
    """Ensure the database directory exists."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def validate_config(config: SkynetConfig):
    """Validate configuration and return any issues."""
    issues = []

    if config.sweep_mode not in VALID_SWEEP_MODES:
        issues.append(f"Invalid SWEEP_MODE: {config.sweep_mode}")

    if config.identity_source not in VALID_IDENTITY_SOURCES:
        issues.append(f"Invalid IDENTITY_SOURCE: {config.identity_source}")

    if config.lookup_mode not in VALID_LOOKUP_MODES:
        issues.append(f"Invalid LOOKUP_MODE: {config.lookup_mode}")

    if config.pending_ttl_sec < 1:
        issues.append("PENDING_TTL_SEC must be >= 1")

    if config.pending_max_entries < 0:
        issues.append("PENDING_MAX_ENTRIES must be >= 0")

    if config.periodic_sweep and config.sweep_interval_sec < 1:
        issues.append("SWEEP_INTERVAL_SEC must be >= 1")

    if config.search_default_size < 1:
        issues.append("SEARCH_DEFAULT_SIZE must be >= 1")

    if config.search_max_size < config.search_default_size:
        issues.append("SEARCH_MAX_SIZE must be >= SEARCH_DEFAULT_SIZE")

    if config.search_max_workers < 1:
        issues.append("SEARCH_MAX_WORKERS must be >= 1")

    if config.search_lookup_timeout_sec <= 0:
        issues.append("SEARCH_LOOKUP_TIMEOUT_SEC must be > 0")

    if config.api_prefix and (not config.api_prefix.startswith("/") or config.api_prefix.endswith("/")):
        issues.append(f"API_PREFIX must start with '/' and not end with '/': {config.api_prefix}")

    return issues
