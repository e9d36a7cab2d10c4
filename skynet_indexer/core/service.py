"""
Service wiring - builds the cache, stores, host, engine and search service
from one config and owns their lifecycle.
"""

from typing import Any, Dict, Optional

from .config import SkynetConfig, get_config, validate_config
from .correlation import CorrelationEngine
from .dao import IndexStore
from .db import health_check
from .heartbeat import Heartbeat
from .indexer import SqliteIndexerHost
from .pending_cache import PendingRequestCache
from .search_service import JoinSearchService
from ..util.logging import logger

SWEEP_TASK = "pending_sweep"


class SkynetService:
    """Everything one running indexer instance needs, created together."""

    def __init__(self, config: Optional[SkynetConfig] = None):
        self.config = config or get_config()

        issues = validate_config(self.config)
        if issues:
            raise ValueError(f"Configuration invalid: {issues}")

        self.store = IndexStore(self.config.db_path, self.config.delta_index, self.config.action_index)
        self.cache = PendingRequestCache(
            ttl_sec=self.config.pending_ttl_sec,
            max_entries=self.config.pending_max_entries,
        )
        self.host = SqliteIndexerHost(self.store)
        self.engine = CorrelationEngine.from_config(self.cache, self.config)
        self.engine.register(
            self.host,
            contract=self.config.contract,
            table=self.config.queue_table,
            action=self.config.submit_action,
        )
        self.search = JoinSearchService.from_config(self.store, self.config)
        self.heartbeat = Heartbeat()
        if self.config.periodic_sweep:
            self.heartbeat.register_task(SWEEP_TASK, self.config.sweep_interval_sec,
                                         lambda: self.engine.sweep("periodic"))

    def start(self):
        if self.heartbeat.list_tasks():
            self.heartbeat.start()
        logger.log_operation("service.start", "success", {
            "db_path": self.config.db_path,
            "contract": self.config.contract,
            "sweep_mode": self.config.sweep_mode,
            "identity_source": self.config.identity_source
        })

    def stop(self):
        self.heartbeat.stop()
        dropped = len(self.cache)
        self.cache.clear()
        logger.log_operation("service.stop", "success", {"pending_dropped": dropped})

    def status(self) -> Dict[str, Any]:
        db_health = health_check(self.config.db_path)
        return {
            "db_health": db_health,
            "pending": self.cache.get_stats(),
            "heartbeat": self.heartbeat.get_status(),
        }
