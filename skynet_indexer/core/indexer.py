"""
Indexer host interface - how the correlation handlers are plugged into the
stream of table deltas and contract actions.

The host owns dispatch and persistence; handlers only attach computed fields
to the document they are given.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .dao import IndexStore
from ..util.logging import logger

Handler = Callable[[Dict[str, Any]], None]


@dataclass
class DeltaHandler:
    table: str
    contract: str
    handler: Handler
    mappings: Dict[str, Any] = field(default_factory=dict)

    def matches(self, document: Dict[str, Any]) -> bool:
        return document.get("table") == self.table and document.get("code") == self.contract


@dataclass
class ActionHandler:
    action: str
    contract: str
    handler: Handler
    mappings: Dict[str, Any] = field(default_factory=dict)

    def matches(self, document: Dict[str, Any]) -> bool:
        act = document.get("act") or {}
        return act.get("name") == self.action and act.get("account") == self.contract


class IndexerHost(ABC):
    """Capability interface the correlation engine registers against."""

    @abstractmethod
    def register_submission_handler(self, table: str, contract: str, mappings: Dict[str, Any], handler: Handler) -> None:
        """Bind a handler to deltas of ``table`` owned by ``contract``."""
        pass

    @abstractmethod
    def register_confirmation_handler(self, action: str, contract: str, mappings: Dict[str, Any], handler: Handler) -> None:
        """Bind a handler to ``action`` actions on ``contract``."""
        pass


class SqliteIndexerHost(IndexerHost):
    """Dispatches documents to registered handlers and persists them to an IndexStore."""

    def __init__(self, store: IndexStore):
        self.store = store
        self.delta_handlers: List[DeltaHandler] = []
        self.action_handlers: List[ActionHandler] = []

    def register_submission_handler(self, table, contract, mappings, handler):
        self.delta_handlers.append(DeltaHandler(table=table, contract=contract, handler=handler, mappings=mappings))

    def register_confirmation_handler(self, action, contract, mappings, handler):
        self.action_handlers.append(ActionHandler(action=action, contract=contract, handler=handler, mappings=mappings))

    def ingest_delta(self, document: Dict[str, Any]) -> Optional[int]:
        """Run matching delta handlers, then persist. Returns the row id, or None if nothing matched."""
        matched = [h for h in self.delta_handlers if h.matches(document)]
        if not matched:
            logger.log_debug(f"ignoring delta for {document.get('code')}::{document.get('table')}")
            return None

        for entry in matched:
            self._run("delta", entry.handler, document)
        return self.store.insert_delta(document)

    def ingest_action(self, document: Dict[str, Any]) -> Optional[int]:
        """Run matching action handlers, then persist. Returns the row id, or None if nothing matched."""
        matched = [h for h in self.action_handlers if h.matches(document)]
        if not matched:
            act = document.get("act") or {}
            logger.log_debug(f"ignoring action {act.get('account')}::{act.get('name')}")
            return None

        for entry in matched:
            self._run("action", entry.handler, document)
        return self.store.insert_action(document)

    def field_mappings(self) -> Dict[str, Dict[str, Any]]:
        """Merged field-mapping declarations, by document kind."""
        mappings: Dict[str, Dict[str, Any]] = {}
        for entry in [*self.delta_handlers, *self.action_handlers]:
            for kind, fields in entry.mappings.items():
                mappings.setdefault(kind, {}).update(fields)
        return mappings

    def _run(self, kind: str, handler: Handler, document: Dict[str, Any]) -> None:
        # A failing handler must not stop the document from being indexed
        try:
            handler(document)
        except Exception as e:
            logger.log_handler_error(kind, e)
