"""Graph execution context.

Provides request-scoped state without using globals."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from docgraph.core.config import DocGraphConfig
from docgraph.core.ports import DocumentStore

logger = logging.getLogger(__name__)

ErrorObserver = Callable[[Exception], None]


@dataclass(frozen=True)
class GraphContext:
    """Handle threaded through every graph operation.

    Attributes:
        store: Document store collaborator
        config: docgraph configuration
        observers: Callbacks notified of reported errors
        run_id: Unique identifier for this context
        metadata: Additional metadata (frozen dict)
    """

    store: DocumentStore
    config: DocGraphConfig = field(default_factory=DocGraphConfig)
    observers: tuple[ErrorObserver, ...] = ()
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "observers", tuple(self.observers))

    def report(self, error: Exception) -> None:
        """Broadcast an error to the log and every observer."""
        logger.warning("%s: %s", type(error).__name__, error)
        for observer in self.observers:
            observer(error)

    def with_observer(self, observer: ErrorObserver) -> GraphContext:
        return GraphContext(
            store=self.store,
            config=self.config,
            observers=(*self.observers, observer),
            run_id=self.run_id,
            metadata=dict(self.metadata),
        )


def build_store(config: DocGraphConfig) -> DocumentStore:
    """Construct the document store named by the configuration."""
    if config.store.backend == "duckdb":
        import ibis

        from docgraph.infra.repository.duckdb import DuckDBDocumentStore

        db_path = config.store.abs_db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        store = DuckDBDocumentStore(ibis.duckdb.connect(str(db_path)))
        store.initialize()
        return store

    from docgraph.infra.repository.memory import InMemoryDocumentStore

    return InMemoryDocumentStore()


def build_context(
    config: DocGraphConfig | None = None,
    observers: tuple[ErrorObserver, ...] = (),
) -> GraphContext:
    """Build a context with a store chosen from configuration."""
    config = config or DocGraphConfig.load()
    return GraphContext(store=build_store(config), config=config, observers=observers)
