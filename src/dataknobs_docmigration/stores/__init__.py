"""Document store backends."""

from typing import Type

from dataknobs_common import Registry

from .base import DocumentStore, QueryPage, StoreResponse
from .memory import MemoryDocumentStore


class StoreRegistry(Registry[Type[DocumentStore]]):
    """Registry of available document store backends.

    Backends are auto-registered on import if their dependencies are available.
    """

    def __init__(self) -> None:
        super().__init__("store_backends", enable_metrics=True)
        self._register_builtin_backends()

    def _register_builtin_backends(self) -> None:
        """Auto-register all available built-in backends."""
        # Memory backend (always available)
        self.register(
            "memory",
            MemoryDocumentStore,
            metadata={
                "description": "In-memory document store for testing and dry runs",
                "persistent": False,
                "requires_install": False,
                "config_options": {
                    "page_size": "Documents per query page (default: 100)",
                    "charges": "Overrides for the per-call request charges",
                    "databases": "Optional seed data keyed by database and container",
                },
            },
        )
        self.register("mem", MemoryDocumentStore)  # Alias

        # Azure Cosmos DB backend
        try:
            from .cosmos import CosmosDocumentStore

            self.register(
                "cosmos",
                CosmosDocumentStore,
                metadata={
                    "description": "Azure Cosmos DB Core (SQL) API",
                    "persistent": True,
                    "requires_install": "pip install azure-cosmos",
                    "config_options": {
                        "endpoint": "Account endpoint URL (required)",
                        "key": "Account key (default: managed identity)",
                    },
                },
            )
            self.register("cosmosdb", CosmosDocumentStore)  # Alias
        except ImportError:
            pass


store_backends = StoreRegistry()


__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "QueryPage",
    "StoreRegistry",
    "StoreResponse",
    "store_backends",
]
