"""Factories for building stores and migrators from configuration."""

import logging
from typing import Any

from dataknobs_config import FactoryBase

from dataknobs_docmigration.container import ContainerMigrator
from dataknobs_docmigration.database import DatabaseMigrator
from dataknobs_docmigration.stores import store_backends
from dataknobs_docmigration.stores.base import DocumentStore


logger = logging.getLogger(__name__)


class DocumentStoreFactory(FactoryBase):
    """Factory for creating document store clients dynamically.

    Configuration Options:
        backend (str): Backend type (memory, cosmos)
        **kwargs: Backend-specific configuration options

    Example Configuration:
        stores:
          - name: production
            factory: dataknobs_docmigration.factory.DocumentStoreFactory
            backend: cosmos
            endpoint: https://myaccount.documents.azure.com:443/
            key: ${COSMOS_KEY}

          - name: scratch
            factory: dataknobs_docmigration.factory.DocumentStoreFactory
            backend: memory
            page_size: 25
    """

    def create(self, **config: Any) -> DocumentStore:
        """Create a document store based on configuration.

        Args:
            **config: Configuration including 'backend' field and backend-specific options

        Returns:
            Instance of the requested store backend

        Raises:
            ValueError: If backend type is not recognized or not available
        """
        backend_type = config.pop("backend", "memory").lower()

        logger.info(f"Creating document store with backend: {backend_type}")

        try:
            backend_class = store_backends.get(backend_type)
        except Exception as e:
            available = store_backends.list_keys()
            raise ValueError(
                f"Unknown backend type: {backend_type}. "
                f"Available backends: {', '.join(sorted(set(available)))}"
            ) from e

        missing = [name for name in backend_class.required_options if not config.get(name)]
        if missing:
            raise ValueError(
                f"Backend '{backend_type}' requires configuration: {', '.join(missing)}"
            )

        return backend_class.from_config(config)

    def get_backend_info(self, backend_type: str) -> dict[str, Any]:
        """Get information about a specific backend.

        Args:
            backend_type: Name of the backend

        Returns:
            Dictionary with backend information from registry metadata
        """
        backend_type = backend_type.lower()

        if not store_backends.has(backend_type):
            return {
                "description": "Unknown backend",
                "error": f"Backend '{backend_type}' not recognized",
            }

        info = dict(store_backends.get_metrics(backend_type).get("metadata") or {})
        info["required_options"] = list(store_backends.get(backend_type).required_options)
        return info


class _MigratorFactory(FactoryBase):
    """Builds a migrator from ``store``, ``database_id`` and ``container_id``.

    ``store`` is either a DocumentStore instance or a nested store
    configuration passed to DocumentStoreFactory.
    """

    migrator_class: type = ContainerMigrator

    def create(self, **config: Any) -> Any:
        store = config.pop("store", None)
        if store is None:
            raise ValueError(f"{self.__class__.__name__} requires a 'store' configuration")
        if not isinstance(store, DocumentStore):
            store = document_store_factory.create(**dict(store))

        logger.info(
            f"Creating {self.migrator_class.__name__} for "
            f"{config.get('database_id')}/{config.get('container_id')}"
        )
        return self.migrator_class(store, config.get("database_id"), config.get("container_id"))


class ContainerMigratorFactory(_MigratorFactory):
    """Factory for ContainerMigrator instances.

    Example Configuration:
        migrators:
          - name: orders
            factory: dataknobs_docmigration.factory.ContainerMigratorFactory
            database_id: shop
            container_id: orders
            store:
              backend: cosmos
              endpoint: https://myaccount.documents.azure.com:443/
    """

    migrator_class = ContainerMigrator


class DatabaseMigratorFactory(_MigratorFactory):
    """Factory for DatabaseMigrator instances (same options as ContainerMigratorFactory)."""

    migrator_class = DatabaseMigrator


# Create singleton instances for registration
document_store_factory = DocumentStoreFactory()
container_migrator_factory = ContainerMigratorFactory()
database_migrator_factory = DatabaseMigratorFactory()
