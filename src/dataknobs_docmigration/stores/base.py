"""Document store client abstraction.

Migrators never talk to a concrete database SDK. They use this interface, which
covers database and container lifecycle, paginated queries and single-document
writes. Every call reports the request units it consumed.

Failure reporting follows two rules:

- Container and database calls raise: ``ContainerNotFoundError`` when the
  resource is missing and ``RemoteStoreError`` for anything else.
- Per-document calls (upsert, create, replace, delete) return a ``StoreResponse``
  with ``success=False`` when the store rejects the request, and raise
  ``RemoteStoreError`` only when the call itself could not be completed
  (transport failures).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from ..documents import Document
    from ..indexing import ContainerDescriptor
    from ..partition_keys import PartitionKeyValue


@dataclass
class StoreResponse:
    """Outcome of one remote call."""

    success: bool = True
    charge: float = 0.0
    status_code: int = 200
    error_message: str | None = None
    resource: Any = None


@dataclass
class QueryPage:
    """One page of query results and the charge for fetching it."""

    documents: list[Document] = field(default_factory=list)
    charge: float = 0.0


class DocumentStore(ABC):
    """Abstract client for a partitioned document store.

    Example:
        ```python
        from dataknobs_docmigration import document_store_factory

        store = document_store_factory.create(backend="memory")
        store.create_database_if_not_exists("shop")
        store.create_container_if_not_exists(
            "shop", ContainerDescriptor("orders", "/customerId")
        )
        for page in store.query_pages("shop", "orders", "SELECT * FROM c"):
            print(len(page.documents), page.charge)
        ```
    """

    # Configuration keys that must be present for from_config to succeed
    required_options: tuple[str, ...] = ()

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:  # noqa: B027
        """Release client resources. Override in subclasses if needed."""

    # Databases

    @abstractmethod
    def create_database_if_not_exists(self, database_id: str) -> StoreResponse:
        """Create a database unless it already exists."""

    @abstractmethod
    def read_database(self, database_id: str) -> StoreResponse:
        """Check that a database exists.

        Raises:
            ContainerNotFoundError: If the database does not exist
        """

    @abstractmethod
    def delete_database(self, database_id: str) -> StoreResponse:
        """Delete a database and every container in it."""

    # Containers

    @abstractmethod
    def read_container(self, database_id: str, container_id: str) -> StoreResponse:
        """Read a container definition.

        Returns:
            Response whose ``resource`` is the ContainerDescriptor

        Raises:
            ContainerNotFoundError: If the container does not exist
        """

    @abstractmethod
    def create_container_if_not_exists(
        self, database_id: str, descriptor: ContainerDescriptor
    ) -> StoreResponse:
        """Create a container unless one with the same id exists.

        Returns:
            Response whose ``resource`` is the stored ContainerDescriptor; status
            201 when created, 200 when it already existed

        Raises:
            RemoteStoreError: If a container with the same id but a different
                partition-key path exists
        """

    @abstractmethod
    def delete_container(self, database_id: str, container_id: str) -> StoreResponse:
        """Delete a container and all of its documents."""

    @abstractmethod
    def replace_container(
        self, database_id: str, descriptor: ContainerDescriptor
    ) -> StoreResponse:
        """Replace a container definition (indexing policy).

        Returns:
            Response whose ``resource`` is the updated ContainerDescriptor
        """

    # Documents

    @abstractmethod
    def query_pages(
        self, database_id: str, container_id: str, query: str
    ) -> Iterator[QueryPage]:
        """Run a query and yield result pages lazily, one remote call per page."""

    @abstractmethod
    def upsert_document(
        self, database_id: str, container_id: str, document: Document
    ) -> StoreResponse:
        """Insert or replace a document (partition key taken from the body)."""

    @abstractmethod
    def create_document(
        self,
        database_id: str,
        container_id: str,
        document: Document,
        partition_key: PartitionKeyValue,
    ) -> StoreResponse:
        """Insert a new document; fails with status 409 if it exists."""

    @abstractmethod
    def replace_document(
        self,
        database_id: str,
        container_id: str,
        document_id: str,
        partition_key: PartitionKeyValue,
        document: Document,
    ) -> StoreResponse:
        """Replace an existing document; fails with status 404 if it is missing."""

    @abstractmethod
    def delete_document(
        self,
        database_id: str,
        container_id: str,
        document_id: str,
        partition_key: PartitionKeyValue,
    ) -> StoreResponse:
        """Delete a document; fails with status 404 if it is missing."""
