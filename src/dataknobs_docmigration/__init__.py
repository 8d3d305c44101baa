"""DataKnobs DocMigration Package - Structural migrations for partitioned document stores.

The `dataknobs-docmigration` package migrates the shape of a schema-less, partitioned
document database such as Azure Cosmos DB: containers are created, cloned, deleted
and re-partitioned, indexing policies are merged or replaced, and fields are added to
or removed from every document a query returns. Every operation reports the request
units it consumed.

Modules:
    container: ContainerMigrator for per-document migrations on a bound container
    database: DatabaseMigrator for container-level structural migrations
    documents: Nested path navigation and in-place field mutation
    operations: Reversible AddField / RemoveField operations
    indexing: Container descriptors and indexing policies
    partition_keys: Typed partition-key values
    query: Paged query execution with cost accounting
    cost: OperationCost request-charge tracking
    stores: Store client interface with memory and Cosmos DB backends
    factory: Factories for building stores and migrators from configuration
    exceptions: Custom exceptions for error handling

Quick Examples:

    Re-partition a container:

    ```python
    from dataknobs_docmigration import DatabaseMigrator, document_store_factory

    store = document_store_factory.create(
        backend="cosmos", endpoint="https://myaccount.documents.azure.com:443/", key="..."
    )
    migrator = DatabaseMigrator(store, "geo", "addresses")
    cost = migrator.repartition("PostalCode")
    print(cost.get_summary())  # repartition with documents count 10 cost 123.4 RUs.
    ```

    Add a nested field to every matching document:

    ```python
    from dataknobs_docmigration import ContainerMigrator

    migrator = ContainerMigrator(store, "shop", "orders")
    documents = migrator.get_documents("SELECT * FROM c WHERE c.status = 'open'")
    migrator.add_field_to_all(documents, "priority", 1, path="meta.flags")
    ```

Installation:

    ```bash
    pip install dataknobs-docmigration
    ```
"""

from .base import BaseMigrator, MigrationTarget
from .cancellation import CancellationToken
from .container import ContainerMigrator
from .cost import OperationCost
from .database import DatabaseMigrator
from .documents import Document, add_field, descend, remove_field, split_path
from .exceptions import (
    ContainerNotFoundError,
    DocMigrationError,
    FieldAlreadyExistsError,
    InvalidArgumentError,
    InvalidPathError,
    MigrationCancelledError,
    MissingRequiredFieldError,
    RemoteStoreError,
    UnsupportedTypeError,
)
from .factory import (
    ContainerMigratorFactory,
    DatabaseMigratorFactory,
    DocumentStoreFactory,
    container_migrator_factory,
    database_migrator_factory,
    document_store_factory,
)
from .indexing import CompositePath, ContainerDescriptor, IndexingPolicy, SortOrder
from .operations import AddField, FieldOperation, RemoveField
from .partition_keys import (
    PartitionKeyKind,
    PartitionKeyValue,
    partition_key_field,
    partition_key_path,
    resolve_partition_key,
)
from .query import DEFAULT_QUERY, QueryResult, run_query
from .stores import (
    DocumentStore,
    MemoryDocumentStore,
    QueryPage,
    StoreRegistry,
    StoreResponse,
    store_backends,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_QUERY",
    "AddField",
    "BaseMigrator",
    "CancellationToken",
    "CompositePath",
    "ContainerDescriptor",
    "ContainerMigrator",
    "ContainerMigratorFactory",
    "ContainerNotFoundError",
    "DatabaseMigrator",
    "DatabaseMigratorFactory",
    "DocMigrationError",
    "Document",
    "DocumentStore",
    "DocumentStoreFactory",
    "FieldAlreadyExistsError",
    "FieldOperation",
    "IndexingPolicy",
    "InvalidArgumentError",
    "InvalidPathError",
    "MemoryDocumentStore",
    "MigrationCancelledError",
    "MigrationTarget",
    "MissingRequiredFieldError",
    "OperationCost",
    "PartitionKeyKind",
    "PartitionKeyValue",
    "QueryPage",
    "QueryResult",
    "RemoteStoreError",
    "RemoveField",
    "SortOrder",
    "StoreRegistry",
    "StoreResponse",
    "UnsupportedTypeError",
    "add_field",
    "container_migrator_factory",
    "database_migrator_factory",
    "descend",
    "document_store_factory",
    "partition_key_field",
    "partition_key_path",
    "resolve_partition_key",
    "remove_field",
    "run_query",
    "split_path",
    "store_backends",
]
