"""Container-level structural migrations: create, clone, delete, repartition
and indexing-policy changes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import BaseMigrator, MigrationTarget
from .cancellation import check_cancelled
from .cost import OperationCost
from .exceptions import (
    InvalidArgumentError,
    MigrationCancelledError,
    MissingRequiredFieldError,
    RemoteStoreError,
)
from .indexing import (
    ContainerDescriptor,
    IndexingPolicy,
    coerce_composite_indexes,
    coerce_paths,
)
from .partition_keys import partition_key_path, resolve_partition_key

if TYPE_CHECKING:
    from collections.abc import Iterable
    from .cancellation import CancellationToken
    from .documents import Document
    from .partition_keys import PartitionKeyValue


logger = logging.getLogger(__name__)


class DatabaseMigrator(BaseMigrator):
    """Structural migrations scoped to the database of the bound container.

    ``clone_container`` and ``repartition`` leave the migrator bound to the
    container they wrote to.

    Note:
        ``repartition`` deletes the container before recreating it. A failure
        between the delete and the last insert loses documents; keep a copy
        (e.g. with ``clone_container``) when that matters.
    """

    def create_container(
        self,
        container_id: str,
        partition_key: str,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Create a container unless it already exists.

        Args:
            container_id: Id of the new container
            partition_key: Top-level field name used as the partition key

        Raises:
            RemoteStoreError: If the container exists with another partition key
        """
        if not container_id or not container_id.strip():
            raise InvalidArgumentError("container_id", "must be a non-empty string")
        path = partition_key_path(partition_key)

        cost = self._start("create_container")
        self._checkpoint(cost, cancellation, 0)
        response = self._store.create_container_if_not_exists(
            self.database_id, ContainerDescriptor(container_id, path)
        )
        cost.add(response.charge)
        if response.status_code == 200:
            logger.info(f"Container {container_id} already exists in {self.database_id}")
        return self._complete(cost)

    def clone_container(
        self,
        new_container_id: str,
        partition_key: str,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Copy every document into a new container partitioned by ``partition_key``.

        Each document is inserted under the value of its own ``partition_key``
        field, so the copy is re-partitioned rather than byte-copied. The
        source indexing policy is carried over. On success the migrator is
        bound to the new container.

        Raises:
            MissingRequiredFieldError: If a document lacks the new field; raised
                before the new container is created
            UnsupportedTypeError: If a document's new key has an unsupported type
            RemoteStoreError: On the first failed insert
        """
        if not new_container_id or not new_container_id.strip():
            raise InvalidArgumentError("new_container_id", "must be a non-empty string")
        path = partition_key_path(partition_key)

        cost = self._start("clone_container")
        documents = self._read_all(None, cost, cancellation)
        cost.document_count = len(documents)
        keys = self._resolve_keys(documents, partition_key.lstrip("/"))

        self._checkpoint(cost, cancellation, 0)
        descriptor = ContainerDescriptor(
            new_container_id, path, self.descriptor.indexing_policy.copy()
        )
        response = self._store.create_container_if_not_exists(self.database_id, descriptor)
        cost.add(response.charge)

        self._insert_all(new_container_id, documents, keys, cost, cancellation)
        cost.add(self._rebind(new_container_id, self.database_id))
        return self._complete(cost)

    def delete_container(
        self, cancellation: CancellationToken | None = None
    ) -> OperationCost:
        """Delete the bound container and all of its documents."""
        cost = self._start("delete_container")
        self._checkpoint(cost, cancellation, 0)
        response = self._store.delete_container(self.database_id, self.container_id)
        cost.add(response.charge)
        return self._complete(cost)

    def repartition(
        self,
        new_partition_key: str,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Recreate the bound container under a new partition key.

        Reads every document, deletes the container, creates it again with the
        same id and ``/<new_partition_key>`` as its partition-key path, then
        inserts every document back. The recreated container gets the default
        indexing policy.

        Raises:
            MissingRequiredFieldError: If a document lacks the new field; raised
                before anything is deleted
            UnsupportedTypeError: If a document's new key has an unsupported type
        """
        path = partition_key_path(new_partition_key)
        container_id = self.container_id

        cost = self._start("repartition")
        documents = self._read_all(None, cost, cancellation)
        cost.document_count = len(documents)
        keys = self._resolve_keys(documents, new_partition_key.lstrip("/"))

        self._checkpoint(cost, cancellation, 0)
        cost.add(self._store.delete_container(self.database_id, container_id).charge)
        response = self._store.create_container_if_not_exists(
            self.database_id, ContainerDescriptor(container_id, path, IndexingPolicy())
        )
        cost.add(response.charge)

        self._insert_all(container_id, documents, keys, cost, cancellation)
        cost.add(self._refresh())
        return self._complete(cost)

    def replace_indexing_policy(
        self,
        included_paths: Iterable[str] | None = None,
        excluded_paths: Iterable[str] | None = None,
        composite_indexes: Iterable[Iterable] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Clear and replace each supplied section of the indexing policy.

        Sections left as None keep their current content. The container
        definition is written even when no section is supplied.

        Example:
            ```python
            migrator.replace_indexing_policy(included_paths=["/SomeField/?"])
            migrator.descriptor.indexing_policy.included_paths
            # ['/SomeField/?']
            ```
        """
        included, excluded, composites = self._coerce_sections(
            included_paths, excluded_paths, composite_indexes
        )
        policy = self.descriptor.indexing_policy.replace_sections(included, excluded, composites)

        cost = self._start("replace_indexing_policy")
        self._checkpoint(cost, cancellation, 0)
        self._write_policy(policy, cost)
        return self._complete(cost)

    def add_indexing_policy(
        self,
        included_paths: Iterable[str] | None = None,
        excluded_paths: Iterable[str] | None = None,
        composite_indexes: Iterable[Iterable] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Merge paths and composite indexes into the indexing policy.

        Paths already present are ignored. A composite index counts as present
        when every (path, order) pair it lists appears in one existing
        composite index. The container definition is written once if anything
        was added and not at all otherwise.
        """
        included, excluded, composites = self._coerce_sections(
            included_paths, excluded_paths, composite_indexes
        )
        policy = self.descriptor.indexing_policy.copy()

        cost = self._start("add_indexing_policy")
        if not policy.merge(included, excluded, composites):
            logger.info(
                f"add_indexing_policy on {self.container_id} does not apply because nothing new added"
            )
            return self._complete(cost)

        self._checkpoint(cost, cancellation, 0)
        self._write_policy(policy, cost)
        return self._complete(cost)

    @staticmethod
    def _coerce_sections(
        included_paths: Iterable[str] | None,
        excluded_paths: Iterable[str] | None,
        composite_indexes: Iterable[Iterable] | None,
    ) -> tuple:
        return (
            None if included_paths is None else coerce_paths(included_paths, "included_paths"),
            None if excluded_paths is None else coerce_paths(excluded_paths, "excluded_paths"),
            None if composite_indexes is None else coerce_composite_indexes(composite_indexes),
        )

    def _write_policy(self, policy: IndexingPolicy, cost: OperationCost) -> None:
        descriptor = ContainerDescriptor(
            self.container_id, self.descriptor.partition_key_path, policy
        )
        response = self._store.replace_container(self.database_id, descriptor)
        cost.add(response.charge)
        self._target = MigrationTarget(
            self.database_id, self.container_id, response.resource or descriptor
        )

    @staticmethod
    def _resolve_keys(
        documents: list[Document], field_name: str
    ) -> list[PartitionKeyValue]:
        keys = []
        for document in documents:
            if document.get(field_name) is None:
                raise MissingRequiredFieldError(field_name, document.get("id"))
            keys.append(resolve_partition_key(document[field_name]))
        return keys

    def _insert_all(
        self,
        container_id: str,
        documents: list[Document],
        keys: list[PartitionKeyValue],
        cost: OperationCost,
        cancellation: CancellationToken | None,
    ) -> None:
        """Create every document in ``container_id``, folding the result into ``cost``."""
        inserted = OperationCost(operation="insert", document_count=len(documents))
        try:
            for processed, (document, partition_key) in enumerate(zip(documents, keys)):
                check_cancelled(cancellation, cost.operation, processed)
                self._create(container_id, document, partition_key, inserted)
        except MigrationCancelledError:
            self._log_cancelled(cost.merge(inserted))
            raise
        except RemoteStoreError:
            self._log_aborted(cost.merge(inserted))
            raise

        cost.merge(inserted)
        logger.debug(
            f"Inserted {inserted.succeeded} documents into {container_id} "
            f"for {inserted.charge:g} RUs"
        )

    def _create(
        self,
        container_id: str,
        document: Document,
        partition_key: PartitionKeyValue,
        inserted: OperationCost,
    ) -> None:
        document_id = document.get("id")
        try:
            response = self._store.create_document(
                self.database_id, container_id, document, partition_key
            )
        except RemoteStoreError as e:
            self._log_document_failure(document_id, partition_key, e.status_code, str(e))
            inserted.record_failure(str(e), document_id, e.status_code)
            raise

        inserted.add(response.charge)
        if not response.success:
            self._log_document_failure(
                document_id, partition_key, response.status_code, response.error_message
            )
            inserted.record_failure(response.error_message, document_id, response.status_code)
            raise RemoteStoreError(
                "create",
                response.error_message or "create failed",
                status_code=response.status_code,
                document_id=None if document_id is None else str(document_id),
            )
        inserted.record_success()
