"""Shared container binding for the container and database migrators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .cancellation import check_cancelled
from .cost import OperationCost
from .exceptions import InvalidArgumentError, MigrationCancelledError
from .query import run_query

if TYPE_CHECKING:
    from .cancellation import CancellationToken
    from .documents import Document
    from .indexing import ContainerDescriptor
    from .stores.base import DocumentStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MigrationTarget:
    """The container a migrator is currently bound to."""

    database_id: str
    container_id: str
    descriptor: ContainerDescriptor

    @property
    def partition_key_field(self) -> str:
        return self.descriptor.partition_key_field


def _require_id(argument: str, value: str | None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(argument, "must be a non-empty string")
    return value


class BaseMigrator:
    """Holds the store client and the bound container.

    Construction performs a blocking read of the container definition and
    fails if the container does not exist. A migrator is meant to be driven
    from one thread at a time; callers must not invoke operations on the same
    instance concurrently.
    """

    def __init__(self, store: DocumentStore, database_id: str, container_id: str):
        if store is None:
            raise InvalidArgumentError("store", "a document store client is required")
        self._store = store
        self._target = self._bind(_require_id("database_id", database_id),
                                  _require_id("container_id", container_id))

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def target(self) -> MigrationTarget:
        return self._target

    @property
    def database_id(self) -> str:
        return self._target.database_id

    @property
    def container_id(self) -> str:
        return self._target.container_id

    @property
    def descriptor(self) -> ContainerDescriptor:
        """Cached definition of the bound container."""
        return self._target.descriptor

    def _bind(self, database_id: str, container_id: str) -> MigrationTarget:
        response = self._store.read_container(database_id, container_id)
        return MigrationTarget(database_id, container_id, response.resource)

    def _rebind(self, container_id: str, database_id: str) -> float:
        """Bind to a container and return the charge of reading its definition."""
        response = self._store.read_container(database_id, container_id)
        self._target = MigrationTarget(database_id, container_id, response.resource)
        logger.info(f"Switched to container {container_id} in database {database_id}")
        return response.charge

    def switch_to(self, container_id: str, database_id: str | None = None) -> None:
        """Bind to another container, refreshing the cached definition.

        Args:
            container_id: Container to bind to
            database_id: Database holding it (default: the current database)

        Raises:
            InvalidArgumentError: If container_id is empty
            ContainerNotFoundError: If the container does not exist; the
                current binding is kept
        """
        container_id = _require_id("container_id", container_id)
        if database_id is None:
            database_id = self.database_id
        database_id = _require_id("database_id", database_id)

        self._rebind(container_id, database_id)

    def _refresh(self) -> float:
        """Re-read the bound container definition; returns the charge."""
        response = self._store.read_container(self.database_id, self.container_id)
        self._target = MigrationTarget(self.database_id, self.container_id, response.resource)
        return response.charge

    def _read_all(
        self,
        query: str | None,
        cost: OperationCost,
        cancellation: CancellationToken | None,
    ) -> list[Document]:
        try:
            result = run_query(
                self._store, self.database_id, self.container_id, query, cancellation
            )
        except MigrationCancelledError:
            self._log_cancelled(cost)
            raise
        cost.add(result.charge)
        return result.documents

    @staticmethod
    def _start(operation: str) -> OperationCost:
        return OperationCost(operation=operation).start()

    @staticmethod
    def _complete(cost: OperationCost) -> OperationCost:
        cost.finish()
        logger.info(cost.get_summary(), extra=cost.log_fields())
        return cost

    def _checkpoint(
        self,
        cost: OperationCost,
        cancellation: CancellationToken | None,
        processed: int,
    ) -> None:
        """Stop before the next remote call if cancellation was requested."""
        try:
            check_cancelled(cancellation, cost.operation, processed)
        except MigrationCancelledError:
            self._log_cancelled(cost)
            raise

    @staticmethod
    def _log_cancelled(cost: OperationCost) -> None:
        cost.finish()
        logger.warning(f"Cancelled: {cost.get_summary()}", extra=cost.log_fields())

    @staticmethod
    def _log_aborted(cost: OperationCost) -> None:
        cost.finish()
        logger.error(f"Aborted: {cost.get_summary()}", extra=cost.log_fields())

    @staticmethod
    def _log_document_failure(
        document_id: str | None,
        partition_key: object,
        status_code: int | None,
        error_message: str | None,
    ) -> None:
        logger.error(
            f"Failed to process document {document_id} with partition key {partition_key}. "
            f"Status: {status_code}. Error: {error_message}",
            extra={
                "document_id": document_id,
                "partition_key": None if partition_key is None else str(partition_key),
                "status_code": status_code,
                "error_message": error_message,
            },
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(database_id='{self.database_id}', container_id='{self.container_id}')"
