"""Per-document migrations on a bound container.
"""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from .base import BaseMigrator
from .exceptions import (
    FieldAlreadyExistsError,
    InvalidArgumentError,
    InvalidPathError,
    MissingRequiredFieldError,
    RemoteStoreError,
    UnsupportedTypeError,
)
from .operations import AddField, RemoveField
from .partition_keys import resolve_partition_key

if TYPE_CHECKING:
    from collections.abc import Sequence
    from .cancellation import CancellationToken
    from .cost import OperationCost
    from .documents import Document, PathLike
    from .operations import FieldOperation


logger = logging.getLogger(__name__)


class ContainerMigrator(BaseMigrator):
    """Reads, writes and reshapes the documents of one container.

    Documents are processed strictly one at a time, one blocking store call
    each, so the running charge and the position of a failure are always
    exact. Failure policy differs per operation:

    - ``delete_by_query`` logs a failed delete and moves on to the next match.
    - ``upsert_all`` and the field operations log the failure and raise
      ``RemoteStoreError``, leaving the rest of the batch unprocessed.

    Example:
        ```python
        store = MemoryDocumentStore()
        migrator = ContainerMigrator(store, "shop", "orders")

        documents = migrator.get_documents("SELECT * FROM c WHERE c.status = 'open'")
        cost = migrator.add_field_to_all(documents, "priority", 1, path="meta")
        print(cost.get_summary())
        ```
    """

    def get_documents(
        self,
        query: str | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[Document]:
        """Return every document matching ``query`` (default: all documents)."""
        cost = self._start("get_documents")
        documents = self._read_all(query, cost, cancellation)
        cost.document_count = len(documents)
        self._complete(cost)
        return documents

    def upsert_all(
        self,
        documents: Sequence[Document],
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Insert or replace each document.

        Raises:
            InvalidArgumentError: If documents is None
            RemoteStoreError: On the first failed upsert; later documents are
                not written
        """
        if documents is None:
            raise InvalidArgumentError("documents", "a list of documents is required")

        cost = self._start("upsert_all")
        cost.document_count = len(documents)
        for processed, document in enumerate(documents):
            self._checkpoint(cost, cancellation, processed)
            document_id = document.get("id")
            partition_key = document.get(self.target.partition_key_field)
            try:
                response = self._store.upsert_document(
                    self.database_id, self.container_id, document
                )
            except RemoteStoreError as e:
                self._log_document_failure(document_id, partition_key, e.status_code, str(e))
                cost.record_failure(str(e), document_id, e.status_code)
                self._log_aborted(cost)
                raise

            cost.add(response.charge)
            if not response.success:
                self._log_document_failure(
                    document_id, partition_key, response.status_code, response.error_message
                )
                cost.record_failure(response.error_message, document_id, response.status_code)
                self._log_aborted(cost)
                raise RemoteStoreError(
                    "upsert",
                    response.error_message or "upsert failed",
                    status_code=response.status_code,
                    document_id=document_id,
                )
            cost.record_success()

        return self._complete(cost)

    def delete_by_query(
        self,
        query: str,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Delete every document matching ``query``.

        Each delete is keyed by the document's id and the value of its
        partition-key field. A failed delete is logged and recorded in the
        returned cost; the remaining matches are still deleted.

        Raises:
            InvalidArgumentError: If query is blank
        """
        if not query or not query.strip():
            raise InvalidArgumentError("query", "must not be empty")

        cost = self._start("delete_by_query")
        documents = self._read_all(query, cost, cancellation)
        cost.document_count = len(documents)
        field_name = self.target.partition_key_field

        for processed, document in enumerate(documents):
            self._checkpoint(cost, cancellation, processed)
            document_id = document.get("id")
            raw_key = document.get(field_name)

            if document_id is None or raw_key is None:
                missing = "id" if document_id is None else field_name
                message = f"Required field '{missing}' is not present"
                self._log_document_failure(document_id, raw_key, None, message)
                cost.record_failure(message, document_id)
                continue

            try:
                partition_key = resolve_partition_key(raw_key)
            except UnsupportedTypeError as e:
                self._log_document_failure(document_id, raw_key, None, str(e))
                cost.record_failure(str(e), document_id)
                continue

            try:
                response = self._store.delete_document(
                    self.database_id, self.container_id, str(document_id), partition_key
                )
            except RemoteStoreError as e:
                self._log_document_failure(document_id, partition_key, e.status_code, str(e))
                cost.record_failure(str(e), document_id, e.status_code)
                continue

            cost.add(response.charge)
            if response.success:
                logger.info(f"Deleted document {document_id} with partition key {partition_key}")
                cost.record_success()
            else:
                self._log_document_failure(
                    document_id, partition_key, response.status_code, response.error_message
                )
                cost.record_failure(response.error_message, document_id, response.status_code)

        return self._complete(cost)

    def add_field_to_all(
        self,
        documents: Sequence[Document],
        name: str,
        value: Any,
        path: PathLike = None,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Add a field to each document and write it back.

        Args:
            documents: Documents to update; mutated in place
            name: Field name to add
            value: Value for the new field (must not be None)
            path: Dotted string or segment list naming the nested document
                that receives the field; empty means the root
            cancellation: Optional cancellation token

        Raises:
            FieldAlreadyExistsError: At the first document that already has
                the field; later documents are not processed
        """
        if not name:
            raise InvalidArgumentError("name", "field name must not be empty")
        if value is None:
            raise InvalidArgumentError("value", "must not be None")
        operation = AddField(name, value, path or [])
        return self._apply(documents, operation, "add_field_to_all", cancellation)

    def remove_field_from_all(
        self,
        documents: Sequence[Document],
        name: str,
        path: PathLike = None,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Remove a field from each document that has it and write it back.

        Documents without the field are skipped without a store call.
        """
        if not name:
            raise InvalidArgumentError("name", "field name must not be empty")
        operation = RemoveField(name, path or [])
        return self._apply(documents, operation, "remove_field_from_all", cancellation)

    def apply_to_all(
        self,
        documents: Sequence[Document],
        operation: FieldOperation,
        cancellation: CancellationToken | None = None,
    ) -> OperationCost:
        """Apply a field operation to each document, replacing the changed ones."""
        if operation is None:
            raise InvalidArgumentError("operation", "a field operation is required")
        return self._apply(documents, operation, "apply_to_all", cancellation)

    def _apply(
        self,
        documents: Sequence[Document],
        operation: FieldOperation,
        operation_name: str,
        cancellation: CancellationToken | None,
    ) -> OperationCost:
        if documents is None:
            raise InvalidArgumentError("documents", "a list of documents is required")

        cost = self._start(operation_name)
        cost.document_count = len(documents)
        for processed, document in enumerate(documents):
            self._checkpoint(cost, cancellation, processed)
            document_id = document.get("id")
            try:
                changed = operation.apply(document)
            except FieldAlreadyExistsError as e:
                self._log_document_failure(
                    document_id, document.get(self.target.partition_key_field), None, str(e)
                )
                cost.record_failure(str(e), document_id)
                self._log_aborted(cost)
                raise
            except InvalidPathError as e:
                self._log_document_failure(
                    document_id, document.get(self.target.partition_key_field), None, str(e)
                )
                cost.record_failure(str(e), document_id)
                continue

            if not changed:
                cost.record_skip()
                continue

            try:
                self._replace(document, cost)
            except (MissingRequiredFieldError, UnsupportedTypeError) as e:
                self._log_document_failure(
                    document_id, document.get(self.target.partition_key_field), None, str(e)
                )
                cost.record_failure(str(e), document_id)
                continue
            except RemoteStoreError:
                self._log_aborted(cost)
                raise
            cost.record_success()

        return self._complete(cost)

    def _replace(self, document: Document, cost: OperationCost) -> float:
        """Write back a whole document keyed by its id and partition key.

        Returns:
            The charge of the replace call

        Raises:
            MissingRequiredFieldError: If the document lacks id or the
                partition-key field, or the key is null
            UnsupportedTypeError: If the partition-key value cannot be used
            RemoteStoreError: If the store call fails
        """
        document_id = document.get("id")
        if document_id is None:
            raise MissingRequiredFieldError("id")
        field_name = self.target.partition_key_field
        if document.get(field_name) is None:
            raise MissingRequiredFieldError(field_name, str(document_id))
        partition_key = resolve_partition_key(document[field_name])

        try:
            response = self._store.replace_document(
                self.database_id, self.container_id, str(document_id), partition_key, document
            )
        except RemoteStoreError as e:
            self._log_document_failure(document_id, partition_key, e.status_code, str(e))
            cost.record_failure(str(e), document_id, e.status_code)
            raise

        cost.add(response.charge)
        if not response.success:
            self._log_document_failure(
                document_id, partition_key, response.status_code, response.error_message
            )
            cost.record_failure(response.error_message, document_id, response.status_code)
            raise RemoteStoreError(
                "replace",
                response.error_message or "replace failed",
                status_code=response.status_code,
                document_id=str(document_id),
            )
        return response.charge
