"""Custom exceptions for the dataknobs_docmigration package.

This module defines exception types for document store migrations,
built on the common exception framework from dataknobs_common.
"""

from __future__ import annotations

from typing import Any

from dataknobs_common import (
    DataknobsError,
    NotFoundError,
    OperationError,
    ValidationError,
)

# Create DocMigrationError as alias to DataknobsError, mirroring dataknobs_data
DocMigrationError = DataknobsError


class InvalidArgumentError(ValidationError):
    """Raised when caller input is malformed (empty id, missing list, bad value)."""

    def __init__(self, argument: str, message: str):
        self.argument = argument
        super().__init__(
            f"Invalid argument '{argument}': {message}", context={"argument": argument}
        )


class InvalidPathError(ValidationError):
    """Raised when a nested path step reaches a value that is not a document."""

    def __init__(self, path: list[str], segment: str, message: str | None = None):
        self.path = list(path)
        self.segment = segment
        dotted = ".".join(self.path)
        super().__init__(
            message or f"Invalid property path '{dotted}' at segment '{segment}'",
            context={"path": dotted, "segment": segment},
        )


class FieldAlreadyExistsError(ValidationError):
    """Raised when adding a field that the target document already has."""

    def __init__(self, field_name: str, document_id: str | None = None):
        self.field_name = field_name
        self.document_id = document_id
        message = f"Cannot add field '{field_name}' because it exists"
        if document_id is not None:
            message += f" in document '{document_id}'"
        super().__init__(
            message + ". Remove it first to overwrite.",
            context={"field_name": field_name, "document_id": document_id},
        )


class MissingRequiredFieldError(ValidationError):
    """Raised when a document lacks its id or partition-key field at write time."""

    def __init__(self, field_name: str, document_id: str | None = None):
        self.field_name = field_name
        self.document_id = document_id
        target = f"document '{document_id}'" if document_id else "document"
        super().__init__(
            f"Required field '{field_name}' is not present in {target}",
            context={"field_name": field_name, "document_id": document_id},
        )


class UnsupportedTypeError(ValidationError):
    """Raised when a partition-key value has an unsupported runtime type."""

    def __init__(self, value: Any):
        self.type_name = type(value).__name__
        super().__init__(
            f"Unsupported partition key type {self.type_name}",
            context={"type_name": self.type_name},
        )


class RemoteStoreError(OperationError):
    """Raised when a remote store call raises or reports a non-success status."""

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
        document_id: str | None = None,
    ):
        self.operation = operation
        self.status_code = status_code
        self.document_id = document_id
        super().__init__(
            f"Store operation '{operation}' failed: {message}",
            context={
                "operation": operation,
                "status_code": status_code,
                "document_id": document_id,
            },
        )


class ContainerNotFoundError(NotFoundError):
    """Raised when a container (or the database holding it) does not exist."""

    def __init__(self, database_id: str, container_id: str | None = None):
        self.database_id = database_id
        self.container_id = container_id
        if container_id is None:
            message = f"Database '{database_id}' not found"
        else:
            message = f"Container '{container_id}' not found in database '{database_id}'"
        super().__init__(
            message, context={"database_id": database_id, "container_id": container_id}
        )


class MigrationCancelledError(OperationError):
    """Raised when a cancellation token is observed between documents or pages."""

    def __init__(self, operation: str, processed: int = 0):
        self.operation = operation
        self.processed = processed
        super().__init__(
            f"Operation '{operation}' cancelled after {processed} documents",
            context={"operation": operation, "processed": processed},
        )
