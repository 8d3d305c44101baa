"""Tests for custom exceptions in dataknobs_docmigration package."""

import pytest
from dataknobs_common import NotFoundError, OperationError, ValidationError

from dataknobs_docmigration.exceptions import (
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


class TestHierarchy:
    """Test exceptions extend the common hierarchy."""

    @pytest.mark.parametrize(
        "exception_class,base",
        [
            (InvalidArgumentError, ValidationError),
            (InvalidPathError, ValidationError),
            (FieldAlreadyExistsError, ValidationError),
            (MissingRequiredFieldError, ValidationError),
            (UnsupportedTypeError, ValidationError),
            (RemoteStoreError, OperationError),
            (MigrationCancelledError, OperationError),
            (ContainerNotFoundError, NotFoundError),
        ],
    )
    def test_bases(self, exception_class, base):
        """Test each exception has the expected base and root."""
        assert issubclass(exception_class, base)
        assert issubclass(exception_class, DocMigrationError)


class TestMessagesAndContext:
    """Test messages and context dictionaries."""

    def test_invalid_path(self):
        """Test the offending segment is reported."""
        error = InvalidPathError(["a", "b"], "b")
        assert str(error) == "Invalid property path 'a.b' at segment 'b'"
        assert error.context == {"path": "a.b", "segment": "b"}

    def test_field_already_exists(self):
        """Test the field and document are named."""
        error = FieldAlreadyExistsError("status", "doc-1")
        assert "'status'" in str(error)
        assert "'doc-1'" in str(error)
        assert error.context["document_id"] == "doc-1"

    def test_missing_required_field(self):
        """Test the missing field is named."""
        error = MissingRequiredFieldError("id")
        assert str(error) == "Required field 'id' is not present in document"

    def test_remote_store_error(self):
        """Test status and document are kept."""
        error = RemoteStoreError("replace", "precondition failed", status_code=412, document_id="d")
        assert str(error) == "Store operation 'replace' failed: precondition failed"
        assert error.status_code == 412
        assert error.context["document_id"] == "d"

    def test_container_not_found(self):
        """Test database and container variants."""
        assert str(ContainerNotFoundError("db")) == "Database 'db' not found"
        assert str(ContainerNotFoundError("db", "c")) == "Container 'c' not found in database 'db'"

    def test_unsupported_type(self):
        """Test the runtime type name is reported."""
        error = UnsupportedTypeError([1])
        assert error.type_name == "list"
        assert str(error) == "Unsupported partition key type list"
