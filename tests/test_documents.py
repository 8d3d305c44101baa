"""Tests for nested path navigation and field mutation."""

import copy

import pytest

from dataknobs_docmigration.documents import add_field, descend, remove_field, split_path
from dataknobs_docmigration.exceptions import (
    FieldAlreadyExistsError,
    InvalidArgumentError,
    InvalidPathError,
)


@pytest.fixture
def document():
    return {
        "id": "doc-1",
        "name": "Alice",
        "address": {"city": "Boston", "geo": {"lat": 42.36}},
        "tags": ["a", "b"],
    }


class TestSplitPath:
    """Test path normalization."""

    @pytest.mark.parametrize("path", [None, "", []])
    def test_empty_means_root(self, path):
        """Test None, empty string and empty list all mean the root."""
        assert split_path(path) == []

    def test_dotted_string(self):
        """Test dotted strings are split into segments."""
        assert split_path("address.geo") == ["address", "geo"]

    def test_sequence(self):
        """Test sequences are copied into a list."""
        segments = ("address", "geo")
        assert split_path(segments) == ["address", "geo"]

    def test_empty_segment(self):
        """Test empty segments are rejected."""
        with pytest.raises(InvalidArgumentError):
            split_path("address..geo")


class TestDescend:
    """Test walking nested documents."""

    def test_empty_path_returns_root(self, document):
        """Test an empty path returns the root itself."""
        assert descend(document, []) is document

    def test_consumes_all_segments(self, document):
        """Test the document at the full path is returned."""
        assert descend(document, ["address", "geo"]) is document["address"]["geo"]

    def test_missing_segment(self, document):
        """Test a missing segment fails naming that segment."""
        with pytest.raises(InvalidPathError) as exc_info:
            descend(document, "address.zip")
        assert exc_info.value.segment == "zip"
        assert exc_info.value.path == ["address", "zip"]

    def test_non_document_segment(self, document):
        """Test stepping into a scalar or list fails with InvalidPath."""
        with pytest.raises(InvalidPathError) as exc_info:
            descend(document, "address.city")
        assert exc_info.value.segment == "city"

        with pytest.raises(InvalidPathError):
            descend(document, "tags")

    def test_non_document_root(self):
        """Test a non-mapping root is an invalid argument."""
        with pytest.raises(InvalidArgumentError):
            descend(["not", "a", "document"], [])


class TestAddField:
    """Test inserting fields."""

    def test_add_at_root(self, document):
        """Test adding a top-level field."""
        add_field(document, None, "age", 30)
        assert document["age"] == 30

    def test_add_nested(self, document):
        """Test adding a field inside a nested document."""
        add_field(document, "address.geo", "lng", -71.05)
        assert document["address"]["geo"] == {"lat": 42.36, "lng": -71.05}

    def test_existing_field_fails_without_change(self, document):
        """Test adding an existing field raises and leaves the document unmodified."""
        before = copy.deepcopy(document)
        with pytest.raises(FieldAlreadyExistsError) as exc_info:
            add_field(document, [], "name", "Bob")
        assert exc_info.value.field_name == "name"
        assert exc_info.value.document_id == "doc-1"
        assert document == before

    def test_empty_name(self, document):
        """Test an empty field name is rejected."""
        with pytest.raises(InvalidArgumentError):
            add_field(document, [], "", 1)

    def test_add_then_remove_restores_fields(self, document):
        """Test add followed by remove returns the original field set."""
        before = copy.deepcopy(document)
        add_field(document, "address", "zip", "02101")
        assert remove_field(document, "address", "zip") is True
        assert document == before


class TestRemoveField:
    """Test removing fields."""

    def test_remove_present(self, document):
        """Test removing a present field reports True."""
        assert remove_field(document, [], "name") is True
        assert "name" not in document

    def test_remove_absent_is_noop(self, document):
        """Test removing an absent field reports False."""
        before = copy.deepcopy(document)
        assert remove_field(document, "address", "zip") is False
        assert document == before

    def test_remove_through_invalid_path(self, document):
        """Test the path must still be navigable."""
        with pytest.raises(InvalidPathError):
            remove_field(document, "name", "first")
