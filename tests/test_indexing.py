"""Tests for indexing policies and container descriptors."""

import pytest

from dataknobs_docmigration.exceptions import InvalidArgumentError
from dataknobs_docmigration.indexing import (
    CompositePath,
    ContainerDescriptor,
    IndexingPolicy,
    SortOrder,
    coerce_composite_indexes,
    coerce_paths,
)

A = CompositePath("/a")
B = CompositePath("/b")
C = CompositePath("/c")
B_DESC = CompositePath("/b", SortOrder.DESCENDING)


class TestCoercion:
    """Test normalizing caller input."""

    def test_composite_path_forms(self):
        """Test the accepted composite member forms."""
        assert CompositePath.coerce("/a") == A
        assert CompositePath.coerce(("/b", "descending")) == B_DESC
        assert CompositePath.coerce({"path": "/b", "order": "descending"}) == B_DESC
        assert CompositePath.coerce(A) is A

    def test_paths_accept_strings_and_mappings(self):
        """Test included/excluded paths accept strings or {"path"} mappings."""
        assert coerce_paths(["/x/?", {"path": "/y/*"}], "included_paths") == ["/x/?", "/y/*"]

    def test_single_string_rejected(self):
        """Test a bare string is not mistaken for a list of characters."""
        with pytest.raises(InvalidArgumentError):
            coerce_paths("/x/?", "included_paths")

    def test_composite_needs_two_members(self):
        """Test composite indexes with fewer than two paths are rejected."""
        with pytest.raises(InvalidArgumentError):
            coerce_composite_indexes([["/a"]])


class TestDefaultPolicy:
    """Test the default indexing policy."""

    def test_defaults(self):
        """Test a new policy includes everything but the etag."""
        policy = IndexingPolicy()
        assert policy.included_paths == ["/*"]
        assert policy.excluded_paths == ['/"_etag"/?']
        assert policy.composite_indexes == []

    def test_round_trip_dict(self):
        """Test the store JSON shape is preserved."""
        policy = IndexingPolicy(composite_indexes=[[A, B_DESC]])
        data = policy.to_dict()
        assert data["compositeIndexes"] == [
            [{"path": "/a", "order": "ascending"}, {"path": "/b", "order": "descending"}]
        ]
        assert IndexingPolicy.from_dict(data) == policy


class TestReplaceSections:
    """Test clearing and replacing policy sections."""

    def test_only_supplied_sections_replaced(self):
        """Test sections passed as None are kept."""
        policy = IndexingPolicy(composite_indexes=[[A, B]])
        replaced = policy.replace_sections(included_paths=["/SomeField/?"])

        assert replaced.included_paths == ["/SomeField/?"]
        assert replaced.excluded_paths == policy.excluded_paths
        assert replaced.composite_indexes == [[A, B]]
        assert policy.included_paths == ["/*"]

    def test_empty_section_clears(self):
        """Test an empty list clears a section."""
        policy = IndexingPolicy(composite_indexes=[[A, B]])
        assert policy.replace_sections(composite_indexes=[]).composite_indexes == []


class TestMerge:
    """Test merge semantics of add-style policy updates."""

    def test_paths_added_once(self):
        """Test merging the same paths twice only changes the first time."""
        policy = IndexingPolicy()
        assert policy.merge(included_paths=["/name/?"], excluded_paths=["/blob/*"]) is True
        assert policy.merge(included_paths=["/name/?"], excluded_paths=["/blob/*"]) is False
        assert policy.included_paths == ["/*", "/name/?"]
        assert policy.excluded_paths == ['/"_etag"/?', "/blob/*"]

    def test_nothing_supplied(self):
        """Test merging nothing reports no change."""
        assert IndexingPolicy().merge() is False

    def test_first_composites_added_unconditionally(self):
        """Test all composites are added when none exist yet."""
        policy = IndexingPolicy()
        assert policy.merge(composite_indexes=[[A, B], [A, B]]) is True
        assert policy.composite_indexes == [[A, B], [A, B]]

    def test_exact_duplicate_skipped(self):
        """Test an existing composite index is not added again."""
        policy = IndexingPolicy(composite_indexes=[[A, B]])
        assert policy.merge(composite_indexes=[[A, B]]) is False
        assert policy.composite_indexes == [[A, B]]

    def test_subset_is_duplicate(self):
        """Test a composite whose members all appear in one existing index is skipped."""
        policy = IndexingPolicy(composite_indexes=[[A, B, C]])
        assert policy.merge(composite_indexes=[[C, A]]) is False

    def test_superset_is_new(self):
        """Test a composite with an extra member is added."""
        policy = IndexingPolicy(composite_indexes=[[A, B]])
        assert policy.merge(composite_indexes=[[A, B, C]]) is True
        assert policy.composite_indexes == [[A, B], [A, B, C]]

    def test_order_matters(self):
        """Test the same path with another sort order is a new member."""
        policy = IndexingPolicy(composite_indexes=[[A, B]])
        assert policy.merge(composite_indexes=[[A, B_DESC]]) is True

    def test_compared_against_existing_only(self):
        """Test duplicates within one request are both added."""
        policy = IndexingPolicy(composite_indexes=[[A, B]])
        policy.merge(composite_indexes=[[A, C], [A, C]])
        assert policy.composite_indexes == [[A, B], [A, C], [A, C]]


class TestContainerDescriptor:
    """Test container descriptors."""

    def test_partition_key_field(self):
        """Test the partition key field is derived from the path."""
        descriptor = ContainerDescriptor("people", "/CountryCode")
        assert descriptor.partition_key_field == "CountryCode"

    def test_from_store_dict(self):
        """Test reading the store JSON representation."""
        descriptor = ContainerDescriptor.from_dict({
            "id": "people",
            "partitionKey": {"paths": ["/PostalCode"], "kind": "Hash"},
            "indexingPolicy": {"includedPaths": [{"path": "/x/?"}], "excludedPaths": []},
            "_rid": "abc",
        })
        assert descriptor.id == "people"
        assert descriptor.partition_key_path == "/PostalCode"
        assert descriptor.indexing_policy.included_paths == ["/x/?"]
        assert ContainerDescriptor.from_dict(descriptor.to_dict()) == descriptor
