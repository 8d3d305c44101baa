"""Pytest configuration for dataknobs_docmigration tests."""

import sys
from collections import Counter
from pathlib import Path

import pytest

# Add the package source to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from dataknobs_docmigration import (  # noqa: E402
    ContainerMigrator,
    DatabaseMigrator,
    MemoryDocumentStore,
    RemoteStoreError,
    StoreResponse,
)

DATABASE_ID = "geo"
CONTAINER_ID = "addresses"

COUNTRIES = ["US", "US", "US", "CA", "CA", "GB", "GB", "DE", "FR", "JP"]


def make_addresses(count: int = 10) -> list[dict]:
    """Address documents partitioned by CountryCode, each with a PostalCode."""
    return [
        {
            "id": f"addr-{i}",
            "CountryCode": COUNTRIES[i % len(COUNTRIES)],
            "PostalCode": f"{10000 + i}",
            "city": f"City {i}",
            "location": {"geo": {"lat": 40.0 + i, "lng": -70.0 - i}},
        }
        for i in range(count)
    ]


class RecordingMemoryStore(MemoryDocumentStore):
    """Memory store that counts calls and can be told to fail specific documents.

    ``reject`` maps a document id to a status code returned as an unsuccessful
    response; ``explode`` holds ids whose call raises RemoteStoreError.
    """

    def __init__(self, config=None):
        self.calls = Counter()
        self.reject: dict[str, int] = {}
        self.explode: set[str] = set()
        super().__init__(config)

    def _intercept(self, operation: str, document_id) -> StoreResponse | None:
        self.calls[operation] += 1
        if document_id in self.explode:
            raise RemoteStoreError(operation, "connection reset", document_id=document_id)
        if document_id in self.reject:
            return self._failed(self.reject[document_id], f"rejected {document_id}")
        return None

    def query_pages(self, database_id, container_id, query):
        self.calls["query"] += 1
        yield from super().query_pages(database_id, container_id, query)

    def upsert_document(self, database_id, container_id, document):
        failure = self._intercept("upsert", document.get("id"))
        return failure or super().upsert_document(database_id, container_id, document)

    def create_document(self, database_id, container_id, document, partition_key):
        failure = self._intercept("create", document.get("id"))
        return failure or super().create_document(
            database_id, container_id, document, partition_key
        )

    def replace_document(self, database_id, container_id, document_id, partition_key, document):
        failure = self._intercept("replace", document_id)
        return failure or super().replace_document(
            database_id, container_id, document_id, partition_key, document
        )

    def delete_document(self, database_id, container_id, document_id, partition_key):
        failure = self._intercept("delete", document_id)
        return failure or super().delete_document(
            database_id, container_id, document_id, partition_key
        )

    def replace_container(self, database_id, descriptor):
        self.calls["replace_container"] += 1
        return super().replace_container(database_id, descriptor)


@pytest.fixture
def addresses():
    """Ten seeded address documents."""
    return make_addresses()


@pytest.fixture
def store(addresses):
    """Recording memory store seeded with the geo/addresses container."""
    store = RecordingMemoryStore({
        "page_size": 4,
        "databases": {
            DATABASE_ID: {
                CONTAINER_ID: {"partition_key": "/CountryCode", "documents": addresses},
            },
        },
    })
    store.calls.clear()
    return store


@pytest.fixture
def container_migrator(store):
    """ContainerMigrator bound to geo/addresses."""
    return ContainerMigrator(store, DATABASE_ID, CONTAINER_ID)


@pytest.fixture
def database_migrator(store):
    """DatabaseMigrator bound to geo/addresses."""
    return DatabaseMigrator(store, DATABASE_ID, CONTAINER_ID)
