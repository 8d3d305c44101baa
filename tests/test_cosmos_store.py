"""Tests for the Cosmos DB store with a mocked SDK client."""

from unittest.mock import MagicMock

import pytest

pytest.importorskip("azure.cosmos")

from azure.core.exceptions import ServiceRequestError
from azure.cosmos import exceptions as cosmos_exceptions

from dataknobs_docmigration import (
    ContainerDescriptor,
    ContainerMigrator,
    ContainerNotFoundError,
    InvalidArgumentError,
    RemoteStoreError,
    resolve_partition_key,
)
from dataknobs_docmigration.stores.cosmos import REQUEST_CHARGE_HEADER, CosmosDocumentStore

PROPERTIES = {
    "id": "orders",
    "partitionKey": {"paths": ["/customerId"], "kind": "Hash"},
    "indexingPolicy": {
        "indexingMode": "consistent",
        "automatic": True,
        "includedPaths": [{"path": "/*"}],
        "excludedPaths": [{"path": '/"_etag"/?'}],
    },
}


def http_error(error_class, status_code, charge=None):
    error = error_class(status_code=status_code, message="rejected")
    if charge is not None:
        error.headers = {REQUEST_CHARGE_HEADER: str(charge)}
    return error


@pytest.fixture
def client():
    client = MagicMock()
    client.client_connection.last_response_headers = {REQUEST_CHARGE_HEADER: "2.5"}
    return client


@pytest.fixture
def database(client):
    return client.get_database_client.return_value


@pytest.fixture
def container(database):
    container = database.get_container_client.return_value
    container.read.return_value = PROPERTIES
    return container


@pytest.fixture
def cosmos_store(client):
    store = CosmosDocumentStore("https://example.documents.azure.com:443/", "secret")
    store._client = client
    return store


class TestConstruction:
    """Test configuration handling."""

    def test_requires_endpoint(self):
        """Test an endpoint is mandatory."""
        with pytest.raises(InvalidArgumentError):
            CosmosDocumentStore("")

    def test_from_config(self):
        """Test endpoint and key are taken from config, the rest goes to the client."""
        store = CosmosDocumentStore.from_config(
            {"endpoint": "https://x", "key": "k", "connection_timeout": 5}
        )
        assert store.endpoint == "https://x"
        assert store.key == "k"
        assert store.client_options == {"connection_timeout": 5}

    def test_close(self, cosmos_store, client):
        """Test close releases the client."""
        cosmos_store.close()
        client.close.assert_called_once()
        assert cosmos_store._client is None


class TestContainers:
    """Test container calls."""

    def test_read_container(self, cosmos_store, container):
        """Test properties are converted and the charge is read from headers."""
        response = cosmos_store.read_container("shop", "orders")
        assert response.charge == 2.5
        assert response.resource.partition_key_path == "/customerId"
        assert response.resource.indexing_policy.excluded_paths == ['/"_etag"/?']

    def test_read_missing_container(self, cosmos_store, container):
        """Test a 404 maps to ContainerNotFoundError."""
        container.read.side_effect = http_error(cosmos_exceptions.CosmosResourceNotFoundError, 404)
        with pytest.raises(ContainerNotFoundError):
            cosmos_store.read_container("shop", "orders")

    def test_create_existing_container(self, cosmos_store, database, container):
        """Test an existing compatible container reports 200."""
        database.create_container.side_effect = http_error(
            cosmos_exceptions.CosmosResourceExistsError, 409
        )
        response = cosmos_store.create_container_if_not_exists(
            "shop", ContainerDescriptor("orders", "/customerId")
        )
        assert response.status_code == 200
        assert response.charge == 5.0

    def test_create_existing_incompatible(self, cosmos_store, database, container):
        """Test an existing container with another partition key is a conflict."""
        database.create_container.side_effect = http_error(
            cosmos_exceptions.CosmosResourceExistsError, 409
        )
        with pytest.raises(RemoteStoreError) as exc_info:
            cosmos_store.create_container_if_not_exists(
                "shop", ContainerDescriptor("orders", "/region")
            )
        assert exc_info.value.status_code == 409

    def test_replace_container_sends_policy(self, cosmos_store, database, container):
        """Test the full indexing policy goes to the SDK."""
        database.replace_container.return_value = container
        descriptor = ContainerDescriptor.from_dict(PROPERTIES)
        descriptor.indexing_policy.included_paths.append("/name/?")

        cosmos_store.replace_container("shop", descriptor)
        kwargs = database.replace_container.call_args.kwargs
        assert {"path": "/name/?"} in kwargs["indexing_policy"]["includedPaths"]

    def test_transport_error(self, cosmos_store, database):
        """Test SDK transport failures become RemoteStoreError."""
        database.delete_container.side_effect = ServiceRequestError("connection reset")
        with pytest.raises(RemoteStoreError):
            cosmos_store.delete_container("shop", "orders")


class TestDocuments:
    """Test single-document calls and queries."""

    def test_conflict_is_unsuccessful_response(self, cosmos_store, container):
        """Test a store rejection returns success=False with the error charge."""
        container.create_item.side_effect = http_error(
            cosmos_exceptions.CosmosResourceExistsError, 409, charge=1.24
        )
        response = cosmos_store.create_document(
            "shop", "orders", {"id": "o1", "customerId": "c1"}, resolve_partition_key("c1")
        )
        assert response.success is False
        assert response.status_code == 409
        assert response.charge == 1.24
        assert "rejected" in response.error_message

    def test_delete_passes_partition_key(self, cosmos_store, container):
        """Test delete addresses the document by id and partition key."""
        response = cosmos_store.delete_document("shop", "orders", "o1", resolve_partition_key(7))
        container.delete_item.assert_called_once_with(item="o1", partition_key=7)
        assert response.status_code == 204

    def test_transport_error_raises(self, cosmos_store, container):
        """Test a failed call (not a rejection) raises."""
        container.upsert_item.side_effect = ServiceRequestError("timeout")
        with pytest.raises(RemoteStoreError) as exc_info:
            cosmos_store.upsert_document("shop", "orders", {"id": "o1"})
        assert exc_info.value.document_id == "o1"

    def test_query_pages(self, cosmos_store, container):
        """Test each SDK page becomes a charged QueryPage."""
        pages = [iter([{"id": "1"}, {"id": "2"}]), iter([{"id": "3"}])]
        container.query_items.return_value.by_page.return_value = iter(pages)

        result = list(cosmos_store.query_pages("shop", "orders", "SELECT * FROM c"))
        assert [len(p.documents) for p in result] == [2, 1]
        assert all(p.charge == 2.5 for p in result)

    def test_migrator_over_cosmos(self, cosmos_store, container):
        """Test a migrator sums charges reported by the SDK."""
        container.query_items.return_value.by_page.return_value = iter(
            [iter([{"id": "1", "customerId": "c1"}])]
        )
        migrator = ContainerMigrator(cosmos_store, "shop", "orders")
        cost = migrator.add_field_to_all(migrator.get_documents(), "status", "new")

        body = container.replace_item.call_args.kwargs["body"]
        assert body["status"] == "new"
        assert cost.charge == 2.5
        assert cost.succeeded == 1
