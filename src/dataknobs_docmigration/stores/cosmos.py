"""Azure Cosmos DB (Core SQL API) document store."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from azure.core.exceptions import AzureError
from azure.cosmos import CosmosClient, PartitionKey
from azure.cosmos import exceptions as cosmos_exceptions

from dataknobs_config import ConfigurableBase

from ..exceptions import ContainerNotFoundError, InvalidArgumentError, RemoteStoreError
from ..indexing import ContainerDescriptor
from .base import DocumentStore, QueryPage, StoreResponse

if TYPE_CHECKING:
    from collections.abc import Iterator
    from ..documents import Document
    from ..partition_keys import PartitionKeyValue


logger = logging.getLogger(__name__)

REQUEST_CHARGE_HEADER = "x-ms-request-charge"


class CosmosDocumentStore(DocumentStore, ConfigurableBase):
    """Document store backed by the ``azure-cosmos`` SDK.

    The client is created on first use. When no key is given, managed
    identity authentication through ``azure-identity`` is used instead.

    Configuration Options:
        endpoint (str): Account endpoint URL (required)
        key (str): Account key; omit to use DefaultAzureCredential
        **client_options: Passed through to CosmosClient
            (e.g. connection_timeout, consistency_level)
    """

    required_options = ("endpoint",)

    def __init__(self, endpoint: str, key: str | None = None, **client_options: Any):
        if not endpoint:
            raise InvalidArgumentError("endpoint", "a Cosmos DB endpoint is required")
        self.endpoint = endpoint
        self.key = key
        self.client_options = client_options
        self._client: CosmosClient | None = None

    @classmethod
    def from_config(cls, config: dict) -> CosmosDocumentStore:
        """Create from config dictionary."""
        options = dict(config)
        endpoint = options.pop("endpoint", None)
        key = options.pop("key", None)
        return cls(endpoint, key, **options)

    @property
    def client(self) -> CosmosClient:
        if self._client is None:
            self._client = self._connect()
        return self._client

    def _connect(self) -> CosmosClient:
        if self.key:
            logger.info(f"Connecting to {self.endpoint} using key-based authentication")
            return CosmosClient(self.endpoint, self.key, **self.client_options)

        from azure.identity import DefaultAzureCredential

        logger.info(f"Connecting to {self.endpoint} using managed identity authentication")
        return CosmosClient(
            self.endpoint, credential=DefaultAzureCredential(), **self.client_options
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info(f"Disconnected from {self.endpoint}")

    def _last_charge(self) -> float:
        headers = self.client.client_connection.last_response_headers or {}
        return float(headers.get(REQUEST_CHARGE_HEADER, 0))

    @staticmethod
    def _error_charge(error: cosmos_exceptions.CosmosHttpResponseError) -> float:
        headers = getattr(error, "headers", None) or {}
        return float(headers.get(REQUEST_CHARGE_HEADER, 0))

    def _database(self, database_id: str) -> Any:
        return self.client.get_database_client(database_id)

    def _container(self, database_id: str, container_id: str) -> Any:
        return self._database(database_id).get_container_client(container_id)

    # Databases

    def create_database_if_not_exists(self, database_id: str) -> StoreResponse:
        try:
            self.client.create_database_if_not_exists(id=database_id)
        except (cosmos_exceptions.CosmosHttpResponseError, AzureError) as e:
            raise RemoteStoreError(
                "create_database", str(e), status_code=getattr(e, "status_code", None)
            ) from e
        return StoreResponse(charge=self._last_charge())

    def read_database(self, database_id: str) -> StoreResponse:
        try:
            self._database(database_id).read()
        except cosmos_exceptions.CosmosResourceNotFoundError as e:
            raise ContainerNotFoundError(database_id) from e
        except (cosmos_exceptions.CosmosHttpResponseError, AzureError) as e:
            raise RemoteStoreError(
                "read_database", str(e), status_code=getattr(e, "status_code", None)
            ) from e
        return StoreResponse(charge=self._last_charge())

    def delete_database(self, database_id: str) -> StoreResponse:
        try:
            self.client.delete_database(database_id)
        except cosmos_exceptions.CosmosResourceNotFoundError as e:
            raise ContainerNotFoundError(database_id) from e
        except (cosmos_exceptions.CosmosHttpResponseError, AzureError) as e:
            raise RemoteStoreError(
                "delete_database", str(e), status_code=getattr(e, "status_code", None)
            ) from e
        logger.info(f"Deleted database {database_id}")
        return StoreResponse(charge=self._last_charge(), status_code=204)

    # Containers

    def read_container(self, database_id: str, container_id: str) -> StoreResponse:
        try:
            properties = self._container(database_id, container_id).read()
        except cosmos_exceptions.CosmosResourceNotFoundError as e:
            raise ContainerNotFoundError(database_id, container_id) from e
        except (cosmos_exceptions.CosmosHttpResponseError, AzureError) as e:
            raise RemoteStoreError(
                "read_container", str(e), status_code=getattr(e, "status_code", None)
            ) from e
        return StoreResponse(
            charge=self._last_charge(), resource=ContainerDescriptor.from_dict(properties)
        )

    def create_container_if_not_exists(
        self, database_id: str, descriptor: ContainerDescriptor
    ) -> StoreResponse:
        database = self._database(database_id)
        try:
            database.create_container(
                id=descriptor.id,
                partition_key=PartitionKey(path=descriptor.partition_key_path),
                indexing_policy=descriptor.indexing_policy.to_dict(),
            )
            charge = self._last_charge()
            status_code = 201
            logger.info(
                f"Created container {descriptor.id} in {database_id} "
                f"with partition key {descriptor.partition_key_path}"
            )
        except cosmos_exceptions.CosmosResourceExistsError:
            charge = self._last_charge()
            status_code = 200
        except cosmos_exceptions.CosmosResourceNotFoundError as e:
            raise ContainerNotFoundError(database_id) from e
        except (cosmos_exceptions.CosmosHttpResponseError, AzureError) as e:
            raise RemoteStoreError(
                "create_container", str(e), status_code=getattr(e, "status_code", None)
            ) from e

        read = self.read_container(database_id, descriptor.id)
        stored: ContainerDescriptor = read.resource
        if stored.partition_key_path != descriptor.partition_key_path:
            raise RemoteStoreError(
                "create_container",
                f"container '{descriptor.id}' exists with partition key "
                f"'{stored.partition_key_path}'",
                status_code=409,
            )
        return StoreResponse(charge=charge + read.charge, status_code=status_code, resource=stored)

    def delete_container(self, database_id: str, container_id: str) -> StoreResponse:
        try:
            self._database(database_id).delete_container(container_id)
        except cosmos_exceptions.CosmosResourceNotFoundError as e:
            raise ContainerNotFoundError(database_id, container_id) from e
        except (cosmos_exceptions.CosmosHttpResponseError, AzureError) as e:
            raise RemoteStoreError(
                "delete_container", str(e), status_code=getattr(e, "status_code", None)
            ) from e
        logger.info(f"Deleted container {container_id} from {database_id}")
        return StoreResponse(charge=self._last_charge(), status_code=204)

    def replace_container(
        self, database_id: str, descriptor: ContainerDescriptor
    ) -> StoreResponse:
        try:
            container = self._database(database_id).replace_container(
                descriptor.id,
                partition_key=PartitionKey(path=descriptor.partition_key_path),
                indexing_policy=descriptor.indexing_policy.to_dict(),
            )
            charge = self._last_charge()
            properties = container.read()
        except cosmos_exceptions.CosmosResourceNotFoundError as e:
            raise ContainerNotFoundError(database_id, descriptor.id) from e
        except (cosmos_exceptions.CosmosHttpResponseError, AzureError) as e:
            raise RemoteStoreError(
                "replace_container", str(e), status_code=getattr(e, "status_code", None)
            ) from e
        charge += self._last_charge()
        logger.info(f"Replaced definition of container {descriptor.id} in {database_id}")
        return StoreResponse(charge=charge, resource=ContainerDescriptor.from_dict(properties))

    # Documents

    def query_pages(
        self, database_id: str, container_id: str, query: str
    ) -> Iterator[QueryPage]:
        container = self._container(database_id, container_id)
        try:
            pages = container.query_items(query=query, enable_cross_partition_query=True).by_page()
            for page in pages:
                documents = list(page)
                yield QueryPage(documents, self._last_charge())
        except cosmos_exceptions.CosmosResourceNotFoundError as e:
            raise ContainerNotFoundError(database_id, container_id) from e
        except (cosmos_exceptions.CosmosHttpResponseError, AzureError) as e:
            raise RemoteStoreError(
                "query", str(e), status_code=getattr(e, "status_code", None)
            ) from e

    def _document_call(self, operation: str, document_id: Any, call) -> StoreResponse:
        """Run one per-document SDK call, mapping store rejections to a response."""
        try:
            resource = call()
        except cosmos_exceptions.CosmosHttpResponseError as e:
            return StoreResponse(
                success=False,
                charge=self._error_charge(e),
                status_code=e.status_code or 500,
                error_message=e.message,
            )
        except AzureError as e:
            raise RemoteStoreError(
                operation, str(e), document_id=None if document_id is None else str(document_id)
            ) from e
        return StoreResponse(charge=self._last_charge(), resource=resource)

    def upsert_document(
        self, database_id: str, container_id: str, document: Document
    ) -> StoreResponse:
        container = self._container(database_id, container_id)
        return self._document_call(
            "upsert", document.get("id"), lambda: container.upsert_item(body=document)
        )

    def create_document(
        self,
        database_id: str,
        container_id: str,
        document: Document,
        partition_key: PartitionKeyValue,
    ) -> StoreResponse:
        container = self._container(database_id, container_id)
        response = self._document_call(
            "create", document.get("id"), lambda: container.create_item(body=document)
        )
        if response.success:
            response.status_code = 201
        return response

    def replace_document(
        self,
        database_id: str,
        container_id: str,
        document_id: str,
        partition_key: PartitionKeyValue,
        document: Document,
    ) -> StoreResponse:
        container = self._container(database_id, container_id)
        return self._document_call(
            "replace", document_id, lambda: container.replace_item(item=document_id, body=document)
        )

    def delete_document(
        self,
        database_id: str,
        container_id: str,
        document_id: str,
        partition_key: PartitionKeyValue,
    ) -> StoreResponse:
        container = self._container(database_id, container_id)
        response = self._document_call(
            "delete",
            document_id,
            lambda: container.delete_item(item=document_id, partition_key=partition_key.value),
        )
        if response.success:
            response.status_code = 204
        return response
