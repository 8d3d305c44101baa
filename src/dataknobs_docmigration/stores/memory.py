"""In-memory document store for testing and dry runs."""

from __future__ import annotations

import copy
import logging
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from dataknobs_config import ConfigurableBase

from ..exceptions import ContainerNotFoundError, RemoteStoreError
from ..indexing import ContainerDescriptor, IndexingPolicy
from ..partition_keys import resolve_partition_key
from .base import DocumentStore, QueryPage, StoreResponse

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from ..documents import Document
    from ..partition_keys import PartitionKeyValue


logger = logging.getLogger(__name__)

# Request units charged per call, loosely modelled on small documents
DEFAULT_CHARGES: dict[str, float] = {
    "database": 1.0,
    "read_container": 1.0,
    "create_container": 1.0,
    "delete_container": 1.0,
    "replace_container": 1.0,
    "query_page": 2.5,
    "create": 5.0,
    "upsert": 5.0,
    "replace": 10.0,
    "delete": 5.0,
    "failed": 1.0,
}

DEFAULT_PAGE_SIZE = 100

_SELECT_RE = re.compile(
    r"^\s*SELECT\s+\*\s+FROM\s+(?P<alias>\w+)(?:\s+WHERE\s+(?P<where>.+?))?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_CONDITION_RE = re.compile(
    r"^\s*(?P<alias>\w+)\.(?P<path>[\w.]+)\s*(?P<op>=|!=|<>|<=|>=|<|>)\s*(?P<literal>.+?)\s*$"
)
_AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)
_QUOTED_RE = re.compile(r"'([^']*)'|\"([^\"]*)\"")
_MISSING = object()


@dataclass
class _Condition:
    path: list[str]
    op: str
    literal: Any

    def matches(self, document: Document) -> bool:
        value: Any = document
        for part in self.path:
            if not isinstance(value, dict) or part not in value:
                return False
            value = value[part]

        if self.op in ("=", "!=", "<>"):
            equal = _same_kind(value, self.literal) and value == self.literal
            return equal if self.op == "=" else not equal

        if not _same_kind(value, self.literal) or isinstance(value, (bool, type(None))):
            return False
        return _COMPARATORS[self.op](value, self.literal)


_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    ">=": lambda a, b: a >= b,
}


def _same_kind(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool)
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return True
    return type(a) is type(b)


def _parse_literal(text: str) -> Any:
    quoted = _QUOTED_RE.fullmatch(text)
    if quoted:
        return quoted.group(1) if quoted.group(1) is not None else quoted.group(2)
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    if re.fullmatch(r"-?\d+\.\d*(?:[eE][-+]?\d+)?", text):
        return float(text)
    return _MISSING


def parse_query(query: str) -> list[_Condition]:
    """Parse the small SQL subset understood by the memory store.

    Supported: ``SELECT * FROM c [WHERE c.a.b <op> <literal> [AND ...]]`` with
    ``=``, ``!=``, ``<>``, ``<``, ``>``, ``<=``, ``>=`` and string, number,
    boolean or null literals.

    Raises:
        RemoteStoreError: With status 400 for anything else
    """
    match = _SELECT_RE.match(query)
    if not match:
        raise RemoteStoreError("query", f"unsupported query: {query!r}", status_code=400)

    alias = match.group("alias")
    where = match.group("where")
    if not where:
        return []

    conditions = []
    for clause in _AND_RE.split(where):
        condition = _CONDITION_RE.match(clause)
        if not condition or condition.group("alias") != alias:
            raise RemoteStoreError("query", f"unsupported condition: {clause!r}", status_code=400)
        literal = _parse_literal(condition.group("literal"))
        if literal is _MISSING:
            raise RemoteStoreError(
                "query", f"unsupported literal in condition: {clause!r}", status_code=400
            )
        conditions.append(_Condition(condition.group("path").split("."), condition.group("op"), literal))
    return conditions


@dataclass
class _MemoryContainer:
    descriptor: ContainerDescriptor
    documents: OrderedDict[tuple[Any, str], Document] = field(default_factory=OrderedDict)

    def key_for(self, document: Document) -> tuple[Any, str]:
        value = document.get(self.descriptor.partition_key_field)
        if isinstance(value, bytes) and len(value) == 1:
            value = value[0]
        return (value, str(document.get("id")))


class MemoryDocumentStore(DocumentStore, ConfigurableBase):
    """Document store kept entirely in process memory.

    Mirrors the behavior the migrators rely on: documents are unique per
    (partition key, id), queries are paginated, every call reports a charge,
    and per-document failures come back as unsuccessful responses.

    Configuration Options:
        page_size (int): Documents per query page (default: 100)
        charges (dict): Overrides for DEFAULT_CHARGES entries
        databases (dict): Optional seed data of the form
            ``{db_id: {container_id: {"partition_key": "/pk", "documents": [...]}}}``
    """

    def __init__(self, config: dict[str, Any] | None = None):
        config = config or {}
        self.config = config
        self.page_size = int(config.get("page_size", DEFAULT_PAGE_SIZE))
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.charges = {**DEFAULT_CHARGES, **config.get("charges", {})}
        self._databases: dict[str, dict[str, _MemoryContainer]] = {}
        self._lock = threading.RLock()

        for database_id, containers in (config.get("databases") or {}).items():
            self._seed(database_id, containers or {})

    @classmethod
    def from_config(cls, config: dict) -> MemoryDocumentStore:
        """Create from config dictionary."""
        return cls(config)

    def _seed(self, database_id: str, containers: dict[str, Any]) -> None:
        self.create_database_if_not_exists(database_id)
        for container_id, settings in containers.items():
            descriptor = ContainerDescriptor(container_id, settings.get("partition_key", "/id"))
            self.create_container_if_not_exists(database_id, descriptor)
            for document in settings.get("documents", []):
                self.upsert_document(database_id, container_id, document)

    def _container(self, database_id: str, container_id: str) -> _MemoryContainer:
        if database_id not in self._databases:
            raise ContainerNotFoundError(database_id)
        containers = self._databases[database_id]
        if container_id not in containers:
            raise ContainerNotFoundError(database_id, container_id)
        return containers[container_id]

    def _failed(self, status_code: int, message: str) -> StoreResponse:
        return StoreResponse(
            success=False,
            charge=self.charges["failed"],
            status_code=status_code,
            error_message=message,
        )

    # Databases

    def create_database_if_not_exists(self, database_id: str) -> StoreResponse:
        with self._lock:
            created = database_id not in self._databases
            self._databases.setdefault(database_id, {})
        if created:
            logger.info(f"Created database {database_id}")
        return StoreResponse(charge=self.charges["database"], status_code=201 if created else 200)

    def read_database(self, database_id: str) -> StoreResponse:
        with self._lock:
            if database_id not in self._databases:
                raise ContainerNotFoundError(database_id)
        return StoreResponse(charge=self.charges["database"])

    def delete_database(self, database_id: str) -> StoreResponse:
        with self._lock:
            if database_id not in self._databases:
                raise ContainerNotFoundError(database_id)
            del self._databases[database_id]
        logger.info(f"Deleted database {database_id}")
        return StoreResponse(charge=self.charges["database"], status_code=204)

    # Containers

    def read_container(self, database_id: str, container_id: str) -> StoreResponse:
        with self._lock:
            container = self._container(database_id, container_id)
            descriptor = container.descriptor.copy()
        return StoreResponse(charge=self.charges["read_container"], resource=descriptor)

    def create_container_if_not_exists(
        self, database_id: str, descriptor: ContainerDescriptor
    ) -> StoreResponse:
        with self._lock:
            if database_id not in self._databases:
                raise ContainerNotFoundError(database_id)
            containers = self._databases[database_id]
            existing = containers.get(descriptor.id)
            if existing is not None:
                if existing.descriptor.partition_key_path != descriptor.partition_key_path:
                    raise RemoteStoreError(
                        "create_container",
                        f"container '{descriptor.id}' exists with partition key "
                        f"'{existing.descriptor.partition_key_path}'",
                        status_code=409,
                    )
                return StoreResponse(
                    charge=self.charges["create_container"],
                    status_code=200,
                    resource=existing.descriptor.copy(),
                )
            stored = ContainerDescriptor(
                descriptor.id,
                descriptor.partition_key_path,
                descriptor.indexing_policy.copy() if descriptor.indexing_policy else IndexingPolicy(),
            )
            containers[descriptor.id] = _MemoryContainer(stored)
        logger.info(
            f"Created container {descriptor.id} in {database_id} "
            f"with partition key {descriptor.partition_key_path}"
        )
        return StoreResponse(
            charge=self.charges["create_container"], status_code=201, resource=stored.copy()
        )

    def delete_container(self, database_id: str, container_id: str) -> StoreResponse:
        with self._lock:
            self._container(database_id, container_id)
            del self._databases[database_id][container_id]
        logger.info(f"Deleted container {container_id} from {database_id}")
        return StoreResponse(charge=self.charges["delete_container"], status_code=204)

    def replace_container(
        self, database_id: str, descriptor: ContainerDescriptor
    ) -> StoreResponse:
        with self._lock:
            container = self._container(database_id, descriptor.id)
            if container.descriptor.partition_key_path != descriptor.partition_key_path:
                raise RemoteStoreError(
                    "replace_container",
                    "partition key of an existing container cannot be changed",
                    status_code=400,
                )
            for index in descriptor.indexing_policy.composite_indexes:
                if len(index) < 2:
                    raise RemoteStoreError(
                        "replace_container",
                        "composite index must contain at least two paths",
                        status_code=400,
                    )
            container.descriptor = descriptor.copy()
            stored = container.descriptor.copy()
        logger.info(f"Replaced definition of container {descriptor.id} in {database_id}")
        return StoreResponse(charge=self.charges["replace_container"], resource=stored)

    # Documents

    def query_pages(
        self, database_id: str, container_id: str, query: str
    ) -> Iterator[QueryPage]:
        conditions = parse_query(query)
        with self._lock:
            container = self._container(database_id, container_id)
            matches = [
                copy.deepcopy(document)
                for document in container.documents.values()
                if all(condition.matches(document) for condition in conditions)
            ]

        if not matches:
            yield QueryPage([], self.charges["query_page"])
            return

        for start in range(0, len(matches), self.page_size):
            yield QueryPage(matches[start:start + self.page_size], self.charges["query_page"])

    def upsert_document(
        self, database_id: str, container_id: str, document: Document
    ) -> StoreResponse:
        if not document.get("id"):
            return self._failed(400, "The input content is invalid because the required property 'id' is missing.")
        with self._lock:
            container = self._container(database_id, container_id)
            key = container.key_for(document)
            created = key not in container.documents
            container.documents[key] = copy.deepcopy(dict(document))
        logger.debug(f"Upserted document {key[1]} into {container_id}")
        return StoreResponse(
            charge=self.charges["upsert"],
            status_code=201 if created else 200,
            resource=copy.deepcopy(dict(document)),
        )

    def create_document(
        self,
        database_id: str,
        container_id: str,
        document: Document,
        partition_key: PartitionKeyValue,
    ) -> StoreResponse:
        if not document.get("id"):
            return self._failed(400, "The input content is invalid because the required property 'id' is missing.")
        with self._lock:
            container = self._container(database_id, container_id)
            mismatch = self._partition_key_mismatch(container, document, partition_key)
            if mismatch:
                return self._failed(400, mismatch)
            key = container.key_for(document)
            if key in container.documents:
                return self._failed(409, f"Entity with the specified id '{key[1]}' already exists in the system.")
            container.documents[key] = copy.deepcopy(dict(document))
        logger.debug(f"Created document {key[1]} in {container_id}")
        return StoreResponse(charge=self.charges["create"], status_code=201)

    def replace_document(
        self,
        database_id: str,
        container_id: str,
        document_id: str,
        partition_key: PartitionKeyValue,
        document: Document,
    ) -> StoreResponse:
        with self._lock:
            container = self._container(database_id, container_id)
            if str(document.get("id")) != document_id:
                return self._failed(400, "Document id does not match the id of the replaced document.")
            mismatch = self._partition_key_mismatch(container, document, partition_key)
            if mismatch:
                return self._failed(400, mismatch)
            key = (partition_key.value, document_id)
            if key not in container.documents:
                return self._failed(404, f"Entity with the specified id '{document_id}' does not exist in the system.")
            container.documents[key] = copy.deepcopy(dict(document))
        logger.debug(f"Replaced document {document_id} in {container_id}")
        return StoreResponse(charge=self.charges["replace"])

    def delete_document(
        self,
        database_id: str,
        container_id: str,
        document_id: str,
        partition_key: PartitionKeyValue,
    ) -> StoreResponse:
        with self._lock:
            container = self._container(database_id, container_id)
            key = (partition_key.value, document_id)
            if key not in container.documents:
                return self._failed(404, f"Entity with the specified id '{document_id}' does not exist in the system.")
            del container.documents[key]
        logger.debug(f"Deleted document {document_id} from {container_id}")
        return StoreResponse(charge=self.charges["delete"], status_code=204)

    @staticmethod
    def _partition_key_mismatch(
        container: _MemoryContainer, document: Document, partition_key: PartitionKeyValue
    ) -> str | None:
        field_name = container.descriptor.partition_key_field
        if field_name not in document:
            return f"Document is missing partition key field '{field_name}'."
        if resolve_partition_key(document[field_name]) != partition_key:
            return "PartitionKey extracted from document doesn't match the one specified in the header."
        return None

    def count(self, database_id: str, container_id: str) -> int:
        """Number of documents currently stored in a container."""
        with self._lock:
            return len(self._container(database_id, container_id).documents)
