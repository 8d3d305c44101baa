"""Container definitions and indexing policies.

The shapes mirror the store's JSON representation of a container::

    {
        "id": "people",
        "partitionKey": {"paths": ["/CountryCode"], "kind": "Hash"},
        "indexingPolicy": {
            "indexingMode": "consistent",
            "automatic": true,
            "includedPaths": [{"path": "/*"}],
            "excludedPaths": [{"path": "/\\"_etag\\"/?"}],
            "compositeIndexes": [[{"path": "/a", "order": "ascending"}, ...]]
        }
    }
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import InvalidArgumentError
from .partition_keys import partition_key_field

DEFAULT_INCLUDED_PATHS = ("/*",)
DEFAULT_EXCLUDED_PATHS = ('/"_etag"/?',)


class SortOrder(str, Enum):
    """Sort order of one member of a composite index."""

    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class CompositePath:
    """One (path, order) member of a composite index."""

    path: str
    order: SortOrder = SortOrder.ASCENDING

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "order": self.order.value}

    @classmethod
    def coerce(cls, value: CompositePath | Mapping[str, Any] | Sequence[Any] | str) -> CompositePath:
        """Build from a CompositePath, ``{"path", "order"}`` mapping, ``(path, order)`` pair or path."""
        if isinstance(value, CompositePath):
            return value
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, Mapping):
            return cls(value["path"], SortOrder(value.get("order", SortOrder.ASCENDING)))
        path, order = value
        return cls(path, SortOrder(order))


CompositeIndex = list[CompositePath]


def coerce_paths(paths: Iterable[str | Mapping[str, Any]], argument: str) -> list[str]:
    """Normalize included/excluded path input (strings or ``{"path": ...}`` mappings)."""
    if isinstance(paths, (str, bytes)):
        raise InvalidArgumentError(argument, "expected a collection of paths, got a single string")
    result = []
    for path in paths:
        value = path["path"] if isinstance(path, Mapping) else path
        if not isinstance(value, str) or not value:
            raise InvalidArgumentError(argument, f"invalid path {path!r}")
        result.append(value)
    return result


def coerce_composite_indexes(indexes: Iterable[Iterable[Any]]) -> list[CompositeIndex]:
    """Normalize composite index input, enforcing at least two members per index."""
    result = []
    for index in indexes:
        members = [CompositePath.coerce(member) for member in index]
        if len(members) < 2:
            raise InvalidArgumentError(
                "composite_indexes", "each composite index needs at least two paths"
            )
        result.append(members)
    return result


def _contains_all(existing: CompositeIndex, candidate: CompositeIndex) -> bool:
    # Every (path, order) of the candidate appears somewhere in the existing index
    return all(
        any(member.path == other.path and member.order == other.order for other in existing)
        for member in candidate
    )


@dataclass
class IndexingPolicy:
    """Included/excluded path patterns plus composite index definitions."""

    included_paths: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDED_PATHS))
    excluded_paths: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_PATHS))
    composite_indexes: list[CompositeIndex] = field(default_factory=list)
    indexing_mode: str = "consistent"
    automatic: bool = True

    def copy(self) -> IndexingPolicy:
        return copy.deepcopy(self)

    def has_composite_index(self, candidate: CompositeIndex) -> bool:
        """Check whether any existing composite index covers every member of ``candidate``."""
        return any(_contains_all(existing, candidate) for existing in self.composite_indexes)

    def replace_sections(
        self,
        included_paths: list[str] | None = None,
        excluded_paths: list[str] | None = None,
        composite_indexes: list[CompositeIndex] | None = None,
    ) -> IndexingPolicy:
        """Return a copy with each supplied section cleared and replaced.

        Sections passed as None are kept as they are.
        """
        policy = self.copy()
        if included_paths is not None:
            policy.included_paths = list(included_paths)
        if excluded_paths is not None:
            policy.excluded_paths = list(excluded_paths)
        if composite_indexes is not None:
            policy.composite_indexes = [list(index) for index in composite_indexes]
        return policy

    def merge(
        self,
        included_paths: list[str] | None = None,
        excluded_paths: list[str] | None = None,
        composite_indexes: list[CompositeIndex] | None = None,
    ) -> bool:
        """Add paths and composite indexes that are not already present.

        Composite indexes are compared against the indexes present before the
        merge started. When there are no composite indexes yet, every supplied
        index is added without the duplicate check.

        Returns:
            True if anything was added
        """
        changed = False

        for path in included_paths or []:
            if path not in self.included_paths:
                self.included_paths.append(path)
                changed = True

        for path in excluded_paths or []:
            if path not in self.excluded_paths:
                self.excluded_paths.append(path)
                changed = True

        if composite_indexes is not None:
            if not self.composite_indexes:
                self.composite_indexes.extend(list(index) for index in composite_indexes)
                changed = changed or bool(composite_indexes)
            else:
                existing = list(self.composite_indexes)
                for index in composite_indexes:
                    if any(_contains_all(current, index) for current in existing):
                        continue
                    self.composite_indexes.append(list(index))
                    changed = True

        return changed

    def to_dict(self) -> dict[str, Any]:
        return {
            "indexingMode": self.indexing_mode,
            "automatic": self.automatic,
            "includedPaths": [{"path": path} for path in self.included_paths],
            "excludedPaths": [{"path": path} for path in self.excluded_paths],
            "compositeIndexes": [
                [member.to_dict() for member in index] for index in self.composite_indexes
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> IndexingPolicy:
        if not data:
            return cls()
        return cls(
            included_paths=[item["path"] for item in data.get("includedPaths", [])],
            excluded_paths=[item["path"] for item in data.get("excludedPaths", [])],
            composite_indexes=[
                [CompositePath.coerce(member) for member in index]
                for index in data.get("compositeIndexes", [])
            ],
            indexing_mode=data.get("indexingMode", "consistent"),
            automatic=data.get("automatic", True),
        )


@dataclass
class ContainerDescriptor:
    """Definition of a container: id, partition-key path and indexing policy."""

    id: str
    partition_key_path: str
    indexing_policy: IndexingPolicy = field(default_factory=IndexingPolicy)

    @property
    def partition_key_field(self) -> str:
        """Top-level document field that holds the partition-key value."""
        return partition_key_field(self.partition_key_path)

    def copy(self) -> ContainerDescriptor:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "partitionKey": {"paths": [self.partition_key_path], "kind": "Hash"},
            "indexingPolicy": self.indexing_policy.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContainerDescriptor:
        partition_key = data.get("partitionKey") or {}
        paths = partition_key.get("paths") or ["/id"]
        return cls(
            id=data["id"],
            partition_key_path=paths[0],
            indexing_policy=IndexingPolicy.from_dict(data.get("indexingPolicy")),
        )
