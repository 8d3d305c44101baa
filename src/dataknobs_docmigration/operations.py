"""Reversible field operations applied to documents in place.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .documents import Document, add_field, descend, remove_field, split_path


@dataclass
class FieldOperation(ABC):
    """Base class for in-place document operations.

    ``apply`` reports whether the document changed so that callers can skip
    writing documents that were left untouched.
    """

    @abstractmethod
    def apply(self, document: Document) -> bool:
        """Apply this operation to a document.

        Args:
            document: Document to mutate in place

        Returns:
            True if the document was modified
        """

    @abstractmethod
    def reverse(self, document: Document) -> bool:
        """Undo this operation on a document.

        Args:
            document: Document to mutate in place

        Returns:
            True if the document was modified
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


@dataclass
class AddField(FieldOperation):
    """Insert a new field, failing if it already exists."""

    field_name: str
    value: Any
    path: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.path = split_path(self.path)

    def apply(self, document: Document) -> bool:
        """Add the field; raises FieldAlreadyExistsError on conflict."""
        add_field(document, self.path, self.field_name, copy.deepcopy(self.value))
        return True

    def reverse(self, document: Document) -> bool:
        """Remove the added field."""
        return remove_field(document, self.path, self.field_name)

    def __repr__(self) -> str:
        return f"AddField(path='{'.'.join(self.path)}', field_name='{self.field_name}', value={self.value!r})"


@dataclass
class RemoveField(FieldOperation):
    """Remove a field if present.

    With ``store_removed`` the removed values are kept until ``reverse``
    restores them. Ids are only unique within a partition, so pass
    ``partition_key_field`` when documents from several partitions go
    through the same operation.
    """

    field_name: str
    path: list[str] = field(default_factory=list)
    store_removed: bool = False
    partition_key_field: str | None = None

    def __post_init__(self) -> None:
        self.path = split_path(self.path)
        self._removed: dict[Any, Any] = {}

    def apply(self, document: Document) -> bool:
        """Remove the field; absent fields are a no-op."""
        if self.store_removed:
            parent = descend(document, self.path)
            if self.field_name in parent:
                self._removed[self._key(document)] = parent[self.field_name]
        return remove_field(document, self.path, self.field_name)

    def reverse(self, document: Document) -> bool:
        """Restore the removed value if it was stored."""
        key = self._key(document)
        if not self.store_removed or key not in self._removed:
            return False
        add_field(document, self.path, self.field_name, self._removed.pop(key))
        return True

    def _key(self, document: Document) -> tuple[Any, Any]:
        partition = document.get(self.partition_key_field) if self.partition_key_field else None
        return (partition, document.get("id"))

    def __repr__(self) -> str:
        return f"RemoveField(path='{'.'.join(self.path)}', field_name='{self.field_name}')"

