"""Partition key resolution.

Documents are routed by the value found at the container's partition-key path.
Only a small set of scalar types can be used as a partition key; anything else is
rejected rather than being converted to its string form.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import InvalidArgumentError, UnsupportedTypeError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class PartitionKeyKind(Enum):
    """Tag for the scalar type held by a PartitionKeyValue."""

    STRING = "string"
    INTEGER = "integer"
    DOUBLE = "double"
    BYTE = "byte"


@dataclass(frozen=True)
class PartitionKeyValue:
    """A typed partition-key value."""

    kind: PartitionKeyKind
    value: str | int | float

    def __str__(self) -> str:
        return str(self.value)


def resolve_partition_key(value: Any) -> PartitionKeyValue:
    """Derive a typed partition-key value from a raw scalar.

    Supported inputs are ``str``, ``int`` within the signed 64-bit range,
    ``float`` and a single-byte ``bytes`` object. Booleans are rejected even
    though they are ``int`` subclasses.

    Args:
        value: Raw value read from a document

    Returns:
        PartitionKeyValue tagged with the detected kind

    Raises:
        UnsupportedTypeError: If the value's type is outside the supported set
    """
    if isinstance(value, bool):
        raise UnsupportedTypeError(value)
    if isinstance(value, str):
        return PartitionKeyValue(PartitionKeyKind.STRING, value)
    if isinstance(value, int):
        if not INT64_MIN <= value <= INT64_MAX:
            raise UnsupportedTypeError(value)
        return PartitionKeyValue(PartitionKeyKind.INTEGER, value)
    if isinstance(value, float):
        return PartitionKeyValue(PartitionKeyKind.DOUBLE, value)
    if isinstance(value, bytes) and len(value) == 1:
        return PartitionKeyValue(PartitionKeyKind.BYTE, value[0])
    raise UnsupportedTypeError(value)


def partition_key_path(field_name: str) -> str:
    """Build the store path for a top-level partition-key field.

    >>> partition_key_path("CountryCode")
    '/CountryCode'
    """
    if not field_name or not field_name.strip("/"):
        raise InvalidArgumentError("partition_key", "must not be empty")
    return "/" + field_name.lstrip("/")


def partition_key_field(path: str) -> str:
    """Return the top-level field name addressed by a partition-key path."""
    return path[1:] if path.startswith("/") else path
