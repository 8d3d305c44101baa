"""Nested document navigation and in-place field mutation.

A document is a plain ``dict`` decoded from the store's JSON: string keys mapped to
strings, numbers, booleans, ``None``, nested documents or lists of those. The helpers
here never talk to a store; callers persist the mutated document afterwards.

Paths name the *container* of a field, not the field itself. ``descend`` consumes
every segment it is given and returns the document found there, so callers pass the
leaf name separately:

```python
doc = {"id": "1", "address": {"geo": {"lat": 1.0}}}
add_field(doc, "address.geo", "lng", 2.0)
doc["address"]["geo"]
# {'lat': 1.0, 'lng': 2.0}
descend(doc, [])  # the root itself
```
"""

from __future__ import annotations

from collections.abc import MutableMapping, Sequence
from typing import Any, Dict

from .exceptions import FieldAlreadyExistsError, InvalidArgumentError, InvalidPathError

Document = Dict[str, Any]

PathLike = str | Sequence[str] | None


def split_path(path: PathLike) -> list[str]:
    """Normalize a dotted string or a sequence of segments into a list.

    ``None``, ``""`` and ``[]`` all mean the document root.

    Raises:
        InvalidArgumentError: If any segment is empty (e.g. ``"a..b"``)
    """
    if path is None:
        return []
    segments = (path.split(".") if path else []) if isinstance(path, str) else list(path)
    for segment in segments:
        if not isinstance(segment, str) or not segment:
            raise InvalidArgumentError("path", f"empty or non-string segment in {path!r}")
    return segments


def descend(root: Document, path: PathLike) -> Document:
    """Walk ``path`` through nested documents and return the document found there.

    Args:
        root: Document to start from
        path: Container path; empty means ``root``

    Returns:
        The nested document at ``path``

    Raises:
        InvalidArgumentError: If ``root`` is not a document
        InvalidPathError: If a segment is missing or does not hold a document
    """
    if not isinstance(root, MutableMapping):
        raise InvalidArgumentError("document", f"expected a mapping, got {type(root).__name__}")
    segments = split_path(path)
    return _descend(root, segments, 0)


def _descend(current: Document, segments: list[str], index: int) -> Document:
    if index == len(segments):
        return current

    segment = segments[index]
    if segment not in current:
        raise InvalidPathError(
            segments, segment,
            f"Invalid property path '{'.'.join(segments)}': '{segment}' is not present",
        )
    child = current[segment]
    if not isinstance(child, MutableMapping):
        raise InvalidPathError(segments, segment)
    return _descend(child, segments, index + 1)


def add_field(doc: Document, path: PathLike, name: str, value: Any) -> None:
    """Insert ``name`` -> ``value`` into the document at ``path``.

    This is an insert, not an upsert: an existing field is never overwritten.

    Raises:
        FieldAlreadyExistsError: If ``name`` already exists at ``path``; the
            document is left unmodified
        InvalidPathError: If ``path`` cannot be navigated
    """
    if not name:
        raise InvalidArgumentError("name", "field name must not be empty")
    target = descend(doc, path)
    if name in target:
        raise FieldAlreadyExistsError(name, _document_id(doc))
    target[name] = value


def remove_field(doc: Document, path: PathLike, name: str) -> bool:
    """Remove ``name`` from the document at ``path`` if present.

    Returns:
        True if the field was removed, False if it was absent
    """
    if not name:
        raise InvalidArgumentError("name", "field name must not be empty")
    target = descend(doc, path)
    if name not in target:
        return False
    del target[name]
    return True


def _document_id(doc: Document) -> str | None:
    doc_id = doc.get("id")
    return None if doc_id is None else str(doc_id)
