"""Paged query execution with request-charge accounting."""

from __future__ import annotations

import logging
from typing import NamedTuple, TYPE_CHECKING

from .cancellation import check_cancelled

if TYPE_CHECKING:
    from .cancellation import CancellationToken
    from .documents import Document
    from .stores.base import DocumentStore


logger = logging.getLogger(__name__)

DEFAULT_QUERY = "SELECT * FROM c"


class QueryResult(NamedTuple):
    """Every document returned by a query and the summed charge of all pages."""

    documents: list[Document]
    charge: float


def run_query(
    store: DocumentStore,
    database_id: str,
    container_id: str,
    query: str | None = None,
    cancellation: CancellationToken | None = None,
) -> QueryResult:
    """Drive a paginated query to completion.

    Pages are requested one at a time until the store reports no more; the
    full result set is buffered in memory.

    Args:
        store: Store client
        database_id: Database holding the container
        container_id: Container to query
        query: Query text, passed to the store verbatim (default: all documents)
        cancellation: Optional token checked before each page request

    Returns:
        QueryResult with all documents and the total charge

    Raises:
        MigrationCancelledError: If cancellation is requested between pages
    """
    query = query or DEFAULT_QUERY
    documents: list[Document] = []
    charge = 0.0
    pages = iter(store.query_pages(database_id, container_id, query))
    try:
        while True:
            check_cancelled(cancellation, "query", len(documents))
            page = next(pages, None)
            if page is None:
                break
            documents.extend(page.documents)
            charge += page.charge
    finally:
        close = getattr(pages, "close", None)
        if close is not None:
            close()

    logger.debug(
        f"Query on {database_id}/{container_id} returned {len(documents)} documents "
        f"for {charge:g} RUs"
    )
    return QueryResult(documents, charge)
