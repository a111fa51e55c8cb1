"""
SearchGateway — the document index contract the engine depends on.

QdrantProductIndex is the production implementation; tests substitute
AsyncMock objects with the same surface.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from services.shopsearch.catalog.documents import ProductDocument
from services.shopsearch.search.filters import SearchFilter
from services.shopsearch.search.types import IndexSchema, SearchResultEnvelope, VectorQuery


class IndexUploadError(RuntimeError):
    """The index rejected some or all documents in a bulk upsert."""


class SearchGateway(Protocol):
    async def search(
        self,
        query_text: str,
        search_filter: SearchFilter,
        vector_query: VectorQuery | None = None,
        *,
        top: int,
        facets: Sequence[str] = (),
    ) -> SearchResultEnvelope:
        """Lexical (+ optional k-NN) query. Facets ignore the vector query."""
        ...

    async def count(self, search_filter: SearchFilter | None = None) -> int: ...

    async def index_exists(self, name: str | None = None) -> bool: ...

    async def create_index(self, schema: IndexSchema) -> None: ...

    async def delete_index(self, name: str | None = None) -> None: ...

    async def bulk_upsert(self, documents: Sequence[ProductDocument]) -> int: ...

    async def close(self) -> None: ...
