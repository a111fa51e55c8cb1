"""
Qdrant-backed product index (SearchGateway implementation).

Collection layout:
- named vectors `name`, `description`, `reviews`, `combined` (cosine)
- keyword payload indexes on `category` / `brand` (filters + facets)
- multilingual full-text indexes on `name` / `description` (lexical match)

Query mapping:
- text only: scroll over filter AND lexical match, count for the total
- hybrid: query_points with two prefetches fused by RRF, the k-NN
  neighbours under the filter plus the lexical matches ranked by vector
- facets: facet API over filter AND lexical match, never the vector
"""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from collections.abc import Sequence

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    Fusion,
    FusionQuery,
    MatchText,
    PayloadSchemaType,
    PointStruct,
    Prefetch,
    TextIndexParams,
    TextIndexType,
    TokenizerType,
    UpdateStatus,
    VectorParams,
)

from services.shopsearch.catalog.documents import COMBINED_VECTOR, ProductDocument
from services.shopsearch.config import settings
from services.shopsearch.search.filters import SearchFilter
from services.shopsearch.search.gateway import IndexUploadError
from services.shopsearch.search.types import (
    WILDCARD,
    FacetValue,
    IndexSchema,
    SearchHit,
    SearchMode,
    SearchResultEnvelope,
    VectorQuery,
)

logger = logging.getLogger(__name__)

LEXICAL_FIELDS = ("name", "description")
FACET_LIMIT = 100
UPSERT_BATCH_SIZE = 64


def point_id(product_id: str) -> int | str:
    """Qdrant ids are unsigned ints or UUIDs; map other product ids to uuid5."""
    if product_id.isdigit():
        return int(product_id)
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"product:{product_id}"))


def lexical_filter(query_text: str | None) -> Filter | None:
    """Full-text match on any lexical field; None for blank or wildcard text."""
    text = (query_text or "").strip()
    if not text or text == WILDCARD:
        return None
    return Filter(should=[
        FieldCondition(key=field_name, match=MatchText(text=text))
        for field_name in LEXICAL_FIELDS
    ])


def combine_filters(search_filter: SearchFilter, lexical: Filter | None) -> Filter | None:
    must: list = list(search_filter.conditions())
    if lexical is not None:
        must.append(lexical)
    return Filter(must=must) if must else None


class QdrantProductIndex:
    """Async Qdrant client over the products collection."""

    def __init__(
        self,
        collection_name: str | None = None,
        *,
        client: AsyncQdrantClient | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self._collection = collection_name or settings.products_collection
        self._client = client
        self._timeout_s = timeout_s if timeout_s is not None else settings.search_timeout_s

    async def _get_client(self) -> AsyncQdrantClient:
        if self._client is None:
            self._client = AsyncQdrantClient(
                url=settings.qdrant_url,
                api_key=settings.qdrant_api_key or None,
                timeout=max(1, math.ceil(self._timeout_s)),
            )
        return self._client

    @property
    def collection_name(self) -> str:
        return self._collection

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def search(
        self,
        query_text: str,
        search_filter: SearchFilter,
        vector_query: VectorQuery | None = None,
        *,
        top: int,
        facets: Sequence[str] = (),
    ) -> SearchResultEnvelope:
        """
        Filtered search, lexical-only or fused with a k-NN leg.

        total_count is the size of the filter + lexical population. In hybrid
        mode the k-NN prefetch only honours the filter, so fused hits may
        include neighbours outside the lexical match; the total is then
        raised to the number of hits returned, never below it. Facets always
        describe the filter + lexical population.
        """
        client = await self._get_client()
        lexical = lexical_filter(query_text)
        matching = combine_filters(search_filter, lexical)

        logger.debug(
            "Qdrant search collection=%s text=%r filter=%r knn=%s top=%d",
            self._collection, query_text, search_filter.expression,
            vector_query.k if vector_query else None, top,
        )

        if vector_query is None:
            hits = await self._scroll(client, matching, top)
            mode = SearchMode.TEXT_ONLY
        else:
            hits = await self._hybrid(client, search_filter, matching, vector_query, top)
            mode = SearchMode.VECTOR_FILTERED

        total = await self.count_matching(matching)
        facet_values = await self._facets(client, matching, facets) if facets else {}

        return SearchResultEnvelope(
            hits=tuple(hits),
            total_count=max(total, len(hits)),
            facets=facet_values,
            mode=mode,
        )

    async def _scroll(self, client: AsyncQdrantClient, matching: Filter | None, top: int) -> list[SearchHit]:
        points, _next_offset = await asyncio.wait_for(
            client.scroll(
                collection_name=self._collection,
                scroll_filter=matching,
                limit=top,
                with_payload=True,
                with_vectors=[COMBINED_VECTOR],
            ),
            timeout=self._timeout_s,
        )
        return [self._to_hit(point, 0.0) for point in points]

    async def _hybrid(
        self,
        client: AsyncQdrantClient,
        search_filter: SearchFilter,
        matching: Filter | None,
        vector_query: VectorQuery,
        top: int,
    ) -> list[SearchHit]:
        prefetch = [
            Prefetch(
                query=vector_query.vector,
                using=vector_query.field,
                filter=search_filter.to_qdrant(),
                limit=vector_query.k,
            ),
            Prefetch(
                query=vector_query.vector,
                using=vector_query.field,
                filter=matching,
                limit=top,
            ),
        ]
        response = await asyncio.wait_for(
            client.query_points(
                collection_name=self._collection,
                prefetch=prefetch,
                query=FusionQuery(fusion=Fusion.RRF),
                limit=top,
                with_payload=True,
                with_vectors=[COMBINED_VECTOR],
            ),
            timeout=self._timeout_s,
        )
        return [self._to_hit(point, point.score or 0.0) for point in response.points]

    async def _facets(
        self,
        client: AsyncQdrantClient,
        matching: Filter | None,
        facets: Sequence[str],
    ) -> dict[str, tuple[FacetValue, ...]]:
        result: dict[str, tuple[FacetValue, ...]] = {}
        for key in facets:
            response = await asyncio.wait_for(
                client.facet(
                    collection_name=self._collection,
                    key=key,
                    facet_filter=matching,
                    limit=FACET_LIMIT,
                    exact=True,
                ),
                timeout=self._timeout_s,
            )
            result[key] = tuple(
                FacetValue(value=str(hit.value), count=hit.count) for hit in response.hits
            )
        return result

    @staticmethod
    def _to_hit(point, score: float) -> SearchHit:
        vectors = point.vector if isinstance(point.vector, dict) else {}
        return SearchHit(
            document=ProductDocument.from_payload(point.payload or {}, vectors),
            score=float(score),
        )

    async def count_matching(self, matching: Filter | None) -> int:
        client = await self._get_client()
        result = await asyncio.wait_for(
            client.count(collection_name=self._collection, count_filter=matching, exact=True),
            timeout=self._timeout_s,
        )
        return result.count

    async def count(self, search_filter: SearchFilter | None = None) -> int:
        return await self.count_matching(search_filter.to_qdrant() if search_filter else None)

    # ------------------------------------------------------------------
    # Index management
    # ------------------------------------------------------------------

    async def index_exists(self, name: str | None = None) -> bool:
        client = await self._get_client()
        return await client.collection_exists(collection_name=name or self._collection)

    async def create_index(self, schema: IndexSchema) -> None:
        client = await self._get_client()
        await client.create_collection(
            collection_name=schema.name,
            vectors_config={
                field_name: VectorParams(size=schema.dimensions, distance=Distance.COSINE)
                for field_name in schema.vector_fields
            },
        )
        for field_name in schema.keyword_fields:
            await client.create_payload_index(
                collection_name=schema.name,
                field_name=field_name,
                field_schema=PayloadSchemaType.KEYWORD,
            )
        for field_name in schema.text_fields:
            await client.create_payload_index(
                collection_name=schema.name,
                field_name=field_name,
                field_schema=TextIndexParams(
                    type=TextIndexType.TEXT,
                    tokenizer=TokenizerType.MULTILINGUAL,
                    lowercase=True,
                ),
            )
        logger.info("Created collection %s (%d dims)", schema.name, schema.dimensions)

    async def delete_index(self, name: str | None = None) -> None:
        client = await self._get_client()
        await client.delete_collection(collection_name=name or self._collection)
        logger.info("Deleted collection %s", name or self._collection)

    async def bulk_upsert(self, documents: Sequence[ProductDocument]) -> int:
        """Upsert in batches. Raises IndexUploadError if a batch is not completed."""
        client = await self._get_client()
        uploaded = 0
        for start in range(0, len(documents), UPSERT_BATCH_SIZE):
            batch = documents[start:start + UPSERT_BATCH_SIZE]
            points = [
                PointStruct(id=point_id(doc.id), vector=doc.vectors(), payload=doc.to_payload())
                for doc in batch
            ]
            result = await client.upsert(collection_name=self._collection, points=points, wait=True)
            if result.status != UpdateStatus.COMPLETED:
                raise IndexUploadError(
                    f"upsert of {len(points)} documents to {self._collection} "
                    f"finished with status {result.status}"
                )
            uploaded += len(points)
        logger.info("Upserted %d documents into %s", uploaded, self._collection)
        return uploaded

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
