"""
HybridSearchEngine — text, single-stage hybrid, and two-stage personalized search.

Mode is picked once per call from which vectors are present:
    no product vector            -> TEXT_ONLY
    product vector               -> VECTOR_FILTERED (index fused order is final)
    product vector + user vector -> USER_RERANKED

Two-stage ranking:
1. Candidates: index query with the product vector (k-NN) and the same
   filters, fetching exactly `top` hits.
2. Re-rank: cosine(user_vector, candidate combined embedding) descending,
   stage-1 score descending as tie-break.
The stage-1 envelope is never mutated; a new envelope carries the
reordered hits with the same total count and facets.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

from services.shopsearch.config import settings
from services.shopsearch.search.filters import SearchFilter
from services.shopsearch.search.gateway import SearchGateway
from services.shopsearch.search.similarity import cosine_similarity
from services.shopsearch.search.types import (
    FACET_FIELDS,
    WILDCARD,
    SearchHit,
    SearchMode,
    SearchResultEnvelope,
    VectorQuery,
)

logger = logging.getLogger(__name__)


def select_mode(product_vector: Sequence[float] | None, user_vector: Sequence[float] | None) -> SearchMode:
    if not product_vector:
        return SearchMode.TEXT_ONLY
    if not user_vector:
        return SearchMode.VECTOR_FILTERED
    return SearchMode.USER_RERANKED


def rerank_by_user(hits: Sequence[SearchHit], user_vector: Sequence[float]) -> list[SearchHit]:
    """Order hits by user similarity, then by index score. Same length as input."""
    scored = [
        dataclasses.replace(hit, user_score=cosine_similarity(user_vector, hit.document.combined_embedding))
        for hit in hits
    ]
    return sorted(scored, key=lambda h: (h.user_score, h.score), reverse=True)


class HybridSearchEngine:
    """
    Args:
        gateway: Document index.
        knn: Neighbour count for vector queries.
    """

    def __init__(self, gateway: SearchGateway, *, knn: int | None = None) -> None:
        self._gateway = gateway
        self._knn = knn or settings.search_knn

    async def search(
        self,
        text: str | None,
        *,
        filters: SearchFilter | None = None,
        top: int = 1000,
        include_facets: bool = True,
        product_vector: list[float] | None = None,
        user_vector: list[float] | None = None,
    ) -> SearchResultEnvelope:
        filters = filters or SearchFilter()
        mode = select_mode(product_vector, user_vector)
        logger.info(
            "Search mode=%s text=%r filter=%r top=%d", mode.value, text, filters.expression, top,
        )

        if mode == SearchMode.USER_RERANKED:
            return await self.two_stage_search(
                text, product_vector, user_vector, filters=filters, top=top, include_facets=include_facets,
            )
        if mode == SearchMode.VECTOR_FILTERED:
            return await self.hybrid_search(
                text, product_vector, filters=filters, top=top, include_facets=include_facets,
            )
        return await self.text_search(text, filters=filters, top=top, include_facets=include_facets)

    async def text_search(
        self,
        text: str | None,
        *,
        filters: SearchFilter | None = None,
        top: int = 1000,
        include_facets: bool = True,
    ) -> SearchResultEnvelope:
        envelope = await self._gateway.search(
            _query_text(text),
            filters or SearchFilter(),
            None,
            top=top,
            facets=FACET_FIELDS if include_facets else (),
        )
        return dataclasses.replace(envelope, mode=SearchMode.TEXT_ONLY)

    async def hybrid_search(
        self,
        text: str | None,
        product_vector: list[float],
        *,
        filters: SearchFilter | None = None,
        top: int = 1000,
        include_facets: bool = True,
    ) -> SearchResultEnvelope:
        envelope = await self._gateway.search(
            _query_text(text),
            filters or SearchFilter(),
            VectorQuery(vector=product_vector, k=self._knn),
            top=top,
            facets=FACET_FIELDS if include_facets else (),
        )
        return dataclasses.replace(envelope, mode=SearchMode.VECTOR_FILTERED)

    async def two_stage_search(
        self,
        text: str | None,
        product_vector: list[float],
        user_vector: list[float],
        *,
        filters: SearchFilter | None = None,
        top: int = 1000,
        include_facets: bool = True,
    ) -> SearchResultEnvelope:
        candidates = await self._gateway.search(
            _query_text(text),
            filters or SearchFilter(),
            VectorQuery(vector=product_vector, k=self._knn),
            top=top,
            facets=FACET_FIELDS if include_facets else (),
        )
        if not candidates.hits:
            logger.info("Two-stage search: no candidates, skipping re-rank")
            return dataclasses.replace(candidates, mode=SearchMode.USER_RERANKED)

        reranked = rerank_by_user(candidates.hits, user_vector)
        logger.info("Two-stage search: re-ranked %d candidates by user vector", len(reranked))
        return dataclasses.replace(candidates, hits=tuple(reranked), mode=SearchMode.USER_RERANKED)


def _query_text(text: str | None) -> str:
    return text.strip() if text and text.strip() else WILDCARD
