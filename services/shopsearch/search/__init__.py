"""
services.shopsearch.search — document index access and ranking.

Usage:
    from services.shopsearch.search import HybridSearchEngine, QdrantProductIndex, SearchFilter

    engine = HybridSearchEngine(QdrantProductIndex())
    envelope = await engine.search("防曬", filters=SearchFilter(category="美妝"), top=50)
"""

from __future__ import annotations

from services.shopsearch.search.engine import HybridSearchEngine, rerank_by_user, select_mode
from services.shopsearch.search.filters import SearchFilter, escape_literal
from services.shopsearch.search.gateway import IndexUploadError, SearchGateway
from services.shopsearch.search.qdrant_index import QdrantProductIndex
from services.shopsearch.search.similarity import cosine_similarity
from services.shopsearch.search.types import (
    FacetValue,
    IndexSchema,
    SearchHit,
    SearchMode,
    SearchResultEnvelope,
    VectorQuery,
)

__all__ = [
    "HybridSearchEngine",
    "rerank_by_user",
    "select_mode",
    "SearchFilter",
    "escape_literal",
    "IndexUploadError",
    "SearchGateway",
    "QdrantProductIndex",
    "cosine_similarity",
    "FacetValue",
    "IndexSchema",
    "SearchHit",
    "SearchMode",
    "SearchResultEnvelope",
    "VectorQuery",
]
