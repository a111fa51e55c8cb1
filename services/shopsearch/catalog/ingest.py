"""
Product ingestion: compute the four document embeddings and upsert.

Embeddings are computed once per (re-)ingestion with passage-side
prefixes. Fields with no text keep a None embedding and are left out of
the point's named vectors.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

from services.shopsearch.catalog.documents import VECTOR_FIELDS, ProductDocument
from services.shopsearch.embedding.service import EmbeddingGateway
from services.shopsearch.search.gateway import SearchGateway
from services.shopsearch.search.types import IndexSchema

logger = logging.getLogger(__name__)


async def _embed_field(embedder: EmbeddingGateway, texts: list[str]) -> list[list[float] | None]:
    present = [i for i, t in enumerate(texts) if t and t.strip()]
    vectors = await embedder.embed_batch([texts[i] for i in present], is_query=False)
    out: list[list[float] | None] = [None] * len(texts)
    for i, vector in zip(present, vectors):
        out[i] = vector
    return out


async def embed_documents(
    documents: Sequence[ProductDocument],
    embedder: EmbeddingGateway,
) -> list[ProductDocument]:
    """Return copies of `documents` with name/description/reviews/combined embeddings."""
    if not documents:
        return []
    names = await _embed_field(embedder, [d.name for d in documents])
    descriptions = await _embed_field(embedder, [d.description for d in documents])
    reviews = await _embed_field(embedder, [d.reviews_text() for d in documents])
    combined = await _embed_field(embedder, [d.combined_text() for d in documents])

    return [
        dataclasses.replace(
            doc,
            name_embedding=names[i],
            description_embedding=descriptions[i],
            reviews_embedding=reviews[i],
            combined_embedding=combined[i],
        )
        for i, doc in enumerate(documents)
    ]


async def ingest_products(
    documents: Sequence[ProductDocument],
    gateway: SearchGateway,
    embedder: EmbeddingGateway,
    *,
    index_name: str,
) -> int:
    """Create the index if missing, embed and upsert. Returns documents written."""
    if not await gateway.index_exists(index_name):
        await gateway.create_index(
            IndexSchema(name=index_name, dimensions=embedder.dimensions, vector_fields=VECTOR_FIELDS)
        )

    embedded = await embed_documents(documents, embedder)
    written = await gateway.bulk_upsert(embedded)
    logger.info("Ingested %d/%d products into %s", written, len(documents), index_name)
    return written
