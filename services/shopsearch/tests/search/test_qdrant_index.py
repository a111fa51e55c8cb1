"""
QdrantProductIndex tests against a mocked AsyncQdrantClient.

Covers:
- Text-only search uses scroll with filter AND lexical match
- Wildcard text drops the lexical clause
- Hybrid search uses query_points with RRF over two prefetches (k, top)
- Facets requested over the lexical/filter population, never the vector
- Payload/vector round trip into ProductDocument
- bulk_upsert batching and IndexUploadError
- Index management calls
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from qdrant_client.models import Filter, FusionQuery, MatchText, UpdateStatus

from services.shopsearch.catalog.documents import COMBINED_VECTOR, VECTOR_FIELDS
from services.shopsearch.search.filters import SearchFilter
from services.shopsearch.search.gateway import IndexUploadError
from services.shopsearch.search.qdrant_index import (
    UPSERT_BATCH_SIZE,
    QdrantProductIndex,
    lexical_filter,
    point_id,
)
from services.shopsearch.search.types import IndexSchema, SearchMode, VectorQuery
from services.shopsearch.tests.conftest import make_document


def _point(pid: str, score: float | None = None, vector: list[float] | None = None):
    return SimpleNamespace(
        id=int(pid),
        score=score,
        payload={"product_id": pid, "name": f"商品 {pid}", "category": "美妝", "brand": "戶外盾牌"},
        vector={COMBINED_VECTOR: vector} if vector else None,
    )


def _mock_client(points=None, total: int = 0) -> MagicMock:
    client = MagicMock()
    client.scroll = AsyncMock(return_value=(points or [], None))
    client.query_points = AsyncMock(return_value=SimpleNamespace(points=points or []))
    client.count = AsyncMock(return_value=SimpleNamespace(count=total))
    client.facet = AsyncMock(return_value=SimpleNamespace(hits=[
        SimpleNamespace(value="美妝", count=3),
        SimpleNamespace(value="運動用品", count=1),
    ]))
    client.collection_exists = AsyncMock(return_value=False)
    client.create_collection = AsyncMock()
    client.create_payload_index = AsyncMock()
    client.delete_collection = AsyncMock()
    client.upsert = AsyncMock(return_value=SimpleNamespace(status=UpdateStatus.COMPLETED))
    client.close = AsyncMock()
    return client


def _index(client) -> QdrantProductIndex:
    return QdrantProductIndex("products", client=client, timeout_s=2.0)


class TestHelpers:
    def test_point_id(self):
        assert point_id("107") == 107
        assert point_id("sku-1") == point_id("sku-1")
        assert isinstance(point_id("sku-1"), str)

    def test_lexical_filter(self):
        assert lexical_filter(None) is None
        assert lexical_filter("*") is None
        f = lexical_filter(" 防曬 ")
        assert [c.key for c in f.should] == ["name", "description"]
        assert f.should[0].match == MatchText(text="防曬")


class TestSearch:
    @pytest.mark.asyncio
    async def test_text_only_scrolls(self):
        client = _mock_client([_point("1"), _point("2")], total=2)
        envelope = await _index(client).search("防曬", SearchFilter(category="美妝"), None, top=25)

        kwargs = client.scroll.call_args.kwargs
        assert kwargs["limit"] == 25
        scroll_filter = kwargs["scroll_filter"]
        assert isinstance(scroll_filter, Filter)
        assert len(scroll_filter.must) == 2  # category + lexical
        client.query_points.assert_not_called()
        assert envelope.mode == SearchMode.TEXT_ONLY
        assert [h.document.id for h in envelope.hits] == ["1", "2"]
        assert envelope.total_count == 2

    @pytest.mark.asyncio
    async def test_wildcard_without_filter_matches_all(self):
        client = _mock_client()
        await _index(client).search("*", SearchFilter(), None, top=10)
        assert client.scroll.call_args.kwargs["scroll_filter"] is None

    @pytest.mark.asyncio
    async def test_hybrid_query_points(self):
        client = _mock_client([_point("5", 0.8, [1.0, 0.0])], total=1)
        vq = VectorQuery(vector=[1.0, 0.0], k=10)
        envelope = await _index(client).search("耳機", SearchFilter(brands=("辦公聲學",)), vq, top=30)

        kwargs = client.query_points.call_args.kwargs
        assert isinstance(kwargs["query"], FusionQuery)
        assert kwargs["limit"] == 30
        assert [p.limit for p in kwargs["prefetch"]] == [10, 30]
        assert all(p.using == COMBINED_VECTOR for p in kwargs["prefetch"])
        hit = envelope.hits[0]
        assert hit.score == 0.8
        assert hit.document.combined_embedding == [1.0, 0.0]
        assert envelope.mode == SearchMode.VECTOR_FILTERED

    @pytest.mark.asyncio
    async def test_hybrid_total_covers_knn_neighbours(self):
        # k-NN leg returns a neighbour outside the lexical match
        points = [_point("1", 0.9, [1.0, 0.0]), _point("2", 0.8, [1.0, 0.0]), _point("3", 0.5, [0.0, 1.0])]
        client = _mock_client(points, total=2)
        envelope = await _index(client).search(
            "耳機", SearchFilter(), VectorQuery(vector=[1.0, 0.0]), top=10,
        )
        assert len(envelope.hits) == 3
        assert envelope.total_count == 3

    @pytest.mark.asyncio
    async def test_text_only_total_is_population_count(self):
        client = _mock_client([_point("1")], total=40)
        envelope = await _index(client).search("防曬", SearchFilter(), None, top=1)
        assert envelope.total_count == 40

    @pytest.mark.asyncio
    async def test_facets_use_non_vector_filter(self):
        client = _mock_client([_point("1")], total=1)
        index = _index(client)
        await index.search("防曬", SearchFilter(category="美妝"), None, top=5, facets=("category",))
        text_filter = client.facet.call_args.kwargs["facet_filter"]

        await index.search(
            "防曬", SearchFilter(category="美妝"), VectorQuery(vector=[1.0, 0.0]), top=5, facets=("category",),
        )
        hybrid_filter = client.facet.call_args.kwargs["facet_filter"]
        assert text_filter == hybrid_filter

    @pytest.mark.asyncio
    async def test_facet_values(self):
        client = _mock_client(total=4)
        envelope = await _index(client).search("*", SearchFilter(), None, top=5, facets=("category", "brand"))
        assert client.facet.await_count == 2
        assert envelope.facets["category"][0].value == "美妝"
        assert envelope.facets["category"][0].count == 3

    @pytest.mark.asyncio
    async def test_count_with_filter(self):
        client = _mock_client(total=9)
        assert await _index(client).count(SearchFilter(category="美妝")) == 9
        assert client.count.call_args.kwargs["count_filter"] is not None


class TestIndexManagement:
    @pytest.mark.asyncio
    async def test_create_index(self):
        client = _mock_client()
        schema = IndexSchema(name="products", dimensions=384, vector_fields=VECTOR_FIELDS)
        await _index(client).create_index(schema)

        vectors_config = client.create_collection.call_args.kwargs["vectors_config"]
        assert set(vectors_config) == set(VECTOR_FIELDS)
        assert vectors_config[COMBINED_VECTOR].size == 384
        indexed = [c.kwargs["field_name"] for c in client.create_payload_index.call_args_list]
        assert indexed == ["category", "brand", "name", "description"]

    @pytest.mark.asyncio
    async def test_exists_and_delete(self):
        client = _mock_client()
        index = _index(client)
        assert await index.index_exists() is False
        await index.delete_index()
        client.delete_collection.assert_awaited_once_with(collection_name="products")

    @pytest.mark.asyncio
    async def test_bulk_upsert_batches(self):
        client = _mock_client()
        docs = [make_document(str(i), [1.0, 0.0]) for i in range(UPSERT_BATCH_SIZE + 3)]
        written = await _index(client).bulk_upsert(docs)

        assert written == len(docs)
        assert client.upsert.await_count == 2
        first_point = client.upsert.call_args_list[0].kwargs["points"][0]
        assert first_point.id == 0
        assert first_point.vector == {COMBINED_VECTOR: [1.0, 0.0]}
        assert first_point.payload["product_id"] == "0"

    @pytest.mark.asyncio
    async def test_bulk_upsert_failure_raises(self):
        client = _mock_client()
        client.upsert.return_value = SimpleNamespace(status="failed")
        with pytest.raises(IndexUploadError):
            await _index(client).bulk_upsert([make_document("1", [1.0])])

    @pytest.mark.asyncio
    async def test_close(self):
        client = _mock_client()
        index = _index(client)
        await index.close()
        client.close.assert_awaited_once()
