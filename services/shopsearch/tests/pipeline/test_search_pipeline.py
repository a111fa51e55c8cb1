"""
SearchIntentPipeline tests (real analyzer/builder, mocked embedder, index, agent).

Covers:
- Degenerate empty query: success, no suggestions, wildcard text search
- Category analysis feeds the filter and the product vector
- Request brands are hard filters; suggested brands are display only
- Request categories supersede analysis and the scalar category
- Persona -> two-stage mode; embedding failure -> text-only
- Index failure -> success=False with message
- Cancellation propagates
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from services.shopsearch.intent.analyzer import CategoryBrandAnalyzer
from services.shopsearch.pipeline.service import SearchIntentPipeline, SearchRequest
from services.shopsearch.search.engine import HybridSearchEngine
from services.shopsearch.search.types import WILDCARD, SearchMode
from services.shopsearch.tests.conftest import make_envelope, make_hit
from services.shopsearch.vectors.builder import VectorBuilder


def _pipeline(inventory, persona_store, embedder, index, agent=None) -> SearchIntentPipeline:
    return SearchIntentPipeline(
        CategoryBrandAnalyzer(inventory, persona_store, agent=agent),
        VectorBuilder(embedder, persona_store),
        HybridSearchEngine(index),
    )


class TestDegenerate:
    @pytest.mark.asyncio
    async def test_empty_query(self, inventory, persona_store, mock_embedder, mock_index):
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        result = await pipeline.run_search(SearchRequest(text="", categories=[], persona_id=None))

        assert result.success is True
        assert result.suggested_categories == []
        assert result.suggested_brands == []
        assert result.product_vector is None
        assert result.user_vector is None
        assert result.mode == SearchMode.TEXT_ONLY
        args = mock_index.search.call_args.args
        assert args[0] == WILDCARD
        assert args[1].is_empty
        assert args[2] is None
        mock_embedder.embed.assert_not_called()


class TestAnalysisFlow:
    @pytest.mark.asyncio
    async def test_categories_feed_filter_and_vector(self, inventory, persona_store, mock_embedder, mock_index):
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        result = await pipeline.run_search(SearchRequest(text="防水耳機"))

        assert result.suggested_categories == ["耳機"]
        assert result.suggested_brands == ["辦公聲學", "動能聲學"]
        mock_embedder.embed.assert_awaited_once_with("防水耳機 耳機")
        search_filter = mock_index.search.call_args.args[1]
        assert search_filter.expression == "category eq '耳機'"
        assert result.mode == SearchMode.VECTOR_FILTERED

    @pytest.mark.asyncio
    async def test_request_brands_are_hard_filters(self, inventory, persona_store, mock_embedder, mock_index):
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        result = await pipeline.run_search(SearchRequest(text="防曬", brands=["O'Brien's"]))

        assert result.suggested_brands == []
        expression = mock_index.search.call_args.args[1].expression
        assert "brand eq 'O''Brien''s'" in expression

    @pytest.mark.asyncio
    async def test_request_categories_supersede(self, inventory, persona_store, mock_embedder, mock_index):
        agent = AsyncMock()
        agent.run = AsyncMock(return_value='{"brands": ["活力水"]}')
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index, agent)

        result = await pipeline.run_search(
            SearchRequest(text="水壺", category="美妝", categories=["運動用品", "電子產品"]),
        )

        assert result.suggested_categories == []
        assert result.suggested_brands == ["活力水"]
        expression = mock_index.search.call_args.args[1].expression
        assert expression == "(category eq '運動用品' or category eq '電子產品')"

    @pytest.mark.asyncio
    async def test_analyzer_crash_degrades(self, inventory, persona_store, mock_embedder, mock_index):
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)
        pipeline._analyzer.analyze_categories = AsyncMock(side_effect=ValueError("boom"))

        result = await pipeline.run_search(SearchRequest(text="防曬"))

        assert result.success is True
        assert result.suggested_categories == []


class TestModes:
    @pytest.mark.asyncio
    async def test_persona_two_stage(self, inventory, persona_store, mock_embedder, mock_index):
        hits = [make_hit("a", 0.9, [0.0, 1.0, 0.0, 0.0]), make_hit("b", 0.1, [1.0, 0.0, 0.0, 0.0])]
        mock_index.search.return_value = make_envelope(hits)
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        result = await pipeline.run_search(
            SearchRequest(text="防曬", persona_id="outdoor", selected_order_ids=["outdoor-checkout-1"], top=2),
        )

        assert result.success
        assert result.mode == SearchMode.USER_RERANKED
        assert result.user_vector is not None
        assert [h.document.id for h in result.search_results.hits] == ["b", "a"]
        assert mock_index.search.call_args.kwargs["top"] == 2

    @pytest.mark.asyncio
    async def test_embedding_failure_degrades_to_text(self, inventory, persona_store, mock_embedder, mock_index):
        mock_embedder.embed = AsyncMock(side_effect=asyncio.TimeoutError())
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        result = await pipeline.run_search(SearchRequest(text="防曬", persona_id="outdoor"))

        assert result.success
        assert result.product_vector is None
        assert result.user_vector is None
        assert result.mode == SearchMode.TEXT_ONLY


class TestFailures:
    @pytest.mark.asyncio
    async def test_index_failure(self, inventory, persona_store, mock_embedder, mock_index):
        mock_index.search.side_effect = ConnectionError("qdrant unreachable")
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        result = await pipeline.run_search(SearchRequest(text="防曬"))

        assert result.success is False
        assert result.error_message == "qdrant unreachable"
        assert result.search_results is None

    @pytest.mark.asyncio
    async def test_index_timeout_reports_name(self, inventory, persona_store, mock_embedder, mock_index):
        mock_index.search.side_effect = asyncio.TimeoutError()
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        result = await pipeline.run_search(SearchRequest(text="防曬"))

        assert result.success is False
        assert result.error_message

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, inventory, persona_store, mock_embedder, mock_index):
        mock_index.search.side_effect = asyncio.CancelledError()
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        with pytest.raises(asyncio.CancelledError):
            await pipeline.run_search(SearchRequest(text="防曬"))

    @pytest.mark.asyncio
    async def test_cancelled_embedding_stops_pipeline(self, inventory, persona_store, mock_embedder, mock_index):
        mock_embedder.embed = AsyncMock(side_effect=asyncio.CancelledError())
        pipeline = _pipeline(inventory, persona_store, mock_embedder, mock_index)

        with pytest.raises(asyncio.CancelledError):
            await pipeline.run_search(SearchRequest(text="防曬"))
        mock_index.search.assert_not_called()
