"""
SearchIntentPipeline — one request/response cycle of personalized search.

Sequence (strictly ordered; categories feed the product vector):
1. Categories: request value, else analyzer on the text
2. Brands: request value (hard filter), else analyzer (display only)
3. Product vector from text + resolved categories
4. User vector from persona + selected orders/events
5. Engine search in the strongest mode the vectors allow
6. Package SearchResult

Analyzer and embedding failures degrade to a weaker mode. Index failures
end the request with success=False and the exception message. Cancellation
is never caught here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from services.shopsearch.config import settings
from services.shopsearch.intent.analyzer import CategoryBrandAnalyzer
from services.shopsearch.search.engine import HybridSearchEngine, select_mode
from services.shopsearch.search.filters import SearchFilter
from services.shopsearch.search.types import SearchMode, SearchResultEnvelope
from services.shopsearch.vectors.builder import VectorBuilder

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / result types
# ---------------------------------------------------------------------------

@dataclass
class SearchRequest:
    text: str | None = None
    category: str | None = None
    categories: list[str] = field(default_factory=list)
    brands: list[str] = field(default_factory=list)
    persona_id: str | None = None
    selected_order_ids: list[str] = field(default_factory=list)
    selected_event_ids: list[str] = field(default_factory=list)
    top: int = field(default_factory=lambda: settings.search_default_top)
    include_facets: bool = True


@dataclass(frozen=True)
class SearchIntent:
    """Resolved filters and personalization inputs for one request."""

    categories: tuple[str, ...]
    brands: tuple[str, ...]
    persona_id: str | None
    selected_order_ids: tuple[str, ...] = ()
    selected_event_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SearchVectors:
    intent: SearchIntent
    product_vector: list[float] | None
    user_vector: list[float] | None

    @property
    def mode(self) -> SearchMode:
        return select_mode(self.product_vector, self.user_vector)


@dataclass
class SearchResult:
    success: bool
    error_message: str | None = None
    suggested_categories: list[str] = field(default_factory=list)
    suggested_brands: list[str] = field(default_factory=list)
    product_vector: list[float] | None = None
    user_vector: list[float] | None = None
    search_results: SearchResultEnvelope | None = None
    mode: SearchMode | None = None

    def to_dict(self, *, include_vectors: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "errorMessage": self.error_message,
            "suggestedCategories": list(self.suggested_categories),
            "suggestedBrands": list(self.suggested_brands),
            "mode": self.mode.value if self.mode else None,
            "hasProductVector": self.product_vector is not None,
            "hasUserVector": self.user_vector is not None,
            "searchResults": self.search_results.to_dict() if self.search_results else None,
        }
        if include_vectors:
            data["productVector"] = self.product_vector
            data["userVector"] = self.user_vector
        return data


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class SearchIntentPipeline:
    def __init__(
        self,
        analyzer: CategoryBrandAnalyzer,
        vector_builder: VectorBuilder,
        engine: HybridSearchEngine,
    ) -> None:
        self._analyzer = analyzer
        self._vectors = vector_builder
        self._engine = engine

    async def run_search(self, request: SearchRequest) -> SearchResult:
        text = (request.text or "").strip()

        # 1. Categories
        categories = [c for c in request.categories if c]
        category = request.category or None
        suggested_categories: list[str] = []
        if not categories and not category and text:
            suggested_categories = await self._safe_analyze_categories(text, request.persona_id)
            categories = list(suggested_categories)
            category = categories[0] if categories else None
        elif categories:
            # a categories list supersedes the scalar category
            category = categories[0]

        # 2. Brands
        brands = [b for b in request.brands if b]
        suggested_brands: list[str] = []
        if not brands and text:
            suggested_brands = await self._safe_analyze_brands(text, category, request.persona_id)

        intent = SearchIntent(
            categories=tuple(categories or ([category] if category else [])),
            brands=tuple(brands),
            persona_id=request.persona_id,
            selected_order_ids=tuple(request.selected_order_ids),
            selected_event_ids=tuple(request.selected_event_ids),
        )

        # 3-4. Vectors
        product_vector = await self._vectors.build_product_vector(text, list(intent.categories) or None)
        user_vector = await self._vectors.build_user_vector(
            intent.persona_id,
            list(intent.selected_order_ids),
            list(intent.selected_event_ids),
        )
        vectors = SearchVectors(intent=intent, product_vector=product_vector, user_vector=user_vector)

        # 5. Search
        search_filter = SearchFilter(
            category=category,
            categories=tuple(categories),
            brands=intent.brands,
        )
        try:
            envelope = await self._engine.search(
                text,
                filters=search_filter,
                top=request.top,
                include_facets=request.include_facets,
                product_vector=vectors.product_vector,
                user_vector=vectors.user_vector,
            )
        except Exception as exc:
            logger.error("Search failed (mode=%s): %s", vectors.mode.value, exc, exc_info=True)
            return SearchResult(
                success=False,
                error_message=str(exc) or exc.__class__.__name__,
                suggested_categories=suggested_categories,
                suggested_brands=suggested_brands,
                product_vector=product_vector,
                user_vector=user_vector,
                mode=vectors.mode,
            )

        # 6. Package
        return SearchResult(
            success=True,
            suggested_categories=suggested_categories,
            suggested_brands=suggested_brands,
            product_vector=product_vector,
            user_vector=user_vector,
            search_results=envelope,
            mode=envelope.mode,
        )

    async def _safe_analyze_categories(self, text: str, persona_id: str | None) -> list[str]:
        try:
            return await self._analyzer.analyze_categories(text, persona_id)
        except Exception as exc:
            logger.warning("Category analysis failed, searching without category: %s", exc)
            return []

    async def _safe_analyze_brands(self, text: str, category: str | None, persona_id: str | None) -> list[str]:
        try:
            return await self._analyzer.analyze_brands(text, category, persona_id)
        except Exception as exc:
            logger.warning("Brand analysis failed: %s", exc)
            return []
