"""
Search request/result value types shared by the gateway and the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from services.shopsearch.catalog.documents import COMBINED_VECTOR, ProductDocument

WILDCARD = "*"
DEFAULT_KNN = 10
FACET_FIELDS = ("category", "brand")


class SearchMode(str, Enum):
    TEXT_ONLY = "text_only"
    VECTOR_FILTERED = "vector_filtered"
    USER_RERANKED = "user_reranked"


@dataclass(frozen=True)
class VectorQuery:
    vector: list[float]
    field: str = COMBINED_VECTOR
    k: int = DEFAULT_KNN


@dataclass(frozen=True)
class FacetValue:
    value: str
    count: int


@dataclass(frozen=True)
class SearchHit:
    document: ProductDocument
    score: float
    """Index relevance (fused score in hybrid mode, 0.0 for unscored text scans)."""

    user_score: float | None = None
    """Cosine similarity to the user vector; set only by the re-rank stage."""

    def to_dict(self) -> dict[str, Any]:
        data = {"product": self.document.to_dict(), "score": self.score}
        if self.user_score is not None:
            data["userScore"] = self.user_score
        return data


@dataclass(frozen=True)
class SearchResultEnvelope:
    hits: tuple[SearchHit, ...] = ()
    total_count: int = 0
    facets: dict[str, tuple[FacetValue, ...]] = field(default_factory=dict)
    mode: SearchMode = SearchMode.TEXT_ONLY

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "totalCount": self.total_count,
            "count": len(self.hits),
            "results": [h.to_dict() for h in self.hits],
            "facets": {
                name: [{"value": f.value, "count": f.count} for f in values]
                for name, values in self.facets.items()
            },
        }


@dataclass(frozen=True)
class IndexSchema:
    """Collection layout: named vector fields of one dimension."""

    name: str
    dimensions: int
    vector_fields: tuple[str, ...]
    keyword_fields: tuple[str, ...] = FACET_FIELDS
    text_fields: tuple[str, ...] = ("name", "description")
