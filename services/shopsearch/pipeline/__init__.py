"""services.shopsearch.pipeline — request-level search orchestration."""

from services.shopsearch.pipeline.service import (
    SearchIntent,
    SearchIntentPipeline,
    SearchRequest,
    SearchResult,
    SearchVectors,
)

__all__ = [
    "SearchIntent",
    "SearchIntentPipeline",
    "SearchRequest",
    "SearchResult",
    "SearchVectors",
]
