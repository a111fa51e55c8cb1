"""
Search endpoint — POST /search

Wraps SearchIntentPipeline for HTTP consumers. Index failures come back as
success=false in the envelope data with HTTP 502.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from services.shopsearch.config import settings
from services.shopsearch.pipeline.service import SearchRequest

router = APIRouter(tags=["search"])


class SearchBody(BaseModel):
    text: str | None = Field(default=None, max_length=500)
    category: str | None = None
    categories: list[str] = Field(default_factory=list, max_length=10)
    brands: list[str] = Field(default_factory=list, max_length=20)
    personaId: str | None = None
    selectedOrderIds: list[str] = Field(default_factory=list, max_length=50)
    selectedEventIds: list[str] = Field(default_factory=list, max_length=100)
    top: int = Field(default_factory=lambda: settings.search_default_top, ge=1, le=1000)
    includeFacets: bool = True
    includeVectors: bool = False

    def to_request(self) -> SearchRequest:
        return SearchRequest(
            text=self.text,
            category=self.category,
            categories=list(self.categories),
            brands=list(self.brands),
            persona_id=self.personaId,
            selected_order_ids=list(self.selectedOrderIds),
            selected_event_ids=list(self.selectedEventIds),
            top=self.top,
            include_facets=self.includeFacets,
        )


@router.post("/search")
async def search_products(body: SearchBody, request: Request):
    pipeline = request.app.state.search_pipeline
    result = await pipeline.run_search(body.to_request())

    content = {
        "success": result.success,
        "data": result.to_dict(include_vectors=body.includeVectors),
        "requestId": request.state.request_id,
    }
    if not result.success:
        content["error"] = {"code": "SEARCH_UNAVAILABLE", "message": result.error_message}
        return JSONResponse(status_code=502, content=content)
    return content
