"""
Catalog endpoints.

GET  /catalog/categories         — inventory categories (with counts)
GET  /catalog/brands?category=   — brands, optionally scoped to a category
GET  /catalog/trending-keywords  — persona keywords + defaults
POST /catalog/products           — embed and upsert products into the index
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from services.shopsearch.catalog.documents import ProductDocument, Review
from services.shopsearch.catalog.ingest import ingest_products

router = APIRouter(prefix="/catalog", tags=["catalog"])

_MAX_INGEST_BATCH = 500


class ReviewBody(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class ProductBody(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(default=0.0, ge=0.0)
    category: str = ""
    subcategories: list[str] = Field(default_factory=list)
    brand: str = ""
    color: str = ""
    size: str = ""
    material: str = ""
    image: str = ""
    images: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    attributes: dict = Field(default_factory=dict)
    reviews: list[ReviewBody] = Field(default_factory=list)
    createdAt: datetime | None = None
    updatedAt: datetime | None = None

    def to_document(self) -> ProductDocument:
        return ProductDocument(
            id=self.id,
            name=self.name,
            description=self.description,
            price=self.price,
            category=self.category,
            subcategories=list(self.subcategories),
            brand=self.brand,
            color=self.color,
            size=self.size,
            material=self.material,
            image=self.image,
            images=list(self.images),
            tags=list(self.tags),
            attributes=dict(self.attributes),
            reviews=[Review(rating=r.rating, comment=r.comment) for r in self.reviews],
            created_at=self.createdAt,
            updated_at=self.updatedAt,
        )


class IngestBody(BaseModel):
    products: list[ProductBody] = Field(..., max_length=_MAX_INGEST_BATCH)


@router.get("/categories")
async def list_categories(request: Request) -> dict:
    inventory = request.app.state.inventory
    return {
        "success": True,
        "data": {
            "categories": [c.model_dump() for c in inventory.data.categories],
        },
        "requestId": request.state.request_id,
    }


@router.get("/brands")
async def list_brands(
    request: Request,
    category: str | None = Query(None, description="Limit to one category"),
) -> dict:
    analyzer = request.app.state.analyzer
    return {
        "success": True,
        "data": {
            "category": category,
            "brands": analyzer.get_available_brands(category),
        },
        "requestId": request.state.request_id,
    }


@router.get("/trending-keywords")
async def trending_keywords(request: Request) -> dict:
    return {
        "success": True,
        "data": {"keywords": request.app.state.persona_store.get_trending_keywords()},
        "requestId": request.state.request_id,
    }


@router.post("/products", status_code=201)
async def ingest(body: IngestBody, request: Request) -> dict:
    settings = request.app.state.settings
    written = await ingest_products(
        [p.to_document() for p in body.products],
        request.app.state.product_index,
        request.app.state.embedder,
        index_name=settings.products_collection,
    )
    return {
        "success": True,
        "data": {"written": written},
        "requestId": request.state.request_id,
    }
