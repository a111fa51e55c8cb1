"""
ProductDocument — the indexed product record and its payload mapping.

Embeddings are stored as Qdrant named vectors; every other field travels in
the point payload. `attributes` is a free-form dict kept as-is in the payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# Named vector fields on the products collection
NAME_VECTOR = "name"
DESCRIPTION_VECTOR = "description"
REVIEWS_VECTOR = "reviews"
COMBINED_VECTOR = "combined"

VECTOR_FIELDS = (NAME_VECTOR, DESCRIPTION_VECTOR, REVIEWS_VECTOR, COMBINED_VECTOR)


@dataclass(frozen=True)
class Review:
    rating: int
    comment: str


@dataclass
class ProductDocument:
    id: str
    name: str
    description: str = ""
    price: float = 0.0
    category: str = ""
    subcategories: list[str] = field(default_factory=list)
    brand: str = ""
    color: str = ""
    size: str = ""
    material: str = ""
    image: str = ""
    images: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    reviews: list[Review] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    name_embedding: list[float] | None = None
    description_embedding: list[float] | None = None
    reviews_embedding: list[float] | None = None
    combined_embedding: list[float] | None = None

    # ------------------------------------------------------------------
    # Embedding inputs
    # ------------------------------------------------------------------

    def reviews_text(self) -> str:
        return " ".join(r.comment for r in self.reviews if r.comment)

    def combined_text(self) -> str:
        """Name + description + reviews, the input for the k-NN key."""
        parts = [self.name, self.description, self.reviews_text()]
        return " ".join(p for p in parts if p)

    def vectors(self) -> dict[str, list[float]]:
        named = {
            NAME_VECTOR: self.name_embedding,
            DESCRIPTION_VECTOR: self.description_embedding,
            REVIEWS_VECTOR: self.reviews_embedding,
            COMBINED_VECTOR: self.combined_embedding,
        }
        return {k: v for k, v in named.items() if v}

    # ------------------------------------------------------------------
    # Payload mapping
    # ------------------------------------------------------------------

    def to_payload(self) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        return {
            "product_id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": self.category,
            "subcategories": list(self.subcategories),
            "brand": self.brand,
            "color": self.color,
            "size": self.size,
            "material": self.material,
            "image": self.image,
            "images": list(self.images),
            "tags": list(self.tags),
            "attributes": dict(self.attributes),
            "reviews": [{"rating": r.rating, "comment": r.comment} for r in self.reviews],
            "created_at": (self.created_at or now).isoformat(),
            "updated_at": (self.updated_at or now).isoformat(),
        }

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        vectors: dict[str, list[float]] | None = None,
    ) -> ProductDocument:
        vectors = vectors or {}
        return cls(
            id=str(payload.get("product_id", "")),
            name=payload.get("name", ""),
            description=payload.get("description", ""),
            price=float(payload.get("price") or 0.0),
            category=payload.get("category", ""),
            subcategories=list(payload.get("subcategories") or []),
            brand=payload.get("brand", ""),
            color=payload.get("color", ""),
            size=payload.get("size", ""),
            material=payload.get("material", ""),
            image=payload.get("image", ""),
            images=list(payload.get("images") or []),
            tags=list(payload.get("tags") or []),
            attributes=dict(payload.get("attributes") or {}),
            reviews=[
                Review(rating=int(r.get("rating", 0)), comment=r.get("comment", ""))
                for r in payload.get("reviews") or []
            ],
            created_at=_parse_ts(payload.get("created_at")),
            updated_at=_parse_ts(payload.get("updated_at")),
            name_embedding=vectors.get(NAME_VECTOR),
            description_embedding=vectors.get(DESCRIPTION_VECTOR),
            reviews_embedding=vectors.get(REVIEWS_VECTOR),
            combined_embedding=vectors.get(COMBINED_VECTOR),
        )

    def to_dict(self) -> dict[str, Any]:
        """API shape: payload fields without embeddings."""
        data = self.to_payload()
        data["id"] = data.pop("product_id")
        return data


def _parse_ts(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
