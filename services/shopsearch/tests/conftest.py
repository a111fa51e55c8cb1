"""
Shared test fixtures for the shopsearch test suite.

Provides:
- persona store, small inventory, and mock collaborators (embedder, index, agent)
- async FastAPI test client wired with the mocks (no Qdrant, no model download)
- factories for actions, product documents and search hits
"""

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("QDRANT_URL", "http://localhost:26333")
os.environ.setdefault("QDRANT_API_KEY", "")
os.environ.setdefault("ANTHROPIC_API_KEY", "")
os.environ.setdefault("SENTRY_DSN", "")

from services.shopsearch.catalog.documents import ProductDocument  # noqa: E402
from services.shopsearch.catalog.inventory import CategoryInfo, InventoryData, ProductInventory  # noqa: E402
from services.shopsearch.persona.store import PersonaStore  # noqa: E402
from services.shopsearch.persona.types import ActionType, UserAction  # noqa: E402
from services.shopsearch.search.types import SearchHit, SearchMode, SearchResultEnvelope  # noqa: E402


FAKE_DIMENSIONS = 4


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_action(
    kind: ActionType = ActionType.CLICK,
    *,
    user_id: str = "u1",
    category: str | None = "美妝",
    brand: str | None = "戶外盾牌",
    query: str | None = None,
    seconds_ago: int = 0,
    **overrides: Any,
) -> UserAction:
    base = {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "action_type": kind,
        "timestamp": datetime.now(timezone.utc) - timedelta(seconds=seconds_ago),
        "product_id": "99" if kind != ActionType.SEARCH else None,
        "product_name": "防水防曬乳" if kind != ActionType.SEARCH else None,
        "category": category if kind != ActionType.SEARCH else None,
        "brand": brand if kind != ActionType.SEARCH else None,
        "search_query": query if kind == ActionType.SEARCH else None,
    }
    base.update(overrides)
    return UserAction(**base)


def make_document(doc_id: str, embedding: list[float] | None = None, **overrides: Any) -> ProductDocument:
    base = {
        "id": doc_id,
        "name": f"商品 {doc_id}",
        "description": "測試商品",
        "category": "美妝",
        "brand": "戶外盾牌",
        "combined_embedding": embedding,
    }
    base.update(overrides)
    return ProductDocument(**base)


def make_hit(doc_id: str, score: float, embedding: list[float] | None = None) -> SearchHit:
    return SearchHit(document=make_document(doc_id, embedding), score=score)


def make_envelope(hits: list[SearchHit] | None = None, **overrides: Any) -> SearchResultEnvelope:
    hits = hits or []
    base = {
        "hits": tuple(hits),
        "total_count": len(hits),
        "facets": {},
        "mode": SearchMode.VECTOR_FILTERED,
    }
    base.update(overrides)
    return SearchResultEnvelope(**base)


def make_agent(response_text: str) -> MagicMock:
    """Agent whose run() returns the given text."""
    agent = MagicMock()
    agent.run = AsyncMock(return_value=response_text)
    return agent


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def persona_store() -> PersonaStore:
    return PersonaStore()


@pytest.fixture
def inventory() -> ProductInventory:
    data = InventoryData(
        categories=[
            CategoryInfo(name="美妝", product_count=38, brand_count=4),
            CategoryInfo(name="電子產品", product_count=31, brand_count=4),
            CategoryInfo(name="運動用品", product_count=14, brand_count=2),
            CategoryInfo(name="耳機", product_count=9, brand_count=2),
        ],
        brands_by_category={
            "美妝": ["戶外盾牌", "海灘守護", "溫和安心", "日常守護", "素顏光", "修復之光"],
            "電子產品": ["辦公聲學", "通勤聲學", "Sony", "靜音"],
            "運動用品": ["活力水", "健身派"],
            "耳機": ["辦公聲學", "動能聲學"],
        },
    )
    return ProductInventory(data=data)


@pytest.fixture
def fake_vector() -> list[float]:
    return [1.0, 0.0, 0.0, 0.0]


@pytest.fixture
def mock_embedder(fake_vector):
    """Embedding gateway mock returning a fixed unit vector."""
    embedder = MagicMock()
    embedder.dimensions = FAKE_DIMENSIONS
    embedder.embed = AsyncMock(return_value=fake_vector)
    embedder.embed_batch = AsyncMock(side_effect=lambda texts, **_: [fake_vector for _ in texts])
    return embedder


@pytest.fixture
def mock_index():
    """SearchGateway mock with an empty collection."""
    index = AsyncMock()
    index.search = AsyncMock(return_value=make_envelope(mode=SearchMode.TEXT_ONLY))
    index.count = AsyncMock(return_value=0)
    index.index_exists = AsyncMock(return_value=True)
    index.create_index = AsyncMock()
    index.bulk_upsert = AsyncMock(side_effect=lambda docs: len(docs))
    index.close = AsyncMock()
    return index


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
async def app(mock_index, mock_embedder):
    """Test app wired with mocks; lifespan is not run."""
    from services.shopsearch.main import app as _app, build_services

    build_services(_app, agent=None, product_index=mock_index, embedder=mock_embedder)
    return _app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
