"""
HTTP surface tests (ASGI client, mocked index and embedder, no agent).

Covers:
- Health envelope and request id propagation
- Persona catalog, orders/events, unknown persona -> 404 envelope
- Assign persona + profile with recommended categories
- Live action recording feeds the profile
- POST /search success envelope and 502 on index failure
- Catalog listings and product ingestion
- Validation errors -> 422 envelope
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from services.shopsearch.tests.conftest import make_envelope, make_hit


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health", headers={"x-request-id": "req-1"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["agentEnabled"] is False
        assert body["requestId"] == "req-1"
        assert resp.headers["x-request-id"] == "req-1"

    @pytest.mark.asyncio
    async def test_unknown_route_envelope(self, client):
        resp = await client.get("/nope")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"


# ---------------------------------------------------------------------------
# Personas
# ---------------------------------------------------------------------------

class TestPersonas:
    @pytest.mark.asyncio
    async def test_list(self, client):
        resp = await client.get("/personas")
        ids = [p["id"] for p in resp.json()["data"]["personas"]]
        assert ids == ["chef", "tycoon", "commuter", "outdoor", "sensitive_skin", "headphone_seeker"]

    @pytest.mark.asyncio
    async def test_get_one(self, client):
        body = (await client.get("/personas/outdoor")).json()
        assert body["data"]["occupation"] == "水上運動員"
        assert "防水" in body["data"]["preferredKeywords"]

    @pytest.mark.asyncio
    async def test_unknown_persona(self, client):
        resp = await client.get("/personas/ghost")
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_orders_newest_first(self, client):
        data = (await client.get("/personas/outdoor/orders")).json()["data"]
        assert data["count"] == 4
        assert all(o["actionType"] == "checkout" for o in data["orders"])
        timestamps = [o["timestamp"] for o in data["orders"]]
        assert timestamps == sorted(timestamps, reverse=True)

    @pytest.mark.asyncio
    async def test_events(self, client):
        data = (await client.get("/personas/chef/events")).json()["data"]
        assert data["count"] == 9


class TestUserProfiles:
    @pytest.mark.asyncio
    async def test_assign_and_profile(self, client):
        resp = await client.put("/users/u1/persona", json={"personaId": "chef"})
        assert resp.status_code == 200
        assert resp.json()["data"]["personaId"] == "chef"

        profile = (await client.get("/users/u1/profile")).json()["data"]
        assert len(profile["recentActions"]) == 9
        assert profile["recommendedCategories"]
        assert profile["categoryPreferences"]

    @pytest.mark.asyncio
    async def test_assign_unknown_persona(self, client):
        resp = await client.put("/users/u1/persona", json={"personaId": "ghost"})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_profile(self, client):
        resp = await client.get("/users/nobody/profile")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_record_action(self, client):
        resp = await client.post(
            "/users/u2/actions",
            json={"actionType": "search", "searchQuery": "防水 耳機", "searchResultCount": 12},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["actionType"] == "search"

        profile = (await client.get("/users/u2/profile")).json()["data"]
        assert profile["keywordPreferences"] == {"防水": 1, "耳機": 1}

    @pytest.mark.asyncio
    async def test_record_action_bad_type(self, client):
        resp = await client.post("/users/u2/actions", json={"actionType": "wishlist"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class TestSearchRoute:
    @pytest.mark.asyncio
    async def test_search_envelope(self, client, mock_index):
        mock_index.search.return_value = make_envelope([make_hit("1", 0.7, [1.0, 0.0, 0.0, 0.0])])
        resp = await client.post("/search", json={"text": "防曬", "top": 10})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["success"] is True
        assert data["mode"] == "vector_filtered"
        assert data["hasProductVector"] is True
        assert "productVector" not in data
        assert data["searchResults"]["results"][0]["product"]["id"] == "1"
        assert mock_index.search.call_args.kwargs["top"] == 10

    @pytest.mark.asyncio
    async def test_include_vectors(self, client, fake_vector):
        data = (await client.post("/search", json={"text": "防曬", "includeVectors": True})).json()["data"]
        assert data["productVector"] == fake_vector
        assert data["userVector"] is None

    @pytest.mark.asyncio
    async def test_index_failure_is_502(self, client, mock_index):
        mock_index.search.side_effect = ConnectionError("qdrant unreachable")
        resp = await client.post("/search", json={"text": "防曬"})

        assert resp.status_code == 502
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "SEARCH_UNAVAILABLE"
        assert body["data"]["errorMessage"] == "qdrant unreachable"

    @pytest.mark.asyncio
    async def test_top_defaults_from_settings(self, client, mock_index):
        with patch("services.shopsearch.routers.search.settings.search_default_top", 25):
            resp = await client.post("/search", json={"text": "防曬"})
        assert resp.status_code == 200
        assert mock_index.search.call_args.kwargs["top"] == 25

    @pytest.mark.asyncio
    async def test_top_bounds(self, client):
        resp = await client.post("/search", json={"text": "防曬", "top": 0})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class TestCatalogRoutes:
    @pytest.mark.asyncio
    async def test_categories(self, client):
        data = (await client.get("/catalog/categories")).json()["data"]
        names = [c["name"] for c in data["categories"]]
        assert "美妝" in names

    @pytest.mark.asyncio
    async def test_brands_by_category(self, client):
        data = (await client.get("/catalog/brands", params={"category": "運動用品"})).json()["data"]
        assert data["category"] == "運動用品"
        assert "活力水" in data["brands"]

    @pytest.mark.asyncio
    async def test_trending_keywords(self, client):
        keywords = (await client.get("/catalog/trending-keywords")).json()["data"]["keywords"]
        assert "防曬" in keywords
        assert len(keywords) == len(set(keywords))

    @pytest.mark.asyncio
    async def test_ingest_products(self, client, mock_index):
        resp = await client.post(
            "/catalog/products",
            json={"products": [
                {"id": "1", "name": "防水藍牙耳機", "category": "電子產品", "reviews": [{"rating": 5, "comment": "好"}]},
                {"id": "2", "name": "保濕化妝水", "category": "美妝"},
            ]},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["written"] == 2
        docs = mock_index.bulk_upsert.call_args.args[0]
        assert [d.id for d in docs] == ["1", "2"]
        assert docs[0].combined_embedding is not None

    @pytest.mark.asyncio
    async def test_ingest_rejects_bad_rating(self, client):
        resp = await client.post(
            "/catalog/products",
            json={"products": [{"id": "1", "name": "x", "reviews": [{"rating": 9}]}]},
        )
        assert resp.status_code == 422
