"""
VectorBuilder — product-side and user-side query vectors.

Never raises for embedding problems: blank input, gateway errors and
timeouts all become None, which the pipeline reads as "search without
this vector".
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from services.shopsearch.embedding.service import EmbeddingGateway
from services.shopsearch.persona.store import PersonaStore

logger = logging.getLogger(__name__)


class VectorBuilder:
    def __init__(self, embedder: EmbeddingGateway, persona_store: PersonaStore) -> None:
        self._embedder = embedder
        self._store = persona_store

    async def _embed(self, text: str | None, purpose: str) -> list[float] | None:
        if not text or not text.strip():
            return None
        try:
            return await self._embedder.embed(text)
        except asyncio.TimeoutError:
            logger.warning("Embedding for %s timed out", purpose)
            return None
        except Exception as exc:
            logger.warning("Embedding for %s failed: %s", purpose, exc)
            return None

    async def build_product_vector(
        self,
        query_text: str | None,
        categories: Sequence[str] | None = None,
    ) -> list[float] | None:
        """Query text, biased toward resolved categories when given."""
        if not query_text or not query_text.strip():
            return None
        text = query_text
        if categories:
            text = f"{query_text} {' '.join(categories)}"
        return await self._embed(text, "product vector")

    async def build_user_vector(
        self,
        persona_id: str | None = None,
        selected_order_ids: Sequence[str] | None = None,
        selected_event_ids: Sequence[str] | None = None,
        base_text: str | None = None,
    ) -> list[float] | None:
        """Persona description + selected history. None without a persona."""
        if not persona_id:
            return None
        text = self._store.build_personalized_vector_input(
            persona_id, selected_order_ids, selected_event_ids, base_text,
        )
        return await self._embed(text, "user vector")

    async def generate_personalized_vector(
        self,
        user_id: str,
        base_text: str | None = None,
    ) -> list[float] | None:
        """Vector from a user's own profile; cached on the profile when built."""
        text = self._store.build_profile_vector_input(user_id, base_text)
        vector = await self._embed(text, f"user {user_id} profile")
        if vector is not None:
            self._store.cache_preference_vector(user_id, vector)
        return vector
