"""
Embedding service using a multilingual sentence-transformers model.

Lazy-loads the model on first use. All vectors are L2-normalized before
return. EmbeddingGateway wraps the blocking encode calls for asyncio
callers: each call runs in a worker thread under a timeout.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import List

from services.shopsearch.config import settings

logger = logging.getLogger(__name__)

# e5-family models expect a task prefix
_QUERY_PREFIX = "query: "
_PASSAGE_PREFIX = "passage: "


class EmbeddingService:
    """Local embedding generation.

    Thread-safe lazy model loading. Provides single and batch embedding
    with L2 normalization.
    """

    def __init__(self, model_name: str | None = None, dimensions: int | None = None) -> None:
        self._model_name = model_name or settings.embedding_model
        self._dimensions = dimensions or settings.embedding_dimensions
        self._model = None
        self._lock = threading.Lock()

    def _load_model(self):
        """Load model on first use. Thread-safe via lock."""
        if self._model is not None:
            return
        with self._lock:
            if self._model is not None:
                return
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model: %s", self._model_name)
            self._model = SentenceTransformer(self._model_name)
            logger.info("Embedding model loaded successfully")

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed_single(self, text: str, *, is_query: bool = True) -> List[float]:
        """Embed a single text string. Returns an L2-normalized vector.

        Args:
            text: The text to embed.
            is_query: If True, uses the query prefix (search side).
                      If False, uses the passage prefix (indexing side).
        """
        self._load_model()
        prefix = _QUERY_PREFIX if is_query else _PASSAGE_PREFIX
        embedding = self._model.encode(
            prefix + text,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return embedding.tolist()

    def embed_batch(
        self,
        texts: List[str],
        *,
        batch_size: int = 32,
        is_query: bool = False,
    ) -> List[List[float]]:
        """Embed a batch of texts. Returns one L2-normalized vector per text."""
        if not texts:
            return []

        self._load_model()
        prefix = _QUERY_PREFIX if is_query else _PASSAGE_PREFIX
        embeddings = self._model.encode(
            [prefix + t for t in texts],
            batch_size=batch_size,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return embeddings.tolist()


class EmbeddingGateway:
    """
    Async text -> vector gateway.

    Raises on failure or timeout (asyncio.TimeoutError); callers decide how
    to degrade. Blank text is rejected before reaching the model.
    """

    def __init__(self, service: EmbeddingService, timeout_s: float | None = None) -> None:
        self._service = service
        self._timeout_s = timeout_s if timeout_s is not None else settings.embedding_timeout_s

    @property
    def dimensions(self) -> int:
        return self._service.dimensions

    async def embed(self, text: str, *, is_query: bool = True) -> list[float]:
        if not text or not text.strip():
            raise ValueError("cannot embed blank text")
        return await asyncio.wait_for(
            asyncio.to_thread(self._service.embed_single, text, is_query=is_query),
            timeout=self._timeout_s,
        )

    async def embed_batch(self, texts: list[str], *, is_query: bool = False) -> list[list[float]]:
        if not texts:
            return []
        return await asyncio.wait_for(
            asyncio.to_thread(self._service.embed_batch, texts, is_query=is_query),
            timeout=self._timeout_s,
        )


# Module-level singleton
embedding_service = EmbeddingService()
