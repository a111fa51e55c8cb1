"""services.shopsearch.embedding — text -> vector generation."""

from services.shopsearch.embedding.service import EmbeddingGateway, EmbeddingService, embedding_service

__all__ = ["EmbeddingGateway", "EmbeddingService", "embedding_service"]
