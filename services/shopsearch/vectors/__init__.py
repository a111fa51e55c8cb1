"""services.shopsearch.vectors — product and user query vectors."""

from services.shopsearch.vectors.builder import VectorBuilder

__all__ = ["VectorBuilder"]
