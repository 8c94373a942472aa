"""Embedding collaborator interface."""

from .protocol import Embedder, cosine_similarity

__all__ = ["Embedder", "cosine_similarity"]
