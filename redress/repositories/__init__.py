"""Repositories package."""

from redress.repositories.documents import VectorStore

__all__ = [
    "VectorStore",
]
