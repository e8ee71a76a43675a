"""
Chunk De-duplication

The same statutory text often appears on several pages (an Act and its
explanatory notes, an HTML page and its PDF twin). Chunks are collapsed
on exact content before any embedding money is spent.
"""

from __future__ import annotations

from collections.abc import Iterable

from redress.models.schemas import Chunk


def dedupe(chunks: Iterable[Chunk]) -> list[Chunk]:
    """
    Collapse chunks with identical ``content``.

    Output order follows the first occurrence of each content string.
    The metadata (source) kept is that of the last occurrence.
    """
    unique: dict[str, Chunk] = {}
    for chunk in chunks:
        # Re-assigning an existing key keeps its original position.
        unique[chunk.content] = chunk
    return list(unique.values())
