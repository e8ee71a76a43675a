"""
Chunking Service

Splits normalised source text into fixed-size, overlapping character
windows suitable for embedding.

Defaults sized for text-embedding-3-small:
    - chunk_size=1000 chars: well inside the model's input window
    - chunk_overlap=200 chars: a sentence cut at one boundary is
      still whole in the neighbouring chunk
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from redress.core.exceptions import ConfigError
from redress.models.schemas import Chunk, Source

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE: int = 1000
DEFAULT_CHUNK_OVERLAP: int = 200


def validate_window(size: int, overlap: int) -> None:
    """Raise ConfigError unless ``0 <= overlap < size``."""
    if size <= 0:
        raise ConfigError(f"chunk_size must be positive, got {size}")
    if overlap < 0:
        raise ConfigError(f"chunk_overlap must not be negative, got {overlap}")
    if overlap >= size:
        raise ConfigError(
            f"chunk_overlap ({overlap}) must be less than chunk_size ({size})"
        )


def chunk_text(text: str, size: int, overlap: int) -> Iterator[str]:
    """
    Lazily yield windows of ``size`` characters advancing by ``size - overlap``.

    The last window may be shorter than ``size``; text shorter than
    ``size`` is a single window. Empty text yields nothing. Unlike a plain
    ``while start < len(text)`` loop, no window is emitted once one has
    reached the end of the text.

    Validation happens on call, not on first ``next()``, so a bad
    configuration fails before any work is done.

    Raises:
        ConfigError: If ``overlap >= size`` or either value is out of range.
    """
    validate_window(size, overlap)
    return _windows(text, size, size - overlap)


def _windows(text: str, size: int, step: int) -> Iterator[str]:
    for start in range(0, len(text), step):
        yield text[start : start + size]
        # A further window would sit entirely inside this one.
        if start + size >= len(text):
            return


class TextChunker:
    """
    Splits a source's text into overlapping Chunks.

    Usage::

        chunker = TextChunker(chunk_size=1000, chunk_overlap=200)
        for chunk in chunker.split(source, text):
            ...

    Each ``split`` call returns a fresh generator, so the sequence can
    be restarted by calling it again.

    Args:
        chunk_size: Maximum characters per chunk.
        chunk_overlap: Characters shared between consecutive chunks.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        validate_window(chunk_size, chunk_overlap)
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    @property
    def chunk_size(self) -> int:
        """Maximum characters per chunk."""
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        """Characters shared between consecutive chunks."""
        return self._chunk_overlap

    def split(self, source: Source, text: str) -> Iterator[Chunk]:
        """Yield Chunks of ``text`` tagged with the source they came from."""
        for window in chunk_text(text, self._chunk_size, self._chunk_overlap):
            yield Chunk(
                source_location=source.location,
                content=window,
                source_tag=source.source_tag,
            )
