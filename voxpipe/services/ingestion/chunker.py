"""Character-window text chunking with overlap and sentence-aware cuts.

Splits whitespace-normalized text into windows of at most ``chunk_size``
characters.  Where a window does not reach the end of the text, the cut is
moved back to the nearest sentence terminator (". ", "! ", "? " or a
newline) inside the window, else to the nearest space, else the window is
cut hard.  Consecutive windows share ``overlap`` characters so that content
spanning a boundary appears whole in at least one chunk.

Chunking is a pure function of the text and the two settings.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(logger_name=__name__)

# Checked in this order; the right-most match in the window wins.
_SENTENCE_ENDERS: tuple[str, ...] = (". ", "! ", "? ", "\n")


class TextChunker:
    """Splits text into overlapping, boundary-aware chunks.

    Parameters
    ----------
    chunk_size:
        Target maximum characters per chunk (default 1000).
    overlap:
        Characters shared by consecutive chunks (default 200).
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError("overlap must be >= 0 and smaller than chunk_size")
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str) -> list[str]:
        """Split *text* into an ordered list of non-empty chunks.

        Empty or whitespace-only input returns an empty list.  Text no longer
        than ``chunk_size`` after normalization is returned as one chunk.
        """
        normalized = self.normalize(text)
        if not normalized:
            return []
        if len(normalized) <= self._chunk_size:
            return [normalized]

        length = len(normalized)
        chunks: list[str] = []
        start = 0
        while start < length:
            end = min(start + self._chunk_size, length)
            if end < length:
                end = self._find_cut(normalized, start, end)

            piece = normalized[start:end].strip()
            if piece:
                chunks.append(piece)

            # Jump to the cut when stepping back by the overlap would not advance.
            next_start = end - self._overlap
            if next_start <= start:
                next_start = end
            start = next_start

        logger.debug(
            "text_chunked",
            characters=length,
            chunks=len(chunks),
            chunk_size=self._chunk_size,
            overlap=self._overlap,
        )
        return chunks

    @staticmethod
    def normalize(text: str) -> str:
        """Collapse whitespace runs to single spaces and trim."""
        if not text:
            return ""
        return " ".join(text.split())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _find_cut(text: str, start: int, end: int) -> int:
        """Return the exclusive end offset for the window ``[start, end)``.

        Terminators and spaces must lie wholly inside the window and start
        strictly after ``start``.
        """
        best = -1
        for ender in _SENTENCE_ENDERS:
            pos = text.rfind(ender, start + 1, end)
            if pos != -1:
                best = max(best, pos + len(ender))
        if best != -1:
            return best

        space = text.rfind(" ", start + 1, end)
        if space != -1:
            return space

        return end
