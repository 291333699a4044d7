"""Fixed-window text chunker with overlap.

Windows start at offset 0 and advance by ``size - overlap`` characters until
the start passes the end of the text. The last window may be shorter than
``size`` and is always kept. Chunk text is never stripped or rewritten, so
the union of windows covers every character of the input.
"""

from __future__ import annotations

DEFAULT_SIZE = 1800
DEFAULT_OVERLAP = 200


class FixedWindowChunker:
    """Split text into overlapping character windows.

    Args:
        size: Window length in characters (>= 1).
        overlap: Characters shared by consecutive windows (0 <= overlap < size).

    Raises:
        ValueError: On an invalid size/overlap pair. This is a configuration
            error and is checked once, not per call.
    """

    def __init__(self, size: int = DEFAULT_SIZE, overlap: int = DEFAULT_OVERLAP) -> None:
        if size < 1:
            raise ValueError("size must be >= 1")
        if not 0 <= overlap < size:
            raise ValueError("overlap must be >= 0 and < size")
        self.size = size
        self.overlap = overlap

    @property
    def step(self) -> int:
        return self.size - self.overlap

    def split(self, text: str) -> list[str]:
        """Return the ordered window texts of *text* (empty text → [])."""
        return [text[start:start + self.size] for start in self.offsets(text)]

    def offsets(self, text: str) -> range:
        """Start offsets of each window, strictly increasing."""
        return range(0, len(text), self.step)


def chunk(text: str, size: int = DEFAULT_SIZE, overlap: int = DEFAULT_OVERLAP) -> list[str]:
    """Convenience wrapper around :class:`FixedWindowChunker`."""
    return FixedWindowChunker(size, overlap).split(text)
