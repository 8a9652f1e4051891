"""Boundary-preserving character splitter used by the content normalizer."""

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", "! ", "? ", " ")


class TextSplitter:
    """Split text into overlapping windows that end on natural boundaries.

    Each window is at most ``chunk_size`` characters. The splitter tries the
    separators in priority order (paragraph, line, sentence, word) and breaks
    after the last occurrence of the first one found in the window. It cuts
    hard at ``chunk_size`` only when no separator fits. The next window starts
    exactly ``chunk_overlap`` characters before the previous one ended.

    Chunks are exact substrings of the trimmed input, so ``merge_chunks`` can
    rebuild it from them.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: tuple[str, ...] = DEFAULT_SEPARATORS,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = separators

    def split_text(self, text: str) -> list[str]:
        """Split ``text`` into bounded, overlapping chunks.

        Args:
            text: Raw input. Leading and trailing whitespace is dropped first.

        Returns:
            List of chunks in document order; empty if the input is blank.
        """
        text = text.strip()
        if not text:
            return []
        if len(text) <= self.chunk_size:
            return [text]

        chunks: list[str] = []
        start = 0
        while len(text) - start > self.chunk_size:
            end = self._find_break(text, start)
            chunks.append(text[start:end])
            start = end - self.chunk_overlap
        chunks.append(text[start:])
        return chunks

    def merge_chunks(self, chunks: list[str]) -> str:
        """Undo ``split_text`` by dropping the overlap from every chunk after the first."""
        if not chunks:
            return ""
        return chunks[0] + "".join(chunk[self.chunk_overlap :] for chunk in chunks[1:])

    def _find_break(self, text: str, start: int) -> int:
        window_end = start + self.chunk_size
        # The break must land past the overlap or the next window would not advance
        earliest = start + self.chunk_overlap + 1

        for separator in self.separators:
            idx = text.rfind(separator, earliest, window_end)
            if idx != -1:
                return idx + len(separator)

        return window_end
