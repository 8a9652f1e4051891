"""Unit tests for the boundary-preserving text splitter."""

import pytest

from src.channel_rag.text_splitter import TextSplitter


@pytest.mark.unit
class TestTextSplitter:
    """Test suite for TextSplitter."""

    @pytest.fixture
    def splitter(self) -> TextSplitter:
        return TextSplitter(chunk_size=1000, chunk_overlap=200)

    @pytest.fixture
    def long_text(self) -> str:
        paragraphs = [
            " ".join(f"Sentence {p}-{s} talks about topic {s}." for s in range(15))
            for p in range(8)
        ]
        return "\n\n".join(paragraphs)

    def test_rejects_overlap_not_smaller_than_size(self) -> None:
        """Test that overlap must be smaller than chunk size."""
        with pytest.raises(ValueError):
            TextSplitter(chunk_size=100, chunk_overlap=100)

    def test_blank_input_yields_nothing(self, splitter: TextSplitter) -> None:
        """Test that blank input produces no chunks."""
        assert splitter.split_text("") == []
        assert splitter.split_text("   \n\n  ") == []

    def test_short_input_is_single_trimmed_chunk(self, splitter: TextSplitter) -> None:
        """Test that input shorter than chunk size comes back as one trimmed chunk."""
        assert splitter.split_text("  Hello world.\n") == ["Hello world."]

    def test_input_exactly_chunk_size_is_single_chunk(self) -> None:
        """Test the boundary where input length equals chunk size."""
        splitter = TextSplitter(chunk_size=10, chunk_overlap=2)
        assert splitter.split_text("abcdefghij") == ["abcdefghij"]

    def test_chunks_respect_size(self, splitter: TextSplitter, long_text: str) -> None:
        """Test that no chunk exceeds the configured size."""
        chunks = splitter.split_text(long_text)

        assert len(chunks) > 1
        assert all(0 < len(chunk) <= 1000 for chunk in chunks)

    def test_consecutive_chunks_overlap_exactly(
        self, splitter: TextSplitter, long_text: str
    ) -> None:
        """Test that each chunk starts with the last overlap characters of the previous one."""
        chunks = splitter.split_text(long_text)

        for previous, current in zip(chunks, chunks[1:]):
            assert previous[-200:] == current[:200]

    def test_merge_reconstructs_original(self, splitter: TextSplitter, long_text: str) -> None:
        """Test the round-trip law: merging chunks minus overlap gives back the input."""
        chunks = splitter.split_text(long_text)

        assert splitter.merge_chunks(chunks) == long_text.strip()

    def test_prefers_paragraph_boundary(self, splitter: TextSplitter) -> None:
        """Test that a paragraph break inside the window is used as the cut point."""
        text = "A" * 500 + "\n\n" + "word " * 300

        chunks = splitter.split_text(text)

        assert chunks[0] == "A" * 500 + "\n\n"

    def test_prefers_sentence_over_word_boundary(self, splitter: TextSplitter) -> None:
        """Test that without newlines the cut lands after a sentence end."""
        text = " ".join(f"This is sentence number {i} of the test." for i in range(60))

        chunks = splitter.split_text(text)

        assert chunks[0].endswith(". ")

    def test_falls_back_to_word_boundary(self, splitter: TextSplitter) -> None:
        """Test that text without sentences is cut after a space."""
        text = " ".join(["lorem"] * 400)

        chunks = splitter.split_text(text)

        assert chunks[0].endswith(" ")
        assert splitter.merge_chunks(chunks) == text

    def test_hard_cut_without_boundaries(self, splitter: TextSplitter) -> None:
        """Test that a boundary-free string is cut at exactly the chunk size."""
        text = "a" * 2500

        chunks = splitter.split_text(text)

        assert [len(c) for c in chunks] == [1000, 1000, 900]
        assert splitter.merge_chunks(chunks) == text

    def test_zero_overlap(self) -> None:
        """Test that zero overlap yields a plain partition."""
        splitter = TextSplitter(chunk_size=10, chunk_overlap=0)
        text = "abcdefghijklmnopqrstuvwxy"

        chunks = splitter.split_text(text)

        assert "".join(chunks) == text
