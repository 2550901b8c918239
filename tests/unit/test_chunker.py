"""Unit tests for the line-accumulating code chunker."""

import pytest

from pycodechat.indexer.chunker import chunk_code


class TestChunkCode:
    def test_small_file_is_one_chunk(self, sample_code_content):
        chunks = chunk_code(sample_code_content, 10000)

        assert len(chunks) == 1
        assert chunks[0].content == sample_code_content
        assert chunks[0].start_line == 1
        assert chunks[0].end_line == len(sample_code_content.split("\n"))

    def test_chunks_are_contiguous_and_cover_every_line(self, sample_code_content):
        chunks = chunk_code(sample_code_content, 120)
        lines = sample_code_content.split("\n")

        assert len(chunks) > 1
        assert chunks[0].start_line == 1
        assert chunks[-1].end_line == len(lines)
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_line == previous.end_line + 1
        assert "\n".join(chunk.content for chunk in chunks) == sample_code_content

    def test_chunks_respect_cap(self):
        content = "\n".join(f"line number {i}" for i in range(100))

        for chunk in chunk_code(content, 100):
            assert len(chunk.content) <= 100

    def test_long_line_becomes_its_own_chunk(self):
        content = "short\n" + "x" * 50 + "\nend"

        chunks = chunk_code(content, 20)

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 1), (2, 2), (3, 3)]
        assert chunks[1].content == "x" * 50

    def test_empty_content(self):
        assert chunk_code("") == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunk_code("x", 0)
