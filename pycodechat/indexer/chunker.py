"""Line-accumulating chunker for source files."""

from typing import List

from ..types import CodeChunk

DEFAULT_MAX_CHUNK_SIZE = 1000


def chunk_code(content: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE) -> List[CodeChunk]:
    """Split content into contiguous, non-overlapping line ranges.

    Lines are appended to the current chunk until adding the next line
    (plus its newline) would exceed ``max_chunk_size``; the chunk is then
    closed, provided it already holds content. A single line longer than
    the cap becomes a chunk of its own. Chunks cover every line, so blank
    chunks are possible and left for callers to skip.

    Args:
        content: File content
        max_chunk_size: Soft character cap per chunk

    Returns:
        CodeChunk list with 1-based inclusive line numbers
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    if not content:
        return []

    lines = content.split("\n")
    chunks: List[CodeChunk] = []
    current: List[str] = []
    current_length = 0
    start_line = 1

    for line_number, line in enumerate(lines, start=1):
        if current and current_length + len(line) + 1 > max_chunk_size:
            chunks.append(CodeChunk("\n".join(current), start_line, line_number - 1))
            current = []
            current_length = 0
            start_line = line_number

        current_length += len(line) + (1 if current else 0)
        current.append(line)

    if current:
        chunks.append(CodeChunk("\n".join(current), start_line, len(lines)))

    return chunks
