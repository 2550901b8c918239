"""Indexing pipeline: crawling, filtering, chunking, progress and jobs."""

from .chunker import chunk_code
from .crawler import FileCrawler
from .filters import get_language, should_index_file
from .jobs import IndexingAlreadyRunningError, IndexingJobRegistry
from .pipeline import FileIndexOutcome, IndexingPipeline
from .progress import IndexingProgress, InMemoryProgressTracker, ProgressTracker

__all__ = [
    "FileCrawler",
    "FileIndexOutcome",
    "IndexingAlreadyRunningError",
    "IndexingJobRegistry",
    "IndexingPipeline",
    "IndexingProgress",
    "InMemoryProgressTracker",
    "ProgressTracker",
    "chunk_code",
    "get_language",
    "should_index_file",
]
