"""Project indexing pipeline for PyCodeChat.

Walks a project (or, incrementally, its un-indexed file records), skips
files whose content hash is unchanged, and re-chunks and upserts everything
else into the vector index while reporting progress.
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, List, Optional

from ..search.symbols import extract_symbols
from ..storage.records import ProjectRecord, ProjectStore
from ..storage.vector import NOT_CONFIGURED_ERROR, VectorSearchGateway
from ..types import ChunkType, CodeMetadata, IndexingStatus
from .chunker import DEFAULT_MAX_CHUNK_SIZE, chunk_code
from .crawler import FileCrawler
from .filters import get_file_extension, get_language
from .progress import IndexingProgress, InMemoryProgressTracker, ProgressTracker

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[IndexingProgress], None]

DEFAULT_MAX_STORED_CONTENT_BYTES = 100000


@dataclass
class FileIndexOutcome:
    """What happened to one candidate file."""

    path: str
    lines: int
    chunked: bool
    chunks_stored: int = 0


class IndexingPipeline:
    """Indexes project files into the vector index and record store."""

    def __init__(
        self,
        store: ProjectStore,
        gateway: VectorSearchGateway,
        progress_tracker: Optional[ProgressTracker] = None,
        crawler: Optional[FileCrawler] = None,
        chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        max_stored_content_bytes: int = DEFAULT_MAX_STORED_CONTENT_BYTES,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.progress = progress_tracker or InMemoryProgressTracker()
        self.crawler = crawler or FileCrawler()
        self.chunk_size = chunk_size
        self.max_stored_content_bytes = max_stored_content_bytes

    def _report(
        self,
        project_id: str,
        on_progress: Optional[ProgressCallback],
        **fields: Any,
    ) -> None:
        progress = self.progress.update(project_id, **fields)
        if on_progress is not None:
            try:
                on_progress(progress)
            except Exception as e:
                logger.warning(f"Progress callback failed for project {project_id}: {e}")

    async def index_project(
        self,
        project_id: str,
        on_progress: Optional[ProgressCallback] = None,
        incremental: bool = False,
    ) -> Dict[str, Any]:
        """Index a project.

        Args:
            project_id: Project to index
            on_progress: Optional callback receiving IndexingProgress snapshots
            incremental: Only process file records not yet marked indexed,
                instead of walking the project directory

        Returns:
            ``{"success": True, "processed_files", "total_lines"}`` where
            ``processed_files`` counts files (re)chunked by this run, or
            ``{"success": False, "error"}``
        """
        try:
            project = self.store.require_project(project_id)
            if not self.gateway.is_configured():
                raise RuntimeError(NOT_CONFIGURED_ERROR)

            self.store.update_project(
                project_id, indexing_status=IndexingStatus.INDEXING, indexing_error=None
            )
            self.progress.start(project_id)
            self._report(
                project_id,
                on_progress,
                total_files=0,
                processed_files=0,
                current_file="Scanning files...",
                status=IndexingStatus.SCANNING,
            )

            candidates = await self._collect_candidates(project, incremental)
            logger.info(
                f"Indexing project {project_id}: {len(candidates)} candidate files "
                f"({'incremental' if incremental else 'full'})"
            )
            self._report(
                project_id,
                on_progress,
                total_files=len(candidates),
                processed_files=0,
                current_file="Starting indexing...",
                status=IndexingStatus.INDEXING,
            )

            processed_files = 0
            processed_lines = 0
            handled = 0
            for rel_path in candidates:
                self._report(
                    project_id,
                    on_progress,
                    processed_files=handled,
                    current_file=rel_path,
                )
                try:
                    outcome = await self.index_file(project, rel_path)
                except Exception as e:
                    logger.error(f"Error indexing file {rel_path}: {e}")
                    continue

                handled += 1
                if outcome.chunked:
                    processed_files += 1
                    processed_lines += outcome.lines

            file_records = self.store.list_files(project_id)
            indexed_records = [record for record in file_records if record.is_indexed]
            self.store.update_project(
                project_id,
                indexing_status=IndexingStatus.COMPLETED,
                is_indexed=True,
                total_files=len(file_records),
                indexed_files=len(indexed_records),
                total_lines=sum(record.lines for record in indexed_records),
                last_indexed_at=datetime.now(),
            )
            self._report(
                project_id,
                on_progress,
                processed_files=handled,
                current_file="Completed!",
                status=IndexingStatus.COMPLETED,
            )
            logger.info(
                f"Indexed project {project_id}: {processed_files} files re-chunked, "
                f"{handled - processed_files} unchanged, "
                f"{len(candidates) - handled} failed"
            )
            return {
                "success": True,
                "processed_files": processed_files,
                "total_lines": processed_lines,
            }

        except asyncio.CancelledError:
            self._mark_failed(project_id, on_progress, "Indexing cancelled")
            raise
        except Exception as e:
            logger.error(f"Error indexing project {project_id}: {e}")
            self._mark_failed(project_id, on_progress, str(e))
            return {"success": False, "error": str(e)}

    def _mark_failed(
        self, project_id: str, on_progress: Optional[ProgressCallback], error: str
    ) -> None:
        if self.store.get_project(project_id) is not None:
            self.store.update_project(
                project_id,
                indexing_status=IndexingStatus.FAILED,
                indexing_error=error,
            )
        self._report(
            project_id,
            on_progress,
            current_file="",
            status=IndexingStatus.FAILED,
            error=error,
        )

    async def _collect_candidates(
        self, project: ProjectRecord, incremental: bool
    ) -> List[str]:
        if incremental:
            return sorted(
                record.path
                for record in self.store.list_files(project.id, is_indexed=False)
            )
        return await asyncio.to_thread(self.crawler.crawl, project.path)

    async def index_file(self, project: ProjectRecord, rel_path: str) -> FileIndexOutcome:
        """Index one project-relative file.

        Unchanged files that are already indexed are skipped without any
        vector writes.
        """
        raw = await asyncio.to_thread((Path(project.path) / rel_path).read_bytes)
        content = raw.decode("utf-8", errors="replace")
        content_hash = hashlib.md5(raw).hexdigest()
        lines = len(content.split("\n"))

        existing = self.store.get_file(project.id, rel_path)
        if existing and existing.hash == content_hash and existing.is_indexed:
            logger.debug(f"Skipping unchanged file {rel_path}")
            return FileIndexOutcome(path=rel_path, lines=lines, chunked=False)

        name = PurePosixPath(rel_path).name
        language = get_language(rel_path)
        record = self.store.upsert_file(
            project.id,
            rel_path,
            name=name,
            extension=get_file_extension(rel_path),
            size=len(raw),
            lines=lines,
            hash=content_hash,
            content=content if len(raw) < self.max_stored_content_bytes else None,
            is_indexed=False,
        )

        stale_ids = [chunk.vector_id for chunk in self.store.delete_chunks(record.id)]
        if stale_ids:
            deleted = await self.gateway.delete(stale_ids)
            if not deleted.success:
                logger.warning(
                    f"Failed to delete {len(stale_ids)} stale vectors of {rel_path}: "
                    f"{deleted.error}"
                )

        chunks = [
            (f"{record.id}-chunk-{i}", chunk)
            for i, chunk in enumerate(chunk_code(content, self.chunk_size))
            if chunk.content.strip()
        ]
        batch = [
            (
                vector_id,
                chunk.content,
                CodeMetadata(
                    project_id=project.id,
                    file_id=record.id,
                    file_path=rel_path,
                    file_name=name,
                    language=language,
                    start_line=chunk.start_line,
                    end_line=chunk.end_line,
                    chunk_type=ChunkType.GENERAL,
                    symbols=extract_symbols(chunk.content, language),
                ),
            )
            for vector_id, chunk in chunks
        ]

        result = await self.gateway.upsert_many(batch)
        if not result.success:
            # Left un-indexed so the next incremental run retries the file
            logger.warning(
                f"Failed to upsert {len(batch)} chunks of {rel_path}: {result.error}"
            )
            return FileIndexOutcome(path=rel_path, lines=lines, chunked=True)

        for vector_id, chunk in chunks:
            self.store.add_chunk(
                record.id, chunk.content, chunk.start_line, chunk.end_line, vector_id
            )
        self.store.mark_file_indexed(record.id, datetime.now())
        return FileIndexOutcome(
            path=rel_path, lines=lines, chunked=True, chunks_stored=len(chunks)
        )
