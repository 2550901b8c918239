"""Vector search gateway and backends for PyCodeChat.

The gateway is the single I/O boundary to the vector index: it shapes the
per-project filter expression, maps backend hits into SearchResult objects
and converts every backend failure into an unsuccessful
VectorOperationResult. The default backend keeps vectors in a FAISS
``IndexIDMap`` over ``IndexFlatIP`` and embeds text internally, so callers
only ever pass text.
"""

import asyncio
import gzip
import logging
import pickle
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..embedders import BaseEmbedder
from ..types import CodeMetadata, SearchResult

logger = logging.getLogger(__name__)

NOT_CONFIGURED_ERROR = "Vector index not configured"

_FILTER_CLAUSE = re.compile(r"^\s*(\w+)\s*=\s*'((?:[^'\\]|\\.)*)'\s*$")
_FILTER_SPLIT = re.compile(r"\s+AND\s+", re.IGNORECASE)

# (id, content, metadata)
VectorItem = Tuple[str, str, Dict[str, Any]]


def quote_filter_value(value: str) -> str:
    return "'" + str(value).replace("\\", "\\\\").replace("'", "\\'") + "'"


def build_project_filter(project_id: str) -> str:
    return f"projectId = {quote_filter_value(project_id)}"


def parse_filter(expression: Optional[str]) -> Dict[str, str]:
    """Parse a ``key = 'value' AND key2 = 'value2'`` filter expression.

    Raises:
        ValueError: If a clause is malformed
    """
    if not expression or not expression.strip():
        return {}

    conditions = {}
    for clause in _FILTER_SPLIT.split(expression.strip()):
        match = _FILTER_CLAUSE.match(clause)
        if not match:
            raise ValueError(f"Invalid filter clause: {clause!r}")
        key, raw_value = match.groups()
        conditions[key] = re.sub(r"\\(.)", r"\1", raw_value)
    return conditions


def matches_filter(metadata: Dict[str, Any], conditions: Dict[str, str]) -> bool:
    return all(
        key in metadata and str(metadata[key]) == value
        for key, value in conditions.items()
    )


class VectorBackend(ABC):
    """Abstract vector index that embeds and searches text internally."""

    @abstractmethod
    def upsert(self, id: str, content: str, metadata: Dict[str, Any]) -> None:
        """Insert or replace one vector with its content and metadata."""
        pass

    def upsert_many(self, items: Sequence[VectorItem]) -> int:
        """Insert or replace several vectors, returning how many were written."""
        for id, content, metadata in items:
            self.upsert(id, content, metadata)
        return len(items)

    @abstractmethod
    def query(
        self,
        data: str,
        top_k: int,
        filter: Optional[str] = None,
        include_metadata: bool = True,
    ) -> List[Dict[str, Any]]:
        """Return up to ``top_k`` hits as ``{id, score, content, metadata}``."""
        pass

    @abstractmethod
    def delete(self, ids: List[str]) -> int:
        """Delete vectors by id, returning how many were removed."""
        pass

    @abstractmethod
    def info(self) -> Dict[str, Any]:
        """Return index statistics."""
        pass

    def save(self) -> None:
        """Persist the index; backends without persistence do nothing."""

    def load(self) -> None:
        """Load a persisted index; backends without persistence do nothing."""


@dataclass
class VectorRecord:
    """Content and metadata kept beside each FAISS vector."""

    vector_id: int
    id: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class FaissVectorBackend(VectorBackend):
    """FAISS-backed vector index with true removal and persistence.

    Vectors are normalized embeddings, so inner product equals cosine
    similarity. The index is created on the first upsert once the embedding
    dimension is known.
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        index_path: Optional[Union[str, Path]] = None,
        records_path: Optional[Union[str, Path]] = None,
    ) -> None:
        self.embedder = embedder
        self.index_path = Path(index_path) if index_path else None
        self.records_path = Path(records_path) if records_path else None

        self._index = None
        self._records: Dict[str, VectorRecord] = {}
        self._by_vector_id: Dict[int, str] = {}
        self._next_vector_id = 0
        self._lock = threading.RLock()

    def _ensure_index(self, dimension: int) -> None:
        if self._index is not None:
            if self._index.d != dimension:
                raise ValueError(
                    f"Vector dimension {dimension} doesn't match index dimension {self._index.d}"
                )
            return

        import faiss

        self._index = faiss.IndexIDMap(faiss.IndexFlatIP(dimension))
        logger.info(f"Initialized FAISS IndexIDMap(IndexFlatIP) with dimension {dimension}")

    def _remove_vector_ids(self, vector_ids: List[int]) -> None:
        if vector_ids and self._index is not None:
            self._index.remove_ids(np.array(vector_ids, dtype=np.int64))
        for vector_id in vector_ids:
            self._by_vector_id.pop(vector_id, None)

    def upsert(self, id: str, content: str, metadata: Dict[str, Any]) -> None:
        self.upsert_many([(id, content, metadata)])

    def upsert_many(self, items: Sequence[VectorItem]) -> int:
        """Embed all contents in one batch and add them with a single FAISS call.

        Later items win when the same id appears twice.
        """
        if not items:
            return 0

        vectors = self.embedder.embed_documents([content for _, content, _ in items])

        with self._lock:
            self._ensure_index(vectors.shape[1])

            ids = [id for id, _, _ in items]
            replaced = [self._records.pop(id) for id in dict.fromkeys(ids) if id in self._records]
            self._remove_vector_ids([record.vector_id for record in replaced])

            vector_ids = np.arange(
                self._next_vector_id, self._next_vector_id + len(items), dtype=np.int64
            )
            self._next_vector_id += len(items)
            self._index.add_with_ids(vectors, vector_ids)

            for vector_id, (id, content, metadata) in zip(vector_ids.tolist(), items):
                previous = self._records.get(id)
                if previous is not None:
                    self._index.remove_ids(np.array([previous.vector_id], dtype=np.int64))
                    self._by_vector_id.pop(previous.vector_id, None)
                self._records[id] = VectorRecord(vector_id, id, content, dict(metadata))
                self._by_vector_id[vector_id] = id
            return len(items)

    def query(
        self,
        data: str,
        top_k: int,
        filter: Optional[str] = None,
        include_metadata: bool = True,
    ) -> List[Dict[str, Any]]:
        conditions = parse_filter(filter)

        with self._lock:
            if self._index is None or self._index.ntotal == 0 or top_k <= 0:
                return []

            query_vector = np.asarray(
                self.embedder.embed_query(data), dtype=np.float32
            ).reshape(1, -1)

            # Flat search is exhaustive, so filtering scans every vector
            k = self._index.ntotal if conditions else min(top_k, self._index.ntotal)
            scores, vector_ids = self._index.search(query_vector, k)

            hits = []
            for score, vector_id in zip(scores[0], vector_ids[0]):
                if vector_id < 0:
                    continue
                record = self._records.get(self._by_vector_id.get(int(vector_id), ""))
                if record is None or not matches_filter(record.metadata, conditions):
                    continue
                hits.append(
                    {
                        "id": record.id,
                        "score": float(score),
                        "content": record.content,
                        "metadata": dict(record.metadata) if include_metadata else {},
                    }
                )
                if len(hits) >= top_k:
                    break
            return hits

    def delete(self, ids: List[str]) -> int:
        with self._lock:
            records = [self._records.pop(id) for id in ids if id in self._records]
            self._remove_vector_ids([record.vector_id for record in records])
            return len(records)

    def info(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "vectorCount": int(self._index.ntotal) if self._index is not None else 0,
                "dimension": int(self._index.d) if self._index is not None else None,
                "indexType": "IndexIDMap(IndexFlatIP)",
                "embedding": self.embedder.get_model_info(),
            }

    def save(self) -> None:
        """Save the FAISS index and the record map."""
        if self.index_path is None or self.records_path is None:
            logger.warning("No persistence paths configured for vector index")
            return

        import faiss

        with self._lock:
            if self._index is None:
                logger.info("Vector index is empty, nothing to save")
                return

            self.index_path.parent.mkdir(parents=True, exist_ok=True)
            faiss.write_index(self._index, str(self.index_path))
            with gzip.open(self.records_path, "wb") as f:
                pickle.dump(
                    {
                        "records": self._records,
                        "next_vector_id": self._next_vector_id,
                    },
                    f,
                )
            logger.info(
                f"Saved FAISS index with {self._index.ntotal} vectors to {self.index_path}"
            )

    def load(self) -> None:
        """Load a previously saved index; missing files leave the index empty."""
        if self.index_path is None or self.records_path is None:
            return
        if not self.index_path.exists() or not self.records_path.exists():
            logger.info(f"Index file {self.index_path} does not exist, starting with empty index")
            return

        import faiss

        with self._lock:
            self._index = faiss.read_index(str(self.index_path))
            with gzip.open(self.records_path, "rb") as f:
                data = pickle.load(f)
            self._records = data["records"]
            self._next_vector_id = data["next_vector_id"]
            self._by_vector_id = {
                record.vector_id: record.id for record in self._records.values()
            }
            logger.info(
                f"Loaded FAISS index from {self.index_path} with {self._index.ntotal} vectors"
            )


@dataclass
class VectorOperationResult:
    """Discriminated result of a gateway operation."""

    success: bool
    results: List[SearchResult] = field(default_factory=list)
    error: Optional[str] = None
    stats: Optional[Dict[str, Any]] = None


class VectorSearchGateway:
    """Async, non-raising facade over an optional vector backend."""

    def __init__(self, backend: Optional[VectorBackend] = None) -> None:
        self.backend = backend

    def is_configured(self) -> bool:
        return self.backend is not None

    def _not_configured(self) -> VectorOperationResult:
        return VectorOperationResult(success=False, error=NOT_CONFIGURED_ERROR)

    async def query(
        self, query_text: str, project_id: str, top_k: int = 10
    ) -> VectorOperationResult:
        """Search one project's vectors."""
        if not self.is_configured():
            return self._not_configured()

        try:
            hits = await asyncio.to_thread(
                self.backend.query,
                query_text,
                top_k,
                build_project_filter(project_id),
                True,
            )
            results = [
                SearchResult(
                    id=str(hit["id"]),
                    score=float(hit.get("score", 0.0)),
                    content=hit.get("content") or "",
                    metadata=hit.get("metadata") or {},
                )
                for hit in hits
            ]
        except Exception as e:
            logger.error(f"Vector search failed for {query_text!r}: {e}")
            return VectorOperationResult(success=False, error=str(e))
        return VectorOperationResult(success=True, results=results)

    async def upsert(
        self, id: str, content: str, metadata: Union[CodeMetadata, Dict[str, Any]]
    ) -> VectorOperationResult:
        if not self.is_configured():
            return self._not_configured()

        if isinstance(metadata, CodeMetadata):
            metadata = metadata.to_dict()

        try:
            await asyncio.to_thread(self.backend.upsert, id, content, metadata)
        except Exception as e:
            logger.error(f"Vector upsert failed for {id}: {e}")
            return VectorOperationResult(success=False, error=str(e))
        return VectorOperationResult(success=True)

    async def upsert_many(
        self, items: Sequence[Tuple[str, str, Union[CodeMetadata, Dict[str, Any]]]]
    ) -> VectorOperationResult:
        """Write a batch of chunks, e.g. all chunks of one file.

        The batch succeeds or fails as a whole.
        """
        if not self.is_configured():
            return self._not_configured()
        if not items:
            return VectorOperationResult(success=True, stats={"upserted": 0})

        batch = [
            (id, content, metadata.to_dict() if isinstance(metadata, CodeMetadata) else metadata)
            for id, content, metadata in items
        ]
        try:
            written = await asyncio.to_thread(self.backend.upsert_many, batch)
        except Exception as e:
            logger.error(f"Vector batch upsert of {len(batch)} chunks failed: {e}")
            return VectorOperationResult(success=False, error=str(e))
        return VectorOperationResult(success=True, stats={"upserted": written})

    async def delete(self, ids: List[str]) -> VectorOperationResult:
        if not self.is_configured():
            return self._not_configured()
        if not ids:
            return VectorOperationResult(success=True, stats={"deleted": 0})

        try:
            deleted = await asyncio.to_thread(self.backend.delete, list(ids))
        except Exception as e:
            logger.error(f"Vector delete failed for {len(ids)} ids: {e}")
            return VectorOperationResult(success=False, error=str(e))
        return VectorOperationResult(success=True, stats={"deleted": deleted})

    async def info(self) -> VectorOperationResult:
        if not self.is_configured():
            return self._not_configured()

        try:
            stats = await asyncio.to_thread(self.backend.info)
        except Exception as e:
            logger.error(f"Vector info failed: {e}")
            return VectorOperationResult(success=False, error=str(e))
        return VectorOperationResult(success=True, stats=stats)
