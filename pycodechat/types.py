"""Common type definitions for PyCodeChat.

This module contains shared enums and data structures used across the
indexing, storage and retrieval layers, so that storage code never has to
import from the search package.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class IntentType(Enum):
    """Query intent taxonomy, in classification priority order."""

    FUNCTION = "function"
    CLASS = "class"
    VARIABLE = "variable"
    FILE = "file"
    DEBUG = "debug"
    EXPLAIN = "explain"
    CONCEPT = "concept"
    GENERAL = "general"


class SearchStrategy(Enum):
    """Retrieval strategy hint derived from query analysis."""

    PRECISE = "precise"
    BROAD = "broad"
    EXPLORATORY = "exploratory"


class Priority(Enum):
    """Retrieval priority derived from query analysis."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IndexingStatus(Enum):
    """Lifecycle states of a project indexing run."""

    PENDING = "pending"
    SCANNING = "scanning"
    INDEXING = "indexing"
    COMPLETED = "completed"
    FAILED = "failed"


class ChunkType(Enum):
    """Kinds of code chunks stored in the vector index."""

    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    VARIABLE = "variable"
    COMMENT = "comment"
    GENERAL = "general"


@dataclass
class CodeChunk:
    """Contiguous 1-based line range of a source file."""

    content: str
    start_line: int
    end_line: int


@dataclass
class CodeMetadata:
    """Metadata stored with every chunk vector.

    ``project_id`` is the tenancy key used to filter every search.
    """

    project_id: str
    file_id: str
    file_path: str
    file_name: str
    language: str
    start_line: int
    end_line: int
    chunk_type: ChunkType = ChunkType.GENERAL
    symbols: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation stored in the vector index."""
        data = {
            "projectId": self.project_id,
            "fileId": self.file_id,
            "filePath": self.file_path,
            "fileName": self.file_name,
            "language": self.language,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "chunkType": self.chunk_type.value,
        }
        if self.symbols:
            data["symbols"] = list(self.symbols)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CodeMetadata":
        """Create metadata from its wire representation."""
        return cls(
            project_id=data.get("projectId", ""),
            file_id=data.get("fileId", ""),
            file_path=data.get("filePath", ""),
            file_name=data.get("fileName", ""),
            language=data.get("language", "text"),
            start_line=int(data.get("startLine", 0)),
            end_line=int(data.get("endLine", 0)),
            chunk_type=ChunkType(data.get("chunkType", ChunkType.GENERAL.value)),
            symbols=list(data.get("symbols", [])),
        )


@dataclass
class SearchResult:
    """A single vector search hit.

    ``score`` is the raw similarity from the vector backend and is never
    modified. ``enhanced_score`` is only set on re-ranker output.
    """

    id: str
    score: float
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    relevance_reason: Optional[str] = None
    enhanced_score: Optional[float] = None

    @property
    def file_path(self) -> str:
        return self.metadata.get("filePath", "")

    @property
    def language(self) -> Optional[str]:
        return self.metadata.get("language")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, filtering None values."""
        result = {
            "id": self.id,
            "score": self.score,
            "content": self.content,
            "metadata": self.metadata,
        }
        if self.relevance_reason is not None:
            result["relevance_reason"] = self.relevance_reason
        if self.enhanced_score is not None:
            result["enhanced_score"] = self.enhanced_score
        return result
