"""Storage layer for PyCodeChat: vector index gateway and record store."""

from .records import (
    ChatMessageRecord,
    ChatSessionRecord,
    ChunkRecord,
    FileRecord,
    InMemoryProjectStore,
    ProjectNotFoundError,
    ProjectRecord,
    ProjectStore,
)
from .vector import (
    NOT_CONFIGURED_ERROR,
    FaissVectorBackend,
    VectorBackend,
    VectorOperationResult,
    VectorSearchGateway,
)

__all__ = [
    "ChatMessageRecord",
    "ChatSessionRecord",
    "ChunkRecord",
    "FaissVectorBackend",
    "FileRecord",
    "InMemoryProjectStore",
    "NOT_CONFIGURED_ERROR",
    "ProjectNotFoundError",
    "ProjectRecord",
    "ProjectStore",
    "VectorBackend",
    "VectorOperationResult",
    "VectorSearchGateway",
]
