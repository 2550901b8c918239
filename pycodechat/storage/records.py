"""Project, file, chunk and chat records for PyCodeChat.

This module defines the persistence boundary used by the indexing pipeline
and the chat service, plus an in-memory implementation that snapshots to a
gzip-compressed pickle file.
"""

import gzip
import logging
import pickle
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..types import IndexingStatus

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class ProjectNotFoundError(KeyError):
    """Raised when a project id is unknown."""

    def __init__(self, project_id: str):
        super().__init__(project_id)
        self.project_id = project_id

    def __str__(self) -> str:
        return f"Project not found: {self.project_id}"


@dataclass
class ProjectRecord:
    """A registered code project."""

    name: str
    path: str
    id: str = field(default_factory=_new_id)
    description: Optional[str] = None
    language: Optional[str] = None
    framework: Optional[str] = None
    indexing_status: IndexingStatus = IndexingStatus.PENDING
    is_indexed: bool = False
    total_files: int = 0
    indexed_files: int = 0
    total_lines: int = 0
    last_indexed_at: Optional[datetime] = None
    indexing_error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["indexing_status"] = self.indexing_status.value
        for key in ("last_indexed_at", "created_at", "updated_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass
class FileRecord:
    """A source file of a project; unique on (project_id, path)."""

    project_id: str
    path: str
    name: str
    extension: str
    size: int
    lines: int
    hash: str
    id: str = field(default_factory=_new_id)
    content: Optional[str] = None
    is_indexed: bool = False
    last_indexed_at: Optional[datetime] = None


@dataclass
class ChunkRecord:
    """Local reference to one upserted chunk vector."""

    file_id: str
    content: str
    start_line: int
    end_line: int
    vector_id: str
    id: str = field(default_factory=_new_id)


@dataclass
class ChatSessionRecord:
    project_id: str
    title: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class ChatMessageRecord:
    session_id: str
    role: str
    content: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)


class ProjectStore(ABC):
    """Persistence boundary for projects, files, chunks and chat history."""

    # Projects

    @abstractmethod
    def create_project(self, name: str, path: str, **fields: Any) -> ProjectRecord:
        pass

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        pass

    @abstractmethod
    def list_projects(self) -> List[ProjectRecord]:
        pass

    @abstractmethod
    def update_project(self, project_id: str, **fields: Any) -> ProjectRecord:
        """Update fields of a project.

        Raises:
            ProjectNotFoundError: If the project does not exist
        """
        pass

    def require_project(self, project_id: str) -> ProjectRecord:
        project = self.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    # Files

    @abstractmethod
    def get_file(self, project_id: str, path: str) -> Optional[FileRecord]:
        pass

    @abstractmethod
    def upsert_file(self, project_id: str, path: str, **fields: Any) -> FileRecord:
        """Create or update the file record keyed by (project_id, path)."""
        pass

    @abstractmethod
    def list_files(
        self, project_id: str, is_indexed: Optional[bool] = None
    ) -> List[FileRecord]:
        pass

    @abstractmethod
    def mark_file_indexed(self, file_id: str, indexed_at: datetime) -> None:
        pass

    # Chunks

    @abstractmethod
    def add_chunk(
        self, file_id: str, content: str, start_line: int, end_line: int, vector_id: str
    ) -> ChunkRecord:
        pass

    @abstractmethod
    def list_chunks(self, file_id: str) -> List[ChunkRecord]:
        pass

    @abstractmethod
    def delete_chunks(self, file_id: str) -> List[ChunkRecord]:
        """Delete and return all chunk records of a file."""
        pass

    # Chat

    @abstractmethod
    def create_chat_session(self, project_id: str, title: str) -> ChatSessionRecord:
        pass

    @abstractmethod
    def get_latest_chat_session(self, project_id: str) -> Optional[ChatSessionRecord]:
        pass

    @abstractmethod
    def add_chat_message(
        self, session_id: str, role: str, content: str
    ) -> ChatMessageRecord:
        pass

    @abstractmethod
    def list_chat_messages(self, session_id: str) -> List[ChatMessageRecord]:
        pass


class InMemoryProjectStore(ProjectStore):
    """Thread-safe in-memory store with gzip/pickle snapshot persistence.

    Records are returned as copies, so callers must go through the update
    methods to change stored state.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._projects: Dict[str, ProjectRecord] = {}
        self._files: Dict[str, FileRecord] = {}
        self._file_keys: Dict[tuple, str] = {}
        self._chunks: Dict[str, List[ChunkRecord]] = {}
        self._sessions: Dict[str, ChatSessionRecord] = {}
        self._messages: Dict[str, List[ChatMessageRecord]] = {}

    def create_project(self, name: str, path: str, **fields: Any) -> ProjectRecord:
        project = ProjectRecord(name=name, path=path, **fields)
        with self._lock:
            self._projects[project.id] = project
        logger.info(f"Created project {project.id} ({name}) at {path}")
        return replace(project)

    def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        with self._lock:
            project = self._projects.get(project_id)
            return replace(project) if project else None

    def list_projects(self) -> List[ProjectRecord]:
        with self._lock:
            projects = sorted(self._projects.values(), key=lambda p: p.created_at)
            return [replace(p) for p in projects]

    def update_project(self, project_id: str, **fields: Any) -> ProjectRecord:
        with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                raise ProjectNotFoundError(project_id)
            updated = replace(project, updated_at=datetime.now(), **fields)
            self._projects[project_id] = updated
            return replace(updated)

    def get_file(self, project_id: str, path: str) -> Optional[FileRecord]:
        with self._lock:
            file_id = self._file_keys.get((project_id, path))
            return replace(self._files[file_id]) if file_id else None

    def upsert_file(self, project_id: str, path: str, **fields: Any) -> FileRecord:
        with self._lock:
            file_id = self._file_keys.get((project_id, path))
            if file_id is None:
                record = FileRecord(project_id=project_id, path=path, **fields)
                self._file_keys[(project_id, path)] = record.id
            else:
                record = replace(self._files[file_id], **fields)
            self._files[record.id] = record
            return replace(record)

    def list_files(
        self, project_id: str, is_indexed: Optional[bool] = None
    ) -> List[FileRecord]:
        with self._lock:
            return [
                replace(record)
                for record in self._files.values()
                if record.project_id == project_id
                and (is_indexed is None or record.is_indexed == is_indexed)
            ]

    def mark_file_indexed(self, file_id: str, indexed_at: datetime) -> None:
        with self._lock:
            record = self._files[file_id]
            self._files[file_id] = replace(
                record, is_indexed=True, last_indexed_at=indexed_at
            )

    def add_chunk(
        self, file_id: str, content: str, start_line: int, end_line: int, vector_id: str
    ) -> ChunkRecord:
        chunk = ChunkRecord(
            file_id=file_id,
            content=content,
            start_line=start_line,
            end_line=end_line,
            vector_id=vector_id,
        )
        with self._lock:
            self._chunks.setdefault(file_id, []).append(chunk)
        return replace(chunk)

    def list_chunks(self, file_id: str) -> List[ChunkRecord]:
        with self._lock:
            return [replace(chunk) for chunk in self._chunks.get(file_id, [])]

    def delete_chunks(self, file_id: str) -> List[ChunkRecord]:
        with self._lock:
            return self._chunks.pop(file_id, [])

    def create_chat_session(self, project_id: str, title: str) -> ChatSessionRecord:
        session = ChatSessionRecord(project_id=project_id, title=title)
        with self._lock:
            self._sessions[session.id] = session
            self._messages[session.id] = []
        return replace(session)

    def get_latest_chat_session(self, project_id: str) -> Optional[ChatSessionRecord]:
        with self._lock:
            sessions = [s for s in self._sessions.values() if s.project_id == project_id]
            if not sessions:
                return None
            return replace(max(sessions, key=lambda s: s.updated_at))

    def add_chat_message(
        self, session_id: str, role: str, content: str
    ) -> ChatMessageRecord:
        message = ChatMessageRecord(session_id=session_id, role=role, content=content)
        with self._lock:
            if session_id not in self._sessions:
                raise KeyError(f"Chat session not found: {session_id}")
            self._messages[session_id].append(message)
            self._sessions[session_id] = replace(
                self._sessions[session_id], updated_at=message.created_at
            )
        return replace(message)

    def list_chat_messages(self, session_id: str) -> List[ChatMessageRecord]:
        with self._lock:
            return [replace(m) for m in self._messages.get(session_id, [])]

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "projects": len(self._projects),
                "files": len(self._files),
                "indexed_files": sum(1 for f in self._files.values() if f.is_indexed),
                "chunks": sum(len(chunks) for chunks in self._chunks.values()),
                "chat_sessions": len(self._sessions),
            }

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "projects": dict(self._projects),
                "files": dict(self._files),
                "chunks": {k: list(v) for k, v in self._chunks.items()},
                "sessions": dict(self._sessions),
                "messages": {k: list(v) for k, v in self._messages.items()},
            }

    def from_dict(self, data: Dict[str, Any]) -> None:
        with self._lock:
            self._projects = data.get("projects", {})
            self._files = data.get("files", {})
            self._chunks = data.get("chunks", {})
            self._sessions = data.get("sessions", {})
            self._messages = data.get("messages", {})
            self._file_keys = {
                (record.project_id, record.path): record.id
                for record in self._files.values()
            }

    def save_to_file(self, filepath: str, compress: bool = True) -> None:
        """Save all records to file.

        Args:
            filepath: Path to save records
            compress: Whether to compress the file with gzip
        """
        data = self.to_dict()
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)

        if compress:
            with gzip.open(filepath, "wb") as f:
                pickle.dump(data, f)
        else:
            with open(filepath, "wb") as f:
                pickle.dump(data, f)

    def load_from_file(self, filepath: str) -> None:
        """Load records from file; a missing file leaves the store empty."""
        if not Path(filepath).exists():
            return

        try:
            with gzip.open(filepath, "rb") as f:
                data = pickle.load(f)
        except (gzip.BadGzipFile, OSError):
            with open(filepath, "rb") as f:
                data = pickle.load(f)

        self.from_dict(data)
        logger.info(f"Loaded {len(self._projects)} projects from {filepath}")
