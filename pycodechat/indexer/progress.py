"""Indexing progress tracking.

The indexing pipeline writes progress through a ProgressTracker and the
server's polling tool reads it back through the same interface. Entries of
finished runs expire a fixed time after completion or failure.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..types import IndexingStatus

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (IndexingStatus.COMPLETED, IndexingStatus.FAILED)


@dataclass
class IndexingProgress:
    """Snapshot of one project's indexing run."""

    total_files: int = 0
    processed_files: int = 0
    current_file: str = ""
    status: IndexingStatus = IndexingStatus.PENDING
    error: Optional[str] = None
    start_time: datetime = field(default_factory=datetime.now)
    finished_at: Optional[float] = None

    @property
    def percentage(self) -> float:
        if self.total_files <= 0:
            return 100.0 if self.status is IndexingStatus.COMPLETED else 0.0
        return round(100.0 * self.processed_files / self.total_files, 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "current_file": self.current_file,
            "status": self.status.value,
            "error": self.error,
            "start_time": self.start_time.isoformat(),
            "percentage": self.percentage,
        }


class ProgressTracker(ABC):
    """Keyed store of indexing progress."""

    @abstractmethod
    def start(self, project_id: str) -> IndexingProgress:
        """Reset progress for a new run."""
        pass

    @abstractmethod
    def update(self, project_id: str, **fields: Any) -> IndexingProgress:
        """Update fields of the current run's progress."""
        pass

    @abstractmethod
    def get(self, project_id: str) -> Optional[IndexingProgress]:
        """Return a copy of the progress, or None if unknown or expired."""
        pass

    @abstractmethod
    def remove(self, project_id: str) -> None:
        pass


class InMemoryProgressTracker(ProgressTracker):
    """Process-wide progress store with lazy expiry of finished runs."""

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, IndexingProgress] = {}
        self._lock = threading.Lock()

    def start(self, project_id: str) -> IndexingProgress:
        progress = IndexingProgress(status=IndexingStatus.SCANNING)
        with self._lock:
            self._entries[project_id] = progress
        return replace(progress)

    def update(self, project_id: str, **fields: Any) -> IndexingProgress:
        with self._lock:
            current = self._entries.get(project_id) or IndexingProgress()
            progress = replace(current, **fields)
            if progress.status in TERMINAL_STATUSES and progress.finished_at is None:
                progress.finished_at = self._clock()
            self._entries[project_id] = progress
            return replace(progress)

    def get(self, project_id: str) -> Optional[IndexingProgress]:
        with self._lock:
            progress = self._entries.get(project_id)
            if progress is None:
                return None
            if (
                progress.finished_at is not None
                and self._clock() - progress.finished_at >= self.ttl_seconds
            ):
                del self._entries[project_id]
                logger.debug(f"Expired indexing progress for project {project_id}")
                return None
            return replace(progress)

    def remove(self, project_id: str) -> None:
        with self._lock:
            self._entries.pop(project_id, None)
