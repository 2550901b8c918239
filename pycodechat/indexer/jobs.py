"""Background indexing job registry.

Indexing runs as asyncio tasks tracked by project id. The "already running"
check and the task registration happen without an intervening ``await``, so
two start requests on the same event loop cannot both succeed.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..storage.records import ProjectStore
from ..types import IndexingStatus
from .pipeline import IndexingPipeline, ProgressCallback

logger = logging.getLogger(__name__)


class IndexingAlreadyRunningError(RuntimeError):
    """Raised when indexing is requested for a project that is being indexed."""

    def __init__(self, project_id: str):
        super().__init__("Project is already being indexed")
        self.project_id = project_id


class IndexingJobRegistry:
    """Starts, tracks and cancels indexing tasks."""

    def __init__(self, pipeline: IndexingPipeline, store: ProjectStore) -> None:
        self.pipeline = pipeline
        self.store = store
        self._tasks: Dict[str, asyncio.Task] = {}

    def is_running(self, project_id: str) -> bool:
        task = self._tasks.get(project_id)
        return task is not None and not task.done()

    def start(
        self,
        project_id: str,
        incremental: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> asyncio.Task:
        """Start a background indexing run.

        Must be called from a running event loop.

        Raises:
            ProjectNotFoundError: If the project does not exist
            IndexingAlreadyRunningError: If a run is active or the project
                is marked as being indexed
        """
        project = self.store.require_project(project_id)
        if (
            self.is_running(project_id)
            or project.indexing_status is IndexingStatus.INDEXING
        ):
            raise IndexingAlreadyRunningError(project_id)

        task = asyncio.get_running_loop().create_task(
            self.pipeline.index_project(project_id, on_progress, incremental),
            name=f"index-{project_id}",
        )
        self._tasks[project_id] = task
        task.add_done_callback(lambda done, pid=project_id: self._on_done(pid, done))
        logger.info(
            f"{'Incremental' if incremental else 'Full'} indexing started for project {project_id}"
        )
        return task

    def _on_done(self, project_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(project_id) is task:
            del self._tasks[project_id]

        if task.cancelled():
            logger.info(f"Indexing job for project {project_id} was cancelled")
        elif task.exception() is not None:
            logger.error(
                f"Indexing job for project {project_id} crashed: {task.exception()}"
            )
        else:
            logger.info(f"Indexing job for project {project_id} finished: {task.result()}")

    async def wait(self, project_id: str) -> Optional[Dict[str, Any]]:
        """Wait for the project's running job; None when nothing is running."""
        task = self._tasks.get(project_id)
        if task is None:
            return None
        return await task

    def cancel(self, project_id: str) -> bool:
        task = self._tasks.get(project_id)
        if task is None or task.done():
            return False
        return task.cancel()

    def running_projects(self) -> list:
        return [pid for pid in self._tasks if self.is_running(pid)]

    async def shutdown(self) -> None:
        """Cancel all running jobs and wait for them to settle."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
