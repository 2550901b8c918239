"""Central CodeChatManager wiring storage, retrieval, indexing and chat."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .chat.providers import ProviderFactory
from .chat.service import ChatService
from .config import Config
from .embedders import EmbedderFactory
from .indexer.crawler import FileCrawler
from .indexer.jobs import IndexingJobRegistry
from .indexer.pipeline import IndexingPipeline, ProgressCallback
from .indexer.progress import InMemoryProgressTracker
from .search.models import EnhancedSearchResults, SearchOptions
from .search.retriever import MultiStrategyRetriever
from .storage.records import InMemoryProjectStore, ProjectStore
from .storage.vector import FaissVectorBackend, VectorBackend, VectorSearchGateway
from .types import IndexingStatus

logger = logging.getLogger(__name__)

INTERRUPTED_ERROR = "Indexing interrupted by server shutdown"


class CodeChatManager:
    """High-level facade coordinating projects, indexing, search and chat.

    Args:
        config: Server configuration
        vector_backend: Backend to use instead of the one selected by
            ``config.vector_backend``
        store: Record store to use instead of an in-memory snapshot store
    """

    def __init__(
        self,
        config: Config,
        vector_backend: Optional[VectorBackend] = None,
        store: Optional[ProjectStore] = None,
    ) -> None:
        self.config = config
        self.paths = config.get_index_paths()
        self.store = store or InMemoryProjectStore()

        self.embedder = None
        if vector_backend is None and config.vector_backend == "faiss":
            self.embedder = EmbedderFactory.from_config(config.get_embedding_config())
            vector_backend = FaissVectorBackend(
                self.embedder, self.paths["index"], self.paths["vectors"]
            )
        self.vector_backend = vector_backend
        self.gateway = VectorSearchGateway(vector_backend)

        self.retriever = MultiStrategyRetriever(
            self.gateway,
            default_options=SearchOptions.from_dict(config.get_search_defaults()),
        )
        self.progress_tracker = InMemoryProgressTracker(
            ttl_seconds=config.progress_ttl_seconds
        )
        self.pipeline = IndexingPipeline(
            self.store,
            self.gateway,
            self.progress_tracker,
            crawler=FileCrawler(),
            chunk_size=config.chunk_size,
            max_stored_content_bytes=config.max_stored_content_bytes,
        )
        self.jobs = IndexingJobRegistry(self.pipeline, self.store)
        self.chat_service = ChatService(self.store, self.retriever, config)

        if self.config.auto_load:
            self.load()

    # Projects

    def create_project(
        self,
        name: str,
        path: str,
        description: Optional[str] = None,
        language: Optional[str] = None,
        framework: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Register a project rooted at an existing directory.

        Raises:
            ValueError: If the path is not an existing directory
        """
        root = Path(path).expanduser().resolve()
        if not root.is_dir():
            raise ValueError(f"Project path is not a directory: {path}")

        project = self.store.create_project(
            name,
            str(root),
            description=description,
            language=language,
            framework=framework,
        )
        self._auto_save()
        return project.to_dict()

    def list_projects(self) -> List[Dict[str, Any]]:
        return [project.to_dict() for project in self.store.list_projects()]

    def get_project(self, project_id: str) -> Dict[str, Any]:
        return self.store.require_project(project_id).to_dict()

    # Indexing

    def start_indexing(self, project_id: str, incremental: bool = False) -> Dict[str, Any]:
        """Start background indexing; must be called from a running event loop.

        Raises:
            ProjectNotFoundError: If the project does not exist
            IndexingAlreadyRunningError: If the project is being indexed
        """
        task = self.jobs.start(project_id, incremental)
        task.add_done_callback(lambda _task: self._auto_save())
        return {
            "success": True,
            "project_id": project_id,
            "incremental": incremental,
            "message": "Incremental indexing started" if incremental else "Full indexing started",
        }

    async def index_project(
        self,
        project_id: str,
        incremental: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """Index a project in the foreground and persist the outcome."""
        result = await self.pipeline.index_project(project_id, on_progress, incremental)
        self._auto_save()
        return result

    def get_indexing_progress(self, project_id: str) -> Dict[str, Any]:
        """Live progress, or a summary derived from the stored project status."""
        progress = self.progress_tracker.get(project_id)
        if progress is not None:
            return progress.to_dict()

        project = self.store.require_project(project_id)
        indexing = project.indexing_status is IndexingStatus.INDEXING
        return {
            "total_files": project.total_files,
            "processed_files": project.indexed_files,
            "current_file": "Processing..." if indexing else "Completed",
            "status": project.indexing_status.value,
            "error": project.indexing_error,
        }

    # Retrieval and chat

    async def enhanced_search(
        self,
        query: str,
        project_id: str,
        options: Optional[Union[SearchOptions, Dict[str, Any]]] = None,
    ) -> EnhancedSearchResults:
        return await self.retriever.enhanced_search(query, project_id, options)

    async def chat(
        self,
        project_id: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        result = await self.chat_service.chat(project_id, message, history)
        if result.get("success"):
            self._auto_save()
        return result

    # Status and persistence

    def get_status(self) -> Dict[str, Any]:
        vector_info: Dict[str, Any] = {"configured": self.gateway.is_configured()}
        if self.vector_backend is not None:
            try:
                vector_info.update(self.vector_backend.info())
            except Exception as e:
                logger.warning(f"Could not read vector index info: {e}")
                vector_info["error"] = str(e)

        return {
            "status": "ok",
            "records": self.store.get_stats() if hasattr(self.store, "get_stats") else {},
            "vector_index": vector_info,
            "indexing_jobs": self.jobs.running_projects(),
            "chat_providers": ProviderFactory.get_configured_providers(self.config),
            "configuration": self.config.get_config_summary(),
        }

    def save(self) -> Dict[str, Any]:
        """Save records and vector index to disk."""
        try:
            self.config.ensure_data_directory()
            if hasattr(self.store, "save_to_file"):
                self.store.save_to_file(str(self.paths["records"]))
            if self.vector_backend is not None:
                self.vector_backend.save()
            return {"success": True}
        except Exception as e:
            error_msg = f"Failed to save index: {e}"
            logger.error(error_msg)
            return {"success": False, "error": error_msg}

    def load(self) -> None:
        if hasattr(self.store, "load_from_file"):
            self.store.load_from_file(str(self.paths["records"]))
        if self.vector_backend is not None:
            self.vector_backend.load()
        self._recover_interrupted_runs()

    def _recover_interrupted_runs(self) -> None:
        # No job survives a restart, so a persisted "indexing" status is stale
        for project in self.store.list_projects():
            if project.indexing_status is IndexingStatus.INDEXING:
                logger.warning(f"Marking interrupted indexing run of {project.id} as failed")
                self.store.update_project(
                    project.id,
                    indexing_status=IndexingStatus.FAILED,
                    indexing_error=INTERRUPTED_ERROR,
                )

    def _auto_save(self) -> None:
        if self.config.auto_persist:
            self.save()

    # Context manager support

    def __enter__(self) -> "CodeChatManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.config.auto_persist and exc_type is None:
            logger.info("Auto-saving index during cleanup")
            self.save()

        if self.embedder is not None:
            self.embedder.cleanup()
        return False

