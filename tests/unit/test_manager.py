"""Tests for the CodeChatManager facade."""

import asyncio
from unittest.mock import patch

import pytest

from pycodechat.manager import INTERRUPTED_ERROR, CodeChatManager
from pycodechat.embedders import SentenceTransformersEmbedder
from pycodechat.storage.records import ProjectNotFoundError
from pycodechat.storage.vector import FaissVectorBackend
from pycodechat.types import IndexingStatus


@pytest.fixture
def manager(mock_config, fake_backend):
    return CodeChatManager(mock_config, vector_backend=fake_backend)


class TestProjects:
    def test_create_project_resolves_path(self, manager, sample_project):
        project = manager.create_project("sample", str(sample_project / "src" / ".."), language="javascript")

        assert project["path"] == str(sample_project.resolve())
        assert project["indexing_status"] == "pending"
        assert project["language"] == "javascript"
        assert [p["id"] for p in manager.list_projects()] == [project["id"]]

    def test_create_project_requires_directory(self, manager, tmp_path):
        with pytest.raises(ValueError, match="not a directory"):
            manager.create_project("missing", str(tmp_path / "missing"))

    def test_get_unknown_project(self, manager):
        with pytest.raises(ProjectNotFoundError):
            manager.get_project("missing")


class TestIndexingAndSearch:
    def test_index_then_search(self, manager, sample_project):
        project_id = manager.create_project("sample", str(sample_project))["id"]

        async def scenario():
            result = await manager.index_project(project_id)
            search = await manager.enhanced_search("where is the login function", project_id)
            return result, search

        result, search = asyncio.run(scenario())

        assert result["success"] is True
        assert search.success is True
        assert search.results[0].file_path == "src/auth.js"
        assert manager.get_project(project_id)["indexed_files"] == 4

    def test_background_indexing(self, manager, sample_project):
        project_id = manager.create_project("sample", str(sample_project))["id"]

        async def scenario():
            started = manager.start_indexing(project_id, incremental=False)
            result = await manager.jobs.wait(project_id)
            return started, result

        started, result = asyncio.run(scenario())

        assert started == {
            "success": True,
            "project_id": project_id,
            "incremental": False,
            "message": "Full indexing started",
        }
        assert result["processed_files"] == 4
        progress = manager.get_indexing_progress(project_id)
        assert progress["status"] == "completed"
        assert progress["percentage"] == 100.0

    def test_progress_falls_back_to_project_status(self, manager, sample_project):
        project_id = manager.create_project("sample", str(sample_project))["id"]

        progress = manager.get_indexing_progress(project_id)

        assert progress == {
            "total_files": 0,
            "processed_files": 0,
            "current_file": "Completed",
            "status": "pending",
            "error": None,
        }


class TestStatusAndPersistence:
    def test_status(self, manager, sample_project):
        manager.create_project("sample", str(sample_project))

        status = manager.get_status()

        assert status["status"] == "ok"
        assert status["records"]["projects"] == 1
        assert status["vector_index"] == {"configured": True, "vectorCount": 0}
        assert status["indexing_jobs"] == []
        assert [p["name"] for p in status["chat_providers"]][:4] == [
            "openai",
            "anthropic",
            "google",
            "openrouter",
        ]

    def test_save_and_load_recovers_interrupted_runs(self, mock_config, fake_backend, sample_project):
        manager = CodeChatManager(mock_config, vector_backend=fake_backend)
        project_id = manager.create_project("sample", str(sample_project))["id"]
        manager.store.update_project(project_id, indexing_status=IndexingStatus.INDEXING)

        assert manager.save() == {"success": True}

        restored = CodeChatManager(mock_config, vector_backend=fake_backend)
        restored.load()

        project = restored.get_project(project_id)
        assert project["indexing_status"] == "failed"
        assert project["indexing_error"] == INTERRUPTED_ERROR
        assert mock_config.get_index_paths()["records"].exists()

    def test_save_failure_is_reported(self, manager):
        with patch.object(manager.store, "save_to_file", side_effect=OSError("disk full")):
            result = manager.save()

        assert result == {"success": False, "error": "Failed to save index: disk full"}

    def test_without_vector_backend(self, mock_config):
        mock_config.vector_backend = "none"

        manager = CodeChatManager(mock_config)

        assert manager.vector_backend is None
        assert manager.get_status()["vector_index"] == {"configured": False}

    def test_faiss_backend_uses_configured_embedder(self, mock_config):
        mock_config.embedding_device = "cpu"
        mock_config.embedding_batch_size = 4
        mock_config.embedding_query_prefix = "query: "

        manager = CodeChatManager(mock_config)

        assert isinstance(manager.vector_backend, FaissVectorBackend)
        assert isinstance(manager.embedder, SentenceTransformersEmbedder)
        assert manager.embedder.model_name == mock_config.embedding_model
        assert manager.embedder.batch_size == 4
        assert manager.embedder.query_prefix == "query: "
        assert manager.vector_backend.embedder is manager.embedder
