"""Tests for progress tracking and the background indexing job registry."""

import asyncio
from pathlib import Path

import pytest

from pycodechat.indexer.jobs import IndexingAlreadyRunningError, IndexingJobRegistry
from pycodechat.indexer.pipeline import IndexingPipeline
from pycodechat.indexer.progress import IndexingProgress, InMemoryProgressTracker
from pycodechat.storage.records import InMemoryProjectStore, ProjectNotFoundError
from pycodechat.storage.vector import VectorSearchGateway
from pycodechat.types import IndexingStatus


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestInMemoryProgressTracker:
    def test_start_resets_progress(self):
        tracker = InMemoryProgressTracker()
        tracker.update("p1", total_files=5, processed_files=5, status=IndexingStatus.COMPLETED)

        progress = tracker.start("p1")

        assert progress.status is IndexingStatus.SCANNING
        assert progress.processed_files == 0
        assert tracker.get("p1").total_files == 0

    def test_unknown_project(self):
        assert InMemoryProgressTracker().get("missing") is None

    def test_running_entries_do_not_expire(self):
        clock = FakeClock()
        tracker = InMemoryProgressTracker(ttl_seconds=30, clock=clock)
        tracker.start("p1")

        clock.now = 1000
        assert tracker.get("p1") is not None

    def test_finished_entries_expire_after_ttl(self):
        clock = FakeClock()
        tracker = InMemoryProgressTracker(ttl_seconds=30, clock=clock)
        tracker.start("p1")
        clock.now = 10
        tracker.update("p1", status=IndexingStatus.FAILED, error="boom")

        clock.now = 39
        assert tracker.get("p1").error == "boom"

        clock.now = 40
        assert tracker.get("p1") is None

    def test_get_returns_copy(self):
        tracker = InMemoryProgressTracker()
        tracker.update("p1", total_files=3)

        snapshot = tracker.get("p1")
        snapshot.total_files = 99

        assert tracker.get("p1").total_files == 3

    def test_remove(self):
        tracker = InMemoryProgressTracker()
        tracker.start("p1")

        tracker.remove("p1")
        tracker.remove("p1")

        assert tracker.get("p1") is None

    def test_percentage_and_dict(self):
        progress = IndexingProgress(total_files=8, processed_files=2, status=IndexingStatus.INDEXING)

        data = progress.to_dict()

        assert data["percentage"] == 25.0
        assert data["status"] == "indexing"
        assert IndexingProgress(status=IndexingStatus.COMPLETED).percentage == 100.0
        assert IndexingProgress().percentage == 0.0


class SleepingPipeline:
    """Pipeline stand-in whose runs last until cancelled or released."""

    def __init__(self):
        self.calls = []
        self.release = None

    async def index_project(self, project_id, on_progress=None, incremental=False):
        self.calls.append((project_id, incremental))
        self.release = asyncio.Event()
        await self.release.wait()
        return {"success": True, "processed_files": 0, "total_lines": 0}


@pytest.fixture
def store():
    return InMemoryProjectStore()


@pytest.fixture
def project(store, tmp_path):
    return store.create_project("demo", str(tmp_path))


class TestIndexingJobRegistry:
    def test_start_and_wait(self, store, project):
        pipeline = SleepingPipeline()
        registry = IndexingJobRegistry(pipeline, store)

        async def scenario():
            registry.start(project.id, incremental=True)
            assert registry.is_running(project.id)
            assert registry.running_projects() == [project.id]
            await asyncio.sleep(0)
            pipeline.release.set()
            return await registry.wait(project.id)

        result = asyncio.run(scenario())

        assert result["success"] is True
        assert pipeline.calls == [(project.id, True)]
        assert not registry.is_running(project.id)

    def test_second_start_is_rejected(self, store, project):
        pipeline = SleepingPipeline()
        registry = IndexingJobRegistry(pipeline, store)

        async def scenario():
            registry.start(project.id)
            with pytest.raises(IndexingAlreadyRunningError) as exc_info:
                registry.start(project.id)
            await registry.shutdown()
            return exc_info.value

        error = asyncio.run(scenario())

        assert str(error) == "Project is already being indexed"
        assert error.project_id == project.id
        assert len(pipeline.calls) <= 1

    def test_project_marked_indexing_is_rejected(self, store, project):
        store.update_project(project.id, indexing_status=IndexingStatus.INDEXING)
        registry = IndexingJobRegistry(SleepingPipeline(), store)

        async def scenario():
            with pytest.raises(IndexingAlreadyRunningError):
                registry.start(project.id)

        asyncio.run(scenario())

    def test_unknown_project(self, store):
        registry = IndexingJobRegistry(SleepingPipeline(), store)

        async def scenario():
            with pytest.raises(ProjectNotFoundError):
                registry.start("missing")

        asyncio.run(scenario())

    def test_cancel(self, store, project):
        registry = IndexingJobRegistry(SleepingPipeline(), store)

        async def scenario():
            task = registry.start(project.id)
            await asyncio.sleep(0)
            assert registry.cancel(project.id) is True
            await asyncio.gather(task, return_exceptions=True)
            return task

        task = asyncio.run(scenario())

        assert task.cancelled()
        assert not registry.is_running(project.id)
        assert registry.cancel(project.id) is False

    def test_wait_without_job(self, store):
        registry = IndexingJobRegistry(SleepingPipeline(), store)

        assert asyncio.run(registry.wait("p1")) is None

    def test_cancelled_run_marks_project_failed(self, store, project, fake_backend, monkeypatch):
        (Path(project.path) / "main.py").write_text("x = 1\n")
        pipeline = IndexingPipeline(store, VectorSearchGateway(fake_backend))
        registry = IndexingJobRegistry(pipeline, store)

        async def scenario():
            started = asyncio.Event()

            async def hanging_index_file(project, rel_path):
                started.set()
                await asyncio.sleep(3600)

            monkeypatch.setattr(pipeline, "index_file", hanging_index_file)
            task = registry.start(project.id)
            await started.wait()
            registry.cancel(project.id)
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        updated = store.get_project(project.id)
        assert updated.indexing_status is IndexingStatus.FAILED
        assert updated.indexing_error == "Indexing cancelled"
        assert pipeline.progress.get(project.id).error == "Indexing cancelled"
