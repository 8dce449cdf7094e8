"""Concurrent access tests for the render studio."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from api.main import app
from core.render import BatchQueue, RenderController, Settings


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def controller():
    controller = RenderController(MagicMock(), progress_reset_delay=0)
    with patch("api.routes.studio.get_controller", return_value=controller):
        yield controller


class TestConcurrentBatchOperations:
    """Test concurrent queue edits."""

    def test_concurrent_job_creation(self, client, controller):
        """Multiple jobs can be queued concurrently."""
        def add_job(i):
            return client.post("/api/studio/batch")

        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [executor.submit(add_job, i) for i in range(10)]
            results = [f.result() for f in as_completed(futures)]

        assert all(r.status_code == 200 for r in results)

        ids = [r.json()["id"] for r in results]
        assert len(ids) == len(set(ids)), "Job IDs should be unique"
        assert len(controller.queue) == 10

    def test_concurrent_enqueue_and_remove(self):
        """Queue stays consistent under threaded enqueue/remove."""
        queue = BatchQueue()
        jobs = [queue.enqueue(Settings(), []) for _ in range(20)]

        def remove(job):
            return queue.remove(job.id)

        def add(i):
            return queue.enqueue(Settings(), [])

        with ThreadPoolExecutor(max_workers=8) as executor:
            removals = [executor.submit(remove, job) for job in jobs[:10]]
            additions = [executor.submit(add, i) for i in range(10)]
            results = [f.result() for f in as_completed(removals + additions)]

        assert results.count(True) == 10
        assert len(queue) == 20
        assert len({job.id for job in queue.jobs}) == 20


class TestConcurrentReads:
    """Test concurrent state reads."""

    def test_concurrent_state_reads(self, client, controller):
        def get_state(i):
            return client.get("/api/studio/state")

        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [executor.submit(get_state, i) for i in range(20)]
            results = [f.result() for f in as_completed(futures)]

        assert all(r.status_code == 200 for r in results)
        assert all(r.json()["state"] == "idle" for r in results)
