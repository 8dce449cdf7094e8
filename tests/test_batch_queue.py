"""Tests for the batch queue engine."""

import pytest

from core.render import BatchQueue, JobStatus, Settings, StyleReference


@pytest.fixture
def queue():
    return BatchQueue()


@pytest.fixture
def filled_queue(queue, settings):
    """Queue with three jobs using distinct lighting."""
    for lighting in ("studio", "sunny", "night"):
        queue.enqueue(Settings(lighting_preset=lighting), [])
    return queue


def run_job(queue: BatchQueue, result=None, error: str = None) -> None:
    """Settle the active job and advance."""
    job = queue.active_job
    queue.mark_rendering(job.id)
    if error:
        queue.mark_failed(job.id, error)
    else:
        queue.mark_completed(job.id, result)
    queue.advance()


class TestEnqueue:
    """Tests for adding jobs."""

    def test_enqueue_creates_queued_job(self, queue, settings):
        job = queue.enqueue(settings, [])
        assert job.status == JobStatus.QUEUED
        assert len(job.id) == 8
        assert len(queue) == 1
        assert not queue.is_running
        assert queue.active_index == -1

    def test_enqueue_snapshots_inputs(self, queue, png_bytes):
        """Later edits to the live settings and styles do not reach the job."""
        settings = Settings(resolution="4k")
        styles = [StyleReference(image_bytes=png_bytes, mime_type="image/png", weight=0.5)]
        job = queue.enqueue(settings, styles)

        settings.resolution = "1080p"
        styles[0].weight = 0.1
        styles.append(StyleReference(image_bytes=png_bytes, mime_type="image/png"))

        assert job.settings.resolution == "4k"
        assert len(job.style_references) == 1
        assert job.style_references[0].weight == 0.5

    def test_ids_are_unique(self, filled_queue):
        ids = [job.id for job in filled_queue.jobs]
        assert len(set(ids)) == 3

    def test_get(self, queue, settings):
        job = queue.enqueue(settings, [])
        assert queue.get(job.id) is job
        assert queue.get("missing") is None


class TestRun:
    """Tests for running through the queue."""

    def test_start_empty_queue(self, queue):
        assert queue.start() is False
        assert not queue.is_running

    def test_start_sets_active_index(self, filled_queue):
        assert filled_queue.start() is True
        assert filled_queue.is_running
        assert filled_queue.active_index == 0
        assert filled_queue.active_job is filled_queue.jobs[0]

    def test_start_twice(self, filled_queue):
        filled_queue.start()
        assert filled_queue.start() is False

    def test_jobs_processed_in_order(self, filled_queue, artifact_factory):
        filled_queue.start()
        seen = []
        while filled_queue.is_running:
            seen.append(filled_queue.active_job.settings.lighting_preset)
            run_job(filled_queue, artifact_factory())

        assert seen == ["studio", "sunny", "night"]
        assert filled_queue.active_index == -1

    def test_failure_does_not_stop_run(self, filled_queue, artifact_factory):
        filled_queue.start()
        run_job(filled_queue, artifact_factory())
        run_job(filled_queue, error="blocked")
        run_job(filled_queue, artifact_factory())

        statuses = [job.status for job in filled_queue.jobs]
        assert statuses == [JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.COMPLETED]
        assert filled_queue.jobs[1].error == "blocked"
        assert not filled_queue.is_running

    def test_only_active_job_is_rendering(self, filled_queue):
        filled_queue.start()
        job = filled_queue.active_job
        filled_queue.mark_rendering(job.id)

        rendering = [j for j in filled_queue.jobs if j.status == JobStatus.RENDERING]
        assert rendering == [job]

    def test_status_is_monotonic(self, filled_queue, artifact_factory):
        filled_queue.start()
        job = filled_queue.active_job

        assert filled_queue.mark_completed(job.id, artifact_factory()) is False
        assert filled_queue.mark_rendering(job.id) is True
        assert filled_queue.mark_completed(job.id, artifact_factory()) is True
        assert filled_queue.mark_failed(job.id, "late") is False
        assert filled_queue.mark_rendering(job.id) is False
        assert job.status == JobStatus.COMPLETED
        assert job.completed_at is not None

    def test_progress(self, filled_queue, artifact_factory):
        assert filled_queue.progress == 0.0
        filled_queue.start()
        run_job(filled_queue, artifact_factory())
        assert round(filled_queue.progress, 1) == 33.3


class TestRemoval:
    """Tests for removing jobs."""

    def test_remove_idle_job(self, filled_queue):
        job = filled_queue.jobs[1]
        assert filled_queue.remove(job.id) is True
        assert len(filled_queue) == 2
        assert filled_queue.get(job.id) is None

    def test_remove_unknown_job(self, filled_queue):
        assert filled_queue.remove("missing") is False

    def test_remove_active_job_discards_settlement(self, filled_queue, artifact_factory):
        """The in-flight job's late result is dropped without error."""
        filled_queue.start()
        job = filled_queue.active_job
        filled_queue.mark_rendering(job.id)

        filled_queue.remove(job.id)

        assert filled_queue.mark_completed(job.id, artifact_factory()) is False
        assert filled_queue.mark_failed(job.id, "error") is False

    def test_remove_active_job_does_not_skip_next(self, filled_queue, artifact_factory):
        filled_queue.start()
        first, second = filled_queue.jobs[0], filled_queue.jobs[1]
        filled_queue.mark_rendering(first.id)
        filled_queue.remove(first.id)

        assert filled_queue.advance() is True
        assert filled_queue.active_job is second

    def test_remove_earlier_job_keeps_pointer(self, filled_queue, artifact_factory):
        filled_queue.start()
        run_job(filled_queue, artifact_factory())
        current = filled_queue.active_job

        filled_queue.remove(filled_queue.jobs[0].id)

        assert filled_queue.active_index == 0
        assert filled_queue.active_job is current

    def test_remove_last_active_job_ends_run(self, queue, settings):
        job = queue.enqueue(settings, [])
        queue.start()
        queue.mark_rendering(job.id)
        queue.remove(job.id)

        assert queue.advance() is False
        assert not queue.is_running
        assert queue.active_index == -1


class TestClearAndAbort:
    """Tests for clearing and aborting."""

    def test_clear_idle_queue(self, filled_queue):
        assert filled_queue.clear() == 3
        assert len(filled_queue) == 0

    def test_clear_while_running_raises(self, filled_queue):
        filled_queue.start()
        with pytest.raises(RuntimeError):
            filled_queue.clear()
        assert len(filled_queue) == 3

    def test_abort_fails_unfinished_jobs(self, filled_queue, artifact_factory):
        filled_queue.start()
        run_job(filled_queue, artifact_factory())
        filled_queue.mark_rendering(filled_queue.active_job.id)

        failed = filled_queue.abort("Plan file is missing.")

        assert failed == 2
        statuses = [job.status for job in filled_queue.jobs]
        assert statuses == [JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.FAILED]
        assert filled_queue.jobs[2].error == "Plan file is missing."
        assert not filled_queue.is_running
        assert filled_queue.active_index == -1

    def test_advance_after_abort(self, filled_queue):
        filled_queue.start()
        filled_queue.abort("stopped")
        assert filled_queue.advance() is False


class TestSerialization:
    """Tests for to_dict."""

    def test_to_dict(self, filled_queue, artifact_factory):
        filled_queue.start()
        run_job(filled_queue, artifact_factory())

        data = filled_queue.to_dict()
        assert data["total"] == 3
        assert data["is_running"] is True
        assert data["active_index"] == 1
        assert data["jobs"][0]["status"] == "completed"
        assert data["jobs"][0]["result"]["data_url"].startswith("data:image/png;base64,")

    def test_to_dict_without_results(self, filled_queue, artifact_factory):
        filled_queue.start()
        run_job(filled_queue, artifact_factory())

        data = filled_queue.to_dict(include_results=False)
        assert "data_url" not in data["jobs"][0]["result"]
