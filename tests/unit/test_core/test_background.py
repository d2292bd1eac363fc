"""Tests for the background job queue module."""

import asyncio

import pytest

from geoaddress.core.background import (
    InProcessJobQueue,
    JobStatus,
    RetryPolicy,
    create_job_queue,
    get_job_queue,
    set_job_queue,
)
from geoaddress.core.config import Settings


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestJobStatus:
    """Tests for JobStatus enum."""

    def test_status_values(self) -> None:
        assert JobStatus.PENDING == "pending"
        assert JobStatus.RUNNING == "running"
        assert JobStatus.RETRYING == "retrying"
        assert JobStatus.COMPLETED == "completed"
        assert JobStatus.FAILED == "failed"


class TestRetryPolicy:
    """Tests for RetryPolicy validation."""

    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.backoff_seconds == 60.0
        assert policy.give_up_on == ()

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_rejects_negative_backoff(self) -> None:
        with pytest.raises(ValueError, match="backoff_seconds"):
            RetryPolicy(backoff_seconds=-1)


class TestInProcessJobQueue:
    """Tests for InProcessJobQueue."""

    async def test_enqueue_runs_handler(self) -> None:
        queue = InProcessJobQueue()
        seen: list[int] = []

        async def handler(record_id: int) -> None:
            seen.append(record_id)

        queue.register("job", handler)
        job_id = queue.enqueue("job", 7)
        assert job_id is not None
        assert len(job_id) == 36  # UUID format

        await queue.drain()
        assert seen == [7]
        assert queue.get_status(job_id) == JobStatus.COMPLETED
        assert queue.get_attempts(job_id) == 1

    async def test_unknown_kind_raises(self) -> None:
        with pytest.raises(KeyError, match="No handler registered"):
            InProcessJobQueue().enqueue("missing", 1)

    async def test_is_registered(self) -> None:
        queue = InProcessJobQueue()

        async def handler(record_id: int) -> None:
            pass

        assert queue.is_registered("job") is False
        queue.register("job", handler)
        assert queue.is_registered("job") is True

    async def test_unique_key_dedups_while_pending(self) -> None:
        queue = InProcessJobQueue()
        release = asyncio.Event()

        async def handler(record_id: int) -> None:
            await release.wait()

        queue.register("job", handler)
        first = queue.enqueue("job", 1, unique_key="k")
        second = queue.enqueue("job", 1, unique_key="k")
        other = queue.enqueue("job", 2, unique_key="other")

        assert first is not None
        assert second is None
        assert other is not None

        release.set()
        await queue.drain()
        assert queue.enqueue("job", 1, unique_key="k") is not None
        await queue.drain()

    async def test_lock_expires_after_unique_for(self) -> None:
        clock = _FakeClock()
        queue = InProcessJobQueue(clock=clock)
        release = asyncio.Event()

        async def handler(record_id: int) -> None:
            await release.wait()

        queue.register("job", handler, unique_for=10)
        assert queue.enqueue("job", 1, unique_key="k") is not None
        clock.now = 9.9
        assert queue.enqueue("job", 1, unique_key="k") is None
        clock.now = 10.0
        assert queue.enqueue("job", 1, unique_key="k") is not None

        release.set()
        await queue.drain()

    async def test_enqueue_unique_for_overrides_registration(self) -> None:
        clock = _FakeClock()
        queue = InProcessJobQueue(clock=clock)
        release = asyncio.Event()

        async def handler(record_id: int) -> None:
            await release.wait()

        queue.register("job", handler, unique_for=1000)
        queue.enqueue("job", 1, unique_key="k", unique_for=5)
        clock.now = 5
        assert queue.enqueue("job", 1, unique_key="k") is not None

        release.set()
        await queue.drain()

    async def test_retries_then_succeeds(self) -> None:
        sleep = _RecordingSleep()
        queue = InProcessJobQueue(sleep=sleep)
        calls = 0

        async def flaky(record_id: int) -> None:
            nonlocal calls
            calls += 1
            if calls < 3:
                msg = "temporary"
                raise RuntimeError(msg)

        queue.register("job", flaky, RetryPolicy(max_attempts=3, backoff_seconds=60))
        job_id = queue.enqueue("job", 1)
        await queue.drain()

        assert job_id is not None
        assert queue.get_status(job_id) == JobStatus.COMPLETED
        assert queue.get_attempts(job_id) == 3
        assert sleep.delays == [60, 60]

    async def test_fails_after_max_attempts(self) -> None:
        sleep = _RecordingSleep()
        queue = InProcessJobQueue(sleep=sleep)

        async def failing(record_id: int) -> None:
            msg = "always"
            raise RuntimeError(msg)

        queue.register("job", failing, RetryPolicy(max_attempts=2, backoff_seconds=1))
        job_id = queue.enqueue("job", 1, unique_key="k")
        await queue.drain()

        assert job_id is not None
        assert queue.get_status(job_id) == JobStatus.FAILED
        assert queue.get_attempts(job_id) == 2
        assert sleep.delays == [1]
        # The lock is released once the job is terminal
        assert queue.enqueue("job", 1, unique_key="k") is not None
        await queue.drain()

    async def test_give_up_on_skips_retries(self) -> None:
        sleep = _RecordingSleep()
        queue = InProcessJobQueue(sleep=sleep)

        async def misconfigured(record_id: int) -> None:
            msg = "bad config"
            raise LookupError(msg)

        queue.register("job", misconfigured, RetryPolicy(max_attempts=5, give_up_on=(LookupError,)))
        job_id = queue.enqueue("job", 1)
        await queue.drain()

        assert job_id is not None
        assert queue.get_status(job_id) == JobStatus.FAILED
        assert queue.get_attempts(job_id) == 1
        assert sleep.delays == []

    async def test_get_status_unknown_raises(self) -> None:
        with pytest.raises(KeyError):
            InProcessJobQueue().get_status("nonexistent-id")


class TestJobQueueFactory:
    """Tests for building the configured job queue."""

    def _settings(self, **overrides: object) -> Settings:
        return Settings(database_url="sqlite+aiosqlite:///:memory:", **overrides)

    def test_default_is_in_process(self) -> None:
        queue = create_job_queue(self._settings(geocoder_queue_name="geo"))
        assert isinstance(queue, InProcessJobQueue)
        assert queue.name == "geo"

    def test_explicit_in_process(self) -> None:
        assert isinstance(create_job_queue(self._settings(geocoder_queue_connection="in-process")), InProcessJobQueue)

    def test_unsupported_connection_raises(self) -> None:
        with pytest.raises(ValueError, match="Unsupported job queue connection"):
            create_job_queue(self._settings(geocoder_queue_connection="redis"))

    def test_set_and_get(self) -> None:
        queue = InProcessJobQueue("custom")
        set_job_queue(queue)
        try:
            assert get_job_queue() is queue
        finally:
            set_job_queue(None)
