"""Background job queue abstraction.

Provides a protocol for enqueueing keyed, deduplicated jobs with a bounded
retry policy, and an in-process asyncio implementation.  The protocol keeps
the service layer independent of the queue backend so a broker-backed
runner can replace the in-process one without service changes.
"""

import asyncio
import enum
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from geoaddress.core.config import Settings

JobHandler = Callable[[Any], Awaitable[Any]]


class JobStatus(enum.StrEnum):
    """Status of a background job."""

    PENDING = "pending"
    RUNNING = "running"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


_ACTIVE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.RUNNING, JobStatus.RETRYING})


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with a fixed delay between attempts.

    Args:
        max_attempts: Total attempts including the first one.
        backoff_seconds: Delay before each retry.
        give_up_on: Exception types that fail the job immediately.
    """

    max_attempts: int = 3
    backoff_seconds: float = 60.0
    give_up_on: tuple[type[BaseException], ...] = ()

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {self.max_attempts}"
            raise ValueError(msg)
        if self.backoff_seconds < 0:
            msg = f"backoff_seconds must not be negative, got {self.backoff_seconds}"
            raise ValueError(msg)


class JobQueue(Protocol):
    """Protocol for keyed background job execution."""

    def register(
        self,
        kind: str,
        handler: JobHandler,
        retry: RetryPolicy | None = None,
        *,
        unique_for: float | None = None,
    ) -> None:
        """Register the handler that runs jobs of the given kind."""
        ...

    def enqueue(
        self,
        kind: str,
        record_id: Any,
        *,
        unique_key: str | None = None,
        unique_for: float | None = None,
    ) -> str | None:
        """Submit a job for background execution.

        Args:
            kind: Registered job kind.
            record_id: Identifier passed to the handler.
            unique_key: Dedup key; a second enqueue with the same key while
                the first job is still pending or running is dropped.
            unique_for: Seconds the uniqueness lock is held at most; defaults
                to the value given at registration.

        Returns:
            A job ID string, or None if the job was deduplicated.
        """
        ...

    def is_registered(self, kind: str) -> bool:
        """Whether a handler is registered for the job kind."""
        ...

    def get_status(self, job_id: str) -> JobStatus:
        """Get the current status of a background job."""
        ...


class InProcessJobQueue:
    """In-process job queue using asyncio tasks.

    Suitable for development and single-process deployments.  Jobs run in
    the same event loop as the caller via asyncio.create_task().
    """

    def __init__(
        self,
        name: str = "default",
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._handlers: dict[str, tuple[JobHandler, RetryPolicy]] = {}
        self._unique_for: dict[str, float | None] = {}
        self._jobs: dict[str, JobStatus] = {}
        self._attempts: dict[str, int] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        # unique_key -> (job_id, lock expiry on self._clock)
        self._locks: dict[str, tuple[str, float]] = {}

    def register(
        self,
        kind: str,
        handler: JobHandler,
        retry: RetryPolicy | None = None,
        *,
        unique_for: float | None = None,
    ) -> None:
        """Register the handler that runs jobs of the given kind.

        Args:
            kind: Job kind name.
            handler: Coroutine function called with the record ID.
            retry: Retry policy; defaults to RetryPolicy().
            unique_for: Default uniqueness lock TTL for keyed jobs of this
                kind; None holds the lock until the job finishes.
        """
        if kind in self._handlers:
            logger.warning(f"Overwriting existing handler for job kind {kind!r}")
        self._handlers[kind] = (handler, retry or RetryPolicy())
        self._unique_for[kind] = unique_for

    def enqueue(
        self,
        kind: str,
        record_id: Any,
        *,
        unique_key: str | None = None,
        unique_for: float | None = None,
    ) -> str | None:
        """Submit a job for background execution.

        Args:
            kind: Registered job kind.
            record_id: Identifier passed to the handler.
            unique_key: Dedup key for the job.
            unique_for: Seconds the uniqueness lock is held at most; defaults
                to the value given at registration.

        Returns:
            A job ID string, or None if an equivalent job is still in flight.

        Raises:
            KeyError: If no handler is registered for the kind.
        """
        if kind not in self._handlers:
            msg = f"No handler registered for job kind {kind!r}"
            raise KeyError(msg)

        if unique_key is not None and self._is_locked(unique_key):
            logger.debug(f"Job {unique_key} already queued on {self.name!r}, skipping")
            return None

        job_id = str(uuid.uuid4())
        self._jobs[job_id] = JobStatus.PENDING
        self._attempts[job_id] = 0
        if unique_key is not None:
            if unique_for is None:
                unique_for = self._unique_for[kind]
            expires_at = self._clock() + unique_for if unique_for is not None else float("inf")
            self._locks[unique_key] = (job_id, expires_at)

        self._tasks[job_id] = asyncio.create_task(self._run(job_id, kind, record_id, unique_key))
        return job_id

    def is_registered(self, kind: str) -> bool:
        """Whether a handler is registered for the job kind."""
        return kind in self._handlers

    def get_status(self, job_id: str) -> JobStatus:
        """Get the current status of a background job.

        Raises:
            KeyError: If the job ID is not found.
        """
        return self._jobs[job_id]

    def get_attempts(self, job_id: str) -> int:
        """Return how many times the job's handler has been started."""
        return self._attempts[job_id]

    async def drain(self) -> None:
        """Wait until every submitted job has finished."""
        while pending := [task for task in self._tasks.values() if not task.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    def _is_locked(self, unique_key: str) -> bool:
        lock = self._locks.get(unique_key)
        if lock is None:
            return False
        job_id, expires_at = lock
        if self._clock() >= expires_at or self._jobs.get(job_id) not in _ACTIVE_STATUSES:
            del self._locks[unique_key]
            return False
        return True

    def _release(self, unique_key: str | None, job_id: str) -> None:
        if unique_key is not None and self._locks.get(unique_key, (None,))[0] == job_id:
            del self._locks[unique_key]

    async def _run(self, job_id: str, kind: str, record_id: Any, unique_key: str | None) -> None:
        handler, retry = self._handlers[kind]
        try:
            for attempt in range(1, retry.max_attempts + 1):
                self._jobs[job_id] = JobStatus.RUNNING
                self._attempts[job_id] = attempt
                try:
                    await handler(record_id)
                except retry.give_up_on as e:
                    self._jobs[job_id] = JobStatus.FAILED
                    logger.error(f"Job {kind} for {record_id} failed without retry: {e}")
                    return
                except Exception as e:
                    if attempt >= retry.max_attempts:
                        self._jobs[job_id] = JobStatus.FAILED
                        logger.error(f"Job {kind} failed permanently for {record_id} after {attempt} attempts: {e}")
                        return
                    self._jobs[job_id] = JobStatus.RETRYING
                    logger.warning(
                        f"Job {kind} attempt {attempt}/{retry.max_attempts} failed for {record_id}: {e}; "
                        f"retrying in {retry.backoff_seconds}s"
                    )
                    await self._sleep(retry.backoff_seconds)
                else:
                    self._jobs[job_id] = JobStatus.COMPLETED
                    return
        finally:
            self._release(unique_key, job_id)


def create_job_queue(settings: Settings) -> InProcessJobQueue:
    """Build the job queue selected by configuration.

    Args:
        settings: Application settings.

    Returns:
        The configured job queue.

    Raises:
        ValueError: If the configured queue connection is not supported.
    """
    connection = settings.geocoder_queue_connection
    if connection not in (None, "", "in-process"):
        msg = f"Unsupported job queue connection: {connection!r}. Available: ['in-process']"
        raise ValueError(msg)
    return InProcessJobQueue(settings.geocoder_queue_name)


_queue: InProcessJobQueue | None = None


def get_job_queue() -> InProcessJobQueue:
    """Return the process-wide job queue, creating it from settings on first use."""
    global _queue  # noqa: PLW0603
    if _queue is None:
        from geoaddress.core.config import get_settings

        _queue = create_job_queue(get_settings())
    return _queue


def set_job_queue(queue: InProcessJobQueue | None) -> None:
    """Replace (or reset, with None) the process-wide job queue."""
    global _queue  # noqa: PLW0603
    _queue = queue
