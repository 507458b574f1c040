"""Redis list-backed job queue for crawl requests."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog
from redis.asyncio import Redis

from contact_crawler.config import get_settings
from contact_crawler.redis import get_redis_connection

logger = structlog.get_logger(__name__)


class JobStatus(str, Enum):
    """Crawl job status values."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class JobRecord:
    """A queued crawl request."""

    url: str
    max_depth: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    result: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "url": self.url,
            "maxDepth": self.max_depth,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "result": self.result,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobRecord":
        """Rebuild a record from ``to_dict`` output."""
        return cls(
            id=data["id"],
            url=data["url"],
            max_depth=int(data["maxDepth"]),
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            created_at=datetime.fromisoformat(data["createdAt"]),
            result=data.get("result"),
            error=data.get("error"),
        )


class JobQueue:
    """FIFO of crawl jobs in a Redis list.

    Pending jobs are pushed to the tail of ``queue_key`` and popped from the
    head. Each job's latest state is also kept under ``<queue_key>:job:<id>``
    so its status can be looked up after it leaves the list.
    """

    def __init__(
        self,
        client: Redis | None = None,
        queue_key: str | None = None,
        record_ttl_seconds: int | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self.queue_key = queue_key or settings.queue_key
        self.record_ttl_seconds = record_ttl_seconds or settings.job_record_ttl_seconds

    @property
    def client(self) -> Redis:
        if self._client is None:
            self._client = get_redis_connection()
        return self._client

    def _record_key(self, job_id: str) -> str:
        return f"{self.queue_key}:job:{job_id}"

    async def add_job(self, url: str, max_depth: int) -> JobRecord:
        """Queue a crawl and return its pending record."""
        job = JobRecord(url=url, max_depth=max_depth)
        payload = json.dumps(job.to_dict())
        await self.client.rpush(self.queue_key, payload)
        await self.client.set(self._record_key(job.id), payload, ex=self.record_ttl_seconds)
        logger.info("job_added", job_id=job.id, url=url, max_depth=max_depth)
        return job

    async def get_next_job(self) -> JobRecord | None:
        """Pop the oldest pending job, or None if the queue is empty."""
        raw = await self.client.lpop(self.queue_key)
        if not raw:
            return None
        return JobRecord.from_dict(json.loads(raw))

    async def get_job(self, job_id: str) -> JobRecord | None:
        """Look up a job's latest state."""
        raw = await self.client.get(self._record_key(job_id))
        if not raw:
            return None
        return JobRecord.from_dict(json.loads(raw))

    async def update_job(self, job: JobRecord) -> None:
        """Store a job's new state."""
        await self.client.set(
            self._record_key(job.id),
            json.dumps(job.to_dict()),
            ex=self.record_ttl_seconds,
        )
        logger.debug("job_updated", job_id=job.id, status=job.status.value)

    async def length(self) -> int:
        """Number of pending jobs."""
        return int(await self.client.llen(self.queue_key))

    async def clear(self) -> None:
        """Drop all pending jobs."""
        await self.client.delete(self.queue_key)
        logger.info("queue_cleared", queue=self.queue_key)
