"""Job aggregate, a durable unit of pipeline work.

Jobs live in the same store as orders so that enqueueing can share the unit
of work of the write that causes it. A job moves through::

    queued -> running -> succeeded
                      -> queued   (retry after backoff, while attempts remain)
                      -> dead     (budget spent or terminal failure)
    queued -> dropped             (operator)
    dead   -> queued              (operator requeue)

``retry_budget`` counts retries after the first attempt, so a job runs at
most ``retry_budget + 1`` times.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from checkout.domain import checkout
from checkout.jobs.events import (
    JobDeadLettered,
    JobDropped,
    JobEnqueued,
    JobRequeued,
    JobRetryScheduled,
)
from checkout.jobs.lanes import Lane, next_sequence


class JobStatus(Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    DEAD = "dead"
    DROPPED = "dropped"


def as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@checkout.aggregate
class Job:
    stage = String(required=True, max_length=50)
    lane = String(required=True, choices=Lane)
    priority = Integer(required=True, min_value=0)
    sequence = Integer(required=True)
    payload = Text(required=True)  # JSON object
    order_id = Identifier()
    status = String(choices=JobStatus, default=JobStatus.QUEUED.value)
    attempts = Integer(default=0, min_value=0)
    retry_budget = Integer(required=True, min_value=0)
    available_at = DateTime()
    enqueued_at = DateTime()
    claimed_at = DateTime()
    claimed_by = String(max_length=100)
    finished_at = DateTime()
    last_error = Text()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, lane, stage, payload, retry_budget, order_id=None):
        lane = Lane(lane)
        now = datetime.now(UTC)
        job = cls(
            stage=stage,
            lane=lane.value,
            priority=lane.rank,
            sequence=next_sequence(),
            payload=json.dumps(payload),
            order_id=order_id,
            status=JobStatus.QUEUED.value,
            attempts=0,
            retry_budget=retry_budget,
            available_at=now,
            enqueued_at=now,
        )
        job.raise_(
            JobEnqueued(
                job_id=str(job.id),
                stage=stage,
                lane=lane.value,
                order_id=order_id,
                enqueued_at=now,
            )
        )
        return job

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def args(self) -> dict:
        return json.loads(self.payload) if self.payload else {}

    def is_ready(self, now: datetime) -> bool:
        return self.status == JobStatus.QUEUED.value and as_utc(self.available_at) <= now

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def claim(self, worker: str | None = None) -> None:
        if JobStatus(self.status) != JobStatus.QUEUED:
            raise ValidationError({"status": [f"Cannot claim a {self.status} job"]})

        self.status = JobStatus.RUNNING.value
        self.attempts = self.attempts + 1
        self.claimed_at = datetime.now(UTC)
        self.claimed_by = worker

    def succeed(self) -> None:
        if JobStatus(self.status) != JobStatus.RUNNING:
            raise ValidationError({"status": [f"Cannot complete a {self.status} job"]})

        self.status = JobStatus.SUCCEEDED.value
        self.finished_at = datetime.now(UTC)
        self.last_error = None

    def fail(self, error: str, retryable: bool, delay: float) -> None:
        """Record a failed attempt, scheduling a retry when one is allowed."""
        if JobStatus(self.status) != JobStatus.RUNNING:
            raise ValidationError({"status": [f"Cannot fail a {self.status} job"]})

        self.last_error = error
        # attempts already counts the one that just failed
        if retryable and self.attempts <= self.retry_budget:
            self._schedule_retry(delay)
        else:
            self._dead_letter()

    def release(self, delay: float = 0.0) -> None:
        """Give a stalled claim back to its lane."""
        if JobStatus(self.status) != JobStatus.RUNNING:
            raise ValidationError({"status": [f"Cannot release a {self.status} job"]})

        self.last_error = f"Claim by {self.claimed_by or 'unknown worker'} stalled"
        if self.attempts <= self.retry_budget:
            self._schedule_retry(delay)
        else:
            self._dead_letter()

    def drop(self) -> None:
        """Operator cancellation of a job that has not been dispatched."""
        if JobStatus(self.status) != JobStatus.QUEUED:
            raise ValidationError({"status": ["Only queued jobs can be dropped"]})

        now = datetime.now(UTC)
        self.status = JobStatus.DROPPED.value
        self.finished_at = now
        self.raise_(JobDropped(job_id=str(self.id), stage=self.stage, dropped_at=now))

    def requeue(self) -> None:
        """Operator retry of a dead job with a fresh budget."""
        if JobStatus(self.status) != JobStatus.DEAD:
            raise ValidationError({"status": ["Only dead jobs can be requeued"]})

        now = datetime.now(UTC)
        self.status = JobStatus.QUEUED.value
        self.attempts = 0
        self.available_at = now
        self.claimed_at = None
        self.claimed_by = None
        self.finished_at = None
        self.raise_(JobRequeued(job_id=str(self.id), stage=self.stage, requeued_at=now))

    def _schedule_retry(self, delay: float) -> None:
        self.status = JobStatus.QUEUED.value
        self.available_at = datetime.now(UTC) + timedelta(seconds=delay)
        self.claimed_at = None
        self.claimed_by = None
        self.raise_(
            JobRetryScheduled(
                job_id=str(self.id),
                stage=self.stage,
                attempts=self.attempts,
                error=self.last_error,
                available_at=self.available_at,
            )
        )

    def _dead_letter(self) -> None:
        self.status = JobStatus.DEAD.value
        self.finished_at = datetime.now(UTC)
        self.raise_(
            JobDeadLettered(
                job_id=str(self.id),
                stage=self.stage,
                order_id=self.order_id,
                attempts=self.attempts,
                error=self.last_error,
            )
        )
