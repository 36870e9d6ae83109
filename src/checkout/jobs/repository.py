"""Lookups for the Job aggregate."""

from datetime import datetime

from checkout.domain import checkout
from checkout.jobs.job import Job, JobStatus, as_utc
from checkout.jobs.lanes import LANES_BY_PRIORITY
from checkout.utils.db import iterate


@checkout.repository(part_of=Job)
class JobRepository:
    def next_ready(self, now: datetime) -> Job | None:
        """The oldest ready job on the highest-priority lane that has one."""
        for lane in LANES_BY_PRIORITY:
            ready = [
                job
                for job in iterate(self._dao.query.filter(status=JobStatus.QUEUED.value, lane=lane.value))
                if job.is_ready(now)
            ]
            if ready:
                return min(ready, key=lambda job: job.sequence)
        return None

    def next_wakeup(self) -> datetime | None:
        """When the earliest queued job becomes ready."""
        pending = [as_utc(job.available_at) for job in iterate(self._dao.query.filter(status=JobStatus.QUEUED.value))]
        return min(pending) if pending else None

    def with_status(self, status: JobStatus) -> list[Job]:
        return sorted(
            iterate(self._dao.query.filter(status=status.value)),
            key=lambda job: job.sequence,
        )

    def stalled(self, claimed_before: datetime) -> list[Job]:
        return [
            job
            for job in iterate(self._dao.query.filter(status=JobStatus.RUNNING.value))
            if as_utc(job.claimed_at) < claimed_before
        ]

    def for_order(self, order_id) -> list[Job]:
        return sorted(
            iterate(self._dao.query.filter(order_id=str(order_id))),
            key=lambda job: job.sequence,
        )
