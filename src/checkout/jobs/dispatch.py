"""Job lifecycle commands and handler.

Every queue transition is an ordinary command so it runs in its own unit of
work. ``enqueue`` is the exception: it only adds the job to the repository,
which lets callers write it in the same unit of work as the change that
caused it.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.jobs.job import Job

logger = structlog.get_logger(__name__)


def enqueue(lane, stage, payload, retry_budget, order_id=None) -> Job:
    """Add a job to the current unit of work."""
    job = Job.create(
        lane=lane,
        stage=stage,
        payload=payload,
        retry_budget=retry_budget,
        order_id=str(order_id) if order_id is not None else None,
    )
    current_domain.repository_for(Job).add(job)
    logger.info("job_enqueued", job_id=str(job.id), stage=stage, lane=job.lane, order_id=job.order_id)
    return job


@checkout.command(part_of="Job")
class ClaimNextJob:
    worker = String(max_length=100)


@checkout.command(part_of="Job")
class CompleteJob:
    job_id = Identifier(required=True)


@checkout.command(part_of="Job")
class FailJob:
    job_id = Identifier(required=True)
    error = Text()
    retryable = Boolean(default=True)
    delay = Float(default=0.0)


@checkout.command(part_of="Job")
class DropJob:
    job_id = Identifier(required=True)


@checkout.command(part_of="Job")
class RequeueJob:
    job_id = Identifier(required=True)


@checkout.command(part_of="Job")
class ReleaseStalledJobs:
    stall_timeout = Float(required=True)
    delay = Float(default=0.0)


@checkout.command_handler(part_of=Job)
class JobDispatchHandler:
    @handle(ClaimNextJob)
    def claim_next(self, command):
        """Returns the claimed job's id, or ``None`` when nothing is ready."""
        repo = current_domain.repository_for(Job)
        candidate = repo.next_ready(datetime.now(UTC))
        if candidate is None:
            return None

        job = repo.get(candidate.id)
        job.claim(command.worker)
        repo.add(job)
        return str(job.id)

    @handle(CompleteJob)
    def complete(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        job.succeed()
        repo.add(job)

    @handle(FailJob)
    def fail(self, command):
        """Returns the job's status after the failure is recorded."""
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        job.fail(command.error or "", retryable=command.retryable, delay=command.delay or 0.0)
        repo.add(job)
        return job.status

    @handle(DropJob)
    def drop(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        job.drop()
        repo.add(job)

    @handle(RequeueJob)
    def requeue(self, command):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        job.requeue()
        repo.add(job)

    @handle(ReleaseStalledJobs)
    def release_stalled(self, command):
        """Returns the ids of the jobs that were released."""
        repo = current_domain.repository_for(Job)
        cutoff = datetime.now(UTC) - timedelta(seconds=command.stall_timeout)
        released = []
        for stalled in repo.stalled(cutoff):
            job = repo.get(stalled.id)
            job.release(delay=command.delay or 0.0)
            repo.add(job)
            released.append(str(job.id))
        return released
