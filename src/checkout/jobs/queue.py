"""Store-backed priority job queue.

Claims are at-least-once: a job is marked running when it is handed to a
worker and stays that way until the worker acks or nacks it. A worker that
dies mid-job leaves a stalled claim, which ``recover_stalled`` puts back on
its lane.
"""

import threading
import time
from datetime import UTC, datetime, timedelta

import structlog
from protean.utils.globals import current_domain

from checkout.config import PipelineSettings
from checkout.jobs.dispatch import (
    ClaimNextJob,
    CompleteJob,
    DropJob,
    FailJob,
    ReleaseStalledJobs,
    RequeueJob,
)
from checkout.jobs.dispatch import enqueue as enqueue_job
from checkout.jobs.job import Job, JobStatus
from checkout.jobs.lanes import backoff_delay
from checkout.utils.db import exclusive_access, process

logger = structlog.get_logger(__name__)


class JobQueue:
    def __init__(self, settings: PipelineSettings | None = None):
        self.settings = settings or PipelineSettings.from_env()
        self._wakeup = threading.Condition()

    # -------------------------------------------------------------------
    # Producer side
    # -------------------------------------------------------------------
    def enqueue(self, lane, stage, payload, retry_budget, order_id=None) -> Job:
        """Enqueue outside of any other unit of work and wake a worker."""
        with exclusive_access():
            job = enqueue_job(lane, stage, payload, retry_budget, order_id=order_id)
        self.notify()
        return job

    def notify(self) -> None:
        """Wake workers blocked in ``dequeue``."""
        with self._wakeup:
            self._wakeup.notify_all()

    # -------------------------------------------------------------------
    # Consumer side
    # -------------------------------------------------------------------
    def dequeue(self, timeout: float | None = None, worker: str | None = None) -> Job | None:
        """Claim the next ready job, waiting up to ``timeout`` seconds.

        Lanes are served strictly by priority; within a lane the oldest ready
        job wins. Returns ``None`` on timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            job = self.claim(worker)
            if job is not None:
                return job

            wait = self.settings.poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                wait = min(wait, remaining)

            with self._wakeup:
                self._wakeup.wait(wait)

    def claim(self, worker: str | None = None) -> Job | None:
        """Claim the next ready job without waiting."""
        job_id = process(ClaimNextJob(worker=worker))
        if job_id is None:
            return None
        return self.get(job_id)

    def ack(self, job: Job) -> None:
        process(CompleteJob(job_id=str(job.id)))
        logger.info("job_succeeded", job_id=str(job.id), stage=job.stage, attempts=job.attempts)

    def nack(self, job: Job, error: str, retryable: bool = True) -> str:
        """Record a failed attempt. Returns the job's resulting status."""
        delay = backoff_delay(job.attempts, self.settings.backoff_base, self.settings.backoff_cap)
        status = process(FailJob(job_id=str(job.id), error=error, retryable=retryable, delay=delay))

        if status == JobStatus.DEAD.value:
            logger.error(
                "job_dead",
                job_id=str(job.id),
                stage=job.stage,
                order_id=job.order_id,
                attempts=job.attempts,
                error=error,
            )
        else:
            logger.warning(
                "job_retry_scheduled",
                job_id=str(job.id),
                stage=job.stage,
                attempts=job.attempts,
                delay=delay,
                error=error,
            )
        return status

    # -------------------------------------------------------------------
    # Operator actions
    # -------------------------------------------------------------------
    def drop(self, job_id) -> None:
        process(DropJob(job_id=str(job_id)))
        logger.info("job_dropped", job_id=str(job_id))

    def requeue(self, job_id) -> None:
        process(RequeueJob(job_id=str(job_id)))
        logger.info("job_requeued", job_id=str(job_id))
        self.notify()

    def recover_stalled(self, stall_timeout: float | None = None) -> list[str]:
        """Release running jobs whose claim is older than ``stall_timeout``."""
        timeout = self.settings.stall_timeout if stall_timeout is None else stall_timeout
        released = process(ReleaseStalledJobs(stall_timeout=timeout))
        if released:
            logger.warning("stalled_jobs_released", count=len(released), job_ids=released)
            self.notify()
        return released

    # -------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------
    def get(self, job_id) -> Job:
        with exclusive_access():
            return current_domain.repository_for(Job).get(job_id)

    def dead_jobs(self) -> list[Job]:
        with exclusive_access():
            return current_domain.repository_for(Job).with_status(JobStatus.DEAD)

    def jobs_for_order(self, order_id) -> list[Job]:
        with exclusive_access():
            return current_domain.repository_for(Job).for_order(order_id)

    def stalled_jobs(self, stall_timeout: float | None = None) -> list[Job]:
        """Running jobs claimed longer ago than ``stall_timeout`` seconds."""
        timeout = self.settings.stall_timeout if stall_timeout is None else stall_timeout
        cutoff = datetime.now(UTC) - timedelta(seconds=timeout)
        with exclusive_access():
            return current_domain.repository_for(Job).stalled(cutoff)

    def seconds_until_ready(self) -> float | None:
        """Seconds until the earliest queued job may run, or ``None`` if empty."""
        with exclusive_access():
            wakeup = current_domain.repository_for(Job).next_wakeup()
        if wakeup is None:
            return None
        return max((wakeup - datetime.now(UTC)).total_seconds(), 0.0)
