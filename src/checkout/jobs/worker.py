"""Worker threads that drain the job queue.

Each worker pushes its own domain context, claims one job at a time and
hands it to the stage handler registered for the job's stage. Handler
errors never escape a worker: they become a nack, and a job that ends up
dead gives its handler a chance to record the exhaustion.
"""

import threading
import time

import structlog
from protean.domain import Domain

from checkout.config import PipelineSettings
from checkout.errors import StageError
from checkout.fulfillment.stages import handler_for
from checkout.jobs.job import JobStatus
from checkout.jobs.queue import JobQueue
from checkout.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


def execute(queue: JobQueue, job, handlers) -> str:
    """Run one claimed job to an ack or nack. Returns the job's final status."""
    add_context(job_id=str(job.id), stage=job.stage, order_id=job.order_id, attempt=job.attempts)
    try:
        try:
            handler = handlers(job.stage)
        except (KeyError, ValueError):
            return queue.nack(job, f"No handler for stage {job.stage!r}", retryable=False)

        try:
            handler.run(job)
        except StageError as exc:
            error = str(exc)
            status = queue.nack(job, error, retryable=exc.retryable)
        except Exception as exc:
            logger.exception("stage_crashed", error=str(exc))
            error = f"{type(exc).__name__}: {exc}"
            status = queue.nack(job, error, retryable=True)
        else:
            queue.ack(job)
            return JobStatus.SUCCEEDED.value

        if status == JobStatus.DEAD.value:
            try:
                handler.on_exhausted(job, error)
            except Exception:
                logger.exception("exhaustion_hook_failed")
        return status
    finally:
        clear_context()


class WorkerPool:
    def __init__(self, domain: Domain, queue: JobQueue | None = None, settings: PipelineSettings | None = None):
        self.domain = domain
        self.settings = settings or PipelineSettings.from_env()
        self.queue = queue or JobQueue(self.settings)
        self.handlers = handler_for
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self._sweep_lock = threading.Lock()
        self._next_sweep = 0.0

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    @property
    def sweep_interval(self) -> float:
        """Seconds between stalled-claim sweeps while the pool runs."""
        return self.settings.stall_timeout / 2

    def start(self, workers: int | None = None) -> None:
        if self.running:
            return
        self._stop.clear()
        with self.domain.domain_context():
            self.queue.recover_stalled()
        self._next_sweep = time.monotonic() + self.sweep_interval

        count = workers or self.settings.workers
        for index in range(count):
            thread = threading.Thread(
                target=self._work,
                args=(f"worker-{index}",),
                name=f"checkout-worker-{index}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info("worker_pool_started", workers=count)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop claiming new jobs and wait for in-flight ones to finish."""
        self._stop.set()
        self.queue.notify()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("worker_pool_stopped")

    def _work(self, name: str) -> None:
        with self.domain.domain_context():
            while not self._stop.is_set():
                self._sweep_stalled(name)
                try:
                    job = self.queue.dequeue(timeout=self.settings.poll_interval, worker=name)
                except Exception:
                    logger.exception("dequeue_failed", worker=name)
                    self._stop.wait(self.settings.poll_interval)
                    continue
                if job is None:
                    continue
                try:
                    execute(self.queue, job, self.handlers)
                except Exception:
                    logger.exception("job_execution_failed", worker=name, job_id=str(job.id))

    def _sweep_stalled(self, name: str) -> None:
        """Release stalled claims, at most once per ``sweep_interval`` across the pool.

        A job whose ack or nack failed stays running until a sweep gives it
        back to its lane.
        """
        now = time.monotonic()
        with self._sweep_lock:
            if now < self._next_sweep:
                return
            self._next_sweep = now + self.sweep_interval
        try:
            self.queue.recover_stalled()
        except Exception:
            logger.exception("stalled_sweep_failed", worker=name)

    def run_pending(self, max_jobs: int | None = None) -> int:
        """Drain every job that is ready now on the calling thread.

        Jobs scheduled for a later retry are left alone. Returns the number
        of jobs executed.
        """
        executed = 0
        while max_jobs is None or executed < max_jobs:
            job = self.queue.claim(worker="inline")
            if job is None:
                break
            execute(self.queue, job, self.handlers)
            executed += 1
        return executed
