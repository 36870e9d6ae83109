"""Standalone fulfillment worker runner.

Runs the worker pool without the HTTP app, against whatever store the
``checkout`` domain is configured for.

Usage:
    python src/worker.py                 # CHECKOUT_WORKERS threads until interrupted
    python src/worker.py --workers 8
    python src/worker.py --drain         # run every ready job once, then exit
"""

import argparse
import signal
import threading

import structlog
from checkout.config import PipelineSettings
from checkout.domain import checkout

logger = structlog.get_logger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Checkout fulfillment worker")
    parser.add_argument("--workers", type=int, help="Number of worker threads (default: CHECKOUT_WORKERS)")
    parser.add_argument("--drain", action="store_true", help="Run ready jobs on this thread, then exit")
    args = parser.parse_args()

    checkout.init()

    from checkout.jobs.queue import JobQueue
    from checkout.jobs.worker import WorkerPool

    settings = PipelineSettings.from_env()
    pool = WorkerPool(checkout, queue=JobQueue(settings), settings=settings)

    if args.drain:
        with checkout.domain_context():
            pool.queue.recover_stalled()
            executed = pool.run_pending()
        logger.info("drain_complete", executed=executed)
        return

    stopped = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stopped.set())
    signal.signal(signal.SIGTERM, lambda *_: stopped.set())

    pool.start(args.workers)
    stopped.wait()
    pool.stop()


if __name__ == "__main__":
    main()
