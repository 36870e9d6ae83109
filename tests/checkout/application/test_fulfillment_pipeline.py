"""End-to-end tests for the fulfillment pipeline run by the worker pool."""

import time

from checkout.cart.items import AddToCart
from checkout.config import PipelineSettings
from checkout.gateway.port import ChargeOutcome
from checkout.inventory.management import RegisterProduct
from checkout.inventory.product import Product
from checkout.jobs.job import JobStatus
from checkout.jobs.queue import JobQueue
from checkout.jobs.worker import WorkerPool
from checkout.order.order import Order
from checkout.order.placement import PlaceOrder
from checkout.utils.db import exclusive_access, process
from protean import current_domain


def _checkout(session_id, product_id, quantity):
    process(AddToCart(session_id=session_id, product_id=product_id, quantity=quantity))
    return process(PlaceOrder(session_id=session_id, email="buyer@example.com", payment_method_ref="pm"))


def _register(price=10.0, inventory_count=10, name="Protein Powder"):
    return process(RegisterProduct(name=name, price=price, inventory_count=inventory_count, category="Supplements"))


def _order(order_id):
    with exclusive_access():
        return current_domain.repository_for(Order).get(order_id)


def _count(product_id):
    with exclusive_access():
        return current_domain.repository_for(Product).get(product_id).inventory_count


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class TestPipelineDrain:
    def test_approved_order_runs_every_stage_in_sequence(self, gateway, mailbox, pool, queue):
        product_id = _register(inventory_count=10)
        order_id = _checkout("sess-1", product_id, 3)

        assert pool.run_pending() == 3

        order = _order(order_id)
        assert (order.status, order.payment_status) == ("confirmed", "paid")
        assert order.totals_match()
        assert _count(product_id) == 7
        assert len(mailbox.sent_emails) == 1
        assert [(job.stage, job.status) for job in queue.jobs_for_order(order_id)] == [
            ("payment", JobStatus.SUCCEEDED.value),
            ("inventory", JobStatus.SUCCEEDED.value),
            ("notification", JobStatus.SUCCEEDED.value),
        ]

    def test_declined_order_never_reaches_inventory_or_notification(self, gateway, mailbox, pool, queue):
        gateway.configure(ChargeOutcome.DECLINED)
        product_id = _register(inventory_count=10)
        order_id = _checkout("sess-1", product_id, 3)

        pool.run_pending()

        assert _count(product_id) == 10
        assert mailbox.attempts == 0
        assert [job.stage for job in queue.jobs_for_order(order_id)] == ["payment"]
        assert _order(order_id).totals_match()

    def test_payment_lane_served_before_earlier_low_priority_work(self, gateway, mailbox, pool, queue):
        product_id = _register(inventory_count=10)
        first = _checkout("sess-1", product_id, 1)
        pool.run_pending(max_jobs=1)

        # first order now has inventory + notification queued; second order's payment jumps ahead
        second = _checkout("sess-2", product_id, 1)
        job = queue.claim()
        assert job.stage == "payment"
        assert job.order_id == second
        queue.ack(job)

        assert queue.claim().order_id == first


class TestWorkerThreads:
    def test_pool_processes_orders_in_background(self, gateway, mailbox, pool, queue):
        product_id = _register(inventory_count=20)
        order_ids = [_checkout(f"sess-{n}", product_id, 2) for n in range(5)]

        pool.start(workers=3)
        queue.notify()

        assert _wait_for(lambda: len(mailbox.sent_emails) == 5)
        assert _wait_for(lambda: _count(product_id) == 10)
        for order_id in order_ids:
            assert _order(order_id).status == "confirmed"

        pool.stop()
        assert not pool.running

    def test_oversold_orders_leave_stock_at_zero(self, gateway, mailbox, pool, queue):
        product_id = _register(inventory_count=20)
        order_ids = [_checkout(f"sess-{n}", product_id, 4) for n in range(5)]

        # Stock drops after the carts were checked out
        with exclusive_access():
            product = current_domain.repository_for(Product).get(product_id)
            product.inventory_count = 10
            current_domain.repository_for(Product).add(product)

        pool.start(workers=4)

        def settled():
            jobs = [job for order_id in order_ids for job in queue.jobs_for_order(order_id) if job.stage == "inventory"]
            return len(jobs) == 5 and all(job.status in ("succeeded", "dead") for job in jobs)

        assert _wait_for(settled, timeout=10)
        pool.stop()

        assert _count(product_id) == 2

    def test_claim_left_running_by_a_failed_nack_is_swept(self, gateway, mailbox, monkeypatch):
        from checkout.domain import checkout as checkout_domain

        settings = PipelineSettings(workers=1, poll_interval=0.01, backoff_base=0.0, backoff_cap=0.0, stall_timeout=0.2)
        queue = JobQueue(settings)
        pool = WorkerPool(checkout_domain, queue=queue, settings=settings)
        gateway.configure(ChargeOutcome.ERROR)
        product_id = _register(inventory_count=10)
        order_id = _checkout("sess-1", product_id, 1)

        nack = queue.nack
        failed_nacks = []

        def nack_failing_once(job, error, retryable=True):
            if not failed_nacks:
                failed_nacks.append(str(job.id))
                raise RuntimeError("store unavailable")
            return nack(job, error, retryable)

        monkeypatch.setattr(queue, "nack", nack_failing_once)

        pool.start()
        try:
            assert _wait_for(lambda: _order(order_id).status == "failed", timeout=10)
        finally:
            pool.stop()

        [job] = queue.jobs_for_order(order_id)
        assert failed_nacks == [str(job.id)]
        assert job.status == JobStatus.DEAD.value
        assert job.attempts == 4
        assert queue.stalled_jobs(stall_timeout=0) == []
        assert [str(dead.id) for dead in queue.dead_jobs()] == [str(job.id)]
