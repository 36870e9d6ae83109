"""Application tests for the inventory stage and the stock ledger."""

import threading

import pytest
from checkout.cart.items import AddToCart
from checkout.errors import InsufficientStock, StageAbandoned
from checkout.fulfillment.pipeline import Outcome
from checkout.inventory.ledger import DebitInventory, MovementKind, StockMovement
from checkout.inventory.management import RegisterProduct, RestockProduct
from checkout.inventory.product import Product
from checkout.jobs.job import JobStatus
from checkout.order.order import Order
from checkout.order.payment import RecordPaymentOutcome
from checkout.order.placement import PlaceOrder
from checkout.utils.db import process
from protean import current_domain


def _register_product(inventory_count=10, name="Protein Powder"):
    return process(RegisterProduct(name=name, price=10.0, inventory_count=inventory_count, category="Supplements"))


def _paid_order(session_id, lines):
    for product_id, quantity in lines:
        process(AddToCart(session_id=session_id, product_id=product_id, quantity=quantity))
    order_id = process(PlaceOrder(session_id=session_id, email="buyer@example.com", payment_method_ref="pm"))
    process(RecordPaymentOutcome(order_id=order_id, outcome=Outcome.APPROVED.value, transaction_id="txn"))
    return order_id


def _count(product_id):
    return current_domain.repository_for(Product).get(product_id).inventory_count


def _debits(order_id):
    return current_domain.repository_for(StockMovement).debits_for_order(order_id)


class TestDebitInventory:
    def test_debits_every_line(self):
        powder = _register_product(10, "Protein Powder")
        bars = _register_product(4, "Protein Bars")
        order_id = _paid_order("sess-1", [(powder, 3), (bars, 4)])

        assert process(DebitInventory(order_id=order_id)) is True

        assert _count(powder) == 7
        assert _count(bars) == 0
        movements = _debits(order_id)
        assert sorted(m.quantity for m in movements) == [-4, -3]
        assert {m.kind for m in movements} == {MovementKind.DEBIT.value}

    def test_second_delivery_is_a_no_op(self):
        product_id = _register_product(10)
        order_id = _paid_order("sess-1", [(product_id, 3)])

        process(DebitInventory(order_id=order_id))
        assert process(DebitInventory(order_id=order_id)) is False

        assert _count(product_id) == 7
        assert len(_debits(order_id)) == 1

    def test_shortfall_debits_nothing(self):
        plenty = _register_product(10, "Protein Powder")
        scarce = _register_product(5, "Protein Bars")
        order_id = _paid_order("sess-1", [(plenty, 2), (scarce, 5)])

        # Stock sold elsewhere after the order was placed
        product = current_domain.repository_for(Product).get(scarce)
        product.inventory_count = 1
        current_domain.repository_for(Product).add(product)

        with pytest.raises(InsufficientStock) as exc:
            process(DebitInventory(order_id=order_id))

        assert exc.value.retryable
        assert exc.value.shortfalls == [(scarce, 5, 1)]
        assert _count(plenty) == 10
        assert _count(scarce) == 1
        assert _debits(order_id) == []

    def test_unpaid_order_is_abandoned(self):
        product_id = _register_product(10)
        process(AddToCart(session_id="sess-1", product_id=product_id, quantity=1))
        order_id = process(PlaceOrder(session_id="sess-1", email="buyer@example.com", payment_method_ref="pm"))

        with pytest.raises(StageAbandoned):
            process(DebitInventory(order_id=order_id))
        assert _count(product_id) == 10

    def test_restock_is_recorded(self):
        product_id = _register_product(1)
        assert process(RestockProduct(product_id=product_id, quantity=4)) == 5

        movements = current_domain.repository_for(StockMovement).for_product(product_id)
        assert [(m.kind, m.quantity, m.balance_after) for m in movements] == [(MovementKind.RESTOCK.value, 4, 5)]


class TestInventoryStageJobs:
    def test_shortfall_retries_and_succeeds_after_restock(self, gateway, mailbox, queue, pool):
        product_id = _register_product(5)
        process(AddToCart(session_id="sess-1", product_id=product_id, quantity=5))
        order_id = process(PlaceOrder(session_id="sess-1", email="buyer@example.com", payment_method_ref="pm"))

        product = current_domain.repository_for(Product).get(product_id)
        product.inventory_count = 2
        current_domain.repository_for(Product).add(product)

        pool.run_pending()

        inventory_job = next(job for job in queue.jobs_for_order(order_id) if job.stage == "inventory")
        assert inventory_job.status == JobStatus.DEAD.value
        assert inventory_job.attempts == 6
        assert _count(product_id) == 2

        # Payment was captured, so the order stays confirmed/paid
        order = current_domain.repository_for(Order).get(order_id)
        assert (order.status, order.payment_status) == ("confirmed", "paid")

        process(RestockProduct(product_id=product_id, quantity=3))
        queue.requeue(inventory_job.id)
        pool.run_pending()

        assert queue.get(inventory_job.id).status == JobStatus.SUCCEEDED.value
        assert _count(product_id) == 0


class TestConcurrentDebits:
    def test_concurrent_debits_never_oversell(self):
        from checkout.domain import checkout as checkout_domain

        stock = 5
        product_id = _register_product(10)
        order_ids = [_paid_order(f"sess-{n}", [(product_id, 2)]) for n in range(6)]

        product = current_domain.repository_for(Product).get(product_id)
        product.inventory_count = stock
        current_domain.repository_for(Product).add(product)

        results = {}
        barrier = threading.Barrier(len(order_ids))

        def debit(order_id):
            with checkout_domain.domain_context():
                barrier.wait()
                try:
                    process(DebitInventory(order_id=order_id))
                    results[order_id] = "debited"
                except InsufficientStock:
                    results[order_id] = "short"
                except Exception as exc:
                    results[order_id] = repr(exc)

        threads = [threading.Thread(target=debit, args=(order_id,)) for order_id in order_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)

        debited = [order_id for order_id, result in results.items() if result == "debited"]
        assert sorted(results.values()) == ["debited", "debited", "short", "short", "short", "short"]
        assert len(debited) == 2
        assert _count(product_id) == stock - 2 * len(debited)
        assert _count(product_id) >= 0
        assert all(len(_debits(order_id)) == (1 if order_id in debited else 0) for order_id in order_ids)
