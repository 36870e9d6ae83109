"""Application tests for the payment stage."""

from checkout.cart.items import AddToCart
from checkout.gateway.port import ChargeOutcome
from checkout.inventory.management import RegisterProduct
from checkout.jobs.job import JobStatus
from checkout.order.order import Order
from checkout.order.placement import PlaceOrder
from protean import current_domain


def _checkout(session_id="sess-1", quantity=2, price=10.0):
    product_id = current_domain.process(
        RegisterProduct(name="Resistance Bands", price=price, inventory_count=10, category="Fitness"),
        asynchronous=False,
    )
    current_domain.process(
        AddToCart(session_id=session_id, product_id=product_id, quantity=quantity),
        asynchronous=False,
    )
    return current_domain.process(
        PlaceOrder(session_id=session_id, email="buyer@example.com", payment_method_ref="pm_card_visa"),
        asynchronous=False,
    )


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _stages(queue, order_id):
    return [(job.stage, job.status) for job in queue.jobs_for_order(order_id)]


class TestApproval:
    def test_approved_payment_confirms_order(self, gateway, mailbox, pool):
        order_id = _checkout()
        pool.run_pending(max_jobs=1)

        order = _order(order_id)
        assert order.status == "confirmed"
        assert order.payment_status == "paid"
        assert order.transaction_id.startswith("fake_txn_")
        assert order.totals_match()

    def test_approval_enqueues_inventory_and_notification(self, gateway, pool, queue):
        order_id = _checkout()
        pool.run_pending(max_jobs=1)

        assert _stages(queue, order_id) == [
            ("payment", JobStatus.SUCCEEDED.value),
            ("inventory", JobStatus.QUEUED.value),
            ("notification", JobStatus.QUEUED.value),
        ]

    def test_charge_uses_order_total_and_stable_key(self, gateway, pool):
        order_id = _checkout(quantity=3, price=4.5)
        pool.run_pending(max_jobs=1)

        assert gateway.calls == [
            {
                "method": "charge",
                "payment_method_ref": "pm_card_visa",
                "amount": 13.5,
                "idempotency_key": f"order-{order_id}",
            }
        ]


class TestDecline:
    def test_decline_fails_order_and_stops_chain(self, gateway, mailbox, pool, queue):
        gateway.configure(ChargeOutcome.DECLINED, reason="Insufficient funds")
        order_id = _checkout()

        pool.run_pending()

        order = _order(order_id)
        assert (order.status, order.payment_status) == ("failed", "failed")
        assert order.failure_reason == "Insufficient funds"
        assert _stages(queue, order_id) == [("payment", JobStatus.SUCCEEDED.value)]
        assert len(gateway.calls) == 1
        assert mailbox.attempts == 0


class TestErrors:
    def test_error_is_retried_then_approved(self, gateway, pool):
        gateway.script(ChargeOutcome.ERROR, ChargeOutcome.ERROR)
        order_id = _checkout()

        pool.run_pending(max_jobs=3)

        assert len(gateway.calls) == 3
        assert {call["idempotency_key"] for call in gateway.calls} == {f"order-{order_id}"}
        assert _order(order_id).status == "confirmed"

    def test_exhausted_retries_fail_the_order(self, gateway, mailbox, pool, queue):
        gateway.configure(ChargeOutcome.ERROR)
        order_id = _checkout()

        pool.run_pending()

        # First attempt plus three retries
        assert len(gateway.calls) == 4
        order = _order(order_id)
        assert (order.status, order.payment_status) == ("failed", "failed")
        assert "Gateway unavailable" in order.failure_reason
        assert _stages(queue, order_id) == [("payment", JobStatus.DEAD.value)]

    def test_gateway_exception_is_retried(self, gateway, pool, monkeypatch):
        calls = []

        def flaky_charge(payment_method_ref, amount, idempotency_key):
            calls.append(idempotency_key)
            if len(calls) == 1:
                raise ConnectionError("connection reset")
            return original(payment_method_ref, amount, idempotency_key)

        original = gateway.charge
        monkeypatch.setattr(gateway, "charge", flaky_charge)
        order_id = _checkout()

        pool.run_pending(max_jobs=2)

        assert len(calls) == 2
        assert _order(order_id).status == "confirmed"


class TestRedelivery:
    def test_decided_order_is_not_charged_again(self, gateway, pool, queue):
        order_id = _checkout()
        pool.run_pending(max_jobs=1)

        queue.enqueue("critical", "payment", {"order_id": order_id}, 3, order_id=order_id)
        pool.run_pending(max_jobs=1)

        assert len(gateway.calls) == 1
        assert _order(order_id).status == "confirmed"
        assert [stage for stage, _ in _stages(queue, order_id)].count("inventory") == 1
