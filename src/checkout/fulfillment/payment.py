"""Payment stage: charge the order and record the gateway's answer."""

import structlog
from protean.utils.globals import current_domain

from checkout.errors import TransientStageError
from checkout.fulfillment.pipeline import Outcome, Stage
from checkout.gateway import get_gateway
from checkout.gateway.port import ChargeOutcome
from checkout.order.order import Order
from checkout.order.payment import RecordPaymentOutcome
from checkout.utils.db import exclusive_access, process

logger = structlog.get_logger(__name__)


class PaymentStage:
    stage = Stage.PAYMENT

    def run(self, job) -> None:
        order_id = job.args["order_id"]
        with exclusive_access():
            order = current_domain.repository_for(Order).get(order_id)

        if not order.awaiting_payment():
            logger.info("payment_skipped", order_id=order_id, status=order.status, payment_status=order.payment_status)
            return

        payment_method_ref = job.args.get("payment_method_ref") or order.payment_method_ref
        # Charged outside any unit of work
        result = get_gateway().charge(
            payment_method_ref=payment_method_ref,
            amount=order.total_amount,
            idempotency_key=f"order-{order_id}",
        )

        if result.outcome == ChargeOutcome.ERROR:
            raise TransientStageError(result.reason or "Payment gateway error")

        outcome = Outcome.APPROVED if result.approved else Outcome.DECLINED
        process(
            RecordPaymentOutcome(
                order_id=order_id,
                outcome=outcome.value,
                transaction_id=result.transaction_id,
                reason=result.reason,
            )
        )
        logger.info("payment_processed", order_id=order_id, outcome=outcome.value, amount=order.total_amount)

    def on_exhausted(self, job, error: str) -> None:
        """Out of retries: the order can no longer be paid for."""
        order_id = job.args["order_id"]
        process(
            RecordPaymentOutcome(
                order_id=order_id,
                outcome=Outcome.EXHAUSTED.value,
                reason=f"Payment could not be processed: {error}",
            )
        )
        logger.error("payment_exhausted", order_id=order_id, error=error)
