"""Recording a payment outcome against an order.

Applies one row of the pipeline's transition table and enqueues the stages it
obliges in the same unit of work. Outcomes for an order that is no longer
awaiting payment are ignored, so a re-delivered payment job cannot revive or
double-confirm an order.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.fulfillment.pipeline import Outcome, enqueue_obligations
from checkout.order.order import Order

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class RecordPaymentOutcome:
    order_id = Identifier(required=True)
    outcome = String(required=True, choices=Outcome)
    transaction_id = String(max_length=255)
    reason = Text()


@checkout.command_handler(part_of=Order)
class PaymentOutcomeHandler:
    @handle(RecordPaymentOutcome)
    def record_outcome(self, command):
        """Returns ``True`` if the order changed state."""
        outcome = Outcome(command.outcome)
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if not order.awaiting_payment():
            logger.info(
                "payment_outcome_ignored",
                order_id=str(order.id),
                outcome=outcome.value,
                status=order.status,
                payment_status=order.payment_status,
            )
            return False

        if outcome == Outcome.APPROVED:
            order.confirm_payment(command.transaction_id)
        elif outcome in (Outcome.DECLINED, Outcome.EXHAUSTED):
            order.fail_payment(command.reason)
        else:
            raise ValueError(f"{outcome.value} is not a payment outcome")

        repo.add(order)
        enqueue_obligations(outcome, order)

        logger.info(
            "payment_outcome_recorded",
            order_id=str(order.id),
            outcome=outcome.value,
            status=order.status,
            payment_status=order.payment_status,
        )
        return True
