"""Notification stage: email the order confirmation."""

import structlog
from protean.utils.globals import current_domain

from checkout.channel import get_channel
from checkout.errors import TransientStageError
from checkout.fulfillment.pipeline import Stage
from checkout.order.order import Order
from checkout.templates import get_template
from checkout.utils.db import exclusive_access

logger = structlog.get_logger(__name__)


def confirmation_context(order) -> dict:
    return {
        "order_id": str(order.id),
        "status": order.status,
        "total_amount": order.total_amount,
        "items": [
            {
                "product_name": item.product_name,
                "quantity": item.quantity,
                "line_total": item.subtotal,
            }
            for item in order.items
        ],
    }


class NotificationStage:
    stage = Stage.NOTIFICATION

    def run(self, job) -> None:
        order_id = job.args["order_id"]
        with exclusive_access():
            order = current_domain.repository_for(Order).get(order_id)
            context = confirmation_context(order)

        content = get_template("order_confirmation").render(context)
        result = get_channel().send(to=order.email.address, subject=content["subject"], body=content["body"])

        if result.get("status") != "sent":
            raise TransientStageError(result.get("error") or "Email delivery failed")

        logger.info("confirmation_sent", order_id=order_id, message_id=result.get("message_id"))

    def on_exhausted(self, job, error: str) -> None:
        # Never fatal to the order
        logger.error("confirmation_exhausted", order_id=job.args["order_id"], job_id=str(job.id), error=error)
