"""Inventory stage: debit a paid order's stock."""

import structlog

from checkout.fulfillment.pipeline import Stage
from checkout.inventory.ledger import DebitInventory
from checkout.utils.db import process

logger = structlog.get_logger(__name__)


class InventoryStage:
    stage = Stage.INVENTORY

    def run(self, job) -> None:
        process(DebitInventory(order_id=job.args["order_id"]))

    def on_exhausted(self, job, error: str) -> None:
        # Payment is already captured; the order stays confirmed/paid
        logger.error(
            "inventory_debit_exhausted",
            order_id=job.args["order_id"],
            job_id=str(job.id),
            error=error,
        )
