"""Stage handler registry used by the workers."""

from checkout.fulfillment.inventory import InventoryStage
from checkout.fulfillment.notification import NotificationStage
from checkout.fulfillment.payment import PaymentStage
from checkout.fulfillment.pipeline import Stage

STAGE_HANDLERS = {
    Stage.PAYMENT: PaymentStage(),
    Stage.INVENTORY: InventoryStage(),
    Stage.NOTIFICATION: NotificationStage(),
}


def handler_for(stage: str):
    return STAGE_HANDLERS[Stage(stage)]
