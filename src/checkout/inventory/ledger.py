"""Stock movements and the order debit.

Every change to a product's count is recorded as a ``StockMovement``. Debit
movements double as the record that an order's stock has been taken, which
is what makes ``DebitInventory`` safe to deliver more than once.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import InsufficientStock, StageAbandoned
from checkout.inventory.product import Product
from checkout.order.order import Order
from checkout.utils.db import iterate

logger = structlog.get_logger(__name__)


class MovementKind(Enum):
    DEBIT = "debit"
    RESTOCK = "restock"


@checkout.aggregate
class StockMovement:
    product_id = Identifier(required=True)
    order_id = Identifier()
    kind = String(required=True, choices=MovementKind)
    quantity = Integer(required=True)  # signed delta
    balance_after = Integer(required=True, min_value=0)
    recorded_at = DateTime()

    @classmethod
    def debit(cls, product, quantity, order_id):
        return cls(
            product_id=str(product.id),
            order_id=str(order_id),
            kind=MovementKind.DEBIT.value,
            quantity=-quantity,
            balance_after=product.inventory_count,
            recorded_at=datetime.now(UTC),
        )

    @classmethod
    def restock(cls, product, quantity):
        return cls(
            product_id=str(product.id),
            kind=MovementKind.RESTOCK.value,
            quantity=quantity,
            balance_after=product.inventory_count,
            recorded_at=datetime.now(UTC),
        )


@checkout.repository(part_of=StockMovement)
class StockMovementRepository:
    def debits_for_order(self, order_id) -> list[StockMovement]:
        return list(iterate(self._dao.query.filter(order_id=str(order_id), kind=MovementKind.DEBIT.value)))

    def for_product(self, product_id) -> list[StockMovement]:
        return sorted(
            iterate(self._dao.query.filter(product_id=str(product_id))),
            key=lambda movement: movement.recorded_at,
        )


@checkout.command(part_of="StockMovement")
class DebitInventory:
    order_id = Identifier(required=True)


@checkout.command_handler(part_of=StockMovement)
class DebitInventoryHandler:
    @handle(DebitInventory)
    def debit_inventory(self, command):
        """Take a paid order's stock, all lines or none.

        Returns ``False`` when the order was already debited.
        """
        movements = current_domain.repository_for(StockMovement)
        if movements.debits_for_order(command.order_id):
            logger.info("inventory_already_debited", order_id=str(command.order_id))
            return False

        order = current_domain.repository_for(Order).get(command.order_id)
        if not order.is_paid():
            raise StageAbandoned(f"Order {order.id} is {order.status}/{order.payment_status}, not paid")

        # Lines for the same product are debited together
        requested = {}
        for item in order.items:
            requested[str(item.product_id)] = requested.get(str(item.product_id), 0) + item.quantity

        products = current_domain.repository_for(Product)
        stocked = [(products.get(product_id), quantity) for product_id, quantity in requested.items()]

        shortfalls = [
            (str(product.id), quantity, product.inventory_count)
            for product, quantity in stocked
            if not product.can_supply(quantity)
        ]
        if shortfalls:
            raise InsufficientStock(order.id, shortfalls)

        for product, quantity in stocked:
            product.debit(quantity, order.id)
            products.add(product)
            movements.add(StockMovement.debit(product, quantity, order.id))

        logger.info(
            "inventory_debited",
            order_id=str(order.id),
            products=len(stocked),
            units=sum(requested.values()),
        )
        return True
