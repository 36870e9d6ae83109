"""Order placement: turns a session's cart into a pending order.

The order, its line items, the emptied cart and the payment job are written
in one unit of work. Either all of them are committed or none are.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from checkout.cart.cart import Cart
from checkout.domain import checkout
from checkout.errors import (
    CheckoutError,
    EmptyCart,
    InsufficientInventory,
    InvalidEmail,
    OrderCreationFailed,
    ProductNotFound,
)
from checkout.fulfillment.pipeline import Outcome, enqueue_obligations
from checkout.inventory.product import Product
from checkout.order.order import Order
from checkout.shared.email import EmailAddress

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class PlaceOrder:
    session_id = String(required=True, max_length=255)
    email = String()
    payment_method_ref = String(required=True, max_length=255)


@checkout.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        """Returns the new order's id."""
        email = (command.email or "").strip()
        try:
            EmailAddress(address=email)
        except ValidationError:
            raise InvalidEmail()

        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.for_session(command.session_id)
        if cart is None or cart.is_empty():
            raise EmptyCart()

        # Re-check every line against the live count, not the add-time value
        product_repo = current_domain.repository_for(Product)
        lines = []
        shortfalls = []
        for item in cart.items:
            try:
                product = product_repo.get(item.product_id)
            except ObjectNotFoundError as exc:
                raise ProductNotFound(item.product_id) from exc
            if not product.can_supply(item.quantity):
                shortfalls.append((product.name, product.inventory_count))
            lines.append((product, item.quantity))

        if shortfalls:
            raise InsufficientInventory(shortfalls=shortfalls)

        try:
            order = Order.place(
                session_id=command.session_id,
                email=email,
                payment_method_ref=command.payment_method_ref,
                lines=lines,
            )
            current_domain.repository_for(Order).add(order)

            cart.clear()
            cart_repo.add(cart)

            enqueue_obligations(Outcome.PLACED, order, payment_method_ref=command.payment_method_ref)
        except CheckoutError:
            raise
        except Exception as exc:
            logger.exception("order_creation_failed", session_id=command.session_id, error=str(exc))
            raise OrderCreationFailed() from exc

        logger.info(
            "order_placed",
            order_id=str(order.id),
            session_id=command.session_id,
            total_amount=order.total_amount,
            item_count=order.item_count,
        )
        return str(order.id)
