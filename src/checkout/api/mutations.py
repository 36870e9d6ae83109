"""The three checkout mutations as the rest of the application sees them.

Each returns a ``MutationResult`` carrying either a value or a list of
user-facing error messages, never both. Rejections are expected outcomes
here, so nothing below raises for them.
"""

from dataclasses import dataclass, field

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from checkout.cart.cart import Cart
from checkout.cart.items import AddToCart, UpdateCartItem
from checkout.errors import (
    CheckoutError,
    InvalidEmail,
    InvalidQuantity,
    OrderCreationFailed,
    ProductNotFound,
)
from checkout.order.order import Order
from checkout.order.placement import PlaceOrder
from checkout.utils.db import exclusive_access, process

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MutationResult:
    value: object = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls, value=None) -> "MutationResult":
        return cls(value=value)

    @classmethod
    def failure(cls, *messages: str) -> "MutationResult":
        return cls(errors=list(messages))


# Field rejections raised while building a command, keyed by field
FIELD_ERRORS = {
    "quantity": lambda: InvalidQuantity("Quantity must be a whole number greater than 0"),
    "email": InvalidEmail,
}


def error_messages(exc: ValidationError) -> list[str]:
    if isinstance(exc, CheckoutError):
        return [exc.message]
    for field_name, error in FIELD_ERRORS.items():
        if field_name in exc.messages:
            return [error().message]
    return [message for messages in exc.messages.values() for message in messages]


def add_to_cart(session_id: str, product_id: str, quantity: int) -> MutationResult:
    """Add to the session's cart. The value is the refreshed ``Cart``."""
    try:
        cart_id = process(AddToCart(session_id=session_id, product_id=product_id, quantity=quantity))
        with exclusive_access():
            cart = current_domain.repository_for(Cart).get(cart_id)
    except ObjectNotFoundError:
        return MutationResult.failure(ProductNotFound().message)
    except ValidationError as exc:
        return MutationResult.failure(*error_messages(exc))
    except Exception as exc:
        logger.exception("add_to_cart_failed", session_id=session_id, product_id=product_id, error=str(exc))
        return MutationResult.failure("An error occurred while adding to cart")
    return MutationResult.success(cart)


def update_cart_item(cart_item_id: str, quantity: int) -> MutationResult:
    """Overwrite a line's quantity. The value is the line, or ``None`` once removed."""
    try:
        item_id = process(UpdateCartItem(cart_item_id=cart_item_id, quantity=quantity))
        item = None
        if item_id is not None:
            with exclusive_access():
                cart = current_domain.repository_for(Cart).containing_item(item_id)
                item = cart.find_item(item_id)
    except ValidationError as exc:
        return MutationResult.failure(*error_messages(exc))
    except Exception as exc:
        logger.exception("update_cart_item_failed", cart_item_id=cart_item_id, error=str(exc))
        return MutationResult.failure("An error occurred while updating cart item")
    return MutationResult.success(item)


def create_order(session_id: str, email: str, payment_method_ref: str, queue=None) -> MutationResult:
    """Turn the session's cart into an order. The value is the pending ``Order``.

    ``queue`` (a ``JobQueue``) is woken once the order and its payment job
    are committed.
    """
    try:
        order_id = process(PlaceOrder(session_id=session_id, email=email, payment_method_ref=payment_method_ref))
        with exclusive_access():
            order = current_domain.repository_for(Order).get(order_id)
    except ValidationError as exc:
        return MutationResult.failure(*error_messages(exc))
    except Exception as exc:
        logger.exception("create_order_failed", session_id=session_id, error=str(exc))
        return MutationResult.failure(OrderCreationFailed().message)

    if queue is not None:
        queue.notify()
    return MutationResult.success(order)
