"""Checkout errors.

Synchronous rejections are ``ValidationError`` subclasses so they carry the
usual ``messages`` dict and map to 400 responses. Pipeline errors tell the
worker whether a failed job should be retried.
"""

from protean.exceptions import ValidationError


class CheckoutError(ValidationError):
    """A user-visible rejection with a single message."""

    field = "base"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__({self.field: [message]})

    def __str__(self) -> str:
        return self.message


class InvalidQuantity(CheckoutError):
    field = "quantity"

    def __init__(self, message: str = "Quantity must be greater than 0") -> None:
        super().__init__(message)


class ProductNotFound(CheckoutError):
    field = "product_id"

    def __init__(self, product_id=None) -> None:
        self.product_id = product_id
        super().__init__("Product not found")


class CartItemNotFound(CheckoutError):
    field = "cart_item_id"

    def __init__(self, cart_item_id=None) -> None:
        self.cart_item_id = cart_item_id
        super().__init__("Cart item not found")


class InsufficientInventory(CheckoutError):
    """Requested quantity exceeds what is on hand.

    ``shortfalls`` lists ``(product_name, available)`` pairs when raised for a
    whole cart at order time.
    """

    field = "quantity"

    def __init__(self, available: int | None = None, shortfalls=None) -> None:
        self.available = available
        self.shortfalls = list(shortfalls or [])
        if self.shortfalls:
            listed = ", ".join(f"{name} (only {count} available)" for name, count in self.shortfalls)
            message = f"Insufficient inventory for: {listed}"
        else:
            message = f"Insufficient inventory. Only {available} available."
        super().__init__(message)


class InvalidEmail(CheckoutError):
    field = "email"

    def __init__(self) -> None:
        super().__init__("Invalid email address")


class EmptyCart(CheckoutError):
    field = "cart"

    def __init__(self) -> None:
        super().__init__("Cart not found or empty")


class OrderCreationFailed(CheckoutError):
    field = "order"

    def __init__(self) -> None:
        super().__init__("Failed to create order")


# ---------------------------------------------------------------------------
# Pipeline errors
# ---------------------------------------------------------------------------
class StageError(Exception):
    """Base class for failures raised by fulfillment stages."""

    retryable = True


class TransientStageError(StageError):
    """Infrastructure or transport failure; the job is retried."""


class InsufficientStock(TransientStageError):
    """The floor check failed while debiting stock for an order."""

    def __init__(self, order_id, shortfalls) -> None:
        self.order_id = order_id
        self.shortfalls = list(shortfalls)
        listed = ", ".join(f"{product_id} (need {need}, have {have})" for product_id, need, have in self.shortfalls)
        super().__init__(f"Insufficient stock for order {order_id}: {listed}")


class StageAbandoned(StageError):
    """The job can never succeed; it goes straight to the dead state."""

    retryable = False
